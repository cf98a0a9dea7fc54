# qrlink/routers/auth.py
import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from starlette.concurrency import run_in_threadpool

from ..core.config import Settings
from ..core.deps import current_user, get_settings, get_signer, get_store
from ..core.security import SessionSigner, hash_password, verify_password
from ..models.user import User
from ..schemas.user import Credentials, UserResponse
from ..services.store import DuplicateError, ShortLinkStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


def _start_session(response: Response, user: User, signer: SessionSigner, settings: Settings) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=signer.dumps(user.id),
        max_age=settings.SESSION_MAX_AGE_SECONDS,
        httponly=True,
        samesite="lax",
        secure=settings.ENVIRONMENT == "production",
    )


# ------------------------------------------------
# 📝 Sign up
# ------------------------------------------------
@router.post("/signup", response_model=UserResponse, status_code=201)
async def signup(
    credentials: Credentials,
    response: Response,
    store: ShortLinkStore = Depends(get_store),
    signer: SessionSigner = Depends(get_signer),
    settings: Settings = Depends(get_settings),
):
    hashed = await run_in_threadpool(hash_password, credentials.password)
    try:
        user = await store.create_user(credentials.email.lower(), hashed)
    except DuplicateError:
        raise HTTPException(status_code=409, detail="An account with this email already exists.")

    _start_session(response, user, signer, settings)
    logger.info("[AUTH] account created for user %s", user.id)
    return user


# ------------------------------------------------
# 🔐 Sign in / out
# ------------------------------------------------
@router.post("/login", response_model=UserResponse)
async def login(
    credentials: Credentials,
    response: Response,
    store: ShortLinkStore = Depends(get_store),
    signer: SessionSigner = Depends(get_signer),
    settings: Settings = Depends(get_settings),
):
    user = await store.get_user_by_email(credentials.email)
    if user is None or not await run_in_threadpool(verify_password, credentials.password, user.password):
        raise HTTPException(status_code=401, detail="Invalid email or password.")

    _start_session(response, user, signer, settings)
    return user


@router.post("/logout", status_code=204)
def logout(response: Response, settings: Settings = Depends(get_settings)):
    response.delete_cookie(settings.SESSION_COOKIE_NAME)


@router.get("/me", response_model=UserResponse)
def me(user: User = Depends(current_user)):
    return user
