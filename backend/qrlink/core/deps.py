from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.templating import Jinja2Templates

from .config import Settings
from .security import SessionSigner
from ..models.user import User
from ..services.store import ShortLinkStore


# Collaborators are built once by create_app() and parked on app.state
def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> ShortLinkStore:
    return request.app.state.store


def get_signer(request: Request) -> SessionSigner:
    return request.app.state.signer


def get_templates(request: Request) -> Jinja2Templates:
    return request.app.state.templates


async def optional_user(
    request: Request,
    store: ShortLinkStore = Depends(get_store),
    signer: SessionSigner = Depends(get_signer),
    settings: Settings = Depends(get_settings),
) -> Optional[User]:
    user_id = signer.loads(request.cookies.get(settings.SESSION_COOKIE_NAME))
    if user_id is None:
        return None
    return await store.get_user(user_id)


async def current_user(user: Optional[User] = Depends(optional_user)) -> User:
    if user is None:
        raise HTTPException(status_code=401, detail="Please sign in to continue.")
    return user
