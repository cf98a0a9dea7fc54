# qrlink/routers/dashboard.py
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from ..core.config import Settings
from ..core.content import ContentError, build_content
from ..core.deps import current_user, get_settings, get_store, get_templates, optional_user
from ..core.qr_utils import short_url_for
from ..models.short_link import ShortLink
from ..models.user import User
from ..schemas.short_link import (
    DashboardStats,
    ScanEventResponse,
    ShortLinkCreate,
    ShortLinkResponse,
    ShortLinkUpdate,
)
from ..services.store import DuplicateError, ShortLinkStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/qr-codes", tags=["Dashboard"])
pages = APIRouter(tags=["Dashboard"])


def _to_response(record: ShortLink, settings: Settings) -> ShortLinkResponse:
    data = ShortLinkResponse.model_validate(record)
    data.short_url = short_url_for(settings.PUBLIC_BASE_URL, record.short_code)
    return data


async def _owned_or_404(store: ShortLinkStore, record_id: int, user: User) -> ShortLink:
    record = await store.get_for_owner(record_id, user.id)
    if record is None:
        raise HTTPException(status_code=404, detail="QR code not found.")
    return record


# ------------------------------------------------
# 📊 Stats
# ------------------------------------------------
@router.get("/stats", response_model=DashboardStats)
async def stats(user: User = Depends(current_user), store: ShortLinkStore = Depends(get_store)):
    return await store.dashboard_stats(user.id)


# ------------------------------------------------
# 📋 List / Create
# ------------------------------------------------
@router.get("", response_model=List[ShortLinkResponse])
async def list_qr_codes(
    user: User = Depends(current_user),
    store: ShortLinkStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    return [_to_response(r, settings) for r in await store.list_for_owner(user.id)]


@router.post("", response_model=ShortLinkResponse, status_code=201)
async def create_qr_code(
    body: ShortLinkCreate,
    user: User = Depends(current_user),
    store: ShortLinkStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    try:
        content = build_content(body.content_type, body.content, body.fields)
    except ContentError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        record = await store.create_short_link(
            owner_id=user.id,
            name=body.name.strip(),
            content_type=body.content_type,
            destination_content=content,
            is_active=body.is_active,
        )
    except DuplicateError as e:
        raise HTTPException(status_code=409, detail=str(e))

    logger.info("[QR] user %s created dynamic code %s", user.id, record.short_code)
    return _to_response(record, settings)


# ------------------------------------------------
# ✏️ Read / Update / Toggle / Delete
# ------------------------------------------------
@router.get("/{record_id}", response_model=ShortLinkResponse)
async def get_qr_code(
    record_id: int,
    user: User = Depends(current_user),
    store: ShortLinkStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    return _to_response(await _owned_or_404(store, record_id, user), settings)


@router.patch("/{record_id}", response_model=ShortLinkResponse)
async def update_qr_code(
    record_id: int,
    body: ShortLinkUpdate,
    user: User = Depends(current_user),
    store: ShortLinkStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    existing = await _owned_or_404(store, record_id, user)

    changes = {}
    if body.name is not None:
        changes["name"] = body.name.strip()
    if body.is_active is not None:
        changes["is_active"] = body.is_active

    content_type = body.content_type or existing.content_type
    type_changed = content_type != existing.content_type
    if type_changed and body.content is None and not body.fields:
        # the stored payload was formatted for the old type
        raise HTTPException(
            status_code=400, detail="New content is required when changing the content type"
        )
    if body.content is not None or body.fields or type_changed:
        raw = body.content
        if raw is None and not type_changed:
            raw = existing.destination_content
        try:
            changes["destination_content"] = build_content(content_type, raw, body.fields)
        except ContentError as e:
            raise HTTPException(status_code=400, detail=str(e))
        changes["content_type"] = content_type

    record = await store.update_short_link(record_id, user.id, changes)
    if record is None:
        raise HTTPException(status_code=404, detail="QR code not found.")
    return _to_response(record, settings)


@router.post("/{record_id}/toggle", response_model=ShortLinkResponse)
async def toggle_qr_code(
    record_id: int,
    user: User = Depends(current_user),
    store: ShortLinkStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    existing = await _owned_or_404(store, record_id, user)
    record = await store.update_short_link(record_id, user.id, {"is_active": not existing.is_active})
    if record is None:
        raise HTTPException(status_code=404, detail="QR code not found.")
    return _to_response(record, settings)


@router.delete("/{record_id}", status_code=204)
async def delete_qr_code(
    record_id: int,
    user: User = Depends(current_user),
    store: ShortLinkStore = Depends(get_store),
):
    if not await store.delete_short_link(record_id, user.id):
        raise HTTPException(status_code=404, detail="QR code not found.")
    logger.info("[QR] user %s deleted code %s", user.id, record_id)


@router.get("/{record_id}/scans", response_model=List[ScanEventResponse])
async def list_scans(
    record_id: int,
    limit: int = 100,
    user: User = Depends(current_user),
    store: ShortLinkStore = Depends(get_store),
):
    await _owned_or_404(store, record_id, user)
    return await store.recent_scans(record_id, user.id, limit=max(1, min(limit, 1000)))


# ------------------------------------------------
# 🏠 Dashboard page
# ------------------------------------------------
@pages.get("/dashboard", response_class=HTMLResponse, include_in_schema=False)
async def dashboard_page(
    request: Request,
    user: User = Depends(optional_user),
    store: ShortLinkStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
    templates: Jinja2Templates = Depends(get_templates),
):
    if user is None:
        return templates.TemplateResponse(
            request, "dashboard.html", {"user": None}, status_code=401
        )

    records = await store.list_for_owner(user.id)
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "user": user,
            "stats": await store.dashboard_stats(user.id),
            "qr_codes": [_to_response(r, settings) for r in records],
        },
    )
