from fastapi import APIRouter, Depends, HTTPException, Query

from ..core.config import Settings
from ..core.content import ContentError, build_content, encodable_content
from ..core.deps import get_settings
from ..core.qr_utils import QRStyleError, load_logo, qr_response, short_url_for
from ..schemas.short_link import StaticQRRequest

router = APIRouter(prefix="/qr", tags=["QR Generator"])


@router.post("/static")
def static_qr(body: StaticQRRequest):
    """Render a static QR code; nothing is stored."""
    try:
        content = build_content(body.content_type, body.content, body.fields)
        logo = load_logo(body.logo) if body.logo else None
    except (ContentError, QRStyleError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    return qr_response(
        encodable_content(body.content_type, content),
        fmt=body.format,
        error_correction=body.error_correction,
        box_size=body.box_size,
        border=body.border,
        fill_color=body.foreground_color,
        back_color=body.background_color,
        logo=logo,
    )


@router.get("/{short_code}")
def dynamic_qr(
    short_code: str,
    format: str = Query("png", pattern="^(png|svg)$"),
    settings: Settings = Depends(get_settings),
):
    """QR image pointing at the short URL, so edits never require a reprint."""
    return qr_response(
        short_url_for(settings.PUBLIC_BASE_URL, short_code),
        fmt=format,
        error_correction=settings.QR_ERROR_CORRECTION,
        box_size=settings.QR_BOX_SIZE,
        border=settings.QR_BORDER,
    )
