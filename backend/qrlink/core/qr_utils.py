# qrlink/core/qr_utils.py
import base64
import logging
import secrets
import string
import xml.etree.ElementTree as ET
from decimal import Decimal
from io import BytesIO
from typing import Optional

import qrcode
from qrcode.constants import ERROR_CORRECT_H, ERROR_CORRECT_L, ERROR_CORRECT_M, ERROR_CORRECT_Q
from qrcode.image.svg import SvgPathImage
from fastapi.responses import StreamingResponse
from PIL import Image

logger = logging.getLogger(__name__)

ERROR_CORRECTION_LEVELS = {
    "L": ERROR_CORRECT_L,
    "M": ERROR_CORRECT_M,
    "Q": ERROR_CORRECT_Q,
    "H": ERROR_CORRECT_H,
}

# lowercase base36, same alphabet the short URLs have always used
SHORT_CODE_ALPHABET = string.ascii_lowercase + string.digits

# share of the code's width an embedded logo may cover
LOGO_SCALE = 0.2


class QRStyleError(ValueError):
    """Raised when a style option (such as the logo) cannot be applied."""


# -----------------------------------------------------
# 🔹 Short codes
# -----------------------------------------------------
def generate_short_code(length: int = 8) -> str:
    return "".join(secrets.choice(SHORT_CODE_ALPHABET) for _ in range(length))


def short_url_for(base_url: str, short_code: str) -> str:
    return f"{base_url.rstrip('/')}/r/{short_code}"


# -----------------------------------------------------
# 🔹 Logos
# -----------------------------------------------------
def load_logo(value: str) -> Image.Image:
    """Decode a ``data:image/...;base64,`` URL (or bare base64) into an RGBA image."""
    payload = value.split(",", 1)[1] if value.startswith("data:") else value
    try:
        logo = Image.open(BytesIO(base64.b64decode(payload, validate=True)))
        logo.load()
    except (ValueError, OSError, Image.DecompressionBombError) as exc:
        raise QRStyleError("Logo must be a base64 encoded PNG, JPEG or GIF image") from exc
    return logo.convert("RGBA")


def _logo_badge(logo: Image.Image, side: int, back_color: str) -> Image.Image:
    """Logo scaled into a ``side`` square on a plate of the background colour."""
    pad = max(1, side // 10)
    inner = logo.copy()
    inner.thumbnail((max(1, side - 2 * pad), max(1, side - 2 * pad)))
    badge = Image.new("RGBA", (side, side), back_color)
    badge.paste(inner, ((side - inner.width) // 2, (side - inner.height) // 2), inner)
    return badge


def _png_data_url(img: Image.Image) -> str:
    buf = BytesIO()
    img.save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


# -----------------------------------------------------
# 🔹 Render QR image
# -----------------------------------------------------
def _svg_factory(fill_color: str, back_color: str):
    class StyledSvgPathImage(SvgPathImage):
        QR_PATH_STYLE = {**SvgPathImage.QR_PATH_STYLE, "fill": fill_color}
        background = back_color

    return StyledSvgPathImage


def render_qr(
    data: str,
    *,
    fmt: str = "png",
    error_correction: str = "M",
    box_size: int = 10,
    border: int = 4,
    fill_color: str = "#000000",
    back_color: str = "#ffffff",
    logo: Optional[Image.Image] = None,
) -> bytes:
    """Return the encoded image bytes for ``data`` in PNG or SVG.

    A logo covers the centre of the code, so it always forces error
    correction level H.
    """
    level = ERROR_CORRECTION_LEVELS.get(error_correction.upper(), ERROR_CORRECT_M)
    if logo is not None:
        level = ERROR_CORRECT_H
    qr = qrcode.QRCode(error_correction=level, box_size=box_size, border=border)
    qr.add_data(data)
    qr.make(fit=True)

    buf = BytesIO()
    if fmt == "svg":
        img = qr.make_image(image_factory=_svg_factory(fill_color, back_color))
        if logo is not None:
            _embed_svg_logo(img, logo, back_color)
        img.save(buf)
    else:
        canvas = qr.make_image(fill_color=fill_color, back_color=back_color).get_image()
        if logo is not None:
            canvas = canvas.convert("RGBA")
            side = max(1, int(canvas.width * LOGO_SCALE))
            badge = _logo_badge(logo, side, back_color)
            offset = ((canvas.width - side) // 2, (canvas.height - side) // 2)
            canvas.paste(badge, offset, badge)
        canvas.save(buf, format="PNG")
    return buf.getvalue()


def _embed_svg_logo(img: SvgPathImage, logo: Image.Image, back_color: str) -> None:
    # viewBox units, one per tenth of a pixel box
    size = img.units(img.pixel_size, text=False)
    side = size * Decimal(str(LOGO_SCALE))
    offset = (size - side) / 2
    badge = _logo_badge(logo, max(1, int(img.pixel_size * LOGO_SCALE)), back_color)
    ET.SubElement(
        img.get_image(),
        "image",
        href=_png_data_url(badge),
        x=str(offset),
        y=str(offset),
        width=str(side),
        height=str(side),
    )


def qr_response(data: str, fmt: str = "png", **style) -> StreamingResponse:
    payload = render_qr(data, fmt=fmt, **style)
    logger.debug("[QR GENERATED STREAM] %s (%s)", data, fmt)
    media_type = "image/svg+xml" if fmt == "svg" else "image/png"
    return StreamingResponse(BytesIO(payload), media_type=media_type)
