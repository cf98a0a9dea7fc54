# qrlink/core/content.py
"""Formatting rules that turn form fields into QR destination content."""
from typing import Mapping, Optional
from urllib.parse import quote, urlparse

from ..models.short_link import CONTENT_TYPES

# Characters JavaScript's encodeURIComponent leaves alone
_URI_COMPONENT_SAFE = "-_.!~*'()"


class ContentError(ValueError):
    """Raised when submitted content cannot be formatted or validated."""


# -----------------------------------------------------
# 🔹 URL helpers
# -----------------------------------------------------
def normalize_url(url: str) -> str:
    """Prefix ``https://`` when the value has no http(s) scheme.

    Used for QR encoding and navigation only; stored values keep what the
    user typed.
    """
    url = url.strip()
    if url.startswith("http://") or url.startswith("https://"):
        return url
    return f"https://{url}"


def validate_url(url: str) -> bool:
    """True when ``url`` has a scheme, a usable host and a numeric port (if any)."""
    try:
        parsed = urlparse(url)
        parsed.port  # raises ValueError for "host:not-a-port"
    except ValueError:
        return False
    host = parsed.hostname
    if not parsed.scheme or not host:
        return False
    return not any(ch.isspace() for ch in host)


# -----------------------------------------------------
# 🔹 Per-type formatters
# -----------------------------------------------------
def format_email(email: str, subject: Optional[str] = None, body: Optional[str] = None) -> str:
    content = f"mailto:{email or ''}"
    separator = "?"
    if subject:
        content += f"{separator}subject={quote(subject, safe=_URI_COMPONENT_SAFE)}"
        separator = "&"
    if body:
        content += f"{separator}body={quote(body, safe=_URI_COMPONENT_SAFE)}"
    return content


def format_phone(phone: str) -> str:
    return f"tel:{phone or ''}"


def format_wifi(ssid: str, password: str = "", security: Optional[str] = None, hidden=False) -> str:
    if isinstance(hidden, str):
        hidden = hidden.strip().lower() == "true"
    return (
        f"WIFI:T:{security or 'WPA'};S:{ssid or ''};P:{password or ''};"
        f"H:{'true' if hidden else 'false'};;"
    )


def format_contact(
    name: str = "",
    organization: str = "",
    phone: str = "",
    email: str = "",
    website: str = "",
) -> str:
    return "\n".join([
        "BEGIN:VCARD",
        "VERSION:3.0",
        f"FN:{name or ''}",
        f"ORG:{organization or ''}",
        f"TEL:{phone or ''}",
        f"EMAIL:{email or ''}",
        f"URL:{website or ''}",
        "END:VCARD",
    ])


# -----------------------------------------------------
# 🔹 Dispatch
# -----------------------------------------------------
def build_content(
    content_type: str,
    content: Optional[str] = None,
    fields: Optional[Mapping[str, object]] = None,
) -> str:
    """Return the destination content for ``content_type``.

    ``url`` and ``text`` take the raw ``content``; the structured types are
    built from ``fields`` when given, otherwise ``content`` is taken as an
    already formatted payload.
    """
    if content_type not in CONTENT_TYPES:
        raise ContentError(f"Unsupported content type: {content_type}")

    fields = dict(fields or {})

    if content_type in ("url", "text") or not fields:
        value = (content or "").strip() if content_type == "url" else (content or "")
        if not value.strip():
            raise ContentError("Content is required")
        if content_type == "url" and not validate_url(normalize_url(value)):
            raise ContentError("Please enter a valid URL")
        return value

    if content_type == "email":
        if not fields.get("email"):
            raise ContentError("Email address is required")
        return format_email(fields.get("email"), fields.get("subject"), fields.get("body"))
    if content_type == "phone":
        if not fields.get("phone"):
            raise ContentError("Phone number is required")
        return format_phone(fields.get("phone"))
    if content_type == "wifi":
        if not fields.get("ssid"):
            raise ContentError("Network name (SSID) is required")
        return format_wifi(
            fields.get("ssid"),
            fields.get("password", ""),
            fields.get("security"),
            fields.get("hidden", False),
        )
    return format_contact(
        name=fields.get("name", ""),
        organization=fields.get("organization", ""),
        phone=fields.get("phone", ""),
        email=fields.get("email", ""),
        website=fields.get("website", ""),
    )


def encodable_content(content_type: str, destination_content: str) -> str:
    """Payload that goes into the QR image for a static code."""
    if content_type == "url":
        return normalize_url(destination_content)
    return destination_content
