from datetime import datetime
from typing import Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ContentType = Literal["url", "text", "email", "phone", "wifi", "contact"]


class ShortLinkCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    content_type: ContentType = "url"
    content: Optional[str] = None
    fields: Optional[Dict[str, str | bool]] = None  # email / phone / wifi / contact form fields
    is_active: bool = True


class ShortLinkUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    content_type: Optional[ContentType] = None
    content: Optional[str] = None
    fields: Optional[Dict[str, str | bool]] = None
    is_active: Optional[bool] = None


class ShortLinkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    short_code: str
    short_url: str = ""
    name: str
    content_type: str
    destination_content: str
    is_active: bool
    scan_count: int
    last_scanned_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ScanEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    scanned_at: Optional[datetime] = None
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None


class DashboardStats(BaseModel):
    total_qr_codes: int
    total_scans: int
    active_qr_codes: int
    today_scans: int


# "#rrggbb", what a colour picker submits
HEX_COLOR = r"^#[0-9a-fA-F]{6}$"
# a 5 MB image as a base64 data URL
MAX_LOGO_CHARS = 7_000_000


class StaticQRRequest(BaseModel):
    content_type: ContentType = "url"
    content: Optional[str] = None
    fields: Optional[Dict[str, str | bool]] = None
    format: Literal["png", "svg"] = "png"
    error_correction: Literal["L", "M", "Q", "H"] = "M"
    box_size: int = Field(10, ge=1, le=50)
    border: int = Field(4, ge=0, le=20)
    foreground_color: str = Field("#000000", pattern=HEX_COLOR)
    background_color: str = Field("#ffffff", pattern=HEX_COLOR)
    logo: Optional[str] = Field(None, max_length=MAX_LOGO_CHARS)  # data URL or bare base64
