from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from ..core.db import Base


CONTENT_TYPES = ("url", "text", "email", "phone", "wifi", "contact")


class ShortLink(Base):
    __tablename__ = "short_links"

    # --- Primary identifiers ---
    id = Column(Integer, primary_key=True, index=True)
    short_code = Column(String(32), unique=True, nullable=False, index=True)  # immutable after insert

    # --- Ownership ---
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # --- Content ---
    name = Column(String(200), nullable=False)
    content_type = Column(String(20), nullable=False, default="url")  # url | text | email | phone | wifi | contact
    destination_content = Column(Text, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    # --- Scan counters (written only through atomic UPDATE) ---
    scan_count = Column(Integer, nullable=False, default=0, server_default="0")
    last_scanned_at = Column(DateTime(timezone=True), nullable=True)

    # --- Timestamps ---
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    owner = relationship("User", back_populates="short_links")
    scan_events = relationship("ScanEvent", back_populates="short_link")

    def __repr__(self):
        return (
            f"<ShortLink(id={self.id}, code='{self.short_code}', type='{self.content_type}', "
            f"active={self.is_active}, scans={self.scan_count})>"
        )
