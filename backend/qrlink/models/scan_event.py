from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from ..core.db import Base


class ScanEvent(Base):
    __tablename__ = "scan_events"

    id = Column(Integer, primary_key=True, index=True)
    short_link_id = Column(Integer, ForeignKey("short_links.id"), nullable=False, index=True)
    scanned_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    # Request metadata, filled when the edge provides it
    user_agent = Column(String(500), nullable=True)
    ip_address = Column(String(64), nullable=True)
    country = Column(String(64), nullable=True)
    city = Column(String(128), nullable=True)

    short_link = relationship("ShortLink", back_populates="scan_events")

    def __repr__(self):
        return f"<ScanEvent(id={self.id}, short_link_id={self.short_link_id}, at={self.scanned_at})>"
