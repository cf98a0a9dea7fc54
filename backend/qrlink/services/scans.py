# qrlink/services/scans.py
"""Best-effort scan accounting."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from starlette.requests import Request

if TYPE_CHECKING:
    from .store import ShortLinkStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanMetadata:
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None

    @classmethod
    def from_request(cls, request: Request) -> "ScanMetadata":
        headers = request.headers
        forwarded = headers.get("x-forwarded-for")
        if forwarded:
            ip = forwarded.split(",")[0].strip() or None
        else:
            ip = request.client.host if request.client else None
        return cls(
            user_agent=headers.get("user-agent"),
            ip_address=ip,
            country=headers.get("cf-ipcountry") or headers.get("x-geo-country"),
            city=headers.get("x-geo-city"),
        )


class ScanRecorder:
    """Counts a scan and appends its analytics row.

    The two writes are independent: either may fail without affecting the
    other, and neither failure reaches the visitor. Nothing is retried.
    """

    def __init__(self, store: "ShortLinkStore"):
        self._store = store

    async def record(self, record_id: int, metadata: ScanMetadata) -> None:
        try:
            await self._store.increment_scan_atomic(record_id)
        except Exception:
            logger.warning("[SCAN] failed to update scan count for link %s", record_id, exc_info=True)

        try:
            await self._store.append_scan_event(record_id, metadata)
        except Exception:
            logger.warning("[SCAN] failed to log analytics for link %s", record_id, exc_info=True)
