# qrlink/services/store.py
"""Async facade over the SQLAlchemy tables holding short links and scans.

Every public method opens its own short-lived session and runs the blocking
work in Starlette's thread pool, so awaiting a store call never blocks the
event loop. Driver and query errors surface as :class:`StoreError`.
"""
from __future__ import annotations

import logging
from datetime import datetime, time, timezone
from typing import Any, Callable, Dict, List, Optional, TypeVar

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool

from ..core.qr_utils import generate_short_code
from ..models.scan_event import ScanEvent
from ..models.short_link import ShortLink
from ..models.user import User
from .scans import ScanMetadata

logger = logging.getLogger(__name__)

T = TypeVar("T")

EDITABLE_FIELDS = ("name", "content_type", "destination_content", "is_active")
MAX_SHORT_CODE_ATTEMPTS = 5


class StoreError(Exception):
    """The backing database could not serve the request."""


class DuplicateError(StoreError):
    """A unique column already holds the submitted value."""


def _is_short_code_collision(exc: IntegrityError) -> bool:
    # SQLite: "UNIQUE constraint failed: short_links.short_code"
    # PostgreSQL: duplicate key value violates unique constraint "ix_short_links_short_code"
    message = str(exc.orig).lower()
    return "short_code" in message and ("unique" in message or "duplicate" in message)


class ShortLinkStore:
    def __init__(self, session_factory: sessionmaker, short_code_length: int = 8):
        self._session_factory = session_factory
        self.short_code_length = short_code_length

    async def _run(self, fn: Callable[[Session], T]) -> T:
        def work() -> T:
            with self._session_factory() as db:
                try:
                    return fn(db)
                except SQLAlchemyError:
                    db.rollback()
                    raise

        try:
            return await run_in_threadpool(work)
        except StoreError:
            raise
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    # ------------------------------------------------------------------
    # Resolution path
    # ------------------------------------------------------------------
    async def find_active_by_short_code(self, short_code: str) -> Optional[ShortLink]:
        def work(db: Session):
            return db.execute(
                select(ShortLink).where(
                    ShortLink.short_code == short_code,
                    ShortLink.is_active.is_(True),
                )
            ).scalar_one_or_none()

        return await self._run(work)

    async def increment_scan_atomic(self, record_id: int) -> None:
        """Bump ``scan_count`` inside a single UPDATE so parallel scans never lose a count."""

        def work(db: Session):
            db.execute(
                update(ShortLink)
                .where(ShortLink.id == record_id)
                .values(scan_count=ShortLink.scan_count + 1, last_scanned_at=func.now())
                .execution_options(synchronize_session=False)
            )
            db.commit()

        await self._run(work)

    async def append_scan_event(self, record_id: int, metadata: ScanMetadata) -> None:
        def work(db: Session):
            db.add(ScanEvent(
                short_link_id=record_id,
                user_agent=metadata.user_agent,
                ip_address=metadata.ip_address,
                country=metadata.country,
                city=metadata.city,
            ))
            db.commit()

        await self._run(work)

    # ------------------------------------------------------------------
    # Owner CRUD (dashboard / editor)
    # ------------------------------------------------------------------
    async def get_for_owner(self, record_id: int, owner_id: int) -> Optional[ShortLink]:
        def work(db: Session):
            return db.execute(
                select(ShortLink).where(ShortLink.id == record_id, ShortLink.owner_id == owner_id)
            ).scalar_one_or_none()

        return await self._run(work)

    async def list_for_owner(self, owner_id: int) -> List[ShortLink]:
        def work(db: Session):
            return list(db.execute(
                select(ShortLink)
                .where(ShortLink.owner_id == owner_id)
                .order_by(ShortLink.created_at.desc(), ShortLink.id.desc())
            ).scalars())

        return await self._run(work)

    async def create_short_link(
        self,
        owner_id: int,
        name: str,
        content_type: str,
        destination_content: str,
        is_active: bool = True,
    ) -> ShortLink:
        def work(db: Session):
            for attempt in range(1, MAX_SHORT_CODE_ATTEMPTS + 1):
                record = ShortLink(
                    short_code=generate_short_code(self.short_code_length),
                    owner_id=owner_id,
                    name=name,
                    content_type=content_type,
                    destination_content=destination_content,
                    is_active=is_active,
                    scan_count=0,
                )
                db.add(record)
                try:
                    db.commit()
                except IntegrityError as exc:
                    db.rollback()
                    if not _is_short_code_collision(exc):
                        raise
                    logger.info("[SHORT CODE] collision on attempt %d, regenerating", attempt)
                    continue
                db.refresh(record)
                return record
            raise DuplicateError("Could not allocate a unique short code")

        return await self._run(work)

    async def update_short_link(
        self, record_id: int, owner_id: int, changes: Dict[str, Any]
    ) -> Optional[ShortLink]:
        """Apply ``changes`` to an owned record. Short code and counters are never touched here."""
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

        def work(db: Session):
            record = db.execute(
                select(ShortLink).where(ShortLink.id == record_id, ShortLink.owner_id == owner_id)
            ).scalar_one_or_none()
            if record is None:
                return None
            for key, value in changes.items():
                setattr(record, key, value)
            db.commit()
            db.refresh(record)
            return record

        return await self._run(work)

    async def delete_short_link(self, record_id: int, owner_id: int) -> bool:
        """Delete an owned record, removing its scan events first."""

        def work(db: Session):
            owned = db.execute(
                select(ShortLink.id).where(ShortLink.id == record_id, ShortLink.owner_id == owner_id)
            ).scalar_one_or_none()
            if owned is None:
                return False
            db.execute(delete(ScanEvent).where(ScanEvent.short_link_id == record_id))
            db.execute(delete(ShortLink).where(ShortLink.id == record_id))
            db.commit()
            return True

        return await self._run(work)

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------
    async def dashboard_stats(self, owner_id: int) -> Dict[str, int]:
        def work(db: Session):
            total, scans, active = db.execute(
                select(
                    func.count(ShortLink.id),
                    func.coalesce(func.sum(ShortLink.scan_count), 0),
                    func.coalesce(func.sum(case((ShortLink.is_active.is_(True), 1), else_=0)), 0),
                ).where(ShortLink.owner_id == owner_id)
            ).one()

            today_start = datetime.combine(datetime.now(timezone.utc).date(), time.min)
            today_scans = db.execute(
                select(func.count(ScanEvent.id))
                .join(ShortLink, ShortLink.id == ScanEvent.short_link_id)
                .where(ShortLink.owner_id == owner_id, ScanEvent.scanned_at >= today_start)
            ).scalar_one()

            return {
                "total_qr_codes": int(total or 0),
                "total_scans": int(scans or 0),
                "active_qr_codes": int(active or 0),
                "today_scans": int(today_scans or 0),
            }

        return await self._run(work)

    async def recent_scans(self, record_id: int, owner_id: int, limit: int = 100) -> List[ScanEvent]:
        def work(db: Session):
            return list(db.execute(
                select(ScanEvent)
                .join(ShortLink, ShortLink.id == ScanEvent.short_link_id)
                .where(ScanEvent.short_link_id == record_id, ShortLink.owner_id == owner_id)
                .order_by(ScanEvent.id.desc())
                .limit(limit)
            ).scalars())

        return await self._run(work)

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------
    async def create_user(self, email: str, password_hash: str) -> User:
        def work(db: Session):
            user = User(email=email, password=password_hash)
            db.add(user)
            try:
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                raise DuplicateError("An account with this email already exists") from exc
            db.refresh(user)
            return user

        return await self._run(work)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        def work(db: Session):
            return db.execute(
                select(User).where(func.lower(User.email) == email.strip().lower())
            ).scalar_one_or_none()

        return await self._run(work)

    async def get_user(self, user_id: int) -> Optional[User]:
        def work(db: Session):
            return db.get(User, user_id)

        return await self._run(work)
