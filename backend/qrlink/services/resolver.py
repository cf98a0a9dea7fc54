# qrlink/services/resolver.py
"""Short-code resolution for one visit to ``/r/<short_code>``."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Set, Union

from ..core.content import normalize_url
from .scans import ScanMetadata, ScanRecorder
from .store import ShortLinkStore, StoreError

logger = logging.getLogger(__name__)

DEFAULT_COUNTDOWN_SECONDS = 3


@dataclass(frozen=True)
class NotFound:
    short_code: str


@dataclass(frozen=True)
class Redirect:
    destination: str
    countdown_seconds: int


@dataclass(frozen=True)
class Display:
    content_type: str
    content: str


@dataclass(frozen=True)
class Failure:
    reason: str


Outcome = Union[NotFound, Redirect, Display, Failure]
Spawn = Callable[..., Any]

# strong references so detached tasks are not garbage collected mid-flight
_background_tasks: Set[asyncio.Task] = set()


def _log_task_error(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("[SCAN] detached scan task failed: %r", exc)


def detach(func: Callable[..., Awaitable[Any]], *args: Any) -> asyncio.Task:
    """Run ``func(*args)`` as a fire-and-forget task on the running loop."""
    task = asyncio.get_running_loop().create_task(func(*args))
    _background_tasks.add(task)
    task.add_done_callback(_log_task_error)
    return task


class Resolver:
    """Resolves a short code once per visit.

    One instance belongs to one visit. The first :meth:`resolve` call sets the
    latch before it awaits anything, so a repeated call (double-mounted
    views, retries by the host) gets the same outcome back and never counts
    the scan twice.
    """

    def __init__(
        self,
        store: ShortLinkStore,
        recorder: ScanRecorder,
        *,
        countdown_seconds: int = DEFAULT_COUNTDOWN_SECONDS,
        spawn: Spawn = detach,
    ):
        self._store = store
        self._recorder = recorder
        self._countdown_seconds = countdown_seconds
        self._spawn = spawn
        self._started = False
        self._outcome: Optional[asyncio.Future] = None

    async def resolve(self, short_code: str, metadata: Optional[ScanMetadata] = None) -> Outcome:
        if self._started:
            return await asyncio.shield(self._outcome)
        self._started = True
        self._outcome = asyncio.get_running_loop().create_future()

        try:
            outcome = await self._lookup(short_code, metadata or ScanMetadata())
        except asyncio.CancelledError:
            self._outcome.cancel()
            raise
        except Exception as exc:
            self._outcome.set_exception(exc)
            # mark retrieved so an unobserved failure is not reported twice
            self._outcome.exception()
            raise
        self._outcome.set_result(outcome)
        return outcome

    async def _lookup(self, short_code: str, metadata: ScanMetadata) -> Outcome:
        try:
            record = await self._store.find_active_by_short_code(short_code)
        except StoreError as exc:
            logger.error("[RESOLVE] lookup failed for %r", short_code, exc_info=True)
            return Failure(reason=str(exc) or "Failed to process redirect")

        if record is None:
            logger.info("[RESOLVE] %r not found or inactive", short_code)
            return NotFound(short_code=short_code)

        try:
            self._spawn(self._recorder.record, record.id, metadata)
        except Exception:
            logger.warning("[SCAN] could not schedule scan accounting for %r", short_code, exc_info=True)

        if record.content_type == "url":
            return Redirect(
                destination=normalize_url(record.destination_content),
                countdown_seconds=self._countdown_seconds,
            )
        return Display(content_type=record.content_type, content=record.destination_content)
