# qrlink/services/presentation.py
"""What a visitor sees while a short code is resolved.

``VisitView`` holds exactly one state at a time::

    Loading ──► Error
            ├─► Displaying
            └─► Redirecting(n) ──tick──► Redirecting(n-1) … ──► navigate()

``Error`` and ``Displaying`` are terminal. Redirecting counts down on an
asyncio task that :meth:`VisitView.close` cancels, so a torn-down view never
navigates.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from .resolver import Display, Failure, NotFound, Outcome, Redirect

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "QR code not found or inactive"
FAILURE_MESSAGE = "Failed to process redirect"


@dataclass(frozen=True)
class Loading:
    name: str = "loading"


@dataclass(frozen=True)
class Error:
    reason: str
    not_found: bool = False
    name: str = "error"


@dataclass(frozen=True)
class Redirecting:
    destination: str
    countdown: int
    name: str = "redirecting"


@dataclass(frozen=True)
class Displaying:
    content_type: str
    content: str
    name: str = "displaying"


ViewState = Union[Loading, Error, Redirecting, Displaying]


class InvalidTransition(RuntimeError):
    pass


def state_for(outcome: Outcome) -> ViewState:
    if isinstance(outcome, NotFound):
        return Error(reason=NOT_FOUND_MESSAGE, not_found=True)
    if isinstance(outcome, Failure):
        return Error(reason=FAILURE_MESSAGE)
    if isinstance(outcome, Redirect):
        return Redirecting(destination=outcome.destination, countdown=outcome.countdown_seconds)
    if isinstance(outcome, Display):
        return Displaying(content_type=outcome.content_type, content=outcome.content)
    raise TypeError(f"Unknown outcome: {outcome!r}")


class VisitView:
    def __init__(
        self,
        navigate: Callable[[str], Any],
        *,
        on_change: Optional[Callable[[ViewState], Any]] = None,
        tick_seconds: float = 1.0,
    ):
        self.state: ViewState = Loading()
        self.navigated_to: Optional[str] = None
        self._navigate = navigate
        self._on_change = on_change
        self._tick_seconds = tick_seconds
        self._timer: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _set(self, state: ViewState) -> None:
        self.state = state
        if self._on_change is not None:
            self._on_change(state)

    def apply(self, outcome: Outcome) -> ViewState:
        """Leave ``Loading`` for the state matching ``outcome``.

        Entering ``Redirecting`` starts the countdown, which needs a running
        event loop.
        """
        if not isinstance(self.state, Loading):
            raise InvalidTransition(f"cannot apply an outcome in state {self.state.name}")
        if self._closed:
            raise InvalidTransition("view is closed")

        state = state_for(outcome)
        self._set(state)
        if isinstance(state, Redirecting):
            self._timer = asyncio.get_running_loop().create_task(self._countdown())
        return state

    async def _countdown(self) -> None:
        while isinstance(self.state, Redirecting) and self.state.countdown > 0:
            await asyncio.sleep(self._tick_seconds)
            if self._closed:
                return
            self._set(Redirecting(self.state.destination, self.state.countdown - 1))

        if not self._closed and self.navigated_to is None:
            self.navigated_to = self.state.destination
            logger.debug("[REDIRECT] navigating to %s", self.navigated_to)
            self._navigate(self.navigated_to)

    async def wait(self) -> None:
        """Wait for a running countdown to finish (or be cancelled)."""
        if self._timer is not None:
            try:
                await self._timer
            except asyncio.CancelledError:
                if not self._timer.cancelled():
                    raise

    def close(self) -> None:
        self._closed = True
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
