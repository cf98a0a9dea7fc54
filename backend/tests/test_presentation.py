from __future__ import annotations

import asyncio
import time

import pytest

from qrlink.services.presentation import (
    Displaying,
    Error,
    InvalidTransition,
    Loading,
    Redirecting,
    VisitView,
)
from qrlink.services.resolver import Display, Failure, NotFound, Redirect

TICK = 0.01


def test_redirect_counts_down_then_navigates_once():
    navigations = []
    seen = []

    async def scenario():
        view = VisitView(navigations.append, on_change=seen.append, tick_seconds=TICK)
        assert view.state == Loading()
        started = time.monotonic()
        view.apply(Redirect(destination="https://example.com", countdown_seconds=3))
        await view.wait()
        return time.monotonic() - started, view

    elapsed, view = asyncio.run(scenario())

    assert [s.countdown for s in seen] == [3, 2, 1, 0]
    assert navigations == ["https://example.com"]
    assert view.navigated_to == "https://example.com"
    assert elapsed >= 3 * TICK


def test_display_never_navigates():
    navigations = []

    async def scenario():
        view = VisitView(navigations.append, tick_seconds=TICK)
        state = view.apply(Display(content_type="text", content="hello"))
        await asyncio.sleep(5 * TICK)
        return state

    state = asyncio.run(scenario())

    assert state == Displaying(content_type="text", content="hello")
    assert navigations == []


@pytest.mark.parametrize(
    "outcome, not_found",
    [(NotFound(short_code="nope"), True), (Failure(reason="db down"), False)],
)
def test_errors_are_terminal(outcome, not_found):
    navigations = []

    async def scenario():
        view = VisitView(navigations.append, tick_seconds=TICK)
        state = view.apply(outcome)
        with pytest.raises(InvalidTransition):
            view.apply(Redirect(destination="https://example.com", countdown_seconds=1))
        return state

    state = asyncio.run(scenario())

    assert isinstance(state, Error)
    assert state.not_found is not_found
    assert navigations == []


def test_close_during_countdown_prevents_navigation():
    navigations = []

    async def scenario():
        view = VisitView(navigations.append, tick_seconds=TICK)
        view.apply(Redirect(destination="https://example.com", countdown_seconds=3))
        await asyncio.sleep(TICK * 1.5)
        view.close()
        await view.wait()
        await asyncio.sleep(5 * TICK)
        return view.state

    state = asyncio.run(scenario())

    assert navigations == []
    assert isinstance(state, Redirecting)
    assert state.countdown > 0


def test_zero_countdown_navigates_immediately():
    navigations = []

    async def scenario():
        view = VisitView(navigations.append, tick_seconds=TICK)
        view.apply(Redirect(destination="https://example.com/x", countdown_seconds=0))
        await view.wait()

    asyncio.run(scenario())

    assert navigations == ["https://example.com/x"]
