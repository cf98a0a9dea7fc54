# qrlink/routers/redirect.py
import asyncio
import json
from dataclasses import asdict

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import HTMLResponse, StreamingResponse
from fastapi.templating import Jinja2Templates

from ..core.config import Settings
from ..core.deps import get_settings, get_store, get_templates
from ..services.presentation import Error, ViewState, VisitView, state_for
from ..services.resolver import Resolver
from ..services.scans import ScanMetadata, ScanRecorder
from ..services.store import ShortLinkStore

router = APIRouter(prefix="/r", tags=["Redirect"])


def _status_for(state: ViewState) -> int:
    if isinstance(state, Error):
        return 404 if state.not_found else 503
    return 200


def _state_payload(state: ViewState) -> dict:
    payload = asdict(state)
    payload["state"] = payload.pop("name")
    return payload


def _sse(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


# -------------------------------------------------------
# 🔗 Public short-link landing page
# -------------------------------------------------------
@router.get("/{short_code}", response_class=HTMLResponse)
async def resolve_short_code(
    request: Request,
    short_code: str,
    background_tasks: BackgroundTasks,
    store: ShortLinkStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
    templates: Jinja2Templates = Depends(get_templates),
):
    """Resolve a scanned code; scan accounting runs after the page is sent."""
    resolver = Resolver(
        store,
        ScanRecorder(store),
        countdown_seconds=settings.REDIRECT_COUNTDOWN_SECONDS,
        spawn=background_tasks.add_task,
    )
    outcome = await resolver.resolve(short_code, ScanMetadata.from_request(request))
    state = state_for(outcome)

    return templates.TemplateResponse(
        request,
        "redirect.html",
        {"state": state, "short_code": short_code},
        status_code=_status_for(state),
    )


# -------------------------------------------------------
# 📡 Same visit as an event stream (apps / kiosks)
# -------------------------------------------------------
@router.get("/{short_code}/events")
async def stream_short_code(
    request: Request,
    short_code: str,
    store: ShortLinkStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    resolver = Resolver(
        store,
        ScanRecorder(store),
        countdown_seconds=settings.REDIRECT_COUNTDOWN_SECONDS,
    )
    metadata = ScanMetadata.from_request(request)

    async def events():
        queue: asyncio.Queue = asyncio.Queue()
        view = VisitView(
            navigate=lambda url: queue.put_nowait(("navigate", {"url": url})),
            on_change=lambda state: queue.put_nowait(("state", _state_payload(state))),
            tick_seconds=settings.REDIRECT_TICK_SECONDS,
        )
        try:
            yield _sse("state", _state_payload(view.state))
            view.apply(await resolver.resolve(short_code, metadata))
            while True:
                event, data = await queue.get()
                yield _sse(event, data)
                if event == "navigate" or data.get("state") in ("error", "displaying"):
                    break
        finally:
            # client went away or stream finished: no stray navigation
            view.close()

    return StreamingResponse(
        events(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )
