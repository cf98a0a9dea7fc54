import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, RedirectResponse

# -------------------------------------------------------
# ⚙️ Core Imports
# -------------------------------------------------------
from . import __version__
from .core.config import Settings, settings as default_settings
from .core.db import create_tables, db_healthcheck, make_engine, make_session_factory
from .core.deps import get_settings, get_templates
from .core.security import SessionSigner
from .core.template_engine import make_templates
from .services.store import ShortLinkStore

# -------------------------------------------------------
# 🧩 Routers
# -------------------------------------------------------
from .routers import auth, dashboard, qr, redirect

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application and every collaborator it depends on."""
    settings = settings or default_settings
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    engine = make_engine(settings.DATABASE_URL)

    # ---------------------------------------------------
    # 🏁 Startup / Shutdown
    # ---------------------------------------------------
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            create_tables(engine)
            logger.info("✅ Database models created.")
        except Exception as e:
            logger.warning("⚠️ Database init skipped: %s", e)
        logger.info("🗃️ Database: %s", engine.url.render_as_string(hide_password=True))
        yield
        engine.dispose()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=__version__,
        description="QR Link – static & dynamic QR codes with short-link redirects and scan analytics",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.engine = engine
    app.state.store = ShortLinkStore(make_session_factory(engine), settings.SHORT_CODE_LENGTH)
    app.state.signer = SessionSigner(settings.SECRET_KEY, settings.SESSION_MAX_AGE_SECONDS)
    app.state.templates = make_templates(settings.TEMPLATES_DIR, settings.PROJECT_NAME)

    # ---------------------------------------------------
    # 🌐 CORS Middleware
    # ---------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---------------------------------------------------
    # ❤️ Health Checks
    # ---------------------------------------------------
    @app.get("/health", tags=["Health"])
    def health(settings: Settings = Depends(get_settings)):
        return {
            "status": "ok",
            "service": settings.PROJECT_NAME,
            "version": __version__,
        }

    @app.get("/health/db", tags=["Health"])
    def health_db(request: Request):
        ok, error = db_healthcheck(request.app.state.engine)
        return {"database": "ok" if ok else "error", "error": error}

    # ---------------------------------------------------
    # 🧭 Root & Sign-in page
    # ---------------------------------------------------
    @app.get("/", include_in_schema=False)
    def root():
        return RedirectResponse(url="/dashboard", status_code=307)

    @app.get("/login", response_class=HTMLResponse, include_in_schema=False)
    def login_page(request: Request, templates=Depends(get_templates)):
        return templates.TemplateResponse(request, "login.html", {})

    # ---------------------------------------------------
    # 🔗 Router Registration
    # ---------------------------------------------------
    app.include_router(auth.router)
    app.include_router(dashboard.router)
    app.include_router(dashboard.pages)
    app.include_router(qr.router)
    app.include_router(redirect.router)
    return app
