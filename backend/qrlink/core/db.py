import logging
import os

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

logger = logging.getLogger(__name__)

Base = declarative_base()


def make_engine(database_url: str) -> Engine:
    """Build the engine for ``database_url``.

    SQLite paths get their parent folder created so a fresh checkout runs
    without any setup.
    """
    if database_url.startswith("sqlite"):
        db_path = database_url.replace("sqlite:///", "")
        if db_path and db_path != ":memory:":
            os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        logger.info("[DB CONFIG] Using SQLite → %s", db_path)
    else:
        logger.info("[DB CONFIG] Using %s", database_url.split(":", 1)[0])

    return create_engine(
        database_url,
        pool_pre_ping=True,
        connect_args={"check_same_thread": False}
        if database_url.startswith("sqlite") else {},
    )


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def create_tables(engine: Engine) -> None:
    # models must be imported so their tables are registered on Base.metadata
    from ..models import scan_event, short_link, user  # noqa: F401

    Base.metadata.create_all(bind=engine)


def db_healthcheck(engine: Engine):
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True, None
    except Exception as e:
        return False, str(e)
