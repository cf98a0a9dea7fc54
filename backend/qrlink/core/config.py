import os
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # 🧠 App Info
    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "QR Link")
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = os.getenv("DEBUG", "true").lower() == "true"

    # 🌍 Base URL encoded into dynamic QR codes (…/r/<short_code>)
    PUBLIC_BASE_URL: str = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000")

    # 🗄️ Database (SQLite for local dev, PostgreSQL in deployment)
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:////tmp/qrlink/qrlink.db")

    # 🔒 Sessions
    SECRET_KEY: str = os.getenv("SECRET_KEY", "changeme")
    SESSION_COOKIE_NAME: str = os.getenv("SESSION_COOKIE_NAME", "qrlink_session")
    SESSION_MAX_AGE_SECONDS: int = int(os.getenv("SESSION_MAX_AGE_SECONDS", 60 * 60 * 24 * 7))

    # 🔗 Short links
    REDIRECT_COUNTDOWN_SECONDS: int = int(os.getenv("REDIRECT_COUNTDOWN_SECONDS", 3))
    REDIRECT_TICK_SECONDS: float = float(os.getenv("REDIRECT_TICK_SECONDS", 1.0))
    SHORT_CODE_LENGTH: int = int(os.getenv("SHORT_CODE_LENGTH", 8))

    # 🧾 QR rendering
    QR_ERROR_CORRECTION: str = os.getenv("QR_ERROR_CORRECTION", "M")
    QR_BOX_SIZE: int = int(os.getenv("QR_BOX_SIZE", 10))
    QR_BORDER: int = int(os.getenv("QR_BORDER", 4))

    # 📁 Templates / Logs
    TEMPLATES_DIR: str = os.getenv(
        "TEMPLATES_DIR", os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates")
    )
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

settings = Settings()
