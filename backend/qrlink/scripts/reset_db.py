"""
Drop and recreate every table.

Usage:
  python -m qrlink.scripts.reset_db
"""
from qrlink.core.config import settings
from qrlink.core.db import Base, create_tables, make_engine
import qrlink.models.scan_event, qrlink.models.short_link, qrlink.models.user  # noqa: F401,E401


def main():
    engine = make_engine(settings.DATABASE_URL)
    print("⚙️ Dropping and recreating all tables...")
    Base.metadata.drop_all(bind=engine)
    create_tables(engine)
    print("✅ Database schema refreshed successfully.")


if __name__ == "__main__":
    main()
