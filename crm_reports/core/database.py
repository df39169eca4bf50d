# crm_reports/core/database.py
"""Database configuration: engine, session factory and table bootstrap."""

import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from crm_reports.core.config import DATABASE_URL, SEED_SAMPLE_DATA

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {}
    options = {"connect_args": {"check_same_thread": False}}
    # A memory database lives inside one connection, so every session must share it
    if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
        options["poolclass"] = StaticPool
    return options


engine = create_engine(DATABASE_URL, **_engine_options(DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


# ===== SESSION GENERATORS =====


def get_db():
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ===== TABLE CREATION =====


def create_all_tables():
    """Create every table registered on Base."""
    # Import models to ensure they're registered with Base
    from crm_reports.crm.models import Company, Contact, Deal, Activity, CustomField  # noqa: F401
    from crm_reports.reporting.models import SavedReport, ReportExecutionLog  # noqa: F401
    from crm_reports.logging.models import Log  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created")


def drop_all_tables():
    """Drop all tables (use with caution!)."""
    from crm_reports.crm.models import Company, Contact, Deal, Activity, CustomField  # noqa: F401
    from crm_reports.reporting.models import SavedReport, ReportExecutionLog  # noqa: F401
    from crm_reports.logging.models import Log  # noqa: F401

    Base.metadata.drop_all(bind=engine)
    logger.warning("Database tables dropped")


def init_db(force_recreate: bool = False):
    """Initialize the database with tables and, when configured, sample CRM data."""
    if force_recreate:
        drop_all_tables()

    create_all_tables()

    if SEED_SAMPLE_DATA:
        from crm_reports.crm.sample_data import create_sample_data

        with SessionLocal() as session:
            create_sample_data(session)


if __name__ == "__main__":
    # Allow running this file directly to initialize the database
    init_db()
