"""
Database engine, session factory and declarative base
"""
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from coursetrack.config import settings

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    options = {"pool_pre_ping": True}
    if url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
    else:
        # Bounded wait for a pooled connection
        options["pool_timeout"] = settings.DB_POOL_TIMEOUT
    return options


engine = create_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """FastAPI dependency yielding a database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create all tables"""
    # Register models on the metadata before create_all
    import coursetrack.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created")
