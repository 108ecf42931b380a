from pathlib import Path
import tempfile
from typing import Generator

import structlog
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, Session

from app.config.settings import settings

logger = structlog.get_logger()


def _create_engine_from_url(db_url: str):
    connect_args = {"check_same_thread": False} if db_url.startswith("sqlite") else {}
    return create_engine(db_url, connect_args=connect_args)


def _resolve_database_url(original_url: str) -> str:
    """Make sure a file-backed sqlite database has a writable parent directory.

    Falls back to a file in the system temp directory when the configured
    location cannot be written. Non-sqlite URLs are returned unchanged.
    """
    url = make_url(original_url)
    if not url.drivername.startswith("sqlite") or not url.database or url.database == ":memory:":
        return original_url

    db_path = Path(url.database)
    if not db_path.is_absolute():
        db_path = (Path.cwd() / db_path).resolve()
    logger.info("Resolved sqlite path", resolved=str(db_path), original=original_url)

    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        probe = db_path.parent / ".writable_test"
        probe.write_text("ok")
        probe.unlink()
        return original_url
    except OSError as e:
        fallback = f"sqlite:///{(Path(tempfile.gettempdir()) / 'generations_fallback.db').as_posix()}"
        logger.error(
            "Configured sqlite path not writable; falling back to temp file",
            error=str(e),
            path=str(db_path),
            fallback=fallback,
        )
        return fallback


resolved_db_url = _resolve_database_url(settings.database_url)
engine = _create_engine_from_url(resolved_db_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_database() -> Generator[Session, None, None]:
    """Dependency to get database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables():
    """Create all database tables"""
    from app.models.database import Base

    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error("Failed to create database tables", error=str(e))
        raise
