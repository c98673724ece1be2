"""
Database engine and session management.

SQLite serves local development and tests, PostgreSQL deployments. The
URL comes from TEAMRSVP_DB_URL (a backend/.env file is honoured).

Sessions are short-lived: one per request via get_db(), one per unit of
work in the fixture import scheduler via SessionLocal().
"""

import os
from pathlib import Path
from typing import Generator

from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool


env_path = Path(__file__).parent.parent.parent / '.env'
if env_path.exists():
    load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.environ.get("TEAMRSVP_DB_URL", "sqlite:///./teamrsvp.db")


def _enable_sqlite_foreign_keys(dbapi_conn, connection_record):
    # Response rows and venues cascade with their event/team only when enforced
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str) -> Engine:
    """
    Create the engine for a database URL.

    In-memory SQLite keeps a single shared connection (StaticPool) so every
    session sees the same database; file SQLite allows use from the
    scheduler's worker threads.
    """
    if not url.startswith("sqlite"):
        return create_engine(
            url,
            pool_size=10,
            max_overflow=10,
            pool_pre_ping=True,
            pool_recycle=3600,
        )

    options = {"connect_args": {"check_same_thread": False, "timeout": 30}}
    if ":memory:" in url or url in ("sqlite://", "sqlite+pysqlite://"):
        options["poolclass"] = StaticPool
    sqlite_engine = create_engine(url, **options)
    event.listen(sqlite_engine, "connect", _enable_sqlite_foreign_keys)
    return sqlite_engine


engine = build_engine(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency yielding a request-scoped session.

    Usage:
        @router.get("/events")
        def list_events(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def dispose_engine() -> None:
    """Close all pooled connections (application shutdown)."""
    engine.dispose()
