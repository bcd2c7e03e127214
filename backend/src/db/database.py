"""
Engine, session factory and the FastAPI session dependency.

The URL comes from ROSTER_DB_URL (see backend.src.config.settings). PostgreSQL
gets a connection pool; SQLite is used for development and tests and has
foreign keys switched on per connection so ON DELETE CASCADE works.
"""

from pathlib import Path
from typing import Any, Dict, Generator

from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from backend.src.config.settings import AppSettings, get_settings


# backend/.env, next to alembic.ini
_env_file = Path(__file__).resolve().parents[2] / ".env"
if _env_file.exists():
    load_dotenv(dotenv_path=_env_file)


def engine_options(settings: AppSettings) -> Dict[str, Any]:
    """create_engine() keyword arguments for the configured database."""
    if settings.is_sqlite:
        # Request handlers run in a threadpool
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": 20,
        "max_overflow": 10,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }


settings = get_settings()
DATABASE_URL = settings.database_url

engine = create_engine(DATABASE_URL, echo=False, **engine_options(settings))

# Services flush explicitly before reading back their own writes
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    Request-scoped session.

    Usage:
        @router.get("/events")
        def list_events(db: Session = Depends(get_db)):
            return EventService(db).list()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@event.listens_for(Engine, "connect")
def enable_sqlite_foreign_keys(dbapi_conn, connection_record):
    if type(dbapi_conn).__module__.startswith("sqlite3"):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
