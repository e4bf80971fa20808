import os
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from gymdesk.core.config import settings
from gymdesk.core.logging_config import get_logger

logger = get_logger("database")

Base = declarative_base()


def _prepare_sqlite_path(db_url: str) -> None:
    """Make sure the SQLite file's directory exists and is writable."""
    db_path = db_url.replace("sqlite:///", "")
    db_dir = os.path.dirname(db_path)
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)
        if not os.access(db_dir, os.W_OK):
            raise PermissionError(f"Database directory is not writable: {db_dir}")
    if os.path.exists(db_path) and not os.access(db_path, os.W_OK):
        raise PermissionError(f"Database file is not writable: {db_path}")


def build_engine(db_url: str, **overrides) -> Engine:
    """Create the process-wide engine. Called once at import and by tests."""
    engine_kw = {"pool_pre_ping": True, "echo": False}
    if db_url.startswith("sqlite"):
        if db_url.startswith("sqlite:///") and ":memory:" not in db_url:
            _prepare_sqlite_path(db_url)
        engine_kw["connect_args"] = {
            "check_same_thread": False,
            "timeout": 20.0,  # Wait up to 20 seconds for locks
        }
    engine_kw.update(overrides)
    new_engine = create_engine(db_url, **engine_kw)
    if db_url.startswith("sqlite"):
        event.listen(new_engine, "connect", _enable_sqlite_foreign_keys)
    logger.debug("Engine created for %s", new_engine.url.render_as_string(hide_password=True))
    return new_engine


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
