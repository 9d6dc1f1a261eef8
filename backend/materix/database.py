"""Database engine, session factory and storage-error translation."""
import logging
import sqlite3
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from materix.config import settings
from materix.errors import ConstraintViolation, EditConflict

logger = logging.getLogger(__name__)

Base = declarative_base()

# SQLSTATE class 23 codes reported by psycopg
_SQLSTATE_KINDS = {
    "23505": "unique",
    "23503": "foreign_key",
    "23514": "check",
    "23502": "not_null",
}

_SQLITE_KINDS = {
    "SQLITE_CONSTRAINT_UNIQUE": "unique",
    "SQLITE_CONSTRAINT_PRIMARYKEY": "unique",
    "SQLITE_CONSTRAINT_FOREIGNKEY": "foreign_key",
    "SQLITE_CONSTRAINT_CHECK": "check",
    "SQLITE_CONSTRAINT_NOTNULL": "not_null",
}

QUERY_CANCELED_SQLSTATE = "57014"


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    if url.startswith("postgresql"):
        timeout_ms = int(settings.QUERY_TIMEOUT_SECONDS * 1000)
        return {"options": f"-c statement_timeout={timeout_ms}", "connect_timeout": 10}
    return {}


def build_engine(url: str) -> Engine:
    """Create an engine whose statements are bounded by QUERY_TIMEOUT_SECONDS."""
    return create_engine(url, pool_pre_ping=True, connect_args=_connect_args(url))


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_conn, connection_record):
    """SQLite only enforces ON DELETE CASCADE with this pragma set."""
    if isinstance(dbapi_conn, sqlite3.Connection):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _sqlstate(orig) -> str | None:
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def constraint_violation(exc: IntegrityError) -> ConstraintViolation:
    """Classify an IntegrityError by driver error code, never by message text."""
    orig = exc.orig
    sqlstate = _sqlstate(orig)
    if sqlstate:
        diag = getattr(orig, "diag", None)
        return ConstraintViolation(_SQLSTATE_KINDS.get(sqlstate), getattr(diag, "constraint_name", None))
    return ConstraintViolation(_SQLITE_KINDS.get(getattr(orig, "sqlite_errorname", None)))


def is_query_timeout(exc: OperationalError) -> bool:
    return _sqlstate(exc.orig) == QUERY_CANCELED_SQLSTATE


def commit(db: Session) -> None:
    """Commit, translating storage failures into typed errors.

    The session is rolled back before raising so it stays usable.
    """
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        violation = constraint_violation(exc)
        logger.info("Write rejected by %s constraint %s", violation.kind, violation.name)
        raise violation from exc
    except StaleDataError as exc:
        db.rollback()
        raise EditConflict() from exc
