# backend/gestimmo/db.py
from __future__ import annotations

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from .config import settings


class Base(DeclarativeBase):
    pass


def _make_engine(url: str):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    eng = create_engine(url, pool_pre_ping=True, future=True, connect_args=connect_args)
    if url.startswith("sqlite"):
        _enable_sqlite_savepoints(eng)
    return eng


def _enable_sqlite_savepoints(eng) -> None:
    # pysqlite manages BEGIN itself and breaks SAVEPOINT; let SQLAlchemy emit it.
    @event.listens_for(eng, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(eng, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


engine = _make_engine(settings.database_url)

# Administrative credentials; sees every row regardless of the caller.
if settings.effective_admin_database_url == settings.database_url:
    admin_engine = engine
else:
    admin_engine = _make_engine(settings.effective_admin_database_url)

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    future=True,
)

AdminSessionLocal = sessionmaker(
    bind=admin_engine,
    autoflush=False,
    autocommit=False,
    future=True,
)


def _session_scope(factory):
    db = factory()
    try:
        yield db
    except Exception:
        try:
            db.rollback()
        except Exception:
            pass
        raise
    finally:
        db.close()


def get_db():
    """
    IMPORTANT (Postgres):
    If any SQL statement fails, the transaction is aborted and the session
    cannot run further statements until a rollback happens.

    This dependency guarantees rollback on exceptions, which is also what
    makes the multi-step contract workflows all-or-nothing: they commit once
    at the end, and anything raised before that is rolled back here.
    """
    yield from _session_scope(SessionLocal)


def get_admin_db():
    yield from _session_scope(AdminSessionLocal)
