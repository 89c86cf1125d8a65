"""Database connection and session management for the mirror store."""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from contribution_gateway.config import settings

# Base class for all ORM models
Base = declarative_base()


def _enable_sqlite_savepoints(engine: Engine) -> None:
    """
    Let pysqlite honour SAVEPOINT.

    The driver issues its own BEGIN lazily, which breaks nested transactions;
    this hands transaction control back to SQLAlchemy.
    """

    @event.listens_for(engine, "connect")
    def disable_pysqlite_begin(dbapi_conn, connection_record):  # type: ignore
        dbapi_conn.isolation_level = None

    @event.listens_for(engine, "begin")
    def emit_begin(conn):  # type: ignore
        conn.exec_driver_sql("BEGIN")


def create_db_engine(database_url: str | None = None) -> Engine:
    """
    Create a SQLAlchemy engine for the mirror store.

    Args:
        database_url: Connection URL. If None, uses settings.database_url

    Returns:
        Configured SQLAlchemy engine
    """
    url = database_url or settings.database_url

    if url.startswith("sqlite"):
        engine = create_engine(url, echo=settings.debug)
        _enable_sqlite_savepoints(engine)
        return engine

    engine = create_engine(
        url,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,  # Verify connections before using
        pool_recycle=3600,
        echo=settings.debug,
    )

    @event.listens_for(engine, "connect")
    def set_postgresql_settings(dbapi_conn, connection_record):  # type: ignore
        cursor = dbapi_conn.cursor()
        cursor.execute("SET timezone='UTC'")
        cursor.execute("SET statement_timeout='30000'")
        cursor.close()

    return engine


# Global engine and session factory
engine = create_db_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Usage:
        with get_db_session() as session:
            MirrorStore(session, records).find_customer_by_email("a@example.org")

    Automatically commits on success, rolls back on exception.
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(engine: Engine | None = None) -> None:
    """
    Initialize database schema (create all tables).

    WARNING: This should only be used for testing. In production, use Alembic migrations.
    """
    # Register models on Base.metadata
    from contribution_gateway.infrastructure import models  # noqa: F401

    target_engine = engine or globals()["engine"]
    Base.metadata.create_all(bind=target_engine)


def drop_all_tables(engine: Engine | None = None) -> None:
    """
    Drop all tables in the database.

    WARNING: This is destructive and should only be used for testing.
    """
    target_engine = engine or globals()["engine"]
    Base.metadata.drop_all(bind=target_engine)
