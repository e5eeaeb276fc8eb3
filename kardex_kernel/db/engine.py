"""
Module: kardex_kernel.db.engine
Responsibility: SQLAlchemy engine initialization and session factory
    management for the report readers.  This is the single point of database
    connection configuration.
Architecture position: Kernel > DB.  May import from db/base.py.
    MUST NOT import from selectors/ or outer layers (create_tables imports
    the model package to register tables).

Failure modes:
    - RuntimeError if get_engine/get_session called before
      init_engine_from_url().
    - Connection pool exhaustion if pool_size + max_overflow is exceeded.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from kardex_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

# Module-level engine and session factory
_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 5,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Initialize the SQLAlchemy engine from a database URL.

    Preconditions: database_url is a valid SQLAlchemy connection string.
        PostgreSQL is the production backend; SQLite URLs are accepted for
        tooling and tests (pool arguments are then not applied).
    Postconditions: Module-level _engine and _SessionFactory are initialized.

    Returns:
        SQLAlchemy Engine instance.
    """
    global _engine, _SessionFactory

    kwargs: dict = {"echo": echo}
    if not database_url.startswith("sqlite"):
        kwargs.update(
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=pool_pre_ping,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
        )
    _engine = create_engine(database_url, **kwargs)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={
            "dialect": _engine.dialect.name,
            "pool_size": pool_size,
            "echo": echo,
        },
    )

    return _engine


def get_engine() -> Engine:
    """
    Get the current engine instance.

    Raises:
        RuntimeError: If engine has not been initialized.
    """
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session() -> Session:
    """
    Get a new session instance.

    Raises:
        RuntimeError: If engine has not been initialized.
    """
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory()


@contextmanager
def read_session() -> Generator[Session, None, None]:
    """
    Provide a read-only scope around a report build.

    Postconditions: The session is rolled back and closed on exit; report
        readers never commit.
    """
    session = get_session()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


def create_tables() -> None:
    """Create the read-model tables (tooling and tests only)."""
    from kardex_kernel.db.base import Base
    import kardex_kernel.models  # noqa: F401

    Base.metadata.create_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory. FOR TESTING ONLY."""
    global _engine, _SessionFactory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None
