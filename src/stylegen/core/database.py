"""Database session factory setup."""

from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine


def setup_db_session(db_url: str, pool_size: int = 50) -> async_sessionmaker[AsyncSession]:
    """Create async database session factory.

    Args:
        db_url: PostgreSQL connection URL (postgresql+psycopg://...)
        pool_size: Maximum number of connections in the pool (default: 50)

    Returns:
        Async session factory for creating database sessions
    """
    engine = create_async_engine(
        db_url,
        pool_size=pool_size,
        max_overflow=0,  # No overflow beyond pool_size
        pool_pre_ping=True,  # Verify connections before using
        echo=False,  # Don't log SQL queries (use structlog instead)
    )

    return create_session_factory(engine)


def create_session_factory(engine) -> async_sessionmaker[AsyncSession]:
    """Wrap an existing async engine in a session factory.

    Sessions keep attribute values after commit so that entities returned
    from a unit of work stay readable once it has closed.
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,  # Prevent lazy loading issues after commit
    )


def dialect_insert(session: AsyncSession, model):
    """Build a dialect-specific INSERT supporting ON CONFLICT for the session's backend.

    PostgreSQL is the production backend; SQLite backs the local test suite.
    Both expose the same on_conflict_do_update/on_conflict_do_nothing API.
    """
    dialect_name = session.get_bind().dialect.name
    if dialect_name == "postgresql":
        return postgresql_insert(model)
    if dialect_name == "sqlite":
        return sqlite_insert(model)
    raise NotImplementedError(f"Upserts are not supported on dialect {dialect_name}")
