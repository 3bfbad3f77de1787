"""
Database engine, sessions, and schema setup for the account store.

  - create_engine / create_session_factory: build the async engine and
    session factory for a URL. The application uses them once, for
    DATABASE_URL; tests use them for throwaway databases.
  - init_schema: creates every table (accounts, users, import_runs).
  - get_db: FastAPI dependency, one session per request.

Sessions never expire attributes on commit. The import pipeline commits
once per batch and keeps working with the records afterwards, and an
expired attribute would need a lazy load, which async sessions cannot do.

Writers on SQLite:
  Two requests updating the same record are serialized by the database
  write lock. The loser of the version compare-and-swap must wait for the
  winner's commit rather than fail with "database is locked", so SQLite
  connections get a busy timeout.
"""

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import settings

SQLITE_BUSY_TIMEOUT_SECONDS = 15


class Base(DeclarativeBase):
    pass


def create_engine(url: str, echo: bool = False) -> AsyncEngine:
    connect_args = {}
    if make_url(url).get_backend_name() == "sqlite":
        connect_args["timeout"] = SQLITE_BUSY_TIMEOUT_SECONDS
    return create_async_engine(url, echo=echo, connect_args=connect_args)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_schema(engine: AsyncEngine) -> None:
    """Create any missing tables. Existing tables and rows are left alone."""
    from app import models  # noqa: F401  (registers every table on Base.metadata)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# echo=True in debug mode logs all SQL statements
engine = create_engine(settings.DATABASE_URL, echo=settings.DEBUG)
AsyncSessionLocal = create_session_factory(engine)


async def get_db():
    """
    Provide a session for one request.

    Commits when the route returns normally. Any exception rolls back, so
    a rejected update (version conflict, bad description) leaves nothing
    behind.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
