"""Async database engine and session factory.

One engine per process, created by :func:`init_engine` at application
startup (or at the start of a CLI command) and released by
:func:`dispose_engine`.  PostgreSQL is reached through asyncpg; SQLite via
aiosqlite is supported for tests and local runs.
"""

from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

POOL_SIZE = 10
MAX_OVERFLOW = 5

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _engine_options(database_url: str, schema: str | None, options: dict[str, Any]) -> dict[str, Any]:
    """Derive create_async_engine keyword arguments for the target dialect."""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        # Every connection to :memory: would otherwise see its own empty database
        if url.database in (None, "", ":memory:"):
            options.setdefault("poolclass", StaticPool)
        return options

    if schema is not None:
        connect_args = options.pop("connect_args", None) or {}
        if not isinstance(connect_args, dict):
            msg = "connect_args must be a dict"
            raise TypeError(msg)
        connect_args["server_settings"] = {"search_path": f"{schema},public"}
        options["connect_args"] = connect_args
    if options.get("poolclass") is not StaticPool:
        options.setdefault("pool_size", POOL_SIZE)
        options.setdefault("max_overflow", MAX_OVERFLOW)
    return options


def init_engine(database_url: str, *, schema: str | None = None, **kwargs: Any) -> AsyncEngine:
    """Create the process-wide engine and session factory.

    Args:
        database_url: Async connection string (``postgresql+asyncpg://`` or
            ``sqlite+aiosqlite://``).
        schema: PostgreSQL schema put first on the search path; ignored for SQLite.
        **kwargs: Extra arguments for ``create_async_engine``.

    Returns:
        The created engine.
    """
    global _engine, _session_factory  # noqa: PLW0603
    _engine = create_async_engine(database_url, **_engine_options(database_url, schema, kwargs))
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)
    return _engine


def get_engine() -> AsyncEngine:
    if _engine is None:
        msg = "Database engine not initialized. Call init_engine() first."
        raise RuntimeError(msg)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the session factory used by the database cache backend.

    Raises:
        RuntimeError: If :func:`init_engine` has not been called.
    """
    if _session_factory is None:
        msg = "Session factory not initialized. Call init_engine() first."
        raise RuntimeError(msg)
    return _session_factory


async def dispose_engine() -> None:
    """Close pooled connections and forget the engine."""
    global _engine, _session_factory  # noqa: PLW0603
    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None
