from collections.abc import Generator
from contextlib import contextmanager
from threading import Lock
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine

from commonmodel.config import Settings


def _build_engine_kwargs(database_url: str, pool_size: int, max_overflow: int, pool_timeout: int) -> dict[str, Any]:
    """Return driver-specific engine arguments."""
    if database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_timeout": pool_timeout,
    }


def create_engine_for_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 10,
    pool_timeout: int = 30,
) -> Engine:
    """Create SQLAlchemy engine configured for SQLite, MySQL or PostgreSQL."""
    return create_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
        **_build_engine_kwargs(database_url, pool_size, max_overflow, pool_timeout),
    )


class EngineRegistry:
    """One engine per connection group, created on first use."""

    def __init__(self, settings: Settings):
        self._settings = settings
        self._engines: dict[str, Engine] = {}
        self._lock = Lock()

    def get(self, group: str | None = None) -> Engine:
        name = group or self._settings.DEFAULT_GROUP
        url = self._settings.database_url(name)
        with self._lock:
            engine = self._engines.get(name)
            if engine is None:
                engine = create_engine_for_url(
                    url,
                    echo=self._settings.SQLALCHEMY_ECHO,
                    pool_size=self._settings.SQLALCHEMY_POOL_SIZE,
                    max_overflow=self._settings.SQLALCHEMY_MAX_OVERFLOW,
                    pool_timeout=self._settings.SQLALCHEMY_POOL_TIMEOUT,
                )
                self._engines[name] = engine
            return engine

    def dispose(self) -> None:
        with self._lock:
            for engine in self._engines.values():
                engine.dispose()
            self._engines.clear()


@contextmanager
def connection_scope(bind: Engine | Connection) -> Generator[Connection, None, None]:
    """
    Yield a connection for one operation.

    An engine gets a fresh connection whose transaction commits on success and
    rolls back on error. A caller-owned connection is yielded as is; the caller
    keeps control of its transaction.
    """
    if isinstance(bind, Connection):
        yield bind
        return
    with bind.begin() as connection:
        yield connection


@contextmanager
def autocommit_scope(bind: Engine | Connection) -> Generator[Connection, None, None]:
    """Yield a connection outside any transaction block (CREATE/DROP DATABASE)."""
    if isinstance(bind, Connection):
        yield bind
        return
    with bind.connect() as connection:
        yield connection.execution_options(isolation_level="AUTOCOMMIT")
