"""
Database Handle

One engine and session factory per process, constructed in main.py and
passed to every store. Stores run their blocking SQLAlchemy work in a
worker thread via Database.run() so the event loop never blocks on I/O.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from contextlib import contextmanager, nullcontext
from datetime import datetime, timezone
from typing import Any, Callable, Iterator, Optional, TypeVar

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .schema import Base

logger = logging.getLogger(__name__)

T = TypeVar("T")


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops tzinfo on the way back; treat naive values as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Database:
    """
    Pooled SQLAlchemy engine plus session factory.

    SQLite connections are shared across worker threads in tests, so access
    is serialised with a lock for that dialect only.
    """

    def __init__(self, url: str, *, echo: bool = False) -> None:
        kwargs: dict[str, Any] = {"echo": echo}
        self._is_sqlite = url.startswith("sqlite")
        if self._is_sqlite:
            kwargs["connect_args"] = {"check_same_thread": False}
            if url in ("sqlite://", "sqlite+pysqlite://") or ":memory:" in url:
                kwargs["poolclass"] = StaticPool
        else:
            kwargs["pool_pre_ping"] = True

        self._url = url
        self._engine = create_engine(url, **kwargs)
        self._session_factory = sessionmaker(
            bind=self._engine,
            autoflush=False,
            expire_on_commit=False,
        )
        self._lock = threading.RLock() if self._is_sqlite else None

        logger.info("Database engine created", extra={"dialect": self._engine.dialect.name})

    @property
    def url(self) -> str:
        return self._url

    def create_all(self) -> None:
        """Create any missing tables (migrations are managed elsewhere)."""
        Base.metadata.create_all(self._engine)

    def dispose(self) -> None:
        self._engine.dispose()

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Transactional session: commit on success, rollback on error."""
        guard = self._lock if self._lock is not None else nullcontext()
        with guard:
            session = self._session_factory()
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

    async def run(self, fn: Callable[..., T], *args: Any) -> T:
        """Run a blocking store function in a worker thread."""
        return await asyncio.to_thread(fn, *args)
