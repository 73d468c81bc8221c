"""Database session management."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import DatabaseConfig
from ..logging_utils import get_logger
from .models import Base

T = TypeVar("T")


class DatabaseManager:
    """Configure SQLAlchemy engine and provide sessions."""

    def __init__(self, config: DatabaseConfig) -> None:
        self._config = config
        self._log = get_logger("db")
        engine_kwargs: dict = {"echo": config.echo}
        if config.url.startswith("sqlite"):
            # Store calls run on worker threads.
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in config.url or config.url in {"sqlite://", "sqlite:///"}:
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["pool_pre_ping"] = True
            engine_kwargs["pool_recycle"] = 1800
        self._engine = create_engine(config.url, **engine_kwargs)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        self._log.info("Database connected at {}", config.url)

    @contextmanager
    def session(self) -> Iterator[Session]:
        session: Session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def transaction(self, fn: Callable[[Session], T]) -> T:
        with self.session() as session:
            return fn(session)
