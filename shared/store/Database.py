"""Database handle shared by the document, conversation and config stores."""

import asyncio
import os
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Callable, TypeVar

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from shared.helper.HelperConfig import HelperConfig
from shared.store.tables import Base

T = TypeVar("T")


class Database:
    """Owns the SQLAlchemy engine and hands out short-lived sessions.

    The engine is synchronous; async callers go through ``run()``, which
    executes the unit of work on a worker thread.
    """

    def __init__(self, helper_config: HelperConfig, url: str | None = None) -> None:
        self.logging = helper_config.get_logger()
        self.url = url or helper_config.get_string_val("DATABASE_URL", default=self._default_url(helper_config))
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None

    ##########################################
    ################ GETTER ##################
    ##########################################

    @staticmethod
    def _default_url(helper_config: HelperConfig) -> str:
        data_dir = os.path.join(helper_config.get_root_dir(), "data")
        return f"sqlite:///{os.path.join(data_dir, 'ragchat.db')}"

    def get_engine(self) -> Engine:
        if self._engine is None:
            raise Exception("Database not initialised. Call boot() before using the stores.")
        return self._engine

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    def boot(self) -> None:
        """Create the engine and any missing tables."""
        connect_args: dict = {}
        if self.url.startswith("sqlite"):
            self._ensure_sqlite_dir()
            connect_args["check_same_thread"] = False
        self._engine = create_engine(self.url, connect_args=connect_args, pool_pre_ping=True)
        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        Base.metadata.create_all(self._engine)
        self.logging.info("Database ready at %s", self._engine.url.render_as_string(hide_password=True))

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None

    def _ensure_sqlite_dir(self) -> None:
        if "///" not in self.url:
            return
        path = self.url.split("///", 1)[1]
        if path and path != ":memory:":
            directory = os.path.dirname(os.path.abspath(path))
            os.makedirs(directory, exist_ok=True)

    ##########################################
    ############### SESSIONS #################
    ##########################################

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Session scope: commit on success, roll back on any error."""
        if self._session_factory is None:
            raise Exception("Database not initialised. Call boot() before using the stores.")
        session: Session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    async def run(self, work: Callable[[Session], T]) -> T:
        """Run ``work(session)`` inside a session scope on a worker thread."""

        def _unit() -> T:
            with self.session() as session:
                return work(session)

        return await asyncio.to_thread(_unit)

    async def do_healthcheck(self) -> bool:
        """Return True when a trivial query succeeds."""

        def _ping(session: Session) -> bool:
            session.execute(text("SELECT 1"))
            return True

        try:
            return await self.run(_ping)
        except SQLAlchemyError as e:
            self.logging.error("Database healthcheck failed: %s", e)
            return False
