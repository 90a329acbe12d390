from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from typing import Any, Optional, TypeVar

from fastapi import Request
from sqlalchemy import event, text
from sqlalchemy.engine import Engine, Result
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql import Executable
from sqlmodel import SQLModel, create_engine

from ..models import db as _db_models  # noqa: F401 - ensure models register with metadata
from .errors import DatabaseError, TransactionTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def create_engine_for_url(database_url: str, pool_size: Optional[int] = None) -> Engine:
    connect_args: dict[str, Any] = {}
    engine_args: dict[str, Any] = {}
    is_sqlite = database_url.startswith("sqlite")
    if is_sqlite:
        connect_args = {"check_same_thread": False}
    elif pool_size is not None:
        engine_args["pool_size"] = pool_size
    engine = create_engine(
        database_url, echo=False, connect_args=connect_args, **engine_args
    )
    if is_sqlite:
        _serialize_sqlite_writers(engine)
    return engine


def _serialize_sqlite_writers(engine: Engine) -> None:
    # SQLite ignores FOR UPDATE; take the write lock when the transaction starts instead.
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(connection):
        connection.exec_driver_sql("BEGIN IMMEDIATE")


def postgres_timeout_settings(timeout: float) -> dict[str, str]:
    """Server-side bounds applied with SET LOCAL semantics at transaction start.

    ``statement_timeout`` bounds each statement and
    ``idle_in_transaction_session_timeout`` bounds the gaps between them;
    the session deadline checked before every round-trip bounds the total.
    A transaction can therefore overrun its timeout by at most the one
    statement already in flight when the deadline passes.
    """
    milliseconds = str(max(int(timeout * 1000), 1))
    return {
        "statement_timeout": milliseconds,
        "idle_in_transaction_session_timeout": milliseconds,
    }


def init_db(engine: Engine) -> None:
    SQLModel.metadata.create_all(engine)


class StorageSession:
    """One unit of work: a single database transaction with a deadline.

    The transaction runs at READ COMMITTED on PostgreSQL. ``release`` rolls
    back whatever was not committed and is safe to call more than once, so
    the session is normally used as a context manager::

        with session_factory() as session:
            session.execute(stmt)
            session.commit()
    """

    def __init__(self, engine: Engine, timeout: float) -> None:
        self._timeout = timeout
        self._deadline = time.monotonic() + timeout
        self._committed = False
        self._released = False
        self._session = Session(engine, autoflush=False, expire_on_commit=False)
        try:
            self._begin(engine)
        except SQLAlchemyError as exc:
            self._session.close()
            self._released = True
            raise DatabaseError(exc) from exc

    def _begin(self, engine: Engine) -> None:
        if engine.dialect.name == "postgresql":
            self._session.connection(
                execution_options={"isolation_level": "READ COMMITTED"}
            )
            for name, value in postgres_timeout_settings(self._timeout).items():
                self._session.execute(
                    text("SELECT set_config(:name, :value, true)"),
                    {"name": name, "value": value},
                )
        else:
            self._session.connection()

    def _check_deadline(self) -> None:
        if time.monotonic() > self._deadline:
            raise DatabaseError(
                TransactionTimeoutError(
                    f"transaction exceeded its {self._timeout:g}s timeout"
                )
            )

    def query(
        self,
        statement: Executable,
        handler: Callable[[Result[Any]], T],
        params: Optional[Mapping[str, Any]] = None,
    ) -> T:
        """Run a read and hand the result to ``handler``.

        Errors raised by ``handler`` are propagated unchanged; driver errors
        are wrapped in ``DatabaseError``.
        """
        self._check_deadline()
        try:
            result = self._session.execute(statement, params)
        except SQLAlchemyError as exc:
            raise DatabaseError(exc) from exc
        try:
            return handler(result)
        except SQLAlchemyError as exc:
            # rows may still be fetched lazily while the handler iterates
            raise DatabaseError(exc) from exc

    def execute(
        self,
        statement: Executable,
        params: Optional[Mapping[str, Any]] = None,
    ) -> int:
        """Run a write and return the number of affected rows."""
        self._check_deadline()
        try:
            result = self._session.execute(statement, params)
        except SQLAlchemyError as exc:
            raise DatabaseError(exc) from exc
        return result.rowcount

    def commit(self) -> None:
        self._check_deadline()
        try:
            self._session.commit()
        except SQLAlchemyError as exc:
            raise DatabaseError(exc) from exc
        self._committed = True

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        try:
            if not self._committed:
                self._session.rollback()
        except SQLAlchemyError:
            logger.exception("session.rollback_failed")
        finally:
            self._session.close()

    @property
    def committed(self) -> bool:
        return self._committed

    def __enter__(self) -> StorageSession:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class SessionFactory:
    """Opens a ``StorageSession`` per call against one engine."""

    def __init__(self, engine: Engine, transaction_timeout: float = 5.0) -> None:
        self.engine = engine
        self.transaction_timeout = transaction_timeout

    def __call__(self) -> StorageSession:
        return StorageSession(self.engine, self.transaction_timeout)


def get_session_factory(request: Request) -> SessionFactory:
    return request.app.state.session_factory
