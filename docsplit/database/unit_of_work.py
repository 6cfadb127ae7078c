from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import psycopg

from docsplit.database.connection import get_connection
from docsplit.database.repositories.split_repository import SplitRepository
from docsplit.domain.exceptions import InternalError
from docsplit.domain.ports import BaseUnitOfWork
from docsplit.logging.logger import Log


class PostgresUnitOfWork(BaseUnitOfWork):
    """Wraps one psycopg transaction and the split repository bound to it."""

    def __init__(self, conn: psycopg.Connection[Any]) -> None:
        self._conn = conn
        self._repository = SplitRepository(conn)
        self._committed = False

    @property
    def committed(self) -> bool:
        return self._committed

    def split_repository(self) -> SplitRepository:
        return self._repository

    def commit(self) -> None:
        """Make every write of this unit of work durable.

        Raises:
            InternalError: if the commit fails; the transaction is rolled back.
        """
        try:
            self._conn.commit()
        except psycopg.Error as exc:
            Log.error(f"Commit failed: {exc}")
            raise InternalError("error committing transaction") from exc
        self._committed = True

    def rollback(self) -> None:
        """Discard uncommitted writes. A no-op after a successful commit."""
        if self._committed:
            return
        try:
            self._conn.rollback()
        except psycopg.Error as exc:
            raise InternalError("error rolling back transaction") from exc


@contextmanager
def unit_of_work() -> Generator[PostgresUnitOfWork, None, None]:
    """Open a unit of work on a pooled connection.

    Anything not committed when the block exits is rolled back, including on
    exceptions.
    """
    with get_connection() as conn:
        uow = PostgresUnitOfWork(conn)
        try:
            yield uow
        finally:
            if not uow.committed:
                Log.debug("Rolling back uncommitted unit of work")
                try:
                    uow.rollback()
                except InternalError as exc:
                    Log.error(f"Rollback failed: {exc.__cause__}")
