from unittest.mock import MagicMock, patch

import psycopg
import pytest

from docsplit.database.repositories.split_repository import SplitRepository
from docsplit.database.unit_of_work import PostgresUnitOfWork, unit_of_work
from docsplit.domain.exceptions import InternalError


def _mock_get_connection(mock_get_conn: MagicMock) -> MagicMock:
    mock_conn = MagicMock()
    mock_get_conn.return_value.__enter__ = MagicMock(return_value=mock_conn)
    mock_get_conn.return_value.__exit__ = MagicMock(return_value=False)
    return mock_conn


class TestPostgresUnitOfWork:
    def test_exposes_repository_bound_to_connection(self) -> None:
        uow = PostgresUnitOfWork(MagicMock())
        assert isinstance(uow.split_repository(), SplitRepository)
        assert uow.split_repository() is uow.split_repository()

    def test_commit(self) -> None:
        mock_conn = MagicMock()
        uow = PostgresUnitOfWork(mock_conn)

        uow.commit()

        mock_conn.commit.assert_called_once()
        assert uow.committed

    def test_commit_failure_raises_internal_error(self) -> None:
        mock_conn = MagicMock()
        mock_conn.commit.side_effect = psycopg.OperationalError("server closed")
        uow = PostgresUnitOfWork(mock_conn)

        with pytest.raises(InternalError, match="error committing transaction"):
            uow.commit()
        assert not uow.committed

    def test_rollback(self) -> None:
        mock_conn = MagicMock()
        PostgresUnitOfWork(mock_conn).rollback()
        mock_conn.rollback.assert_called_once()

    def test_rollback_after_commit_is_noop(self) -> None:
        mock_conn = MagicMock()
        uow = PostgresUnitOfWork(mock_conn)
        uow.commit()

        uow.rollback()

        mock_conn.rollback.assert_not_called()

    def test_rollback_failure_raises_internal_error(self) -> None:
        mock_conn = MagicMock()
        mock_conn.rollback.side_effect = psycopg.OperationalError("gone")

        with pytest.raises(InternalError, match="error rolling back"):
            PostgresUnitOfWork(mock_conn).rollback()


class TestUnitOfWorkContext:
    @patch("docsplit.database.unit_of_work.get_connection")
    def test_committed_block_is_not_rolled_back(self, mock_get_conn: MagicMock) -> None:
        mock_conn = _mock_get_connection(mock_get_conn)

        with unit_of_work() as uow:
            uow.commit()

        mock_conn.commit.assert_called_once()
        mock_conn.rollback.assert_not_called()

    @patch("docsplit.database.unit_of_work.get_connection")
    def test_uncommitted_block_is_rolled_back(self, mock_get_conn: MagicMock) -> None:
        mock_conn = _mock_get_connection(mock_get_conn)

        with unit_of_work():
            pass

        mock_conn.rollback.assert_called_once()
        mock_conn.commit.assert_not_called()

    @patch("docsplit.database.unit_of_work.get_connection")
    def test_exception_rolls_back_and_propagates(self, mock_get_conn: MagicMock) -> None:
        mock_conn = _mock_get_connection(mock_get_conn)

        with pytest.raises(RuntimeError, match="boom"):
            with unit_of_work():
                raise RuntimeError("boom")

        mock_conn.rollback.assert_called_once()

    @patch("docsplit.database.unit_of_work.get_connection")
    def test_rollback_failure_does_not_mask_error(self, mock_get_conn: MagicMock) -> None:
        mock_conn = _mock_get_connection(mock_get_conn)
        mock_conn.rollback.side_effect = psycopg.OperationalError("gone")

        with pytest.raises(RuntimeError, match="boom"):
            with unit_of_work():
                raise RuntimeError("boom")
