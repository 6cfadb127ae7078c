from unittest.mock import MagicMock

import pytest

from docsplit.database.models import PageRecord
from docsplit.database.reconciler import RecordDiff, TableReconciler, diff_records

PAGE_COLUMNS = ("id", "split_id", "document_id", "page_number", "url")


def _page(page_id: str, document_id: str | None = "d1", number: int = 1) -> PageRecord:
    return PageRecord(
        id=page_id,
        split_id="s1",
        document_id=document_id,
        page_number=number,
        url=f"page_{number}.png",
    )


def _mock_connection() -> tuple[MagicMock, MagicMock]:
    """Wire up a mock connection + cursor and return (mock_conn, mock_cursor)."""
    mock_cursor = MagicMock()
    mock_conn = MagicMock()
    mock_conn.cursor.return_value.__enter__ = MagicMock(return_value=mock_cursor)
    mock_conn.cursor.return_value.__exit__ = MagicMock(return_value=False)
    return mock_conn, mock_cursor


def _reconciler() -> TableReconciler[PageRecord]:
    return TableReconciler("pages", PageRecord, PAGE_COLUMNS, parent_column="split_id")


class TestDiffRecords:
    def test_identical_sets_produce_no_work(self) -> None:
        rows = [_page("p1"), _page("p2", number=2)]
        diff = diff_records(rows, list(rows))
        assert diff.is_empty()

    def test_classifies_inserts_updates_deletes(self) -> None:
        stored = [_page("p1"), _page("p2", number=2), _page("p3", number=3)]
        desired = [_page("p1"), _page("p2", document_id=None, number=2), _page("p4", number=4)]

        diff = diff_records(stored, desired)

        assert [r.id for r in diff.inserts] == ["p4"]
        assert [r.id for r in diff.updates] == ["p2"]
        assert diff.updates[0].document_id is None
        assert diff.deletes == ["p3"]

    def test_empty_stored_inserts_everything(self) -> None:
        desired = [_page("p1"), _page("p2", number=2)]
        diff = diff_records([], desired)
        assert diff.inserts == desired
        assert diff.updates == []
        assert diff.deletes == []

    def test_empty_desired_deletes_everything(self) -> None:
        diff = diff_records([_page("p1"), _page("p2", number=2)], [])
        assert diff.deletes == ["p1", "p2"]

    def test_summary(self) -> None:
        diff = RecordDiff(inserts=[_page("p1")], deletes=["p2", "p3"])
        assert diff.summary() == "1 inserts, 0 updates, 2 deletes"


class TestTableReconciler:
    def test_requires_id_as_first_column(self) -> None:
        with pytest.raises(ValueError, match="'id'"):
            TableReconciler("pages", PageRecord, ("split_id", "id"), parent_column="split_id")

    def test_fetch_builds_records_from_rows(self) -> None:
        mock_conn, mock_cursor = _mock_connection()
        mock_cursor.fetchall.return_value = [
            {"id": "p1", "split_id": "s1", "document_id": None, "page_number": 1, "url": "page_1.png"}
        ]

        records = _reconciler().fetch(mock_conn, "s1")

        assert records == [_page("p1", document_id=None)]
        assert mock_cursor.execute.call_args.args[1] == ("s1",)

    def test_plan_diffs_against_stored_rows(self) -> None:
        mock_conn, mock_cursor = _mock_connection()
        mock_cursor.fetchall.return_value = [
            {"id": "p1", "split_id": "s1", "document_id": "d1", "page_number": 1, "url": "page_1.png"}
        ]

        diff = _reconciler().plan(mock_conn, "s1", [_page("p2", number=2)])

        assert [r.id for r in diff.inserts] == ["p2"]
        assert diff.deletes == ["p1"]

    def test_write_inserts_all_columns(self) -> None:
        mock_conn, mock_cursor = _mock_connection()

        _reconciler().write(mock_conn, RecordDiff(inserts=[_page("p1")]))

        mock_cursor.executemany.assert_called_once()
        params = mock_cursor.executemany.call_args.args[1]
        assert params == [("p1", "s1", "d1", 1, "page_1.png")]

    def test_write_updates_with_id_last(self) -> None:
        mock_conn, mock_cursor = _mock_connection()

        _reconciler().write(mock_conn, RecordDiff(updates=[_page("p1", document_id=None)]))

        params = mock_cursor.executemany.call_args.args[1]
        assert params == [("s1", None, 1, "page_1.png", "p1")]

    def test_write_skips_empty_diff(self) -> None:
        mock_conn, mock_cursor = _mock_connection()
        _reconciler().write(mock_conn, RecordDiff())
        mock_cursor.executemany.assert_not_called()

    def test_delete_passes_ids_as_list(self) -> None:
        mock_conn, _cursor = _mock_connection()
        _reconciler().delete(mock_conn, ("p1", "p2"))
        mock_conn.execute.assert_called_once()
        assert mock_conn.execute.call_args.args[1] == (["p1", "p2"],)

    def test_delete_where_is_noop_when_empty(self) -> None:
        mock_conn, _cursor = _mock_connection()
        _reconciler().delete_where(mock_conn, "document_id", [])
        mock_conn.execute.assert_not_called()
