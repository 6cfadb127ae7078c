"""Set-difference reconciliation of one child table against an aggregate."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, Protocol, TypeVar

import psycopg
from psycopg import sql
from psycopg.rows import dict_row


class _Record(Protocol):
    @property
    def id(self) -> str: ...


R = TypeVar("R", bound=_Record)


@dataclass(frozen=True)
class RecordDiff(Generic[R]):
    """Rows to insert, rows to update, and IDs to delete for one table."""

    inserts: list[R] = field(default_factory=list)
    updates: list[R] = field(default_factory=list)
    deletes: list[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.inserts or self.updates or self.deletes)

    def summary(self) -> str:
        return (
            f"{len(self.inserts)} inserts, {len(self.updates)} updates, "
            f"{len(self.deletes)} deletes"
        )


def diff_records(stored: Iterable[R], desired: Iterable[R]) -> RecordDiff[R]:
    """Compare stored rows with the rows the aggregate needs.

    Unchanged rows produce no work. Output keeps the order of the inputs.
    """
    stored_by_id = {record.id: record for record in stored}
    desired_by_id = {record.id: record for record in desired}

    inserts = [r for rid, r in desired_by_id.items() if rid not in stored_by_id]
    updates = [
        r
        for rid, r in desired_by_id.items()
        if rid in stored_by_id and stored_by_id[rid] != r
    ]
    deletes = [rid for rid in stored_by_id if rid not in desired_by_id]
    return RecordDiff(inserts=inserts, updates=updates, deletes=deletes)


class TableReconciler(Generic[R]):
    """Reads and writes the rows of one table that belong to a parent row.

    Deletes are applied separately from inserts/updates so the caller can
    order them around foreign keys: parents are written before children,
    children are deleted before parents.
    """

    def __init__(
        self,
        table: str,
        record_type: type[R],
        columns: Sequence[str],
        parent_column: str,
        order_by: Sequence[str] = ("id",),
    ) -> None:
        if columns[0] != "id":
            raise ValueError("the first reconciled column must be 'id'")
        self._table = table
        self._record_type = record_type
        self._columns = tuple(columns)
        self._parent_column = parent_column
        self._order_by = tuple(order_by)

    def fetch(self, conn: psycopg.Connection[Any], parent_id: str) -> list[R]:
        """Load every row of this table owned by parent_id."""
        query = sql.SQL("SELECT {columns} FROM {table} WHERE {parent} = %s ORDER BY {order}").format(
            columns=sql.SQL(", ").join(map(sql.Identifier, self._columns)),
            table=sql.Identifier(self._table),
            parent=sql.Identifier(self._parent_column),
            order=sql.SQL(", ").join(map(sql.Identifier, self._order_by)),
        )
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(query, (parent_id,))
            rows = cur.fetchall()
        return [self._record_type(**row) for row in rows]

    def plan(
        self,
        conn: psycopg.Connection[Any],
        parent_id: str,
        desired: Iterable[R],
    ) -> RecordDiff[R]:
        return diff_records(self.fetch(conn, parent_id), desired)

    def write(self, conn: psycopg.Connection[Any], diff: RecordDiff[R]) -> None:
        """Apply the inserts and updates of a diff."""
        with conn.cursor() as cur:
            if diff.inserts:
                cur.executemany(
                    self._insert_query(), [self._values(r) for r in diff.inserts]
                )
            if diff.updates:
                cur.executemany(
                    self._update_query(),
                    [self._values(r)[1:] + (r.id,) for r in diff.updates],
                )

    def delete(self, conn: psycopg.Connection[Any], ids: Sequence[str]) -> None:
        self.delete_where(conn, "id", ids)

    def delete_where(
        self,
        conn: psycopg.Connection[Any],
        column: str,
        values: Sequence[str],
    ) -> None:
        """Delete rows whose column matches any of values. No-op when empty."""
        if not values:
            return
        query = sql.SQL("DELETE FROM {table} WHERE {column} = ANY(%s)").format(
            table=sql.Identifier(self._table),
            column=sql.Identifier(column),
        )
        conn.execute(query, (list(values),))

    def _values(self, record: R) -> tuple[Any, ...]:
        return tuple(getattr(record, column) for column in self._columns)

    def _insert_query(self) -> sql.Composed:
        return sql.SQL("INSERT INTO {table} ({columns}) VALUES ({values})").format(
            table=sql.Identifier(self._table),
            columns=sql.SQL(", ").join(map(sql.Identifier, self._columns)),
            values=sql.SQL(", ").join(sql.Placeholder() * len(self._columns)),
        )

    def _update_query(self) -> sql.Composed:
        assignments = sql.SQL(", ").join(
            sql.SQL("{} = %s").format(sql.Identifier(column))
            for column in self._columns[1:]
        )
        return sql.SQL("UPDATE {table} SET {assignments} WHERE id = %s").format(
            table=sql.Identifier(self._table),
            assignments=assignments,
        )
