from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import psycopg
from psycopg import errors
from psycopg.rows import dict_row

from docsplit.database.models import DocumentRecord, PageRecord, SplitRecord
from docsplit.database.reconciler import TableReconciler
from docsplit.domain.document import Document
from docsplit.domain.exceptions import ConflictError, InternalError, NotFoundError
from docsplit.domain.page import Page
from docsplit.domain.ports import BaseSplitRepository
from docsplit.domain.split import Split, SplitStatus
from docsplit.logging.logger import Log

DOCUMENT_COLUMNS = (
    "id",
    "split_id",
    "name",
    "classification",
    "filename",
    "short_description",
    "start_page",
    "end_page",
)
PAGE_COLUMNS = ("id", "split_id", "document_id", "page_number", "url")


@contextmanager
def _storage_errors(action: str) -> Generator[None, None, None]:
    """Surface driver failures as domain errors, keeping the cause.

    A unique-key violation means a caller-supplied ID is already taken and
    becomes ConflictError; every other driver failure becomes InternalError.
    """
    try:
        yield
    except errors.UniqueViolation as exc:
        Log.warning(f"Duplicate key while {action}: {exc}")
        raise ConflictError(f"error {action}: ID already in use") from exc
    except psycopg.Error as exc:
        Log.error(f"Storage failure while {action}: {exc}")
        raise InternalError(f"error {action}") from exc


def split_to_records(
    split: Split,
) -> tuple[SplitRecord, list[DocumentRecord], list[PageRecord]]:
    """Flatten the aggregate into the rows that should exist after a save."""
    split_record = SplitRecord(
        id=split.id,
        client_id=split.client_id,
        status=split.status.value,
        created_at=split.created_at,
        updated_at=split.updated_at,
        finalized_at=split.finalized_at,
    )
    documents: list[DocumentRecord] = []
    pages: list[PageRecord] = []
    for document in split.documents.values():
        documents.append(
            DocumentRecord(
                id=document.id,
                split_id=split.id,
                name=document.name,
                classification=document.classification,
                filename=document.filename,
                short_description=document.short_description,
                start_page=document.start_page,
                end_page=document.end_page,
            )
        )
        pages.extend(_page_record(page, split.id, document.id) for page in document.pages)
    pages.extend(_page_record(page, split.id, None) for page in split.unassigned_pages)
    return split_record, documents, pages


def _page_record(page: Page, split_id: str, document_id: str | None) -> PageRecord:
    return PageRecord(
        id=page.id,
        split_id=split_id,
        document_id=document_id,
        page_number=page.page_number,
        url=page.url,
    )


def records_to_split(
    split_record: SplitRecord,
    documents: list[DocumentRecord],
    pages: list[PageRecord],
) -> Split:
    """Rebuild the aggregate from its rows.

    Documents come back ordered by their first page; documents without pages
    keep their row order at the end. A page pointing at a document that is not
    part of the split lands in the unassigned pool.
    """
    try:
        status = SplitStatus(split_record.status)
    except ValueError as exc:
        raise InternalError(
            f"split {split_record.id} has unknown status {split_record.status!r}"
        ) from exc

    pages_by_document: dict[str, list[Page]] = {record.id: [] for record in documents}
    unassigned: list[Page] = []
    for record in pages:
        owner = record.document_id
        if owner is not None and owner not in pages_by_document:
            Log.warning(
                f"Page {record.id} references missing document {owner}, treating as unassigned"
            )
            owner = None
        page = Page(
            id=record.id,
            split_id=record.split_id,
            page_number=record.page_number,
            url=record.url,
            document_id=owner,
        )
        if owner is None:
            unassigned.append(page)
        else:
            pages_by_document[owner].append(page)

    loaded = [
        Document(
            id=record.id,
            split_id=record.split_id,
            name=record.name,
            classification=record.classification,
            filename=record.filename,
            short_description=record.short_description,
            pages=pages_by_document[record.id],
        )
        for record in documents
    ]
    loaded.sort(key=lambda d: (not d.pages, d.pages[0].page_number if d.pages else 0))
    unassigned.sort(key=lambda page: page.page_number)

    return Split(
        id=split_record.id,
        client_id=split_record.client_id,
        status=status,
        documents={document.id: document for document in loaded},
        unassigned_pages=unassigned,
        created_at=split_record.created_at,
        updated_at=split_record.updated_at,
        finalized_at=split_record.finalized_at,
    )


class SplitRepository(BaseSplitRepository):
    """Split aggregate persistence over the splits/documents/pages tables.

    Every call runs on the connection handed in by the unit of work and never
    commits; the unit of work owns the transaction.
    """

    def __init__(self, conn: psycopg.Connection[Any]) -> None:
        self._conn = conn
        self._documents = TableReconciler(
            "documents", DocumentRecord, DOCUMENT_COLUMNS, parent_column="split_id"
        )
        self._pages = TableReconciler(
            "pages",
            PageRecord,
            PAGE_COLUMNS,
            parent_column="split_id",
            order_by=("page_number", "id"),
        )

    def get(self, split_id: str) -> Split | None:
        with _storage_errors(f"getting split {split_id}"):
            split_record = self._fetch_split_record(split_id)
            if split_record is None:
                return None
            documents = self._documents.fetch(self._conn, split_id)
            pages = self._pages.fetch(self._conn, split_id)
        return records_to_split(split_record, documents, pages)

    def save(self, split: Split) -> None:
        """Reconcile stored rows with the aggregate.

        Order: split row, document inserts/updates, page inserts/updates, page
        deletes, then document deletes (with any page still pointing at them).

        Raises:
            ConflictError: if a document or page ID already belongs to another
                split.
            InternalError: on any other storage failure.
        """
        split_record, documents, pages = split_to_records(split)
        with _storage_errors(f"saving split {split.id}"):
            self._upsert_split(split_record)
            document_diff = self._documents.plan(self._conn, split.id, documents)
            page_diff = self._pages.plan(self._conn, split.id, pages)

            self._documents.write(self._conn, document_diff)
            self._pages.write(self._conn, page_diff)
            self._pages.delete(self._conn, page_diff.deletes)
            self._pages.delete_where(self._conn, "document_id", document_diff.deletes)
            self._documents.delete(self._conn, document_diff.deletes)

        if document_diff.is_empty() and page_diff.is_empty():
            Log.debug(f"Saved split {split.id}: no document or page changes")
            return
        Log.debug(
            f"Saved split {split.id}: documents {document_diff.summary()}; "
            f"pages {page_diff.summary()}"
        )

    def delete(self, split_id: str) -> None:
        with _storage_errors(f"deleting split {split_id}"):
            self._pages.delete_where(self._conn, "split_id", [split_id])
            self._documents.delete_where(self._conn, "split_id", [split_id])
            self._conn.execute("DELETE FROM splits WHERE id = %s", (split_id,))
        Log.debug(f"Deleted split {split_id}")

    def list_by_client_id(self, client_id: str) -> list[Split]:
        with _storage_errors(f"listing splits of client {client_id}"):
            with self._conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT id
                    FROM splits
                    WHERE client_id = %s
                    ORDER BY created_at DESC
                    """,
                    (client_id,),
                )
                split_ids = [row[0] for row in cur.fetchall()]

        splits: list[Split] = []
        for split_id in split_ids:
            split = self.get(split_id)
            if split is not None:
                splits.append(split)
        return splits

    def get_split_id_by_document_id(self, document_id: str) -> str:
        with _storage_errors(f"getting split ID for document {document_id}"):
            with self._conn.cursor() as cur:
                cur.execute(
                    "SELECT split_id FROM documents WHERE id = %s",
                    (document_id,),
                )
                row = cur.fetchone()

        if row is None:
            raise NotFoundError(f"document {document_id} not found")
        return str(row[0])

    def _fetch_split_record(self, split_id: str) -> SplitRecord | None:
        with self._conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                """
                SELECT id, client_id, status, created_at, updated_at, finalized_at
                FROM splits
                WHERE id = %s
                """,
                (split_id,),
            )
            row = cur.fetchone()

        if row is None:
            return None
        return SplitRecord(**row)

    def _upsert_split(self, record: SplitRecord) -> None:
        self._conn.execute(
            """
            INSERT INTO splits (id, client_id, status, created_at, updated_at, finalized_at)
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (id) DO UPDATE SET
                client_id = excluded.client_id,
                status = excluded.status,
                updated_at = excluded.updated_at,
                finalized_at = excluded.finalized_at
            """,
            (
                record.id,
                record.client_id,
                record.status,
                record.created_at,
                record.updated_at,
                record.finalized_at,
            ),
        )
