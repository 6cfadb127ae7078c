import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic import ValidationError as PayloadValidationError

from docsplit.domain.document import Document, DocumentMetadata
from docsplit.domain.exceptions import (
    ConflictError,
    DomainError,
    NotFoundError,
    ValidationError,
)
from docsplit.domain.page import Page


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SplitStatus(str, Enum):
    """Draft splits are editable; finalized splits are locked for good."""

    DRAFT = "draft"
    FINALIZED = "finalized"


class DocumentPayload(BaseModel):
    """One document as described by the AI splitter."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    name: str = ""
    classification: str = ""
    file_name: str = ""
    short_description: str = ""
    page_urls: list[str] = Field(default_factory=list)


class SplitPayload(BaseModel):
    """The AI splitter output a new split is built from."""

    model_config = ConfigDict(extra="ignore")

    split_id: str = Field(default="", validation_alias=AliasChoices("split_id", "id"))
    client_id: str = ""
    status: SplitStatus = SplitStatus.DRAFT
    documents: list[DocumentPayload] = Field(default_factory=list)


@dataclass
class Split:
    """Aggregate root for one AI-generated split of an uploaded bundle.

    Documents are indexed by ID (insertion order preserved). Every page of the
    split lives in exactly one place: one document, or the unassigned pool.
    """

    id: str
    client_id: str
    status: SplitStatus = SplitStatus.DRAFT
    documents: dict[str, Document] = field(default_factory=dict)
    unassigned_pages: list[Page] = field(default_factory=list)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    finalized_at: datetime | None = None

    def __str__(self) -> str:
        return (
            f"Split {self.id} ({self.client_id}): {len(self.documents)} documents, "
            f"{len(self.unassigned_pages)} unassigned pages, status: {self.status.value}"
        )

    @classmethod
    def from_json(cls, raw: str | bytes, now: datetime | None = None) -> "Split":
        """Build a draft split from the AI splitter's JSON output.

        Raises:
            ValidationError: if the payload, any document or any page URL is
                malformed. Nothing is returned on failure.
        """
        try:
            payload = SplitPayload.model_validate_json(raw)
        except PayloadValidationError as exc:
            raise ValidationError("failed to parse split JSON") from exc
        return cls.from_payload(payload, now=now)

    @classmethod
    def from_dict(cls, data: dict[str, Any], now: datetime | None = None) -> "Split":
        try:
            payload = SplitPayload.model_validate(data)
        except PayloadValidationError as exc:
            raise ValidationError("failed to parse split payload") from exc
        return cls.from_payload(payload, now=now)

    @classmethod
    def from_payload(cls, payload: SplitPayload, now: datetime | None = None) -> "Split":
        if payload.status is not SplitStatus.DRAFT:
            raise ValidationError(
                f"new split must start in draft status, got {payload.status.value!r}"
            )
        created = now or _utcnow()
        split = cls(
            id=payload.split_id,
            client_id=payload.client_id,
            created_at=created,
            updated_at=created,
        )
        for doc_payload in payload.documents:
            pages: list[Page] = []
            for url in doc_payload.page_urls:
                try:
                    pages.append(Page.from_url(payload.split_id, url))
                except ValidationError as exc:
                    raise ValidationError(
                        f"failed to create page from URL {url!r}"
                    ) from exc
            document = Document.create(
                document_id=doc_payload.id or str(uuid.uuid4()),
                split_id=payload.split_id,
                name=doc_payload.name,
                classification=doc_payload.classification,
                filename=doc_payload.file_name,
                short_description=doc_payload.short_description,
                pages=pages,
            )
            split.add_document(document)

        try:
            split.validate()
        except ValidationError as exc:
            raise ValidationError("invalid split") from exc
        return split

    def validate(self) -> None:
        if not self.id:
            raise ValidationError("split id is required")
        if not self.client_id:
            raise ValidationError("client id is required")
        for document in self.documents.values():
            try:
                document.validate()
            except ValidationError as exc:
                raise ValidationError(
                    f"invalid document {document.id} in split {self.id}"
                ) from exc

    def is_finalized(self) -> bool:
        return self.status is SplitStatus.FINALIZED

    def touch(self, now: datetime | None = None) -> None:
        self.updated_at = now or _utcnow()

    def find_document(self, document_id: str) -> Document:
        """Raises NotFoundError if the document is not part of this split."""
        document = self.documents.get(document_id)
        if document is None:
            raise NotFoundError(f"document {document_id} not found in split {self.id}")
        return document

    def document_for_page(self, page_id: str) -> Document | None:
        for document in self.documents.values():
            if document.has_page(page_id):
                return document
        return None

    def all_pages(self) -> list[Page]:
        """Every page of the split: document pages first, then the pool."""
        pages = [page for document in self.documents.values() for page in document.pages]
        pages.extend(self.unassigned_pages)
        return pages

    def add_document(self, document: Document) -> None:
        """Attach a new document and assign its pages to it.

        Raises:
            ConflictError: if finalized, the ID is taken, or a page is repeated,
                already assigned or already present elsewhere in this split.
            ValidationError: if the document is invalid or belongs elsewhere.
        """
        self._ensure_editable("add document to")
        try:
            document.validate()
        except ValidationError as exc:
            raise ValidationError("invalid document") from exc
        if document.split_id != self.id:
            raise ValidationError(
                f"document {document.id} belongs to split {document.split_id}, not {self.id}"
            )
        if document.id in self.documents:
            raise ConflictError(f"document with ID {document.id} already exists")

        pooled = {page.id for page in self.unassigned_pages}
        incoming: set[str] = set()
        for page in document.pages:
            if page.id in incoming:
                raise ConflictError(
                    f"page {page.id} appears more than once in document {document.id}"
                )
            incoming.add(page.id)
            if page.is_assigned():
                raise ConflictError(
                    f"cannot add document with already assigned page {page.id}"
                )
            if page.id in pooled or self.document_for_page(page.id) is not None:
                raise ConflictError(f"page {page.id} already belongs to split {self.id}")
            if page.split_id != self.id:
                raise ValidationError(f"page {page.id} belongs to another split")

        for page in document.pages:
            page.assign_to_document(document.id)
        self.documents[document.id] = document

    def remove_document(self, document_id: str) -> None:
        """Drop a document and return its pages to the unassigned pool."""
        self._ensure_editable("remove document from")
        document = self.find_document(document_id)
        removed = document.remove_pages(document.page_ids())
        del self.documents[document_id]
        self._return_to_pool(removed)

    def move_pages(
        self,
        from_document_id: str,
        to_document_id: str,
        page_ids: Iterable[str],
    ) -> None:
        """Move pages between two documents, all or nothing.

        Raises:
            ConflictError: if the split is finalized.
            NotFoundError: if either document is missing, or none of the pages
                are in the source document.
            ValidationError: if a page is already in the target document.
        """
        self._ensure_editable("move pages in")
        source = self._get_document(from_document_id, role="source")
        target = self._get_document(to_document_id, role="target")

        requested = list(page_ids)
        for page_id in requested:
            if target.has_page(page_id):
                raise ValidationError(
                    f"cannot move page {page_id}: already in target document {target.id}"
                )

        removed = source.remove_pages(requested)
        try:
            target.add_pages(removed)
        except DomainError:
            source.add_pages(removed)
            raise

    def update_document_metadata(self, document_id: str, metadata: DocumentMetadata) -> None:
        self._ensure_editable("update document in")
        self.find_document(document_id).update_metadata(metadata)

    def create_document(
        self,
        *,
        name: str,
        classification: str,
        filename: str,
        page_ids: Iterable[str],
        short_description: str = "",
        document_id: str | None = None,
    ) -> Document:
        """Create a new document from pages in the unassigned pool.

        Requested IDs that are not in the pool are ignored.

        Raises:
            ConflictError: if finalized or the document ID is taken.
            ValidationError: if no requested page is unassigned, or the new
                document is invalid. The pool is left untouched on failure.
        """
        self._ensure_editable("create document in")
        wanted = set(page_ids)
        picked = [page for page in self.unassigned_pages if page.id in wanted]
        if not picked:
            raise ValidationError("no valid pages specified for new document")

        document = Document.create(
            document_id=document_id or str(uuid.uuid4()),
            split_id=self.id,
            name=name,
            classification=classification,
            filename=filename,
            short_description=short_description,
            pages=picked,
        )

        previous_pool = self.unassigned_pages
        self.unassigned_pages = [page for page in previous_pool if page.id not in wanted]
        try:
            self.add_document(document)
        except DomainError:
            self.unassigned_pages = previous_pool
            raise
        return document

    def assign_pages(self, document_id: str, page_ids: Iterable[str]) -> None:
        """Move pages from the unassigned pool into an existing document.

        Raises:
            ConflictError: if the split is finalized.
            NotFoundError: if the document is missing or none of the pages are
                in the unassigned pool.
        """
        self._ensure_editable("assign pages in")
        document = self.find_document(document_id)
        wanted = set(page_ids)
        picked = [page for page in self.unassigned_pages if page.id in wanted]
        if not picked:
            raise NotFoundError("none of the specified pages are unassigned")

        document.add_pages(picked)
        picked_ids = {page.id for page in picked}
        self.unassigned_pages = [
            page for page in self.unassigned_pages if page.id not in picked_ids
        ]

    def unassign_pages(self, document_id: str, page_ids: Iterable[str]) -> list[Page]:
        """Move pages from a document back to the unassigned pool."""
        self._ensure_editable("unassign pages in")
        removed = self.find_document(document_id).remove_pages(page_ids)
        self._return_to_pool(removed)
        return removed

    def finalize(self, now: datetime | None = None) -> None:
        """Lock the split. The transition is one-way.

        Raises:
            ConflictError: if already finalized.
            ValidationError: if unassigned pages remain or the split is invalid.
        """
        if self.is_finalized():
            raise ConflictError(f"split {self.id} already finalized")
        if self.unassigned_pages:
            raise ValidationError(
                f"cannot finalize split with {len(self.unassigned_pages)} unassigned pages"
            )
        try:
            self.validate()
        except ValidationError as exc:
            raise ValidationError("invalid split") from exc

        self.status = SplitStatus.FINALIZED
        self.finalized_at = now or _utcnow()

    def _ensure_editable(self, action: str) -> None:
        if self.is_finalized():
            raise ConflictError(f"cannot {action} finalized split {self.id}")

    def _get_document(self, document_id: str, role: str) -> Document:
        document = self.documents.get(document_id)
        if document is None:
            raise NotFoundError(f"{role} document {document_id} not found")
        return document

    def _return_to_pool(self, pages: list[Page]) -> None:
        self.unassigned_pages.extend(pages)
        self.unassigned_pages.sort(key=lambda page: page.page_number)
