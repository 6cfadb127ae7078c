from collections.abc import Iterable
from dataclasses import dataclass, field

from docsplit.domain.exceptions import ConflictError, NotFoundError, ValidationError
from docsplit.domain.page import Page


@dataclass(frozen=True)
class DocumentMetadata:
    """Optional metadata changes. None means 'leave untouched'."""

    name: str | None = None
    classification: str | None = None
    short_description: str | None = None


@dataclass
class Document:
    """One contiguous logical sub-document (e.g. one W-2) within a split.

    Pages are kept sorted by page number; start_page/end_page hold the URL of
    the first and last page and are recomputed on every page-set change.
    """

    id: str
    split_id: str
    name: str
    classification: str
    filename: str
    short_description: str = ""
    pages: list[Page] = field(default_factory=list)
    start_page: str = ""
    end_page: str = ""

    def __post_init__(self) -> None:
        self._refresh_page_range()

    @classmethod
    def create(
        cls,
        *,
        document_id: str,
        split_id: str,
        name: str,
        classification: str,
        filename: str,
        short_description: str,
        pages: Iterable[Page],
    ) -> "Document":
        """Build and validate a new document.

        Pages are not assigned here; attaching the document to a split does it.

        Raises:
            ValidationError: if the resulting document is invalid.
        """
        document = cls(
            id=document_id,
            split_id=split_id,
            name=name,
            classification=classification,
            filename=filename,
            short_description=short_description,
            pages=list(pages),
        )
        try:
            document.validate()
        except ValidationError as exc:
            raise ValidationError(f"invalid document {document_id!r}") from exc
        return document

    def validate(self) -> None:
        if not self.id:
            raise ValidationError("document id is required")
        if not self.split_id:
            raise ValidationError("split id is required")
        if not self.name:
            raise ValidationError("document name is required")
        if not self.classification:
            raise ValidationError("document classification is required")
        if not self.filename:
            raise ValidationError("document filename is required")
        if not self.pages:
            raise ValidationError("document must have at least one page")
        for page in self.pages:
            try:
                page.validate()
            except ValidationError as exc:
                raise ValidationError(f"invalid page in document {self.id}") from exc

    def page_ids(self) -> list[str]:
        return [page.id for page in self.pages]

    def has_page(self, page_id: str) -> bool:
        return any(page.id == page_id for page in self.pages)

    def add_pages(self, pages: Iterable[Page]) -> None:
        """Assign pages to this document, all or nothing.

        Every page is checked before any is touched, so a failure leaves both
        this document and the incoming pages unchanged.

        Raises:
            ValidationError: if a page is already assigned or duplicated.
        """
        incoming = list(pages)
        seen = set(self.page_ids())
        for page in incoming:
            try:
                page.ensure_unassigned()
            except ConflictError as exc:
                raise ValidationError(
                    f"failed to assign page {page.id} to document {self.id}"
                ) from exc
            if page.id in seen:
                raise ValidationError(f"page {page.id} is already in document {self.id}")
            seen.add(page.id)

        for page in incoming:
            page.assign_to_document(self.id)
            self.pages.append(page)
        self._refresh_page_range()

    def remove_pages(self, page_ids: Iterable[str]) -> list[Page]:
        """Detach the requested pages and return them, unassigned.

        Unknown IDs are ignored as long as at least one matches. An empty
        request is a no-op.

        Raises:
            NotFoundError: if none of the requested pages are in this document.
        """
        wanted = set(page_ids)
        if not wanted:
            return []

        removed = [page for page in self.pages if page.id in wanted]
        if not removed:
            raise NotFoundError(
                f"none of the specified pages found in document {self.id}"
            )

        self.pages = [page for page in self.pages if page.id not in wanted]
        for page in removed:
            page.unassign()
        self._refresh_page_range()
        return removed

    def update_metadata(self, metadata: DocumentMetadata) -> None:
        if metadata.name is not None:
            self.name = metadata.name
        if metadata.classification is not None:
            self.classification = metadata.classification
        if metadata.short_description is not None:
            self.short_description = metadata.short_description

    def _refresh_page_range(self) -> None:
        self.pages.sort(key=lambda page: page.page_number)
        if self.pages:
            self.start_page = self.pages[0].url
            self.end_page = self.pages[-1].url
        else:
            self.start_page = ""
            self.end_page = ""
