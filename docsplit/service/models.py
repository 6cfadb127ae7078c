from dataclasses import dataclass, field

from docsplit.domain.document import Document
from docsplit.domain.page import Page
from docsplit.domain.split import Split, SplitStatus


@dataclass(frozen=True)
class PageView:
    id: str
    page_number: int
    url: str

    @classmethod
    def from_page(cls, page: Page) -> "PageView":
        return cls(id=page.id, page_number=page.page_number, url=page.url)


@dataclass(frozen=True)
class DocumentView:
    """Read-only snapshot of a document handed back to callers."""

    id: str
    split_id: str
    name: str
    classification: str
    filename: str
    short_description: str
    start_page: str
    end_page: str
    pages: list[PageView] = field(default_factory=list)

    @classmethod
    def from_document(cls, document: Document) -> "DocumentView":
        return cls(
            id=document.id,
            split_id=document.split_id,
            name=document.name,
            classification=document.classification,
            filename=document.filename,
            short_description=document.short_description,
            start_page=document.start_page,
            end_page=document.end_page,
            pages=[PageView.from_page(page) for page in document.pages],
        )


@dataclass(frozen=True)
class SplitView:
    id: str
    client_id: str
    status: SplitStatus
    documents: list[DocumentView] = field(default_factory=list)
    unassigned_pages: list[PageView] = field(default_factory=list)

    @classmethod
    def from_split(cls, split: Split) -> "SplitView":
        return cls(
            id=split.id,
            client_id=split.client_id,
            status=split.status,
            documents=[DocumentView.from_document(d) for d in split.documents.values()],
            unassigned_pages=[PageView.from_page(p) for p in split.unassigned_pages],
        )


@dataclass(frozen=True)
class MovePagesRequest:
    split_id: str
    from_document_id: str
    to_document_id: str
    page_ids: list[str]


@dataclass(frozen=True)
class MovePagesResult:
    from_document: DocumentView
    to_document: DocumentView


@dataclass(frozen=True)
class CreateDocumentRequest:
    split_id: str
    name: str
    classification: str
    filename: str
    page_ids: list[str]
    short_description: str = ""


@dataclass(frozen=True)
class AssignPagesRequest:
    split_id: str
    document_id: str
    page_ids: list[str]
