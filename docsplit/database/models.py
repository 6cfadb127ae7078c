from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class SplitRecord:
    """Represents a row from the splits table."""

    id: str
    client_id: str
    status: str
    created_at: datetime
    updated_at: datetime
    finalized_at: datetime | None = None


@dataclass(frozen=True)
class DocumentRecord:
    """Represents a row from the documents table."""

    id: str
    split_id: str
    name: str
    classification: str
    filename: str
    short_description: str
    start_page: str
    end_page: str


@dataclass(frozen=True)
class PageRecord:
    """Represents a row from the pages table. document_id NULL means unassigned."""

    id: str
    split_id: str
    document_id: str | None
    page_number: int
    url: str
