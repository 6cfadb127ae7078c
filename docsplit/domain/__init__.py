from docsplit.domain.document import Document, DocumentMetadata
from docsplit.domain.exceptions import (
    ConflictError,
    DomainError,
    ErrorKind,
    InternalError,
    NotFoundError,
    ValidationError,
    has_kind,
)
from docsplit.domain.page import Page
from docsplit.domain.split import Split, SplitStatus

__all__ = [
    "ConflictError",
    "Document",
    "DocumentMetadata",
    "DomainError",
    "ErrorKind",
    "InternalError",
    "NotFoundError",
    "Page",
    "Split",
    "SplitStatus",
    "ValidationError",
    "has_kind",
]
