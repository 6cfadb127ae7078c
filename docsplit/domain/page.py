import re
import uuid
from dataclasses import dataclass

from docsplit.domain.exceptions import ConflictError, ValidationError

_PAGE_URL_PATTERN = re.compile(r"page_(\d+)\.png")


def parse_page_number(url: str) -> int:
    """Extract the 1-based page number from a page URL like 'page_3.png'.

    Only the last path segment is inspected, so full URLs are accepted.

    Raises:
        ValidationError: if the URL does not follow the naming pattern.
    """
    segment = url.rsplit("/", 1)[-1]
    match = _PAGE_URL_PATTERN.fullmatch(segment)
    if match is None:
        raise ValidationError(f"invalid page URL format: {url!r}")
    number = int(match.group(1))
    if number < 1:
        raise ValidationError(f"page number must be >= 1 in URL {url!r}")
    return number


@dataclass
class Page:
    """Metadata for one scanned page. Content lives outside the database."""

    id: str
    split_id: str
    page_number: int
    url: str
    document_id: str | None = None

    @classmethod
    def from_url(cls, split_id: str, url: str) -> "Page":
        """Build a new unassigned page with a generated ID.

        Raises:
            ValidationError: if the URL is malformed or the page is invalid.
        """
        page = cls(
            id=str(uuid.uuid4()),
            split_id=split_id,
            page_number=parse_page_number(url),
            url=url,
        )
        page.validate()
        return page

    def validate(self) -> None:
        if not self.id:
            raise ValidationError("page id is required")
        if not self.split_id:
            raise ValidationError("split id is required")
        if not self.url:
            raise ValidationError("url is required")

    def ensure_unassigned(self) -> None:
        """Raises ConflictError if the page already belongs to a document."""
        if self.is_assigned():
            raise ConflictError(
                f"page {self.id} is already assigned to document {self.document_id}"
            )

    def assign_to_document(self, document_id: str) -> None:
        self.ensure_unassigned()
        self.document_id = document_id

    def unassign(self) -> None:
        self.document_id = None

    def is_assigned(self) -> bool:
        return self.document_id is not None
