from abc import ABC, abstractmethod
from dataclasses import dataclass

from docsplit.domain.document import Document


@dataclass(frozen=True)
class RenderedDocument:
    """Downloadable representation of a document."""

    filename: str
    content_type: str
    data: bytes


class BaseDocumentRenderer(ABC):
    """Contract for all document rendering adapters."""

    content_type: str = "application/pdf"

    @abstractmethod
    def render(self, document: Document) -> RenderedDocument:
        """Render a document to bytes for download.

        Args:
            document: The document to render, pages already in order.

        Returns:
            RenderedDocument with the document's filename, content type and data.

        Raises:
            RenderError: if rendering fails for any reason.
        """
