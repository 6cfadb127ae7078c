import pymupdf

from docsplit.domain.document import Document
from docsplit.render.base import BaseDocumentRenderer, RenderedDocument
from docsplit.render.exceptions import RenderError


class PyMuPdfRenderer(BaseDocumentRenderer):
    """Renders a document as a PDF with PyMuPDF, one PDF page per page."""

    def render(self, document: Document) -> RenderedDocument:
        if not document.pages:
            raise RenderError(f"document {document.id} has no pages to render")
        try:
            with pymupdf.open() as pdf:  # type: ignore[no-untyped-call]
                pdf.set_metadata({"title": document.name, "subject": document.classification})
                for page in document.pages:
                    pdf_page = pdf.new_page()
                    pdf_page.insert_text((72, 72), document.filename, fontsize=16)
                    pdf_page.insert_text(
                        (72, 100), f"Page {page.page_number}: {page.url}", fontsize=10
                    )
                data = pdf.tobytes()
        except Exception as exc:
            raise RenderError(f"pymupdf rendering failed: {exc}") from exc
        return RenderedDocument(
            filename=document.filename,
            content_type=self.content_type,
            data=data,
        )
