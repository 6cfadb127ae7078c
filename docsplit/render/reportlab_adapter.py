import io

from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from docsplit.domain.document import Document
from docsplit.render.base import BaseDocumentRenderer, RenderedDocument
from docsplit.render.exceptions import RenderError


class ReportLabRenderer(BaseDocumentRenderer):
    """Renders a document as a PDF with ReportLab, one PDF page per page."""

    def render(self, document: Document) -> RenderedDocument:
        if not document.pages:
            raise RenderError(f"document {document.id} has no pages to render")
        try:
            buf = io.BytesIO()
            c = canvas.Canvas(buf, pagesize=letter)
            c.setTitle(document.name)
            c.setSubject(document.classification)
            for page in document.pages:
                c.setFont("Helvetica", 16)
                c.drawString(72, 720, document.filename)
                c.setFont("Helvetica", 10)
                c.drawString(72, 696, f"Page {page.page_number}: {page.url}")
                c.showPage()
            c.save()
        except Exception as exc:
            raise RenderError(f"reportlab rendering failed: {exc}") from exc
        return RenderedDocument(
            filename=document.filename,
            content_type=self.content_type,
            data=buf.getvalue(),
        )
