from docsplit.config.settings import Settings
from docsplit.render.base import BaseDocumentRenderer
from docsplit.render.pymupdf_adapter import PyMuPdfRenderer
from docsplit.render.reportlab_adapter import ReportLabRenderer


class DocumentRendererFactory:
    """Creates the correct document renderer based on settings."""

    ADAPTERS: dict[str, type[BaseDocumentRenderer]] = {
        "pymupdf": PyMuPdfRenderer,
        "reportlab": ReportLabRenderer,
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseDocumentRenderer:
        engine = settings.render_engine.lower()
        adapter_cls = cls.ADAPTERS.get(engine)
        if adapter_cls is None:
            raise ValueError(
                f"Unknown render engine '{engine}'. Choose from: {list(cls.ADAPTERS)}"
            )
        return adapter_cls()
