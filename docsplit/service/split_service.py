from collections.abc import Callable
from contextlib import AbstractContextManager
from datetime import datetime, timezone

from docsplit.config.settings import Settings
from docsplit.database.unit_of_work import unit_of_work
from docsplit.domain.document import DocumentMetadata
from docsplit.domain.exceptions import ConflictError, NotFoundError
from docsplit.domain.ports import BaseSplitRepository, BaseUnitOfWork
from docsplit.domain.split import Split
from docsplit.logging.logger import Log
from docsplit.render.base import BaseDocumentRenderer, RenderedDocument
from docsplit.render.factory import DocumentRendererFactory
from docsplit.service.models import (
    AssignPagesRequest,
    CreateDocumentRequest,
    DocumentView,
    MovePagesRequest,
    MovePagesResult,
    SplitView,
)

UnitOfWorkFactory = Callable[[], AbstractContextManager[BaseUnitOfWork]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SplitService:
    """Runs each operator action on a split inside one unit of work.

    Every mutating call follows the same shape: open a unit of work, load the
    split, apply one aggregate method, save, commit. Anything that raises
    before the commit is rolled back by the unit of work.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        renderer: BaseDocumentRenderer,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._uow_factory = uow_factory
        self._renderer = renderer
        self._clock = clock

    def ingest_split(self, raw_json: str | bytes) -> str:
        """Create a draft split from the AI splitter's JSON and return its ID.

        Raises:
            ValidationError: if the JSON describes an invalid split.
            ConflictError: if a split with the same ID already exists, or one of
                its document IDs is already used by another split.
        """
        split = Split.from_json(raw_json, now=self._clock())
        with self._uow_factory() as uow:
            repo = uow.split_repository()
            if repo.get(split.id) is not None:
                raise ConflictError(f"split {split.id} already exists")
            repo.save(split)
            uow.commit()
        Log.info(f"Ingested {split}")
        return split.id

    def load_split(self, split_id: str) -> SplitView:
        with self._uow_factory() as uow:
            split = self._get_split(uow.split_repository(), split_id)
        return SplitView.from_split(split)

    def list_splits(self, client_id: str) -> list[SplitView]:
        with self._uow_factory() as uow:
            splits = uow.split_repository().list_by_client_id(client_id)
        return [SplitView.from_split(split) for split in splits]

    def update_document_metadata(
        self, document_id: str, metadata: DocumentMetadata
    ) -> DocumentView:
        with self._uow_factory() as uow:
            repo = uow.split_repository()
            split = self._get_split_by_document(repo, document_id)
            split.update_document_metadata(document_id, metadata)
            self._save(uow, split)
        Log.info(f"Updated metadata of document {document_id} in split {split.id}")
        return DocumentView.from_document(split.find_document(document_id))

    def move_pages(self, request: MovePagesRequest) -> MovePagesResult:
        with self._uow_factory() as uow:
            split = self._get_split(uow.split_repository(), request.split_id)
            split.move_pages(
                request.from_document_id, request.to_document_id, request.page_ids
            )
            self._save(uow, split)
        Log.info(
            f"Moved {len(request.page_ids)} pages from document {request.from_document_id} "
            f"to {request.to_document_id} in split {split.id}"
        )
        return MovePagesResult(
            from_document=DocumentView.from_document(
                split.find_document(request.from_document_id)
            ),
            to_document=DocumentView.from_document(
                split.find_document(request.to_document_id)
            ),
        )

    def create_document(self, request: CreateDocumentRequest) -> DocumentView:
        with self._uow_factory() as uow:
            split = self._get_split(uow.split_repository(), request.split_id)
            document = split.create_document(
                name=request.name,
                classification=request.classification,
                filename=request.filename,
                short_description=request.short_description,
                page_ids=request.page_ids,
            )
            self._save(uow, split)
        Log.info(f"Created document {document.id} in split {split.id}")
        return DocumentView.from_document(document)

    def assign_pages(self, request: AssignPagesRequest) -> DocumentView:
        with self._uow_factory() as uow:
            split = self._get_split(uow.split_repository(), request.split_id)
            split.assign_pages(request.document_id, request.page_ids)
            self._save(uow, split)
        Log.info(
            f"Assigned {len(request.page_ids)} pages to document {request.document_id}"
        )
        return DocumentView.from_document(split.find_document(request.document_id))

    def delete_document(self, document_id: str) -> None:
        with self._uow_factory() as uow:
            repo = uow.split_repository()
            split = self._get_split_by_document(repo, document_id)
            split.remove_document(document_id)
            self._save(uow, split)
        Log.info(f"Deleted document {document_id} from split {split.id}")

    def finalize_split(self, split_id: str) -> None:
        with self._uow_factory() as uow:
            split = self._get_split(uow.split_repository(), split_id)
            split.finalize(self._clock())
            self._save(uow, split)
        Log.info(f"Finalized split {split_id}")

    def download_document(self, document_id: str) -> RenderedDocument:
        with self._uow_factory() as uow:
            split = self._get_split_by_document(uow.split_repository(), document_id)
        document = split.find_document(document_id)
        return self._renderer.render(document)

    def _save(self, uow: BaseUnitOfWork, split: Split) -> None:
        split.touch(self._clock())
        uow.split_repository().save(split)
        uow.commit()

    def _get_split(self, repo: BaseSplitRepository, split_id: str) -> Split:
        split = repo.get(split_id)
        if split is None:
            raise NotFoundError(f"split {split_id} not found")
        return split

    def _get_split_by_document(self, repo: BaseSplitRepository, document_id: str) -> Split:
        split_id = repo.get_split_id_by_document_id(document_id)
        return self._get_split(repo, split_id)


def build_split_service(settings: Settings) -> SplitService:
    """Build a SplitService on the pooled database and configured renderer."""
    return SplitService(
        uow_factory=unit_of_work,
        renderer=DocumentRendererFactory.create(settings),
    )
