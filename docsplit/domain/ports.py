from abc import ABC, abstractmethod

from docsplit.domain.split import Split


class BaseSplitRepository(ABC):
    """Contract for persisting the split aggregate."""

    @abstractmethod
    def get(self, split_id: str) -> Split | None:
        """Load a split with its documents and unassigned pages.

        Returns:
            The split, or None if no split with this ID exists.

        Raises:
            InternalError: on storage failure.
        """

    @abstractmethod
    def save(self, split: Split) -> None:
        """Bring storage in line with the in-memory aggregate.

        Rows for documents and pages no longer in the aggregate are deleted.

        Raises:
            ConflictError: if a document or page ID is already used by
                another split.
            InternalError: on storage failure. The surrounding transaction is
                left for the caller to roll back.
        """

    @abstractmethod
    def delete(self, split_id: str) -> None:
        """Delete a split and all of its documents and pages."""

    @abstractmethod
    def list_by_client_id(self, client_id: str) -> list[Split]:
        """Return all splits of a client, newest first."""

    @abstractmethod
    def get_split_id_by_document_id(self, document_id: str) -> str:
        """Return the ID of the split that owns a document.

        Raises:
            NotFoundError: if no such document exists.
        """


class BaseUnitOfWork(ABC):
    """One atomic transaction exposing one split repository."""

    @abstractmethod
    def split_repository(self) -> BaseSplitRepository:
        raise NotImplementedError

    @abstractmethod
    def commit(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def rollback(self) -> None:
        raise NotImplementedError
