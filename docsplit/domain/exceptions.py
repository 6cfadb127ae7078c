from enum import Enum


class ErrorKind(str, Enum):
    """Category of a domain error, independent of the raising type."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INTERNAL = "internal"


class DomainError(Exception):
    """Base exception for all split/document/page errors."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        if self.__cause__ is not None:
            return f"{self.kind.value}: {self.message}: {self.__cause__}"
        return f"{self.kind.value}: {self.message}"


class ValidationError(DomainError):
    """Raised on malformed input or a violated structural rule."""

    kind = ErrorKind.VALIDATION


class NotFoundError(DomainError):
    """Raised when a referenced split, document or page does not exist."""

    kind = ErrorKind.NOT_FOUND


class ConflictError(DomainError):
    """Raised when an operation is not permitted in the current state."""

    kind = ErrorKind.CONFLICT


class InternalError(DomainError):
    """Raised when storage or infrastructure fails."""

    kind = ErrorKind.INTERNAL


def has_kind(exc: BaseException, kind: ErrorKind) -> bool:
    """Return True if exc or any exception in its __cause__ chain is of kind."""
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        if isinstance(current, DomainError) and current.kind is kind:
            return True
        seen.add(id(current))
        current = current.__cause__
    return False
