"""
Error taxonomy for catalog operations.

Each error carries a stable code, the names of the offending entities and
the HTTP status an outer API layer should map it to.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable

from pydantic import BaseModel


class ErrorCode(str, Enum):
    FEATURE_NAME_EMPTY = "FEATURE_NAME_EMPTY"
    FEATURE_DUPLICATE = "FEATURE_DUPLICATE"
    FEATURE_NOT_FOUND = "FEATURE_NOT_FOUND"
    FEATURE_HAS_RECURSIVE_DEPENDENCY = "FEATURE_HAS_RECURSIVE_DEPENDENCY"
    FEATURE_NOT_DELETABLE_DUE_TO_REFERENCES = "FEATURE_NOT_DELETABLE_DUE_TO_REFERENCES"
    TAG_INVALID = "TAG_INVALID"
    CONCURRENT_MODIFICATION = "CONCURRENT_MODIFICATION"
    INTERNAL_INVARIANT_VIOLATION = "INTERNAL_INVARIANT_VIOLATION"


class ErrorResponse(BaseModel):
    code: ErrorCode
    message: str
    names: list[str] = []


class ServiceError(Exception):
    """Base exception for catalog failures."""
    code: ErrorCode = ErrorCode.INTERNAL_INVARIANT_VIOLATION
    status_code: int = 500

    def __init__(self, message: str, names: Iterable[str] = ()):
        super().__init__(message)
        self.message = message
        self.names = list(names)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(code=self.code, message=self.message, names=self.names)


class BadRequestError(ServiceError):
    """Rejected user input; nothing was written."""
    status_code = 400


class NotFoundError(ServiceError):
    status_code = 404


class FeatureNameEmptyError(BadRequestError):
    code = ErrorCode.FEATURE_NAME_EMPTY

    def __init__(self):
        super().__init__("Feature name must not be empty")


class DuplicateFeatureError(BadRequestError):
    code = ErrorCode.FEATURE_DUPLICATE

    def __init__(self, name: str):
        super().__init__(f"Feature already exists: {name}", [name])


class FeatureNotFoundError(NotFoundError):
    """The feature an operation targets does not exist."""
    code = ErrorCode.FEATURE_NOT_FOUND

    def __init__(self, names: Iterable[str]):
        names = list(names)
        super().__init__("Feature(s) not found: " + ", ".join(names), names)


class DependencyNotFoundError(BadRequestError):
    """A requested dependency name does not resolve to a feature."""
    code = ErrorCode.FEATURE_NOT_FOUND

    def __init__(self, names: Iterable[str]):
        names = list(names)
        super().__init__("Feature(s) not found: " + ", ".join(names), names)


class InvalidTagError(BadRequestError):
    code = ErrorCode.TAG_INVALID

    def __init__(self, tag: str, reason: str):
        super().__init__(f"Invalid tag {tag!r}: {reason}", [tag])


class RecursiveDependencyError(BadRequestError):
    code = ErrorCode.FEATURE_HAS_RECURSIVE_DEPENDENCY

    def __init__(self, names: Iterable[str]):
        names = list(names)
        super().__init__("Recursive dependencies found: " + ", ".join(names), names)


class FeatureNotDeletableError(BadRequestError):
    code = ErrorCode.FEATURE_NOT_DELETABLE_DUE_TO_REFERENCES

    def __init__(self, names: Iterable[str]):
        names = list(names)
        super().__init__(
            "Can't delete feature because it is referenced from other feature(s): "
            + ", ".join(names),
            names,
        )


class ConcurrentModificationError(ServiceError):
    """Raised when a concurrent transaction won a conflicting write. Retryable."""
    code = ErrorCode.CONCURRENT_MODIFICATION
    status_code = 409


class InternalInvariantViolation(ServiceError):
    """
    Stored graph is corrupted (cycle or dangling edge).

    Never caused by user input: signals a bug or out-of-band data change.
    """
    code = ErrorCode.INTERNAL_INVARIANT_VIOLATION
    status_code = 500
