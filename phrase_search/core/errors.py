"""Error taxonomy raised by codecs, stores, providers, and the search service."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .types import IndexSchema


class PhraseSearchError(Exception):
    """Base class for every phrase search failure.

    `kind` is a stable, host-facing name for the failure category.
    """

    kind = "phrase_search_error"
    retryable = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class TransientError(PhraseSearchError):
    """Failure that may succeed when retried with backoff."""

    kind = "transient_error"
    retryable = True


class PermanentError(PhraseSearchError):
    """Caller bug or data corruption; retrying does not help."""

    kind = "permanent_error"


class ProviderUnavailableError(TransientError):
    kind = "provider_unavailable"


class RateLimitedError(TransientError):
    kind = "rate_limited"

    def __init__(self, message: str, *, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class SearchTimeoutError(TransientError, TimeoutError):
    kind = "timeout"


class DimensionMismatchError(PermanentError, ValueError):
    kind = "dimension_mismatch"

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"Vector dimension mismatch: expected {expected}, got {actual}"
        )
        self.expected = expected
        self.actual = actual


class SchemaConflictError(PermanentError, ValueError):
    kind = "schema_conflict"

    def __init__(self, existing: IndexSchema, requested: IndexSchema) -> None:
        super().__init__(
            f"Index {existing.name!r} already exists with dimension="
            f"{existing.dimension}, metric={existing.metric.value}; requested "
            f"dimension={requested.dimension}, metric={requested.metric.value}"
        )
        self.existing = existing
        self.requested = requested


class MalformedVectorError(PermanentError, ValueError):
    kind = "malformed_vector"


class IndexNotFoundError(PhraseSearchError, KeyError):
    kind = "index_not_found"

    def __init__(self, name: str) -> None:
        super().__init__(f"Index does not exist: {name}")
        self.name = name
