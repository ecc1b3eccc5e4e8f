"""Public core API for phrase ids, codecs, stores contracts, and search services."""

from .config import SearchSettings
from .contracts import (
    AsyncEmbeddingProviderPort,
    AsyncPhraseStorePort,
    DatabasePort,
    EmbeddingProviderPort,
    PhraseStorePort,
)
from .errors import (
    DimensionMismatchError,
    IndexNotFoundError,
    MalformedVectorError,
    PermanentError,
    PhraseSearchError,
    ProviderUnavailableError,
    RateLimitedError,
    SchemaConflictError,
    SearchTimeoutError,
    TransientError,
)
from .metrics import VectorMetric, VectorMetricInput, distance, normalize_vector_metric
from .retry import RetryPolicy
from .search_service import SearchService
from .search_service_async import AsyncSearchService
from .types import IndexSchema, PhraseHit, PhraseRecord, normalize_phrase, phrase_id
from .vector_codec import decode_vector, encode_vector

__all__ = [
    "SearchSettings",
    "RetryPolicy",
    "SearchService",
    "AsyncSearchService",
    "PhraseStorePort",
    "AsyncPhraseStorePort",
    "EmbeddingProviderPort",
    "AsyncEmbeddingProviderPort",
    "DatabasePort",
    "PhraseSearchError",
    "TransientError",
    "PermanentError",
    "ProviderUnavailableError",
    "RateLimitedError",
    "SearchTimeoutError",
    "DimensionMismatchError",
    "SchemaConflictError",
    "MalformedVectorError",
    "IndexNotFoundError",
    "VectorMetric",
    "VectorMetricInput",
    "distance",
    "normalize_vector_metric",
    "IndexSchema",
    "PhraseHit",
    "PhraseRecord",
    "normalize_phrase",
    "phrase_id",
    "encode_vector",
    "decode_vector",
]
