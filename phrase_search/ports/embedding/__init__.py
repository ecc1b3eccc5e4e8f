"""Embedding provider adapter exports."""

from .hashing import HashingEmbeddingProvider
from .static import StaticEmbeddingProvider

try:  # pragma: no cover - depends on optional dependency
    from .openai import OpenAIEmbeddingProvider
except ImportError:  # pragma: no cover - import side effect control
    OpenAIEmbeddingProvider = None  # type: ignore[assignment,misc]

__all__ = [
    "HashingEmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "StaticEmbeddingProvider",
]
