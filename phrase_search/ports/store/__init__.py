"""Phrase store adapter exports."""

from .in_memory import InMemoryPhraseStore
from .sqlite import SQLitePhraseStore

try:  # pragma: no cover - depends on optional dependency
    from .faiss import FaissPhraseStore
except ImportError:  # pragma: no cover - import side effect control
    FaissPhraseStore = None  # type: ignore[assignment,misc]

try:  # pragma: no cover - depends on optional dependency
    from .qdrant import QdrantPhraseStore
except ImportError:  # pragma: no cover - import side effect control
    QdrantPhraseStore = None  # type: ignore[assignment,misc]

__all__ = [
    "InMemoryPhraseStore",
    "SQLitePhraseStore",
    "FaissPhraseStore",
    "QdrantPhraseStore",
]
