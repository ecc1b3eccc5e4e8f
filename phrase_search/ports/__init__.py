"""Public port exports for concrete adapter implementations."""

from .db_api import Database, Dialect, SQLiteDialect
from .embedding import (
    HashingEmbeddingProvider,
    OpenAIEmbeddingProvider,
    StaticEmbeddingProvider,
)
from .store import (
    FaissPhraseStore,
    InMemoryPhraseStore,
    QdrantPhraseStore,
    SQLitePhraseStore,
)

__all__ = [
    "Database",
    "Dialect",
    "SQLiteDialect",
    "InMemoryPhraseStore",
    "SQLitePhraseStore",
    "FaissPhraseStore",
    "QdrantPhraseStore",
    "HashingEmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "StaticEmbeddingProvider",
]
