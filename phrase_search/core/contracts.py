"""Core port contracts used by adapters and the search service."""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Any, Awaitable, List, Optional, Protocol, Sequence

from .metrics import VectorMetricInput
from .types import IndexSchema, MaybeRow, PhraseHit, PhraseRecord, QueryParams, RowMapping


class DialectPort(Protocol):
    """Dialect behavior required by SQL-backed stores."""

    name: str
    paramstyle: str

    def q(self, ident: str) -> str: ...

    def placeholder(self, key: str) -> str: ...

    def insert_sql(
        self, table: str, columns: Sequence[str], *, ignore_conflicts: bool = False
    ) -> str: ...

    def upsert_sql(self, table: str, columns: Sequence[str], key: str) -> str: ...

    def in_clause(
        self, column: str, values: Sequence[Any], *, prefix: str = "p"
    ) -> tuple[str, dict[str, Any]]: ...


class DatabasePort(Protocol):
    """Database adapter behavior required by `SQLitePhraseStore`."""

    dialect: DialectPort

    def transaction(self) -> AbstractContextManager[None]: ...

    def execute(self, sql: str, params: QueryParams = None) -> Any: ...

    def fetchone(self, sql: str, params: QueryParams = None) -> MaybeRow: ...

    def fetchall(self, sql: str, params: QueryParams = None) -> List[RowMapping]: ...


class PhraseStorePort(Protocol):
    """Phrase index behavior required by `SearchService`."""

    exact: bool

    def ensure_index(
        self,
        name: str,
        dimension: int,
        metric: VectorMetricInput = ...,
    ) -> None: ...

    def describe_index(self, name: str) -> IndexSchema: ...

    def upsert(
        self,
        index_name: str,
        phrase_id: str,
        text: str,
        vector: Sequence[float],
    ) -> None: ...

    def knn_query(
        self,
        index_name: str,
        vector: Sequence[float],
        k: int,
    ) -> List[PhraseHit]: ...

    def fetch(
        self, index_name: str, ids: Optional[Sequence[str]] = None
    ) -> List[PhraseRecord]: ...

    def count(self, index_name: str) -> int: ...


class AsyncPhraseStorePort(Protocol):
    """Async phrase index behavior accepted by `AsyncSearchService`."""

    exact: bool

    async def ensure_index(
        self,
        name: str,
        dimension: int,
        metric: VectorMetricInput = ...,
    ) -> None: ...

    async def describe_index(self, name: str) -> IndexSchema: ...

    async def upsert(
        self,
        index_name: str,
        phrase_id: str,
        text: str,
        vector: Sequence[float],
    ) -> None: ...

    async def knn_query(
        self,
        index_name: str,
        vector: Sequence[float],
        k: int,
    ) -> List[PhraseHit]: ...

    async def fetch(
        self, index_name: str, ids: Optional[Sequence[str]] = None
    ) -> List[PhraseRecord]: ...

    async def count(self, index_name: str) -> int: ...


class EmbeddingProviderPort(Protocol):
    """Black-box text embedding capability.

    `dimension` is `None` when the provider only learns it from the first call.
    Implementations must not retry; they raise `RateLimitedError`,
    `ProviderUnavailableError`, or `SearchTimeoutError` and let the caller decide.
    """

    dimension: Optional[int]

    def embed(self, text: str, *, timeout: Optional[float] = None) -> Sequence[float]: ...


class AsyncEmbeddingProviderPort(Protocol):
    """Async variant of `EmbeddingProviderPort`."""

    dimension: Optional[int]

    def embed(
        self, text: str, *, timeout: Optional[float] = None
    ) -> Awaitable[Sequence[float]]: ...
