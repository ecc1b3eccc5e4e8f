"""Async search service with per-step timeouts and cooperative cancellation."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Iterable, Optional, Sequence

from ._async_utils import _call_port
from .config import SearchSettings
from .contracts import (
    AsyncEmbeddingProviderPort,
    AsyncPhraseStorePort,
    EmbeddingProviderPort,
    PhraseStorePort,
)
from .errors import DimensionMismatchError, PhraseSearchError, SearchTimeoutError
from .retry import RETRYABLE_ERRORS, next_delay, time_left
from .search_service import _require_text
from .types import PhraseHit, phrase_id

logger = logging.getLogger(__name__)


class AsyncSearchService:
    """Async `add_phrase` / `search` over sync or async ports.

    Sync port methods run in `asyncio.to_thread`. Every blocking step is
    bounded by the remaining request deadline.

    Known limitation: a timeout or cancellation that arrives after the store
    write has been dispatched is not rolled back. The phrase may be stored
    even though `add_phrase` raised; re-adding it is harmless because writes
    are idempotent.
    """

    def __init__(
        self,
        provider: EmbeddingProviderPort | AsyncEmbeddingProviderPort,
        store: PhraseStorePort | AsyncPhraseStorePort,
        *,
        settings: SearchSettings | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.provider = provider
        self.store = store
        self.settings = settings or SearchSettings()
        self._sleep = sleep
        self._clock = clock

        provider_dimension = getattr(provider, "dimension", None)
        if provider_dimension is not None and provider_dimension != self.settings.dimension:
            raise DimensionMismatchError(self.settings.dimension, provider_dimension)

    async def ensure_index(self, *, timeout: Optional[float] = None) -> None:
        """Create the configured index, or verify an existing one matches."""

        deadline = self._deadline(timeout)
        await self._bounded(
            _call_port(
                self.store.ensure_index,
                self.settings.index_name,
                self.settings.dimension,
                self.settings.metric,
            ),
            deadline,
            "ensure_index",
        )

    async def add_phrase(self, text: str, *, timeout: Optional[float] = None) -> str:
        """Embed and store `text`; return its deterministic phrase id."""

        _require_text(text)
        deadline = self._deadline(timeout)
        item_id = phrase_id(text)
        try:
            vector = await self._embed(text, deadline, f"embed phrase {item_id[:12]}")
            await self._bounded(
                _call_port(
                    self.store.upsert,
                    self.settings.index_name,
                    item_id,
                    text,
                    vector,
                ),
                deadline,
                f"store phrase {item_id[:12]}",
            )
        except PhraseSearchError as exc:
            logger.error(
                "add_phrase failed for %s in index %r: %s",
                item_id[:12],
                self.settings.index_name,
                exc,
            )
            raise
        return item_id

    async def add_phrases(
        self, texts: Iterable[str], *, timeout: Optional[float] = None
    ) -> list[str]:
        """Add phrases sequentially, in order; stops at the first failure."""

        return [await self.add_phrase(text, timeout=timeout) for text in texts]

    async def search(
        self,
        text: str,
        k: Optional[int] = None,
        *,
        timeout: Optional[float] = None,
    ) -> list[PhraseHit]:
        """Return up to `k` stored phrases nearest to `text`, closest first."""

        _require_text(text)
        top_k = self.settings.top_k if k is None else k
        if top_k < 0:
            raise ValueError("k must be >= 0")
        deadline = self._deadline(timeout)
        try:
            vector = await self._embed(text, deadline, "embed query")
            hits = await self._bounded(
                _call_port(self.store.knn_query, self.settings.index_name, vector, top_k),
                deadline,
                "knn query",
            )
        except PhraseSearchError as exc:
            logger.error("search failed in index %r: %s", self.settings.index_name, exc)
            raise
        return list(hits)

    async def _embed(
        self, text: str, deadline: Optional[float], operation: str
    ) -> Sequence[float]:
        policy = self.settings.retry
        attempt = 1
        while True:
            remaining = self._remaining(deadline, operation)
            try:
                return await self._bounded(
                    _call_port(self.provider.embed, text, timeout=remaining),
                    deadline,
                    operation,
                )
            except RETRYABLE_ERRORS as exc:
                delay = next_delay(
                    policy,
                    attempt,
                    exc,
                    deadline=deadline,
                    clock=self._clock,
                    operation=operation,
                )
                if delay is None:
                    raise
                await self._sleep(delay)
                attempt += 1

    async def _bounded(
        self, awaitable: Awaitable[Any], deadline: Optional[float], operation: str
    ) -> Any:
        try:
            remaining = self._remaining(deadline, operation)
        except SearchTimeoutError:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise
        try:
            return await asyncio.wait_for(awaitable, timeout=remaining)
        except asyncio.TimeoutError as exc:
            if isinstance(exc, SearchTimeoutError):
                raise
            raise SearchTimeoutError(f"{operation} timed out") from exc

    def _remaining(self, deadline: Optional[float], operation: str) -> Optional[float]:
        return time_left(deadline, self._clock, operation)

    def _deadline(self, timeout: Optional[float]) -> Optional[float]:
        effective = self.settings.timeout if timeout is None else timeout
        if effective is None:
            return None
        if effective <= 0:
            raise ValueError("timeout must be > 0")
        return self._clock() + effective
