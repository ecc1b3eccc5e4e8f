"""Search service orchestrating an embedding provider and a phrase store."""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterable, Optional, Sequence

from .config import SearchSettings
from .contracts import EmbeddingProviderPort, PhraseStorePort
from .errors import DimensionMismatchError, PhraseSearchError, SearchTimeoutError
from .retry import call_with_retry, remaining_time
from .types import PhraseHit, phrase_id

logger = logging.getLogger(__name__)


class SearchService:
    """End-to-end `add_phrase` / `search` operations over injected ports.

    The request deadline bounds embedding and retries, and is checked before
    every store call. A synchronous store call is not interrupted once it
    starts: a `search` whose store answer arrives after the deadline raises
    `SearchTimeoutError`, while an `add_phrase` write that finishes late is
    kept. Use `AsyncSearchService` to bound the store call itself.
    """

    def __init__(
        self,
        provider: EmbeddingProviderPort,
        store: PhraseStorePort,
        *,
        settings: SearchSettings | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Create a search service.

        Args:
            provider: Embedding provider used for phrases and queries.
            store: Long-lived phrase store handle, created by the host.
            settings: Index schema, top-k, timeout, and retry policy.
            sleep: Backoff sleep function (injectable for tests).
            clock: Monotonic clock used for deadlines.
        """

        self.provider = provider
        self.store = store
        self.settings = settings or SearchSettings()
        self._sleep = sleep
        self._clock = clock

        provider_dimension = getattr(provider, "dimension", None)
        if provider_dimension is not None and provider_dimension != self.settings.dimension:
            raise DimensionMismatchError(self.settings.dimension, provider_dimension)

    @property
    def index_name(self) -> str:
        return self.settings.index_name

    def ensure_index(self) -> None:
        """Create the configured index, or verify an existing one matches."""

        self.store.ensure_index(
            self.settings.index_name,
            self.settings.dimension,
            self.settings.metric,
        )

    def add_phrase(self, text: str, *, timeout: Optional[float] = None) -> str:
        """Embed and store `text`; return its deterministic phrase id.

        Embedding completes before any write, so a failed embedding leaves the
        index untouched. Re-adding identical text overwrites the same record.
        """

        _require_text(text)
        deadline = self._deadline(timeout)
        item_id = phrase_id(text)
        try:
            vector = self._embed(text, deadline, operation=f"embed phrase {item_id[:12]}")
            if self._expired(deadline):
                raise SearchTimeoutError(
                    f"add_phrase timed out before writing phrase {item_id[:12]}"
                )
            self.store.upsert(self.settings.index_name, item_id, text, vector)
        except PhraseSearchError as exc:
            logger.error(
                "add_phrase failed for %s in index %r: %s",
                item_id[:12],
                self.settings.index_name,
                exc,
            )
            raise
        logger.debug("Stored phrase %s in index %r", item_id[:12], self.settings.index_name)
        return item_id

    def add_phrases(
        self, texts: Iterable[str], *, timeout: Optional[float] = None
    ) -> list[str]:
        """Add phrases one at a time, in order; stops at the first failure."""

        return [self.add_phrase(text, timeout=timeout) for text in texts]

    def search(
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
            vector = self._embed(text, deadline, operation="embed query")
            if self._expired(deadline):
                raise SearchTimeoutError("search timed out before querying the index")
            hits = self.store.knn_query(self.settings.index_name, vector, top_k)
            if self._expired(deadline):
                raise SearchTimeoutError("search timed out waiting for the index")
        except PhraseSearchError as exc:
            logger.error("search failed in index %r: %s", self.settings.index_name, exc)
            raise
        logger.debug(
            "search returned %d hit(s) from index %r", len(hits), self.settings.index_name
        )
        return hits

    def _embed(
        self, text: str, deadline: Optional[float], *, operation: str
    ) -> Sequence[float]:
        return call_with_retry(
            lambda remaining: self.provider.embed(text, timeout=remaining),
            self.settings.retry,
            deadline=deadline,
            clock=self._clock,
            sleep=self._sleep,
            operation=operation,
        )

    def _deadline(self, timeout: Optional[float]) -> Optional[float]:
        effective = self.settings.timeout if timeout is None else timeout
        if effective is None:
            return None
        if effective <= 0:
            raise ValueError("timeout must be > 0")
        return self._clock() + effective

    def _expired(self, deadline: Optional[float]) -> bool:
        remaining = remaining_time(deadline, self._clock)
        return remaining is not None and remaining <= 0


def _require_text(text: str) -> None:
    if not isinstance(text, str) or not text.strip():
        raise ValueError("text must be a non-empty string")
