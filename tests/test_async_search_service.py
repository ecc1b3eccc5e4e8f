from __future__ import annotations

import asyncio
import inspect
import unittest
from typing import Optional, Sequence

from phrase_search import (
    AsyncSearchService,
    IndexNotFoundError,
    InMemoryPhraseStore,
    RateLimitedError,
    SearchSettings,
    SearchTimeoutError,
    StaticEmbeddingProvider,
    phrase_id,
)
from tests.service_fakes import SCENARIO_VECTORS, FakeClock, ScriptedProvider


class _AsyncStaticProvider:
    def __init__(self, delay: float = 0.0) -> None:
        self._delegate = StaticEmbeddingProvider(SCENARIO_VECTORS)
        self.dimension = self._delegate.dimension
        self._delay = delay

    async def embed(self, text: str, *, timeout: Optional[float] = None) -> Sequence[float]:
        if self._delay:
            await asyncio.sleep(self._delay)
        return self._delegate.embed(text)


class _AsyncInMemoryPhraseStore:
    exact = True

    def __init__(self) -> None:
        self._delegate = InMemoryPhraseStore()

    async def ensure_index(self, *args, **kwargs) -> None:  # noqa: ANN002,ANN003
        self._delegate.ensure_index(*args, **kwargs)

    async def describe_index(self, name):  # noqa: ANN001,ANN201
        return self._delegate.describe_index(name)

    async def upsert(self, index_name, phrase_id, text, vector) -> None:  # noqa: ANN001
        self._delegate.upsert(index_name, phrase_id, text, vector)

    async def knn_query(self, index_name, vector, k):  # noqa: ANN001,ANN201
        return self._delegate.knn_query(index_name, vector, k)

    async def fetch(self, index_name, ids=None):  # noqa: ANN001,ANN201
        return self._delegate.fetch(index_name, ids)

    async def count(self, index_name):  # noqa: ANN001,ANN201
        return self._delegate.count(index_name)


def _settings(**overrides) -> SearchSettings:  # noqa: ANN003
    values = {"index_name": "animals", "dimension": 4, "top_k": 2}
    values.update(overrides)
    return SearchSettings(**values)


class AsyncSearchServiceTests(unittest.IsolatedAsyncioTestCase):
    async def test_surface_matches_sync_service(self) -> None:
        for name in ["ensure_index", "add_phrase", "add_phrases", "search"]:
            self.assertTrue(inspect.iscoroutinefunction(getattr(AsyncSearchService, name)))

    async def test_works_with_sync_ports(self) -> None:
        store = InMemoryPhraseStore()
        service = AsyncSearchService(
            StaticEmbeddingProvider(SCENARIO_VECTORS), store, settings=_settings()
        )
        await service.ensure_index()
        ids = await service.add_phrases(["cat", "dog", "car"])
        hits = await service.search("cat")

        self.assertEqual(ids[0], phrase_id("cat"))
        self.assertEqual([hit.text for hit in hits], ["cat", "dog"])
        self.assertEqual(store.count("animals"), 3)

    async def test_works_with_async_ports(self) -> None:
        store = _AsyncInMemoryPhraseStore()
        service = AsyncSearchService(_AsyncStaticProvider(), store, settings=_settings())
        await service.ensure_index()
        first = await service.add_phrase("cat")
        second = await service.add_phrase("cat")
        hits = await service.search("kitten", k=5)

        self.assertEqual(first, second)
        self.assertEqual(await store.count("animals"), 1)
        self.assertEqual([(hit.text, hit.score) for hit in hits], [("cat", 0.0)])

    async def test_missing_index_raises(self) -> None:
        service = AsyncSearchService(
            _AsyncStaticProvider(), InMemoryPhraseStore(), settings=_settings()
        )
        with self.assertRaises(IndexNotFoundError):
            await service.search("cat")

    async def test_slow_embedding_times_out_without_writing(self) -> None:
        store = InMemoryPhraseStore()
        service = AsyncSearchService(
            _AsyncStaticProvider(delay=1.0), store, settings=_settings(timeout=0.05)
        )
        await service.ensure_index()

        with self.assertRaises(SearchTimeoutError):
            await service.add_phrase("cat")
        self.assertEqual(store.count("animals"), 0)

    async def test_cancellation_propagates(self) -> None:
        store = InMemoryPhraseStore()
        service = AsyncSearchService(
            _AsyncStaticProvider(delay=5.0), store, settings=_settings()
        )
        await service.ensure_index()

        task = asyncio.create_task(service.add_phrase("cat"))
        await asyncio.sleep(0.01)
        task.cancel()

        with self.assertRaises(asyncio.CancelledError):
            await task
        self.assertEqual(store.count("animals"), 0)

    async def test_transient_errors_retry_with_async_sleep(self) -> None:
        clock = FakeClock()
        provider = ScriptedProvider([RateLimitedError("slow down")], clock=clock)
        service = AsyncSearchService(
            provider,
            InMemoryPhraseStore(),
            settings=_settings(),
            sleep=clock.async_sleep,
            clock=clock,
        )
        await service.ensure_index()
        await service.add_phrase("dog")

        self.assertEqual(len(provider.calls), 2)
        self.assertEqual(clock.sleeps, [0.5])


if __name__ == "__main__":
    unittest.main()
