"""Async add/search with a per-request timeout."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

# Allow running this script directly from repository root.
PROJECT_ROOT = next(
    (parent for parent in Path(__file__).resolve().parents if (parent / "phrase_search").exists()),
    None,
)
if PROJECT_ROOT and str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from phrase_search import (
    AsyncSearchService,
    HashingEmbeddingProvider,
    InMemoryPhraseStore,
    SearchSettings,
)


async def main() -> None:
    settings = SearchSettings(index_name="titles", dimension=128, top_k=2, timeout=5.0)
    service = AsyncSearchService(
        HashingEmbeddingProvider(dimension=128),
        InMemoryPhraseStore(),
        settings=settings,
    )
    await service.ensure_index()

    # Sync ports run in worker threads; concurrent adds are safe.
    await asyncio.gather(
        service.add_phrase("the old man and the sea"),
        service.add_phrase("twenty thousand leagues under the sea"),
        service.add_phrase("pride and prejudice"),
    )

    for hit in await service.search("sea stories", timeout=1.0):
        print(f"{hit.score:.4f}  {hit.text}")


if __name__ == "__main__":
    asyncio.run(main())
