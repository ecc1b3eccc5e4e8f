"""Add phrases and search them with the in-memory store and hashing embeddings."""

from __future__ import annotations

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
    HashingEmbeddingProvider,
    InMemoryPhraseStore,
    SearchService,
    SearchSettings,
)


def main() -> None:
    # Offline provider: phrases that share words land close to each other.
    provider = HashingEmbeddingProvider(dimension=128)
    settings = SearchSettings(index_name="fruit", dimension=128, top_k=3)
    service = SearchService(provider, InMemoryPhraseStore(), settings=settings)
    service.ensure_index()

    ids = service.add_phrases(
        [
            "red apple pie",
            "green apple",
            "banana bread",
            "apple cider vinegar",
        ]
    )
    print("Stored ids:", [item_id[:12] for item_id in ids])

    # Adding the same phrase again keeps a single entry.
    print("Re-added id matches:", service.add_phrase("  green   apple ") == ids[1])

    for hit in service.search("apple"):
        print(f"{hit.score:.4f}  {hit.text}")


if __name__ == "__main__":
    main()
