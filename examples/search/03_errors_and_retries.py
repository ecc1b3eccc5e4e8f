"""Show how failures surface: error kinds, retries, timeouts and schema conflicts."""

from __future__ import annotations

import logging
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
    InMemoryPhraseStore,
    PhraseSearchError,
    RetryPolicy,
    SearchService,
    SearchSettings,
    StaticEmbeddingProvider,
)


def main() -> None:
    # Retry warnings and failure logs go through the standard logging module.
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    provider = StaticEmbeddingProvider({"cat": [1.0, 0.0], "dog": [0.9, 0.1]})
    store = InMemoryPhraseStore()
    settings = SearchSettings(
        index_name="animals",
        dimension=2,
        retry=RetryPolicy(max_attempts=2, initial_delay=0.01),
    )
    service = SearchService(provider, store, settings=settings)

    # Querying before the index exists is an error, not an empty result.
    try:
        service.search("cat")
    except PhraseSearchError as exc:
        print("search before ensure_index ->", exc.kind, exc)

    service.ensure_index()
    service.add_phrase("cat")

    # The static provider treats unknown text as an outage; it is retried then raised.
    try:
        service.add_phrase("axolotl")
    except PhraseSearchError as exc:
        print("unknown phrase ->", exc.kind, "retryable:", exc.retryable)

    # Same name with a different dimension conflicts with the existing index.
    try:
        store.ensure_index("animals", 3, "cosine")
    except PhraseSearchError as exc:
        print("schema conflict ->", exc.kind, exc)

    # Wrong-length vectors never reach the index.
    try:
        store.upsert("animals", "manual", "manual", [1.0, 2.0, 3.0])
    except PhraseSearchError as exc:
        print("bad vector ->", exc.kind, exc)

    print("Index still holds:", [record.text for record in store.fetch("animals")])


if __name__ == "__main__":
    main()
