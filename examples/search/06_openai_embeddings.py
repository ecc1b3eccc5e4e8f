"""Embed phrases with OpenAI (requires openai and OPENAI_API_KEY, e.g. in .env)."""

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
    OpenAIEmbeddingProvider,
    SearchService,
    SearchSettings,
)


def main() -> None:
    logging.basicConfig(level=logging.INFO)

    # PHRASE_SEARCH_* and OPENAI_* values are read from the environment or .env.
    settings = SearchSettings.from_env()
    if OpenAIEmbeddingProvider is None:
        print("openai not installed; skipping")
        return
    provider = OpenAIEmbeddingProvider(dimension=settings.dimension)
    service = SearchService(provider, InMemoryPhraseStore(), settings=settings)
    service.ensure_index()
    service.add_phrases(["cat", "dog", "car"])

    for hit in service.search("kitten"):
        print(f"{hit.score:.4f}  {hit.text}")


if __name__ == "__main__":
    main()
