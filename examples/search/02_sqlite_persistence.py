"""Persist a phrase index in SQLite and reopen it."""

from __future__ import annotations

import os
import tempfile
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
    Database,
    HashingEmbeddingProvider,
    SearchService,
    SearchSettings,
    SQLitePhraseStore,
)


def main() -> None:
    provider = HashingEmbeddingProvider(dimension=64)
    settings = SearchSettings(index_name="notes", dimension=64, metric="l2", top_k=2)

    with tempfile.TemporaryDirectory(prefix="phrase_search_") as tmp:
        path = os.path.join(tmp, "phrases.db")

        with Database.sqlite(path) as db:
            service = SearchService(provider, SQLitePhraseStore(db), settings=settings)
            service.ensure_index()
            service.add_phrases(["buy milk", "call the plumber", "buy bread and milk"])

        # A new handle sees the same schema and rows.
        with Database.sqlite(path) as db:
            store = SQLitePhraseStore(db)
            print("Schema:", store.describe_index("notes"))
            print("Stored phrases:", store.count("notes"))
            service = SearchService(provider, store, settings=settings)
            for hit in service.search("milk"):
                print(f"{hit.score:.4f}  {hit.text}")


if __name__ == "__main__":
    main()
