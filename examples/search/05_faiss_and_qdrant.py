"""Faiss and Qdrant backends behind the same service (requires faiss-cpu / qdrant-client)."""

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

from phrase_search import HashingEmbeddingProvider, SearchService, SearchSettings


def _run(label: str, store) -> None:  # noqa: ANN001
    settings = SearchSettings(index_name="docs", dimension=64, top_k=2)
    service = SearchService(HashingEmbeddingProvider(dimension=64), store, settings=settings)
    service.ensure_index()
    service.add_phrases(["vector database", "relational database", "garden tools"])
    hits = service.search("database")
    print(f"{label} (exact={store.exact}):", [hit.as_tuple() for hit in hits])


def main() -> None:
    try:
        from phrase_search.ports.store.faiss import FaissPhraseStore
    except ImportError:
        print("faiss not installed; skipping")
    else:
        _run("faiss flat", FaissPhraseStore())
        _run("faiss hnsw", FaissPhraseStore(index_type="hnsw"))

    try:
        from phrase_search.ports.store.qdrant import QdrantPhraseStore
    except ImportError:
        print("qdrant-client not installed; skipping")
    else:
        _run("qdrant", QdrantPhraseStore(location=":memory:"))


if __name__ == "__main__":
    main()
