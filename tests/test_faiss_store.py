from __future__ import annotations

import importlib
import random
import unittest

from phrase_search import InMemoryPhraseStore, phrase_id
from tests.store_contract import PhraseStoreContractMixin


def _module_available(name: str) -> bool:
    try:
        importlib.import_module(name)
    except ImportError:
        return False
    return True


HAS_FAISS = _module_available("faiss") and _module_available("numpy")

if HAS_FAISS:
    from phrase_search.ports.store.faiss import FaissPhraseStore


@unittest.skipUnless(HAS_FAISS, "faiss/numpy is not installed")
class FaissFlatPhraseStoreContractTests(PhraseStoreContractMixin, unittest.TestCase):
    def make_store(self) -> "FaissPhraseStore":
        return FaissPhraseStore()


@unittest.skipUnless(HAS_FAISS, "faiss/numpy is not installed")
class FaissHnswPhraseStoreContractTests(PhraseStoreContractMixin, unittest.TestCase):
    def make_store(self) -> "FaissPhraseStore":
        return FaissPhraseStore(index_type="hnsw", hnsw_m=16, ef_search=64)


@unittest.skipUnless(HAS_FAISS, "faiss/numpy is not installed")
class FaissPhraseStoreTests(unittest.TestCase):
    def test_exactness_is_explicit(self) -> None:
        self.assertTrue(FaissPhraseStore().exact)
        self.assertFalse(FaissPhraseStore(index_type="hnsw").exact)
        with self.assertRaises(ValueError):
            FaissPhraseStore(index_type="ivf")

    def test_flat_matches_brute_force_reference(self) -> None:
        rng = random.Random(7)
        faiss_store = FaissPhraseStore()
        reference = InMemoryPhraseStore()
        for store in (faiss_store, reference):
            store.ensure_index("random", 8, "cosine")

        for idx in range(60):
            text = f"phrase {idx}"
            vector = [rng.uniform(-1.0, 1.0) for _ in range(8)]
            faiss_store.upsert("random", phrase_id(text), text, vector)
            reference.upsert("random", phrase_id(text), text, vector)

        for _ in range(5):
            query = [rng.uniform(-1.0, 1.0) for _ in range(8)]
            expected = reference.knn_query("random", query, 5)
            actual = faiss_store.knn_query("random", query, 5)
            self.assertEqual([hit.id for hit in actual], [hit.id for hit in expected])
            for got, want in zip(actual, expected):
                self.assertAlmostEqual(got.score, want.score, places=12)

    def test_hnsw_overwrite_skips_stale_vectors(self) -> None:
        store = FaissPhraseStore(index_type="hnsw")
        store.ensure_index("moving", 2, "euclidean")
        item_id = phrase_id("mover")
        store.upsert("moving", item_id, "mover", [0.0, 0.0])
        store.upsert("moving", item_id, "mover", [10.0, 10.0])
        store.upsert("moving", phrase_id("anchor"), "anchor", [1.0, 1.0])

        hits = store.knn_query("moving", [0.0, 0.0], 5)

        self.assertEqual([hit.text for hit in hits], ["anchor", "mover"])
        self.assertEqual(store.count("moving"), 2)


if __name__ == "__main__":
    unittest.main()
