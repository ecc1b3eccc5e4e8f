from __future__ import annotations

import threading
from typing import Any

from phrase_search import (
    DimensionMismatchError,
    IndexNotFoundError,
    MalformedVectorError,
    SchemaConflictError,
    VectorMetric,
    phrase_id,
)

SCENARIO = {
    "cat": [1.0, 0.0, 0.0, 0.0],
    "dog": [0.9, 0.1, 0.0, 0.0],
    "car": [0.0, 0.0, 1.0, 0.0],
}


class PhraseStoreContractMixin:
    """Behavior every phrase store adapter must share.

    Subclasses set `make_store()` and mix this into a `unittest.TestCase`.
    """

    store: Any

    def make_store(self) -> Any:
        raise NotImplementedError

    def setUp(self) -> None:
        self.store = self.make_store()

    def _insert(self, index: str, text: str, vector: list[float]) -> str:
        item_id = phrase_id(text)
        self.store.upsert(index, item_id, text, vector)
        return item_id

    def test_ensure_index_is_idempotent_and_detects_conflicts(self) -> None:
        self.store.ensure_index("animals", 4, "cosine")
        self.store.ensure_index("animals", 4, VectorMetric.COSINE)

        schema = self.store.describe_index("animals")
        self.assertEqual(schema.dimension, 4)
        self.assertEqual(schema.metric, VectorMetric.COSINE)

        with self.assertRaises(SchemaConflictError) as ctx:
            self.store.ensure_index("animals", 8, "cosine")
        self.assertEqual(ctx.exception.existing.dimension, 4)
        with self.assertRaises(SchemaConflictError):
            self.store.ensure_index("animals", 4, "euclidean")
        with self.assertRaises(ValueError):
            self.store.ensure_index("bad_dim", 0)
        with self.assertRaises(ValueError):
            self.store.ensure_index("bad_metric", 4, "manhattan")

        self.assertEqual(self.store.describe_index("animals"), schema)

    def test_scenario_cat_dog_car(self) -> None:
        self.store.ensure_index("animals", 4, "cosine")
        for text, vector in SCENARIO.items():
            self._insert("animals", text, vector)

        hits = self.store.knn_query("animals", [1.0, 0.0, 0.0, 0.0], 2)

        self.assertEqual([hit.text for hit in hits], ["cat", "dog"])
        self.assertAlmostEqual(hits[0].score, 0.0, places=6)
        self.assertAlmostEqual(hits[1].score, 1.0 - 0.9 / (0.82 ** 0.5), places=6)
        self.assertLess(hits[1].score, 0.01)

    def test_upsert_same_id_overwrites(self) -> None:
        self.store.ensure_index("animals", 4)
        first = self._insert("animals", "cat", [1.0, 0.0, 0.0, 0.0])
        second = self._insert("animals", "cat", [0.0, 1.0, 0.0, 0.0])

        self.assertEqual(first, second)
        self.assertEqual(self.store.count("animals"), 1)
        hits = self.store.knn_query("animals", [0.0, 1.0, 0.0, 0.0], 1)
        self.assertEqual(hits[0].id, first)
        self.assertAlmostEqual(hits[0].score, 0.0, places=6)

    def test_dimension_mismatch_never_writes(self) -> None:
        self.store.ensure_index("animals", 4)
        with self.assertRaises(DimensionMismatchError) as ctx:
            self.store.upsert("animals", phrase_id("x"), "x", [1.0, 0.0])
        self.assertEqual((ctx.exception.expected, ctx.exception.actual), (4, 2))
        self.assertEqual(self.store.count("animals"), 0)
        self.assertEqual(self.store.fetch("animals"), [])

        with self.assertRaises(DimensionMismatchError):
            self.store.knn_query("animals", [1.0, 0.0, 0.0], 1)

    def test_results_are_ordered_with_id_tie_break(self) -> None:
        self.store.ensure_index("ties", 2, "euclidean")
        ids = [
            self._insert("ties", text, vector)
            for text, vector in [
                ("east", [1.0, 0.0]),
                ("north", [0.0, 1.0]),
                ("west", [-1.0, 0.0]),
                ("south", [0.0, -1.0]),
                ("origin", [0.0, 0.0]),
            ]
        ]

        hits = self.store.knn_query("ties", [0.0, 0.0], 5)

        self.assertEqual(hits[0].text, "origin")
        scores = [hit.score for hit in hits]
        self.assertEqual(scores, sorted(scores))
        tied = [hit.id for hit in hits[1:]]
        self.assertEqual(tied, sorted(ids[:4]))

    def test_many_ties_at_the_cut_off_resolve_by_id(self) -> None:
        texts = [f"twin {idx}" for idx in range(20)]
        # Insertion order opposite to id order, so backend order cannot pass for it.
        texts.sort(key=phrase_id, reverse=True)
        for metric in ("euclidean", "cosine"):
            with self.subTest(metric=metric):
                index = f"twins_{metric}"
                self.store.ensure_index(index, 2, metric)
                for text in texts:
                    self._insert(index, text, [1.0, 1.0])

                expected = sorted(phrase_id(text) for text in texts)
                for k in (1, 3):
                    hits = self.store.knn_query(index, [1.0, 1.0], k)
                    self.assertEqual([hit.id for hit in hits], expected[:k])

    def test_non_finite_vectors_are_rejected(self) -> None:
        self.store.ensure_index("finite", 2, "euclidean")
        self._insert("finite", "ok", [1.0, 0.0])

        for bad in ([float("nan"), 1.0], [float("inf"), 0.0], [0.0, float("-inf")]):
            with self.subTest(vector=bad):
                with self.assertRaises(MalformedVectorError):
                    self.store.upsert("finite", phrase_id("bad"), "bad", bad)
                with self.assertRaises(MalformedVectorError):
                    self.store.knn_query("finite", bad, 1)

        self.assertEqual(self.store.count("finite"), 1)
        self.assertEqual([record.text for record in self.store.fetch("finite")], ["ok"])

    def test_k_edge_cases(self) -> None:
        self.store.ensure_index("animals", 4)
        self.assertEqual(self.store.knn_query("animals", [1.0, 0.0, 0.0, 0.0], 3), [])

        self._insert("animals", "cat", SCENARIO["cat"])
        self.assertEqual(self.store.knn_query("animals", [1.0, 0.0, 0.0, 0.0], 0), [])
        hits = self.store.knn_query("animals", [1.0, 0.0, 0.0, 0.0], 10)
        self.assertEqual([hit.text for hit in hits], ["cat"])
        with self.assertRaises(ValueError):
            self.store.knn_query("animals", [1.0, 0.0, 0.0, 0.0], -1)

    def test_missing_index_is_an_error_not_an_empty_result(self) -> None:
        with self.assertRaises(IndexNotFoundError):
            self.store.knn_query("never_created", [1.0, 0.0], 1)
        with self.assertRaises(IndexNotFoundError):
            self.store.upsert("never_created", "id", "text", [1.0, 0.0])
        with self.assertRaises(IndexNotFoundError):
            self.store.describe_index("never_created")
        with self.assertRaises(IndexNotFoundError):
            self.store.fetch("never_created")
        with self.assertRaises(KeyError):
            self.store.count("never_created")

    def test_fetch_follows_requested_order(self) -> None:
        self.store.ensure_index("animals", 4)
        ids = {text: self._insert("animals", text, vector) for text, vector in SCENARIO.items()}

        selected = self.store.fetch("animals", ids=[ids["car"], "missing", ids["cat"]])
        everything = self.store.fetch("animals")

        self.assertEqual([record.text for record in selected], ["car", "cat"])
        self.assertEqual({record.text for record in everything}, set(SCENARIO))
        self.assertEqual(self.store.fetch("animals", ids=[]), [])

    def test_concurrent_upserts_never_tear_records(self) -> None:
        self.store.ensure_index("race", 2, "euclidean")
        item_id = phrase_id("contested")
        variants = [("alpha", [1.0, 1.0]), ("beta", [2.0, 2.0])]
        errors: list[BaseException] = []

        def writer(text: str, vector: list[float]) -> None:
            try:
                for _ in range(25):
                    self.store.upsert("race", item_id, text, vector)
            except BaseException as exc:  # pragma: no cover - surfaced below
                errors.append(exc)

        threads = [threading.Thread(target=writer, args=variant) for variant in variants]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(errors, [])
        records = self.store.fetch("race")
        self.assertEqual(len(records), 1)
        self.assertIn(
            (records[0].text, list(records[0].vector)),
            [("alpha", [1.0, 1.0]), ("beta", [2.0, 2.0])],
        )
