"""Faiss phrase store adapter.

This adapter is optional and requires `faiss-cpu` and `numpy` packages installed.

`index_type="flat"` (default) is exact. `index_type="hnsw"` builds an
approximate graph index: recall may drop below 100%, but every returned hit is
re-scored with the exact float64 distance and ordered by `(distance, id)`.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from ...core.errors import IndexNotFoundError
from ...core.metrics import VectorMetric, VectorMetricInput
from ...core.types import IndexSchema, PhraseHit, PhraseRecord
from ._base import (
    build_schema,
    check_k,
    check_schema,
    covers_cutoff,
    normalize_vector,
    rank_records,
)

logger = logging.getLogger(__name__)

INDEX_TYPES = ("flat", "hnsw")


@dataclass
class _IndexState:
    schema: IndexSchema
    index: Any
    ext_to_int: dict[str, int] = field(default_factory=dict)
    int_to_ext: dict[int, str] = field(default_factory=dict)
    records: dict[str, PhraseRecord] = field(default_factory=dict)
    next_internal_id: int = 1
    orphaned: int = 0


class FaissPhraseStore:
    """Phrase index backed by Facebook AI Similarity Search (Faiss)."""

    def __init__(
        self,
        *,
        index_type: str = "flat",
        hnsw_m: int = 32,
        ef_construction: int = 40,
        ef_search: int = 64,
        candidate_pad: int = 8,
    ) -> None:
        """Create a Faiss-backed store.

        Args:
            index_type: `"flat"` for exact search or `"hnsw"` for approximate.
            hnsw_m: HNSW graph degree (hnsw only).
            ef_construction: HNSW build-time beam width (hnsw only).
            ef_search: HNSW query-time beam width (hnsw only).
            candidate_pad: Extra candidates fetched beyond `k` before exact
                re-ranking. The candidate set still grows while records tie
                with the k-th one, so ties always resolve by phrase id.
        """

        try:
            import faiss  # type: ignore[import-not-found]
            import numpy as np  # type: ignore[import-not-found]
        except ImportError as exc:  # pragma: no cover - env dependent
            raise ImportError(
                "faiss-cpu and numpy are required for FaissPhraseStore. "
                "Install with `pip install faiss-cpu numpy`."
            ) from exc

        if index_type not in INDEX_TYPES:
            raise ValueError(f"Unsupported index_type: {index_type}. Supported: {list(INDEX_TYPES)}")
        if candidate_pad < 0:
            raise ValueError("candidate_pad must be >= 0")

        self._faiss = faiss
        self._np = np
        self.index_type = index_type
        self.exact = index_type == "flat"
        self._hnsw_m = hnsw_m
        self._ef_construction = ef_construction
        self._ef_search = ef_search
        self._candidate_pad = candidate_pad
        self._indexes: dict[str, _IndexState] = {}
        self._lock = threading.RLock()

    def ensure_index(
        self,
        name: str,
        dimension: int,
        metric: VectorMetricInput = VectorMetric.COSINE,
    ) -> None:
        requested = build_schema(name, dimension, metric)
        with self._lock:
            state = self._indexes.get(name)
            if state is None:
                self._indexes[name] = _IndexState(
                    schema=requested,
                    index=self._build_index(requested),
                )
                logger.info(
                    "Created faiss %s index %r (dimension=%d, metric=%s)",
                    self.index_type,
                    name,
                    requested.dimension,
                    requested.metric.value,
                )
                return
        check_schema(state.schema, requested)

    def describe_index(self, name: str) -> IndexSchema:
        return self._get_index(name).schema

    def upsert(
        self,
        index_name: str,
        phrase_id: str,
        text: str,
        vector: Sequence[float],
    ) -> None:
        state = self._get_index(index_name)
        values = normalize_vector(vector, state.schema.dimension)
        vector_array = self._to_array([values], state.schema.metric)

        with self._lock:
            previous_id = state.ext_to_int.get(phrase_id)
            if previous_id is not None:
                state.int_to_ext.pop(previous_id, None)
                if self.exact:
                    state.index.remove_ids(self._np.array([previous_id], dtype=self._np.int64))
                else:
                    # HNSW graphs cannot drop vectors; the stale id is skipped on query.
                    state.orphaned += 1

            internal_id = state.next_internal_id
            state.next_internal_id += 1
            state.index.add_with_ids(
                vector_array, self._np.array([internal_id], dtype=self._np.int64)
            )
            state.ext_to_int[phrase_id] = internal_id
            state.int_to_ext[internal_id] = phrase_id
            state.records[phrase_id] = PhraseRecord(id=phrase_id, text=text, vector=values)
        logger.debug("Upserted %s into faiss index %r", phrase_id[:12], index_name)

    def knn_query(
        self,
        index_name: str,
        vector: Sequence[float],
        k: int,
    ) -> list[PhraseHit]:
        check_k(k)
        state = self._get_index(index_name)
        values = normalize_vector(vector, state.schema.dimension)
        if k == 0:
            return []

        query_array = self._to_array([values], state.schema.metric)
        with self._lock:
            total = int(state.index.ntotal)
            if total == 0:
                return []
            fetch_k = min(total, k + self._candidate_pad + state.orphaned)
            while True:
                candidates, scores = self._search(state, query_array, fetch_k)
                # Widen until no record tied at the cut-off can be left out.
                if fetch_k >= total or covers_cutoff(scores, k):
                    break
                fetch_k = min(total, fetch_k * 2)

        return rank_records(state.schema.metric, values, candidates, k)

    def _search(
        self, state: _IndexState, query_array: Any, fetch_k: int
    ) -> tuple[list[PhraseRecord], list[float]]:
        raw_scores, internal_ids = state.index.search(query_array, fetch_k)
        uses_inner_product = state.schema.metric in {VectorMetric.COSINE, VectorMetric.DOT}
        candidates: list[PhraseRecord] = []
        scores: list[float] = []
        for raw_score, internal_id in zip(raw_scores[0], internal_ids[0]):
            if internal_id == -1:
                continue
            external_id = state.int_to_ext.get(int(internal_id))
            if external_id is None:
                continue
            candidates.append(state.records[external_id])
            scores.append(-float(raw_score) if uses_inner_product else float(raw_score))
        return candidates, scores

    def fetch(
        self, index_name: str, ids: Optional[Sequence[str]] = None
    ) -> list[PhraseRecord]:
        state = self._get_index(index_name)
        with self._lock:
            if ids is None:
                return list(state.records.values())
            return [state.records[item_id] for item_id in ids if item_id in state.records]

    def count(self, index_name: str) -> int:
        state = self._get_index(index_name)
        with self._lock:
            return len(state.records)

    def _build_index(self, schema: IndexSchema) -> Any:
        uses_inner_product = schema.metric in {VectorMetric.COSINE, VectorMetric.DOT}
        if self.index_type == "hnsw":
            faiss_metric = (
                self._faiss.METRIC_INNER_PRODUCT
                if uses_inner_product
                else self._faiss.METRIC_L2
            )
            base_index = self._faiss.IndexHNSWFlat(schema.dimension, self._hnsw_m, faiss_metric)
            base_index.hnsw.efConstruction = self._ef_construction
            base_index.hnsw.efSearch = self._ef_search
            return self._faiss.IndexIDMap(base_index)

        if uses_inner_product:
            base_index = self._faiss.IndexFlatIP(schema.dimension)
        else:
            base_index = self._faiss.IndexFlatL2(schema.dimension)
        return self._faiss.IndexIDMap2(base_index)

    def _to_array(self, vectors: list[Sequence[float]], metric: VectorMetric) -> Any:
        array = self._np.array(vectors, dtype=self._np.float32)
        if metric == VectorMetric.COSINE:
            self._faiss.normalize_L2(array)
        return array

    def _get_index(self, name: str) -> _IndexState:
        with self._lock:
            state = self._indexes.get(name)
        if state is None:
            raise IndexNotFoundError(name)
        return state
