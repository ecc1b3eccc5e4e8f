"""In-memory phrase store adapter for testing and local development."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Optional, Sequence

from ...core.errors import IndexNotFoundError
from ...core.metrics import VectorMetric, VectorMetricInput
from ...core.types import IndexSchema, PhraseHit, PhraseRecord
from ._base import build_schema, check_k, check_schema, normalize_vector, rank_records

logger = logging.getLogger(__name__)


@dataclass
class _IndexState:
    schema: IndexSchema
    records: dict[str, PhraseRecord] = field(default_factory=dict)


class InMemoryPhraseStore:
    """Dictionary-backed phrase index with exact brute-force ranking."""

    exact = True

    def __init__(self) -> None:
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
                self._indexes[name] = _IndexState(schema=requested)
                logger.info(
                    "Created index %r (dimension=%d, metric=%s)",
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
        # Records are frozen and swapped whole, so readers never see a mix.
        record = PhraseRecord(
            id=phrase_id,
            text=text,
            vector=normalize_vector(vector, state.schema.dimension),
        )
        with self._lock:
            state.records[phrase_id] = record
        logger.debug("Upserted %s into index %r", phrase_id[:12], index_name)

    def knn_query(
        self,
        index_name: str,
        vector: Sequence[float],
        k: int,
    ) -> list[PhraseHit]:
        check_k(k)
        state = self._get_index(index_name)
        query_vector = normalize_vector(vector, state.schema.dimension)
        if k == 0:
            return []

        with self._lock:
            records = list(state.records.values())
        return rank_records(state.schema.metric, query_vector, records, k)

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

    def _get_index(self, name: str) -> _IndexState:
        with self._lock:
            state = self._indexes.get(name)
        if state is None:
            raise IndexNotFoundError(name)
        return state
