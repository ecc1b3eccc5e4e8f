"""Qdrant phrase store adapter.

This adapter is optional and requires `qdrant-client` package installed.

Qdrant point ids must be UUIDs, so each phrase id is mapped to a UUIDv5 and the
original id and text travel in the point payload. Searches are exact by
default; `exact=False` switches to Qdrant's HNSW search. Cosine collections
store unit-normalized vectors, so `fetch` returns them normalized.
"""

from __future__ import annotations

import logging
import uuid
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

_POINT_NAMESPACE = uuid.UUID("6f1c8f2e-5d0b-4c3a-9a57-2f0d6b9e4c11")


def point_id(phrase_id: str) -> str:
    """Deterministic Qdrant point id for a phrase id."""

    return str(uuid.uuid5(_POINT_NAMESPACE, phrase_id))


class QdrantPhraseStore:
    """Phrase index stored in Qdrant collections."""

    def __init__(
        self,
        *,
        location: str = ":memory:",
        url: str | None = None,
        api_key: str | None = None,
        prefer_grpc: bool = False,
        timeout: float | None = None,
        exact: bool = True,
        candidate_pad: int = 8,
        client: Any = None,
    ) -> None:
        try:
            from qdrant_client import QdrantClient  # type: ignore[import-not-found]
            from qdrant_client.http import models  # type: ignore[import-not-found]
        except ImportError as exc:  # pragma: no cover - env dependent
            raise ImportError(
                "qdrant-client is required for QdrantPhraseStore. "
                "Install with `pip install qdrant-client`."
            ) from exc

        if candidate_pad < 0:
            raise ValueError("candidate_pad must be >= 0")

        self._models = models
        self.exact = exact
        self._candidate_pad = candidate_pad
        self._schemas: dict[str, IndexSchema] = {}

        if client is not None:
            self._client = client
        elif url:
            self._client = QdrantClient(
                url=url,
                api_key=api_key,
                prefer_grpc=prefer_grpc,
                timeout=timeout,
            )
        elif location == ":memory:":
            self._client = QdrantClient(":memory:")
        else:
            self._client = QdrantClient(path=location)

    def ensure_index(
        self,
        name: str,
        dimension: int,
        metric: VectorMetricInput = VectorMetric.COSINE,
    ) -> None:
        requested = build_schema(name, dimension, metric)
        if name in self._schemas or self._collection_exists(name):
            check_schema(self.describe_index(name), requested)
            return

        try:
            self._client.create_collection(
                collection_name=name,
                vectors_config=self._models.VectorParams(
                    size=requested.dimension,
                    distance=self._metric_to_distance(requested.metric),
                ),
            )
        except Exception:
            # A concurrent creator may have won the race; converge on its schema.
            if not self._collection_exists(name):
                raise
            check_schema(self.describe_index(name), requested)
            return
        self._schemas[name] = requested
        logger.info(
            "Created qdrant collection %r (dimension=%d, metric=%s)",
            name,
            requested.dimension,
            requested.metric.value,
        )

    def describe_index(self, name: str) -> IndexSchema:
        schema = self._schemas.get(name)
        if schema is not None:
            return schema
        self._ensure_collection(name)
        info = self._client.get_collection(collection_name=name)
        vectors = info.config.params.vectors
        if isinstance(vectors, dict):
            vectors = next(iter(vectors.values()))
        schema = IndexSchema(
            name=name,
            dimension=int(vectors.size),
            metric=self._distance_to_metric(vectors.distance),
        )
        self._schemas[name] = schema
        return schema

    def upsert(
        self,
        index_name: str,
        phrase_id: str,
        text: str,
        vector: Sequence[float],
    ) -> None:
        schema = self.describe_index(index_name)
        values = normalize_vector(vector, schema.dimension)
        self._client.upsert(
            collection_name=index_name,
            points=[
                self._models.PointStruct(
                    id=point_id(phrase_id),
                    vector=list(values),
                    payload={"phrase_id": phrase_id, "text": text},
                )
            ],
            wait=True,
        )
        logger.debug("Upserted %s into qdrant collection %r", phrase_id[:12], index_name)

    def knn_query(
        self,
        index_name: str,
        vector: Sequence[float],
        k: int,
    ) -> list[PhraseHit]:
        check_k(k)
        schema = self.describe_index(index_name)
        values = normalize_vector(vector, schema.dimension)
        if k == 0:
            return []

        limit = k + self._candidate_pad
        while True:
            rows = self._search(index_name, values, limit)
            # Widen until no point tied at the cut-off can be left out.
            if len(rows) < limit or covers_cutoff(self._ascending_scores(schema, rows), k):
                break
            limit *= 2

        return rank_records(
            schema.metric, values, [self._point_to_record(row) for row in rows], k
        )

    def _search(self, index_name: str, values: Sequence[float], limit: int) -> list[Any]:
        search_params = self._models.SearchParams(exact=self.exact)
        query_fn = getattr(self._client, "query_points", None)
        if callable(query_fn):
            response = query_fn(
                collection_name=index_name,
                query=list(values),
                limit=limit,
                search_params=search_params,
                with_payload=True,
                with_vectors=True,
            )
            return list(getattr(response, "points", response))
        return list(
            self._client.search(
                collection_name=index_name,
                query_vector=list(values),
                limit=limit,
                search_params=search_params,
                with_payload=True,
                with_vectors=True,
            )
        )

    @staticmethod
    def _ascending_scores(schema: IndexSchema, rows: Sequence[Any]) -> list[float]:
        # Qdrant scores cosine and dot as similarity, euclid as distance.
        sign = 1.0 if schema.metric == VectorMetric.EUCLIDEAN else -1.0
        return [sign * float(getattr(row, "score", 0.0)) for row in rows]

    def fetch(
        self, index_name: str, ids: Optional[Sequence[str]] = None
    ) -> list[PhraseRecord]:
        self._ensure_collection(index_name)
        if ids is None:
            return [self._point_to_record(point) for point in self._scroll_all_points(index_name)]

        if not ids:
            return []

        rows = self._client.retrieve(
            collection_name=index_name,
            ids=[point_id(item_id) for item_id in ids],
            with_vectors=True,
            with_payload=True,
        )
        by_id = {record.id: record for record in map(self._point_to_record, rows)}
        return [by_id[item_id] for item_id in ids if item_id in by_id]

    def count(self, index_name: str) -> int:
        self._ensure_collection(index_name)
        result = self._client.count(collection_name=index_name, exact=True)
        return int(getattr(result, "count", result))

    def _scroll_all_points(self, collection: str) -> list[Any]:
        points: list[Any] = []
        offset: Any = None

        while True:
            response = self._client.scroll(
                collection_name=collection,
                offset=offset,
                with_vectors=True,
                with_payload=True,
                limit=256,
            )

            if isinstance(response, tuple):
                batch, next_offset = response
            else:
                batch = getattr(response, "points", [])
                next_offset = getattr(response, "next_page_offset", None)

            points.extend(batch)
            if next_offset is None:
                break
            offset = next_offset

        return points

    @staticmethod
    def _point_to_record(point: Any) -> PhraseRecord:
        payload = getattr(point, "payload", None) or {}
        vector = getattr(point, "vector", None)
        if isinstance(vector, dict):
            vector = next(iter(vector.values()), None)
        return PhraseRecord(
            id=str(payload.get("phrase_id", getattr(point, "id"))),
            text=str(payload.get("text", "")),
            vector=tuple(float(value) for value in (vector or [])),
        )

    def _metric_to_distance(self, metric: VectorMetric) -> Any:
        mapping = {
            VectorMetric.COSINE: self._models.Distance.COSINE,
            VectorMetric.DOT: self._models.Distance.DOT,
            VectorMetric.EUCLIDEAN: self._models.Distance.EUCLID,
        }
        return mapping[metric]

    def _distance_to_metric(self, value: Any) -> VectorMetric:
        mapping = {
            self._models.Distance.COSINE: VectorMetric.COSINE,
            self._models.Distance.DOT: VectorMetric.DOT,
            self._models.Distance.EUCLID: VectorMetric.EUCLIDEAN,
        }
        if value not in mapping:
            raise ValueError(f"Unsupported qdrant distance: {value!r}")
        return mapping[value]

    def _ensure_collection(self, name: str) -> None:
        if name in self._schemas:
            return
        if not self._collection_exists(name):
            raise IndexNotFoundError(name)

    def _collection_exists(self, name: str) -> bool:
        exists_fn = getattr(self._client, "collection_exists", None)
        if callable(exists_fn):
            return bool(exists_fn(collection_name=name))

        try:
            self._client.get_collection(collection_name=name)
            return True
        except Exception:
            return False
