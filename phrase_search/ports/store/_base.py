"""Validation and exact ranking helpers shared by phrase store adapters."""

from __future__ import annotations

import heapq
import math
from typing import Iterable, Sequence

from ...core.errors import DimensionMismatchError, MalformedVectorError, SchemaConflictError
from ...core.metrics import (
    VectorMetric,
    VectorMetricInput,
    distance,
    normalize_vector_metric,
)
from ...core.types import IndexSchema, PhraseHit, PhraseRecord

SUPPORTED_METRICS = {
    VectorMetric.COSINE,
    VectorMetric.EUCLIDEAN,
    VectorMetric.DOT,
}

# Relative slack for float32 backend scores compared near the top-k cut-off.
CUTOFF_TOLERANCE = 1e-5


def build_schema(name: str, dimension: int, metric: VectorMetricInput) -> IndexSchema:
    """Validate `ensure_index` arguments and return the requested schema."""

    if not str(name).strip():
        raise ValueError("index name must be a non-empty string")
    if "\x00" in str(name):
        raise ValueError("index name contains invalid null character")
    if dimension <= 0:
        raise ValueError("dimension must be > 0")
    return IndexSchema(
        name=name,
        dimension=int(dimension),
        metric=normalize_vector_metric(metric, supported=SUPPORTED_METRICS),
    )


def check_schema(existing: IndexSchema, requested: IndexSchema) -> None:
    """Raise `SchemaConflictError` unless both schemas describe the same index."""

    if (existing.dimension, existing.metric) != (requested.dimension, requested.metric):
        raise SchemaConflictError(existing, requested)


def normalize_vector(vector: Sequence[float], dimension: int) -> tuple[float, ...]:
    values = tuple(float(v) for v in vector)
    if len(values) != dimension:
        raise DimensionMismatchError(dimension, len(values))
    for position, value in enumerate(values):
        if not math.isfinite(value):
            raise MalformedVectorError(
                f"Vector contains non-finite value {value!r} at position {position}"
            )
    return values


def check_k(k: int) -> None:
    if k < 0:
        raise ValueError("k must be >= 0")


def covers_cutoff(scores: Sequence[float], k: int) -> bool:
    """Whether backend candidates reach past every tie at the k-th place.

    `scores` are the backend's own distances, ascending. Exact re-ranking by
    `(distance, id)` is only safe when the last candidate is clearly worse
    than the k-th one; otherwise records tied at the cut-off may be missing.
    """

    if len(scores) <= k:
        return False
    boundary = scores[k - 1]
    return scores[-1] - boundary > CUTOFF_TOLERANCE * max(1.0, abs(boundary))


def rank_records(
    metric: VectorMetric,
    query_vector: Sequence[float],
    records: Iterable[PhraseRecord],
    k: int,
) -> list[PhraseHit]:
    """Exact top-k by `(distance, id)` ascending."""

    scored = (
        PhraseHit(
            text=record.text,
            score=distance(metric, query_vector, record.vector),
            id=record.id,
        )
        for record in records
    )
    return heapq.nsmallest(k, scored, key=lambda hit: (hit.score, hit.id))
