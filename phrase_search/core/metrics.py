"""Vector metric definitions, normalization, and exact distance functions."""

from __future__ import annotations

import math
from enum import Enum
from typing import Iterable, Mapping, Sequence


class VectorMetric(str, Enum):
    """Supported normalized vector metric values."""

    COSINE = "cosine"
    EUCLIDEAN = "euclidean"
    DOT = "dot"


VectorMetricInput = str | VectorMetric

DEFAULT_ALIASES: Mapping[str, VectorMetric] = {
    "l2": VectorMetric.EUCLIDEAN,
    "euclid": VectorMetric.EUCLIDEAN,
    "ip": VectorMetric.DOT,
}


def normalize_vector_metric(
    metric: VectorMetricInput,
    *,
    supported: Iterable[VectorMetric] | None = None,
    aliases: Mapping[str, VectorMetric] | None = None,
) -> VectorMetric:
    """Normalize user metric input into a `VectorMetric` value."""

    alias_map = {key.lower(): value for key, value in DEFAULT_ALIASES.items()}
    alias_map.update({key.lower(): value for key, value in (aliases or {}).items()})

    if isinstance(metric, VectorMetric):
        normalized = metric
    elif isinstance(metric, str):
        key = metric.strip().lower()
        if key in VectorMetric._value2member_map_:
            normalized = VectorMetric(key)
        elif key in alias_map:
            normalized = alias_map[key]
        else:
            allowed = sorted(
                set(VectorMetric._value2member_map_.keys()) | set(alias_map.keys())
            )
            raise ValueError(
                f"Unsupported metric: {metric}. Supported: {allowed}"
            )
    else:
        raise ValueError(f"Unsupported metric type: {type(metric).__name__}")

    if supported is not None:
        supported_set = set(supported)
        if normalized not in supported_set:
            allowed = sorted(item.value for item in supported_set)
            raise ValueError(
                f"Unsupported metric: {normalized.value}. Supported: {allowed}"
            )

    return normalized


def distance(
    metric: VectorMetric,
    left: Sequence[float],
    right: Sequence[float],
) -> float:
    """Return the distance between two vectors; lower means more similar."""

    if metric == VectorMetric.DOT:
        return -math.fsum(a * b for a, b in zip(left, right))
    if metric == VectorMetric.EUCLIDEAN:
        return math.sqrt(math.fsum((a - b) ** 2 for a, b in zip(left, right)))

    # cosine (default)
    dot = math.fsum(a * b for a, b in zip(left, right))
    norm_left = math.sqrt(math.fsum(a * a for a in left))
    norm_right = math.sqrt(math.fsum(b * b for b in right))
    if norm_left == 0.0 or norm_right == 0.0:
        return 1.0
    return 1.0 - dot / (norm_left * norm_right)
