"""Fixed lookup-table embedding provider for deterministic tests."""

from __future__ import annotations

from typing import Mapping, Optional, Sequence

from ...core.errors import DimensionMismatchError, ProviderUnavailableError
from ...core.types import normalize_phrase


class StaticEmbeddingProvider:
    """Return pre-registered vectors; unknown text is treated as an outage."""

    def __init__(self, vectors: Mapping[str, Sequence[float]]) -> None:
        self._vectors: dict[str, tuple[float, ...]] = {}
        self.dimension: Optional[int] = None
        for text, vector in vectors.items():
            self.register(text, vector)

    def register(self, text: str, vector: Sequence[float]) -> None:
        values = tuple(float(value) for value in vector)
        if self.dimension is None:
            self.dimension = len(values)
        elif len(values) != self.dimension:
            raise DimensionMismatchError(self.dimension, len(values))
        self._vectors[normalize_phrase(text)] = values

    def embed(self, text: str, *, timeout: Optional[float] = None) -> Sequence[float]:
        try:
            return self._vectors[normalize_phrase(text)]
        except KeyError:
            raise ProviderUnavailableError(f"No static embedding for {text!r}") from None
