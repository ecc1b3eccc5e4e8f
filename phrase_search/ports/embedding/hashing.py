"""Offline feature-hashing embedding provider.

Each lowercase word token is hashed into one of `dimension` buckets with a
signed weight, then the vector is L2-normalized. Phrases sharing words end up
close under cosine distance. It has no semantic understanding; it exists for
examples and local development without network access.
"""

from __future__ import annotations

import hashlib
import math
import re
from typing import Optional, Sequence

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


class HashingEmbeddingProvider:
    def __init__(self, dimension: int = 256, *, salt: str = "") -> None:
        if dimension <= 0:
            raise ValueError("dimension must be > 0")
        self.dimension = dimension
        self._salt = salt

    def embed(self, text: str, *, timeout: Optional[float] = None) -> Sequence[float]:
        vector = [0.0] * self.dimension
        for token in _TOKEN_RE.findall(text.lower()):
            digest = hashlib.blake2b(
                (self._salt + token).encode("utf-8"), digest_size=8
            ).digest()
            value = int.from_bytes(digest, "little")
            bucket = value % self.dimension
            sign = 1.0 if (value >> 63) & 1 == 0 else -1.0
            vector[bucket] += sign

        norm = math.sqrt(sum(item * item for item in vector))
        if norm == 0.0:
            return vector
        return [item / norm for item in vector]
