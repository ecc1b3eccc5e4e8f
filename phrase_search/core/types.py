"""Shared phrase entities used by store ports and the search service."""

from __future__ import annotations

import hashlib
import re
import unicodedata
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from .metrics import VectorMetric

NamedParams = Dict[str, Any]
PositionalParams = List[Any]
QueryParams = Union[NamedParams, PositionalParams, None]

RowMapping = Mapping[str, Any]
Rows = List[RowMapping]
MaybeRow = Optional[RowMapping]

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_phrase(text: str) -> str:
    """Return the canonical form used to derive phrase ids."""

    normalized = unicodedata.normalize("NFC", text)
    return _WHITESPACE_RE.sub(" ", normalized).strip()


def phrase_id(text: str) -> str:
    """Content-derived id: SHA-256 hex digest of the normalized phrase."""

    return hashlib.sha256(normalize_phrase(text).encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class IndexSchema:
    """Logical definition of a named phrase index."""

    name: str
    dimension: int
    metric: VectorMetric


@dataclass(frozen=True)
class PhraseRecord:
    """One stored phrase with its embedding vector."""

    id: str
    text: str
    vector: Sequence[float]


@dataclass(frozen=True)
class PhraseHit:
    """One ranked query result; `score` is a distance, lower is closer."""

    text: str
    score: float
    id: str

    def as_tuple(self) -> tuple[str, float]:
        return (self.text, self.score)
