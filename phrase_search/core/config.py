"""Search configuration loaded from code or environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Callable, Mapping, Optional, TypeVar

from dotenv import find_dotenv, load_dotenv

from .metrics import VectorMetric, VectorMetricInput, normalize_vector_metric
from .retry import RetryPolicy

T = TypeVar("T")

ENV_PREFIX = "PHRASE_SEARCH_"


@dataclass(frozen=True)
class SearchSettings:
    """Index schema and request policy shared by the search services."""

    index_name: str = "phrases"
    dimension: int = 1536
    metric: VectorMetricInput = VectorMetric.COSINE
    top_k: int = 5
    timeout: Optional[float] = None
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    def __post_init__(self) -> None:
        if not str(self.index_name).strip():
            raise ValueError("index_name must be a non-empty string")
        if self.dimension <= 0:
            raise ValueError("dimension must be > 0")
        if self.top_k < 0:
            raise ValueError("top_k must be >= 0")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0 when set")
        object.__setattr__(self, "metric", normalize_vector_metric(self.metric))

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        *,
        load_dotenv_file: bool = True,
    ) -> SearchSettings:
        """Build settings from `PHRASE_SEARCH_*` variables.

        When `environ` is omitted, a `.env` file found from the working
        directory is loaded into `os.environ` first.
        """

        if environ is None:
            if load_dotenv_file:
                load_dotenv(find_dotenv(usecwd=True), override=False)
            environ = os.environ

        defaults = cls()
        retry_defaults = defaults.retry
        retry = RetryPolicy(
            max_attempts=_read(environ, "MAX_ATTEMPTS", int, retry_defaults.max_attempts),
            initial_delay=_read(
                environ, "BACKOFF_INITIAL", float, retry_defaults.initial_delay
            ),
            multiplier=_read(
                environ, "BACKOFF_MULTIPLIER", float, retry_defaults.multiplier
            ),
            max_delay=_read(environ, "BACKOFF_MAX", float, retry_defaults.max_delay),
        )
        return cls(
            index_name=_read(environ, "INDEX", str, defaults.index_name),
            dimension=_read(environ, "DIMENSION", int, defaults.dimension),
            metric=_read(environ, "METRIC", normalize_vector_metric, defaults.metric),
            top_k=_read(environ, "TOP_K", int, defaults.top_k),
            timeout=_read(environ, "TIMEOUT", float, defaults.timeout),
            retry=retry,
        )


def _read(
    environ: Mapping[str, str],
    name: str,
    parse: Callable[[str], T],
    default: T,
) -> T:
    key = ENV_PREFIX + name
    raw = environ.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return parse(raw.strip())
    except ValueError as exc:
        raise ValueError(f"Invalid value for {key}: {raw!r} ({exc})") from exc
