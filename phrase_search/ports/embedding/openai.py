"""OpenAI embeddings adapter implementing the embedding provider port.

This adapter is optional and requires the `openai` package installed.
SDK-level retries are disabled; `SearchService` owns the retry policy.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Mapping, Optional, Sequence

from ...core.errors import (
    DimensionMismatchError,
    ProviderUnavailableError,
    RateLimitedError,
    SearchTimeoutError,
)

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "text-embedding-3-small"


class OpenAIEmbeddingProvider:
    """Embed text with `client.embeddings.create` from the OpenAI SDK."""

    def __init__(
        self,
        *,
        model: str = DEFAULT_MODEL,
        dimension: int | None = None,
        api_key: str | None = None,
        base_url: str | None = None,
        client: Any = None,
    ) -> None:
        """Create an OpenAI embedding provider.

        Args:
            model: Embedding model name.
            dimension: Expected vector length. Passed to the API as
                `dimensions` and checked against every response.
            api_key: API key; defaults to the SDK's `OPENAI_API_KEY` lookup.
            base_url: Alternative API base URL (proxies, compatible servers).
            client: Pre-built `openai.OpenAI` client; overrides key/url.
        """

        try:
            import openai  # type: ignore[import-not-found]
        except ImportError as exc:  # pragma: no cover - env dependent
            raise ImportError(
                "openai is required for OpenAIEmbeddingProvider. "
                "Install with `pip install openai`."
            ) from exc

        if dimension is not None and dimension <= 0:
            raise ValueError("dimension must be > 0")

        self._openai = openai
        self.model = model
        self.dimension = dimension
        self._client = client or openai.OpenAI(
            api_key=api_key,
            base_url=base_url,
            max_retries=0,
        )

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None
    ) -> OpenAIEmbeddingProvider:
        """Build a provider from `OPENAI_*` and `PHRASE_SEARCH_*` variables."""

        env = os.environ if environ is None else environ
        raw_dimension = env.get("PHRASE_SEARCH_DIMENSION")
        try:
            dimension = int(raw_dimension) if raw_dimension else None
        except ValueError as exc:
            raise ValueError(
                f"Invalid value for PHRASE_SEARCH_DIMENSION: {raw_dimension!r}"
            ) from exc
        return cls(
            model=env.get("PHRASE_SEARCH_EMBED_MODEL") or DEFAULT_MODEL,
            dimension=dimension,
            api_key=env.get("OPENAI_API_KEY"),
            base_url=env.get("OPENAI_BASE_URL") or None,
        )

    def embed(self, text: str, *, timeout: Optional[float] = None) -> Sequence[float]:
        request: dict[str, Any] = {"model": self.model, "input": text}
        if self.dimension is not None:
            request["dimensions"] = self.dimension
        if timeout is not None:
            request["timeout"] = timeout

        try:
            response = self._client.embeddings.create(**request)
        except self._openai.RateLimitError as exc:
            raise RateLimitedError(
                f"OpenAI rate limit: {exc}", retry_after=_retry_after(exc)
            ) from exc
        except self._openai.APITimeoutError as exc:
            raise SearchTimeoutError(f"OpenAI embedding request timed out: {exc}") from exc
        except self._openai.APIConnectionError as exc:
            raise ProviderUnavailableError(f"OpenAI unreachable: {exc}") from exc
        except (
            self._openai.AuthenticationError,
            self._openai.PermissionDeniedError,
        ) as exc:
            raise ProviderUnavailableError(f"OpenAI rejected credentials: {exc}") from exc
        except self._openai.APIStatusError as exc:
            if exc.status_code >= 500:
                raise ProviderUnavailableError(
                    f"OpenAI server error {exc.status_code}: {exc}"
                ) from exc
            raise

        vector = [float(value) for value in response.data[0].embedding]
        if self.dimension is not None and len(vector) != self.dimension:
            raise DimensionMismatchError(self.dimension, len(vector))
        logger.debug("Embedded %d chars with %s", len(text), self.model)
        return vector


def _retry_after(exc: Any) -> float | None:
    response = getattr(exc, "response", None)
    headers = getattr(response, "headers", None) or {}
    raw = headers.get("retry-after")
    if raw is None:
        return None
    try:
        return max(0.0, float(raw))
    except ValueError:
        return None
