"""
Query embeddings from the HuggingFace inference feature-extraction endpoint.

The model (multilingual-e5-small) expects the "query: " prefix and
returns either a sentence vector or a token-level matrix depending on the
deployment; matrices are mean-pooled. Anything that is not a vector of
the configured width is rejected before it reaches the store.
"""
import httpx

from scripture_rag.cache import ContextCache
from scripture_rag.config import settings
from scripture_rag.errors import ConfigurationError, DimensionMismatch, UpstreamUnavailable
from scripture_rag.logging_config import get_logger
from scripture_rag.logging_utils import short_error

logger = get_logger(__name__)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def mean_pool(vectors: list[list[float]]) -> list[float]:
    if not vectors:
        return []
    size = len(vectors[0])
    if any(len(v) != size for v in vectors):
        raise UpstreamUnavailable("Ragged token matrix in embedding response")
    return [sum(v[i] for v in vectors) / len(vectors) for i in range(size)]


def normalize_embedding(raw) -> list[float]:
    """
    Reduce one embedding payload to a flat vector.

    Accepts a flat list of numbers or a token matrix (list of lists of
    numbers, mean-pooled).

    Raises:
        UpstreamUnavailable: any other shape.
    """
    if isinstance(raw, list) and raw and all(_is_number(x) for x in raw):
        return [float(x) for x in raw]
    if isinstance(raw, list) and raw and all(isinstance(row, list) for row in raw):
        if all(row and all(_is_number(x) for x in row) for row in raw):
            return mean_pool([[float(x) for x in row] for row in raw])
    raise UpstreamUnavailable("Unexpected embedding response shape")


def embedding_from_response(data) -> list[float]:
    """
    Extract the query vector from a feature-extraction response.

    The endpoint answers a batch of one input with [vector] or
    [[token vectors]]; a bare vector is also accepted.
    """
    if not isinstance(data, list) or not data:
        raise UpstreamUnavailable("Embedding response was not a non-empty array")
    if all(_is_number(x) for x in data):
        return normalize_embedding(data)
    return normalize_embedding(data[0])


class QueryEmbedder:
    def __init__(
        self,
        cache: ContextCache | None = None,
        *,
        token: str | None = None,
        endpoint: str = "",
        dimension: int = 384,
        timeout: float = 30.0,
        http_client: httpx.Client | None = None,
    ):
        self.cache = cache or ContextCache()
        self.token = token
        self.endpoint = endpoint
        self.dimension = dimension
        self.timeout = timeout
        self.http = http_client or httpx.Client()

    @classmethod
    def from_settings(cls, cache: ContextCache) -> "QueryEmbedder":
        return cls(
            cache,
            token=settings.hf_token,
            endpoint=settings.hf_endpoint,
            dimension=settings.embedding_dim,
            timeout=settings.embedding_timeout,
        )

    def embed(self, query: str) -> list[float]:
        """
        Return the query embedding, from cache when available.

        Raises:
            ConfigurationError: HF_TOKEN is not set.
            UpstreamUnavailable: provider call failed or returned an unusable payload.
            DimensionMismatch: provider returned a vector of the wrong width.
        """
        cached = self.cache.get_embedding(query)
        if cached is not None and len(cached) == self.dimension:
            return cached

        if not self.token:
            raise ConfigurationError("HF_TOKEN is not set")

        try:
            response = self.http.post(
                self.endpoint,
                headers={"Authorization": f"Bearer {self.token}"},
                json={
                    "inputs": [f"query: {query}"],
                    "options": {"wait_for_model": True},
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            body = e.response.text.replace("\n", " ")[:200]
            raise UpstreamUnavailable(
                f"HF embeddings failed: {e.response.status_code} {body}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamUnavailable(f"HF embeddings failed: {short_error(e)}") from e

        embedding = embedding_from_response(data)
        if len(embedding) != self.dimension:
            raise DimensionMismatch(self.dimension, len(embedding))

        self.cache.set_embedding(query, embedding)
        return embedding
