"""Tests for query embeddings against a mocked inference endpoint."""
import json

import httpx
import pytest

from scripture_rag.cache import ContextCache
from scripture_rag.embeddings import QueryEmbedder, embedding_from_response, mean_pool, normalize_embedding
from scripture_rag.errors import ConfigurationError, DimensionMismatch, UpstreamUnavailable

from fakes import FakeRedis

ENDPOINT = "https://hf.test/models/e5/pipeline/feature-extraction"


def _embedder(handler, cache=None, token="hf_test", dimension=4):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return QueryEmbedder(
        cache or ContextCache(),
        token=token,
        endpoint=ENDPOINT,
        dimension=dimension,
        http_client=client,
    )


def test_posts_prefixed_query_with_bearer_token():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=[[0.1, 0.2, 0.3, 0.4]])

    assert _embedder(handler).embed("what is love") == [0.1, 0.2, 0.3, 0.4]
    assert seen["auth"] == "Bearer hf_test"
    assert seen["body"]["inputs"] == ["query: what is love"]
    assert seen["body"]["options"] == {"wait_for_model": True}


def test_token_matrix_is_mean_pooled():
    def handler(request):
        return httpx.Response(200, json=[[[1.0, 0.0, 2.0, 4.0], [3.0, 2.0, 0.0, 0.0]]])

    assert _embedder(handler).embed("love") == [2.0, 1.0, 1.0, 2.0]


def test_wrong_dimension_is_rejected():
    def handler(request):
        return httpx.Response(200, json=[[0.1, 0.2]])

    with pytest.raises(DimensionMismatch) as exc:
        _embedder(handler).embed("love")
    assert exc.value.actual == 2


def test_http_error_becomes_upstream_unavailable():
    def handler(request):
        return httpx.Response(503, text="model loading")

    with pytest.raises(UpstreamUnavailable, match="503"):
        _embedder(handler).embed("love")


def test_missing_token_is_configuration_error():
    with pytest.raises(ConfigurationError):
        _embedder(lambda r: httpx.Response(200, json=[]), token=None).embed("love")


def test_cache_hit_skips_provider_and_result_is_cached():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json=[[0.1, 0.2, 0.3, 0.4]])

    cache = ContextCache(FakeRedis(), embedding_model="e5")
    embedder = _embedder(handler, cache=cache)

    embedder.embed("Love ")
    embedder.embed("love")

    assert len(calls) == 1


def test_cached_vector_of_wrong_width_is_ignored():
    cache = ContextCache(FakeRedis(), embedding_model="e5")
    cache.set_embedding("love", [1.0, 2.0])

    def handler(request):
        return httpx.Response(200, json=[0.1, 0.2, 0.3, 0.4])

    assert _embedder(handler, cache=cache).embed("love") == [0.1, 0.2, 0.3, 0.4]


def test_response_shapes():
    assert normalize_embedding([1, 2]) == [1.0, 2.0]
    assert mean_pool([]) == []
    with pytest.raises(UpstreamUnavailable):
        embedding_from_response({"error": "bad"})
    with pytest.raises(UpstreamUnavailable):
        normalize_embedding([["a"]])
