"""Tests for the HTTP surface with faked retrieval and completion."""
import inspect

import pytest
from fastapi.testclient import TestClient

from scripture_rag.errors import CompletionUnavailable, RateLimited, UpstreamUnavailable
from scripture_rag.main import app, get_completion, get_retriever, limiter

from fakes import FakeCompletion, FakeScriptureApi, FakeStore, make_retriever


class FailingApi(FakeScriptureApi):
    def fetch_passage(self, parsed, translation):
        raise UpstreamUnavailable("verse services down")


@pytest.fixture
def client():
    limiter.enabled = False
    state = {
        "retriever": make_retriever(store=FakeStore(texts={"EXO 20:13": "You shall not murder."})),
        "completion": FakeCompletion(),
    }
    app.dependency_overrides[get_retriever] = lambda: state["retriever"]
    app.dependency_overrides[get_completion] = lambda: state["completion"]
    with TestClient(app) as test_client:
        test_client.fakes = state
        yield test_client
    app.dependency_overrides.clear()
    limiter.enabled = True


def _chat(client, messages, **extra):
    return client.post("/chat", json={"messages": messages, **extra})


def test_root_and_health(client):
    assert client.get("/").status_code == 200

    health = client.get("/health").json()
    assert health["status"] == "ok"
    assert set(health) >= {"database", "cache", "embeddings", "completion"}


def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "abc123"})

    assert response.headers["X-Request-ID"] == "abc123"


def test_translations(client):
    response = client.get("/translations")

    assert response.status_code == 200
    assert response.json()[0]["id"] == "WEB"


def test_context_returns_verses(client):
    response = client.post("/context", json={"query": "What does Exodus 20:13 say?"})

    assert response.status_code == 200
    body = response.json()
    assert body["translation"] == "WEB"
    assert [v["reference"] for v in body["verses"]] == ["EXO 20:13"]
    assert body["verses"][0]["is_cross_reference"] is False


def test_context_rejects_empty_query(client):
    assert client.post("/context", json={"query": ""}).status_code == 422


def test_context_unavailable_is_503(client, outage_store):
    client.fakes["retriever"] = make_retriever(store=outage_store, api=FailingApi())

    response = client.post("/context", json={"query": "John 3:17"})

    assert response.status_code == 503


def test_chat_answers_from_last_user_turn(client):
    response = _chat(client, [
        {"role": "user", "content": "Is stealing wrong?"},
        {"role": "assistant", "content": "Yes."},
        {"role": "user", "parts": [{"type": "text", "text": "What does Exodus 20:13 say?"}]},
    ])

    assert response.status_code == 200
    body = response.json()
    assert body == {
        "answer": "An answer.",
        "model": "fake-model",
        "verses": body["verses"],
    }
    assert [v["reference"] for v in body["verses"]] == ["EXO 20:13"]

    messages, credential = client.fakes["completion"].complete_calls[0]
    assert [m["role"] for m in messages] == ["system", "user", "assistant", "user"]
    assert "Reference: EXO 20:13" in messages[0]["content"]
    assert messages[-1]["content"] == "What does Exodus 20:13 say?"
    assert credential is None


def test_chat_passes_custom_key(client):
    client.fakes["completion"] = FakeCompletion(api_key=None)

    response = _chat(client, [{"role": "user", "content": "John 3:16"}], custom_api_key="user-key")

    assert response.status_code == 200
    assert client.fakes["completion"].complete_calls[0][1] == "user-key"


def test_chat_without_any_key_is_400(client):
    client.fakes["completion"] = FakeCompletion(api_key=None)

    response = _chat(client, [{"role": "user", "content": "John 3:16"}])

    assert response.status_code == 400
    assert "API key" in response.json()["detail"]


def test_chat_without_user_message_is_400(client):
    response = _chat(client, [{"role": "assistant", "content": "Hello"}, {"role": "user", "content": "  "}])

    assert response.status_code == 400
    assert response.json()["detail"] == "Missing user query"


def test_chat_rate_limited_is_429(client):
    client.fakes["completion"] = FakeCompletion(error=RateLimited("Rate limit exceeded."))

    response = _chat(client, [{"role": "user", "content": "John 3:16"}])

    assert response.status_code == 429
    assert response.json()["detail"] == "Rate limit exceeded."


def test_chat_completion_outage_is_502(client):
    client.fakes["completion"] = FakeCompletion(error=CompletionUnavailable("all models failed"))

    response = _chat(client, [{"role": "user", "content": "John 3:16"}])

    assert response.status_code == 502


def test_chat_retrieval_outage_is_503(client, outage_store):
    client.fakes["retriever"] = make_retriever(store=outage_store, api=FailingApi())

    response = _chat(client, [{"role": "user", "content": "John 3:17"}])

    assert response.status_code == 503


def test_blocking_endpoints_run_on_threadpool():
    endpoints = {route.path: route.endpoint for route in app.routes if hasattr(route, "endpoint")}

    assert not inspect.iscoroutinefunction(endpoints["/context"])
    assert not inspect.iscoroutinefunction(endpoints["/chat"])
