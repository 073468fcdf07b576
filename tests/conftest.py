"""Pytest configuration and shared fixtures."""
import pytest

from scripture_rag.errors import UpstreamUnavailable

from fakes import FakeRedis, FakeStore


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def outage_store():
    return FakeStore(ready_error=UpstreamUnavailable("connection refused"))
