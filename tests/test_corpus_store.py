"""
Tests for the corpus store against a scripted DB-API connection.

The last test talks to a real Postgres + pgvector database and only runs
when DATABASE_URL is set:

    DATABASE_URL=postgresql://... pytest tests/test_corpus_store.py -v
"""
import os

import psycopg2
import pytest

from scripture_rag.corpus_store import CorpusStore, CrossReferenceEdge, to_vector_literal
from scripture_rag.errors import ConfigurationError, UpstreamUnavailable
from scripture_rag.references import ParsedReference


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn

    def execute(self, sql, params):
        self.conn.executed.append((sql, list(params)))
        result = self.conn.results.pop(0)
        if isinstance(result, Exception):
            raise result
        self._rows = result

    def fetchall(self):
        return self._rows


class FakeConnection:
    """Answers each execute() with the next scripted result."""

    def __init__(self, results):
        self.results = list(results)
        self.executed: list[tuple[str, list]] = []
        self.closed = 0

    def cursor(self):
        return FakeCursor(self)

    def close(self):
        self.closed += 1


def _store(*results):
    conn = FakeConnection(results)
    return CorpusStore("postgresql://test", connect=lambda url: conn), conn


def test_missing_url_is_configuration_error():
    with pytest.raises(ConfigurationError):
        CorpusStore(None).ensure_ready()


def test_ready_store_is_checked_once():
    store, conn = _store([("vector",)], [("USER-DEFINED",)])

    store.ensure_ready()
    store.ensure_ready()

    assert len(conn.executed) == 2
    assert conn.closed == 2


def test_missing_pgvector_is_configuration_error():
    store, _ = _store([])

    with pytest.raises(ConfigurationError, match="pgvector"):
        store.ensure_ready()


def test_missing_embedding_column_is_configuration_error():
    store, _ = _store([("vector",)], [])

    with pytest.raises(ConfigurationError, match="embedding"):
        store.ensure_ready()


def test_driver_errors_become_upstream_unavailable():
    store, conn = _store(psycopg2.OperationalError("server closed the connection"))

    with pytest.raises(UpstreamUnavailable):
        store.ensure_ready()
    assert conn.closed == 1


def test_connection_failure_becomes_upstream_unavailable():
    def connect(url):
        raise psycopg2.OperationalError("could not connect to server")

    with pytest.raises(UpstreamUnavailable, match="connection failed"):
        CorpusStore("postgresql://test", connect=connect).ensure_ready()


def test_fetch_verses_joins_ranges_in_request_order():
    store, conn = _store([
        (0, 16, "There are six things the LORD hates,", "WEB"),
        (0, 17, "haughty eyes, a lying tongue,", "WEB"),
        (1, 16, "You shall not give false testimony.", "WEB"),
    ])
    refs = [ParsedReference("PRO", 6, 16, 17), ParsedReference("EXO", 20, 16), ParsedReference("JHN", 99, 1)]

    verses = store.fetch_verses(refs, "WEB")

    assert [(v.reference, v.text) for v in verses] == [
        ("PRO 6:16-17", "There are six things the LORD hates, haughty eyes, a lying tongue,"),
        ("EXO 20:16", "You shall not give false testimony."),
    ]
    sql, params = conn.executed[0]
    assert params[:4] == [0, "PRO", 6, 16]
    assert params[-1] == "WEB"


def test_fetch_verses_without_refs_skips_the_database():
    store, conn = _store()

    assert store.fetch_verses([], "WEB") == []
    assert conn.executed == []


def test_nearest_verses():
    store, conn = _store([("JHN", 3, 16, "For God so loved the world...", "WEB")])

    verses = store.nearest_verses([0.5, 0.25], "WEB", 4)

    assert verses[0].reference == "JHN 3:16"
    assert conn.executed[0][1] == ["WEB", "[0.5,0.25]", 4]
    assert store.nearest_verses([0.5], "WEB", 0) == []


def test_cross_reference_edges():
    store, conn = _store([("EXO", 20, 13, "GEN", 9, 6, 48), ("EXO", 20, 13, "MAT", 5, 21, None)])

    edges = store.cross_reference_edges([("EXO", 20, 13)], min_votes=10, limit=4)

    assert edges[0] == CrossReferenceEdge("EXO", 20, 13, "GEN", 9, 6, 48)
    assert edges[0].target == ParsedReference("GEN", 9, 6)
    assert edges[1].votes == 0
    assert conn.executed[0][1] == ["EXO", 20, 13, 10, 4]


def test_vector_literal():
    assert to_vector_literal([1, 0.5]) == "[1.0,0.5]"


requires_database = pytest.mark.skipif(
    not os.environ.get("DATABASE_URL"),
    reason="DATABASE_URL not set"
)


@requires_database
def test_live_store_round_trip():
    store = CorpusStore(os.environ["DATABASE_URL"])

    store.ensure_ready()
    verses = store.fetch_verses([ParsedReference("JHN", 3, 16)], "WEB")

    assert verses and verses[0].reference == "JHN 3:16"
