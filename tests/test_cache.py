"""Tests for the best-effort Redis cache."""
from scripture_rag.cache import ContextCache
from scripture_rag.verses import OriginalWord, VerseContext

from fakes import FakeRedis


def _verses():
    return [
        VerseContext(
            reference="EXO 20:13",
            translation="WEB",
            text="You shall not murder.",
            original=[OriginalWord(word="תִּרְצָח", strongs_id="H7523", gloss="to murder, slay")],
        ),
        VerseContext(reference="GEN 9:6", translation="WEB", text="Whoever sheds man's blood...", is_cross_reference=True),
    ]


def test_keys_use_normalized_query():
    cache = ContextCache(FakeRedis(), embedding_model="intfloat/multilingual-e5-small", version="v2")

    assert cache.context_key("  Is Murder   WRONG? ", "WEB") == "context:v2:WEB:is murder wrong?"
    assert cache.embedding_key("Is Murder WRONG?") == "embed:intfloat/multilingual-e5-small:is murder wrong?"


def test_context_snapshot_is_fresh_on_every_read():
    redis_client = FakeRedis()
    cache = ContextCache(redis_client, context_ttl=3600)
    cache.set_context("is murder wrong", "WEB", _verses())

    first = cache.get_context("IS MURDER WRONG", "WEB")
    first[0].text = "mutated"
    second = cache.get_context("is murder wrong", "WEB")

    assert second == _verses()
    assert redis_client.ttls["context:v2:WEB:is murder wrong"] == 3600


def test_translation_is_part_of_the_key():
    cache = ContextCache(FakeRedis())
    cache.set_context("love", "WEB", _verses())

    assert cache.get_context("love", "KJV") is None


def test_embedding_round_trip_and_ttl():
    redis_client = FakeRedis()
    cache = ContextCache(redis_client, embedding_model="m", embedding_ttl=604800)
    cache.set_embedding("love", [0.5, 0.25])

    assert cache.get_embedding("love") == [0.5, 0.25]
    assert redis_client.ttls["embed:m:love"] == 604800


def test_undecodable_payload_is_a_miss():
    redis_client = FakeRedis()
    cache = ContextCache(redis_client, embedding_model="m")
    redis_client.data["context:v2:WEB:love"] = "{not json"
    redis_client.data["embed:m:love"] = '{"a": 1}'

    assert cache.get_context("love", "WEB") is None
    assert cache.get_embedding("love") is None


def test_backend_errors_fail_open():
    cache = ContextCache(FakeRedis(fail=True))

    cache.set_context("love", "WEB", _verses())
    assert cache.get_context("love", "WEB") is None
    assert cache.get_embedding("love") is None


def test_disabled_without_client():
    cache = ContextCache(None)

    assert not cache.enabled
    cache.set_context("love", "WEB", _verses())
    assert cache.get_context("love", "WEB") is None
