"""
Best-effort Redis cache for query embeddings and assembled result sets.

Keys:
- embed:{model}:{normalized query}                         (long TTL)
- context:{version}:{translation}:{normalized query}       (short TTL)

Fail-open: backend errors and undecodable payloads are logged and
treated as a miss. With no REDIS_URL configured every read misses and
every write is a no-op.
"""
import json

import redis
from pydantic import ValidationError

from scripture_rag.config import settings
from scripture_rag.logging_config import get_logger
from scripture_rag.logging_utils import short_error
from scripture_rag.verses import VERSE_LIST, VerseContext, normalize_query

logger = get_logger(__name__)


class ContextCache:
    def __init__(
        self,
        client=None,
        *,
        embedding_model: str = "",
        context_ttl: int = 3600,
        embedding_ttl: int = 604800,
        version: str = "v2",
    ):
        """
        Args:
            client: redis.Redis-compatible object (get / setex), or None to disable caching
            embedding_model: Model name baked into embedding keys
            context_ttl: Seconds to keep assembled result sets
            embedding_ttl: Seconds to keep query embeddings
            version: Result-set schema version baked into context keys
        """
        self.client = client
        self.embedding_model = embedding_model
        self.context_ttl = context_ttl
        self.embedding_ttl = embedding_ttl
        self.version = version

    @classmethod
    def from_settings(cls) -> "ContextCache":
        client = None
        if settings.redis_url:
            client = redis.Redis.from_url(
                settings.redis_url,
                decode_responses=True,
                socket_timeout=2.0,
                socket_connect_timeout=2.0,
            )
        else:
            logger.info("cache disabled | reason=REDIS_URL not configured")
        return cls(
            client,
            embedding_model=settings.hf_embedding_model,
            context_ttl=settings.context_cache_ttl,
            embedding_ttl=settings.embedding_cache_ttl,
            version=settings.context_cache_version,
        )

    @property
    def enabled(self) -> bool:
        return self.client is not None

    # ============== Keys ==============

    def context_key(self, query: str, translation: str) -> str:
        return f"context:{self.version}:{translation}:{normalize_query(query)}"

    def embedding_key(self, query: str) -> str:
        return f"embed:{self.embedding_model}:{normalize_query(query)}"

    # ============== Raw access ==============

    def _get(self, key: str) -> str | None:
        if not self.enabled:
            return None
        try:
            return self.client.get(key)
        except Exception as e:
            logger.warning(f"cache get failed | key={key} | err={short_error(e)}")
            return None

    def _set(self, key: str, value: str, ttl: int) -> None:
        if not self.enabled:
            return
        try:
            self.client.setex(key, ttl, value)
        except Exception as e:
            logger.warning(f"cache set failed | key={key} | err={short_error(e)}")

    # ============== Result sets ==============

    def get_context(self, query: str, translation: str) -> list[VerseContext] | None:
        key = self.context_key(query, translation)
        raw = self._get(key)
        if raw is None:
            return None
        try:
            return VERSE_LIST.validate_json(raw)
        except ValidationError as e:
            logger.warning(f"cache payload discarded | key={key} | err={short_error(e)}")
            return None

    def set_context(self, query: str, translation: str, verses: list[VerseContext]) -> None:
        payload = VERSE_LIST.dump_json(verses).decode("utf-8")
        self._set(self.context_key(query, translation), payload, self.context_ttl)

    # ============== Embeddings ==============

    def get_embedding(self, query: str) -> list[float] | None:
        key = self.embedding_key(query)
        raw = self._get(key)
        if raw is None:
            return None
        try:
            vector = json.loads(raw)
        except ValueError as e:
            logger.warning(f"cache payload discarded | key={key} | err={short_error(e)}")
            return None
        if not isinstance(vector, list) or not all(isinstance(x, (int, float)) for x in vector):
            logger.warning(f"cache payload discarded | key={key} | err=not a vector")
            return None
        return [float(x) for x in vector]

    def set_embedding(self, query: str, vector: list[float]) -> None:
        self._set(self.embedding_key(query), json.dumps(vector), self.embedding_ttl)
