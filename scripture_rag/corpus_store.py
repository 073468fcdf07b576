"""
Read-only access to the corpus store (Postgres + pgvector).

Tables (populated offline):
- verses(book, chapter, verse, translation, text, embedding vector(384))
- cross_references(source_book, source_chapter, source_verse,
                   target_book, target_chapter, target_verse, votes)

A connection is opened per call and always closed. Driver errors are
re-raised as UpstreamUnavailable so the retriever can fall back to the
pure-API path; a missing DATABASE_URL, pgvector extension or embedding
column raises ConfigurationError.
"""
from dataclasses import dataclass
from typing import Callable

import psycopg2

from scripture_rag.config import settings
from scripture_rag.errors import ConfigurationError, UpstreamUnavailable
from scripture_rag.logging_config import get_logger
from scripture_rag.logging_utils import short_error
from scripture_rag.references import ParsedReference
from scripture_rag.verses import VerseContext

logger = get_logger(__name__)


@dataclass(frozen=True)
class CrossReferenceEdge:
    """A weighted edge in the cross-reference graph."""
    source_book: str
    source_chapter: int
    source_verse: int
    target_book: str
    target_chapter: int
    target_verse: int
    votes: int

    @property
    def target(self) -> ParsedReference:
        return ParsedReference(book=self.target_book, chapter=self.target_chapter, verse=self.target_verse)


def to_vector_literal(embedding: list[float]) -> str:
    """Render an embedding in pgvector's text format: [0.1,0.2,...]"""
    return "[" + ",".join(repr(float(x)) for x in embedding) + "]"


class CorpusStore:
    def __init__(self, database_url: str | None = None, connect: Callable | None = None):
        """
        Args:
            database_url: Postgres connection string
            connect: Connection factory taking the URL (defaults to psycopg2.connect)
        """
        self.database_url = database_url
        self._connect_fn = connect or psycopg2.connect
        self._ready = False

    @classmethod
    def from_settings(cls) -> "CorpusStore":
        return cls(settings.database_url)

    def _connect(self):
        if not self.database_url:
            raise ConfigurationError("DATABASE_URL is not configured")
        try:
            return self._connect_fn(self.database_url)
        except psycopg2.Error as e:
            raise UpstreamUnavailable(f"corpus store connection failed: {short_error(e)}") from e

    def _query(self, op: str, sql: str, params: tuple | list) -> list[tuple]:
        conn = self._connect()
        try:
            cursor = conn.cursor()
            cursor.execute(sql, params)
            return cursor.fetchall()
        except psycopg2.Error as e:
            logger.warning(f"{op} failed | err={short_error(e)}")
            raise UpstreamUnavailable(f"{op} failed: {short_error(e)}") from e
        finally:
            try:
                conn.close()
            except psycopg2.Error:
                pass

    # ============== Readiness ==============

    def ensure_ready(self) -> None:
        """
        Verify the pgvector extension and the verses.embedding column exist.

        The result is remembered for the life of the store once positive.

        Raises:
            ConfigurationError: DATABASE_URL unset or schema incomplete.
            UpstreamUnavailable: the store could not be reached.
        """
        if self._ready:
            return

        rows = self._query(
            "store readiness",
            "SELECT extname FROM pg_extension WHERE extname = %s",
            ("vector",),
        )
        if not rows:
            raise ConfigurationError("pgvector extension is not installed")

        rows = self._query(
            "store readiness",
            """
            SELECT data_type
            FROM information_schema.columns
            WHERE table_name = %s AND column_name = %s
            """,
            ("verses", "embedding"),
        )
        if not rows:
            raise ConfigurationError("verses.embedding column is missing")

        self._ready = True
        logger.info("corpus store ready")

    # ============== Verses ==============

    def fetch_verses(self, refs: list[ParsedReference], translation: str) -> list[VerseContext]:
        """
        Fetch display text for references in one translation.

        Ranges are fetched verse by verse and joined into a single
        VerseContext carrying the range reference. Output follows the
        order of refs; references with no stored text are omitted.
        """
        if not refs:
            return []

        tuples = []
        params: list = []
        for idx, ref in enumerate(refs):
            for book, chapter, verse in ref.keys:
                tuples.append("(%s::int, %s::text, %s::int, %s::int)")
                params.extend([idx, book, chapter, verse])

        sql = f"""
            WITH refs(idx, book, chapter, verse) AS (VALUES {', '.join(tuples)})
            SELECT r.idx, v.verse, v.text, v.translation
            FROM verses v
            JOIN refs r ON v.book = r.book AND v.chapter = r.chapter AND v.verse = r.verse
            WHERE v.translation = %s
            ORDER BY r.idx, v.verse
        """
        params.append(translation)
        rows = self._query("fetch_verses", sql, params)

        grouped: dict[int, list[tuple]] = {}
        for idx, verse_num, text, row_translation in rows:
            grouped.setdefault(idx, []).append((verse_num, text, row_translation))

        verses = []
        for idx, ref in enumerate(refs):
            parts = grouped.get(idx)
            if not parts:
                continue
            text = " ".join((part[1] or "").strip() for part in parts).strip()
            if not text:
                continue
            verses.append(VerseContext(reference=ref.reference, translation=parts[0][2], text=text))
        return verses

    def nearest_verses(self, embedding: list[float], translation: str, limit: int) -> list[VerseContext]:
        """Nearest verses by embedding distance, ascending."""
        if limit <= 0:
            return []

        rows = self._query(
            "vector search",
            """
            SELECT book, chapter, verse, text, translation
            FROM verses
            WHERE translation = %s AND embedding IS NOT NULL
            ORDER BY embedding <-> %s::vector
            LIMIT %s
            """,
            (translation, to_vector_literal(embedding), limit),
        )
        return [
            VerseContext(reference=f"{book} {chapter}:{verse}", translation=row_translation, text=text)
            for book, chapter, verse, text, row_translation in rows
        ]

    # ============== Cross-references ==============

    def cross_reference_edges(
        self,
        sources: list[tuple[str, int, int]],
        min_votes: int,
        limit: int,
    ) -> list[CrossReferenceEdge]:
        """Edges from any source verse with votes > min_votes, strongest first."""
        if not sources or limit <= 0:
            return []

        tuples = []
        params: list = []
        for book, chapter, verse in sources:
            tuples.append("(%s::text, %s::int, %s::int)")
            params.extend([book, chapter, verse])
        params.extend([min_votes, limit])

        rows = self._query(
            "cross_reference_edges",
            f"""
            SELECT source_book, source_chapter, source_verse,
                   target_book, target_chapter, target_verse, votes
            FROM cross_references
            WHERE (source_book, source_chapter, source_verse) IN (VALUES {', '.join(tuples)})
              AND votes > %s
            ORDER BY COALESCE(votes, 0) DESC
            LIMIT %s
            """,
            params,
        )
        return [
            CrossReferenceEdge(
                source_book=row[0],
                source_chapter=row[1],
                source_verse=row[2],
                target_book=row[3],
                target_chapter=row[4],
                target_verse=row[5],
                votes=int(row[6] or 0),
            )
            for row in rows
        ]
