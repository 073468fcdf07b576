"""
Cross-reference expansion over the weighted verse graph.

Attaches at most `limit` secondary citations, strongest edge first, for
the primary verses of a result. Targets already present among the
primary verses (including verses covered by a primary range, or verses
with the same normalized text) are never repeated. A failure here is
logged and the stage contributes nothing.
"""
from scripture_rag.corpus_store import CorpusStore
from scripture_rag.errors import RetrievalError
from scripture_rag.logging_config import get_logger
from scripture_rag.logging_utils import short_error
from scripture_rag.references import ParsedReference, parse_reference_key
from scripture_rag.verses import VerseCollector, VerseContext

logger = get_logger(__name__)


class CrossReferenceExpander:
    def __init__(self, store: CorpusStore, min_votes: int = 10, limit: int = 3):
        self.store = store
        self.min_votes = min_votes
        self.limit = limit

    def expand(self, primary: list[VerseContext], translation: str) -> list[VerseContext]:
        """
        Args:
            primary: Finalized primary verses
            translation: Translation for the target display text

        Returns:
            Up to `limit` verses flagged is_cross_reference, in edge-weight order.
        """
        try:
            return self._expand(primary, translation)
        except RetrievalError as e:
            logger.warning(f"cross-reference expansion failed | err={short_error(e)}")
            return []

    def _expand(self, primary: list[VerseContext], translation: str) -> list[VerseContext]:
        parsed = [p for p in (parse_reference_key(v.reference) for v in primary) if p]
        if not parsed or self.limit <= 0:
            return []

        # Range references anchor on their first verse.
        sources = []
        for ref in parsed:
            key = (ref.book, ref.chapter, ref.verse)
            if key not in sources:
                sources.append(key)
        covered = {key for ref in parsed for key in ref.keys}

        # Every source may spend its share of edges on repeats or covered verses.
        edges = self.store.cross_reference_edges(
            sources,
            min_votes=self.min_votes,
            limit=self.limit * len(sources) + len(covered),
        )

        targets: list[ParsedReference] = []
        seen = set(covered)
        for edge in edges:
            if edge.votes <= self.min_votes:
                continue
            key = (edge.target_book, edge.target_chapter, edge.target_verse)
            if key in seen:
                continue
            seen.add(key)
            targets.append(edge.target)

        if not targets:
            return []

        # Targets are fetched past the cap; those repeating a primary text are dropped.
        merged = VerseCollector(primary)
        attached = []
        for verse in self.store.fetch_verses(targets, translation):
            if not merged.add(verse):
                continue
            verse.is_cross_reference = True
            attached.append(verse)
            if len(attached) >= self.limit:
                break

        logger.info(
            f"cross-references attached | sources={len(sources)} | edges={len(edges)} | "
            f"targets={len(targets)} | attached={len(attached)}"
        )
        return attached
