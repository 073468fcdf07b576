"""
Nearest-neighbor verse retrieval used to top up the candidate list.

Skipped when earlier stages already met the quota, or when candidates
exist and the query is too short to carry meaning beyond them. An
embedding failure only disables this stage, unless there are no
candidates at all, in which case the whole store path has nothing to
offer and the failure is raised.
"""
from scripture_rag.corpus_store import CorpusStore
from scripture_rag.embeddings import QueryEmbedder
from scripture_rag.errors import RetrievalError, UpstreamUnavailable
from scripture_rag.logging_config import get_logger
from scripture_rag.logging_utils import short_error
from scripture_rag.verses import VerseCollector, normalize_query

logger = get_logger(__name__)


class VectorRetriever:
    def __init__(
        self,
        store: CorpusStore,
        embedder: QueryEmbedder,
        limit: int = 6,
        short_query_threshold: int = 12,
    ):
        self.store = store
        self.embedder = embedder
        self.limit = limit
        self.short_query_threshold = short_query_threshold

    def should_skip(self, query: str, current_count: int) -> bool:
        if current_count >= self.limit:
            return True
        return current_count > 0 and len(normalize_query(query)) <= self.short_query_threshold

    def extend(self, query: str, translation: str, candidates: VerseCollector) -> int:
        """
        Add up to limit - len(candidates) nearest verses to candidates.

        Returns:
            Number of verses added.

        Raises:
            UpstreamUnavailable: embedding failed and there are no candidates,
                or the store failed during the search.
        """
        if self.should_skip(query, len(candidates)):
            logger.info(f"vector search skipped | candidates={len(candidates)} | limit={self.limit}")
            return 0

        try:
            embedding = self.embedder.embed(query)
        except RetrievalError as e:
            if len(candidates) == 0:
                raise UpstreamUnavailable(
                    f"Vector retrieval unavailable and no direct references found: {short_error(e)}"
                ) from e
            logger.warning(f"query embedding failed; skipping vector search | err={short_error(e)}")
            return 0

        wanted = max(self.limit - len(candidates), 0)
        if wanted == 0:
            return 0

        rows = self.store.nearest_verses(embedding, translation, wanted)
        added = candidates.extend(rows)
        logger.info(f"vector search | requested={wanted} | returned={len(rows)} | added={added}")
        return added
