"""
Context retrieval orchestration.

retrieve() answers from the result cache when it can. Otherwise it runs
two paths in order:

1. store: corpus store lookups for priority-rule and direct references,
   vector search to fill the quota, topic guards, curated lists,
   cross-references, lexical enrichment.
2. api: static priority-rule text, direct references resolved via the
   bundled index and the public verse services, model-suggested
   references when too few were found, topic guards, curated lists,
   lexical enrichment.

Any RetrievalError from the store path moves on to the api path. Only
when both fail does the caller see RetrievalUnavailable.
"""
import sentry_sdk

from scripture_rag.cache import ContextCache
from scripture_rag.completion import CompletionProvider
from scripture_rag.config import settings
from scripture_rag.corpus_store import CorpusStore
from scripture_rag.cross_references import CrossReferenceExpander
from scripture_rag.embeddings import QueryEmbedder
from scripture_rag.errors import ConfigurationError, RetrievalError, RetrievalUnavailable
from scripture_rag.lexical import LexicalEnricher
from scripture_rag.logging_config import get_logger
from scripture_rag.logging_utils import short_error
from scripture_rag.policy_config import PolicyConfig, default_policy
from scripture_rag.references import ParsedReference, extract_references, parse_reference_key
from scripture_rag.scripture_api import ScriptureApiClient
from scripture_rag.static_data import BibleIndex, bible_index
from scripture_rag.strategies import Exhausted, Strategy, run_strategies
from scripture_rag.topic_policy import (
    apply_curated_lists,
    apply_topic_guards,
    matching_priority_verses,
    suggestion_hints,
)
from scripture_rag.vector_search import VectorRetriever
from scripture_rag.verses import VerseCollector, VerseContext, clone_verses, normalize_query

logger = get_logger(__name__)


def is_retrieval_error(e: Exception) -> bool:
    return isinstance(e, RetrievalError)


class ContextRetriever:
    def __init__(
        self,
        *,
        store: CorpusStore,
        vector: VectorRetriever,
        expander: CrossReferenceExpander,
        enricher: LexicalEnricher,
        api: ScriptureApiClient,
        completion: CompletionProvider | None = None,
        cache: ContextCache | None = None,
        policy: PolicyConfig | None = None,
        index: BibleIndex | None = None,
        default_translation: str = "WEB",
        min_api_candidates: int = 2,
    ):
        self.store = store
        self.vector = vector
        self.expander = expander
        self.enricher = enricher
        self.api = api
        self.completion = completion
        self.cache = cache or ContextCache()
        self.policy = policy or PolicyConfig()
        self.index = index if index is not None else bible_index()
        self.default_translation = default_translation
        self.min_api_candidates = min_api_candidates

    @classmethod
    def from_settings(cls) -> "ContextRetriever":
        cache = ContextCache.from_settings()
        store = CorpusStore.from_settings()
        api = ScriptureApiClient.from_settings()
        embedder = QueryEmbedder.from_settings(cache)
        return cls(
            store=store,
            vector=VectorRetriever(
                store,
                embedder,
                limit=settings.vector_limit,
                short_query_threshold=settings.short_query_threshold,
            ),
            expander=CrossReferenceExpander(
                store,
                min_votes=settings.cross_reference_min_votes,
                limit=settings.cross_reference_limit,
            ),
            enricher=LexicalEnricher(api),
            api=api,
            completion=CompletionProvider.from_settings(),
            cache=cache,
            policy=default_policy(),
            default_translation=settings.default_translation,
            min_api_candidates=settings.min_api_candidates,
        )

    def retrieve(
        self,
        query: str,
        translation: str | None = None,
        credential: str | None = None,
    ) -> list[VerseContext]:
        """
        Retrieve the ordered verse context for a query.

        Args:
            query: Free-text user question
            translation: Translation code, defaults to DEFAULT_TRANSLATION
            credential: Caller's own completion API key (api path suggestions)

        Returns:
            Primary verses first, cross-references last. The list is a
            fresh copy the caller may mutate.

        Raises:
            RetrievalUnavailable: both retrieval paths failed.
        """
        translation = (translation or self.default_translation).strip() or self.default_translation
        normalized = normalize_query(query)

        cached = self.cache.get_context(query, translation)
        if cached is not None:
            logger.info(f"context cache hit | translation={translation} | verses={len(cached)}")
            return cached

        outcome = run_strategies(
            [
                Strategy("store", lambda: self._retrieve_from_store(query, normalized, translation)),
                Strategy("api", lambda: self._retrieve_via_apis(query, normalized, translation, credential)),
            ],
            is_transient=is_retrieval_error,
            label="context retrieval",
        )

        if isinstance(outcome, Exhausted):
            sentry_sdk.capture_exception(outcome.last_error)
            raise RetrievalUnavailable(
                f"All retrieval paths failed: {short_error(outcome.last_error)}"
            ) from outcome.last_error

        for failure in outcome.failures:
            # Only outages are reported; an unconfigured store is not.
            if not isinstance(failure.error, ConfigurationError):
                sentry_sdk.capture_exception(failure.error)

        verses = outcome.value
        logger.info(
            f"context retrieved | path={outcome.strategy} | translation={translation} | "
            f"verses={len(verses)} | cross_refs={sum(1 for v in verses if v.is_cross_reference)}"
        )
        self.cache.set_context(query, translation, verses)
        return clone_verses(verses)

    # ============== Store path ==============

    def _retrieve_from_store(self, query: str, normalized: str, translation: str) -> list[VerseContext]:
        self.store.ensure_ready()

        priority_refs = [
            parsed
            for parsed in (
                parse_reference_key(v.reference)
                for v in matching_priority_verses(normalized, self.policy.priority_rules)
            )
            if parsed
        ]
        direct_refs = extract_references(query)

        candidates = VerseCollector()
        candidates.extend(self.store.fetch_verses(priority_refs + direct_refs, translation))
        self.vector.extend(query, translation, candidates)

        verses = apply_topic_guards(normalized, candidates.verses, self.policy.guards)
        verses = apply_curated_lists(normalized, verses, self.policy.curated_lists)
        verses = verses + self.expander.expand(verses, translation)
        return self.enricher.enrich(verses)

    # ============== API path ==============

    def _retrieve_via_apis(
        self,
        query: str,
        normalized: str,
        translation: str,
        credential: str | None,
    ) -> list[VerseContext]:
        candidates = VerseCollector(
            [v.to_context() for v in matching_priority_verses(normalized, self.policy.priority_rules)]
        )

        for ref in extract_references(query):
            self._resolve_into(candidates, ref, translation)

        if len(candidates) < self.min_api_candidates:
            for ref in self._suggest_references(query, normalized, credential):
                self._resolve_into(candidates, ref, translation)

        verses = apply_topic_guards(normalized, candidates.verses, self.policy.guards)
        verses = apply_curated_lists(normalized, verses, self.policy.curated_lists)
        return self.enricher.enrich(verses)

    def _resolve_into(self, candidates: VerseCollector, ref: ParsedReference, translation: str) -> None:
        if candidates.has_reference(ref.reference):
            return
        verse = self.index.get(ref.reference)
        if verse is None:
            text = self.api.fetch_passage(ref, translation)
            if not text:
                logger.info(f"reference unresolved | ref={ref.reference} | translation={translation}")
                return
            verse = VerseContext(reference=ref.reference, translation=translation, text=text)
        candidates.add(verse)

    def _suggest_references(self, query: str, normalized: str, credential: str | None) -> list[ParsedReference]:
        if self.completion is None or not self.completion.is_configured(credential):
            logger.warning("reference suggestion skipped | reason=no completion API key")
            return []
        try:
            return self.completion.suggest_references(
                query,
                hints=suggestion_hints(normalized, self.policy.guards),
                credential=credential,
            )
        except RetrievalError as e:
            logger.warning(f"reference suggestion failed | err={short_error(e)}")
            return []
