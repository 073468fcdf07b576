"""
Deterministic keyword policy applied to candidate verse lists.

- Priority rules: canonical references (Decalogue, freedom from slavery)
  forced in when their keywords appear.
- Topic guards: prepend a guard's priority verses and drop retrieved
  verses whose text hits one of its exclusion patterns.
- Curated topical lists: hand-picked verse sets for broad themes;
  exclusive lists replace the candidates outright.

All functions take the normalized query and return new lists; priority
and curated verses are emitted as fresh copies.
"""
from scripture_rag.logging_config import get_logger
from scripture_rag.policy_config import CuratedTopicalList, PolicyVerse, PriorityRule, TopicGuard
from scripture_rag.verses import VerseCollector, VerseContext, reference_key

logger = get_logger(__name__)


def _append_unique(target: list[PolicyVerse], seen: set[str], verses) -> None:
    for verse in verses:
        key = reference_key(verse.reference)
        if key not in seen:
            seen.add(key)
            target.append(verse)


def matching_priority_verses(normalized_query: str, rules: tuple[PriorityRule, ...]) -> list[PolicyVerse]:
    """
    Collect priority-rule verses whose keywords appear in the query.

    Rules are evaluated in declaration order; a reference appears once.
    """
    matched: list[PolicyVerse] = []
    seen: set[str] = set()
    for rule in rules:
        if rule.matches(normalized_query):
            _append_unique(matched, seen, rule.verses)
    return matched


def apply_topic_guards(
    normalized_query: str,
    verses: list[VerseContext],
    guards: tuple[TopicGuard, ...],
) -> list[VerseContext]:
    """
    Apply every guard whose keywords match the query.

    Returns:
        [merged priority verses] + [retrieved verses that survived], or the
        input list unchanged when no guard fires. Retrieved verses sharing a
        reference or normalized text with a priority verse are dropped; the
        priority copy wins. Exclusion patterns only ever filter retrieved verses.
    """
    priority: list[PolicyVerse] = []
    seen: set[str] = set()
    exclusions: list[str] = []
    fired = []

    for guard in guards:
        if not guard.matches(normalized_query):
            continue
        fired.append(guard.name)
        _append_unique(priority, seen, guard.priority)
        _append_unique(priority, seen, guard.conditional_priority(normalized_query))
        exclusions.extend(p for p in guard.exclude_patterns if p not in exclusions)

    if not fired:
        return verses

    merged = VerseCollector([p.to_context() for p in priority])
    leading = len(merged)
    dropped = 0
    for verse in verses:
        lower_text = verse.text.lower()
        if any(pattern in lower_text for pattern in exclusions) or not merged.add(verse):
            dropped += 1

    logger.info(
        f"topic guards applied | guards={','.join(fired)} | priority={leading} | "
        f"kept={len(merged) - leading} | dropped={dropped}"
    )
    return merged.verses


def apply_curated_lists(
    normalized_query: str,
    verses: list[VerseContext],
    curated_lists: tuple[CuratedTopicalList, ...],
) -> list[VerseContext]:
    """
    Apply the first curated list (declaration order) that matches.

    Exclusive lists replace the candidates; other lists are prepended and
    candidates sharing a reference with the list are dropped.
    """
    for curated in curated_lists:
        if not curated.matches(normalized_query):
            continue

        curated_verses = [v.to_context() for v in curated.verses]
        logger.info(
            f"curated list applied | list={curated.name} | exclusive={curated.exclusive} | "
            f"verses={len(curated_verses)}"
        )
        if curated.exclusive:
            return curated_verses

        curated_refs = {reference_key(v.reference) for v in curated_verses}
        rest = [v for v in verses if reference_key(v.reference) not in curated_refs]
        return curated_verses + rest

    return verses


def suggestion_hints(normalized_query: str, guards: tuple[TopicGuard, ...]) -> list[str]:
    """Extra instructions for the reference-suggestion prompt from firing guards."""
    return [g.suggestion_hint for g in guards if g.suggestion_hint and g.matches(normalized_query)]
