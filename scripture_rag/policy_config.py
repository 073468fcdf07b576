"""
Immutable retrieval policy: topic guards, curated topical lists and
priority rules.

The bundled tables live in data/policy.json and are loaded once per
process. Everything here is frozen; callers receive fresh VerseContext
objects from PolicyVerse.to_context(), so nothing downstream can mutate
the configuration.
"""
import json
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from scripture_rag.errors import ConfigurationError
from scripture_rag.logging_config import get_logger
from scripture_rag.verses import VerseContext

logger = get_logger(__name__)

DEFAULT_POLICY_PATH = Path(__file__).parent / "data" / "policy.json"


def keyword_in_query(keyword: str, normalized_query: str) -> bool:
    """
    True when keyword occurs in the query starting at a word boundary.

    "slav" matches "slavery" and "lie" matches "lies", but "lie" does not
    match "believe".
    """
    return re.search(r"(?<!\w)" + re.escape(keyword.lower()), normalized_query) is not None


def any_keyword(keywords: tuple[str, ...], normalized_query: str) -> bool:
    return any(keyword_in_query(k, normalized_query) for k in keywords)


@dataclass(frozen=True)
class PolicyVerse:
    reference: str
    text: str
    translation: str = "BSB"

    def to_context(self) -> VerseContext:
        return VerseContext(reference=self.reference, translation=self.translation, text=self.text)


@dataclass(frozen=True)
class ConditionalPriority:
    """Extra priority verses added when any trigger phrase is in the query."""
    triggers: tuple[str, ...]
    verses: tuple[PolicyVerse, ...]

    def applies(self, normalized_query: str) -> bool:
        return any(t.lower() in normalized_query for t in self.triggers)


@dataclass(frozen=True)
class TopicGuard:
    name: str
    keywords: tuple[str, ...]
    priority: tuple[PolicyVerse, ...]
    exclude_patterns: tuple[str, ...] = ()
    conditional: tuple[ConditionalPriority, ...] = ()
    suggestion_hint: str | None = None

    def matches(self, normalized_query: str) -> bool:
        return any_keyword(self.keywords, normalized_query)

    def conditional_priority(self, normalized_query: str) -> list[PolicyVerse]:
        verses = []
        for rule in self.conditional:
            if rule.applies(normalized_query):
                verses.extend(rule.verses)
        return verses


@dataclass(frozen=True)
class CuratedTopicalList:
    name: str
    keywords: tuple[str, ...]
    verses: tuple[PolicyVerse, ...]
    exclusive: bool = False

    def matches(self, normalized_query: str) -> bool:
        return any_keyword(self.keywords, normalized_query)


@dataclass(frozen=True)
class PriorityRule:
    """
    Canonical doctrinal references forced to the front of every result.

    The store path uses only the references (text comes from the store in
    the requested translation); the API path uses the static text as-is.
    """
    name: str
    keywords: tuple[str, ...]
    verses: tuple[PolicyVerse, ...]

    def matches(self, normalized_query: str) -> bool:
        return any_keyword(self.keywords, normalized_query)


@dataclass(frozen=True)
class PolicyConfig:
    guards: tuple[TopicGuard, ...] = ()
    curated_lists: tuple[CuratedTopicalList, ...] = ()
    priority_rules: tuple[PriorityRule, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "PolicyConfig":
        return cls(
            guards=tuple(_guard_from_dict(g) for g in data.get("topic_guards", [])),
            curated_lists=tuple(_curated_from_dict(c) for c in data.get("curated_lists", [])),
            priority_rules=tuple(_rule_from_dict(r) for r in data.get("priority_rules", [])),
        )


def _verses(items: list[dict], default_translation: str = "BSB") -> tuple[PolicyVerse, ...]:
    return tuple(
        PolicyVerse(
            reference=item["reference"],
            text=item["text"],
            translation=item.get("translation", default_translation),
        )
        for item in items
    )


def _lowered(items: list[str]) -> tuple[str, ...]:
    return tuple(s.lower() for s in items)


def _guard_from_dict(data: dict) -> TopicGuard:
    return TopicGuard(
        name=data["name"],
        keywords=_lowered(data["keywords"]),
        priority=_verses(data.get("priority", [])),
        exclude_patterns=_lowered(data.get("exclude_patterns", [])),
        conditional=tuple(
            ConditionalPriority(triggers=_lowered(c["triggers"]), verses=_verses(c["verses"]))
            for c in data.get("conditional", [])
        ),
        suggestion_hint=data.get("suggestion_hint"),
    )


def _curated_from_dict(data: dict) -> CuratedTopicalList:
    return CuratedTopicalList(
        name=data["name"],
        keywords=_lowered(data["keywords"]),
        verses=_verses(data["verses"]),
        exclusive=bool(data.get("exclusive", False)),
    )


def _rule_from_dict(data: dict) -> PriorityRule:
    return PriorityRule(
        name=data["name"],
        keywords=_lowered(data["keywords"]),
        verses=_verses(data["verses"]),
    )


def load_policy_config(path: Path | str = DEFAULT_POLICY_PATH) -> PolicyConfig:
    """
    Load a policy file.

    Raises:
        ConfigurationError: the file is missing or malformed.
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        config = PolicyConfig.from_dict(data)
    except (OSError, ValueError, KeyError, TypeError) as e:
        raise ConfigurationError(f"Invalid policy file {path}: {e}") from e

    logger.info(
        f"policy loaded | guards={len(config.guards)} | curated={len(config.curated_lists)} | "
        f"priority_rules={len(config.priority_rules)}"
    )
    return config


@lru_cache(maxsize=1)
def default_policy() -> PolicyConfig:
    return load_policy_config(DEFAULT_POLICY_PATH)
