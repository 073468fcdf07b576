"""
Original-language word tags for retrieved verses.

Tags come from the bundled verse index when the reference is indexed,
otherwise from the bolls.life tagged chapter (WLC for Old Testament books,
TR for New Testament books). Glosses are resolved from the bundled
Strong's dictionary first and the live dictionary service second.

Nothing here is fatal: a verse that cannot be tagged keeps an empty
`original` list.
"""
import re

from scripture_rag.logging_config import get_logger
from scripture_rag.references import BOOKS_BY_CODE, parse_reference_key
from scripture_rag.scripture_api import ScriptureApiClient
from scripture_rag.static_data import BibleIndex, StrongsDictionary, bible_index, strongs_dictionary
from scripture_rag.verses import OriginalWord, VerseContext

logger = get_logger(__name__)

STRONGS_TAG = re.compile(r"<S>\s*([HGhg]?\d+)\s*</S>")
SPAN_TAG = re.compile(r"</?span[^>]*>", re.IGNORECASE)
ANY_TAG = re.compile(r"<[^>]+>")
WORD_PUNCTUATION = re.compile(r"[,.;:!?׃]")

MAX_GLOSS_LENGTH = 120


def normalize_strongs_id(raw: str, prefix: str) -> str:
    """'7523' + 'H' -> 'H7523'; ids that already carry a letter keep it."""
    raw = raw.strip().upper()
    if raw[:1] in ("H", "G"):
        return raw
    return f"{prefix}{int(raw)}"


def parse_tagged_text(text: str, prefix: str) -> list[OriginalWord]:
    """
    Parse inline <S>nnnn</S> markup into word tags.

    The tagged word is the last token before each marker; consecutive
    markers on one word reuse it.

    Args:
        text: Verse text with Strong's markers
        prefix: "H" for Hebrew, "G" for Greek
    """
    clean = SPAN_TAG.sub("", text or "")
    pieces = STRONGS_TAG.split(clean)

    words = []
    previous = ""
    for i in range(1, len(pieces), 2):
        before = ANY_TAG.sub(" ", pieces[i - 1]).split()
        word = WORD_PUNCTUATION.sub("", before[-1]) if before else previous
        if not word:
            continue
        previous = word
        words.append(OriginalWord(word=word, strongs_id=normalize_strongs_id(pieces[i], prefix)))
    return words


def _gloss_text(value) -> str | None:
    if not isinstance(value, str):
        return None
    text = " ".join(ANY_TAG.sub(" ", value).split())
    return text[:MAX_GLOSS_LENGTH] or None


class LexicalEnricher:
    def __init__(
        self,
        api: ScriptureApiClient,
        index: BibleIndex | None = None,
        dictionary: StrongsDictionary | None = None,
    ):
        self.api = api
        self.index = index if index is not None else bible_index()
        self.dictionary = dictionary if dictionary is not None else strongs_dictionary()

    def enrich(self, verses: list[VerseContext]) -> list[VerseContext]:
        """Attach tags and glosses in place; returns the same list."""
        chapters: dict[tuple[str, int, int], list[dict] | None] = {}
        definitions: dict[str, dict | None] = {}
        tagged = 0

        for verse in verses:
            if not verse.original:
                verse.original = self._tags_for(verse, chapters)
            for tag in verse.original:
                if not tag.gloss:
                    self._resolve_gloss(tag, definitions)
            if verse.original:
                tagged += 1

        logger.info(
            f"lexical enrichment | verses={len(verses)} | tagged={tagged} | "
            f"chapter_fetches={len(chapters)} | live_lookups={len(definitions)}"
        )
        return verses

    def _tags_for(self, verse: VerseContext, chapters: dict) -> list[OriginalWord]:
        indexed = self.index.get(verse.reference)
        if indexed and indexed.original:
            return indexed.original

        parsed = parse_reference_key(verse.reference)
        book = BOOKS_BY_CODE.get(parsed.book) if parsed else None
        if book is None:
            return []

        source, prefix = ("WLC", "H") if book.is_old_testament else ("TR", "G")
        key = (source, book.number, parsed.chapter)
        if key not in chapters:
            chapters[key] = self.api.fetch_tagged_chapter(source, book.number, parsed.chapter)
        rows = chapters[key]
        if not rows:
            return []

        by_verse = {row.get("verse"): row.get("text") for row in rows}
        tags = []
        for number in parsed.verse_numbers:
            text = by_verse.get(number)
            if isinstance(text, str):
                tags.extend(parse_tagged_text(text, prefix))
        return tags

    def _resolve_gloss(self, tag: OriginalWord, definitions: dict) -> None:
        entry = self.dictionary.get(tag.strongs_id)
        if entry is None:
            if tag.strongs_id not in definitions:
                definitions[tag.strongs_id] = self.api.fetch_dictionary_entry(tag.strongs_id)
            entry = definitions[tag.strongs_id]
        if not entry:
            return

        tag.gloss = _gloss_text(entry.get("short_definition")) or _gloss_text(entry.get("definition"))
        if not tag.transliteration:
            tag.transliteration = _gloss_text(entry.get("transliteration"))
