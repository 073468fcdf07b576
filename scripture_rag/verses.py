"""
Verse models shared by every retrieval stage.

A VerseContext is built per request and only ever persisted as a cached
JSON snapshot. Its reference string is the identity used for
deduplication; two verses with the same normalized reference or the same
normalized text are treated as duplicates.
"""
from pydantic import BaseModel, Field, TypeAdapter


class OriginalWord(BaseModel):
    """A single original-language word tag attached to a verse."""
    word: str
    strongs_id: str  # e.g. "H7523", "G25"
    gloss: str | None = None
    transliteration: str | None = None


class VerseContext(BaseModel):
    reference: str  # "BOOK CH:VS" or "BOOK CH:VS-VS"
    translation: str
    text: str
    original: list[OriginalWord] = Field(default_factory=list)
    is_cross_reference: bool = False


VERSE_LIST = TypeAdapter(list[VerseContext])


def normalize_query(query: str) -> str:
    """Lower-case, collapse whitespace and trim a free-text query."""
    return " ".join(query.lower().split())


def reference_key(reference: str) -> str:
    return " ".join(reference.upper().split())


def text_key(text: str) -> str:
    return " ".join(text.lower().split())


def clone_verses(verses: list[VerseContext]) -> list[VerseContext]:
    return [verse.model_copy(deep=True) for verse in verses]


class VerseCollector:
    """
    Ordered accumulator that rejects duplicate verses.

    A verse is rejected when its reference key or its text key has already
    been collected.
    """

    def __init__(self, verses: list[VerseContext] | None = None):
        self.verses: list[VerseContext] = []
        self._refs: set[str] = set()
        self._texts: set[str] = set()
        for verse in verses or []:
            self.add(verse)

    def __len__(self) -> int:
        return len(self.verses)

    def has_reference(self, reference: str) -> bool:
        return reference_key(reference) in self._refs

    def add(self, verse: VerseContext) -> bool:
        ref = reference_key(verse.reference)
        text = text_key(verse.text)
        if ref in self._refs or (text and text in self._texts):
            return False
        self.verses.append(verse)
        self._refs.add(ref)
        if text:
            self._texts.add(text)
        return True

    def extend(self, verses: list[VerseContext]) -> int:
        """Add verses in order; returns how many were accepted."""
        return sum(1 for verse in verses if self.add(verse))
