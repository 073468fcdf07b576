"""
Scripture reference extraction.

Finds explicit "book chapter:verse[-verse]" tokens in free text and maps
them to three-character USFM book codes (GEN, JHN, 1CO, ...).

Handles:
- Full names: "Genesis 1:1"
- Abbreviations: "Gen 1:1", "Gen. 1:1"
- Numbered books: "1 Corinthians 13:4", "1Cor 13:4", "I Cor 13:4"
- Verse ranges: "Proverbs 6:16-19"
- Book codes: "GEN 1:1", "1CO 7:22"

Colliding abbreviations are not disambiguated: the first book in canonical
order whose name starts with the abbreviation wins ("Phil" -> PHP).
"""
import re
from dataclasses import dataclass


@dataclass(frozen=True)
class Book:
    code: str
    name: str
    number: int  # canonical order, GEN=1 .. REV=66
    aliases: tuple[str, ...] = ()

    @property
    def is_old_testament(self) -> bool:
        return self.number <= 39


_BOOK_ROWS = [
    ("GEN", "Genesis", ("gen", "gn", "ge")),
    ("EXO", "Exodus", ("ex", "exo", "exod")),
    ("LEV", "Leviticus", ("lev", "lv")),
    ("NUM", "Numbers", ("num", "nm", "nu")),
    ("DEU", "Deuteronomy", ("deut", "dt", "deu")),
    ("JOS", "Joshua", ("josh", "jos")),
    ("JDG", "Judges", ("judg", "jdg", "jg")),
    ("RUT", "Ruth", ("ru", "rth")),
    ("1SA", "1 Samuel", ("1sam", "1sm")),
    ("2SA", "2 Samuel", ("2sam", "2sm")),
    ("1KI", "1 Kings", ("1kgs", "1kin")),
    ("2KI", "2 Kings", ("2kgs", "2kin")),
    ("1CH", "1 Chronicles", ("1chr", "1chron")),
    ("2CH", "2 Chronicles", ("2chr", "2chron")),
    ("EZR", "Ezra", ()),
    ("NEH", "Nehemiah", ()),
    ("EST", "Esther", ("esth",)),
    ("JOB", "Job", ("jb",)),
    ("PSA", "Psalms", ("ps", "psalm", "pss")),
    ("PRO", "Proverbs", ("prov", "pr", "prv")),
    ("ECC", "Ecclesiastes", ("eccl", "qoh")),
    ("SNG", "Song of Solomon", ("song", "songofsongs", "sos", "canticles")),
    ("ISA", "Isaiah", ()),
    ("JER", "Jeremiah", ("jr",)),
    ("LAM", "Lamentations", ()),
    ("EZK", "Ezekiel", ("ezek", "eze")),
    ("DAN", "Daniel", ("dn",)),
    ("HOS", "Hosea", ()),
    ("JOL", "Joel", ("jl",)),
    ("AMO", "Amos", ("am",)),
    ("OBA", "Obadiah", ("obad", "ob")),
    ("JON", "Jonah", ("jnh",)),
    ("MIC", "Micah", ()),
    ("NAM", "Nahum", ("nah", "na")),
    ("HAB", "Habakkuk", ()),
    ("ZEP", "Zephaniah", ("zeph",)),
    ("HAG", "Haggai", ()),
    ("ZEC", "Zechariah", ("zech",)),
    ("MAL", "Malachi", ()),
    ("MAT", "Matthew", ("matt", "mt")),
    ("MRK", "Mark", ("mk", "mar")),
    ("LUK", "Luke", ("lk",)),
    ("JHN", "John", ("jn", "joh")),
    ("ACT", "Acts", ("ac",)),
    ("ROM", "Romans", ("rm",)),
    ("1CO", "1 Corinthians", ("1cor",)),
    ("2CO", "2 Corinthians", ("2cor",)),
    ("GAL", "Galatians", ()),
    ("EPH", "Ephesians", ()),
    ("PHP", "Philippians", ("phil", "pp")),
    ("COL", "Colossians", ()),
    ("1TH", "1 Thessalonians", ("1thess", "1thes")),
    ("2TH", "2 Thessalonians", ("2thess", "2thes")),
    ("1TI", "1 Timothy", ("1tim", "1tm")),
    ("2TI", "2 Timothy", ("2tim", "2tm")),
    ("TIT", "Titus", ()),
    ("PHM", "Philemon", ("philem", "phlm")),
    ("HEB", "Hebrews", ()),
    ("JAS", "James", ("jm", "jam")),
    ("1PE", "1 Peter", ("1pet", "1pt")),
    ("2PE", "2 Peter", ("2pet", "2pt")),
    ("1JN", "1 John", ("1jhn", "1joh")),
    ("2JN", "2 John", ("2jhn", "2joh")),
    ("3JN", "3 John", ("3jhn", "3joh")),
    ("JUD", "Jude", ("jde",)),
    ("REV", "Revelation", ("re", "rv", "revelations")),
]

BOOKS: tuple[Book, ...] = tuple(
    Book(code=code, name=name, number=i, aliases=aliases)
    for i, (code, name, aliases) in enumerate(_BOOK_ROWS, start=1)
)
BOOKS_BY_CODE: dict[str, Book] = {book.code: book for book in BOOKS}


def _alias_key(text: str) -> str:
    return re.sub(r"[\s.]+", "", text.lower())


# Exact lookups: codes, full names and explicit abbreviations.
# Earlier books keep an alias if a later one declares the same string.
_ALIASES: dict[str, Book] = {}
for _book in BOOKS:
    for _alias in (_book.code, _book.name, *_book.aliases):
        _ALIASES.setdefault(_alias_key(_alias), _book)

_ROMAN_PREFIX = {"i": "1", "ii": "2", "iii": "3"}

REFERENCE_PATTERN = re.compile(
    r"\b(?:(?P<num>[123]|(?:iii|ii|i)(?=\s))\s*)?"
    r"(?P<word>[a-z]+(?:\s+of\s+(?:solomon|songs))?)\.?\s+"
    r"(?P<chapter>\d{1,3})\s*:\s*(?P<verse>\d{1,3})"
    r"(?:\s*[-–—]\s*(?P<end>\d{1,3}))?\b",
    re.IGNORECASE,
)

CODE_LINE_PATTERN = re.compile(r"^([A-Z0-9]{3})\s+(\d+):(\d+)$", re.IGNORECASE)
REFERENCE_KEY_PATTERN = re.compile(
    r"^([A-Z0-9]{3})\s+(\d+):(\d+)(?:\s*-\s*(\d+))?$", re.IGNORECASE
)


@dataclass(frozen=True)
class ParsedReference:
    """
    A parsed scripture reference.

    Attributes:
        book: USFM book code (e.g., "JHN", "1CO")
        chapter: Chapter number
        verse: Starting verse
        end_verse: Ending verse for ranges, None for a single verse
    """
    book: str
    chapter: int
    verse: int
    end_verse: int | None = None

    @property
    def reference(self) -> str:
        if self.end_verse and self.end_verse != self.verse:
            return f"{self.book} {self.chapter}:{self.verse}-{self.end_verse}"
        return f"{self.book} {self.chapter}:{self.verse}"

    @property
    def verse_numbers(self) -> list[int]:
        return list(range(self.verse, (self.end_verse or self.verse) + 1))

    @property
    def keys(self) -> list[tuple[str, int, int]]:
        """(book, chapter, verse) triples for every verse the reference covers."""
        return [(self.book, self.chapter, v) for v in self.verse_numbers]

    def display_name(self) -> str:
        """Human-readable form, e.g. "John 3:16", for services that want book names."""
        book = BOOKS_BY_CODE.get(self.book)
        name = book.name if book else self.book
        return self.reference.replace(self.book, name, 1)


def resolve_book(word: str, prefix: str | None = None) -> Book | None:
    """
    Map a book token to its Book.

    Exact aliases are tried first, then the first book (canonical order)
    whose full name starts with the token.
    """
    number = _ROMAN_PREFIX.get((prefix or "").lower(), prefix or "")
    key = _alias_key(f"{number}{word}")
    if key in _ALIASES:
        return _ALIASES[key]

    if len(_alias_key(word)) < 3:
        return None
    for book in BOOKS:
        if _alias_key(book.name).startswith(key):
            return book
    return None


def _make_reference(book: Book, chapter: str, verse: str, end: str | None) -> ParsedReference | None:
    chapter_num, verse_num = int(chapter), int(verse)
    if chapter_num < 1 or verse_num < 1:
        return None
    end_num = int(end) if end else None
    if end_num is not None and end_num <= verse_num:
        end_num = None
    return ParsedReference(book=book.code, chapter=chapter_num, verse=verse_num, end_verse=end_num)


def extract_references(text: str) -> list[ParsedReference]:
    """
    Find all explicit scripture references in free text.

    Args:
        text: Raw query text

    Returns:
        References in order of appearance, without duplicates.
        Empty list when nothing matches; never raises.
    """
    if not text:
        return []

    refs = []
    seen = set()
    for match in REFERENCE_PATTERN.finditer(text):
        book = resolve_book(match.group("word"), match.group("num"))
        if book is None and match.group("num"):
            # "1 Gen 1:1" style noise: retry without the numeric prefix
            book = resolve_book(match.group("word"))
        if book is None:
            continue
        parsed = _make_reference(book, match.group("chapter"), match.group("verse"), match.group("end"))
        if parsed and parsed.reference not in seen:
            refs.append(parsed)
            seen.add(parsed.reference)
    return refs


def parse_reference_key(reference: str) -> ParsedReference | None:
    """Parse a canonical "BOOK CH:VS[-VS]" string as stored on VerseContext."""
    match = REFERENCE_KEY_PATTERN.match(reference.strip())
    if not match:
        return None
    book = BOOKS_BY_CODE.get(match.group(1).upper())
    if book is None:
        return None
    return _make_reference(book, match.group(2), match.group(3), match.group(4))


def parse_code_lines(text: str) -> list[ParsedReference]:
    """
    Parse model output made of "BOOK CH:VS" lines.

    Lines that do not match exactly, unknown book codes and the literal
    NONE are ignored.
    """
    refs = []
    for line in (text or "").splitlines():
        line = line.strip()
        if not line or line.upper() == "NONE":
            continue
        match = CODE_LINE_PATTERN.match(line)
        if not match:
            continue
        book = BOOKS_BY_CODE.get(match.group(1).upper())
        if book is None:
            continue
        parsed = _make_reference(book, match.group(2), match.group(3), None)
        if parsed and parsed not in refs:
            refs.append(parsed)
    return refs
