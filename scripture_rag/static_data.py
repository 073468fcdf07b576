"""
Bundled verse index and lexical dictionary.

- bible-index.json: frequently asked verses with pre-computed
  original-language tags, keyed by reference ("JHN 3:16").
- strongs-dict.json: lexical entries keyed by Strong's id ("H7523", "G25")
  with transliteration and short_definition.

Both files are read once and cached; lookups hand out copies.
"""
import json
from functools import lru_cache
from pathlib import Path

from scripture_rag.logging_config import get_logger
from scripture_rag.verses import VerseContext, reference_key

logger = get_logger(__name__)

DATA_DIR = Path(__file__).parent / "data"
BIBLE_INDEX_PATH = DATA_DIR / "bible-index.json"
STRONGS_DICT_PATH = DATA_DIR / "strongs-dict.json"


def _load_json(path: Path) -> dict:
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"static data unavailable | path={path.name} | err={type(e).__name__}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"static data ignored | path={path.name} | err=expected an object")
        return {}
    return data


class BibleIndex:
    """Reference -> VerseContext lookup over the bundled index."""

    def __init__(self, entries: dict[str, VerseContext]):
        self._entries = {reference_key(ref): verse for ref, verse in entries.items()}

    @classmethod
    def from_file(cls, path: Path = BIBLE_INDEX_PATH) -> "BibleIndex":
        entries = {}
        for ref, raw in _load_json(path).items():
            try:
                entries[ref] = VerseContext.model_validate({"reference": ref, **raw})
            except (TypeError, ValueError) as e:
                logger.warning(f"bible index entry skipped | ref={ref} | err={type(e).__name__}")
        return cls(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, reference: str) -> VerseContext | None:
        verse = self._entries.get(reference_key(reference))
        return verse.model_copy(deep=True) if verse else None


class StrongsDictionary:
    """Strong's id -> lexical entry lookup over the bundled dictionary."""

    def __init__(self, entries: dict[str, dict]):
        self._entries = {k.upper(): v for k, v in entries.items() if isinstance(v, dict)}

    @classmethod
    def from_file(cls, path: Path = STRONGS_DICT_PATH) -> "StrongsDictionary":
        return cls(_load_json(path))

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, strongs_id: str) -> dict | None:
        entry = self._entries.get(strongs_id.upper())
        return dict(entry) if entry else None


@lru_cache(maxsize=1)
def bible_index() -> BibleIndex:
    return BibleIndex.from_file()


@lru_cache(maxsize=1)
def strongs_dictionary() -> StrongsDictionary:
    return StrongsDictionary.from_file()
