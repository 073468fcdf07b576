"""
Clients for the public verse and lexicon services.

- HelloAO:        {base}/{translation}/{book}/{chapter}.json
- bible-api.com:  {base}/{reference}?translation={translation}
- bolls.life:     {base}/get-chapter/{WLC|TR}/{book number}/{chapter}/
                  {base}/dictionary-definition/BDBT/{strongs id}/

Every call is fail-open: transport errors, non-2xx statuses and
unexpected payloads are logged and returned as None.
"""
from urllib.parse import quote

import httpx

from scripture_rag.config import settings
from scripture_rag.logging_config import get_logger
from scripture_rag.logging_utils import short_error
from scripture_rag.references import ParsedReference

logger = get_logger(__name__)

DEFAULT_TRANSLATIONS = [
    {"id": "WEB", "name": "World English Bible", "short_name": "WEB", "language": "eng"},
    {"id": "KJV", "name": "King James Version", "short_name": "KJV", "language": "eng"},
]


def _content_text(content) -> str:
    """Flatten a HelloAO verse content array; notes and markers are skipped."""
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return ""
    parts = []
    for item in content:
        if isinstance(item, str):
            parts.append(item)
        elif isinstance(item, dict) and isinstance(item.get("text"), str):
            parts.append(item["text"])
    return "".join(parts)


def passage_from_chapter(data, start: int, end: int | None = None) -> str | None:
    """Join the verses start..end from a HelloAO chapter payload."""
    if not isinstance(data, dict):
        return None
    chapter = data.get("chapter")
    if not isinstance(chapter, dict) or not isinstance(chapter.get("content"), list):
        return None

    last = end or start
    texts = []
    for item in chapter["content"]:
        if not isinstance(item, dict) or item.get("type") != "verse":
            continue
        number = item.get("number")
        if isinstance(number, int) and start <= number <= last:
            text = _content_text(item.get("content")).strip()
            if text:
                texts.append(text)
    return " ".join(texts).strip() or None


class ScriptureApiClient:
    def __init__(
        self,
        http_client: httpx.Client | None = None,
        *,
        helloao_base_url: str = "https://bible.helloao.org/api",
        bible_api_base_url: str = "https://bible-api.com",
        bolls_base_url: str = "https://bolls.life",
        timeout: float = 10.0,
    ):
        self.http = http_client or httpx.Client()
        self.helloao_base_url = helloao_base_url.rstrip("/")
        self.bible_api_base_url = bible_api_base_url.rstrip("/")
        self.bolls_base_url = bolls_base_url.rstrip("/")
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> "ScriptureApiClient":
        return cls(
            helloao_base_url=settings.helloao_base_url,
            bible_api_base_url=settings.bible_api_base_url,
            bolls_base_url=settings.bolls_base_url,
            timeout=settings.http_timeout,
        )

    def _get_json(self, service: str, url: str, params: dict | None = None):
        try:
            response = self.http.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.warning(f"{service} request failed | url={url} | status={e.response.status_code}")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"{service} request failed | url={url} | err={short_error(e)}")
        return None

    # ============== Verse text ==============

    def fetch_passage_helloao(
        self,
        translation: str,
        book: str,
        chapter: int,
        start: int,
        end: int | None = None,
    ) -> str | None:
        data = self._get_json("helloao", f"{self.helloao_base_url}/{translation}/{book}/{chapter}.json")
        return passage_from_chapter(data, start, end)

    def fetch_passage_bible_api(self, parsed: ParsedReference, translation: str) -> str | None:
        url = f"{self.bible_api_base_url}/{quote(parsed.display_name())}"
        data = self._get_json("bible-api", url, params={"translation": translation.lower()})
        if not isinstance(data, dict) or not isinstance(data.get("text"), str):
            return None
        return data["text"].strip().replace("\n", " ") or None

    def fetch_passage(self, parsed: ParsedReference, translation: str) -> str | None:
        """HelloAO first, bible-api.com second."""
        text = self.fetch_passage_helloao(
            translation, parsed.book, parsed.chapter, parsed.verse, parsed.end_verse
        )
        if text:
            return text
        return self.fetch_passage_bible_api(parsed, translation)

    # ============== Lexicon ==============

    def fetch_tagged_chapter(self, source: str, book_number: int, chapter: int) -> list[dict] | None:
        """
        Fetch a Strong's-tagged chapter from bolls.life.

        Args:
            source: "WLC" (Hebrew OT) or "TR" (Greek NT)
            book_number: Canonical book number, GEN=1 .. REV=66
            chapter: Chapter number

        Returns:
            List of {"verse": int, "text": str} rows, or None.
        """
        data = self._get_json("bolls", f"{self.bolls_base_url}/get-chapter/{source}/{book_number}/{chapter}/")
        if not isinstance(data, list):
            return None
        return [row for row in data if isinstance(row, dict)]

    def fetch_dictionary_entry(self, strongs_id: str) -> dict | None:
        data = self._get_json("bolls", f"{self.bolls_base_url}/dictionary-definition/BDBT/{strongs_id}/")
        if isinstance(data, list) and data and isinstance(data[0], dict):
            return data[0]
        return None

    # ============== Translations ==============

    def list_translations(self) -> list[dict]:
        """Available translations from HelloAO, or the static defaults."""
        data = self._get_json("helloao", f"{self.helloao_base_url}/available_translations.json")
        translations = data.get("translations") if isinstance(data, dict) else None
        if not isinstance(translations, list) or not translations:
            logger.info("translations unavailable; using defaults")
            return [dict(t) for t in DEFAULT_TRANSLATIONS]

        result = []
        for item in translations:
            if not isinstance(item, dict) or not item.get("id"):
                continue
            result.append(
                {
                    "id": item["id"],
                    "name": item.get("englishName") or item.get("name") or item["id"],
                    "short_name": item.get("shortName") or item["id"],
                    "language": item.get("language"),
                }
            )
        return result or [dict(t) for t in DEFAULT_TRANSLATIONS]
