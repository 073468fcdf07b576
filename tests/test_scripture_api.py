"""Tests for the public verse / lexicon service clients."""
import httpx

from scripture_rag.references import ParsedReference
from scripture_rag.scripture_api import DEFAULT_TRANSLATIONS, ScriptureApiClient, passage_from_chapter

HELLOAO_JHN_3 = {
    "translation": {"id": "BSB"},
    "chapter": {
        "number": 3,
        "content": [
            {"type": "heading", "content": ["For God So Loved the World"]},
            {"type": "verse", "number": 16, "content": ["For God so loved the world ", {"noteId": 1}, "that He gave"]},
            {"type": "verse", "number": 17, "content": [{"text": "For God did not send His Son"}, " into the world"]},
            {"type": "verse", "number": 18, "content": ["Whoever believes in Him is not condemned"]},
        ],
    },
}


def _client(handler):
    return ScriptureApiClient(
        httpx.Client(transport=httpx.MockTransport(handler)),
        helloao_base_url="https://helloao.test/api",
        bible_api_base_url="https://bible-api.test",
        bolls_base_url="https://bolls.test",
    )


def test_passage_from_chapter_joins_range_and_skips_notes():
    assert passage_from_chapter(HELLOAO_JHN_3, 16) == "For God so loved the world that He gave"
    assert passage_from_chapter(HELLOAO_JHN_3, 16, 17) == (
        "For God so loved the world that He gave For God did not send His Son into the world"
    )
    assert passage_from_chapter(HELLOAO_JHN_3, 40) is None
    assert passage_from_chapter({"chapter": None}, 1) is None


def test_fetch_passage_prefers_helloao():
    urls = []

    def handler(request):
        urls.append(str(request.url))
        return httpx.Response(200, json=HELLOAO_JHN_3)

    text = _client(handler).fetch_passage(ParsedReference("JHN", 3, 18), "BSB")

    assert text == "Whoever believes in Him is not condemned"
    assert urls == ["https://helloao.test/api/BSB/JHN/3.json"]


def test_fetch_passage_falls_back_to_bible_api():
    seen = []

    def handler(request):
        seen.append(request.url)
        if request.url.host == "helloao.test":
            return httpx.Response(404)
        return httpx.Response(200, json={"text": "For God so loved the world,\nthat he gave his one and only Son\n"})

    text = _client(handler).fetch_passage(ParsedReference("JHN", 3, 16), "WEB")

    assert text == "For God so loved the world, that he gave his one and only Son"
    assert seen[1].path == "/John 3:16"
    assert seen[1].params["translation"] == "web"


def test_fetch_passage_returns_none_when_everything_fails():
    def handler(request):
        raise httpx.ConnectError("offline", request=request)

    assert _client(handler).fetch_passage(ParsedReference("JHN", 3, 16), "WEB") is None


def test_tagged_chapter_and_dictionary():
    def handler(request):
        if request.url.path == "/get-chapter/TR/43/3/":
            return httpx.Response(200, json=[{"pk": 1, "verse": 16, "text": "ἠγάπησεν<S>25</S>"}])
        if request.url.path == "/dictionary-definition/BDBT/G25/":
            return httpx.Response(200, json=[{"topic": "G25", "definition": "to love", "transliteration": "agapaō"}])
        return httpx.Response(404)

    client = _client(handler)

    assert client.fetch_tagged_chapter("TR", 43, 3)[0]["verse"] == 16
    assert client.fetch_dictionary_entry("G25")["definition"] == "to love"
    assert client.fetch_dictionary_entry("G0") is None


def test_dictionary_unexpected_payload_is_none():
    def handler(request):
        return httpx.Response(200, json={"detail": "not found"})

    assert _client(handler).fetch_dictionary_entry("H1") is None


def test_list_translations():
    def handler(request):
        return httpx.Response(200, json={"translations": [
            {"id": "BSB", "name": "Berean Standard Bible", "englishName": "Berean Standard Bible",
             "shortName": "BSB", "language": "eng"},
            {"name": "missing id"},
        ]})

    assert _client(handler).list_translations() == [
        {"id": "BSB", "name": "Berean Standard Bible", "short_name": "BSB", "language": "eng"}
    ]


def test_list_translations_falls_back_to_defaults():
    def handler(request):
        return httpx.Response(500)

    result = _client(handler).list_translations()

    assert [t["id"] for t in result] == ["WEB", "KJV"]
    assert result == DEFAULT_TRANSLATIONS
    assert result[0] is not DEFAULT_TRANSLATIONS[0]
