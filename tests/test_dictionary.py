"""
Tests for the dictionary lookup client, using httpx.MockTransport in place of
the real service.
"""

import httpx
import pytest

from vocabcore.dictionary import DictionaryClient
from vocabcore.exceptions import DictionaryLookupError, WordNotFoundError

BASE_URL = "https://dictionary.test/api/v2/entries/en"

SERENDIPITY = [
    {
        "word": "serendipity",
        "phonetic": "/ˌsɛɹənˈdɪpɪti/",
        "phonetics": [{"text": "/ˌsɛɹənˈdɪpɪti/"}],
        "meanings": [
            {
                "partOfSpeech": "noun",
                "definitions": [
                    {
                        "definition": "A combination of events which have "
                        "come about by chance to make a surprisingly good "
                        "outcome.",
                        "example": "Meeting her there was pure serendipity.",
                        "synonyms": [],
                    }
                ],
            }
        ],
        "sourceUrls": ["https://en.wiktionary.org/wiki/serendipity"],
    },
    {"word": "serendipity", "meanings": []},
]


def make_client(handler) -> DictionaryClient:
    transport = httpx.MockTransport(handler)
    return DictionaryClient(
        base_url=BASE_URL, client=httpx.Client(transport=transport)
    )


def test_lookup_parses_first_entry():
    requested = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url.path)
        return httpx.Response(200, json=SERENDIPITY)

    with make_client(handler) as client:
        entry = client.lookup("  serendipity ")

    assert requested == ["/api/v2/entries/en/serendipity"]
    assert entry.word == "serendipity"
    assert entry.phonetic == "/ˌsɛɹənˈdɪpɪti/"
    assert entry.meanings[0].part_of_speech == "noun"
    first = entry.first_definition
    assert first.definition.startswith("A combination of events")
    assert first.example == "Meeting her there was pure serendipity."


def test_lookup_quotes_the_word():
    requested = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url.raw_path)
        return httpx.Response(200, json=[{"word": "ice cream"}])

    entry = make_client(handler).lookup("ice cream")
    assert requested == [b"/api/v2/entries/en/ice%20cream"]
    assert entry.first_definition is None


def test_lookup_null_lists_are_empty():
    payload = [
        {
            "word": "gloam",
            "meanings": [
                {"partOfSpeech": "noun", "definitions": None},
                {
                    "partOfSpeech": "verb",
                    "definitions": [{"definition": "to grow dark"}],
                },
            ],
        }
    ]
    entry = make_client(
        lambda request: httpx.Response(200, json=payload)
    ).lookup("gloam")

    assert entry.meanings[0].definitions == []
    assert entry.first_definition.definition == "to grow dark"

    bare = make_client(
        lambda request: httpx.Response(
            200, json=[{"word": "gloam", "meanings": None}]
        )
    ).lookup("gloam")
    assert bare.meanings == []


def test_lookup_blank_word():
    client = make_client(lambda request: httpx.Response(200, json=[]))
    with pytest.raises(ValueError):
        client.lookup("   ")


def test_lookup_not_found():
    def handler(request):
        return httpx.Response(
            404, json={"title": "No Definitions Found", "message": "Sorry"}
        )

    with pytest.raises(WordNotFoundError) as excinfo:
        make_client(handler).lookup("qwertyuiop")
    assert excinfo.value.word == "qwertyuiop"
    assert "no definition found" in str(excinfo.value)


def test_lookup_empty_payload_is_not_found():
    client = make_client(lambda request: httpx.Response(200, json=[]))
    with pytest.raises(WordNotFoundError):
        client.lookup("nothing")


def test_lookup_server_error():
    client = make_client(lambda request: httpx.Response(503, text="busy"))
    with pytest.raises(DictionaryLookupError, match="HTTP 503") as excinfo:
        client.lookup("word")
    assert not isinstance(excinfo.value, WordNotFoundError)


def test_lookup_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(DictionaryLookupError, match="connection refused"):
        make_client(handler).lookup("word")


def test_lookup_non_json_body():
    client = make_client(lambda request: httpx.Response(200, text="<html>"))
    with pytest.raises(DictionaryLookupError, match="not JSON"):
        client.lookup("word")


def test_lookup_unexpected_shape():
    client = make_client(
        lambda request: httpx.Response(200, json=[{"phonetic": "/x/"}])
    )
    with pytest.raises(DictionaryLookupError, match="unexpected response"):
        client.lookup("word")


def test_close_leaves_injected_client_open():
    http_client = httpx.Client(
        transport=httpx.MockTransport(lambda r: httpx.Response(200, json=[]))
    )
    DictionaryClient(client=http_client).close()
    assert not http_client.is_closed

    owned = DictionaryClient()
    owned.close()
    assert owned._client.is_closed
