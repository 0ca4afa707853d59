import asyncio
import json

import httpx
import pytest

from vocab_assistant.models.cards import CardContent
from vocab_assistant.services.anki_connect import (
    AnkiConnectClient,
    AnkiConnectError,
    AnkiUnavailableError,
    map_fields,
    word_query,
)


def make_client(handler):
    requests = []

    def recorder(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        requests.append(payload)
        return handler(payload)

    client = AnkiConnectClient("http://anki.test:8765", transport=httpx.MockTransport(recorder))
    return client, requests


def ok(result):
    return httpx.Response(200, json={"result": result, "error": None})


def test_invoke_sends_versioned_payload():
    client, requests = make_client(lambda p: ok(["Default", "Bangla Vocabulary"]))

    decks = asyncio.run(client.deck_names())

    assert decks == ["Default", "Bangla Vocabulary"]
    assert requests == [{"action": "deckNames", "version": 6, "params": {}}]


def test_error_field_raises_connect_error():
    client, _ = make_client(lambda p: httpx.Response(200, json={"result": None, "error": "bad"}))
    with pytest.raises(AnkiConnectError, match="bad"):
        asyncio.run(client.model_names())


def test_transport_failure_raises_unavailable():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = AnkiConnectClient("http://anki.test:8765", transport=httpx.MockTransport(refuse))
    with pytest.raises(AnkiUnavailableError):
        asyncio.run(client.deck_names())
    assert asyncio.run(client.ping()) is False


def test_ping_true_when_version_answers():
    client, requests = make_client(lambda p: ok(6))
    assert asyncio.run(client.ping()) is True
    assert requests[0]["action"] == "version"


def test_search_word_uses_deck_query_and_maps_notes():
    def handler(payload):
        if payload["action"] == "findNotes":
            return ok([11])
        return ok(
            [
                {
                    "noteId": 11,
                    "modelName": "Basic",
                    "tags": ["auto-generated"],
                    "fields": {"Front": {"value": "জল", "order": 0}},
                }
            ]
        )

    client, requests = make_client(handler)
    note = asyncio.run(client.search_word("জল", "Bangla Vocabulary"))

    assert requests[0]["params"] == {"query": 'deck:"Bangla Vocabulary" "জল"'}
    assert requests[1]["params"] == {"notes": [11]}
    assert note.note_id == 11
    assert note.fields["Front"].value == "জল"


def test_search_word_miss_skips_notes_info():
    client, requests = make_client(lambda p: ok([]))
    assert asyncio.run(client.search_word("jol", "Deck")) is None
    assert [r["action"] for r in requests] == ["findNotes"]


def test_get_note_ignores_empty_info():
    client, _ = make_client(lambda p: ok([{}]))
    assert asyncio.run(client.get_note(99)) is None


def test_create_card_remaps_basic_fields():
    client, requests = make_client(lambda p: ok(1234))
    content = CardContent(
        word="জল",
        definition="water",
        example_sentence="আমি জল খেয়েছি",
        sentence_translation="I drank water",
    )

    note_id = asyncio.run(client.create_card(content, "Bangla Vocabulary", "Basic"))

    assert note_id == 1234
    note = requests[0]["params"]["note"]
    assert note["fields"] == {"Front": "জল", "Back": "water"}
    assert note["tags"] == ["auto-generated"]
    assert note["options"] == {"allowDuplicate": False}


def test_create_card_null_result_is_error():
    client, _ = make_client(lambda p: ok(None))
    with pytest.raises(AnkiConnectError):
        asyncio.run(client.create_card(CardContent(word="jol", definition="water"), "D", "Basic"))


def test_map_fields_per_model():
    canonical = {"Word": "w", "Definition": "d", "Example": "e", "Translation": ""}
    assert map_fields("Bangla (and reversed)", canonical) == {
        "Bangla": "w",
        "Eng_trans": "d",
        "example sentence": "e",
    }
    assert map_fields("Custom", canonical) == {"Word": "w", "Definition": "d", "Example": "e"}


def test_word_query_format():
    assert word_query("jol", "My Deck") == 'deck:"My Deck" "jol"'
