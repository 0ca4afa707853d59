import json

CARD = {
    "word": "জল",
    "definition": "water",
    "example_sentence": "আমি জল খেয়েছি",
    "sentence_translation": "I drank water",
}


def sse_events(response):
    return [
        json.loads(line[len("data: "):])
        for line in response.text.splitlines()
        if line.startswith("data: ")
    ]


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


# --- settings ---


def test_settings_roundtrip_masks_keys(client):
    res = client.put(
        "/api/settings/",
        json={"claude_api_key": "sk-ant-secret-9876", "default_deck": "Verbs"},
    )
    assert res.status_code == 200
    assert res.json()["claude_api_key"] == "••••••••9876"
    assert res.json()["default_deck"] == "Verbs"

    # Sending the mask back leaves the stored key alone
    client.put("/api/settings/", json={"claude_api_key": "••••••••9876"})
    assert client.get("/api/settings/").json()["claude_api_key"] == "••••••••9876"


def test_settings_env_override_visible(client, monkeypatch):
    monkeypatch.setenv("DEFAULT_DECK", "Env Deck")
    client.put("/api/settings/", json={"default_deck": "File Deck"})
    assert client.get("/api/settings/").json()["default_deck"] == "Env Deck"


def test_settings_rejects_unknown_provider(client):
    assert client.put("/api/settings/", json={"ai_provider": "openai"}).status_code == 422


# --- anki passthrough ---


def test_anki_status_and_decks(client, fake_anki):
    assert client.get("/api/anki/status").json() == {"connected": True}
    assert "Bangla Vocabulary" in client.get("/api/anki/decks").json()["decks"]

    fake_anki.online = False
    assert client.get("/api/anki/status").json() == {"connected": False}
    assert client.get("/api/anki/decks").status_code == 503


def test_anki_create_note(client, fake_anki):
    res = client.post(
        "/api/anki/notes",
        json={"deck_name": "Bangla Vocabulary", "model_name": "Basic", "fields": {"Word": "জল"}},
    )
    assert res.status_code == 200
    assert res.json()["note_id"] == fake_anki.notes[0]["id"]


# --- session cards ---


def test_submit_online_adds_synced_card(client, fake_anki):
    res = client.post("/api/session/cards", json={"card": CARD})
    body = res.json()
    assert body["status"] == "added"
    assert body["card"]["synced_to_anki"] is True
    assert body["card"]["deck_name"] == "Bangla Vocabulary"

    state = client.get("/api/session/").json()
    assert len(state["cards"]) == 1 and state["pending_queue"] == []
    assert client.get("/api/session/has-word", params={"word": " জল "}).json()["exists"] is True


def test_submit_duplicate_requires_confirmation(client):
    client.post("/api/session/cards", json={"card": CARD})
    assert client.post("/api/session/cards", json={"card": CARD}).json()["status"] == "duplicate"
    confirmed = client.post("/api/session/cards", json={"card": CARD, "confirm_duplicate": True})
    assert confirmed.json()["status"] == "added"


def test_offline_submit_queues_then_sync(client, fake_anki):
    fake_anki.online = False
    queued = client.post("/api/session/cards", json={"card": CARD}).json()
    assert queued["status"] == "queued"
    pending_id = queued["pending"]["id"]

    res = client.post(f"/api/session/pending/{pending_id}/sync")
    assert res.status_code == 503
    assert len(client.get("/api/session/").json()["pending_queue"]) == 1

    fake_anki.online = True
    synced = client.post(f"/api/session/pending/{pending_id}/sync")
    assert synced.status_code == 200
    assert synced.json()["word"] == "জল"

    state = client.get("/api/session/").json()
    assert state["pending_queue"] == []
    assert len(state["cards"]) == 1

    assert client.post(f"/api/session/pending/{pending_id}/sync").status_code == 404
    assert len(fake_anki.notes) == 1


def test_sync_all_endpoint(client, fake_anki):
    for word in ("এক", "দুই"):
        client.post("/api/session/pending", json={"card": {**CARD, "word": word}})

    results = client.post("/api/session/pending/sync").json()

    assert [r["ok"] for r in results] == [True, True]
    assert [n["word"] for n in fake_anki.notes] == ["এক", "দুই"]


def test_pending_queue_survives_restart(make_client):
    with make_client() as first:
        created = first.post(
            "/api/session/pending",
            json={"card": CARD, "deck_name": "Water Words", "model_name": "Bangla (and reversed)"},
        )
        assert created.status_code == 201
        first.post("/api/session/cards", json={"card": {**CARD, "word": "বই"}})
        before = first.get("/api/session/").json()

    with make_client() as second:
        after = second.get("/api/session/").json()

    assert after["pending_queue"] == before["pending_queue"]
    assert after["pending_queue"][0]["deck_name"] == "Water Words"
    assert after["cards"] == []


def test_discard_and_clear_are_persisted(make_client):
    with make_client() as first:
        pending = first.post("/api/session/pending", json={"card": CARD}).json()
        first.post("/api/session/pending", json={"card": {**CARD, "word": "বই"}})
        assert first.delete(f"/api/session/pending/{pending['id']}").status_code == 204

    with make_client() as second:
        assert [p["word"] for p in second.get("/api/session/").json()["pending_queue"]] == ["বই"]
        assert second.delete("/api/session/").status_code == 204

    with make_client() as third:
        assert third.get("/api/session/").json() == {"cards": [], "pending_queue": []}


# --- chat ---


def test_chat_stream_sse(client, fake_generator):
    fake_generator.chunks = ["**জল** (jol) ", "- water"]
    fake_generator.replies = [json.dumps({**CARD, "exampleSentence": "জল দাও"}, ensure_ascii=False)]

    res = client.post("/api/chat/stream", json={"new_message": "জল"})

    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/event-stream")
    events = sse_events(res)
    assert [e["type"] for e in events] == ["text", "text", "card_candidate", "done"]
    assert events[2]["data"]["word"] == "জল"
    assert events[2]["data"]["example_sentence"] == "জল দাও"


def test_chat_stream_without_api_key_reports_error_event(make_client):
    from vocab_assistant import app
    from vocab_assistant.dependencies import get_generator

    del app.dependency_overrides[get_generator]
    with make_client() as client:
        events = sse_events(client.post("/api/chat/stream", json={"new_message": "জল"}))

    assert events[-1]["type"] == "error"
    assert "API key not configured" in events[-1]["data"]


def test_chat_stream_requires_message(client):
    assert client.post("/api/chat/stream", json={"new_message": "  "}).status_code == 400


def test_define_and_analyze(client, fake_generator):
    fake_generator.replies = [
        json.dumps({"word": "জল", "definition": "water"}, ensure_ascii=False),
        json.dumps({"translation": "I drank water", "words": []}),
    ]

    defined = client.post("/api/chat/define", json={"word": "জল"}).json()
    analyzed = client.post("/api/chat/analyze", json={"sentence": "আমি জল খেয়েছি"}).json()

    assert defined["definition"] == "water"
    assert analyzed["translation"] == "I drank water"
    assert analyzed["original_sentence"] == "আমি জল খেয়েছি"
