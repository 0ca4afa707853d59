import pytest
from fastapi.testclient import TestClient

from vocab_assistant.config import settings
from vocab_assistant.models.anki import AnkiNote
from vocab_assistant.services.anki_connect import AnkiConnectError, AnkiUnavailableError

ENV_KEYS = (
    "CLAUDE_API_KEY",
    "ANTHROPIC_API_KEY",
    "GEMINI_API_KEY",
    "GOOGLE_API_KEY",
    "AI_PROVIDER",
    "DEFAULT_DECK",
    "DEFAULT_MODEL",
    "ANKI_CONNECT_URL",
)


class FakeAnki:
    """In-memory stand-in for AnkiConnectClient."""

    def __init__(self):
        self.online = True
        self.fail_create = False
        self.fail_search = False
        self.notes: list[dict] = []
        self.create_calls: list[dict] = []
        self._next_id = 1000

    def _check(self):
        if not self.online:
            raise AnkiUnavailableError("AnkiConnect unreachable")

    async def ping(self) -> bool:
        return self.online

    async def deck_names(self):
        self._check()
        return sorted({n["deck"] for n in self.notes} | {"Bangla Vocabulary"})

    async def model_names(self):
        self._check()
        return ["Basic", "Bangla (and reversed)"]

    async def search_word(self, word, deck_name):
        self._check()
        if self.fail_search:
            raise AnkiConnectError("search failed")
        for note in self.notes:
            if note["deck"] == deck_name and word in note["word"]:
                return AnkiNote(note_id=note["id"], model_name=note["model"])
        return None

    async def search_words(self, words, deck_name):
        found = {}
        for word in words:
            note = await self.search_word(word, deck_name)
            if note:
                found[word] = note
        return found

    async def create_card(self, content, deck_name, model_name, tags=None, allow_duplicate=False):
        self._check()
        self.create_calls.append({"word": content.word, "deck": deck_name, "model": model_name})
        if self.fail_create:
            raise AnkiConnectError("cannot create note")
        self._next_id += 1
        self.notes.append(
            {"id": self._next_id, "word": content.word, "deck": deck_name, "model": model_name}
        )
        return self._next_id

    async def add_note(self, deck_name, model_name, fields, tags=None, allow_duplicate=False):
        self._check()
        self._next_id += 1
        self.notes.append(
            {"id": self._next_id, "word": fields.get("Word", ""), "deck": deck_name, "model": model_name}
        )
        return self._next_id


class FakeGenerator:
    """Scripted TextGenerator: fixed stream chunks, queued generate() replies."""

    def __init__(self, chunks=None, replies=None, stream_error=None):
        self.chunks = list(chunks or [])
        self.replies = list(replies or [])
        self.stream_error = stream_error
        self.generate_calls: list[tuple[str, str]] = []

    async def stream_generate(self, system_prompt, user_text):
        for chunk in self.chunks:
            yield chunk
        if self.stream_error is not None:
            raise self.stream_error

    async def generate(self, system_prompt, user_text):
        self.generate_calls.append((system_prompt, user_text))
        reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "data_dir", tmp_path)
    return tmp_path


@pytest.fixture
def fake_anki():
    return FakeAnki()


@pytest.fixture
def fake_generator():
    return FakeGenerator()


@pytest.fixture
def make_client(data_dir, fake_anki, fake_generator):
    """Factory for TestClients sharing one data dir, so a second client acts as a restart."""
    from vocab_assistant import app
    from vocab_assistant.dependencies import get_anki_client, get_generator

    app.dependency_overrides[get_anki_client] = lambda: fake_anki
    app.dependency_overrides[get_generator] = lambda: fake_generator
    yield lambda: TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def client(make_client):
    with make_client() as c:
        yield c
