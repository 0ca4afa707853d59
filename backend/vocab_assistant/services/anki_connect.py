"""
AnkiConnect client.

Every call is a JSON POST of {"action", "version", "params"} to the local
AnkiConnect add-on (default http://localhost:8765). The response is
{"result": ..., "error": ...}; a non-null error is raised as AnkiConnectError.

Usage:
    client = AnkiConnectClient("http://localhost:8765")
    note_id = await client.create_card(content, deck="Bangla Vocabulary", model="Basic")
"""
from __future__ import annotations

import logging
from typing import Any

import httpx

from vocab_assistant.config import settings
from vocab_assistant.models.anki import AnkiNote, NoteField
from vocab_assistant.models.cards import CardContent

logger = logging.getLogger(__name__)

API_VERSION = 6
DEFAULT_TAGS = ["auto-generated"]

# Canonical field name -> model-specific field name. None = not written.
FIELD_MAPPINGS: dict[str, dict[str, str | None]] = {
    "Bangla (and reversed)": {
        "Word": "Bangla",
        "Definition": "Eng_trans",
        "Example": "example sentence",
        "Translation": "sentence-trans",
    },
    "Basic": {
        "Word": "Front",
        "Definition": "Back",
        "Example": None,
        "Translation": None,
    },
}


class AnkiError(Exception):
    """Base class for flashcard-app failures."""


class AnkiUnavailableError(AnkiError):
    """Raised when AnkiConnect cannot be reached (Anki not running, wrong URL, timeout)."""


class AnkiConnectError(AnkiError):
    """Raised when AnkiConnect answers with an error."""


def map_fields(model_name: str, canonical: dict[str, str]) -> dict[str, str]:
    """Remap {Word, Definition, Example, Translation} onto the model's own field names."""
    mapping = FIELD_MAPPINGS.get(model_name, {})
    fields: dict[str, str] = {}
    for name, value in canonical.items():
        if not value:
            continue
        target = mapping.get(name, name)
        if target is None:
            continue
        fields[target] = value
    return fields


def card_fields(content: CardContent) -> dict[str, str]:
    return {
        "Word": content.word,
        "Definition": content.definition,
        "Example": content.example_sentence,
        "Translation": content.sentence_translation,
    }


def word_query(word: str, deck_name: str) -> str:
    return f'deck:"{deck_name}" "{word}"'


def _to_note(info: dict[str, Any]) -> AnkiNote:
    return AnkiNote(
        note_id=info["noteId"],
        model_name=info.get("modelName", ""),
        tags=info.get("tags") or [],
        fields={
            name: NoteField(value=f.get("value", ""), order=f.get("order", 0))
            for name, f in (info.get("fields") or {}).items()
        },
    )


class AnkiConnectClient:
    def __init__(
        self,
        url: str = "http://localhost:8765",
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout if timeout is not None else settings.anki_timeout
        self._transport = transport

    async def invoke(self, action: str, **params: Any) -> Any:
        payload = {"action": action, "version": API_VERSION, "params": params}
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                res = await client.post(self.url, json=payload, timeout=self.timeout)
                res.raise_for_status()
                body = res.json()
        except httpx.TransportError as e:
            raise AnkiUnavailableError(f"AnkiConnect unreachable at {self.url}: {e}") from e
        except httpx.HTTPStatusError as e:
            raise AnkiConnectError(f"AnkiConnect returned HTTP {e.response.status_code}") from e
        except ValueError as e:
            raise AnkiConnectError(f"AnkiConnect returned invalid JSON: {e}") from e

        if not isinstance(body, dict) or "result" not in body:
            raise AnkiConnectError(f"Unexpected AnkiConnect response to {action}")
        if body.get("error"):
            raise AnkiConnectError(str(body["error"]))
        return body["result"]

    # --- Decks & models ---

    async def deck_names(self) -> list[str]:
        return await self.invoke("deckNames")

    async def model_names(self) -> list[str]:
        return await self.invoke("modelNames")

    async def model_field_names(self, model_name: str) -> list[str]:
        return await self.invoke("modelFieldNames", modelName=model_name)

    # --- Notes ---

    async def find_notes(self, query: str) -> list[int]:
        return await self.invoke("findNotes", query=query)

    async def notes_info(self, note_ids: list[int]) -> list[AnkiNote]:
        infos = await self.invoke("notesInfo", notes=note_ids)
        # AnkiConnect returns {} for ids that no longer exist
        return [_to_note(i) for i in infos if i and "noteId" in i]

    async def search_notes(self, query: str) -> list[AnkiNote]:
        note_ids = await self.find_notes(query)
        if not note_ids:
            return []
        return await self.notes_info(note_ids)

    async def search_word(self, word: str, deck_name: str) -> AnkiNote | None:
        notes = await self.search_notes(word_query(word, deck_name))
        return notes[0] if notes else None

    async def search_words(self, words: list[str], deck_name: str) -> dict[str, AnkiNote]:
        """Look up several words one after another. Misses are left out of the result."""
        results: dict[str, AnkiNote] = {}
        for word in words:
            note = await self.search_word(word, deck_name)
            if note:
                results[word] = note
        return results

    async def get_note(self, note_id: int) -> AnkiNote | None:
        notes = await self.notes_info([note_id])
        return notes[0] if notes else None

    async def add_note(
        self,
        deck_name: str,
        model_name: str,
        fields: dict[str, str],
        tags: list[str] | None = None,
        allow_duplicate: bool = False,
    ) -> int:
        """Create a note from canonical field names. Returns the new note id."""
        mapped = map_fields(model_name, fields)
        logger.debug("Creating note in %s/%s with fields %s", deck_name, model_name, list(mapped))
        note_id = await self.invoke(
            "addNote",
            note={
                "deckName": deck_name,
                "modelName": model_name,
                "fields": mapped,
                "tags": tags or DEFAULT_TAGS,
                "options": {"allowDuplicate": allow_duplicate},
            },
        )
        if note_id is None:
            raise AnkiConnectError("Failed to create note - duplicate or invalid")
        return int(note_id)

    async def create_card(
        self,
        content: CardContent,
        deck_name: str,
        model_name: str,
        tags: list[str] | None = None,
        allow_duplicate: bool = False,
    ) -> int:
        return await self.add_note(
            deck_name, model_name, card_fields(content), tags, allow_duplicate
        )

    async def delete_note(self, note_id: int) -> None:
        await self.invoke("deleteNotes", notes=[note_id])

    async def ping(self) -> bool:
        try:
            await self.invoke("version")
            return True
        except AnkiError:
            return False
