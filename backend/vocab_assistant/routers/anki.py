"""
AnkiConnect passthrough router.

Endpoints:
  GET    /anki/decks               — deck names
  GET    /anki/models              — note type names
  GET    /anki/models/{name}/fields
  POST   /anki/search              — notes matching an Anki search query
  POST   /anki/notes               — create a note from canonical field names
  GET    /anki/notes/{id}
  DELETE /anki/notes/{id}
  GET    /anki/status              — {"connected": bool}, never fails
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from vocab_assistant.dependencies import anki_http_error, get_anki_client
from vocab_assistant.models.anki import AnkiNote, CreateNoteRequest, SearchNotesRequest
from vocab_assistant.services.anki_connect import AnkiConnectClient, AnkiError

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/decks")
async def list_decks(anki: AnkiConnectClient = Depends(get_anki_client)) -> dict:
    try:
        return {"decks": await anki.deck_names()}
    except AnkiError as e:
        logger.warning("Fetching decks failed: %s", e)
        raise anki_http_error(e) from e


@router.get("/models")
async def list_models(anki: AnkiConnectClient = Depends(get_anki_client)) -> dict:
    try:
        return {"models": await anki.model_names()}
    except AnkiError as e:
        logger.warning("Fetching models failed: %s", e)
        raise anki_http_error(e) from e


@router.get("/models/{name}/fields")
async def list_model_fields(
    name: str, anki: AnkiConnectClient = Depends(get_anki_client)
) -> dict:
    try:
        return {"fields": await anki.model_field_names(name)}
    except AnkiError as e:
        logger.warning("Fetching fields for model %s failed: %s", name, e)
        raise anki_http_error(e) from e


@router.post("/search")
async def search_notes(
    body: SearchNotesRequest, anki: AnkiConnectClient = Depends(get_anki_client)
) -> dict:
    if not body.query.strip():
        raise HTTPException(status_code=400, detail="query is required")
    try:
        notes = await anki.search_notes(body.query)
    except AnkiError as e:
        logger.warning("Note search failed: %s", e)
        raise anki_http_error(e) from e
    return {"notes": [n.model_dump() for n in notes]}


@router.post("/notes")
async def create_note(
    body: CreateNoteRequest, anki: AnkiConnectClient = Depends(get_anki_client)
) -> dict:
    if not body.fields:
        raise HTTPException(status_code=400, detail="fields are required")
    try:
        note_id = await anki.add_note(body.deck_name, body.model_name, body.fields, body.tags)
    except AnkiError as e:
        logger.warning("Creating note failed: %s", e)
        raise anki_http_error(e) from e
    return {"note_id": note_id}


@router.get("/notes/{note_id}", response_model=AnkiNote)
async def get_note(note_id: int, anki: AnkiConnectClient = Depends(get_anki_client)):
    try:
        note = await anki.get_note(note_id)
    except AnkiError as e:
        raise anki_http_error(e) from e
    if note is None:
        raise HTTPException(status_code=404, detail="Note not found")
    return note


@router.delete("/notes/{note_id}", status_code=204)
async def delete_note(note_id: int, anki: AnkiConnectClient = Depends(get_anki_client)) -> None:
    try:
        await anki.delete_note(note_id)
    except AnkiError as e:
        raise anki_http_error(e) from e


@router.get("/status")
async def status(anki: AnkiConnectClient = Depends(get_anki_client)) -> dict:
    return {"connected": await anki.ping()}
