"""
Session cards router.

Endpoints:
  GET    /session                     — synced cards + pending queue
  DELETE /session                     — clear both
  GET    /session/has-word?word=      — duplicate check across both collections
  POST   /session/cards               — submit an approved card (added / queued / duplicate)
  DELETE /session/cards/{id}
  POST   /session/pending             — queue a card without contacting Anki
  DELETE /session/pending/{id}
  POST   /session/pending/sync        — sync the whole queue, in order
  POST   /session/pending/{id}/sync   — sync one queued card

Every change to the pending queue is written through to SQLite.
"""
from __future__ import annotations

import aiosqlite
from fastapi import APIRouter, Depends, HTTPException, Query

from vocab_assistant.db.sqlite import get_db
from vocab_assistant.dependencies import (
    anki_http_error,
    get_anki_client,
    get_session_store,
    get_user_settings,
)
from vocab_assistant.models.cards import (
    PendingCard,
    QueueCardRequest,
    SessionState,
    SubmitCardRequest,
    SubmitResult,
    SubmitStatus,
    SyncedCard,
    SyncResult,
)
from vocab_assistant.models.settings import UserSettings
from vocab_assistant.services.anki_connect import AnkiConnectClient, AnkiError
from vocab_assistant.services.session_cards import (
    PendingCardNotFoundError,
    SessionCardStore,
    SyncInProgressError,
    save_pending_queue,
)

router = APIRouter()


@router.get("/", response_model=SessionState)
async def get_session(store: SessionCardStore = Depends(get_session_store)):
    return store.snapshot()


@router.delete("/", status_code=204)
async def clear_session(
    store: SessionCardStore = Depends(get_session_store),
    db: aiosqlite.Connection = Depends(get_db),
) -> None:
    store.clear_all()
    await save_pending_queue(db, store)


@router.get("/has-word")
async def has_word(
    word: str = Query(min_length=1),
    store: SessionCardStore = Depends(get_session_store),
) -> dict:
    return {"word": word, "exists": store.has_word(word)}


@router.post("/cards", response_model=SubmitResult)
async def submit_card(
    body: SubmitCardRequest,
    store: SessionCardStore = Depends(get_session_store),
    user_settings: UserSettings = Depends(get_user_settings),
    anki: AnkiConnectClient = Depends(get_anki_client),
    db: aiosqlite.Connection = Depends(get_db),
):
    if not body.card.word.strip():
        raise HTTPException(status_code=400, detail="card.word is required")
    result = await store.submit(
        body.card,
        body.deck_name or user_settings.default_deck,
        body.model_name or user_settings.default_model,
        anki,
        confirm_duplicate=body.confirm_duplicate,
    )
    if result.status == SubmitStatus.QUEUED:
        await save_pending_queue(db, store)
    return result


@router.delete("/cards/{card_id}", status_code=204)
async def remove_card(card_id: str, store: SessionCardStore = Depends(get_session_store)) -> None:
    store.remove_card(card_id)


@router.post("/pending", response_model=PendingCard, status_code=201)
async def queue_card(
    body: QueueCardRequest,
    store: SessionCardStore = Depends(get_session_store),
    user_settings: UserSettings = Depends(get_user_settings),
    db: aiosqlite.Connection = Depends(get_db),
):
    if not body.card.word.strip():
        raise HTTPException(status_code=400, detail="card.word is required")
    pending_id = store.add_to_pending_queue(
        body.card,
        body.deck_name or user_settings.default_deck,
        body.model_name or user_settings.default_model,
    )
    await save_pending_queue(db, store)
    return store.get_pending(pending_id)


@router.delete("/pending/{pending_id}", status_code=204)
async def discard_pending(
    pending_id: str,
    store: SessionCardStore = Depends(get_session_store),
    db: aiosqlite.Connection = Depends(get_db),
) -> None:
    store.remove_from_pending_queue(pending_id)
    await save_pending_queue(db, store)


@router.post("/pending/sync", response_model=list[SyncResult])
async def sync_all(
    store: SessionCardStore = Depends(get_session_store),
    anki: AnkiConnectClient = Depends(get_anki_client),
    db: aiosqlite.Connection = Depends(get_db),
):
    results = await store.sync_all(anki)
    await save_pending_queue(db, store)
    return results


@router.post("/pending/{pending_id}/sync", response_model=SyncedCard)
async def sync_one(
    pending_id: str,
    store: SessionCardStore = Depends(get_session_store),
    anki: AnkiConnectClient = Depends(get_anki_client),
    db: aiosqlite.Connection = Depends(get_db),
):
    try:
        card = await store.sync_one(pending_id, anki)
    except PendingCardNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except SyncInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except AnkiError as e:
        raise anki_http_error(e) from e
    await save_pending_queue(db, store)
    return card
