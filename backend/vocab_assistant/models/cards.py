from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class CardContent(BaseModel):
    word: str
    definition: str = ""
    example_sentence: str = ""
    sentence_translation: str = ""

    model_config = {"frozen": True}


class SyncedCard(CardContent):
    id: str
    created_at: int         # epoch milliseconds
    note_id: int | None = None
    deck_name: str
    model_name: str
    synced_to_anki: bool = False


class PendingCard(CardContent):
    id: str
    created_at: int
    deck_name: str
    model_name: str


class CardCandidate(CardContent):
    already_exists: bool | None = None  # None = lookup failed
    note_id: int | None = None


class SubmitStatus(str, Enum):
    ADDED = "added"
    QUEUED = "queued"
    DUPLICATE = "duplicate"


class SubmitCardRequest(BaseModel):
    card: CardContent
    deck_name: str | None = None
    model_name: str | None = None
    confirm_duplicate: bool = False


class SubmitResult(BaseModel):
    status: SubmitStatus
    card: SyncedCard | None = None        # set when added
    pending: PendingCard | None = None    # set when queued


class QueueCardRequest(BaseModel):
    card: CardContent
    deck_name: str | None = None
    model_name: str | None = None


class SyncResult(BaseModel):
    pending_id: str
    ok: bool
    card: SyncedCard | None = None
    error: str | None = None


class SessionState(BaseModel):
    cards: list[SyncedCard]
    pending_queue: list[PendingCard]
