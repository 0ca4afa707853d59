"""
Session card store: cards synced to Anki this session plus a durable queue of
cards waiting to be synced.

Outcome of each approved card (submit):
  duplicate  word already known (session shadow index or the deck itself) and
             the user has not confirmed
  added      AnkiConnect created the note -> SyncedCard
  queued     AnkiConnect unreachable or the create call failed -> PendingCard

Only the pending queue is persisted (JSON under PENDING_QUEUE_KEY in the
kv_store table); synced cards live for the process lifetime. Every mutation is
a single synchronous step, never split across an await.
"""
from __future__ import annotations

import asyncio
import json
import logging
import time
import uuid
from collections import Counter
from typing import Any, Callable

import aiosqlite
from pydantic import ValidationError

from vocab_assistant.db.sqlite import get_kv, set_kv
from vocab_assistant.models.cards import (
    CardContent,
    PendingCard,
    SessionState,
    SubmitResult,
    SubmitStatus,
    SyncedCard,
    SyncResult,
)
from vocab_assistant.services.anki_connect import AnkiConnectClient, AnkiError

logger = logging.getLogger(__name__)

PENDING_QUEUE_KEY = "session-cards:pending-queue"

CONTENT_FIELDS = ("word", "definition", "example_sentence", "sentence_translation")
# Fields written to storage for a pending card; anything else is dropped.
PERSISTED_FIELDS = CONTENT_FIELDS + ("id", "created_at", "deck_name", "model_name")


class SessionCardError(Exception):
    """Base class for session store errors."""


class PendingCardNotFoundError(SessionCardError):
    """Raised when a pending id is unknown, e.g. it was already synced or discarded."""


class SyncInProgressError(SessionCardError):
    """Raised when a pending card is already being synced."""


def normalize_word(word: str) -> str:
    """Trim and fold ASCII letters to lower case. Other scripts are left untouched."""
    return "".join(c.lower() if c.isascii() else c for c in word.strip())


def _now_ms() -> int:
    return int(time.time() * 1000)


def _new_id() -> str:
    return uuid.uuid4().hex


def _content_of(card: CardContent) -> CardContent:
    return CardContent(**card.model_dump(include=set(CONTENT_FIELDS)))


class SessionCardStore:
    def __init__(
        self,
        clock: Callable[[], int] = _now_ms,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._clock = clock
        self._new_id = id_factory
        self._cards: list[SyncedCard] = []
        self._pending: list[PendingCard] = []
        self._syncing: set[str] = set()
        self._submitting: Counter[str] = Counter()
        self.save_lock = asyncio.Lock()

    # --- Queries ---

    @property
    def cards(self) -> list[SyncedCard]:
        return list(self._cards)

    @property
    def pending_queue(self) -> list[PendingCard]:
        return list(self._pending)

    def snapshot(self) -> SessionState:
        return SessionState(cards=self.cards, pending_queue=self.pending_queue)

    def get_pending(self, pending_id: str) -> PendingCard | None:
        return next((p for p in self._pending if p.id == pending_id), None)

    def has_word(self, word: str) -> bool:
        key = normalize_word(word)
        return any(normalize_word(c.word) == key for c in self._cards) or any(
            normalize_word(p.word) == key for p in self._pending
        )

    # --- Mutations ---

    def add_card(
        self,
        content: CardContent,
        deck_name: str,
        model_name: str,
        note_id: int | None = None,
    ) -> SyncedCard:
        card = SyncedCard(
            **_content_of(content).model_dump(),
            id=self._new_id(),
            created_at=self._clock(),
            note_id=note_id,
            deck_name=deck_name,
            model_name=model_name,
            synced_to_anki=note_id is not None,
        )
        self._cards = [*self._cards, card]
        return card

    def remove_card(self, card_id: str) -> None:
        self._cards = [c for c in self._cards if c.id != card_id]

    def add_to_pending_queue(self, content: CardContent, deck_name: str, model_name: str) -> str:
        pending = PendingCard(
            **_content_of(content).model_dump(),
            id=self._new_id(),
            created_at=self._clock(),
            deck_name=deck_name,
            model_name=model_name,
        )
        self._pending = [*self._pending, pending]
        return pending.id

    def remove_from_pending_queue(self, pending_id: str) -> None:
        self._pending = [p for p in self._pending if p.id != pending_id]

    def clear_all(self) -> None:
        self._cards = []
        self._pending = []

    # --- Remote reconciliation ---

    async def sync_one(self, pending_id: str, client: AnkiConnectClient) -> SyncedCard:
        """
        Create the note for one pending card using its stored deck/model.

        On success the pending card is swapped for a SyncedCard (same id) in one
        step. On failure the pending card stays put and the AnkiError propagates.
        """
        pending = self.get_pending(pending_id)
        if pending is None:
            raise PendingCardNotFoundError(f"No pending card {pending_id}")
        if pending_id in self._syncing:
            raise SyncInProgressError(f"Pending card {pending_id} is already syncing")

        self._syncing.add(pending_id)
        try:
            note_id = await client.create_card(
                _content_of(pending), pending.deck_name, pending.model_name
            )
        finally:
            self._syncing.discard(pending_id)

        # The note now exists in Anki, so it is recorded as synced even if the
        # pending card was discarded or cleared while create_card was running.
        synced = SyncedCard(
            **pending.model_dump(),
            note_id=note_id,
            synced_to_anki=True,
        )
        self._pending = [p for p in self._pending if p.id != pending_id]
        self._cards = [*self._cards, synced]
        logger.info("Synced pending card %s (%s) as note %s", pending_id, pending.word, note_id)
        return synced

    async def sync_all(self, client: AnkiConnectClient) -> list[SyncResult]:
        """Sync the queue in order, one card at a time. A failure does not stop the rest."""
        results = []
        for pending_id in [p.id for p in self._pending]:
            try:
                card = await self.sync_one(pending_id, client)
            except (AnkiError, SessionCardError) as e:
                logger.warning("Sync of pending card %s failed: %s", pending_id, e)
                results.append(SyncResult(pending_id=pending_id, ok=False, error=str(e)))
            else:
                results.append(SyncResult(pending_id=pending_id, ok=True, card=card))
        return results

    async def submit(
        self,
        content: CardContent,
        deck_name: str,
        model_name: str,
        client: AnkiConnectClient,
        confirm_duplicate: bool = False,
    ) -> SubmitResult:
        """
        Send an approved card to Anki, or queue it when Anki cannot take it.

        Without confirm_duplicate, a word that is already known (this session,
        another submit still in flight, or the deck itself) comes back as
        DUPLICATE. A confirmed submit skips all of these checks.
        """
        key = normalize_word(content.word)
        if not confirm_duplicate and (self._submitting[key] or self.has_word(content.word)):
            return SubmitResult(status=SubmitStatus.DUPLICATE)

        self._submitting[key] += 1
        try:
            if not await client.ping():
                return self._queue(content, deck_name, model_name, "AnkiConnect unreachable")

            if not confirm_duplicate:
                try:
                    existing = await client.search_word(content.word, deck_name)
                except AnkiError as e:
                    logger.warning("Duplicate lookup for %r failed: %s", content.word, e)
                    existing = None
                if existing is not None:
                    return SubmitResult(status=SubmitStatus.DUPLICATE)

            try:
                note_id = await client.create_card(
                    content, deck_name, model_name, allow_duplicate=confirm_duplicate
                )
            except AnkiError as e:
                return self._queue(content, deck_name, model_name, str(e))

            return SubmitResult(
                status=SubmitStatus.ADDED,
                card=self.add_card(content, deck_name, model_name, note_id),
            )
        finally:
            self._submitting[key] -= 1
            if not self._submitting[key]:
                del self._submitting[key]

    def _queue(
        self, content: CardContent, deck_name: str, model_name: str, reason: str
    ) -> SubmitResult:
        pending_id = self.add_to_pending_queue(content, deck_name, model_name)
        logger.info("Queued %r for later sync: %s", content.word, reason)
        return SubmitResult(status=SubmitStatus.QUEUED, pending=self.get_pending(pending_id))

    # --- Persistence boundary ---

    def dump_pending_queue(self) -> list[dict[str, Any]]:
        return [p.model_dump(include=set(PERSISTED_FIELDS)) for p in self._pending]

    def load_pending_queue(self, records: list[Any]) -> int:
        """Append persisted pending cards as-is. Returns how many were restored."""
        known = {p.id for p in self._pending}
        restored = []
        for record in records:
            if not isinstance(record, dict):
                logger.warning("Skipping malformed pending card record: %r", record)
                continue
            try:
                pending = PendingCard(**{k: v for k, v in record.items() if k in PERSISTED_FIELDS})
            except ValidationError as e:
                logger.warning("Skipping invalid pending card record: %s", e)
                continue
            if pending.id in known:
                continue
            known.add(pending.id)
            restored.append(pending)
        self._pending = [*self._pending, *restored]
        return len(restored)


async def load_pending_queue(db: aiosqlite.Connection, store: SessionCardStore) -> int:
    raw = await get_kv(db, PENDING_QUEUE_KEY)
    if not raw:
        return 0
    try:
        records = json.loads(raw)
    except json.JSONDecodeError:
        logger.error("Persisted pending queue is not valid JSON, ignoring it")
        return 0
    if not isinstance(records, list):
        logger.error("Persisted pending queue is not a list, ignoring it")
        return 0
    return store.load_pending_queue(records)


async def save_pending_queue(db: aiosqlite.Connection, store: SessionCardStore) -> None:
    """Write the current queue. Writes are serialized and each one snapshots under the lock."""
    async with store.save_lock:
        records = store.dump_pending_queue()
        await set_kv(db, PENDING_QUEUE_KEY, json.dumps(records, ensure_ascii=False))
