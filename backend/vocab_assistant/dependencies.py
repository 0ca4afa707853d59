"""FastAPI dependencies shared by the routers."""
from __future__ import annotations

import aiosqlite
from fastapi import Depends, HTTPException, Request

from vocab_assistant.db.sqlite import get_db
from vocab_assistant.models.settings import UserSettings
from vocab_assistant.services.anki_connect import (
    AnkiConnectClient,
    AnkiError,
    AnkiUnavailableError,
)
from vocab_assistant.services.chat_orchestrator import RequestTracker
from vocab_assistant.services.llm_service import (
    LLMUnavailableError,
    TextGenerator,
    UnavailableGenerator,
    select_generator,
)
from vocab_assistant.services.session_cards import SessionCardStore
from vocab_assistant.services.settings_store import get_settings


async def get_user_settings(db: aiosqlite.Connection = Depends(get_db)) -> UserSettings:
    return await get_settings(db)


async def get_anki_client(
    user_settings: UserSettings = Depends(get_user_settings),
) -> AnkiConnectClient:
    return AnkiConnectClient(user_settings.anki_connect_url)


async def get_generator(
    user_settings: UserSettings = Depends(get_user_settings),
) -> TextGenerator:
    try:
        return select_generator(user_settings)
    except LLMUnavailableError as e:
        return UnavailableGenerator(e)


def get_session_store(request: Request) -> SessionCardStore:
    return request.app.state.session_store


def get_request_tracker(request: Request) -> RequestTracker:
    return request.app.state.request_tracker


def anki_http_error(e: AnkiError) -> HTTPException:
    if isinstance(e, AnkiUnavailableError):
        return HTTPException(503, "AnkiConnect unreachable. Is Anki running?")
    return HTTPException(502, str(e))
