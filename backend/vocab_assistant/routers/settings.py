import logging

import aiosqlite
from fastapi import APIRouter, Depends

from vocab_assistant.db.sqlite import get_db
from vocab_assistant.models.settings import SettingsUpdate, UserSettings
from vocab_assistant.services.llm_service import reset_clients
from vocab_assistant.services.settings_store import (
    get_settings,
    masked,
    save_settings,
    strip_masked_secrets,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=UserSettings)
async def read_settings(db: aiosqlite.Connection = Depends(get_db)):
    return masked(await get_settings(db))


@router.put("/", response_model=UserSettings)
async def update_settings(body: SettingsUpdate, db: aiosqlite.Connection = Depends(get_db)):
    updates = strip_masked_secrets(body)
    updated = await save_settings(db, updates)

    if updates.ai_provider or updates.claude_api_key or updates.gemini_api_key:
        logger.info("Provider settings changed, resetting LLM clients")
        reset_clients()

    return masked(updated)
