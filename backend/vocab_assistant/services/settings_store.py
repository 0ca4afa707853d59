"""
User settings store.

Merge precedence on read: defaults < persisted rows (SQLite `settings` table)
< environment variables. Writes only ever touch the persisted rows, so an
environment override keeps winning after a save.
"""
from __future__ import annotations

import logging

import aiosqlite
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings

from vocab_assistant.db.sqlite import get_all_settings, set_settings
from vocab_assistant.models.settings import AIProvider, SettingsUpdate, UserSettings

logger = logging.getLogger(__name__)

MASK_PREFIX = "••••"
SECRET_FIELDS = ("claude_api_key", "gemini_api_key")


class EnvOverrides(BaseSettings):
    """Environment variables that override persisted settings. Unset = no override."""

    # First alias found wins.
    claude_api_key: str | None = Field(
        default=None, validation_alias=AliasChoices("CLAUDE_API_KEY", "ANTHROPIC_API_KEY")
    )
    gemini_api_key: str | None = Field(
        default=None, validation_alias=AliasChoices("GOOGLE_API_KEY", "GEMINI_API_KEY")
    )
    ai_provider: str | None = Field(default=None, validation_alias="AI_PROVIDER")
    default_deck: str | None = Field(default=None, validation_alias="DEFAULT_DECK")
    default_model: str | None = Field(default=None, validation_alias="DEFAULT_MODEL")
    anki_connect_url: str | None = Field(default=None, validation_alias="ANKI_CONNECT_URL")

    model_config = {"extra": "ignore"}

    @field_validator("ai_provider")
    @classmethod
    def _known_provider(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip().lower()
        if value not in {p.value for p in AIProvider}:
            logger.warning("Ignoring unknown AI_PROVIDER %r", value)
            return None
        return value

    @field_validator(
        "claude_api_key", "gemini_api_key", "default_deck", "default_model", "anki_connect_url"
    )
    @classmethod
    def _empty_is_unset(cls, value: str | None) -> str | None:
        return value or None


def merge_settings(persisted: dict[str, str]) -> UserSettings:
    known = {k: v for k, v in persisted.items() if k in UserSettings.model_fields}
    overrides = EnvOverrides().model_dump(exclude_none=True)
    merged = {**UserSettings().model_dump(), **known, **overrides}
    try:
        return UserSettings(**merged)
    except ValueError:
        # Corrupt persisted value: keep defaults plus env overrides.
        logger.warning("Persisted settings are invalid, falling back to defaults")
        return UserSettings(**{**UserSettings().model_dump(), **overrides})


async def get_settings(db: aiosqlite.Connection) -> UserSettings:
    return merge_settings(await get_all_settings(db))


async def save_settings(db: aiosqlite.Connection, updates: SettingsUpdate) -> UserSettings:
    """Persist the supplied fields and return the merged view."""
    values = updates.model_dump(exclude_none=True, mode="json")
    if values:
        await set_settings(db, {k: str(v) for k, v in values.items()})
    return await get_settings(db)


def mask_secret(value: str) -> str:
    return MASK_PREFIX * 2 + value[-4:] if value else ""


def masked(user_settings: UserSettings) -> UserSettings:
    return user_settings.model_copy(
        update={name: mask_secret(getattr(user_settings, name)) for name in SECRET_FIELDS}
    )


def strip_masked_secrets(updates: SettingsUpdate) -> SettingsUpdate:
    """Drop key fields that still carry the masked placeholder sent back by a client."""
    dropped = {
        name: None
        for name in SECRET_FIELDS
        if (getattr(updates, name) or "").startswith(MASK_PREFIX)
    }
    return updates.model_copy(update=dropped)
