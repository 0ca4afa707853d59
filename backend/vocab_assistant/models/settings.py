from enum import Enum

from pydantic import BaseModel


class AIProvider(str, Enum):
    CLAUDE = "claude"
    GEMINI = "gemini"


class UserSettings(BaseModel):
    ai_provider: AIProvider = AIProvider.CLAUDE
    claude_api_key: str = ""
    gemini_api_key: str = ""
    default_deck: str = "Bangla Vocabulary"
    default_model: str = "Basic"
    anki_connect_url: str = "http://localhost:8765"


class SettingsUpdate(BaseModel):
    ai_provider: AIProvider | None = None
    claude_api_key: str | None = None
    gemini_api_key: str | None = None
    default_deck: str | None = None
    default_model: str | None = None
    anki_connect_url: str | None = None
