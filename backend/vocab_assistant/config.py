from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    data_dir: Path = Path.home() / ".vocab-assistant" / "data"
    sqlite_filename: str = "vocab.db"
    host: str = "127.0.0.1"
    port: int = 0  # 0 = pick a free port
    log_level: str = "INFO"
    cors_origins: list[str] = ["*"]
    claude_model: str = "claude-sonnet-4-20250514"
    gemini_model: str = "gemini-2.0-flash"
    max_tokens: int = 2048
    anki_timeout: float = 5.0

    model_config = {"env_prefix": "VOCAB_"}


settings = Settings()
