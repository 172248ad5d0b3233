"""
Centralized configuration management for the studycards application.
"""
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Path Configuration ---

def get_default_db_path() -> Path:
    """Returns the default path for the database file."""
    return Path.home() / ".studycards" / "studycards.db"


class Settings(BaseSettings):
    """
    Defines application settings, loaded from STUDYCARDS_* environment
    variables or a .env file.
    """
    model_config = SettingsConfigDict(
        env_prefix="STUDYCARDS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Storage ---
    db_path: Path = Field(default_factory=get_default_db_path)

    # --- User Configuration ---
    # Identity comes from an external provider; the CLI acts on behalf of this user.
    user_id: str = "local-user"

    # --- Generation ---
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    openai_model: str = "gpt-4"
    generation_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    generation_max_tokens: int = Field(default=3000, gt=0)
    improvement_temperature: float = Field(default=0.5, ge=0.0, le=2.0)
    improvement_max_tokens: int = Field(default=500, gt=0)
    default_card_count: int = Field(default=10, gt=0)

    # --- Study presentation ---
    # Pause between hiding a graded answer and moving to the next card.
    reveal_delay_seconds: float = Field(default=0.3, ge=0.0)


def get_settings() -> Settings:
    """Load settings from the current environment."""
    return Settings()
