from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_FEED_URL = "https://pysae.com/api/v2/groups/car-jaune/gtfs/pub"
DEFAULT_MODEL = "claude-sonnet-4-5-20250929"


class AssistantConfig(BaseSettings):
    """Configuration for the transit assistant.

    Automatically loads from environment variables and .env file.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    # Model Service
    api_key: str | None = Field(default=None, alias="ANTHROPIC_API_KEY")
    api_url: str = "https://api.anthropic.com/v1/messages"
    api_version: str = "2023-06-01"
    model: str = Field(default=DEFAULT_MODEL, alias="TRANSIT_MODEL")
    max_output_tokens: int = 1024
    request_timeout: float = 60.0

    # Conversation
    language: Literal["fr", "en"] = Field(default="fr", alias="TRANSIT_LANGUAGE")
    system_prompt: str | None = Field(default=None, alias="TRANSIT_SYSTEM_PROMPT")
    max_iterations: int = Field(default=10, alias="TRANSIT_MAX_ITERATIONS")
    timezone: str | None = Field(default=None, alias="TRANSIT_TIMEZONE")
    inject_current_datetime: bool = Field(default=False, alias="TRANSIT_INJECT_DATETIME")

    # Transit data
    feed_url: str = Field(default=DEFAULT_FEED_URL, alias="TRANSIT_FEED_URL")
    db_path: Path = Field(default=Path("data/gtfs.db"), alias="TRANSIT_DB_PATH")


@lru_cache
def get_config() -> AssistantConfig:
    """Get assistant configuration (cached singleton).

    Returns:
        AssistantConfig with values from .env file or environment variables.
    """
    return AssistantConfig()
