"""Tests for configuration and system prompt selection."""

from datetime import datetime
from pathlib import Path

import pytest

from transit_assistant.conversation.prompts import (
    SYSTEM_PROMPT_EN,
    SYSTEM_PROMPT_FR,
    build_system_prompt,
    default_system_prompt,
)
from transit_assistant.data.config import DEFAULT_FEED_URL, AssistantConfig
from transit_assistant.services.datetime_service import get_current_datetime

ENV_VARS = [
    "ANTHROPIC_API_KEY",
    "TRANSIT_MODEL",
    "TRANSIT_LANGUAGE",
    "TRANSIT_SYSTEM_PROMPT",
    "TRANSIT_MAX_ITERATIONS",
    "TRANSIT_TIMEZONE",
    "TRANSIT_INJECT_DATETIME",
    "TRANSIT_FEED_URL",
    "TRANSIT_DB_PATH",
]


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestAssistantConfig:
    """Tests for AssistantConfig."""

    def test_defaults(self, clean_env) -> None:
        """Test default values without environment or .env file."""
        config = AssistantConfig(_env_file=None)

        assert config.api_key is None
        assert config.language == "fr"
        assert config.max_iterations == 10
        assert config.inject_current_datetime is False
        assert config.feed_url == DEFAULT_FEED_URL
        assert config.db_path == Path("data/gtfs.db")

    def test_reads_environment(self, clean_env, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that environment variables override defaults."""
        monkeypatch.setenv("TRANSIT_LANGUAGE", "en")
        monkeypatch.setenv("TRANSIT_MAX_ITERATIONS", "4")
        monkeypatch.setenv("TRANSIT_DB_PATH", "/tmp/feed.db")

        config = AssistantConfig(_env_file=None)

        assert config.language == "en"
        assert config.max_iterations == 4
        assert config.db_path == Path("/tmp/feed.db")


class TestBuildSystemPrompt:
    """Tests for system prompt selection."""

    def test_language_defaults(self, clean_env) -> None:
        """Test that the prompt follows the configured language."""
        assert build_system_prompt(AssistantConfig(_env_file=None)) == SYSTEM_PROMPT_FR
        assert (
            build_system_prompt(AssistantConfig(TRANSIT_LANGUAGE="en", _env_file=None))
            == SYSTEM_PROMPT_EN
        )

    def test_unknown_language_falls_back_to_french(self) -> None:
        """Test the fallback for languages without a built-in prompt."""
        assert default_system_prompt("de") == SYSTEM_PROMPT_FR

    def test_override(self, clean_env) -> None:
        """Test that a configured prompt replaces the built-in one."""
        config = AssistantConfig(TRANSIT_SYSTEM_PROMPT="Réponds en une phrase.", _env_file=None)

        assert build_system_prompt(config) == "Réponds en une phrase."

    def test_injects_current_datetime(self, clean_env) -> None:
        """Test that the current date is appended when enabled."""
        now = get_current_datetime(datetime(2025, 12, 3, 14, 30))
        config = AssistantConfig(TRANSIT_INJECT_DATETIME=True, _env_file=None)

        prompt = build_system_prompt(config, now)

        assert prompt.startswith(SYSTEM_PROMPT_FR)
        assert "2025-12-03 (wednesday) 14:30:00" in prompt
        assert "GTFS date: 20251203" in prompt

    def test_datetime_not_injected_by_default(self, clean_env) -> None:
        """Test that the prompt is unchanged when injection is off."""
        now = get_current_datetime(datetime(2025, 12, 3, 14, 30))

        assert build_system_prompt(AssistantConfig(_env_file=None), now) == SYSTEM_PROMPT_FR
