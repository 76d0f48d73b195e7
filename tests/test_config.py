"""Unit tests for settings."""
from pathlib import Path

import pytest
from pydantic import ValidationError

from sgrchat.config import ChatSettings
from sgrchat.session import ChatMode

ENV_NAMES = [f"SGRCHAT_{name.upper()}" for name in ChatSettings.model_fields] + ["OPENAI_API_KEY", "OPENAI_BASE_URL"]


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every variable the settings read."""
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestChatSettings:
    """Tests for ChatSettings."""

    def test_defaults(self):
        settings = ChatSettings()
        assert settings.default_model == "gpt-4o-mini"
        assert settings.default_mode == ChatMode.ASK
        assert settings.history_folder == "Chat History"
        assert settings.flush_interval == 2.0

    def test_from_env(self, clean_env, tmp_path):
        clean_env.setenv("SGRCHAT_BASE_URL", "https://llm.test/v1")
        clean_env.setenv("SGRCHAT_API_KEY", "secret")
        clean_env.setenv("SGRCHAT_TEMPERATURE", "0.2")
        clean_env.setenv("SGRCHAT_MAX_TOKENS", "512")
        clean_env.setenv("SGRCHAT_DEFAULT_MODE", "plan")
        clean_env.setenv("SGRCHAT_STORAGE_ROOT", str(tmp_path))

        settings = ChatSettings.from_env(tmp_path / "missing.env")

        assert settings.base_url == "https://llm.test/v1"
        assert settings.api_key == "secret"
        assert settings.temperature == 0.2
        assert settings.max_tokens == 512
        assert settings.default_mode == ChatMode.PLAN
        assert settings.storage_root == Path(tmp_path)
        assert settings.is_configured

    def test_openai_fallbacks(self, clean_env, tmp_path):
        clean_env.setenv("OPENAI_API_KEY", "sk-test")
        clean_env.setenv("OPENAI_BASE_URL", "https://api.openai.com/v1")

        settings = ChatSettings.from_env(tmp_path / "missing.env")

        assert settings.api_key == "sk-test"
        assert settings.base_url == "https://api.openai.com/v1"

    def test_env_file(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("SGRCHAT_API_KEY=from-file\nSGRCHAT_DEFAULT_MODEL=local-model\n")
        # Registered so the values loaded from the file are removed afterwards
        for name in ("SGRCHAT_API_KEY", "SGRCHAT_DEFAULT_MODEL"):
            clean_env.setenv(name, "")
            clean_env.delenv(name)

        settings = ChatSettings.from_env(env_file)

        assert settings.api_key == "from-file"
        assert settings.default_model == "local-model"

    def test_validation_errors(self):
        assert ChatSettings().validation_errors() == ["Base URL is required", "API Key is required"]
        assert ChatSettings(proxy="https://proxy.test", api_key="k").validation_errors() == []
        assert not ChatSettings(base_url="  ", api_key="k").is_configured

    @pytest.mark.parametrize("field,value", [
        ("temperature", 3.0),
        ("max_tokens", 0),
        ("flush_interval", 0),
    ])
    def test_out_of_range(self, field, value):
        with pytest.raises(ValidationError):
            ChatSettings(**{field: value})
