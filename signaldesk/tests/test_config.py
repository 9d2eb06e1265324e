from __future__ import annotations

from pathlib import Path

import pytest

from signaldesk.core import config_loader
from signaldesk.core.settings import get_settings
from signaldesk.oracle.config import OracleConfig, load_oracle_config

SAMPLE = Path(__file__).resolve().parents[2] / "config" / "config.sample.json"


@pytest.fixture()
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_sample_config_loads_with_comments_and_trailing_commas():
    cfg = config_loader.load_config(SAMPLE)
    assert cfg["oracle"]["models"]["signal"] == "gemini-2.5-flash"
    assert config_loader.CFG_PATH_IN_USE == str(SAMPLE)


def test_comment_markers_inside_strings_are_kept(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(
        '\ufeff{\n  /* bloque */\n  "url": "https://example.com/a//b", // nota\n  "list": [1, 2,],\n}\n',
        encoding="utf-8",
    )
    assert config_loader.load_config(path) == {"url": "https://example.com/a//b", "list": [1, 2]}


def test_explicit_missing_config_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        config_loader.load_config(tmp_path / "nope.json")


def test_non_object_config_is_rejected(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        config_loader.load_config(path)


def test_oracle_config_from_dict_overrides_defaults():
    defaults = OracleConfig(api_key="env-key", max_retries=5)
    cfg = OracleConfig.from_dict({"max_retries": 0, "timeout": 10, "models": {"chat": "gemini-x"}}, defaults)
    assert cfg.api_key == "env-key"
    assert cfg.max_retries == 0
    assert cfg.timeout == 10.0
    assert cfg.chat_model == "gemini-x"
    assert cfg.signal_model == "gemini-2.5-flash"


def test_load_oracle_config_merges_env_and_file(tmp_path, monkeypatch, fresh_settings):
    path = tmp_path / "config.json"
    path.write_text('{"oracle": {"news_count": 8, "models": {"signal": "gemini-fast"}}}', encoding="utf-8")
    monkeypatch.setenv("GEMINI_API_KEY", "secret")
    monkeypatch.setenv("ORACLE_BASE_DELAY", "0.5")
    monkeypatch.setenv("SIGNALDESK_CONFIG", str(path))

    cfg = load_oracle_config()
    assert cfg.api_key == "secret"
    assert cfg.base_delay == 0.5
    assert cfg.news_count == 8
    assert cfg.signal_model == "gemini-fast"
    assert cfg.briefing_model == "gemini-2.5-pro"


def test_api_key_alias(monkeypatch, fresh_settings):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("API_KEY", "legacy")
    assert get_settings().gemini_api_key == "legacy"
