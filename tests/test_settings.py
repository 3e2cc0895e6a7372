"""Tests for settings validation, logging setup and app composition."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from src.app import create_app
from src.config.logging import configure_logging
from src.config.settings import load_settings
from src.nlu.validation import Limits

_ENV_VARS = (
    "LLM_ENABLED",
    "LLM_API_KEY",
    "CONTEXT_TTL_SECONDS",
    "MAX_QUERY_LENGTH",
    "MAX_AVAILABLE_VALUES",
    "MAX_HISTORY_MESSAGES",
    "TYPO_TOLERANCE_ENABLED",
    "PROJECTS_JSON_PATH",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    settings = load_settings()

    assert settings.context_ttl_seconds == 300.0
    assert settings.typo_tolerance_enabled is False
    assert settings.llm_enabled is False
    assert Limits.from_settings(settings) == Limits()


def test_llm_requires_api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LLM_ENABLED", "true")

    with pytest.raises(RuntimeError, match="LLM_API_KEY"):
        load_settings()


def test_context_ttl_must_be_positive(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONTEXT_TTL_SECONDS", "0")

    with pytest.raises(RuntimeError):
        load_settings()


def test_limits_follow_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MAX_QUERY_LENGTH", "200")
    monkeypatch.setenv("TYPO_TOLERANCE_ENABLED", "1")

    settings = load_settings()
    assert settings.typo_tolerance_enabled is True
    assert Limits.from_settings(settings).max_query_length == 200


def test_env_file_is_read(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text("CONTEXT_TTL_SECONDS=60\n", encoding="utf-8")

    assert load_settings().context_ttl_seconds == 60.0


def test_unknown_log_level_is_rejected() -> None:
    with pytest.raises(ValueError, match="LOG_LEVEL"):
        configure_logging("chatty")


def test_configure_logging_quiets_aiogram_events() -> None:
    configure_logging("debug")

    assert logging.getLogger("aiogram.event").level == logging.WARNING


def test_create_app_seeds_store_from_json(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    path = tmp_path / "projects.json"
    path.write_text('[{"id": "1", "name": "Magnetize", "collab": "Kygo"}]', encoding="utf-8")
    monkeypatch.setenv("PROJECTS_JSON_PATH", str(path))

    app = create_app(load_settings())

    assert len(app.store) == 1
    assert app.store.available_collabs() == ["Kygo"]
    assert not app.responder.enabled
