"""Tests for client settings persistence."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from media_browser import config
from media_browser.config import (
    DEFAULT_ENDPOINT,
    DEFAULT_TIMEOUT_SECONDS,
    MAX_TIMEOUT_SECONDS,
    ClientSettings,
    load_settings,
    save_settings,
)


@pytest.fixture
def config_path(tmp_path, monkeypatch):
    path = tmp_path / "config.json"
    monkeypatch.setattr(config, "get_config_path", lambda: path)
    return path


def test_missing_file_gives_defaults(config_path) -> None:
    assert load_settings() == ClientSettings()


def test_save_and_load_round_trip(config_path) -> None:
    settings = ClientSettings(
        endpoint="https://ryot.example/backend/graphql",
        auth_token="abc",
        timeout_seconds=10,
    )

    assert save_settings(settings) is True

    assert json.loads(config_path.read_text(encoding="utf-8"))["auth_token"] == "abc"
    assert load_settings() == settings


@pytest.mark.parametrize("content", ["{broken", "[]", "42"])
def test_corrupt_file_gives_defaults(config_path, content) -> None:
    config_path.write_text(content, encoding="utf-8")

    assert load_settings() == ClientSettings()


def test_wrong_types_fall_back_per_field(config_path) -> None:
    config_path.write_text(
        json.dumps(
            {
                "endpoint": "   ",
                "auth_token": 123,
                "timeout_seconds": "fast",
                "user_agent": "custom/2.0",
            }
        ),
        encoding="utf-8",
    )

    settings = load_settings()

    assert settings.endpoint == DEFAULT_ENDPOINT
    assert settings.auth_token == ""
    assert settings.timeout_seconds == DEFAULT_TIMEOUT_SECONDS
    assert settings.user_agent == "custom/2.0"


@pytest.mark.parametrize(
    ("value", "expected"),
    [(0, 1), (-5, 1), (45, 45), (10_000, MAX_TIMEOUT_SECONDS), (True, DEFAULT_TIMEOUT_SECONDS)],
)
def test_timeout_is_clamped(value, expected) -> None:
    assert ClientSettings(timeout_seconds=value).timeout_seconds == expected


def test_save_failure_returns_false(config_path) -> None:
    with patch("media_browser.config.write_json_atomic", side_effect=OSError("read-only")):
        assert save_settings(ClientSettings()) is False


def test_state_path_sits_beside_config(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(config, "get_config_dir", lambda: tmp_path)

    store = config.open_state_store()

    assert store.path == tmp_path / "state.json"
    assert config.get_config_path() == tmp_path / "config.json"
