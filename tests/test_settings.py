"""Configuration settings behaviour tests."""

from __future__ import annotations

import pytest

from streamvault.config import Settings


def test_defaults() -> None:
    settings = Settings(_env_file=None)

    assert settings.database_url.startswith("sqlite+aiosqlite://")
    assert settings.watch_history_limit == 20
    assert settings.my_list_storage_key == "streamvault-content-storage"
    assert settings.log_level == "INFO"


def test_log_level_accepts_any_case() -> None:
    settings = Settings(_env_file=None, LOG_LEVEL="debug")

    assert settings.log_level == "DEBUG"


def test_unknown_log_level_rejected() -> None:
    with pytest.raises(ValueError, match="standard logging level"):
        Settings(_env_file=None, LOG_LEVEL="chatty")


def test_history_limit_bounds() -> None:
    assert Settings(_env_file=None, WATCH_HISTORY_LIMIT=50).watch_history_limit == 50
    with pytest.raises(ValueError):
        Settings(_env_file=None, WATCH_HISTORY_LIMIT=0)


def test_blank_storage_key_rejected() -> None:
    with pytest.raises(ValueError, match="must not be blank"):
        Settings(_env_file=None, MY_LIST_STORAGE_KEY="  ")
