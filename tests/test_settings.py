"""Tests for Settings validation and environment overrides."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from shellpipe.config.settings import Settings


def test_defaults() -> None:
    settings = Settings()

    assert settings.chunk_size == 4096
    assert settings.home_env_var == "HOME"
    assert settings.save_metrics is False


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SHELLPIPE_CHUNK_SIZE", "1024")
    monkeypatch.setenv("SHELLPIPE_LOG_LEVEL", "debug")

    settings = Settings()

    assert settings.chunk_size == 1024
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize("field", ["chunk_size", "pump_poll_interval"])
def test_rejects_non_positive_values(field: str) -> None:
    with pytest.raises(ValidationError):
        Settings(**{field: 0})
