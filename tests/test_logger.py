"""Tests for logger configuration."""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path

from loguru import logger

from shellpipe.config.settings import Settings
from shellpipe.parsing import tokenize
from shellpipe.utils.logger import setup_logger


def test_library_is_silent_until_configured() -> None:
    completed = subprocess.run(
        [sys.executable, "-c", "import shellpipe; shellpipe.run('true')"],
        capture_output=True,
        text=True,
        check=True,
    )

    assert completed.stderr == ""


def test_setup_logger_enables_library_records(tmp_path: Path) -> None:
    settings = Settings(log_level="DEBUG", metrics_file=tmp_path / "metrics.csv")
    messages: list[str] = []

    logger.disable("shellpipe")
    setup_logger(settings)
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    try:
        tokenize("echo hi", settings=settings)
    finally:
        logger.remove(handler_id)
        logger.disable("shellpipe")

    assert any(message.startswith("Tokenized 'echo hi'") for message in messages)
