"""Logging and run-log helpers."""

from shellpipe.utils.logger import setup_logger
from shellpipe.utils.metrics import MetricsTracker

__all__ = ["MetricsTracker", "setup_logger"]
