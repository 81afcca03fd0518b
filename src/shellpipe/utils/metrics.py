"""Helpers for writing pipeline run metrics to disk."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from threading import RLock
from typing import TYPE_CHECKING, Any

import pandas as pd

from shellpipe.config import Settings, get_settings

if TYPE_CHECKING:
    from shellpipe.pipeline.executor import Result
    from shellpipe.pipeline.stage import Pipeline

# Shared by every tracker: separate executors may log to the same file
_APPEND_LOCK = RLock()


class MetricsTracker:
    """Appends one row per pipeline run into a CSV file."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.metrics_path = Path(self.settings.metrics_file)

    @property
    def enabled(self) -> bool:
        return self.settings.save_metrics

    def append(self, row: dict[str, Any]) -> Path:
        """Append a single metrics row."""
        dataframe = pd.DataFrame([row])
        with _APPEND_LOCK:
            self.metrics_path.parent.mkdir(parents=True, exist_ok=True)
            header = not self.metrics_path.exists()
            dataframe.to_csv(
                self.metrics_path,
                mode="a",
                header=header,
                index=False,
            )
        return self.metrics_path

    def record_run(
        self,
        pipeline: Pipeline,
        result: Result,
        duration_ms: float,
    ) -> Path | None:
        """Append the outcome of a pipeline run if the run log is enabled."""
        if not self.enabled:
            return None
        return self.append(build_run_row(pipeline, result, duration_ms))

    def load(self) -> pd.DataFrame:
        """Read the run log back, empty if nothing was written yet."""
        if not self.metrics_path.exists():
            return pd.DataFrame()
        return pd.read_csv(self.metrics_path)


def build_run_row(
    pipeline: Pipeline,
    result: Result,
    duration_ms: float,
) -> dict[str, Any]:
    """Flatten a run into a CSV-friendly row."""
    return {
        "timestamp_utc": datetime.now(tz=timezone.utc).isoformat(),
        "commands": " | ".join(stage.display() for stage in pipeline.stages),
        "stages": len(pipeline.stages),
        "exit_code": result.exit_code,
        "stage_statuses": " ".join(str(status) for status in result.stage_statuses),
        "duration_ms": round(duration_ms, 2),
    }
