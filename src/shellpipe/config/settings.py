"""Application settings and configuration."""

from functools import lru_cache
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings with flat structure."""

    # Pump configuration
    chunk_size: int = 4096
    pump_poll_interval: float = 0.05

    # Tokenizer
    home_env_var: str = "HOME"

    # Logging Configuration
    log_level: str = "INFO"
    log_file: Path | None = None
    log_rotation: str = "10 MB"
    log_retention: str = "7 days"

    # Run log
    save_metrics: bool = False
    metrics_file: Path = Path("shellpipe_data/metrics.csv")

    model_config = SettingsConfigDict(
        env_prefix="SHELLPIPE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("chunk_size")
    @classmethod
    def check_chunk_size(cls, v: int) -> int:
        """Reject non-positive chunk sizes."""
        if v <= 0:
            raise ValueError(f"chunk_size must be positive, got {v}")
        return v

    @field_validator("pump_poll_interval")
    @classmethod
    def check_poll_interval(cls, v: float) -> float:
        """Reject non-positive poll intervals."""
        if v <= 0:
            raise ValueError(f"pump_poll_interval must be positive, got {v}")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Normalize level name to upper case."""
        return str(v or "INFO").strip().upper()


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
