# schemamend/config.py
"""
schemamend configuration: single source of truth via Pydantic Settings.

Resolution order: explicit arguments > env vars (SCHEMAMEND_*) > .env file > defaults.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SchemamendConfig(BaseSettings):
    """Central configuration for the recovery engine."""

    model_config = SettingsConfigDict(
        env_prefix="SCHEMAMEND_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Hardening ---
    # Raw model output longer than this is not scanned at all.
    max_input_chars: int = Field(default=1_000_000, gt=0)
    # Ceiling on nested coercion calls for a single candidate.
    max_depth: int = Field(default=64, gt=0)
    # Only the last N extracted candidates are tried.
    max_candidates: int = Field(default=256, gt=0)

    # --- Decoding ---
    case_insensitive: bool = True
    strict_decode: bool = True

    # --- Logging ---
    log_level: str = "INFO"

    # --- Paths ---
    home_dir: Path = Field(default_factory=lambda: Path.home() / ".schemamend")

    @property
    def log_dir(self) -> Path:
        return self.home_dir / "logs"


@lru_cache(maxsize=1)
def get_config() -> SchemamendConfig:
    """Return the global config singleton."""
    return SchemamendConfig()
