"""Centralised application settings loaded from environment / .env file."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """All runtime configuration for the cognitive state engine.

    Values are read from environment variables first, then from a *.env* file
    located at the project root.  Every variable lives in a flat namespace
    (``ATTENTION_EYE_WEIGHT``, ``FOCUS_LOW_THRESHOLD``, ...).

    The scoring weights and thresholds are policy values; they are exposed
    here so a deployment can tune them without touching the algorithms.
    """

    model_config = SettingsConfigDict(
        env_file=str(_PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── API server ────────────────────────────────────────────
    api_host: str = "0.0.0.0"
    api_port: int = int(os.getenv("PORT", "8000"))
    cors_origins: str = "*"  # comma-separated origins, or "*" for all
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # ── Attention scoring ─────────────────────────────────────
    attention_eye_weight: float = 0.6
    attention_head_weight: float = 0.4

    # ── Thresholds ────────────────────────────────────────────
    focus_low_threshold: float = 0.3
    load_high_threshold: float = 0.7
    motion_rotation_threshold: float = 0.5  # rad/s on the gamma axis

    # ── Sensor intake ─────────────────────────────────────────
    motion_sampling_interval_ms: int = 33
    face_sampling_interval_ms: int = 100
    calibration_samples: int = 5  # valid face samples before calibration is complete
    sensor_unavailable_limit: int = 3  # bind failures before the session gives up

    # ── History / trend ───────────────────────────────────────
    history_max_per_user: int = 100
    load_history_size: int = 20

    # ── Result forwarding ─────────────────────────────────────
    forward_url: str = ""  # empty disables forwarding
    forward_timeout: float = 10.0


@lru_cache
def get_settings() -> Settings:
    """Return a cached :class:`Settings` instance."""
    return Settings()
