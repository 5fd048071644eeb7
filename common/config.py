"""Runtime settings read from the environment.

Command-line flags override these values; see ``apps.asr.cli``.
"""

from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


class Settings(BaseModel):
    threads: int = 1
    compute_type: str = "int8"
    silence_ms: int = 2000
    threshold: float = 0.05
    max_seconds: float = 30.0
    input_device: Optional[str] = None
    quiet: bool = False


def load_settings() -> Settings:
    """Build :class:`Settings` from ``WHISPER_AGENT_*`` variables."""
    return Settings(
        threads=_env_int("WHISPER_AGENT_THREADS", 1),
        compute_type=os.getenv("WHISPER_AGENT_COMPUTE_TYPE", "int8"),
        silence_ms=_env_int("WHISPER_AGENT_SILENCE_MS", 2000),
        threshold=_env_float("WHISPER_AGENT_THRESHOLD", 0.05),
        max_seconds=_env_float("WHISPER_AGENT_MAX_SECONDS", 30.0),
        input_device=os.getenv("WHISPER_AGENT_INPUT_DEVICE") or None,
        quiet=os.getenv("WHISPER_AGENT_QUIET", "") == "1",
    )
