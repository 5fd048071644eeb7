"""Diagnostic events written as compact JSON lines on stderr.

stdout is reserved for the transcript, so every status message goes here.
"""

from __future__ import annotations

import json
import sys
import time
from typing import Any

_quiet = False


def set_quiet(quiet: bool) -> None:
    global _quiet
    _quiet = quiet


def emit(topic: str, **fields: Any) -> None:
    """Print ``{"topic": ..., **fields, "ts": ...}`` to stderr."""
    if _quiet:
        return
    msg = {"topic": topic, **fields, "ts": time.time()}
    print(json.dumps(msg, separators=(",", ":"), default=str), file=sys.stderr, flush=True)
