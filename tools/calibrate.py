"""Calibration helper: measure ambient noise and suggest a threshold.

Stay quiet while it records; the suggested value is meant for
``whisper-agent --threshold``.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import List, Optional

import numpy as np

from audio.capture import record_seconds
from audio.resample import float_to_pcm16
from audio.vad import rms_db
from common.errors import WhisperAgentError

DURATION = 5.0
HEADROOM = 1.5
MIN_THRESHOLD = 0.01
MAX_THRESHOLD = 0.5
EXIT_INTERRUPTED = 130


def noise_profile(samples: np.ndarray) -> dict:
    samples = np.asarray(samples, dtype=np.float32)
    peak = float(np.max(np.abs(samples))) if samples.size else 0.0
    level = rms_db(float_to_pcm16(samples))
    threshold = min(MAX_THRESHOLD, max(MIN_THRESHOLD, peak * HEADROOM))
    return {
        "noise_rms_db": level if np.isfinite(level) else None,
        "noise_peak": round(peak, 4),
        "threshold": round(threshold, 4),
    }


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="whisper-agent-calibrate", description=__doc__.splitlines()[0])
    parser.add_argument("--seconds", type=float, default=DURATION, help="recording length")
    parser.add_argument("--input-device", help="input device index or name")
    args = parser.parse_args(argv)
    if args.seconds <= 0:
        parser.error("--seconds must be > 0")

    try:
        samples, _ = record_seconds(args.seconds, args.input_device)
    except WhisperAgentError as exc:
        print(f"whisper-agent-calibrate: error: {exc}", file=sys.stderr)
        return exc.exit_code
    except KeyboardInterrupt:
        print("whisper-agent-calibrate: error: interrupted", file=sys.stderr)
        return EXIT_INTERRUPTED
    print(json.dumps({"topic": "calib.profile", **noise_profile(samples)}))
    return 0


if __name__ == "__main__":
    sys.exit(main())
