import queue
import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

import common.events as events
import tools.calibrate as calibrate
from common.bounded_queue import BoundedQueue
from common.config import load_settings
from common.types import Segment, Transcript
from tools.calibrate import noise_profile


def test_bounded_queue_drops_oldest():
    q = BoundedQueue(2)
    for i in range(4):
        q.put(i)
    assert q.drop_ct == 2
    assert q.get(timeout=0.1) == 2
    assert q.get(block=False) == 3
    with pytest.raises(queue.Empty):
        q.get(block=False)


def test_bounded_queue_rejects_zero():
    with pytest.raises(ValueError):
        BoundedQueue(0)


def test_settings_defaults(monkeypatch):
    for name in ("THREADS", "COMPUTE_TYPE", "SILENCE_MS", "THRESHOLD",
                 "MAX_SECONDS", "INPUT_DEVICE", "QUIET"):
        monkeypatch.delenv(f"WHISPER_AGENT_{name}", raising=False)
    s = load_settings()
    assert s.threads == 1
    assert s.compute_type == "int8"
    assert s.silence_ms == 2000
    assert s.threshold == 0.05
    assert s.input_device is None
    assert not s.quiet


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("WHISPER_AGENT_THREADS", "4")
    monkeypatch.setenv("WHISPER_AGENT_THRESHOLD", "0.1")
    monkeypatch.setenv("WHISPER_AGENT_INPUT_DEVICE", "2")
    monkeypatch.setenv("WHISPER_AGENT_QUIET", "1")
    s = load_settings()
    assert s.threads == 4
    assert s.threshold == 0.1
    assert s.input_device == "2"
    assert s.quiet


def test_settings_bad_number(monkeypatch):
    monkeypatch.setenv("WHISPER_AGENT_SILENCE_MS", "2s")
    with pytest.raises(ValueError, match="WHISPER_AGENT_SILENCE_MS"):
        load_settings()


def test_transcript_joins_segments():
    segs = [Segment(start=0, end=1, text=" Hello"), Segment(start=1, end=2, text=" there. ")]
    t = Transcript.from_segments(segs, language="en", duration=2.0)
    assert t.text == "Hello there."
    assert t.segments == segs


def test_emit_writes_json_to_stderr(monkeypatch, capsys):
    monkeypatch.setattr(events, "_quiet", False)
    events.emit("asr.run", seconds=1.5)
    out, err = capsys.readouterr()
    assert out == ""
    assert err.startswith('{"topic":"asr.run","seconds":1.5,"ts":')
    events.set_quiet(True)
    events.emit("asr.run")
    assert capsys.readouterr().err == ""


def test_noise_profile():
    samples = np.array([0.0, 0.02, -0.04], dtype=np.float32)
    profile = noise_profile(samples)
    assert profile["noise_peak"] == pytest.approx(0.04)
    assert profile["threshold"] == pytest.approx(0.06)
    assert profile["noise_rms_db"] < 0


def test_noise_profile_clamps():
    assert noise_profile(np.zeros(10, dtype=np.float32))["threshold"] == 0.01
    assert noise_profile(np.zeros(10, dtype=np.float32))["noise_rms_db"] is None
    assert noise_profile(np.full(10, 0.9, dtype=np.float32))["threshold"] == 0.5


def test_calibrate_interrupted(monkeypatch, capsys):
    def interrupted(seconds, device):
        raise KeyboardInterrupt

    monkeypatch.setattr(calibrate, "record_seconds", interrupted)
    assert calibrate.main(["--seconds", "1"]) == 130
    assert "interrupted" in capsys.readouterr().err
