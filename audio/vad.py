"""Silence detection for end-of-utterance.

Two detectors share one interface: ``update`` consumes 16 kHz float32
blocks, and ``done`` becomes true once ``silence_ms`` has passed since the
last voiced audio (or since the start, if nothing was voiced yet).
"""

from __future__ import annotations

import math

import numpy as np
import webrtcvad

from audio.resample import TARGET_RATE, float_to_pcm16


def rms_db(pcm: bytes) -> float:
    """Return RMS level in dBFS for a 16-bit PCM buffer."""

    if not pcm:
        return -math.inf
    arr = np.frombuffer(pcm, dtype=np.int16)
    if not arr.size:
        return -math.inf
    rms = np.sqrt(np.mean(np.square(arr.astype(np.float32))))
    if rms <= 0:
        return -math.inf
    return 20 * math.log10(rms / 32768.0)


class StreamingVAD:
    """WebRTC VAD over fixed-size 16-bit PCM frames (20 ms by default)."""

    def __init__(self, mode: int = 2, frame_ms: int = 20, sample_rate: int = TARGET_RATE) -> None:
        if mode not in (0, 1, 2, 3):
            raise ValueError("vad mode must be 0-3")
        self.vad = webrtcvad.Vad(mode)
        self.frame_ms = frame_ms
        self.sample_rate = sample_rate
        self.frame_bytes = sample_rate // 1000 * frame_ms * 2

    def is_voiced(self, pcm: bytes) -> bool:
        if len(pcm) != self.frame_bytes:
            raise ValueError("unexpected frame size")
        return self.vad.is_speech(pcm, self.sample_rate)


class SilenceDetector:
    """Counts samples since the last voiced audio."""

    def __init__(self, silence_ms: int, sample_rate: int = TARGET_RATE) -> None:
        if silence_ms <= 0:
            raise ValueError("silence_ms must be > 0")
        self.sample_rate = sample_rate
        self.silence_samples = sample_rate * silence_ms // 1000
        self.silent_run = 0
        self.heard_voice = False

    @property
    def done(self) -> bool:
        return self.silent_run >= self.silence_samples

    def update(self, samples: np.ndarray) -> None:
        raise NotImplementedError


class EnergyDetector(SilenceDetector):
    """Voiced when any sample's magnitude exceeds ``threshold``."""

    def __init__(self, silence_ms: int = 2000, threshold: float = 0.05,
                 sample_rate: int = TARGET_RATE) -> None:
        super().__init__(silence_ms, sample_rate)
        if not 0.0 < threshold < 1.0:
            raise ValueError("threshold must be between 0 and 1")
        self.threshold = threshold

    def update(self, samples: np.ndarray) -> None:
        samples = np.asarray(samples, dtype=np.float32)
        loud = np.flatnonzero(np.abs(samples) > self.threshold)
        if loud.size:
            self.heard_voice = True
            self.silent_run = samples.size - 1 - int(loud[-1])
        else:
            self.silent_run += samples.size


class WebRtcDetector(SilenceDetector):
    """Classifies 20 ms frames with WebRTC VAD; partial frames carry over."""

    def __init__(self, silence_ms: int = 2000, mode: int = 2,
                 sample_rate: int = TARGET_RATE) -> None:
        super().__init__(silence_ms, sample_rate)
        self.vad = StreamingVAD(mode=mode, sample_rate=sample_rate)
        self._pending = b""

    def update(self, samples: np.ndarray) -> None:
        data = self._pending + float_to_pcm16(samples)
        step = self.vad.frame_bytes
        frame_samples = step // 2
        usable = len(data) - len(data) % step
        for off in range(0, usable, step):
            if self.vad.is_voiced(data[off:off + step]):
                self.heard_voice = True
                self.silent_run = 0
            else:
                self.silent_run += frame_samples
        self._pending = data[usable:]


def make_detector(kind: str, silence_ms: int, threshold: float = 0.05,
                  vad_mode: int = 2) -> SilenceDetector:
    if kind == "energy":
        return EnergyDetector(silence_ms=silence_ms, threshold=threshold)
    if kind == "webrtc":
        return WebRtcDetector(silence_ms=silence_ms, mode=vad_mode)
    raise ValueError(f"unknown detector {kind!r}")
