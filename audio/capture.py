"""Microphone capture of a single utterance.

The device callback runs on the PortAudio thread: it down-mixes and
resamples each block to 16 kHz mono and hands it over through a
:class:`BoundedQueue`. The recorder drains the queue on the calling thread
until the silence detector reports the end of the utterance.
"""

from __future__ import annotations

import queue
import time
from typing import List, Optional, Tuple

import numpy as np

from audio.resample import TARGET_RATE, resample, to_mono
from audio.vad import SilenceDetector
from common.bounded_queue import BoundedQueue
from common.errors import AudioInputError
from common.events import emit
from common.types import AudioInfo

QUEUE_BLOCKS = 512
MAX_CHANNELS = 2


def _sounddevice():
    # PortAudio is loaded at import time, so a missing system library only
    # matters when we actually record.
    try:
        import sounddevice as sd
    except OSError as exc:
        raise AudioInputError(f"audio backend unavailable: {exc}") from exc
    return sd


def _device_arg(device: Optional[str]):
    if device is None:
        return None
    return int(device) if device.isdigit() else device


def record_utterance(detector: SilenceDetector, max_seconds: float = 30.0,
                     device: Optional[str] = None,
                     stall_seconds: float = 5.0) -> Tuple[np.ndarray, AudioInfo]:
    """Record from the input device until ``detector`` reports silence.

    Returns 16 kHz mono float32 samples and a description of the raw input.
    Raises :class:`AudioInputError` when no device is available, the stream
    stops delivering audio, or no speech was heard.
    """

    sd = _sounddevice()
    dev = _device_arg(device)
    try:
        info = sd.query_devices(dev, "input")
    except (ValueError, sd.PortAudioError) as exc:
        raise AudioInputError(f"no input device: {exc}") from exc

    rate = int(info["default_samplerate"])
    channels = max(1, min(MAX_CHANNELS, int(info["max_input_channels"])))
    emit("audio.device", name=info.get("name"), rate=rate, channels=channels)

    q_blocks = BoundedQueue(QUEUE_BLOCKS)
    raw_frames = 0
    overflows = 0

    def callback(indata, frames, time_info, status):
        nonlocal raw_frames, overflows
        if status:
            overflows += 1
        raw_frames += frames
        q_blocks.put(resample(to_mono(indata), rate, TARGET_RATE))

    blocks: List[np.ndarray] = []
    collected = 0
    max_samples = int(max_seconds * TARGET_RATE)
    try:
        stream = sd.InputStream(
            samplerate=rate,
            channels=channels,
            dtype="float32",
            device=dev,
            callback=callback,
        )
    except (ValueError, sd.PortAudioError) as exc:
        raise AudioInputError(f"cannot open input stream: {exc}") from exc

    try:
        with stream:
            emit("audio.start")
            last_block = time.monotonic()
            while not detector.done and collected < max_samples:
                try:
                    block = q_blocks.get(timeout=0.1)
                except queue.Empty:
                    if time.monotonic() - last_block > stall_seconds:
                        raise AudioInputError("input device stopped delivering audio") from None
                    continue
                last_block = time.monotonic()
                detector.update(block)
                blocks.append(block)
                collected += block.size
    except sd.PortAudioError as exc:
        raise AudioInputError(f"input stream failed: {exc}") from exc

    audio = np.concatenate(blocks)[:max_samples] if blocks else np.zeros(0, dtype=np.float32)
    emit("audio.stop", seconds=round(audio.size / TARGET_RATE, 3),
         voiced=detector.heard_voice, drops=q_blocks.drop_ct, overflows=overflows)

    if not audio.size:
        raise AudioInputError("no audio captured")
    if not detector.heard_voice:
        raise AudioInputError("no speech detected")
    return audio, AudioInfo(sample_rate=rate, channels=channels, frames=raw_frames,
                            source="microphone")


def record_seconds(seconds: float, device: Optional[str] = None) -> Tuple[np.ndarray, int]:
    """Blocking fixed-length recording at the device rate, mono float32."""

    sd = _sounddevice()
    dev = _device_arg(device)
    try:
        info = sd.query_devices(dev, "input")
        rate = int(info["default_samplerate"])
        pcm = sd.rec(int(rate * seconds), samplerate=rate, channels=1, dtype="float32",
                     device=dev)
        sd.wait()
    except (ValueError, sd.PortAudioError) as exc:
        raise AudioInputError(f"recording failed: {exc}") from exc
    return to_mono(pcm), rate
