"""Down-mixing and sample-rate conversion to the engine format."""

from __future__ import annotations

import numpy as np

TARGET_RATE = 16000


def to_mono(frames: np.ndarray) -> np.ndarray:
    """Average a ``(frames, channels)`` block into a 1-D float32 array."""

    arr = np.asarray(frames, dtype=np.float32)
    if arr.ndim == 1:
        return arr
    if arr.ndim != 2:
        raise ValueError(f"expected 1-D or 2-D audio, got shape {arr.shape}")
    if arr.shape[1] == 1:
        return arr[:, 0].copy()
    return arr.mean(axis=1, dtype=np.float32)


def resample(samples: np.ndarray, src_rate: int, dst_rate: int = TARGET_RATE) -> np.ndarray:
    """Linearly interpolate ``samples`` from ``src_rate`` to ``dst_rate``."""

    if src_rate <= 0 or dst_rate <= 0:
        raise ValueError("sample rates must be > 0")
    samples = np.asarray(samples, dtype=np.float32)
    if src_rate == dst_rate or samples.size == 0:
        return samples
    n_out = int(round(samples.size * dst_rate / src_rate))
    if n_out == 0:
        return np.zeros(0, dtype=np.float32)
    src_t = np.arange(samples.size, dtype=np.float64) / src_rate
    dst_t = np.arange(n_out, dtype=np.float64) / dst_rate
    return np.interp(dst_t, src_t, samples).astype(np.float32)


def float_to_pcm16(samples: np.ndarray) -> bytes:
    """Clip float samples to [-1, 1] and pack them as little-endian int16."""

    clipped = np.clip(np.asarray(samples, dtype=np.float32), -1.0, 1.0)
    return (clipped * 32767.0).astype("<i2").tobytes()
