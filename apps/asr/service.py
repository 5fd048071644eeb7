import io
import wave
from functools import lru_cache
from pathlib import Path
from typing import Tuple

import numpy as np
from faster_whisper import WhisperModel

from audio.resample import TARGET_RATE, resample, to_mono
from common.errors import AudioInputError, ModelLoadError, ModelNotFoundError, TranscriptionError
from common.events import emit
from common.types import AudioInfo, Segment, Transcript

LANGUAGE = "en"
TASK = "translate"


def resolve_model_path(model_path: str) -> Path:
    """Return the model directory for ``model_path``.

    A file inside a converted model (e.g. ``model.bin``) resolves to its
    directory.
    """
    path = Path(model_path).expanduser()
    if not path.exists():
        raise ModelNotFoundError(f"model not found: {model_path}")
    return path.parent if path.is_file() else path


@lru_cache()
def get_model(model_dir: str, threads: int = 1, compute_type: str = "int8") -> WhisperModel:
    """Load and cache the ASR model."""
    emit("asr.load", model=model_dir, threads=threads, compute_type=compute_type)
    try:
        return WhisperModel(
            model_dir,
            device="cpu",
            compute_type=compute_type,
            cpu_threads=threads,
            local_files_only=True,
        )
    except Exception as exc:
        raise ModelLoadError(f"failed to load model from {model_dir}: {exc}") from exc


def _pcm_to_float(raw: bytes, sampwidth: int) -> np.ndarray:
    if sampwidth == 1:
        return (np.frombuffer(raw, dtype=np.uint8).astype(np.float32) - 128.0) / 128.0
    if sampwidth == 2:
        return np.frombuffer(raw, dtype="<i2").astype(np.float32) / 32768.0
    if sampwidth == 3:
        b = np.frombuffer(raw, dtype=np.uint8).reshape(-1, 3).astype(np.int32)
        ints = b[:, 0] | (b[:, 1] << 8) | (b[:, 2] << 16)
        ints = np.where(ints & 0x800000, ints - 0x1000000, ints)
        return ints.astype(np.float32) / 8388608.0
    if sampwidth == 4:
        return np.frombuffer(raw, dtype="<i4").astype(np.float32) / 2147483648.0
    raise AudioInputError(f"unsupported sample width: {sampwidth} bytes")


def decode_audio(audio_bytes: bytes) -> Tuple[np.ndarray, AudioInfo]:
    """Decode PCM WAV bytes into 16kHz mono float32 samples."""
    try:
        with wave.open(io.BytesIO(audio_bytes)) as wf:
            channels = wf.getnchannels()
            sampwidth = wf.getsampwidth()
            rate = wf.getframerate()
            frames = wf.getnframes()
            raw = wf.readframes(frames)
    except (wave.Error, EOFError) as exc:
        raise AudioInputError(f"invalid WAV data: {exc}") from exc

    # a data chunk cut mid-frame keeps only its whole frames
    frame_bytes = sampwidth * channels
    raw = raw[:len(raw) - len(raw) % frame_bytes]
    samples = _pcm_to_float(raw, sampwidth).reshape(-1, channels)
    audio = resample(to_mono(samples), rate, TARGET_RATE)
    info = AudioInfo(sample_rate=rate, channels=channels, frames=samples.shape[0], source="<bytes>")
    return audio, info


def load_wav(path: str) -> Tuple[np.ndarray, AudioInfo]:
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        raise AudioInputError(f"cannot read {path}: {exc}") from exc
    audio, info = decode_audio(data)
    if not audio.size:
        raise AudioInputError(f"{path} contains no audio")
    return audio, info.model_copy(update={"source": str(path)})


def transcribe_audio(model: WhisperModel, audio: np.ndarray) -> Transcript:
    """Run the engine once over ``audio`` with the fixed decode settings."""
    duration = audio.size / TARGET_RATE
    emit("asr.run", seconds=round(duration, 3))
    try:
        segments, _ = model.transcribe(
            audio,
            language=LANGUAGE,
            task=TASK,
            beam_size=1,
            best_of=1,
            without_timestamps=True,
        )
        # segments is a lazy generator; decoding happens while iterating
        result = [Segment(start=seg.start, end=seg.end, text=seg.text) for seg in segments]
    except Exception as exc:
        raise TranscriptionError(f"failed to run model: {exc}") from exc
    transcript = Transcript.from_segments(result, language=LANGUAGE, duration=duration)
    emit("asr.final", text=transcript.text, segments=len(result))
    return transcript
