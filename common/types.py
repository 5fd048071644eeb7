"""Pydantic models shared across whisper-agent modules."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel


class AudioInfo(BaseModel):
    """Shape of the raw input before conversion to 16 kHz mono."""

    sample_rate: int
    channels: int
    frames: int
    source: str  # "microphone" or a file path


class Segment(BaseModel):
    """One decoded span of speech."""

    start: float
    end: float
    text: str


class Transcript(BaseModel):
    """Final result of one transcription run."""

    text: str
    segments: List[Segment]
    language: str
    duration: float

    @classmethod
    def from_segments(cls, segments: List[Segment], language: str, duration: float) -> "Transcript":
        text = "".join(seg.text for seg in segments).strip()
        return cls(text=text, segments=segments, language=language, duration=duration)
