"""Error types raised by whisper-agent.

Each error carries the process exit code used by the CLI when it is the
reason for stopping.
"""

from __future__ import annotations


class WhisperAgentError(Exception):
    """Base class for all whisper-agent failures."""

    exit_code = 1


class ModelNotFoundError(WhisperAgentError):
    exit_code = 3


class ModelLoadError(WhisperAgentError):
    exit_code = 4


class AudioInputError(WhisperAgentError):
    """No usable audio: missing device, bad WAV or an empty recording."""

    exit_code = 5


class TranscriptionError(WhisperAgentError):
    exit_code = 6
