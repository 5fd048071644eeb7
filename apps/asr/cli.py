"""Command-line entry point: transcribe one utterance or a WAV file."""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional, TextIO

from audio.capture import record_utterance
from audio.vad import SilenceDetector, make_detector
from common.config import Settings, load_settings
from common.errors import WhisperAgentError
from common.events import emit, set_quiet
from common.types import Transcript

from .service import get_model, load_wav, resolve_model_path, transcribe_audio

PROG = "whisper-agent"
EXIT_INTERRUPTED = 130


def transcribe(model_path: str, audio_path: Optional[str] = None,
               settings: Optional[Settings] = None,
               detector: Optional[SilenceDetector] = None, join: bool = False,
               out: Optional[TextIO] = None) -> Transcript:
    """Load the model at ``model_path``, transcribe and print the text.

    Audio comes from ``audio_path`` when given, otherwise one utterance is
    recorded from the input device, ended by ``detector`` (the energy
    detector built from ``settings`` when omitted).
    """
    settings = settings or load_settings()
    out = out or sys.stdout
    if audio_path is None and detector is None:
        detector = make_detector("energy", settings.silence_ms, settings.threshold)

    model_dir = resolve_model_path(model_path)
    model = get_model(str(model_dir), settings.threads, settings.compute_type)

    if audio_path is not None:
        audio, _ = load_wav(audio_path)
    else:
        audio, _ = record_utterance(detector, settings.max_seconds, settings.input_device)

    transcript = transcribe_audio(model, audio)
    if join:
        print(transcript.text, file=out)
    else:
        for seg in transcript.segments:
            print(seg.text, file=out)
    return transcript


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Transcribe speech from the microphone (or a WAV file) with a Whisper model",
    )
    parser.add_argument("model", help="path to a faster-whisper model directory or a file inside it")
    parser.add_argument("--audio", metavar="FILE", help="transcribe a PCM WAV file instead of recording")
    parser.add_argument("--join", action="store_true", help="print the whole transcript on one line")
    parser.add_argument("--detector", choices=["energy", "webrtc"], default="energy",
                        help="end-of-utterance detector (default: energy)")
    parser.add_argument("--threshold", type=float, help="energy detector amplitude threshold")
    parser.add_argument("--vad-mode", type=int, choices=[0, 1, 2, 3], default=2,
                        help="WebRTC VAD aggressiveness")
    parser.add_argument("--silence-ms", type=int, help="silence that ends an utterance")
    parser.add_argument("--max-seconds", type=float, help="upper bound on recording length")
    parser.add_argument("--input-device", help="input device index or name")
    parser.add_argument("--threads", type=int, help="CPU threads for the engine")
    parser.add_argument("--compute-type", help="CTranslate2 compute type (default: int8)")
    parser.add_argument("-q", "--quiet", action="store_true", help="suppress diagnostics on stderr")
    return parser


def _merge(settings: Settings, args: argparse.Namespace) -> Settings:
    overrides = {
        "threshold": args.threshold,
        "silence_ms": args.silence_ms,
        "max_seconds": args.max_seconds,
        "input_device": args.input_device,
        "threads": args.threads,
        "compute_type": args.compute_type,
    }
    update = {k: v for k, v in overrides.items() if v is not None}
    if args.quiet:
        update["quiet"] = True
    return settings.model_copy(update=update)


def _fail(message: str, code: int) -> int:
    emit("error", message=message, code=code)
    print(f"{PROG}: error: {message}", file=sys.stderr)
    return code


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = _merge(load_settings(), args)
        detector = None
        if args.audio is None:
            detector = make_detector(args.detector, settings.silence_ms,
                                     settings.threshold, args.vad_mode)
    except ValueError as exc:
        parser.error(str(exc))
    set_quiet(settings.quiet)

    try:
        transcribe(args.model, args.audio, settings, detector=detector, join=args.join)
    except WhisperAgentError as exc:
        return _fail(str(exc), exc.exit_code)
    except KeyboardInterrupt:
        return _fail("interrupted", EXIT_INTERRUPTED)
    return 0


if __name__ == "__main__":
    sys.exit(main())
