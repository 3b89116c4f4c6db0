"""Command-line interface for the meeting assistant.

WHY: Operators need to run the backend server, and to work with the
stored transcript outside the browser: transcribe a recorded clip,
print a summary, export the transcript, and clear or expire entries.

HOW: argparse with one subcommand per task. Async work runs through
asyncio.run(). Results go to stdout (transcript lines, summaries);
status messages go to stderr so output can be piped.

RULES:
- Subcommands: serve, transcribe FILE, summarize, export, clear, cleanup
- --store overrides the transcript file for every subcommand
- transcribe goes through the backend unless --direct is given
- summarize/export fall back to the local summary when the backend is
  unreachable or fails
- Handled errors print "Error: ..." to stderr and exit with status 1
- logging.basicConfig is only called here
"""

from __future__ import annotations

import argparse
import asyncio
import inspect
import logging
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional, Sequence

import httpx

from meet_assistant import __version__
from meet_assistant.api.backend import BackendClient, BackendError
from meet_assistant.api.speech import GoogleSpeechClient, SpeechAPIError
from meet_assistant.config import (
    BACKEND_URL,
    LOG_LEVEL,
    RETENTION_DAYS,
    SERVER_HOST,
    SERVER_PORT,
    SUPPORTED_AUDIO_FORMATS,
)
from meet_assistant.core.assembler import assemble
from meet_assistant.core.ir import MeetingTranscript, TranscriptEntry
from meet_assistant.core.roster import SpeakerRoster
from meet_assistant.core.summary import EMPTY_TRANSCRIPT_MESSAGE, generate_local_summary
from meet_assistant.formatters import FORMATTERS
from meet_assistant.recorder import make_entry
from meet_assistant.storage import StorageError, TranscriptStore

logger = logging.getLogger(__name__)

_HANDLED_ERRORS = (BackendError, SpeechAPIError, StorageError, ValueError, httpx.HTTPError)


class CLIError(Exception):
    """Raised for invalid command-line input."""


def _status(msg: str) -> None:
    """Print a status message to stderr."""
    print(msg, file=sys.stderr, flush=True)


def _speaker_names(args: argparse.Namespace, entries: Sequence[TranscriptEntry]) -> List[str]:
    """Names from --speaker, else the speakers found in the entries."""
    if args.speaker:
        return list(args.speaker)
    return list(dict.fromkeys(e.speaker for e in entries))


async def _summarize(
    args: argparse.Namespace,
    entries: Sequence[TranscriptEntry],
    names: List[str],
) -> str:
    now = datetime.now().astimezone()
    if args.local:
        return generate_local_summary(entries, names, now)

    async with BackendClient(args.backend_url) as backend:
        if not await backend.check_health():
            _status("Backend unreachable at {}, using local summary".format(args.backend_url))
            return generate_local_summary(entries, names, now)
        try:
            return await backend.generate_summary(entries, names)
        except BackendError as exc:
            _status("Summary request failed ({}), using local summary".format(exc))
            return generate_local_summary(entries, names, now)


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


def _cmd_serve(args: argparse.Namespace) -> None:
    from meet_assistant.server.app import run_api

    _status("Starting server on http://{}:{}".format(args.host, args.port))
    run_api(host=args.host, port=args.port)


async def _cmd_transcribe(args: argparse.Namespace) -> None:
    path = Path(args.audio_file).resolve()
    if not path.is_file():
        raise CLIError("File not found: {}".format(path))
    ext = path.suffix.lower()
    if ext not in SUPPORTED_AUDIO_FORMATS:
        raise CLIError("Unsupported file type '{}'. Supported formats: {}".format(
            ext, ", ".join(sorted(SUPPORTED_AUDIO_FORMATS))
        ))

    audio = path.read_bytes()
    roster = SpeakerRoster(args.speaker)
    speaker_count = args.speakers or max(1, len(roster))

    if args.direct:
        _status("Sending {} to Google Speech ({} speakers)...".format(path.name, speaker_count))
        async with GoogleSpeechClient() as speech:
            response = await speech.recognize(audio, speaker_count=speaker_count)
        segments = assemble(response.words)
        confidence = response.confidence
    else:
        _status("Sending {} to {} ({} speakers)...".format(path.name, args.backend_url, speaker_count))
        async with BackendClient(args.backend_url) as backend:
            result = await backend.transcribe(audio, speaker_count)
        segments = result.segments
        confidence = result.confidence

    now = datetime.now(timezone.utc)
    entries: List[TranscriptEntry] = []
    _status("  {} segments".format(len(segments)))
    for segment in segments:
        if not segment.text.strip():
            continue
        entry = make_entry(segment.text, roster.resolve(segment.speaker_tag), now, confidence)
        entries.append(entry)
        print("[{:.1f}s] {}: {}".format(segment.start_s, entry.speaker, entry.text))

    if not args.no_save and entries:
        store = TranscriptStore(args.store)
        total = await store.append(entries)
        _status("Saved to {} ({} entries total)".format(store.path, len(total)))


async def _cmd_summarize(args: argparse.Namespace) -> None:
    entries = await TranscriptStore(args.store).load()
    if not entries:
        print(EMPTY_TRANSCRIPT_MESSAGE)
        return
    summary = await _summarize(args, entries, _speaker_names(args, entries))
    print(summary)


async def _cmd_export(args: argparse.Namespace) -> None:
    entries = await TranscriptStore(args.store).load()
    if not entries:
        raise CLIError("No transcripts to export")

    output_dir = Path(args.output_dir).resolve()
    if not output_dir.is_dir():
        raise CLIError("Output directory does not exist: {}".format(output_dir))

    names = _speaker_names(args, entries)
    summary: Optional[str] = None
    if args.kind == "summary" or args.with_summary:
        summary = await _summarize(args, entries, names)

    meeting = MeetingTranscript(
        entries=entries,
        speaker_names=names,
        generated_at=datetime.now().astimezone(),
        summary=summary,
    )
    formatter = FORMATTERS[args.kind]()
    for output in formatter.format(meeting):
        out_path = output_dir / output.filename
        out_path.write_text(output.content, encoding="utf-8")
        _status("Saved: {}".format(out_path))


async def _cmd_clear(args: argparse.Namespace) -> None:
    store = TranscriptStore(args.store)
    await store.clear()
    _status("Cleared {}".format(store.path))


async def _cmd_cleanup(args: argparse.Namespace) -> None:
    store = TranscriptStore(args.store)
    removed = await store.remove_older_than(timedelta(days=args.days))
    _status("Removed {} entries older than {} days".format(removed, args.days))


# ---------------------------------------------------------------------------
# Parser and entry point
# ---------------------------------------------------------------------------


def _add_summary_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--speaker",
        action="append",
        metavar="NAME",
        help="Participant name (repeatable). Defaults to the speakers in the store.",
    )
    parser.add_argument(
        "--local",
        action="store_true",
        help="Use the local heuristic summary instead of the backend.",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="meet-assistant",
        description="Google Meet meeting assistant: server, transcription and transcript tools.",
    )
    parser.add_argument("--version", action="version", version="%(prog)s " + __version__)
    parser.add_argument(
        "--store",
        default=None,
        help="Transcript JSON file (default: MEET_ASSISTANT_STORE or transcripts.json).",
    )
    parser.add_argument(
        "--backend-url",
        default=BACKEND_URL,
        help="Backend server URL (default: %(default)s).",
    )
    parser.add_argument(
        "--log-level",
        default=LOG_LEVEL,
        help="Logging level (default: %(default)s).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API server.")
    serve.add_argument("--host", default=SERVER_HOST)
    serve.add_argument("--port", type=int, default=SERVER_PORT)
    serve.set_defaults(func=_cmd_serve)

    transcribe = sub.add_parser("transcribe", help="Transcribe a recorded audio clip.")
    transcribe.add_argument("audio_file", help="WebM/Opus clip to transcribe.")
    transcribe.add_argument(
        "--speaker",
        action="append",
        metavar="NAME",
        help="Participant name in diarization order (repeatable).",
    )
    transcribe.add_argument(
        "--speakers",
        type=int,
        default=None,
        help="Expected speaker count (default: number of --speaker names, at least 1).",
    )
    transcribe.add_argument(
        "--direct",
        action="store_true",
        help="Call Google Speech directly (needs GOOGLE_SPEECH_API_KEY) instead of the backend.",
    )
    transcribe.add_argument(
        "--no-save",
        action="store_true",
        help="Print the segments without appending them to the store.",
    )
    transcribe.set_defaults(func=_cmd_transcribe)

    summarize = sub.add_parser("summarize", help="Print a summary of the stored transcript.")
    _add_summary_options(summarize)
    summarize.set_defaults(func=_cmd_summarize)

    export = sub.add_parser("export", help="Write the stored transcript to a text file.")
    export.add_argument(
        "--kind",
        choices=sorted(FORMATTERS.keys()),
        default="transcript",
        help="Export layout (default: %(default)s).",
    )
    export.add_argument(
        "--output-dir",
        default=".",
        help="Directory for the exported file (default: current directory).",
    )
    export.add_argument(
        "--with-summary",
        action="store_true",
        help="Include a generated summary in the transcript export.",
    )
    _add_summary_options(export)
    export.set_defaults(func=_cmd_export)

    clear = sub.add_parser("clear", help="Delete every stored transcript entry.")
    clear.set_defaults(func=_cmd_clear)

    cleanup = sub.add_parser("cleanup", help="Delete entries older than the retention period.")
    cleanup.add_argument(
        "--days",
        type=int,
        default=RETENTION_DAYS,
        help="Retention period in days (default: %(default)s).",
    )
    cleanup.set_defaults(func=_cmd_cleanup)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Entry point for the meet-assistant console script."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    try:
        if inspect.iscoroutinefunction(args.func):
            asyncio.run(args.func(args))
        else:
            args.func(args)
    except CLIError as exc:
        print("Error: {}".format(exc), file=sys.stderr)
        sys.exit(1)
    except _HANDLED_ERRORS as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print("Error: {}".format(exc), file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
