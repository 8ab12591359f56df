"""Command-line interface for RSVP Pacer.

WHY: Pacing a chapter from the terminal is the quickest way to see what
a configuration does: how many frames, how long the chapter takes, and
what the timeline looks like in a player or a notebook.

HOW: Uses argparse to accept an input chapter file, pacing overrides
(tempo or WPM, blink mode, chunking, a preferences JSON file), output
format selection, and an output directory. Loads the chapter, tokenizes
it, generates frames, runs the selected exporters, and saves their
output next to the source (or to --output-dir). Status messages go to
stderr.

RULES:
- Positional argument: input .txt/.md/.html file path
- --tempo and --wpm are mutually exclusive; --wpm is converted with the
  legacy base_wpm migration
- --prefs loads a JSON object of stable preference keys; flags override it
- --formats: comma-separated exporter keys (default: all registered)
- Output naming: {stem}{suffix}, numeric suffix for conflicts
  (-timeline-2.json)
- --estimate-only prints the WPM estimate to stdout and writes nothing
- Errors print "Error: ..." to stderr and exit with status 1
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from rsvp_pacer import config
from rsvp_pacer.core.metrics import estimate_minutes_for_words, format_duration_minutes
from rsvp_pacer.core.models import BlinkMode, RsvpConfig
from rsvp_pacer.core.pace import estimate_wpm
from rsvp_pacer.core.tokenizer import Tokenizer
from rsvp_pacer.exporters import EXPORTERS
from rsvp_pacer.exporters.base import ExportOutput
from rsvp_pacer.preferences import LEGACY_BASE_WPM_KEY, PREF_KEYS, load_rsvp_config
from rsvp_pacer.sources import load_chapter
from rsvp_pacer.timeline import build_timeline


def _status(msg: str) -> None:
    """Print a status message to stderr.

    RULES:
    - All status messages go to stderr so stdout stays pipeable
    - Always flush after writing
    """
    print(msg, file=sys.stderr, flush=True)


def _fail(msg: str) -> None:
    print("Error: {}".format(msg), file=sys.stderr)
    sys.exit(1)


def _resolve_output_path(
    stem: str,
    suffix: str,
    output_dir: Path,
) -> Path:
    """Resolve the output file path, adding a numeric suffix on conflict.

    RULES:
    - First attempt: {stem}{suffix} (e.g. chapter-timeline.json)
    - Conflict: insert a counter before the extension
      (e.g. chapter-timeline-2.json), starting at 2
    """
    base_path = output_dir / "{}{}".format(stem, suffix)
    if not base_path.exists():
        return base_path

    # "-timeline.json" → ("-timeline", ".json")
    dot_idx = suffix.rfind(".")
    if dot_idx > 0:
        suffix_name = suffix[:dot_idx]
        suffix_ext = suffix[dot_idx:]
    else:
        suffix_name = suffix
        suffix_ext = ""

    counter = 2
    while True:
        candidate = output_dir / "{}{}-{}{}".format(stem, suffix_name, counter, suffix_ext)
        if not candidate.exists():
            return candidate
        counter += 1


def _save_output(
    output: ExportOutput,
    stem: str,
    output_dir: Path,
) -> Path:
    path = _resolve_output_path(stem, output.suffix, output_dir)

    if isinstance(output.content, bytes):
        path.write_bytes(output.content)
    else:
        path.write_text(output.content, encoding="utf-8")

    return path


def _load_prefs_file(path: str) -> Dict[str, Any]:
    prefs_path = Path(path)
    if not prefs_path.is_file():
        raise ValueError("Preferences file not found: {}".format(prefs_path))
    try:
        data = json.loads(prefs_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError("Preferences file is not valid JSON: {}".format(exc))
    if not isinstance(data, dict):
        raise ValueError("Preferences file must contain a JSON object")
    return data


def build_config(args: argparse.Namespace) -> RsvpConfig:
    """Merge --prefs with the individual flag overrides.

    Raises:
        ValueError: Unreadable preferences or an invalid value.
    """
    prefs: Dict[str, Any] = _load_prefs_file(args.prefs) if args.prefs else {}

    if args.tempo is not None:
        prefs[PREF_KEYS["tempo_ms_per_word"]] = args.tempo
        prefs.pop(LEGACY_BASE_WPM_KEY, None)
    elif args.wpm is not None:
        prefs.pop(PREF_KEYS["tempo_ms_per_word"], None)
        prefs[LEGACY_BASE_WPM_KEY] = args.wpm
    if args.blink_mode is not None:
        prefs[PREF_KEYS["blink_mode"]] = args.blink_mode
    if args.no_chunking:
        prefs[PREF_KEYS["enable_phrase_chunking"]] = False

    return load_rsvp_config(prefs)


def _parse_formats(value: Optional[str]) -> List[str]:
    if not value:
        return list(EXPORTERS.keys())
    format_keys = [f.strip() for f in value.split(",") if f.strip()]
    for key in format_keys:
        if key not in EXPORTERS:
            available = ", ".join(sorted(EXPORTERS.keys()))
            raise ValueError("Unknown format '{}'. Available formats: {}".format(key, available))
    return format_keys


def _run(args: argparse.Namespace) -> None:
    """Execute the load → tokenize → pace → export pipeline."""
    try:
        rsvp_config = build_config(args)
    except ValueError as exc:
        _fail(str(exc))

    if args.estimate_only:
        print(estimate_wpm(rsvp_config))
        return

    input_path = Path(args.input_file).resolve()
    output_dir = Path(args.output_dir).resolve() if args.output_dir else input_path.parent
    if not output_dir.is_dir():
        _fail("Output directory does not exist: {}".format(output_dir))

    try:
        format_keys = _parse_formats(args.formats)
        chapter = load_chapter(input_path)
    except (ValueError, FileNotFoundError) as exc:
        _fail(str(exc))

    _status("Tokenizing {}...".format(input_path.name))
    tokens = Tokenizer().tokenize(chapter)

    _status("Pacing from token {}...".format(args.start_index))
    timeline = build_timeline(tokens, rsvp_config, args.start_index, title=chapter.title)
    minutes = estimate_minutes_for_words(timeline.word_count, timeline.estimated_wpm)
    _status("  {} frames, {} words, {:.1f}s, ~{} WPM, reading time {}".format(
        len(timeline.frames),
        timeline.word_count,
        timeline.total_duration_ms / 1000.0,
        timeline.estimated_wpm,
        format_duration_minutes(minutes),
    ))

    _status("Exporting...")
    saved_files: List[Path] = []
    for key in format_keys:
        exporter = EXPORTERS[key]()
        for output in exporter.export(timeline):
            saved_path = _save_output(output, input_path.stem, output_dir)
            saved_files.append(saved_path)
            _status("  Saved: {}".format(saved_path.name))

    _status("")
    _status("Done! Saved {} file(s) to {}".format(len(saved_files), output_dir))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rsvp_pacer",
        description="Pace a text or HTML chapter for RSVP reading and export "
                    "the frame timeline (JSON, SRT cues, plain text).",
    )

    parser.add_argument(
        "input_file",
        help="Path to a .txt, .md, or .html chapter file.",
    )

    parser.add_argument(
        "--start-index",
        type=int,
        default=0,
        help="Token index to start pacing from (default: %(default)s).",
    )

    speed = parser.add_mutually_exclusive_group()
    speed.add_argument(
        "--tempo",
        type=int,
        default=None,
        help="Base tempo in milliseconds per word (default: {}).".format(
            RsvpConfig().tempo_ms_per_word
        ),
    )
    speed.add_argument(
        "--wpm",
        type=int,
        default=None,
        help="Base words per minute, converted to a tempo.",
    )

    parser.add_argument(
        "--prefs",
        default=None,
        help="JSON file of pacing preferences by stable key. Flags override it.",
    )

    parser.add_argument(
        "--blink-mode",
        choices=[mode.value for mode in BlinkMode],
        default=None,
        help="Insert micro-blank frames between words at high speed.",
    )

    parser.add_argument(
        "--no-chunking",
        action="store_true",
        help="Show one word per frame (disable phrase chunking).",
    )

    parser.add_argument(
        "--formats",
        default=None,
        help="Comma-separated list of output formats. "
             "Available: {}. Default: all.".format(", ".join(sorted(EXPORTERS.keys()))),
    )

    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory to save output files (default: same as input file).",
    )

    parser.add_argument(
        "--estimate-only",
        action="store_true",
        help="Print the estimated WPM for the configuration and exit.",
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for ``python -m rsvp_pacer`` and the rsvp-pacer script.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.LOG_LEVEL,
        format=config.LOG_FORMAT,
    )
    _run(args)


if __name__ == "__main__":
    main()
