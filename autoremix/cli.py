"""Command-line interface for AutoRemix.

WHY: Running a remix from the terminal is the quickest way to try a source
video against a style, and with --review it doubles as a minimal editing
surface: the plan is printed and segments can be rewritten before render.

HOW: argparse builds the source and StyleConfig; a PipelineOrchestrator
drives the run on asyncio.run(). Run log entries stream to stderr through
the orchestrator's on_log listener. When --review is given the run is held
after recreation and the user is prompted for edits until they approve.

RULES:
- Positional SOURCE: an http(s) URL, otherwise a local video file path
- Local files are checked against SUPPORTED_VIDEO_FORMATS before the run
- Status output goes to stderr; the plan and output URI go to stdout
- Exit code 0 on COMPLETE, 1 on ERROR or invalid input, 130 on Ctrl-C
- Python 3.9 compatible: no match/case, no X | Y unions at runtime
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import threading
from collections.abc import Callable
from pathlib import Path
from typing import List, Optional

from autoremix.adapters import BACKENDS, build_adapters
from autoremix.adapters.base import PipelineAdapters
from autoremix.config import (
    ADAPTER_TIMEOUT_SECONDS,
    DEFAULT_PLATFORM,
    DEFAULT_TARGET_DURATION,
    DEFAULT_TONE,
    PIPELINE_BACKEND,
    SUPPORTED_VIDEO_FORMATS,
    TARGET_DURATION_OPTIONS,
    TONE_OPTIONS,
)
from autoremix.core.models import (
    FileSource,
    Platform,
    RemixSegment,
    Source,
    Stage,
    StyleConfig,
    UrlSource,
)
from autoremix.core.orchestrator import PipelineOrchestrator
from autoremix.core.plan import PlanEditError
from autoremix.core.run_log import LogEntry

_REVIEW_POLL_S = 0.05


def _status(msg: str) -> None:
    """Print a status message to stderr so stdout stays pipeable."""
    print(msg, file=sys.stderr, flush=True)


def _print_entry(entry: LogEntry) -> None:
    _status(entry.format())


def resolve_source(value: str) -> Source:
    """Interpret the SOURCE argument as a URL or a local video file.

    RULES:
    - http:// and https:// prefixes → UrlSource
    - Anything else must be an existing file with a supported extension
    - Raises InvalidSourceError / ValueError with a printable message
    """
    if value.startswith(("http://", "https://")):
        return UrlSource(value)
    source = FileSource.from_path(Path(value).expanduser())
    ext = source.path.suffix.lower()
    if ext not in SUPPORTED_VIDEO_FORMATS:
        raise ValueError(
            "Unsupported file type '{}'. Supported formats: {}".format(
                ext, ", ".join(sorted(SUPPORTED_VIDEO_FORMATS))
            )
        )
    return source


def format_plan(segments: List[RemixSegment]) -> str:
    """Render the plan as one line per segment for the terminal."""
    lines = []
    for segment in segments:
        lines.append(
            "[{}] {:.1f}s-{:.1f}s  {}".format(
                segment.id, segment.original_start, segment.original_end, segment.new_text
            )
        )
    return "\n".join(lines)


async def _ask(prompt: Callable[[str], str], message: str) -> str:
    """Run a blocking prompt on a daemon thread and await its answer.

    RULES:
    - Daemon thread, not the default executor: a pending input() must not
      hold up asyncio.run() shutdown after Ctrl-C
    - Exceptions raised by prompt are re-raised in the awaiting task
    """
    loop = asyncio.get_running_loop()
    answer = loop.create_future()

    def deliver(value=None, error=None):
        if answer.done():
            return
        if error is not None:
            answer.set_exception(error)
        else:
            answer.set_result(value)

    def worker():
        try:
            value = prompt(message)
        except Exception as exc:
            result = {"error": exc}
        else:
            result = {"value": value}
        if not loop.is_closed():
            loop.call_soon_threadsafe(lambda: deliver(**result))

    threading.Thread(target=worker, name="autoremix-prompt", daemon=True).start()
    return await answer


async def _review(
    orchestrator: PipelineOrchestrator,
    prompt: Callable[[str], str],
) -> None:
    """Let the user rewrite segments while the run is held for review."""
    while not orchestrator.awaiting_review:
        if orchestrator.stage.is_terminal:
            return
        await asyncio.sleep(_REVIEW_POLL_S)

    _status("")
    _status("Remix plan:")
    _status(format_plan(orchestrator.plan_segments))
    while True:
        segment_id = (
            await _ask(prompt, "Segment id to rewrite (Enter to render): ")
        ).strip()
        if not segment_id:
            break
        new_text = await _ask(prompt, "New text for [{}]: ".format(segment_id))
        try:
            orchestrator.edit_segment(segment_id, new_text)
        except PlanEditError as exc:
            _status("  Rejected: {}".format(exc))
    orchestrator.approve_plan()


async def _run_pipeline(
    args: argparse.Namespace,
    adapters: Optional[PipelineAdapters] = None,
    prompt: Callable[[str], str] = input,
) -> int:
    """Run one remix end to end and return the process exit code."""
    try:
        source = resolve_source(args.source)
        config = StyleConfig.from_values(args.tone, args.duration, args.platform)
        if adapters is None:
            adapters = build_adapters(args.backend)
    except ValueError as e:
        # Bad input or config (missing API key, unknown backend, ...)
        _status("Error: {}".format(e))
        return 1

    orchestrator = PipelineOrchestrator(
        adapters,
        hold_for_review=args.review,
        adapter_timeout=ADAPTER_TIMEOUT_SECONDS,
        on_log=_print_entry,
    )

    try:
        await orchestrator.start(source, config)
        if args.review:
            await _review(orchestrator, prompt)
        run = await orchestrator.wait()
    except (KeyboardInterrupt, asyncio.CancelledError):
        # asyncio.run() delivers Ctrl-C as cancellation of this task
        orchestrator.reset()
        _status("\nCancelled by user.")
        return 130

    if run is None or run.stage is not Stage.COMPLETE:
        return 1

    print(format_plan(run.plan.snapshot()))
    print("Output: {}".format(run.output_uri))
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="autoremix",
        description="Remix a long-form video into a short-form edit plan and render.",
    )

    parser.add_argument(
        "source",
        help="Video URL (http/https) or path to a local video file.",
    )

    parser.add_argument(
        "--tone",
        default=DEFAULT_TONE,
        choices=TONE_OPTIONS,
        help="Narration tone (default: %(default)s).",
    )

    parser.add_argument(
        "--duration",
        type=int,
        default=DEFAULT_TARGET_DURATION,
        choices=TARGET_DURATION_OPTIONS,
        help="Target output length in seconds (default: %(default)s).",
    )

    parser.add_argument(
        "--platform",
        default=DEFAULT_PLATFORM,
        choices=[p.value for p in Platform],
        help="Target platform (default: %(default)s).",
    )

    parser.add_argument(
        "--backend",
        default=PIPELINE_BACKEND,
        choices=sorted(BACKENDS),
        help="Adapter backend (default: %(default)s).",
    )

    parser.add_argument(
        "--review",
        action="store_true",
        help="Pause after the plan is generated to rewrite segments before rendering.",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the autoremix console script and ``python -m autoremix``.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Exits with the code returned by the pipeline when it is non-zero
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        code = asyncio.run(_run_pipeline(args))
    except KeyboardInterrupt:
        _status("\nCancelled by user.")
        code = 130
    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
