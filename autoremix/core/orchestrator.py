"""Pipeline orchestrator: drives one run through the stage state machine.

WHY: The remix pipeline has exactly one place where ordering, partial
failure, cancellation, and concurrent human edits have to be decided.
Keeping that logic in a single class, with the adapters injected and the
run owned by the instance, makes every rule testable with deterministic
fakes and keeps the HTTP and CLI layers thin.

HOW: start() validates input, creates the Run, moves it to INGESTION and
schedules a driver task. The driver awaits one adapter per stage, writes
every transition and call outcome to the run log, and feeds each stage's
output forward. Each awaited call is tagged with the run it belongs to
and re-checked on completion; if reset() has discarded that run in the
meantime the result (or failure) is dropped. With hold_for_review the
driver pauses after script generation until approve_plan() is called.

State machine:
  IDLE ──start──▶ INGESTION ──▶ DECONSTRUCTION ──▶ RECREATION
       ──▶ SYNTHESIS ──▶ COMPLETE
  any active stage ──adapter failure──▶ ERROR
  any stage ──reset──▶ IDLE (run discarded)

RULES:
- At most one run, hence at most one in-flight adapter call
- start() rejects with RunActiveError unless the stage is IDLE
- No retries: any adapter failure moves the run to ERROR and logs the
  message at error severity; later adapters are not invoked
- Context analysis is the only degradable stage: failure is logged as a
  warning and the fallback notes are used
- The plan is overwritten (not merged) by script generation and is frozen
  on the transition into SYNTHESIS; edit_segment() refuses edits from
  SYNTHESIS onward and in ERROR
- No await happens between a stage change and its log entry, so readers
  always see a stage consistent with the log
- A driver task cancelled mid-run moves the run to ERROR before the
  cancellation propagates
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from autoremix.adapters.base import AdapterError, PipelineAdapters
from autoremix.config import DEFAULT_CONTEXT_DESCRIPTION, FALLBACK_CONTEXT_NOTES
from autoremix.core.models import (
    ContextNotes,
    RemixSegment,
    Source,
    Stage,
    StyleConfig,
    UrlSource,
    VideoMetadata,
    validate_source,
)
from autoremix.core.plan import (
    PlanLockedError,
    PlanValidationError,
    SegmentNotFoundError,
)
from autoremix.core.run import Run
from autoremix.core.run_log import LogEntry, RunLog

logger = logging.getLogger(__name__)


class RunActiveError(RuntimeError):
    """Raised when start() is called while a run already exists."""


class ReviewNotPendingError(RuntimeError):
    """Raised when approve_plan() is called with no plan awaiting review."""


class _RunDiscarded(Exception):
    """Unwinds a driver whose run was reset while it was suspended."""


class PipelineOrchestrator:
    """Owns the single run and moves it through the pipeline stages."""

    def __init__(
        self,
        adapters: PipelineAdapters,
        *,
        hold_for_review: bool = False,
        adapter_timeout: float | None = None,
        context_description: str = DEFAULT_CONTEXT_DESCRIPTION,
        on_log: Callable[[LogEntry], None] | None = None,
    ) -> None:
        self.adapters = adapters
        self.hold_for_review = hold_for_review
        self.adapter_timeout = adapter_timeout
        self.context_description = context_description
        self._on_log = on_log
        self._run: Run | None = None
        self._task: asyncio.Task | None = None
        self._review_gate: asyncio.Event | None = None

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def run(self) -> Run | None:
        return self._run

    @property
    def stage(self) -> Stage:
        return self._run.stage if self._run is not None else Stage.IDLE

    @property
    def log_entries(self) -> tuple[LogEntry, ...]:
        return self._run.log.entries if self._run is not None else ()

    @property
    def plan_segments(self) -> list[RemixSegment]:
        return self._run.plan.snapshot() if self._run is not None else []

    @property
    def plan_locked(self) -> bool:
        return self._run is not None and self._run.plan.frozen

    @property
    def metadata(self) -> VideoMetadata | None:
        return self._run.metadata if self._run is not None else None

    @property
    def output_uri(self) -> str | None:
        return self._run.output_uri if self._run is not None else None

    @property
    def awaiting_review(self) -> bool:
        return self._review_gate is not None and not self._review_gate.is_set()

    # ------------------------------------------------------------------
    # Boundary operations
    # ------------------------------------------------------------------

    async def start(self, source: Source, config: StyleConfig) -> Run:
        """Create a run for source and begin driving it in the background.

        WHY: Callers (HTTP handlers, the CLI) need the run id and the first
        stage immediately; the pipeline itself takes minutes.

        RULES:
        - Raises InvalidSourceError / InvalidStyleError before any state change
        - Raises RunActiveError if a run exists (reset it first); the
          existing run is not touched
        - On return the run is in INGESTION and the driver task is scheduled
        """
        validate_source(source)
        config.validate()
        if self._run is not None:
            raise RunActiveError(
                "A run is already in progress (stage {}). Reset it first.".format(
                    self._run.stage.value
                )
            )

        run = Run(source=source, config=config, log=RunLog(listener=self._on_log))
        self._run = run
        self._review_gate = None
        logger.info("Created run %s for %s", run.id, source.label)
        self._advance(run, Stage.INGESTION)
        self._task = asyncio.create_task(self._drive(run))
        return run

    async def wait(self) -> Run | None:
        """Wait for the current run's driver to settle and return the run.

        Returns None if the run was reset while waiting. A driver that was
        cancelled has already moved its run to ERROR, so its cancellation
        is not re-raised here.
        """
        task = self._task
        if task is not None:
            await asyncio.wait({task})
        return self._run

    async def run_to_completion(self, source: Source, config: StyleConfig) -> Run | None:
        """start() followed by wait()."""
        await self.start(source, config)
        return await self.wait()

    def edit_segment(self, segment_id: str, new_text: str) -> RemixSegment:
        """Rewrite the narration of one plan segment.

        RULES:
        - Legal only while the stage is before SYNTHESIS (and not ERROR)
        - Raises SegmentNotFoundError when there is no run or no such id
        - Raises PlanLockedError from SYNTHESIS onward and in ERROR
        - Raises InvalidEditError for empty text
        - On any rejection the plan is unchanged
        - Returns a detached copy of the edited segment
        """
        run = self._run
        if run is None:
            raise SegmentNotFoundError("No active run; there is no plan to edit")
        if not run.stage.allows_plan_edits:
            raise PlanLockedError(
                "The remix plan is read-only in stage {}".format(run.stage.value)
            )
        segment = run.plan.edit_text(segment_id, new_text)
        run.touch()
        run.log.info("Segment {} rewritten by editor.".format(segment_id), run.stage)
        return dataclasses.replace(segment)

    def approve_plan(self) -> None:
        """Release a run held for review so synthesis can begin."""
        if not self.awaiting_review:
            raise ReviewNotPendingError("No remix plan is waiting for review")
        self._review_gate.set()

    def reset(self) -> None:
        """Discard the current run (if any) and return to IDLE.

        RULES:
        - Legal from any stage
        - In-flight adapter calls are not cancelled; their results are
          dropped when they arrive
        - A pending review hold is released so its driver can unwind
        """
        run = self._run
        if self._review_gate is not None:
            self._review_gate.set()
        self._review_gate = None
        self._run = None
        self._task = None
        if run is not None:
            logger.info("Discarded run %s at stage %s", run.id, run.stage.value)

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    async def _drive(self, run: Run) -> None:
        try:
            await self._execute(run)
        except _RunDiscarded:
            logger.info("Run %s was reset; dropped late adapter outcome", run.id)
        except Exception as exc:
            logger.exception(
                "Pipeline failed for run %s at stage %s", run.id, run.stage.value
            )
            self._fail(run, exc)
        except asyncio.CancelledError:
            if self._run is run and not run.stage.is_terminal:
                logger.warning("Pipeline task for run %s was cancelled", run.id)
                self._fail(
                    run,
                    AdapterError("Run cancelled during {}".format(run.stage.value)),
                )
            raise

    async def _execute(self, run: Run) -> None:
        adapters = self.adapters
        source = run.source

        # Ingestion
        if isinstance(source, UrlSource):
            run.log.info("Fetching source: {}".format(source.url), Stage.INGESTION)
        else:
            run.log.info("Uploading local file: {}".format(source.filename), Stage.INGESTION)
            run.log.info("File size: {:.2f} MB".format(source.size_mb), Stage.INGESTION)
        metadata = await self._call(run, "Ingest", adapters.ingestor.ingest(source))
        run.metadata = metadata
        run.log.success(
            "Ingestion complete: {} ({:g}s)".format(metadata.title, metadata.duration_seconds),
            Stage.INGESTION,
        )
        self._advance(run, Stage.DECONSTRUCTION)

        # Deconstruction
        run.log.info("Extracting audio track and transcribing...", Stage.DECONSTRUCTION)
        transcript = await self._call(
            run, "Transcribe", adapters.transcriber.transcribe(source, metadata)
        )
        run.transcript = list(transcript)
        run.log.success(
            "Transcription complete: {} segments extracted.".format(len(run.transcript)),
            Stage.DECONSTRUCTION,
        )
        run.log.info("Analyzing visual context...", Stage.DECONSTRUCTION)
        run.context = await self._analyze_context(run, metadata.title)
        self._advance(run, Stage.RECREATION)

        # Recreation
        config = run.config
        run.log.info(
            "Context loaded: {} transcript segments + {} context notes.".format(
                len(run.transcript), len(run.context.notes)
            ),
            Stage.RECREATION,
        )
        run.log.info(
            "Style: {} / {}s / {}".format(
                config.tone, config.target_duration_seconds, config.platform.value
            ),
            Stage.RECREATION,
        )
        segments = await self._call(
            run,
            "Script generation",
            adapters.script_writer.generate(list(run.transcript), config),
        )
        segments = list(segments or [])
        if not segments:
            raise AdapterError("Script generation returned no segments")
        try:
            run.plan.replace(segments)
        except PlanValidationError as exc:
            raise AdapterError("Script generation returned an invalid plan: {}".format(exc))
        run.log.success(
            "Remix plan generated: {} edit segments.".format(len(run.plan)),
            Stage.RECREATION,
        )
        if self.hold_for_review:
            await self._await_review(run)

        # Synthesis
        run.plan.freeze()
        self._advance(run, Stage.SYNTHESIS)
        run.log.info(
            "Plan locked: {} segments ({:.1f}s of source) frozen for rendering.".format(
                len(run.plan), run.plan.total_duration
            ),
            Stage.SYNTHESIS,
        )
        run.log.info("Synthesizing narration and rendering edit decision list...", Stage.SYNTHESIS)
        output_uri = await self._call(
            run, "Render", adapters.renderer.render(run.plan.snapshot(), metadata)
        )
        if not output_uri:
            raise AdapterError("Render returned no output reference")
        run.output_uri = output_uri
        self._advance(run, Stage.COMPLETE)
        run.log.success("Render complete. Output: {}".format(output_uri), Stage.COMPLETE)

    async def _analyze_context(self, run: Run, title: str) -> ContextNotes:
        try:
            notes = await self._call(
                run,
                "Context analysis",
                self.adapters.analyzer.analyze(title, self.context_description),
            )
        except _RunDiscarded:
            raise
        except Exception as exc:
            logger.warning("Context analysis failed for run %s: %s", run.id, exc)
            run.log.warning(
                "Context analysis unavailable ({}); using fallback angles.".format(
                    _describe(exc)
                ),
                Stage.DECONSTRUCTION,
            )
            context = ContextNotes(notes=list(FALLBACK_CONTEXT_NOTES), fallback=True)
        else:
            notes = [str(note) for note in notes or []]
            if notes:
                context = ContextNotes(notes=notes)
            else:
                run.log.warning(
                    "Context analysis returned no angles; using fallback angles.",
                    Stage.DECONSTRUCTION,
                )
                context = ContextNotes(notes=list(FALLBACK_CONTEXT_NOTES), fallback=True)
        run.log.info("Visual context: {}".format(", ".join(context.notes)), Stage.DECONSTRUCTION)
        return context

    async def _await_review(self, run: Run) -> None:
        gate = asyncio.Event()
        self._review_gate = gate
        run.log.info(
            "Plan ready for review; waiting for approval before synthesis.",
            Stage.RECREATION,
        )
        await gate.wait()
        self._ensure_current(run)
        self._review_gate = None
        run.log.info("Plan approved for synthesis.", Stage.RECREATION)

    async def _call(self, run: Run, name: str, call: Awaitable[Any]) -> Any:
        """Await one adapter call on behalf of run.

        RULES:
        - Raises _RunDiscarded if run was reset before the call settled,
          whether the call succeeded or failed
        - Only expiry of adapter_timeout becomes an AdapterError naming the
          adapter; a TimeoutError raised by the adapter itself keeps its
          own message
        """
        try:
            if self.adapter_timeout is None:
                result = await call
            else:
                result = await self._bounded(name, call)
        except Exception:
            self._ensure_current(run)
            raise
        self._ensure_current(run)
        return result

    async def _bounded(self, name: str, call: Awaitable[Any]) -> Any:
        task = asyncio.ensure_future(call)
        try:
            done, _ = await asyncio.wait({task}, timeout=self.adapter_timeout)
        except asyncio.CancelledError:
            task.cancel()
            raise
        if not done:
            task.cancel()
            raise AdapterError(
                "{} timed out after {:g}s".format(name, self.adapter_timeout)
            )
        return task.result()

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    def _ensure_current(self, run: Run) -> None:
        if self._run is not run:
            raise _RunDiscarded(run.id)

    def _advance(self, run: Run, stage: Stage) -> None:
        previous = run.stage
        if previous.next() is not stage:
            raise RuntimeError(
                "Illegal transition {} -> {}".format(previous.value, stage.value)
            )
        run.stage = stage
        run.touch()
        run.log.info("Stage {} -> {}".format(previous.value, stage.value), stage)

    def _fail(self, run: Run, exc: BaseException) -> None:
        message = _describe(exc)
        failed_stage = run.stage
        run.failed_stage = failed_stage
        run.error = message
        run.stage = Stage.ERROR
        run.touch()
        run.log.error("Error: {}".format(message), failed_stage)


def _describe(exc: BaseException) -> str:
    """Human-readable message for an exception, never empty."""
    return str(exc) or type(exc).__name__
