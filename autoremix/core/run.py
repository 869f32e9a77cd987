"""The Run: one end-to-end execution of the pipeline.

WHY: All state derived from one source video (metadata, transcript,
context notes, plan, log, output) belongs to exactly one run and is
discarded together on reset. Grouping it in one owned value (instead of
ambient module state) lets independent orchestrators, and independent
tests, coexist.

HOW: A dataclass created by PipelineOrchestrator.start(). Only the
orchestrator writes to it; everything else reads.

RULES:
- id: UUID4 hex, generated at creation, used to tag in-flight adapter calls
- stage starts at IDLE and is moved by the orchestrator only
- completed_at is set when the run reaches COMPLETE or ERROR
- error / failed_stage are set only when stage is ERROR
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field

from autoremix.core.models import (
    ContextNotes,
    Source,
    Stage,
    StyleConfig,
    TranscriptSegment,
    VideoMetadata,
)
from autoremix.core.plan import RemixPlan
from autoremix.core.run_log import RunLog


@dataclass
class Run:
    """Mutable state of the single active pipeline run."""

    source: Source
    config: StyleConfig
    log: RunLog
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    stage: Stage = Stage.IDLE
    metadata: VideoMetadata | None = None
    transcript: list[TranscriptSegment] = field(default_factory=list)
    context: ContextNotes | None = None
    plan: RemixPlan = field(default_factory=RemixPlan)
    output_uri: str | None = None
    error: str | None = None
    failed_stage: Stage | None = None
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)
    completed_at: float | None = None

    def touch(self) -> None:
        now = time.time()
        self.updated_at = now
        if self.stage.is_terminal and self.completed_at is None:
            self.completed_at = now
