"""Pydantic request/response models for the run controller HTTP API.

WHY: The FastAPI endpoints need typed schemas for request validation,
response serialization, and OpenAPI documentation. The internal Run,
RemixSegment, and LogEntry dataclasses stay free of HTTP concerns; these
models are the public shape.

HOW: One model per response body, built from the core dataclasses by
small factory classmethods. All fields carry Field descriptions for the
/docs UI.

RULES:
- All models use Field(description=...) for OpenAPI documentation
- Stage and level values are the core enum values exactly
- Response models never expose adapters or in-flight task state
- Python 3.9+ compatible (no PEP 604 unions, use Optional from typing)
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from autoremix.core.models import RemixSegment
from autoremix.core.run import Run
from autoremix.core.run_log import LogEntry


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class SegmentEditRequest(BaseModel):
    """Body of PATCH /run/plan/segments/{id}.

    RULES:
    - new_text replaces the segment's narration verbatim
    - Blank text is rejected with 422 by the plan, not by this model
    """

    new_text: str = Field(description="Rewritten narration for the segment.")


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class RunResponse(BaseModel):
    """Summary of the current run (or of the idle controller).

    RULES:
    - id is None and stage is "IDLE" when there is no run
    - error and failed_stage are only set when stage is "ERROR"
    - output_uri is only set when stage is "COMPLETE"
    """

    id: Optional[str] = Field(default=None, description="Run identifier (UUID hex).")
    stage: str = Field(description="Current pipeline stage.")
    source: Optional[str] = Field(default=None, description="Source URL or uploaded filename.")
    config: Optional[Dict[str, Any]] = Field(
        default=None, description="Style configuration the run was started with."
    )
    metadata: Optional[Dict[str, Any]] = Field(
        default=None, description="Ingested video metadata, once ingestion completed."
    )
    output_uri: Optional[str] = Field(default=None, description="Rendered output reference.")
    error: Optional[str] = Field(default=None, description="Failure message.")
    failed_stage: Optional[str] = Field(
        default=None, description="Stage that was active when the run failed."
    )
    plan_locked: bool = Field(default=False, description="True once the plan is frozen.")
    awaiting_review: bool = Field(
        default=False, description="True while the plan is held for approval."
    )
    created_at: Optional[float] = Field(default=None, description="Unix epoch seconds.")
    updated_at: Optional[float] = Field(default=None, description="Unix epoch seconds.")
    completed_at: Optional[float] = Field(default=None, description="Unix epoch seconds.")

    model_config = {"json_schema_extra": {
        "examples": [
            {
                "id": "550e8400e29b41d4a716446655440000",
                "stage": "RECREATION",
                "source": "https://www.youtube.com/watch?v=example",
                "config": {
                    "tone": "humorous, fast-paced",
                    "target_duration_seconds": 30,
                    "platform": "tiktok",
                },
                "metadata": {
                    "title": "Deep Dive: How Next-Gen AI Agents Work, Tested",
                    "duration_seconds": 184,
                    "source_label": "https://www.youtube.com/watch?v=example",
                    "media_id": None,
                },
                "output_uri": None,
                "error": None,
                "failed_stage": None,
                "plan_locked": False,
                "awaiting_review": False,
                "created_at": 1739959200.0,
                "updated_at": 1739959207.5,
                "completed_at": None,
            }
        ]
    }}

    @classmethod
    def from_run(cls, run: Optional[Run], awaiting_review: bool = False) -> RunResponse:
        if run is None:
            return cls(stage="IDLE")
        return cls(
            id=run.id,
            stage=run.stage.value,
            source=run.source.label,
            config=run.config.to_dict(),
            metadata=run.metadata.to_dict() if run.metadata else None,
            output_uri=run.output_uri,
            error=run.error,
            failed_stage=run.failed_stage.value if run.failed_stage else None,
            plan_locked=run.plan.frozen,
            awaiting_review=awaiting_review,
            created_at=run.created_at,
            updated_at=run.updated_at,
            completed_at=run.completed_at,
        )


class LogEntryModel(BaseModel):
    """One run log entry."""

    timestamp: float = Field(description="Unix epoch seconds.")
    clock: str = Field(description="Local wall-clock time (HH:MM:SS).")
    level: str = Field(description="info, success, warning, or error.")
    stage: str = Field(description="Stage the entry is tagged with.")
    message: str = Field(description="Human-readable message.")

    @classmethod
    def from_entry(cls, entry: LogEntry) -> LogEntryModel:
        return cls(
            timestamp=entry.timestamp,
            clock=entry.clock(),
            level=entry.level.value,
            stage=entry.stage.value,
            message=entry.message,
        )


class LogListResponse(BaseModel):
    run_id: Optional[str] = Field(default=None, description="Run the entries belong to.")
    entries: List[LogEntryModel] = Field(description="Entries in insertion order.")


class SegmentModel(BaseModel):
    """One remix segment of the plan."""

    id: str = Field(description="Segment identifier, unique within the plan.")
    original_start: float = Field(description="Source window start (seconds).")
    original_end: float = Field(description="Source window end (seconds).")
    original_text: str = Field(description="Transcript text of the source window.")
    new_text: str = Field(description="Narration to voice; the only editable field.")
    visual_description: str = Field(description="What should be on screen.")
    reasoning: str = Field(default="", description="Why this window was picked.")

    @classmethod
    def from_segment(cls, segment: RemixSegment) -> SegmentModel:
        return cls(
            id=segment.id,
            original_start=segment.original_start,
            original_end=segment.original_end,
            original_text=segment.original_text,
            new_text=segment.new_text,
            visual_description=segment.visual_description,
            reasoning=segment.reasoning,
        )


class PlanResponse(BaseModel):
    """The remix plan and whether it can still be edited."""

    run_id: Optional[str] = Field(default=None, description="Run the plan belongs to.")
    stage: str = Field(description="Current pipeline stage.")
    locked: bool = Field(description="True once the plan is frozen for synthesis.")
    editable: bool = Field(description="True while edit requests are accepted.")
    total_duration: float = Field(description="Summed source duration of all segments.")
    segments: List[SegmentModel] = Field(description="Segments in render order.")


class PlatformOption(BaseModel):
    value: str = Field(description="Identifier used in requests.")
    name: str = Field(description="Human-readable platform name.")


class OptionsResponse(BaseModel):
    """Recognised style options for POST /run."""

    tones: List[str] = Field(description="Accepted tone values.")
    target_durations: List[int] = Field(description="Accepted target durations (seconds).")
    platforms: List[PlatformOption] = Field(description="Accepted platforms.")


class ErrorResponse(BaseModel):
    """Standard error response body.

    RULES:
    - detail is always a human-readable error message
    """

    detail: str = Field(description="Human-readable error description.")


class HealthResponse(BaseModel):
    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="API version string.", json_schema_extra={"example": "0.1.0"})
    backend: str = Field(description="Adapter backend in use.", json_schema_extra={"example": "simulated"})
