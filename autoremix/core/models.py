"""Pipeline value types: stages, sources, style options, and segments.

WHY: The pipeline used to live in ad hoc UI state. Every stage boundary
now exchanges explicit, typed values so the orchestrator, the adapters,
the HTTP layer, and the tests all agree on one vocabulary.

HOW: Enums for the closed sets (Stage, Platform), frozen dataclasses for
immutable facts (sources, style, transcript windows, metadata), and a
plain dataclass for RemixSegment whose new_text is the single field a
human may rewrite. Wire dicts use the camelCase names produced by the
script-generation model.

RULES:
- Stage order is IDLE → INGESTION → DECONSTRUCTION → RECREATION →
  SYNTHESIS → COMPLETE; ERROR is terminal and reachable from any active stage
- Sources and style options are validated before a run is created
- TranscriptSegment ordering is an adapter contract, not checked here
- RemixSegment invariants are enforced by RemixPlan, not at construction,
  so a malformed generated plan can be rejected as a stage failure
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

from autoremix.config import TARGET_DURATION_OPTIONS, TONE_OPTIONS


class InvalidSourceError(ValueError):
    """Raised when a start request has no usable source (empty URL, empty file)."""


class InvalidStyleError(ValueError):
    """Raised when a style option is outside the recognised catalogue."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Stage(str, enum.Enum):
    """Pipeline stage of a run.

    WHY: The stage is the single source of truth for what the pipeline is
    doing and which mutations are legal (the plan is editable only before
    SYNTHESIS).

    HOW: Inherits from str so values serialize cleanly to JSON.
    """

    IDLE = "IDLE"
    INGESTION = "INGESTION"
    DECONSTRUCTION = "DECONSTRUCTION"
    RECREATION = "RECREATION"
    SYNTHESIS = "SYNTHESIS"
    COMPLETE = "COMPLETE"
    ERROR = "ERROR"

    @property
    def is_terminal(self) -> bool:
        return self in (Stage.COMPLETE, Stage.ERROR)

    @property
    def is_active(self) -> bool:
        """True while a run is in flight (not idle, not terminal)."""
        return self not in (Stage.IDLE, Stage.COMPLETE, Stage.ERROR)

    @property
    def allows_plan_edits(self) -> bool:
        return self in _EDITABLE_STAGES

    def next(self) -> Stage:
        """Return the stage that follows this one on the success path.

        Raises ValueError for stages with no successor (COMPLETE, ERROR).
        """
        try:
            return STAGE_ORDER[STAGE_ORDER.index(self) + 1]
        except (ValueError, IndexError):
            raise ValueError("Stage {} has no successor".format(self.value))


STAGE_ORDER: tuple[Stage, ...] = (
    Stage.IDLE,
    Stage.INGESTION,
    Stage.DECONSTRUCTION,
    Stage.RECREATION,
    Stage.SYNTHESIS,
    Stage.COMPLETE,
)
"""Success path of the state machine, in order."""

_EDITABLE_STAGES = frozenset(
    {Stage.INGESTION, Stage.DECONSTRUCTION, Stage.RECREATION}
)


class Platform(str, enum.Enum):
    """Target short-form platform for the remix."""

    TIKTOK = "tiktok"
    YOUTUBE_SHORTS = "youtube_shorts"
    INSTAGRAM_REELS = "instagram_reels"

    @property
    def display_name(self) -> str:
        return _PLATFORM_NAMES[self]


_PLATFORM_NAMES = {
    Platform.TIKTOK: "TikTok",
    Platform.YOUTUBE_SHORTS: "YouTube Shorts",
    Platform.INSTAGRAM_REELS: "Instagram Reels",
}


# ---------------------------------------------------------------------------
# Style configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StyleConfig:
    """Creative direction handed to script generation.

    RULES:
    - tone must be one of config.TONE_OPTIONS
    - target_duration_seconds must be one of config.TARGET_DURATION_OPTIONS
    - platform is a Platform member (strings are coerced by from_values)
    """

    tone: str
    target_duration_seconds: int
    platform: Platform

    @classmethod
    def from_values(
        cls,
        tone: str,
        target_duration_seconds: int | str,
        platform: Platform | str,
    ) -> StyleConfig:
        """Build and validate a StyleConfig from loosely typed input.

        WHY: The CLI and HTTP form fields arrive as strings; this is the one
        place they are coerced into the closed enumerations.

        RULES:
        - Raises InvalidStyleError for unknown platforms, tones, durations
          or non-integer durations
        """
        try:
            platform_value = Platform(platform)
        except ValueError:
            raise InvalidStyleError(
                "Unknown platform '{}'. Available: {}".format(
                    platform, ", ".join(p.value for p in Platform)
                )
            )
        try:
            duration = int(target_duration_seconds)
        except (TypeError, ValueError):
            raise InvalidStyleError(
                "Target duration must be an integer number of seconds, got '{}'".format(
                    target_duration_seconds
                )
            )
        config = cls(tone=tone, target_duration_seconds=duration, platform=platform_value)
        config.validate()
        return config

    def validate(self) -> None:
        if self.tone not in TONE_OPTIONS:
            raise InvalidStyleError(
                "Unknown tone '{}'. Available: {}".format(
                    self.tone, ", ".join(TONE_OPTIONS)
                )
            )
        if self.target_duration_seconds not in TARGET_DURATION_OPTIONS:
            raise InvalidStyleError(
                "Unsupported target duration {}s. Available: {}".format(
                    self.target_duration_seconds,
                    ", ".join(str(d) for d in TARGET_DURATION_OPTIONS),
                )
            )
        if not isinstance(self.platform, Platform):
            raise InvalidStyleError("Unknown platform '{}'".format(self.platform))

    def to_dict(self) -> dict[str, Any]:
        return {
            "tone": self.tone,
            "target_duration_seconds": self.target_duration_seconds,
            "platform": self.platform.value,
        }


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UrlSource:
    """A remote video referenced by URL (YouTube, Bilibili, TikTok, ...)."""

    url: str

    @property
    def label(self) -> str:
        return self.url


@dataclass(frozen=True)
class FileSource:
    """A locally uploaded video file.

    RULES:
    - path points at the stored upload
    - filename is the original (sanitised) upload name, used for the title
    - size is in bytes and must be > 0
    """

    path: Path
    filename: str
    size: int

    @classmethod
    def from_path(cls, path: Path | str) -> FileSource:
        """Describe an existing file on disk.

        Raises InvalidSourceError when the path is not a regular file.
        """
        path = Path(path)
        if not path.is_file():
            raise InvalidSourceError("No such file: {}".format(path))
        return cls(path=path, filename=path.name, size=path.stat().st_size)

    @property
    def label(self) -> str:
        return self.filename

    @property
    def size_mb(self) -> float:
        return self.size / 1024 / 1024


Source = Union[UrlSource, FileSource]


def validate_source(source: Source) -> None:
    """Reject sources that cannot start a run.

    WHY: Input-validation errors must surface before any stage transition
    so that no run is created for an empty URL or an empty upload.

    RULES:
    - UrlSource: url must be non-empty after stripping whitespace
    - FileSource: size must be > 0
    - Anything else raises InvalidSourceError
    """
    if isinstance(source, UrlSource):
        if not source.url or not source.url.strip():
            raise InvalidSourceError("Source URL is empty")
        return
    if isinstance(source, FileSource):
        if source.size <= 0:
            raise InvalidSourceError(
                "Uploaded file '{}' is empty".format(source.filename)
            )
        return
    raise InvalidSourceError("No source selected")


# ---------------------------------------------------------------------------
# Stage outputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VideoMetadata:
    """Result of ingestion.

    media_id is an opaque handle a remote ingest service may return so that
    later stages can address the same media; simulated adapters leave it None.
    """

    title: str
    duration_seconds: float
    source_label: str
    media_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "duration_seconds": self.duration_seconds,
            "source_label": self.source_label,
            "media_id": self.media_id,
        }


@dataclass(frozen=True)
class TranscriptSegment:
    """One transcribed window of the source: [start, end) seconds and its text."""

    start: float
    end: float
    text: str

    @classmethod
    def from_dict(cls, data: dict) -> TranscriptSegment:
        return cls(
            start=float(data["start"]),
            end=float(data["end"]),
            text=data["text"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {"start": self.start, "end": self.end, "text": self.text}

    def prompt_line(self) -> str:
        """Render as a timestamped line, e.g. ``[0.0s - 3.5s]: Hello``."""
        return "[{:.1f}s - {:.1f}s]: {}".format(self.start, self.end, self.text)


@dataclass
class RemixSegment:
    """One edit decision: an original transcript window and its rewrite.

    WHY: This is the unit a human reviews before rendering. Provenance
    (original_*) explains where the clip comes from; new_text is the
    narration that will be voiced; visual_description and reasoning are
    production guidance and diagnostics.

    RULES:
    - new_text is the only field the editing surface may change
    - original_end > original_start (checked by RemixPlan)
    - new_text is non-empty once the plan is locked (checked by RemixPlan)
    """

    id: str
    original_start: float
    original_end: float
    original_text: str
    new_text: str
    visual_description: str
    reasoning: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> RemixSegment:
        """Parse a segment from the camelCase wire shape.

        RULES:
        - id, originalStart, originalEnd, newText, visualDescription required
        - originalText and reasoning default to ""
        - Raises KeyError / TypeError / ValueError on malformed input
        """
        return cls(
            id=str(data["id"]),
            original_start=float(data["originalStart"]),
            original_end=float(data["originalEnd"]),
            original_text=data.get("originalText") or "",
            new_text=data["newText"],
            visual_description=data["visualDescription"],
            reasoning=data.get("reasoning") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "originalStart": self.original_start,
            "originalEnd": self.original_end,
            "originalText": self.original_text,
            "newText": self.new_text,
            "visualDescription": self.visual_description,
            "reasoning": self.reasoning,
        }

    @property
    def duration(self) -> float:
        return self.original_end - self.original_start


@dataclass
class ContextNotes:
    """Output of context analysis and whether it came from the fallback."""

    notes: list[str] = field(default_factory=list)
    fallback: bool = False
