"""Media service response dataclasses.

WHY: The media worker returns flat JSON objects for media records and for
transcription and render jobs. Typed dataclasses make these explicit and
catch field mismatches at the parsing boundary instead of deep inside the
pipeline.

HOW: Each dataclass maps 1:1 to a media service JSON object. from_dict
factories handle parsing raw responses.

RULES:
- Job status is one of "queued", "processing", "completed", "error"
- segments is only present on completed transcription jobs
- output_url is only present on completed render jobs
- error_message is only present on failed jobs
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from autoremix.core.models import TranscriptSegment


class JobStatus(str, enum.Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.ERROR)


@dataclass
class MediaInfo:
    """A media record created by POST /media."""

    id: str
    title: str
    duration: float

    @classmethod
    def from_dict(cls, data: dict) -> MediaInfo:
        return cls(
            id=str(data["id"]),
            title=data.get("title") or "",
            duration=float(data.get("duration") or 0.0),
        )


@dataclass
class TranscriptionJob:
    """Status of a transcription job, from GET /transcriptions/{id}.

    RULES:
    - segments are parsed into TranscriptSegment values in response order
    - segments is empty until status is "completed"
    """

    id: str
    status: JobStatus
    segments: list[TranscriptSegment] = field(default_factory=list)
    error_message: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> TranscriptionJob:
        return cls(
            id=str(data["id"]),
            status=JobStatus(data["status"]),
            segments=[TranscriptSegment.from_dict(s) for s in data.get("segments") or []],
            error_message=data.get("error_message"),
        )


@dataclass
class RenderJob:
    """Status of a render job, from GET /renders/{id}."""

    id: str
    status: JobStatus
    output_url: str | None = None
    error_message: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> RenderJob:
        return cls(
            id=str(data["id"]),
            status=JobStatus(data["status"]),
            output_url=data.get("output_url"),
            error_message=data.get("error_message"),
        )
