"""Abstract adapter contracts for the external processing services.

WHY: Downloading, transcribing, analysing, scripting, and rendering are
non-deterministic, latency-bearing operations the orchestrator calls but
does not implement. Narrow contracts keep them substitutable: simulated
adapters for demos, real services in production, deterministic fakes in
tests. The orchestrator cannot tell them apart.

HOW: One ABC per external operation, each with a single async method.
PipelineAdapters bundles one implementation of each so the orchestrator
receives them as one value.

RULES:
- Every method is async and may raise; AdapterError carries a
  human-readable message, but any exception counts as a failure
- ContextAnalyzer is the one contract allowed to degrade gracefully: the
  orchestrator substitutes fallback notes when it fails
- ScriptWriter output must satisfy the remix segment invariants or the
  stage fails; adapters must not coerce bad output into shape
- Renderer receives a detached snapshot of the locked plan

To add a new backend:
1. Subclass the contracts you need (mix with existing implementations)
2. Add a builder to BACKENDS in adapters/__init__.py
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from autoremix.core.models import (
    RemixSegment,
    Source,
    StyleConfig,
    TranscriptSegment,
    VideoMetadata,
)


class AdapterError(Exception):
    """Raised by an adapter when its external operation fails.

    The message is shown to the user verbatim in the run log, so it should
    say what went wrong in plain words (e.g. "unsupported codec").
    """


class Ingestor(ABC):
    """Fetch or accept the source video and probe its metadata."""

    @abstractmethod
    async def ingest(self, source: Source) -> VideoMetadata:
        """Return title and duration for the source.

        Fails on an invalid or unreachable source.
        """


class Transcriber(ABC):
    """Speech-to-text over the ingested media."""

    @abstractmethod
    async def transcribe(
        self, source: Source, metadata: VideoMetadata
    ) -> list[TranscriptSegment]:
        """Return chronologically ordered, non-overlapping transcript windows.

        Fails on unsupported or corrupt media.
        """


class ContextAnalyzer(ABC):
    """Best-effort analysis of what makes the video worth remixing."""

    @abstractmethod
    async def analyze(self, title: str, description: str) -> list[str]:
        """Return a few short remix angles for the video."""


class ScriptWriter(ABC):
    """Turn a transcript into a remix plan for the requested style."""

    @abstractmethod
    async def generate(
        self,
        transcript: list[TranscriptSegment],
        config: StyleConfig,
    ) -> list[RemixSegment]:
        """Return remix segments in render order.

        Fails on malformed model output.
        """


class Renderer(ABC):
    """Voice, cut, and encode the locked plan into the final video."""

    @abstractmethod
    async def render(
        self, plan: list[RemixSegment], metadata: VideoMetadata
    ) -> str:
        """Return a URI for the rendered output."""


@dataclass
class PipelineAdapters:
    """One implementation of each external contract."""

    ingestor: Ingestor
    transcriber: Transcriber
    analyzer: ContextAnalyzer
    script_writer: ScriptWriter
    renderer: Renderer
