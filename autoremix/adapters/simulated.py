"""Simulated adapters with fixed delays and canned payloads.

WHY: The pipeline is useful to demo and to develop the editing surface
against without a media worker or an LLM key. These adapters honour the
same contracts as the real services and behave deterministically: the
same source always yields the same metadata, transcript, plan, and output.

HOW: Each adapter sleeps for a fixed, scalable delay (to make stage
progress observable) and then returns hardcoded data. The script writer
walks the transcript in order and keeps windows until the target duration
is covered, so its output always satisfies the plan invariants.

RULES:
- URL ingest: fixed title, 184s, after 2.0s
- Upload ingest: title = file stem, 120s, after 1.5s
- Transcription: seven fixed windows covering 0-30s, after 2.5s
- Context analysis: the fallback angles, after 1.0s
- Render: fixed preview URI, after 3.0s
- delay_scale multiplies every delay (0 disables sleeping)
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from autoremix.adapters.base import (
    ContextAnalyzer,
    Ingestor,
    PipelineAdapters,
    Renderer,
    ScriptWriter,
    Transcriber,
)
from autoremix.config import FALLBACK_CONTEXT_NOTES, SIMULATED_DELAY_SCALE
from autoremix.core.models import (
    FileSource,
    RemixSegment,
    Source,
    StyleConfig,
    TranscriptSegment,
    VideoMetadata,
)

SIMULATED_TITLE = "Deep Dive: How Next-Gen AI Agents Work, Tested"
SIMULATED_URL_DURATION_S = 184
SIMULATED_UPLOAD_DURATION_S = 120
SIMULATED_OUTPUT_URI = "https://picsum.photos/seed/render/800/450"

SIMULATED_TRANSCRIPT: tuple[TranscriptSegment, ...] = (
    TranscriptSegment(0.0, 3.5, "Hey everyone, welcome back to the channel. Today we're digging into this new AI agent."),
    TranscriptSegment(3.5, 7.0, "Honestly, it blew my mind. I've never seen anything run this fast locally."),
    TranscriptSegment(7.0, 12.0, "Hold on, let me open the terminal. Look at this install process, it's way too complicated, errors everywhere."),
    TranscriptSegment(12.0, 15.5, "Okay, I messed up. Forgot to install the dependencies. Just another day for me."),
    TranscriptSegment(15.5, 20.0, "But once it's running... wow. Look at this live code output, smooth as silk."),
    TranscriptSegment(20.0, 25.0, "I think this is going to change the software industry completely. A lot of junior jobs are going to disappear."),
    TranscriptSegment(25.0, 30.0, "If you liked this hardcore review, don't forget to smash like and subscribe."),
)

# Seconds, before scaling
_INGEST_URL_DELAY = 2.0
_INGEST_UPLOAD_DELAY = 1.5
_TRANSCRIBE_DELAY = 2.5
_ANALYZE_DELAY = 1.0
_SCRIPT_DELAY = 2.0
_RENDER_DELAY = 3.0


class _Delayed:
    """Mixin providing a scaled sleep."""

    def __init__(self, delay_scale: float = SIMULATED_DELAY_SCALE) -> None:
        self.delay_scale = delay_scale

    async def _pause(self, seconds: float) -> None:
        if self.delay_scale > 0:
            await asyncio.sleep(seconds * self.delay_scale)


class SimulatedIngestor(_Delayed, Ingestor):
    async def ingest(self, source: Source) -> VideoMetadata:
        if isinstance(source, FileSource):
            await self._pause(_INGEST_UPLOAD_DELAY)
            return VideoMetadata(
                title=Path(source.filename).stem,
                duration_seconds=SIMULATED_UPLOAD_DURATION_S,
                source_label=source.filename,
            )
        await self._pause(_INGEST_URL_DELAY)
        return VideoMetadata(
            title=SIMULATED_TITLE,
            duration_seconds=SIMULATED_URL_DURATION_S,
            source_label=source.label,
        )


class SimulatedTranscriber(_Delayed, Transcriber):
    async def transcribe(
        self, source: Source, metadata: VideoMetadata
    ) -> list[TranscriptSegment]:
        await self._pause(_TRANSCRIBE_DELAY)
        return list(SIMULATED_TRANSCRIPT)


class SimulatedContextAnalyzer(_Delayed, ContextAnalyzer):
    async def analyze(self, title: str, description: str) -> list[str]:
        await self._pause(_ANALYZE_DELAY)
        return list(FALLBACK_CONTEXT_NOTES)


class SimulatedScriptWriter(_Delayed, ScriptWriter):
    """Keeps transcript windows in order until the target duration is covered."""

    async def generate(
        self,
        transcript: list[TranscriptSegment],
        config: StyleConfig,
    ) -> list[RemixSegment]:
        await self._pause(_SCRIPT_DELAY)
        segments: list[RemixSegment] = []
        covered = 0.0
        for window in transcript:
            if covered >= config.target_duration_seconds:
                break
            if window.end <= window.start:
                continue
            segments.append(
                RemixSegment(
                    id=str(len(segments) + 1),
                    original_start=window.start,
                    original_end=window.end,
                    original_text=window.text,
                    new_text=window.text.strip(),
                    visual_description="Source footage {:.1f}s-{:.1f}s, 9:16 crop".format(
                        window.start, window.end
                    ),
                    reasoning="Fits the {}s {} cut ({}).".format(
                        config.target_duration_seconds,
                        config.platform.value,
                        config.tone,
                    ),
                )
            )
            covered += window.end - window.start
        return segments


class SimulatedRenderer(_Delayed, Renderer):
    async def render(
        self, plan: list[RemixSegment], metadata: VideoMetadata
    ) -> str:
        await self._pause(_RENDER_DELAY)
        return SIMULATED_OUTPUT_URI


def build_simulated_adapters(delay_scale: float = SIMULATED_DELAY_SCALE) -> PipelineAdapters:
    """Bundle the simulated adapters, all sharing one delay scale."""
    return PipelineAdapters(
        ingestor=SimulatedIngestor(delay_scale),
        transcriber=SimulatedTranscriber(delay_scale),
        analyzer=SimulatedContextAnalyzer(delay_scale),
        script_writer=SimulatedScriptWriter(delay_scale),
        renderer=SimulatedRenderer(delay_scale),
    )
