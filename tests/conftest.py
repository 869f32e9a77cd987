"""Shared fixtures and fake adapters for the autoremix test suite.

WHY: Orchestrator, HTTP, and CLI tests all need adapters that behave
deterministically, record how they were called, and can be told to fail
or to block at a precise point. Centralising them here keeps every test
module on the same scenario data.

HOW: Each fake records its call arguments, optionally waits on an
asyncio.Event (gate) before answering, and then raises its configured
error or returns its result. Results may be zero-argument factories so
mutable values (remix segments) are fresh on every call. FakePipeline
bundles one fake per contract with the reference scenario loaded:
metadata "T" / 184s, seven transcript windows, a three-segment plan.

RULES:
- Fakes never sleep; progress is driven only by gates and the event loop
- Gates must be created inside the running event loop (inside asyncio.run)
- The scenario plan has ids "1", "2", "3" with valid windows
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, List

import pytest

from autoremix.adapters.base import (
    ContextAnalyzer,
    Ingestor,
    PipelineAdapters,
    Renderer,
    ScriptWriter,
    Transcriber,
)
from autoremix.core.models import (
    Platform,
    RemixSegment,
    StyleConfig,
    TranscriptSegment,
    UrlSource,
    VideoMetadata,
)

# ---------------------------------------------------------------------------
# Reference scenario
# ---------------------------------------------------------------------------

SCENARIO_URL = "https://www.youtube.com/watch?v=remix-demo"
SCENARIO_METADATA = VideoMetadata(title="T", duration_seconds=184, source_label=SCENARIO_URL)
SCENARIO_OUTPUT_URI = "https://cdn.example.com/renders/remix-demo.mp4"

SCENARIO_TRANSCRIPT: List[TranscriptSegment] = [
    TranscriptSegment(0.0, 4.0, "Welcome back to the channel."),
    TranscriptSegment(4.0, 8.0, "Today we test the new agent."),
    TranscriptSegment(8.0, 12.0, "The install is a mess."),
    TranscriptSegment(12.0, 16.0, "I forgot the dependencies."),
    TranscriptSegment(16.0, 20.0, "Once it runs it is fast."),
    TranscriptSegment(20.0, 24.0, "This changes everything."),
    TranscriptSegment(24.0, 28.0, "Like and subscribe."),
]

SCENARIO_CONFIG = StyleConfig(
    tone="humorous, fast-paced",
    target_duration_seconds=30,
    platform=Platform.TIKTOK,
)


def scenario_plan() -> List[RemixSegment]:
    """A fresh copy of the three-segment reference plan."""
    return [
        RemixSegment(
            id="1",
            original_start=0.0,
            original_end=4.0,
            original_text="Welcome back to the channel.",
            new_text="New agent. Let's go.",
            visual_description="Host close-up, punch zoom",
            reasoning="Fast hook",
        ),
        RemixSegment(
            id="2",
            original_start=8.0,
            original_end=12.0,
            original_text="The install is a mess.",
            new_text="The install? A disaster.",
            visual_description="Terminal full of red errors",
            reasoning="Relatable pain",
        ),
        RemixSegment(
            id="3",
            original_start=16.0,
            original_end=20.0,
            original_text="Once it runs it is fast.",
            new_text="But then... it flies.",
            visual_description="Live output scrolling",
            reasoning="Payoff",
        ),
    ]


# ---------------------------------------------------------------------------
# Fake adapters
# ---------------------------------------------------------------------------


class FakeStage:
    """Records calls, optionally blocks on a gate, then raises or returns."""

    def __init__(self, result: Any = None, error: BaseException | None = None) -> None:
        self.result = result
        self.error = error
        self.gate: asyncio.Event | None = None
        self.calls: list[tuple] = []

    async def _respond(self, *args: Any) -> Any:
        self.calls.append(args)
        gate = self.gate
        if gate is not None:
            await gate.wait()
        if self.error is not None:
            raise self.error
        return self.result() if callable(self.result) else self.result


class FakeIngestor(FakeStage, Ingestor):
    async def ingest(self, source):
        return await self._respond(source)


class FakeTranscriber(FakeStage, Transcriber):
    async def transcribe(self, source, metadata):
        return await self._respond(source, metadata)


class FakeAnalyzer(FakeStage, ContextAnalyzer):
    async def analyze(self, title, description):
        return await self._respond(title, description)


class FakeScriptWriter(FakeStage, ScriptWriter):
    async def generate(self, transcript, config):
        return await self._respond(transcript, config)


class FakeRenderer(FakeStage, Renderer):
    async def render(self, plan, metadata):
        return await self._respond(plan, metadata)


class FakePipeline:
    """One fake per adapter contract, loaded with the reference scenario."""

    def __init__(self) -> None:
        self.ingestor = FakeIngestor(SCENARIO_METADATA)
        self.transcriber = FakeTranscriber(lambda: list(SCENARIO_TRANSCRIPT))
        self.analyzer = FakeAnalyzer(lambda: ["Roast the install", "Speed-run the demo"])
        self.script_writer = FakeScriptWriter(scenario_plan)
        self.renderer = FakeRenderer(SCENARIO_OUTPUT_URI)

    def adapters(self) -> PipelineAdapters:
        return PipelineAdapters(
            ingestor=self.ingestor,
            transcriber=self.transcriber,
            analyzer=self.analyzer,
            script_writer=self.script_writer,
            renderer=self.renderer,
        )

    def call_counts(self) -> dict:
        return {
            "ingest": len(self.ingestor.calls),
            "transcribe": len(self.transcriber.calls),
            "analyze": len(self.analyzer.calls),
            "generate": len(self.script_writer.calls),
            "render": len(self.renderer.calls),
        }


async def wait_until(predicate: Callable[[], bool], limit: int = 500) -> None:
    """Yield to the event loop until predicate() holds."""
    for _ in range(limit):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("Condition not reached after {} loop iterations".format(limit))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def pipeline() -> FakePipeline:
    return FakePipeline()


@pytest.fixture
def url_source() -> UrlSource:
    return UrlSource(SCENARIO_URL)


@pytest.fixture
def style() -> StyleConfig:
    return SCENARIO_CONFIG
