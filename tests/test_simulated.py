"""Tests for the simulated backend and the backend registry.

WHY: The simulated backend is the default for demos and development. Its
output must satisfy the same contracts as the real services, otherwise the
editing surface is developed against data the real pipeline never produces.

HOW: Adapters run with delay_scale=0 so no test sleeps. The full pipeline
is then driven through the orchestrator over the simulated adapters.
"""

from __future__ import annotations

import asyncio

import pytest

from autoremix.adapters import BACKENDS, build_adapters
from autoremix.adapters.simulated import (
    SIMULATED_OUTPUT_URI,
    SIMULATED_TITLE,
    SIMULATED_TRANSCRIPT,
    SimulatedIngestor,
    SimulatedScriptWriter,
    SimulatedTranscriber,
    build_simulated_adapters,
)
from autoremix.core.models import FileSource, Platform, Stage, StyleConfig, UrlSource
from autoremix.core.orchestrator import PipelineOrchestrator
from autoremix.core.plan import validate_segments


def _config(duration: int) -> StyleConfig:
    return StyleConfig("sharp-tongued roast", duration, Platform.TIKTOK)


class TestSimulatedAdapters:
    def test_url_ingest(self):
        metadata = asyncio.run(SimulatedIngestor(0).ingest(UrlSource("https://youtu.be/x")))
        assert metadata.title == SIMULATED_TITLE
        assert metadata.duration_seconds == 184
        assert metadata.media_id is None

    def test_upload_ingest_uses_file_stem(self, tmp_path):
        source = FileSource(path=tmp_path / "my_vlog.mp4", filename="my_vlog.mp4", size=10)
        metadata = asyncio.run(SimulatedIngestor(0).ingest(source))
        assert metadata.title == "my_vlog"
        assert metadata.duration_seconds == 120

    def test_transcript_is_ordered(self):
        transcript = asyncio.run(
            SimulatedTranscriber(0).transcribe(UrlSource("u"), None)
        )
        assert len(transcript) == 7
        assert transcript == list(SIMULATED_TRANSCRIPT)
        for earlier, later in zip(transcript, transcript[1:]):
            assert earlier.end <= later.start

    @pytest.mark.parametrize("duration,expected", [(15, 4), (30, 7), (60, 7)])
    def test_script_covers_target_duration(self, duration, expected):
        segments = asyncio.run(
            SimulatedScriptWriter(0).generate(list(SIMULATED_TRANSCRIPT), _config(duration))
        )
        assert len(segments) == expected
        assert [s.id for s in segments] == [str(i) for i in range(1, expected + 1)]
        validate_segments(segments)
        assert "sharp-tongued roast" in segments[0].reasoning

    def test_script_skips_zero_length_windows(self):
        from autoremix.core.models import TranscriptSegment

        transcript = [TranscriptSegment(0.0, 0.0, "blip"), TranscriptSegment(0.0, 5.0, "real")]
        segments = asyncio.run(SimulatedScriptWriter(0).generate(transcript, _config(15)))
        assert [s.original_text for s in segments] == ["real"]


class TestSimulatedPipeline:
    def test_end_to_end(self):
        orchestrator = PipelineOrchestrator(build_simulated_adapters(delay_scale=0))
        run = asyncio.run(
            orchestrator.run_to_completion(UrlSource("https://youtu.be/x"), _config(30))
        )
        assert run.stage is Stage.COMPLETE
        assert run.output_uri == SIMULATED_OUTPUT_URI
        assert len(run.plan) == 7
        assert run.context.fallback is False


class TestBackendRegistry:
    def test_known_backends(self):
        assert set(BACKENDS) == {"simulated", "remote"}

    def test_build_simulated(self):
        adapters = build_adapters("simulated")
        assert isinstance(adapters.ingestor, SimulatedIngestor)

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown backend 'carrier-pigeon'"):
            build_adapters("carrier-pigeon")

    def test_remote_requires_api_key(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
        with pytest.raises(ValueError, match="Gemini API key"):
            build_adapters("remote")
