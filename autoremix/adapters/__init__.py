"""Adapter backend registry: one lookup to build a full adapter set.

WHY: The CLI and the HTTP server both need to pick a backend by name
(from a flag or PIPELINE_BACKEND). A central dict makes adding a backend
one builder function plus one line here.

HOW: BACKENDS maps snake_case names to zero-argument builder functions
returning a PipelineAdapters bundle. Builders construct their adapters
lazily so that selecting "simulated" never needs an API key.

RULES:
- Keys are snake_case identifiers (used in CLI flags and .env)
- "simulated": canned data with fixed delays, no external services
- "remote": media worker for ingest/transcribe/render, Gemini for
  context analysis and script generation
- Unknown names raise ValueError listing the available backends
"""

from __future__ import annotations

from collections.abc import Callable

from autoremix.adapters.base import PipelineAdapters
from autoremix.config import PIPELINE_BACKEND


def _build_simulated() -> PipelineAdapters:
    from autoremix.adapters.simulated import build_simulated_adapters

    return build_simulated_adapters()


def _build_remote() -> PipelineAdapters:
    from autoremix.adapters.gemini import GeminiContextAnalyzer, GeminiScriptWriter
    from autoremix.adapters.media_service import (
        MediaServiceIngestor,
        MediaServiceRenderer,
        MediaServiceTranscriber,
    )

    return PipelineAdapters(
        ingestor=MediaServiceIngestor(),
        transcriber=MediaServiceTranscriber(),
        analyzer=GeminiContextAnalyzer(),
        script_writer=GeminiScriptWriter(),
        renderer=MediaServiceRenderer(),
    )


BACKENDS: dict[str, Callable[[], PipelineAdapters]] = {
    "simulated": _build_simulated,
    "remote": _build_remote,
}


def build_adapters(backend: str | None = None) -> PipelineAdapters:
    """Build the adapter set for backend (default: PIPELINE_BACKEND)."""
    name = backend or PIPELINE_BACKEND
    try:
        builder = BACKENDS[name]
    except KeyError:
        raise ValueError(
            "Unknown backend '{}'. Available: {}".format(name, ", ".join(BACKENDS))
        )
    return builder()
