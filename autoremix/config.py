"""Configuration constants, style catalogues, and .env loading.

WHY: Centralizes every configurable value so it is easy to find, update,
and override. The recognised style options (tones, target durations,
platforms), the supported upload formats, and the service defaults are
plain data structures outside the orchestrator, so both humans and
coding agents can modify them confidently.

HOW: python-dotenv loads the .env file on import. Constants are defined
as module-level tuples, sets, and strings. load_api_key() gives a clear
error when the Gemini key is missing.

RULES:
- TONE_OPTIONS and TARGET_DURATION_OPTIONS are closed sets; StyleConfig
  rejects anything else
- Platform identifiers live on the Platform enum in core.models
- API keys are loaded from .env via python-dotenv, never hardcoded
- All defaults can be overridden via environment variables
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

# Load .env from the project root (where the app is run from)
load_dotenv()

# ---------------------------------------------------------------------------
# Style catalogues
# ---------------------------------------------------------------------------

TONE_OPTIONS: tuple[str, ...] = (
    "humorous, fast-paced",
    "epic, cinematic",
    "educational, calm",
    "sharp-tongued roast",
)
"""Narration tones the script writer is allowed to aim for."""

TARGET_DURATION_OPTIONS: tuple[int, ...] = (15, 30, 60)
"""Target output lengths in seconds (story, short, mid-length)."""

DEFAULT_TONE = os.getenv("DEFAULT_TONE", TONE_OPTIONS[0])
DEFAULT_TARGET_DURATION = int(os.getenv("DEFAULT_TARGET_DURATION", "30"))
DEFAULT_PLATFORM = os.getenv("DEFAULT_PLATFORM", "tiktok")

# ---------------------------------------------------------------------------
# Deconstruction defaults
# ---------------------------------------------------------------------------

DEFAULT_CONTEXT_DESCRIPTION = os.getenv(
    "DEFAULT_CONTEXT_DESCRIPTION", "Tech review video"
)
"""Description handed to context analysis alongside the ingested title."""

FALLBACK_CONTEXT_NOTES: tuple[str, ...] = (
    "Focus on the funny moments",
    "Tighten the pacing",
    "Add meme sound effects",
)
"""Angles used when context analysis is unavailable (degraded mode)."""

# ---------------------------------------------------------------------------
# Uploads
# ---------------------------------------------------------------------------

SUPPORTED_VIDEO_FORMATS: set[str] = {".mp4", ".mov", ".mkv", ".webm", ".m4v"}
"""Video file extensions accepted for upload (lowercase, with dot)."""

MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(500 * 1024 * 1024)))

# ---------------------------------------------------------------------------
# Backends and external services
# ---------------------------------------------------------------------------

PIPELINE_BACKEND = os.getenv("PIPELINE_BACKEND", "simulated")
SIMULATED_DELAY_SCALE = float(os.getenv("SIMULATED_DELAY_SCALE", "1.0"))

_timeout = os.getenv("ADAPTER_TIMEOUT_SECONDS", "").strip()
ADAPTER_TIMEOUT_SECONDS: float | None = float(_timeout) if _timeout else None
"""Upper bound for a single adapter call, or None for no limit."""

GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

MEDIA_SERVICE_URL = os.getenv("MEDIA_SERVICE_URL", "http://localhost:8080/v1")
MEDIA_SERVICE_TOKEN = os.getenv("MEDIA_SERVICE_TOKEN", "").strip() or None


def load_api_key() -> str:
    """Load the Gemini API key from the environment.

    WHY: Script generation and context analysis both call Gemini. Loading
    the key from the environment (via .env) keeps it out of source code.

    RULES:
    - Reads GEMINI_API_KEY, falling back to GOOGLE_API_KEY
    - Raises ValueError if neither is set
    - Never returns a default/placeholder value
    """
    key = (os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY") or "").strip()
    if not key:
        raise ValueError(
            "Gemini API key not configured. "
            "Add GEMINI_API_KEY to the .env file in the app folder."
        )
    return key
