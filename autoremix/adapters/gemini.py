"""Gemini-backed context analysis and script generation.

WHY: Recreation is the creative step: pick the most engaging windows of
the transcript, tighten the narration to the requested tone, and say what
should be on screen. Context analysis suggests remix angles from the
video's title and description. Both are LLM calls with structured output.

HOW: Uses the google-genai async client (client.aio.models.generate_content)
with a JSON response MIME type and an explicit response schema. The raw
JSON is parsed, checked with jsonschema, and converted to typed values.
Script output is additionally checked against the remix segment invariants
so malformed model output fails the stage instead of being coerced.

RULES:
- Model defaults to config.GEMINI_MODEL (gemini-2.5-flash)
- API key comes from config.load_api_key() unless a client is injected
- Empty responses, invalid JSON, schema violations, and invariant
  violations all raise ScriptGenerationError / ContextAnalysisError
- Missing originalText is filled from the overlapping transcript windows;
  nothing else is filled in or repaired
- Gemini API errors are wrapped so the run log shows a readable message
"""

from __future__ import annotations

import json
import logging
from typing import Any

import jsonschema
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from autoremix.adapters.base import AdapterError, ContextAnalyzer, ScriptWriter
from autoremix.config import GEMINI_MODEL, load_api_key
from autoremix.core.models import RemixSegment, StyleConfig, TranscriptSegment
from autoremix.core.plan import PlanValidationError, validate_segments

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

_SEGMENT_REQUIRED = ["id", "originalStart", "originalEnd", "newText", "visualDescription"]

SCRIPT_JSON_SCHEMA: dict[str, Any] = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "id": {"type": "string"},
            "originalStart": {"type": "number"},
            "originalEnd": {"type": "number"},
            "originalText": {"type": "string"},
            "newText": {"type": "string", "minLength": 1},
            "visualDescription": {"type": "string"},
            "reasoning": {"type": "string"},
        },
        "required": _SEGMENT_REQUIRED,
    },
}
"""JSON Schema the script response must satisfy before conversion."""

ANGLES_JSON_SCHEMA: dict[str, Any] = {
    "type": "array",
    "items": {"type": "string"},
}

_SCRIPT_RESPONSE_SCHEMA = types.Schema(
    type=types.Type.ARRAY,
    items=types.Schema(
        type=types.Type.OBJECT,
        properties={
            "id": types.Schema(type=types.Type.STRING),
            "originalStart": types.Schema(type=types.Type.NUMBER),
            "originalEnd": types.Schema(type=types.Type.NUMBER),
            "originalText": types.Schema(type=types.Type.STRING),
            "newText": types.Schema(type=types.Type.STRING),
            "visualDescription": types.Schema(type=types.Type.STRING),
            "reasoning": types.Schema(type=types.Type.STRING),
        },
        required=_SEGMENT_REQUIRED,
    ),
)

_ANGLES_RESPONSE_SCHEMA = types.Schema(
    type=types.Type.ARRAY,
    items=types.Schema(type=types.Type.STRING),
)


class GeminiError(AdapterError):
    """Raised when a Gemini call fails or returns unusable output."""


class ScriptGenerationError(GeminiError):
    """Raised when the generated remix script is empty or malformed."""


class ContextAnalysisError(GeminiError):
    """Raised when context analysis output is empty or malformed."""


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------


def build_script_prompt(
    transcript: list[TranscriptSegment], config: StyleConfig
) -> str:
    """Compose the script-writing prompt for a transcript and style."""
    transcript_text = "\n".join(segment.prompt_line() for segment in transcript)
    return (
        "You are a professional short-form video editor and scriptwriter who "
        "specialises in viral content.\n\n"
        "Task: adapt the transcript below into a {duration}-second script for "
        "{platform}.\n"
        "Style / tone: {tone}.\n\n"
        "Instructions:\n"
        "1. Pick the most engaging parts of the transcript.\n"
        "2. Rewrite the spoken text to be tighter, punchier, or more dramatic, "
        "matching the tone.\n"
        "3. Keep each newText roughly as long as its original window, or a "
        "little shorter to speed up the pacing.\n"
        "4. Give a visualDescription of what should be on screen (or whether "
        "B-roll is needed).\n"
        "5. Explain why you picked the window in reasoning.\n"
        "6. originalStart and originalEnd must be the window's timestamps in "
        "seconds, with originalEnd greater than originalStart.\n\n"
        "Input transcript:\n{transcript}\n"
    ).format(
        duration=config.target_duration_seconds,
        platform=config.platform.display_name,
        tone=config.tone,
        transcript=transcript_text,
    )


def build_angles_prompt(title: str, description: str) -> str:
    """Compose the context-analysis prompt for a video."""
    return (
        "Analyse this video's subject so it can be remixed.\n"
        "Title: {title}\n"
        "Description: {description}\n\n"
        "Suggest 3 angles that would make the remix go viral on short-form "
        "platforms. Answer with a JSON array of short strings.\n"
    ).format(title=title, description=description)


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


def parse_script_response(
    text: str | None, transcript: list[TranscriptSegment]
) -> list[RemixSegment]:
    """Turn raw script JSON into validated remix segments.

    RULES:
    - Raises ScriptGenerationError for empty text, invalid JSON, schema
      violations, or remix segment invariant violations
    - originalText absent or blank → joined text of overlapping windows
    """
    data = _load_json(text, ScriptGenerationError, "script")
    try:
        jsonschema.validate(instance=data, schema=SCRIPT_JSON_SCHEMA)
    except jsonschema.ValidationError as exc:
        raise ScriptGenerationError(
            "Gemini script failed validation: {}".format(exc.message)
        )

    segments = [RemixSegment.from_dict(item) for item in data]
    for segment in segments:
        if not segment.original_text.strip():
            segment.original_text = _overlapping_text(
                transcript, segment.original_start, segment.original_end
            )
    try:
        validate_segments(segments)
    except PlanValidationError as exc:
        raise ScriptGenerationError("Gemini script rejected: {}".format(exc))
    return segments


def parse_angles_response(text: str | None) -> list[str]:
    """Turn raw angles JSON into a list of non-empty strings."""
    data = _load_json(text, ContextAnalysisError, "context analysis")
    try:
        jsonschema.validate(instance=data, schema=ANGLES_JSON_SCHEMA)
    except jsonschema.ValidationError as exc:
        raise ContextAnalysisError(
            "Gemini context analysis failed validation: {}".format(exc.message)
        )
    return [angle.strip() for angle in data if angle.strip()]


def _load_json(text: str | None, error_cls: type[GeminiError], what: str) -> Any:
    if not text or not text.strip():
        raise error_cls("Gemini returned an empty {} response".format(what))
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise error_cls("Gemini returned malformed {} JSON: {}".format(what, exc))


def _overlapping_text(
    transcript: list[TranscriptSegment], start: float, end: float
) -> str:
    parts = [w.text for w in transcript if w.start < end and w.end > start]
    return " ".join(parts)


# ---------------------------------------------------------------------------
# Adapters
# ---------------------------------------------------------------------------


class _GeminiAdapter:
    """Shared client handling for the Gemini-backed adapters."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        client: Any = None,
    ) -> None:
        self._model = model or GEMINI_MODEL
        self._client = client or genai.Client(api_key=api_key or load_api_key())

    async def _generate(self, prompt: str, schema: types.Schema) -> str | None:
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=schema,
        )
        try:
            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=prompt,
                config=config,
            )
        except genai_errors.APIError as exc:
            raise GeminiError("Gemini API error {}: {}".format(exc.code, exc.message))
        return response.text


class GeminiScriptWriter(_GeminiAdapter, ScriptWriter):
    """ScriptWriter backed by a Gemini model."""

    async def generate(
        self,
        transcript: list[TranscriptSegment],
        config: StyleConfig,
    ) -> list[RemixSegment]:
        prompt = build_script_prompt(transcript, config)
        logger.info(
            "Requesting %ss %s script from %s (%d transcript windows)",
            config.target_duration_seconds,
            config.platform.value,
            self._model,
            len(transcript),
        )
        text = await self._generate(prompt, _SCRIPT_RESPONSE_SCHEMA)
        return parse_script_response(text, transcript)


class GeminiContextAnalyzer(_GeminiAdapter, ContextAnalyzer):
    """ContextAnalyzer backed by a Gemini model.

    Failures propagate; the orchestrator falls back to fixed angles.
    """

    async def analyze(self, title: str, description: str) -> list[str]:
        text = await self._generate(
            build_angles_prompt(title, description), _ANGLES_RESPONSE_SCHEMA
        )
        return parse_angles_response(text)
