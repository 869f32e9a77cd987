"""AutoRemix: turn a long-form video into a short-form remix.

WHY: Remixing a video for TikTok, YouTube Shorts, or Instagram Reels is a
chain of slow, failure-prone steps (fetch, transcribe, script, render)
with a human editing window in the middle. This package drives that chain
as a five-stage state machine with one editable plan and one run log.

HOW: Five stages, each backed by an injected adapter: ingestion,
deconstruction (transcription + context analysis), recreation (script
generation), synthesis (render), complete. The core package owns state and
ordering; adapters talk to external services; the server and CLI are thin
controllers over one orchestrator.

RULES:
- One run at a time; reset before starting another
- The remix plan is editable only before synthesis
- Results that arrive after a reset are dropped
"""

__version__ = "0.1.0"
