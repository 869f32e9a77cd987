"""Media service client package: async HTTP interface to the media worker.

WHY: The remote backend delegates fetching, transcription, and rendering
to a media worker service. This package encapsulates all communication
with it behind one async client class.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. MediaServiceClient
provides one method per workflow step; response data is parsed into typed
dataclasses defined in models.py.

RULES:
- All HTTP calls to the media service go through MediaServiceClient
- Authentication is via optional Bearer token from config
"""

from autoremix.api.client import MediaServiceClient
from autoremix.api.models import JobStatus, MediaInfo, RenderJob, TranscriptionJob

__all__ = ["JobStatus", "MediaInfo", "MediaServiceClient", "RenderJob", "TranscriptionJob"]
