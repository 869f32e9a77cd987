"""Media worker adapters: ingest, transcription, and rendering over HTTP.

WHY: Fetching a video from a platform URL, extracting and transcribing its
audio, and cutting the final vertical edit are heavy media jobs that run
in a separate worker service. These adapters map the pipeline contracts
onto that service's job API.

HOW: Each call opens a MediaServiceClient for its own duration (the
client is an async context manager). Ingest returns the service's media id
in VideoMetadata.media_id; transcription and rendering address the media
by that id.

RULES:
- Transcribe and Render raise AdapterError when metadata has no media_id
- An empty transcript from the service is a stage failure
- Render sends the locked plan in the camelCase remix segment shape
- Service, job, and timeout errors propagate unchanged; the orchestrator
  logs their message and fails the stage
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from autoremix.adapters.base import AdapterError, Ingestor, Renderer, Transcriber
from autoremix.api.client import MediaServiceClient
from autoremix.core.models import (
    FileSource,
    RemixSegment,
    Source,
    TranscriptSegment,
    VideoMetadata,
)

logger = logging.getLogger(__name__)

ClientFactory = Callable[[], MediaServiceClient]


class _MediaServiceAdapter:
    def __init__(self, client_factory: ClientFactory = MediaServiceClient) -> None:
        self._client_factory = client_factory


def _require_media_id(metadata: VideoMetadata, operation: str) -> str:
    if not metadata.media_id:
        raise AdapterError(
            "{} needs a media id from the media service; ingest did not provide one".format(
                operation
            )
        )
    return metadata.media_id


class MediaServiceIngestor(_MediaServiceAdapter, Ingestor):
    async def ingest(self, source: Source) -> VideoMetadata:
        async with self._client_factory() as client:
            if isinstance(source, FileSource):
                info = await client.upload_file(source.path, source.filename)
                fallback_title = Path(source.filename).stem
            else:
                info = await client.ingest_url(source.url)
                fallback_title = source.url
        logger.info("Media service registered %s as %s", source.label, info.id)
        return VideoMetadata(
            title=info.title or fallback_title,
            duration_seconds=info.duration,
            source_label=source.label,
            media_id=info.id,
        )


class MediaServiceTranscriber(_MediaServiceAdapter, Transcriber):
    async def transcribe(
        self, source: Source, metadata: VideoMetadata
    ) -> list[TranscriptSegment]:
        media_id = _require_media_id(metadata, "Transcription")
        async with self._client_factory() as client:
            job_id = await client.create_transcription(media_id)
            job = await client.poll_transcription(job_id, on_status=logger.debug)
        if not job.segments:
            raise AdapterError("Transcription returned no segments")
        return job.segments


class MediaServiceRenderer(_MediaServiceAdapter, Renderer):
    async def render(
        self, plan: list[RemixSegment], metadata: VideoMetadata
    ) -> str:
        media_id = _require_media_id(metadata, "Render")
        async with self._client_factory() as client:
            job_id = await client.create_render(
                media_id, [segment.to_dict() for segment in plan]
            )
            job = await client.poll_render(job_id, on_status=logger.debug)
        if not job.output_url:
            raise AdapterError("Render job completed without an output URL")
        return job.output_url
