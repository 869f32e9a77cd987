"""FastAPI application: the run controller over HTTP.

WHY: A browser editing surface (or curl, or an automation tool) needs to
start a remix run, watch its stage and log, rewrite plan segments while
they are still editable, and reset. FastAPI provides request validation
and OpenAPI docs for free.

HOW: A module-level PipelineOrchestrator owns the single run. POST /run
validates the form, stores an upload in a per-run temp directory, and
calls orchestrator.start(), which returns as soon as the run is in
INGESTION; the pipeline keeps running on the server's event loop. The
other endpoints read or mutate the run through the orchestrator only.

RULES:
- At most one run; POST /run while a run exists (even a finished one)
  returns 409 until DELETE /run
- Invalid source or style → 400; run exists / plan locked / no review
  pending → 409; unknown segment or no run → 404; blank edit → 422
- Uploads go to a temp dir with prefix "autoremix_run_", removed on reset
- File validation checks extension against SUPPORTED_VIDEO_FORMATS and
  size against MAX_UPLOAD_BYTES
- Python 3.9+ compatible (no match/case, no PEP 604 unions)
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated, Optional

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.responses import Response

from autoremix import __version__
from autoremix.adapters import build_adapters
from autoremix.config import (
    ADAPTER_TIMEOUT_SECONDS,
    DEFAULT_PLATFORM,
    DEFAULT_TARGET_DURATION,
    DEFAULT_TONE,
    MAX_UPLOAD_BYTES,
    PIPELINE_BACKEND,
    SUPPORTED_VIDEO_FORMATS,
    TARGET_DURATION_OPTIONS,
    TONE_OPTIONS,
)
from autoremix.core.models import (
    FileSource,
    InvalidSourceError,
    InvalidStyleError,
    Platform,
    StyleConfig,
    UrlSource,
)
from autoremix.core.orchestrator import (
    PipelineOrchestrator,
    ReviewNotPendingError,
    RunActiveError,
)
from autoremix.core.plan import InvalidEditError, PlanLockedError, SegmentNotFoundError
from autoremix.server.models import (
    ErrorResponse,
    HealthResponse,
    LogEntryModel,
    LogListResponse,
    OptionsResponse,
    PlanResponse,
    PlatformOption,
    RunResponse,
    SegmentEditRequest,
    SegmentModel,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App and orchestrator setup
# ---------------------------------------------------------------------------

orchestrator = PipelineOrchestrator(
    build_adapters(), adapter_timeout=ADAPTER_TIMEOUT_SECONDS
)

_upload_dir: Optional[Path] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Discard the run and its upload on shutdown."""
    yield
    orchestrator.reset()
    _remove_upload_dir()


app = FastAPI(
    lifespan=lifespan,
    title="AutoRemix API",
    description=(
        "Run controller for the AutoRemix pipeline: ingest a source video, "
        "transcribe it, generate a remix plan for a short-form platform, let "
        "an editor rewrite the plan, and render the result."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run_response() -> RunResponse:
    return RunResponse.from_run(orchestrator.run, orchestrator.awaiting_review)


def _validate_file_extension(filename: str) -> None:
    """Raise HTTPException if the file extension is not supported."""
    ext = Path(filename).suffix.lower()
    if ext not in SUPPORTED_VIDEO_FORMATS:
        raise HTTPException(
            status_code=400,
            detail="Unsupported file type '{}'. Supported formats: {}".format(
                ext, ", ".join(sorted(SUPPORTED_VIDEO_FORMATS))
            ),
        )


async def _store_upload(file: UploadFile) -> tuple[FileSource, Path]:
    """Save an upload to a fresh temp dir and describe it as a FileSource."""
    # Sanitize filename to prevent path traversal
    filename = Path(file.filename or "upload").name
    _validate_file_extension(filename)

    content = await file.read()
    if len(content) > MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=413,
            detail="Upload is {:.1f} MB; the limit is {:.0f} MB".format(
                len(content) / 1024 / 1024, MAX_UPLOAD_BYTES / 1024 / 1024
            ),
        )

    upload_dir = Path(tempfile.mkdtemp(prefix="autoremix_run_"))
    path = upload_dir / filename
    path.write_bytes(content)
    return FileSource(path=path, filename=filename, size=len(content)), upload_dir


def _remove_upload_dir() -> None:
    global _upload_dir
    if _upload_dir is not None:
        shutil.rmtree(_upload_dir, ignore_errors=True)
        _upload_dir = None


# ---------------------------------------------------------------------------
# Endpoints: Run
# ---------------------------------------------------------------------------


@app.post(
    "/run",
    response_model=RunResponse,
    status_code=201,
    tags=["run"],
    summary="Start a remix run",
    description=(
        "Start the pipeline for a source URL or an uploaded video file. "
        "Returns as soon as the run is in INGESTION; poll GET /run for progress."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "Invalid source or style options"},
        409: {"model": ErrorResponse, "description": "A run already exists"},
        413: {"model": ErrorResponse, "description": "Upload too large"},
    },
)
async def start_run(
    url: Annotated[
        Optional[str],
        Form(description="Source video URL (YouTube, Bilibili, TikTok, ...)."),
    ] = None,
    file: Annotated[
        Optional[UploadFile],
        File(description="Local video file to upload instead of a URL."),
    ] = None,
    tone: Annotated[
        str,
        Form(description="Narration tone. See GET /options."),
    ] = DEFAULT_TONE,
    target_duration: Annotated[
        str,
        Form(description="Target output length in seconds. See GET /options."),
    ] = str(DEFAULT_TARGET_DURATION),
    platform: Annotated[
        str,
        Form(description="Target platform: tiktok, youtube_shorts, instagram_reels."),
    ] = DEFAULT_PLATFORM,
    review: Annotated[
        bool,
        Form(description="Hold the run after plan generation until POST /run/plan/approve."),
    ] = False,
) -> RunResponse:
    global _upload_dir

    try:
        config = StyleConfig.from_values(tone, target_duration, platform)
    except InvalidStyleError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    if orchestrator.run is not None:
        raise HTTPException(
            status_code=409,
            detail="A run already exists (stage {}). DELETE /run first.".format(
                orchestrator.stage.value
            ),
        )
    if file is not None and url:
        raise HTTPException(status_code=400, detail="Provide either url or file, not both")

    upload_dir = None  # type: Optional[Path]
    if file is not None:
        source, upload_dir = await _store_upload(file)
    elif url is not None:
        source = UrlSource(url.strip())
    else:
        raise HTTPException(status_code=400, detail="Provide a source url or file")

    orchestrator.hold_for_review = review
    try:
        await orchestrator.start(source, config)
    except (InvalidSourceError, InvalidStyleError) as exc:
        if upload_dir is not None:
            shutil.rmtree(upload_dir, ignore_errors=True)
        raise HTTPException(status_code=400, detail=str(exc))
    except RunActiveError as exc:
        if upload_dir is not None:
            shutil.rmtree(upload_dir, ignore_errors=True)
        raise HTTPException(status_code=409, detail=str(exc))

    _upload_dir = upload_dir
    return _run_response()


@app.get(
    "/run",
    response_model=RunResponse,
    tags=["run"],
    summary="Get the current run",
    description="Current stage, metadata, output, and error. Stage is IDLE when no run exists.",
)
async def get_run() -> RunResponse:
    return _run_response()


@app.get(
    "/run/logs",
    response_model=LogListResponse,
    tags=["run"],
    summary="Get the run log",
    description="All log entries of the current run, oldest first.",
)
async def get_run_logs() -> LogListResponse:
    run = orchestrator.run
    return LogListResponse(
        run_id=run.id if run else None,
        entries=[LogEntryModel.from_entry(e) for e in orchestrator.log_entries],
    )


@app.delete(
    "/run",
    status_code=204,
    tags=["run"],
    summary="Reset the pipeline",
    description=(
        "Discard the current run from any stage and return to IDLE. Adapter "
        "calls already in flight are not cancelled; their results are dropped."
    ),
)
async def reset_run() -> Response:
    orchestrator.reset()
    _remove_upload_dir()
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Endpoints: Plan
# ---------------------------------------------------------------------------


@app.get(
    "/run/plan",
    response_model=PlanResponse,
    tags=["plan"],
    summary="Get the remix plan",
    description="Segments in render order, plus whether edits are still accepted.",
)
async def get_plan() -> PlanResponse:
    run = orchestrator.run
    segments = orchestrator.plan_segments
    return PlanResponse(
        run_id=run.id if run else None,
        stage=orchestrator.stage.value,
        locked=orchestrator.plan_locked,
        editable=orchestrator.stage.allows_plan_edits,
        total_duration=sum(s.duration for s in segments),
        segments=[SegmentModel.from_segment(s) for s in segments],
    )


@app.patch(
    "/run/plan/segments/{segment_id}",
    response_model=SegmentModel,
    tags=["plan"],
    summary="Rewrite a segment's narration",
    description="Only new_text can change, and only before SYNTHESIS.",
    responses={
        404: {"model": ErrorResponse, "description": "No run or unknown segment"},
        409: {"model": ErrorResponse, "description": "Plan is locked"},
        422: {"model": ErrorResponse, "description": "Blank text"},
    },
)
async def edit_segment(segment_id: str, body: SegmentEditRequest) -> SegmentModel:
    try:
        segment = orchestrator.edit_segment(segment_id, body.new_text)
    except SegmentNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except PlanLockedError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except InvalidEditError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return SegmentModel.from_segment(segment)


@app.post(
    "/run/plan/approve",
    response_model=RunResponse,
    tags=["plan"],
    summary="Approve the held plan",
    description="Release a run started with review=true so synthesis can begin.",
    responses={
        409: {"model": ErrorResponse, "description": "No plan is waiting for review"},
    },
)
async def approve_plan() -> RunResponse:
    try:
        orchestrator.approve_plan()
    except ReviewNotPendingError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return _run_response()


# ---------------------------------------------------------------------------
# Endpoints: Options and health
# ---------------------------------------------------------------------------


@app.get(
    "/options",
    response_model=OptionsResponse,
    tags=["options"],
    summary="List style options",
    description="Tones, target durations, and platforms accepted by POST /run.",
)
async def list_options() -> OptionsResponse:
    return OptionsResponse(
        tones=list(TONE_OPTIONS),
        target_durations=list(TARGET_DURATION_OPTIONS),
        platforms=[PlatformOption(value=p.value, name=p.display_name) for p in Platform],
    )


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
    description="Liveness check for load balancers and orchestrators.",
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__, backend=PIPELINE_BACKEND)


def run_api():
    """Entry point for the autoremix-api console script."""
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
