"""Tests for the run controller HTTP API.

WHY: The HTTP surface is how an editing UI drives the pipeline. Status
codes, the single-run rule, upload handling, and the review/edit flow
must match what clients are written against.

HOW: The module-level orchestrator in autoremix.server.app is replaced
with one built on the fake adapters from conftest. TestClient is used as
a context manager so the pipeline task created by POST /run keeps running
on the client's event loop between requests. Tests poll GET /run until
the stage they expect.

Organised by endpoint group:
  - TestStartRun: POST /run by URL and by upload, validation, 409
  - TestRunStatus: GET /run, GET /run/logs, failures, DELETE /run
  - TestPlanEditing: GET /run/plan, PATCH segment, approve
  - TestOptions: GET /options, GET /health

RULES:
- Never sleep longer than a poll tick; fakes answer immediately
- Every test runs against a fresh orchestrator
"""

from __future__ import annotations

import time

import pytest
from fastapi.testclient import TestClient

import autoremix.server.app as app_module
from autoremix import __version__
from autoremix.adapters.base import AdapterError
from autoremix.config import TARGET_DURATION_OPTIONS, TONE_OPTIONS
from autoremix.core.models import FileSource
from autoremix.core.orchestrator import PipelineOrchestrator

from conftest import SCENARIO_OUTPUT_URI, SCENARIO_URL

TERMINAL = ("COMPLETE", "ERROR")


@pytest.fixture
def api(pipeline, monkeypatch):
    monkeypatch.setattr(app_module, "orchestrator", PipelineOrchestrator(pipeline.adapters()))
    monkeypatch.setattr(app_module, "_upload_dir", None)
    with TestClient(app_module.app) as client:
        yield client


def _wait_for(client, predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while True:
        body = client.get("/run").json()
        if predicate(body):
            return body
        if time.monotonic() > deadline:
            raise AssertionError("Run never reached the expected state: {}".format(body))
        time.sleep(0.01)


def _wait_terminal(client):
    return _wait_for(client, lambda body: body["stage"] in TERMINAL)


def _start(client, **fields):
    data = {"url": SCENARIO_URL}
    data.update(fields)
    return client.post("/run", data=data)


# ---------------------------------------------------------------------------
# TestStartRun
# ---------------------------------------------------------------------------


class TestStartRun:
    def test_url_run_starts_in_ingestion(self, api):
        resp = _start(api)
        assert resp.status_code == 201
        body = resp.json()
        assert body["stage"] == "INGESTION"
        assert body["source"] == SCENARIO_URL
        assert body["config"] == {
            "tone": "humorous, fast-paced",
            "target_duration_seconds": 30,
            "platform": "tiktok",
        }
        assert body["id"]

    def test_url_run_completes(self, api, pipeline):
        _start(api, tone="epic, cinematic", target_duration="60", platform="youtube_shorts")
        body = _wait_terminal(api)
        assert body["stage"] == "COMPLETE"
        assert body["output_uri"] == SCENARIO_OUTPUT_URI
        assert body["plan_locked"] is True
        assert body["metadata"]["title"] == "T"
        assert body["completed_at"] is not None
        config = pipeline.script_writer.calls[0][1]
        assert config.target_duration_seconds == 60
        assert config.platform.value == "youtube_shorts"

    def test_upload_run(self, api, pipeline):
        resp = api.post(
            "/run",
            files={"file": ("clip.mp4", b"fake video bytes", "video/mp4")},
        )
        assert resp.status_code == 201
        assert resp.json()["source"] == "clip.mp4"
        assert _wait_terminal(api)["stage"] == "COMPLETE"

        source = pipeline.ingestor.calls[0][0]
        assert isinstance(source, FileSource)
        assert source.size == len(b"fake video bytes")
        upload_dir = app_module._upload_dir
        assert upload_dir.name.startswith("autoremix_run_")
        assert source.path.parent == upload_dir
        assert source.path.read_bytes() == b"fake video bytes"

        assert api.delete("/run").status_code == 204
        assert not upload_dir.exists()

    def test_upload_path_is_sanitised(self, api, pipeline):
        resp = api.post(
            "/run",
            files={"file": ("../../etc/clip.mov", b"data", "video/quicktime")},
        )
        assert resp.status_code == 201
        _wait_terminal(api)
        source = pipeline.ingestor.calls[0][0]
        assert source.filename == "clip.mov"
        assert source.path.parent == app_module._upload_dir

    def test_unsupported_extension(self, api):
        resp = api.post("/run", files={"file": ("notes.txt", b"data", "text/plain")})
        assert resp.status_code == 400
        assert "Unsupported file type '.txt'" in resp.json()["detail"]
        assert api.get("/run").json()["stage"] == "IDLE"

    def test_empty_upload(self, api):
        resp = api.post("/run", files={"file": ("clip.mp4", b"", "video/mp4")})
        assert resp.status_code == 400
        assert "empty" in resp.json()["detail"]
        assert api.get("/run").json()["stage"] == "IDLE"
        assert app_module._upload_dir is None

    def test_upload_too_large(self, api, monkeypatch):
        monkeypatch.setattr(app_module, "MAX_UPLOAD_BYTES", 4)
        resp = api.post("/run", files={"file": ("clip.mp4", b"12345", "video/mp4")})
        assert resp.status_code == 413

    def test_whitespace_url(self, api, pipeline):
        resp = _start(api, url="   ")
        assert resp.status_code == 400
        assert api.get("/run").json()["stage"] == "IDLE"
        assert pipeline.call_counts()["ingest"] == 0

    def test_no_source(self, api):
        resp = api.post("/run", data={"tone": "humorous, fast-paced"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Provide a source url or file"

    def test_url_and_file(self, api):
        resp = api.post(
            "/run",
            data={"url": SCENARIO_URL},
            files={"file": ("clip.mp4", b"data", "video/mp4")},
        )
        assert resp.status_code == 400

    @pytest.mark.parametrize(
        "fields",
        [
            {"tone": "grumpy"},
            {"target_duration": "45"},
            {"target_duration": "thirty"},
            {"platform": "vine"},
        ],
    )
    def test_invalid_style(self, api, fields):
        resp = _start(api, **fields)
        assert resp.status_code == 400
        assert api.get("/run").json()["stage"] == "IDLE"

    def test_second_run_conflicts(self, api):
        first = _start(api, review="true")
        assert first.status_code == 201
        _wait_for(api, lambda body: body["awaiting_review"])

        second = _start(api)
        assert second.status_code == 409
        assert "DELETE /run" in second.json()["detail"]
        assert api.get("/run").json()["id"] == first.json()["id"]

    def test_finished_run_must_be_reset(self, api):
        _start(api)
        _wait_terminal(api)
        assert _start(api).status_code == 409

        assert api.delete("/run").status_code == 204
        resp = _start(api)
        assert resp.status_code == 201
        assert _wait_terminal(api)["stage"] == "COMPLETE"


# ---------------------------------------------------------------------------
# TestRunStatus
# ---------------------------------------------------------------------------


class TestRunStatus:
    def test_idle(self, api):
        body = api.get("/run").json()
        assert body["stage"] == "IDLE"
        assert body["id"] is None
        logs = api.get("/run/logs").json()
        assert logs == {"run_id": None, "entries": []}

    def test_logs(self, api):
        run_id = _start(api).json()["id"]
        _wait_terminal(api)
        logs = api.get("/run/logs").json()
        assert logs["run_id"] == run_id
        entries = logs["entries"]
        assert entries[0]["message"] == "Stage IDLE -> INGESTION"
        assert entries[0]["stage"] == "INGESTION"
        assert entries[-1]["level"] == "success"
        assert entries[-1]["stage"] == "COMPLETE"
        timestamps = [e["timestamp"] for e in entries]
        assert timestamps == sorted(timestamps)
        assert all(len(e["clock"]) == 8 for e in entries)

    def test_render_failure(self, api, pipeline):
        pipeline.renderer.error = AdapterError("Render farm unavailable")
        _start(api)
        body = _wait_terminal(api)
        assert body["stage"] == "ERROR"
        assert body["failed_stage"] == "SYNTHESIS"
        assert body["error"] == "Render farm unavailable"
        assert body["output_uri"] is None

        last = api.get("/run/logs").json()["entries"][-1]
        assert last["level"] == "error"
        assert last["stage"] == "SYNTHESIS"
        assert last["message"] == "Error: Render farm unavailable"

    def test_context_failure_still_completes(self, api, pipeline):
        pipeline.analyzer.error = RuntimeError("vision model offline")
        _start(api)
        assert _wait_terminal(api)["stage"] == "COMPLETE"
        levels = [e["level"] for e in api.get("/run/logs").json()["entries"]]
        assert "warning" in levels
        assert "error" not in levels

    def test_reset_returns_to_idle(self, api, pipeline):
        _start(api, review="true")
        _wait_for(api, lambda body: body["awaiting_review"])

        assert api.delete("/run").status_code == 204
        assert api.get("/run").json()["stage"] == "IDLE"
        assert api.get("/run/plan").json()["segments"] == []
        assert pipeline.call_counts()["render"] == 0

    def test_reset_when_idle(self, api):
        assert api.delete("/run").status_code == 204
        assert api.get("/run").json()["stage"] == "IDLE"


# ---------------------------------------------------------------------------
# TestPlanEditing
# ---------------------------------------------------------------------------


class TestPlanEditing:
    def _hold(self, api):
        _start(api, review="true")
        return _wait_for(api, lambda body: body["awaiting_review"])

    def test_plan_while_held(self, api):
        body = self._hold(api)
        assert body["stage"] == "RECREATION"
        plan = api.get("/run/plan").json()
        assert plan["run_id"] == body["id"]
        assert plan["locked"] is False
        assert plan["editable"] is True
        assert [s["id"] for s in plan["segments"]] == ["1", "2", "3"]
        assert plan["total_duration"] == 12.0

    def test_edit_then_approve(self, api, pipeline):
        self._hold(api)
        resp = api.patch("/run/plan/segments/2", json={"new_text": "Dependency hell, speed-run."})
        assert resp.status_code == 200
        assert resp.json()["new_text"] == "Dependency hell, speed-run."
        assert resp.json()["original_start"] == 8.0

        approved = api.post("/run/plan/approve")
        assert approved.status_code == 200
        assert _wait_terminal(api)["stage"] == "COMPLETE"

        rendered = pipeline.renderer.calls[0][0]
        assert [s.new_text for s in rendered] == [
            "New agent. Let's go.",
            "Dependency hell, speed-run.",
            "But then... it flies.",
        ]
        plan = api.get("/run/plan").json()
        assert plan["locked"] is True
        assert plan["editable"] is False

    def test_unknown_segment(self, api):
        self._hold(api)
        resp = api.patch("/run/plan/segments/99", json={"new_text": "x"})
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Segment '99' not found in plan"

    def test_blank_edit(self, api):
        self._hold(api)
        resp = api.patch("/run/plan/segments/1", json={"new_text": "   "})
        assert resp.status_code == 422
        plan = api.get("/run/plan").json()
        assert plan["segments"][0]["new_text"] == "New agent. Let's go."

    def test_missing_body_field(self, api):
        self._hold(api)
        resp = api.patch("/run/plan/segments/1", json={})
        assert resp.status_code == 422

    def test_edit_without_run(self, api):
        resp = api.patch("/run/plan/segments/1", json={"new_text": "x"})
        assert resp.status_code == 404

    def test_edit_after_completion(self, api):
        _start(api)
        _wait_terminal(api)
        resp = api.patch("/run/plan/segments/1", json={"new_text": "too late"})
        assert resp.status_code == 409
        assert api.get("/run/plan").json()["segments"][0]["new_text"] == "New agent. Let's go."

    def test_edit_after_failure(self, api, pipeline):
        pipeline.renderer.error = AdapterError("boom")
        _start(api)
        assert _wait_terminal(api)["stage"] == "ERROR"
        resp = api.patch("/run/plan/segments/1", json={"new_text": "x"})
        assert resp.status_code == 409

    def test_approve_without_hold(self, api):
        assert api.post("/run/plan/approve").status_code == 409
        _start(api)
        _wait_terminal(api)
        assert api.post("/run/plan/approve").status_code == 409


# ---------------------------------------------------------------------------
# TestOptions
# ---------------------------------------------------------------------------


class TestOptions:
    def test_options(self, api):
        body = api.get("/options").json()
        assert body["tones"] == list(TONE_OPTIONS)
        assert body["target_durations"] == list(TARGET_DURATION_OPTIONS)
        platforms = {p["value"]: p["name"] for p in body["platforms"]}
        assert set(platforms) == {"tiktok", "youtube_shorts", "instagram_reels"}
        assert platforms["tiktok"] == "TikTok"

    def test_health(self, api):
        body = api.get("/health").json()
        assert body["status"] == "ok"
        assert body["version"] == __version__
        assert body["backend"]
