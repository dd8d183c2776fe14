from __future__ import annotations

import os
import time

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from conftest import FakeServiceClient, RecordingSink
from codefix.api.v1 import code_fix as code_fix_api
from codefix.api.v1 import health as health_api
from codefix.api.v1.router import v1_router
from codefix.auth.supabase_auth import verify_jwt
from codefix.generation.orchestrator import generate_code_fix
from codefix.generation.poller import PollingPolicy
from codefix.generation.runs import RunRegistry
from codefix.jobs.models import JobStatus, ReferencePolicy, RegionProfile


@pytest.fixture
def service(store, tmp_path, monkeypatch):
    monkeypatch.setattr(code_fix_api.settings, "workspace_dir", str(tmp_path / "src"))
    fake = FakeServiceClient()
    sink = RecordingSink()
    polling = PollingPolicy(initial_delay=0, interval=0.01, max_interval=0.01, max_attempts=500)

    def runner_for(content):
        async def runner(run):
            return await generate_code_fix(
                fake,
                run,
                profile=RegionProfile(arn="arn:test", region="us-east-1"),
                reference_policy=ReferencePolicy.ALLOW,
                telemetry=sink,
                store=store,
                polling=polling,
            )
        return runner

    registry = RunRegistry()
    code_fix_api.set_registry(registry)
    code_fix_api.set_runner(runner_for)
    health_api.set_registry(registry)
    yield fake, sink, registry
    code_fix_api.set_registry(None)
    code_fix_api.set_runner(None)
    health_api.set_registry(None)


@pytest.fixture
def app():
    app = FastAPI()
    app.include_router(v1_router)
    app.dependency_overrides[verify_jwt] = lambda: {"id": "user-1"}
    return app


def _body(source_file, **overrides):
    body = {
        "file_path": str(source_file),
        "start_line": 4,
        "end_line": 9,
        "recommendation": "Avoid eval",
        "rule_id": "python-eval-rule",
        "detector_id": "python/eval@v1.0",
        "language": "python",
    }
    body.update(overrides)
    return body


def _wait_terminal(client, run_id, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        data = client.get(f"/api/v1/code-fix/{run_id}").json()
        if data["stage"] in ("Succeeded", "Failed", "Cancelled"):
            return data
        time.sleep(0.01)
    raise AssertionError(f"run {run_id} did not finish")


def test_start_and_poll_run(app, service, source_file) -> None:
    fake, sink, _ = service
    with TestClient(app) as client:
        response = client.post("/api/v1/code-fix", json=_body(source_file))
        assert response.status_code == 202
        run_id = response.json()["run_id"]

        data = _wait_terminal(client, run_id)

    assert data["stage"] == "Succeeded"
    assert data["job_id"] == "job-123"
    assert data["suggested_fix"]["description"] == "Use int() instead of eval()"
    assert len(sink.events) == 1


def test_failed_run_reports_error(app, service, source_file) -> None:
    fake, _, _ = service
    fake.create_status = JobStatus.FAILED
    with TestClient(app) as client:
        run_id = client.post("/api/v1/code-fix", json=_body(source_file)).json()["run_id"]
        data = _wait_terminal(client, run_id)

    assert data["stage"] == "Failed"
    assert data["error"]["kind"] == "JobCreationFailed"
    assert data["error"]["stage"] == "JobCreated"


def test_cancel_running_job(app, service, source_file) -> None:
    fake, sink, _ = service
    fake.statuses = [JobStatus.IN_PROGRESS]
    with TestClient(app) as client:
        run_id = client.post("/api/v1/code-fix", json=_body(source_file)).json()["run_id"]

        deadline = time.monotonic() + 5.0
        while "get_job_status" not in fake.call_names and time.monotonic() < deadline:
            time.sleep(0.01)

        response = client.post(f"/api/v1/code-fix/{run_id}/cancel")
        assert response.status_code == 200
        data = _wait_terminal(client, run_id)

        assert data["stage"] == "Cancelled"
        assert data["job_id"] == "job-123"
        assert client.post(f"/api/v1/code-fix/{run_id}/cancel").status_code == 409
    assert sink.events[0].job_id == "job-123"


def test_unknown_run_is_404(app, service) -> None:
    with TestClient(app) as client:
        assert client.get("/api/v1/code-fix/nope").status_code == 404
        assert client.post("/api/v1/code-fix/nope/cancel").status_code == 404


def test_invalid_range_is_rejected(app, service, source_file) -> None:
    with TestClient(app) as client:
        response = client.post("/api/v1/code-fix", json=_body(source_file, start_line=9, end_line=4))
    assert response.status_code == 422


def test_missing_token_is_401(service, source_file) -> None:
    app = FastAPI()
    app.include_router(v1_router)
    with TestClient(app) as client:
        response = client.post("/api/v1/code-fix", json=_body(source_file))
    assert response.status_code == 401


def test_status_and_cancel_require_token(app, service, source_file) -> None:
    with TestClient(app) as client:
        run_id = client.post("/api/v1/code-fix", json=_body(source_file)).json()["run_id"]
        _wait_terminal(client, run_id)

    del app.dependency_overrides[verify_jwt]
    with TestClient(app) as client:
        assert client.get(f"/api/v1/code-fix/{run_id}").status_code == 401
        assert client.post(f"/api/v1/code-fix/{run_id}/cancel").status_code == 401
        assert client.get(f"/api/v1/code-fix/{run_id}", headers={"Authorization": "Basic abc"}).status_code == 401


def test_paths_outside_workspace_are_rejected(app, service, source_file, tmp_path) -> None:
    fake, sink, registry = service
    outside = tmp_path / "secret.txt"
    outside.write_text("keep me\n")

    with TestClient(app) as client:
        for path in ("../secret.txt", str(outside), "/etc/passwd"):
            response = client.post("/api/v1/code-fix", json=_body(source_file, file_path=path, content="overwritten\n"))
            assert response.status_code == 400

    assert outside.read_text() == "keep me\n"
    assert registry.list() == []
    assert fake.calls == []
    assert sink.events == []


def test_relative_path_resolves_inside_workspace(app, service, source_file) -> None:
    fake, _, registry = service
    with TestClient(app) as client:
        run_id = client.post("/api/v1/code-fix", json=_body(source_file, file_path="app.py")).json()["run_id"]
        data = _wait_terminal(client, run_id)

    assert data["stage"] == "Succeeded"
    assert registry.get(run_id).request.file_path == os.path.realpath(source_file)


def test_health_reports_runs(app, service) -> None:
    with TestClient(app) as client:
        data = client.get("/api/v1/health").json()
    assert data["status"] == "healthy"
    assert data["active_runs"] == 0
