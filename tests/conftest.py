"""
Pytest configuration for the code fix service.

Puts the repository root on ``sys.path`` so ``import codefix...`` works without
an install, and provides a scripted fake of the remote service.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import List, Optional

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from codefix.generation.poller import PollingPolicy  # noqa: E402
from codefix.generation.runs import GenerationRun  # noqa: E402
from codefix.generation.telemetry import TelemetrySink  # noqa: E402
from codefix.jobs.dispatcher import CodeFixServiceClient, CodeFixServiceError  # noqa: E402
from codefix.jobs.models import (  # noqa: E402
    CodeFixJob,
    CodeFixRequest,
    JobStatus,
    RegionProfile,
    SuggestedFix,
    UploadLocation,
)
from codefix.storage.temp_artifacts import TempArtifactStore  # noqa: E402


class FakeServiceClient(CodeFixServiceClient):
    """Records every call; behaviour is scripted through attributes."""

    def __init__(
        self,
        job_id: str = "job-123",
        create_status: JobStatus = JobStatus.IN_PROGRESS,
        statuses: Optional[List[JobStatus]] = None,
        suggested_fix: Optional[SuggestedFix] = None,
    ):
        self.job_id = job_id
        self.create_status = create_status
        self.statuses = list(statuses or [JobStatus.SUCCEEDED])
        self.suggested_fix = suggested_fix if suggested_fix is not None else SuggestedFix(
            code_diff="--- a/app.py\n+++ b/app.py\n@@ -1 +1 @@\n-x = eval(s)\n+x = int(s)\n",
            description="Use int() instead of eval()",
        )
        self.calls: List[tuple] = []
        self.uploaded: Optional[bytes] = None
        self.fail_on: set = set()
        self.on_call = None  # callable(name) hook

    def _record(self, name: str, *args):
        self.calls.append((name, *args))
        if self.on_call is not None:
            self.on_call(name)
        if name in self.fail_on:
            raise CodeFixServiceError(f"{name} failed", status_code=500)

    @property
    def call_names(self) -> List[str]:
        return [c[0] for c in self.calls]

    async def request_upload_location(self, profile, code_fix_name, content_md5, artifact_type=None):
        self._record("request_upload_location", code_fix_name, content_md5)
        return UploadLocation(upload_id="upload-1", upload_url="https://uploads.example.com/upload-1")

    async def transfer_bytes(self, location, data, content_md5):
        self._record("transfer_bytes", location.upload_id, content_md5)
        self.uploaded = data

    async def create_job(self, profile, artifact, snippet_range, description,
                         reference_policy, code_fix_name, rule_id):
        self._record("create_job", artifact, snippet_range, description,
                     reference_policy, code_fix_name, rule_id)
        return CodeFixJob(job_id=self.job_id, status=self.create_status)

    async def get_job_status(self, profile, job_id):
        self._record("get_job_status", job_id)
        if len(self.statuses) > 1:
            return self.statuses.pop(0)
        return self.statuses[0]

    async def get_job_result(self, profile, job_id):
        self._record("get_job_result", job_id)
        return self.suggested_fix


class RecordingSink(TelemetrySink):
    def __init__(self):
        self.events = []

    def emit(self, event):
        self.events.append(event)


@pytest.fixture
def fake_client() -> FakeServiceClient:
    return FakeServiceClient()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def store(tmp_path) -> TempArtifactStore:
    return TempArtifactStore(base_dir=str(tmp_path / "artifacts"))


@pytest.fixture
def profile() -> RegionProfile:
    return RegionProfile(arn="arn:aws:codewhisperer:us-east-1:123:profile/test", region="us-east-1")


@pytest.fixture
def fast_polling() -> PollingPolicy:
    return PollingPolicy(initial_delay=0, interval=0.001, max_interval=0.001, timeout=5.0, max_attempts=50)


@pytest.fixture
def source_file(tmp_path) -> Path:
    path = tmp_path / "src" / "app.py"
    path.parent.mkdir()
    path.write_text("".join(f"line_{i} = {i}   \n" for i in range(12)))
    return path


@pytest.fixture
def fix_request(source_file) -> CodeFixRequest:
    return CodeFixRequest(
        file_path=str(source_file),
        start_line=4,
        end_line=9,
        recommendation="Avoid eval on untrusted input",
        rule_id="python-eval-rule",
        detector_id="python/eval@v1.0",
        language="python",
        code_fix_name="fix-eval",
    )


@pytest.fixture
def run(fix_request) -> GenerationRun:
    return GenerationRun(request=fix_request)
