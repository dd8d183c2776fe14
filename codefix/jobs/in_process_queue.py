"""In-process code fix service using asyncio for local development.

Implements the remote service contract without a network: uploads are kept
in memory and jobs are processed one at a time by a background task.
"""

import asyncio
import logging
import traceback
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from codefix.jobs.dispatcher import CodeFixServiceClient, CodeFixServiceError
from codefix.jobs.models import (
    ArtifactReference,
    ArtifactType,
    CodeFixJob,
    JobStatus,
    ReferencePolicy,
    RegionProfile,
    SnippetRange,
    SuggestedFix,
    UploadLocation,
)

logger = logging.getLogger(__name__)


@dataclass
class LocalJobRecord:
    """A job as tracked by the in-process service."""
    job_id: str
    artifact: bytes
    snippet_range: SnippetRange
    description: str
    rule_id: str
    code_fix_name: str
    reference_policy: ReferencePolicy
    status: JobStatus = JobStatus.PENDING
    suggested_fix: Optional[SuggestedFix] = None
    error: Optional[str] = None
    profile_arn: str = ""


class InProcessCodeFixService(CodeFixServiceClient):
    """Local async code fix service. Processes jobs one at a time via asyncio."""

    def __init__(self, worker_fn: Callable[[LocalJobRecord], Optional[SuggestedFix]]):
        """
        worker_fn: callable(job: LocalJobRecord) -> SuggestedFix | None
            Synchronous function that produces the fix from the uploaded archive.
            Will be called in a thread executor to avoid blocking the event loop.
        """
        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._uploads: Dict[str, Optional[bytes]] = {}
        self._jobs: Dict[str, LocalJobRecord] = {}
        self._worker_fn = worker_fn
        self._task: Optional[asyncio.Task] = None
        self._running = False

    def get_job(self, job_id: str) -> Optional[LocalJobRecord]:
        return self._jobs.get(job_id)

    async def request_upload_location(
        self,
        profile: RegionProfile,
        code_fix_name: str,
        content_md5: str,
        artifact_type: ArtifactType = ArtifactType.SOURCE_CODE,
    ) -> UploadLocation:
        upload_id = str(uuid.uuid4())
        self._uploads[upload_id] = None
        return UploadLocation(upload_id=upload_id, upload_url=f"local://uploads/{upload_id}")

    async def transfer_bytes(
        self, location: UploadLocation, data: bytes, content_md5: str
    ) -> None:
        if location.upload_id not in self._uploads:
            raise CodeFixServiceError(f"Unknown upload {location.upload_id}", status_code=404)
        self._uploads[location.upload_id] = data

    async def create_job(
        self,
        profile: RegionProfile,
        artifact: ArtifactReference,
        snippet_range: SnippetRange,
        description: str,
        reference_policy: ReferencePolicy,
        code_fix_name: str,
        rule_id: str,
    ) -> CodeFixJob:
        data = self._uploads.pop(artifact.upload_id, None)
        if data is None:
            raise CodeFixServiceError(f"Upload {artifact.upload_id} has no content", status_code=400)

        job = LocalJobRecord(
            job_id=str(uuid.uuid4()),
            artifact=data,
            snippet_range=snippet_range,
            description=description,
            rule_id=rule_id,
            code_fix_name=code_fix_name,
            reference_policy=reference_policy,
            profile_arn=profile.arn,
        )
        self._jobs[job.job_id] = job
        await self._queue.put(job.job_id)
        return CodeFixJob(job_id=job.job_id, status=job.status)

    async def get_job_status(self, profile: RegionProfile, job_id: str) -> JobStatus:
        return self._require(job_id).status

    async def get_job_result(
        self, profile: RegionProfile, job_id: str
    ) -> Optional[SuggestedFix]:
        job = self._require(job_id)
        if job.status != JobStatus.SUCCEEDED:
            raise CodeFixServiceError(f"Job {job_id} is {job.status.value}", status_code=409)
        return job.suggested_fix

    def _require(self, job_id: str) -> LocalJobRecord:
        job = self._jobs.get(job_id)
        if job is None:
            raise CodeFixServiceError(f"Job {job_id} not found", status_code=404)
        return job

    async def start(self) -> None:
        self._running = True
        self._task = asyncio.create_task(self._worker_loop())

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    async def _worker_loop(self) -> None:
        """Process jobs one at a time from the queue."""
        while self._running:
            try:
                job_id = await asyncio.wait_for(self._queue.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            except asyncio.CancelledError:
                break

            job = self._jobs.get(job_id)
            if job is None:
                continue

            job.status = JobStatus.IN_PROGRESS
            try:
                loop = asyncio.get_event_loop()
                job.suggested_fix = await loop.run_in_executor(None, self._worker_fn, job)
                job.status = JobStatus.SUCCEEDED
            except Exception as e:
                job.status = JobStatus.FAILED
                job.error = f"{type(e).__name__}: {str(e)}\n{traceback.format_exc()}"
                logger.warning("Local code fix job %s failed: %s", job_id, e)
