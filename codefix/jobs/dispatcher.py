"""Remote code fix service interface (HTTP or in-process)."""

from abc import ABC, abstractmethod
from typing import Optional

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

UPLOAD_INTENT = "CODE_FIX_GENERATION"


class CodeFixServiceError(Exception):
    """Raised by a service client when a remote call fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CodeFixServiceClient(ABC):
    """Abstract interface for the code fix service. Every call is keyed by a profile."""

    @abstractmethod
    async def request_upload_location(
        self,
        profile: RegionProfile,
        code_fix_name: str,
        content_md5: str,
        artifact_type: ArtifactType = ArtifactType.SOURCE_CODE,
    ) -> UploadLocation:
        """Obtain a presigned write location for one artifact."""
        ...

    @abstractmethod
    async def transfer_bytes(
        self, location: UploadLocation, data: bytes, content_md5: str
    ) -> None:
        """Upload the artifact bytes to a presigned location."""
        ...

    @abstractmethod
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
        """Start a code fix job. Returns the job id and its initial status."""
        ...

    @abstractmethod
    async def get_job_status(self, profile: RegionProfile, job_id: str) -> JobStatus:
        ...

    @abstractmethod
    async def get_job_result(
        self, profile: RegionProfile, job_id: str
    ) -> Optional[SuggestedFix]:
        """Return the suggested fix of a finished job, or None when there is none."""
        ...

    async def start(self) -> None:
        """Start background work, if any."""

    async def stop(self) -> None:
        """Release connections and background work."""
