"""HTTP client for the remote code fix service."""

import logging
from typing import Any, Dict, Optional

import httpx

from codefix.jobs.dispatcher import UPLOAD_INTENT, CodeFixServiceClient, CodeFixServiceError
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


class HttpCodeFixClient(CodeFixServiceClient):
    """JSON-over-HTTPS service client. Artifacts go straight to the presigned URL."""

    def __init__(
        self,
        base_url: str,
        api_token: str = "",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Content-Type": "application/json"}
        if api_token:
            headers["Authorization"] = f"Bearer {api_token}"
        self._api = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )
        # Presigned uploads must not carry the service credentials
        self._uploads = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def stop(self) -> None:
        await self._api.aclose()
        await self._uploads.aclose()

    async def _call(
        self,
        method: str,
        path: str,
        profile: RegionProfile,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        headers = {}
        if profile.arn:
            headers["x-profile-arn"] = profile.arn
        if profile.region:
            headers["x-region"] = profile.region
        try:
            response = await self._api.request(method, path, json=json, headers=headers)
        except httpx.HTTPError as e:
            raise CodeFixServiceError(f"{method} {path} failed: {e}") from e
        if response.status_code >= 400:
            raise CodeFixServiceError(
                f"{method} {path} returned {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as e:
            raise CodeFixServiceError(f"{method} {path} returned invalid JSON") from e
        if not isinstance(data, dict):
            raise CodeFixServiceError(
                f"{method} {path} returned {type(data).__name__}, expected a JSON object"
            )
        return data

    async def request_upload_location(
        self,
        profile: RegionProfile,
        code_fix_name: str,
        content_md5: str,
        artifact_type: ArtifactType = ArtifactType.SOURCE_CODE,
    ) -> UploadLocation:
        data = await self._call("POST", "/upload-urls", profile, json={
            "contentMd5": content_md5,
            "artifactType": artifact_type.value,
            "uploadIntent": UPLOAD_INTENT,
            "uploadContext": {"codeFixUploadContext": {"codeFixName": code_fix_name}},
            "profileArn": profile.arn or None,
        })
        try:
            return UploadLocation.model_validate(data)
        except ValueError as e:
            raise CodeFixServiceError(f"Malformed upload location: {e}") from e

    async def transfer_bytes(
        self, location: UploadLocation, data: bytes, content_md5: str
    ) -> None:
        headers = {
            "Content-Type": "application/zip",
            "Content-MD5": content_md5,
            **location.request_headers,
        }
        if location.kms_key_arn:
            headers["x-amz-server-side-encryption"] = "aws:kms"
            headers["x-amz-server-side-encryption-aws-kms-key-id"] = location.kms_key_arn
        try:
            response = await self._uploads.put(location.upload_url, content=data, headers=headers)
        except httpx.HTTPError as e:
            raise CodeFixServiceError(f"Artifact transfer failed: {e}") from e
        if response.status_code >= 400:
            raise CodeFixServiceError(
                f"Artifact transfer returned {response.status_code}",
                status_code=response.status_code,
            )
        logger.debug("Transferred %d bytes for upload %s", len(data), location.upload_id)

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
        data = await self._call("POST", "/code-fix-jobs", profile, json={
            "uploadId": artifact.upload_id,
            "snippetRange": snippet_range.model_dump(),
            "description": description,
            "ruleId": rule_id,
            "codeFixName": code_fix_name,
            "referenceTrackerConfiguration": {
                "recommendationsWithReferences": reference_policy.value,
            },
            "profileArn": profile.arn or None,
        })
        try:
            return CodeFixJob(job_id=data.get("jobId"), status=JobStatus(data.get("status")))
        except ValueError as e:
            raise CodeFixServiceError(f"Malformed job response: {e}") from e

    async def _get_job(self, profile: RegionProfile, job_id: str) -> Dict[str, Any]:
        return await self._call("GET", f"/code-fix-jobs/{job_id}", profile)

    async def get_job_status(self, profile: RegionProfile, job_id: str) -> JobStatus:
        data = await self._get_job(profile, job_id)
        try:
            return JobStatus(data.get("jobStatus"))
        except ValueError as e:
            raise CodeFixServiceError(f"Unknown job status for {job_id}: {e}") from e

    async def get_job_result(
        self, profile: RegionProfile, job_id: str
    ) -> Optional[SuggestedFix]:
        data = await self._get_job(profile, job_id)
        fixes = data.get("suggestedFixes") or []
        if not fixes:
            return None
        try:
            return SuggestedFix.model_validate(fixes[0])
        except ValueError as e:
            raise CodeFixServiceError(f"Malformed suggested fix for {job_id}: {e}") from e
