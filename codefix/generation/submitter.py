"""Creates the remote code fix job."""

import logging

from codefix.generation.cancellation import CancellationToken
from codefix.generation.errors import JobCreationFailedError
from codefix.jobs.dispatcher import CodeFixServiceClient, CodeFixServiceError
from codefix.jobs.models import (
    ArtifactReference,
    CodeFixJob,
    JobStatus,
    ReferencePolicy,
    RegionProfile,
    SnippetRange,
)

logger = logging.getLogger(__name__)


async def create_code_fix_job(
    client: CodeFixServiceClient,
    artifact: ArtifactReference,
    snippet_range: SnippetRange,
    description: str,
    reference_policy: ReferencePolicy,
    code_fix_name: str,
    rule_id: str,
    profile: RegionProfile,
    token: CancellationToken,
) -> CodeFixJob:
    """Start a code fix job for an uploaded artifact.

    An immediate ``Failed`` status is a creation failure, not a polling one.
    """
    token.check()
    try:
        job = await client.create_job(
            profile,
            artifact,
            snippet_range,
            description,
            reference_policy,
            code_fix_name,
            rule_id,
        )
    except CodeFixServiceError as e:
        raise JobCreationFailedError(f"Code fix job creation failed: {e}") from e

    if job.status == JobStatus.FAILED:
        raise JobCreationFailedError(job_id=job.job_id)
    if not job.job_id:
        raise JobCreationFailedError("Service did not return a job id")

    logger.debug("Created code fix job %s (status=%s)", job.job_id, job.status.value)
    return job
