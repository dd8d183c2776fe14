"""Retrieves the suggested fix of a succeeded job."""

import logging

from codefix.generation.cancellation import CancellationToken
from codefix.generation.errors import ResultFetchFailedError
from codefix.jobs.dispatcher import CodeFixServiceClient, CodeFixServiceError
from codefix.jobs.models import CodeFixResult, RegionProfile

logger = logging.getLogger(__name__)


async def fetch_code_fix_result(
    client: CodeFixServiceClient,
    job_id: str,
    profile: RegionProfile,
    token: CancellationToken,
) -> CodeFixResult:
    """Return the suggested fix of a succeeded job.

    Raises ResultFetchFailedError when the call fails or the payload is empty.
    """
    token.check()
    try:
        suggested_fix = await client.get_job_result(profile, job_id)
    except CodeFixServiceError as e:
        raise ResultFetchFailedError(
            f"Result fetch for job {job_id} failed: {e}", job_id=job_id
        ) from e

    if suggested_fix is None or suggested_fix.is_empty:
        raise ResultFetchFailedError(
            f"Job {job_id} succeeded but returned no suggested fix", job_id=job_id
        )
    return CodeFixResult(job_id=job_id, suggested_fix=suggested_fix)
