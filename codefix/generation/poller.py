"""Polls a code fix job until it reaches a terminal status."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

from codefix.config import Settings
from codefix.generation.cancellation import CancellationToken
from codefix.generation.errors import PollingServiceFailedError, PollingTimeoutError
from codefix.jobs.dispatcher import CodeFixServiceClient, CodeFixServiceError
from codefix.jobs.models import JobStatus, RegionProfile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PollingPolicy:
    """Wait schedule and budget for status queries. Times are in seconds."""
    initial_delay: float = 10.0
    interval: float = 1.0
    backoff_multiplier: float = 1.0
    max_interval: float = 10.0
    timeout: float = 120.0
    max_attempts: int = 600

    def __post_init__(self):
        if self.interval <= 0:
            raise ValueError("interval must be positive")
        if self.backoff_multiplier < 1.0:
            raise ValueError("backoff_multiplier must be >= 1.0")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    @classmethod
    def from_settings(cls, s: Settings) -> "PollingPolicy":
        return cls(
            initial_delay=s.poll_initial_delay_s,
            interval=s.poll_interval_s,
            backoff_multiplier=s.poll_backoff_multiplier,
            max_interval=s.poll_max_interval_s,
            timeout=s.poll_timeout_s,
            max_attempts=s.poll_max_attempts,
        )

    def next_interval(self, current: float) -> float:
        return min(current * self.backoff_multiplier, max(self.max_interval, self.interval))


async def poll_job_status(
    client: CodeFixServiceClient,
    job_id: str,
    profile: RegionProfile,
    token: CancellationToken,
    policy: PollingPolicy = PollingPolicy(),
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> JobStatus:
    """Query job status until Succeeded or Failed and return that status.

    Raises CodeFixCancelledError if the token fires between queries and
    PollingTimeoutError once the attempt or wall-clock budget is spent.
    """
    started = clock()
    if policy.initial_delay > 0:
        await sleep(policy.initial_delay)

    interval = policy.interval
    attempts = 0
    while True:
        token.check()
        try:
            status = await client.get_job_status(profile, job_id)
        except CodeFixServiceError as e:
            raise PollingServiceFailedError(
                f"Status query for job {job_id} failed: {e}", job_id=job_id
            ) from e
        attempts += 1

        if status.is_terminal:
            logger.debug("Job %s reached %s after %d queries", job_id, status.value, attempts)
            return status

        if attempts >= policy.max_attempts or clock() - started > policy.timeout:
            raise PollingTimeoutError(
                f"Job {job_id} still {status.value} after {attempts} queries",
                job_id=job_id,
            )

        await sleep(interval)
        interval = policy.next_interval(interval)
