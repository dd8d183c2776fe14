"""Run-scoped generation state and a registry of concurrent runs."""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional

from codefix.generation.cancellation import CancellationToken
from codefix.generation.errors import CodeFixError
from codefix.jobs.models import CodeFixOutcome, CodeFixRequest, GenerationStage

logger = logging.getLogger(__name__)


@dataclass
class GenerationRun:
    """State of one generation run. Owned by exactly one orchestration."""
    request: CodeFixRequest
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    token: CancellationToken = field(default_factory=CancellationToken)
    stage: GenerationStage = GenerationStage.NOT_STARTED
    job_id: Optional[str] = None
    outcome: Optional[CodeFixOutcome] = None
    error: Optional[CodeFixError] = None

    def advance(self, stage: GenerationStage) -> None:
        """Move to the next stage. The token is checked before the transition fires."""
        self.token.check()
        logger.debug("Run %s: %s -> %s", self.run_id, self.stage.value, stage.value)
        self.stage = stage

    def to_dict(self) -> dict:
        data = {
            "run_id": self.run_id,
            "stage": self.stage.value,
            "job_id": self.job_id,
            "file_path": self.request.file_path,
        }
        if self.outcome is not None:
            data["suggested_fix"] = self.outcome.suggested_fix.model_dump()
        if self.error is not None:
            data["error"] = self.error.to_dict()
        return data


Runner = Callable[[GenerationRun], Awaitable[CodeFixOutcome]]


class RunRegistry:
    """Tracks API-started runs and their asyncio tasks."""

    def __init__(self):
        self._runs: Dict[str, GenerationRun] = {}
        self._tasks: Dict[str, asyncio.Task] = {}

    def start(self, request: CodeFixRequest, runner: Runner) -> GenerationRun:
        run = GenerationRun(request=request)
        self._runs[run.run_id] = run
        task = asyncio.create_task(self._execute(run, runner))
        self._tasks[run.run_id] = task
        task.add_done_callback(lambda _t, run_id=run.run_id: self._tasks.pop(run_id, None))
        return run

    async def _execute(self, run: GenerationRun, runner: Runner) -> None:
        try:
            await runner(run)
        except CodeFixError:
            # Recorded on the run by the orchestrator.
            pass

    def get(self, run_id: str) -> Optional[GenerationRun]:
        return self._runs.get(run_id)

    def list(self) -> List[GenerationRun]:
        return list(self._runs.values())

    def active_count(self) -> int:
        return sum(1 for run in self._runs.values() if not run.stage.is_terminal)

    def cancel(self, run_id: str) -> Optional[GenerationRun]:
        run = self._runs.get(run_id)
        if run is not None:
            run.token.cancel()
        return run

    async def wait(self, run_id: str) -> None:
        task = self._tasks.get(run_id)
        if task is not None:
            await asyncio.shield(task)

    async def shutdown(self) -> None:
        """Cancel every active run and wait for their cleanup to finish."""
        for run in self._runs.values():
            run.token.cancel()
        tasks = list(self._tasks.values())
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
