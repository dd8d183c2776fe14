"""Failure kinds raised by the code fix generation pipeline."""

from typing import Optional

from codefix.jobs.models import GenerationStage


class CodeFixError(Exception):
    """Base class. ``stage`` and ``job_id`` are filled in by the orchestrator."""

    kind = "CodeFixError"
    default_message = "Code fix generation failed"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        stage: Optional[GenerationStage] = None,
        job_id: Optional[str] = None,
    ):
        super().__init__(message or self.default_message)
        self.stage = stage
        self.job_id = job_id

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "stage": self.stage.value if self.stage else None,
            "message": str(self),
        }


class CodeFixCancelledError(CodeFixError):
    kind = "Cancelled"
    default_message = "Code fix generation was cancelled"


class PackagingFailedError(CodeFixError):
    kind = "PackagingFailed"
    default_message = "Failed to package source file"


class UploadFailedError(CodeFixError):
    kind = "UploadFailed"
    default_message = "Failed to upload source artifact"


class JobCreationFailedError(CodeFixError):
    kind = "JobCreationFailed"
    default_message = "Failed to create code fix job"


class PollingTimeoutError(CodeFixError):
    kind = "PollingTimeout"
    default_message = "Code fix job did not finish in time"


class PollingServiceFailedError(CodeFixError):
    kind = "PollingServiceFailed"
    default_message = "Code fix job failed"


class ResultFetchFailedError(CodeFixError):
    kind = "ResultFetchFailed"
    default_message = "Failed to fetch code fix result"
