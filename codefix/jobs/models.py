"""Data model for code fix generation runs and remote code fix jobs."""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


class JobStatus(str, Enum):
    PENDING = "Pending"
    IN_PROGRESS = "InProgress"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED)


class GenerationStage(str, Enum):
    NOT_STARTED = "NotStarted"
    PACKAGING = "Packaging"
    UPLOADING = "Uploading"
    JOB_CREATED = "JobCreated"
    POLLING = "Polling"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    CANCELLED = "Cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (
            GenerationStage.SUCCEEDED,
            GenerationStage.FAILED,
            GenerationStage.CANCELLED,
        )


class ReferencePolicy(str, Enum):
    ALLOW = "ALLOW"
    BLOCK = "BLOCK"

    @classmethod
    def from_setting(cls, include_references: bool) -> "ReferencePolicy":
        return cls.ALLOW if include_references else cls.BLOCK


class ArtifactType(str, Enum):
    SOURCE_CODE = "SourceCode"


class CodeFixRequest(BaseModel):
    """A single issue to fix. Lines are the issue's 0-indexed range."""
    file_path: str
    start_line: int = Field(ge=0)
    end_line: int = Field(ge=0)
    recommendation: str
    rule_id: str
    detector_id: str = ""
    language: str = "plaintext"
    code_fix_name: str = "code-fix"

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_range(self) -> "CodeFixRequest":
        if self.end_line < self.start_line:
            raise ValueError("end_line must be >= start_line")
        return self


class Position(BaseModel):
    line: int
    character: int = 0


class SnippetRange(BaseModel):
    start: Position
    end: Position

    @classmethod
    def from_issue_lines(cls, start_line: int, end_line: int) -> "SnippetRange":
        """Build the range sent to the service from a 0-indexed issue range.

        Only the start line is shifted by one; the end line is passed through.
        """
        return cls(
            start=Position(line=start_line + 1, character=0),
            end=Position(line=end_line, character=0),
        )


class RegionProfile(BaseModel):
    arn: str = ""
    region: str = ""


class UploadLocation(BaseModel):
    """Presigned, time-limited destination for an artifact."""
    upload_id: str = Field(alias="uploadId")
    upload_url: str = Field(alias="uploadUrl")
    request_headers: Dict[str, str] = Field(default_factory=dict, alias="requestHeaders")
    kms_key_arn: Optional[str] = Field(default=None, alias="kmsKeyArn")

    model_config = {"populate_by_name": True}


class ArtifactReference(BaseModel):
    artifact_type: ArtifactType = ArtifactType.SOURCE_CODE
    upload_id: str


class CodeFixJob(BaseModel):
    job_id: Optional[str] = Field(default=None, alias="jobId")
    status: JobStatus

    model_config = {"populate_by_name": True}


class CodeReference(BaseModel):
    license_name: Optional[str] = Field(default=None, alias="licenseName")
    repository: Optional[str] = None
    url: Optional[str] = None

    model_config = {"populate_by_name": True}


class SuggestedFix(BaseModel):
    code_diff: str = Field(default="", alias="codeDiff")
    description: str = ""
    references: List[CodeReference] = Field(default_factory=list)

    model_config = {"populate_by_name": True}

    @property
    def is_empty(self) -> bool:
        return not self.code_diff and not self.description


class CodeFixResult(BaseModel):
    job_id: str
    suggested_fix: SuggestedFix


class CodeFixOutcome(BaseModel):
    """Successful result of one generation run."""
    suggested_fix: SuggestedFix
    job_id: str
