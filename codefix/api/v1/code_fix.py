"""Code fix generation API: start a run, poll its stage, cancel it."""

import os
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, ValidationError

from codefix.auth.supabase_auth import verify_jwt
from codefix.config import settings
from codefix.jobs.models import CodeFixRequest

router = APIRouter()

# These will be set by main.py during lifespan
_registry = None
_runner = None


def set_registry(registry):
    global _registry
    _registry = registry


def set_runner(runner):
    """runner: factory(content) -> coroutine function(run) running the orchestrator."""
    global _runner
    _runner = runner


class CodeFixStartRequest(BaseModel):
    file_path: str
    start_line: int = Field(ge=0)
    end_line: int = Field(ge=0)
    recommendation: str
    rule_id: str
    detector_id: str = ""
    language: str = "plaintext"
    code_fix_name: str = "code-fix"
    content: Optional[str] = None  # unsaved editor buffer, if any


def resolve_workspace_path(file_path: str) -> str:
    """Resolve ``file_path`` inside the workspace, or raise a 400."""
    root = os.path.realpath(settings.workspace_dir)
    resolved = os.path.realpath(os.path.join(root, file_path))
    if os.path.commonpath([root, resolved]) != root:
        raise HTTPException(status_code=400, detail="file_path must be inside the workspace")
    return resolved


class CodeFixStartResponse(BaseModel):
    run_id: str
    stage: str
    message: str


@router.post("/code-fix", response_model=CodeFixStartResponse, status_code=202)
async def start_code_fix(request: CodeFixStartRequest, user=Depends(verify_jwt)):
    """Start code fix generation for one issue."""
    if _registry is None or _runner is None:
        raise HTTPException(status_code=503, detail="Code fix service not initialized")

    try:
        fix_request = CodeFixRequest(
            **request.model_dump(exclude={"content", "file_path"}),
            file_path=resolve_workspace_path(request.file_path),
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=[err["msg"] for err in e.errors()])

    run = _registry.start(fix_request, _runner(request.content))
    return CodeFixStartResponse(
        run_id=run.run_id,
        stage=run.stage.value,
        message="Code fix generation started. Poll GET /api/v1/code-fix/{run_id} for status.",
    )


@router.get("/code-fix/{run_id}")
async def get_code_fix(run_id: str, user=Depends(verify_jwt)):
    """Get the stage, job id and (when finished) fix or error of a run."""
    if _registry is None:
        raise HTTPException(status_code=503, detail="Code fix service not initialized")

    run = _registry.get(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail="Run not found")
    return run.to_dict()


@router.post("/code-fix/{run_id}/cancel")
async def cancel_code_fix(run_id: str, user=Depends(verify_jwt)):
    """Request cancellation. Observed at the run's next suspension point."""
    if _registry is None:
        raise HTTPException(status_code=503, detail="Code fix service not initialized")

    run = _registry.get(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail="Run not found")
    if run.stage.is_terminal:
        raise HTTPException(status_code=409, detail=f"Run already {run.stage.value}")

    _registry.cancel(run_id)
    return {"run_id": run_id, "stage": run.stage.value, "cancel_requested": True}
