"""Code fix generation orchestrator.

Drives one run through its stages:
1. Flush unsaved edits and package the source file
2. Upload the artifact (local copy always discarded)
3. Create the code fix job
4. Poll the job until it is terminal
5. Fetch the suggested fix

A cancellation check precedes every stage. Whatever happens, the token's
in-progress marker is reset and exactly one telemetry event is emitted.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from codefix.generation.errors import (
    CodeFixCancelledError,
    CodeFixError,
    PackagingFailedError,
    PollingServiceFailedError,
)
from codefix.generation.fetcher import fetch_code_fix_result
from codefix.generation.packager import package_source_file
from codefix.generation.poller import PollingPolicy, poll_job_status
from codefix.generation.runs import GenerationRun
from codefix.generation.submitter import create_code_fix_job
from codefix.generation.telemetry import CodeFixGenerationEvent, TelemetrySink, fix_size
from codefix.generation.uploader import upload_artifact
from codefix.io.documents import save_document_if_dirty
from codefix.jobs.dispatcher import CodeFixServiceClient
from codefix.jobs.models import (
    CodeFixOutcome,
    GenerationStage,
    JobStatus,
    ReferencePolicy,
    RegionProfile,
    SnippetRange,
)
from codefix.storage.temp_artifacts import TempArtifactStore

logger = logging.getLogger(__name__)

DocumentFlusher = Callable[[str], Awaitable[object]]


async def generate_code_fix(
    client: CodeFixServiceClient,
    run: GenerationRun,
    *,
    profile: RegionProfile,
    reference_policy: ReferencePolicy,
    telemetry: TelemetrySink,
    store: TempArtifactStore,
    polling: PollingPolicy = PollingPolicy(),
    flush: Optional[DocumentFlusher] = None,
) -> CodeFixOutcome:
    """Generate a code fix for ``run.request``.

    Returns the suggested fix and job id. Raises a CodeFixError subclass whose
    ``stage`` and ``job_id`` describe where the run stopped.
    """
    request = run.request
    token = run.token
    token.mark_in_progress()
    try:
        logger.debug(
            "Starting code fix generation for lines %d through %d of file %s",
            request.start_line + 1, request.end_line, request.file_path,
        )

        run.advance(GenerationStage.PACKAGING)
        try:
            if flush is None:
                await save_document_if_dirty(request.file_path)
            else:
                await flush(request.file_path)
        except OSError as e:
            raise PackagingFailedError(
                f"Failed to save unsaved changes to {request.file_path}: {e}"
            ) from e

        with store.staged_artifact(run.run_id) as artifact_path:
            await package_source_file(request.file_path, artifact_path, token)

            run.advance(GenerationStage.UPLOADING)
            artifact = await upload_artifact(
                client, artifact_path, request.code_fix_name, profile, token, store
            )

        run.advance(GenerationStage.JOB_CREATED)
        job = await create_code_fix_job(
            client,
            artifact,
            SnippetRange.from_issue_lines(request.start_line, request.end_line),
            request.recommendation,
            reference_policy,
            request.code_fix_name,
            request.rule_id,
            profile,
            token,
        )
        run.job_id = job.job_id
        logger.debug("Created code fix job %s", job.job_id)

        run.advance(GenerationStage.POLLING)
        status = await poll_job_status(client, job.job_id, profile, token, polling)
        if status == JobStatus.FAILED:
            logger.debug("Code fix job %s failed", job.job_id)
            raise PollingServiceFailedError(job_id=job.job_id)

        token.check()
        logger.debug("Code fix job %s succeeded, fetching result", job.job_id)
        result = await fetch_code_fix_result(client, job.job_id, profile, token)
        logger.debug("Suggested fix for job %s: %s", job.job_id, result.suggested_fix.model_dump_json())

        run.outcome = CodeFixOutcome(suggested_fix=result.suggested_fix, job_id=job.job_id)
        run.stage = GenerationStage.SUCCEEDED
        return run.outcome
    except asyncio.CancelledError:
        _record_failure(run, CodeFixCancelledError("Code fix generation task was cancelled"))
        logger.info("Code fix generation task for %s was cancelled (job_id=%s)", request.file_path, run.job_id)
        raise
    except Exception as e:
        error = e if isinstance(e, CodeFixError) else CodeFixError(str(e))
        _record_failure(run, error)
        logger.error(
            "Code fix generation failed at %s (job_id=%s, file=%s, lines %d-%d): %s",
            error.stage.value, run.job_id, request.file_path,
            request.start_line, request.end_line, error,
        )
        if error is e:
            raise
        raise error from e
    finally:
        token.reset()
        _emit_telemetry(telemetry, run)


def _record_failure(run: GenerationRun, error: CodeFixError) -> None:
    if error.stage is None:
        error.stage = run.stage
    if error.job_id is None:
        error.job_id = run.job_id
    elif run.job_id is None:
        run.job_id = error.job_id
    run.error = error
    if isinstance(error, CodeFixCancelledError):
        run.stage = GenerationStage.CANCELLED
    else:
        run.stage = GenerationStage.FAILED


def _emit_telemetry(sink: TelemetrySink, run: GenerationRun) -> None:
    suggested_fix = run.outcome.suggested_fix if run.outcome else None
    lines, chars = fix_size(suggested_fix)
    event = CodeFixGenerationEvent(
        job_id=run.job_id,
        language=run.request.language,
        rule_id=run.request.rule_id,
        detector_id=run.request.detector_id,
        lines_changed=lines,
        chars_changed=chars,
        result=run.stage.value,
        reason=run.error.kind if run.error else None,
    )
    try:
        sink.emit(event)
    except Exception as e:
        logger.warning("Telemetry sink failed for run %s: %s", run.run_id, e)
