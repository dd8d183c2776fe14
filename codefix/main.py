"""Code Fix Generation Service - FastAPI application."""

import difflib
import io
import logging
import zipfile
from contextlib import asynccontextmanager
from functools import partial
from typing import Optional

from fastapi import FastAPI

from codefix.config import settings
from codefix.logging_config import configure_logging
from codefix.api.v1.router import v1_router
from codefix.api.v1 import code_fix as code_fix_api
from codefix.api.v1 import health as health_api
from codefix.auth.profile import get_active_profile
from codefix.client.http_client import HttpCodeFixClient
from codefix.generation.orchestrator import generate_code_fix
from codefix.generation.poller import PollingPolicy
from codefix.generation.runs import GenerationRun, RunRegistry
from codefix.generation.telemetry import build_sink
from codefix.io.documents import save_document_if_dirty
from codefix.jobs.dispatcher import CodeFixServiceClient
from codefix.jobs.in_process_queue import InProcessCodeFixService, LocalJobRecord
from codefix.jobs.models import ReferencePolicy, SuggestedFix
from codefix.storage.temp_artifacts import temp_store

logger = logging.getLogger(__name__)


def run_local_code_fix(job: LocalJobRecord) -> SuggestedFix:
    """Worker function for local mode: trims trailing whitespace in the snippet.

    Called by the InProcessCodeFixService via run_in_executor (runs in a thread).
    Gives a real diff so the full pipeline can run without the remote service.
    """
    with zipfile.ZipFile(io.BytesIO(job.artifact)) as zf:
        names = zf.namelist()
        if len(names) != 1:
            raise ValueError(f"Expected a single-entry archive, got {len(names)} entries")
        name = names[0]
        original = zf.read(name).decode("utf-8").splitlines(keepends=True)

    # Snippet lines are 1-based inclusive
    first = max(job.snippet_range.start.line - 1, 0)
    last = min(max(job.snippet_range.end.line, first + 1), len(original))
    fixed = list(original)
    for i in range(first, last):
        line = fixed[i]
        ending = "\n" if line.endswith("\n") else ""
        fixed[i] = line.rstrip() + ending

    diff = "".join(difflib.unified_diff(original, fixed, fromfile=f"a/{name}", tofile=f"b/{name}"))
    return SuggestedFix(
        code_diff=diff,
        description=job.description if diff else f"No changes needed: {job.description}",
    )


def build_client() -> CodeFixServiceClient:
    if settings.service_mode == "local":
        return InProcessCodeFixService(worker_fn=run_local_code_fix)
    return HttpCodeFixClient(
        settings.service_base_url,
        api_token=settings.service_api_token,
        timeout=settings.request_timeout_s,
    )


def make_runner(client: CodeFixServiceClient, telemetry, polling: PollingPolicy):
    """Bind collaborators once; each call yields a runner for one API request."""

    def for_request(content: Optional[str] = None):
        async def runner(run: GenerationRun):
            return await generate_code_fix(
                client,
                run,
                profile=get_active_profile(),
                reference_policy=ReferencePolicy.from_setting(
                    settings.include_suggestions_with_code_references
                ),
                telemetry=telemetry,
                store=temp_store,
                polling=polling,
                flush=partial(save_document_if_dirty, content=content),
            )
        return runner

    return for_request


# Global client reference
_client: Optional[CodeFixServiceClient] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown logic."""
    global _client

    configure_logging(settings.log_level)
    logger.info("Starting Code Fix Generation Service on port %d", settings.port)
    logger.info("Service mode: %s", settings.service_mode)
    logger.info("Artifact dir: %s", temp_store.base_dir)

    _client = build_client()
    await _client.start()

    registry = RunRegistry()
    telemetry = build_sink(settings.telemetry_sink, settings.telemetry_table)
    polling = PollingPolicy.from_settings(settings)

    # Wire registry and runner into API endpoints
    code_fix_api.set_registry(registry)
    code_fix_api.set_runner(make_runner(_client, telemetry, polling))
    health_api.set_registry(registry)

    yield

    # Shutdown
    logger.info("Shutting down Code Fix Generation Service")
    await registry.shutdown()
    await _client.stop()
    temp_store.cleanup_expired()


app = FastAPI(
    title="Code Fix Generation Service",
    description="Packages an issue's source file, runs a remote code fix job and returns the suggested fix",
    version="0.1.0",
    lifespan=lifespan,
)

# Mount routers
app.include_router(health_api.router, tags=["health"])  # GET /health at root
app.include_router(v1_router)  # All /api/v1/* endpoints
