"""Code fix generation telemetry: one event per run, fire-and-forget."""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, Field

from codefix.jobs.models import SuggestedFix

logger = logging.getLogger(__name__)


class CodeFixGenerationEvent(BaseModel):
    job_id: Optional[str] = None
    language: str
    rule_id: str
    detector_id: str
    lines_changed: Optional[int] = None
    chars_changed: Optional[int] = None
    result: str = "Succeeded"
    reason: Optional[str] = None
    emitted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def fix_size(suggested_fix: Optional[SuggestedFix]) -> Tuple[Optional[int], Optional[int]]:
    """Count added lines and characters in a unified diff. (None, None) if unknown."""
    if suggested_fix is None or not suggested_fix.code_diff:
        return None, None
    lines = 0
    chars = 0
    for line in suggested_fix.code_diff.splitlines():
        if line.startswith("+") and not line.startswith("+++"):
            lines += 1
            chars += len(line) - 1
    return lines, chars


class TelemetrySink(ABC):
    """Receives one event per generation run. ``emit`` must never raise."""

    @abstractmethod
    def emit(self, event: CodeFixGenerationEvent) -> None:
        ...


class LoggingTelemetrySink(TelemetrySink):
    def emit(self, event: CodeFixGenerationEvent) -> None:
        logger.info(
            "codefix_generateFix job_id=%s language=%s rule_id=%s detector_id=%s "
            "lines=%s chars=%s result=%s",
            event.job_id, event.language, event.rule_id, event.detector_id,
            event.lines_changed, event.chars_changed, event.result,
        )


class SupabaseTelemetrySink(TelemetrySink):
    """Inserts events into a Supabase table from a worker thread."""

    def __init__(self, table: str, client_factory=None):
        self._table = table
        if client_factory is None:
            from codefix.db.supabase_client import get_supabase
            client_factory = get_supabase
        self._client_factory = client_factory

    def emit(self, event: CodeFixGenerationEvent) -> None:
        row = event.model_dump(mode="json")
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._insert(row)
            return
        loop.run_in_executor(None, self._insert, row)

    def _insert(self, row: Dict[str, Any]) -> None:
        try:
            self._client_factory().table(self._table).insert(row).execute()
        except Exception as e:
            logger.warning("Failed to store telemetry event for job %s: %s", row.get("job_id"), e)


def build_sink(kind: str, table: str) -> TelemetrySink:
    if kind == "supabase":
        return SupabaseTelemetrySink(table)
    return LoggingTelemetrySink()
