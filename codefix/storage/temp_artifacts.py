"""Local staging storage for upload artifacts with guaranteed discard."""

import logging
import os
import shutil
import tempfile
import time
import uuid
from contextlib import contextmanager
from typing import Iterator, Optional

from codefix.config import settings

logger = logging.getLogger(__name__)


class TempArtifactStore:
    """Owns per-run staging files. Each run gets its own directory and archive name."""

    ARTIFACT_NAME = "codefix.zip"

    def __init__(self, base_dir: Optional[str] = None, ttl_hours: int = 2):
        if base_dir:
            self._base_dir = base_dir
        else:
            self._base_dir = os.path.join(tempfile.gettempdir(), "codefix_artifacts")
        os.makedirs(self._base_dir, exist_ok=True)
        self._ttl_seconds = ttl_hours * 3600

    @property
    def base_dir(self) -> str:
        return self._base_dir

    def get_run_dir(self, run_id: str) -> str:
        """Get or create the staging directory for a run."""
        run_dir = os.path.join(self._base_dir, run_id)
        os.makedirs(run_dir, exist_ok=True)
        return run_dir

    def artifact_path(self, run_id: Optional[str] = None) -> str:
        return os.path.join(self.get_run_dir(run_id or uuid.uuid4().hex), self.ARTIFACT_NAME)

    def discard(self, path: str) -> bool:
        """Delete a staged artifact and its run directory. Returns False if already gone."""
        run_dir = os.path.dirname(path)
        removed = False
        try:
            os.remove(path)
            removed = True
        except FileNotFoundError:
            pass
        if os.path.dirname(run_dir) == self._base_dir:
            shutil.rmtree(run_dir, ignore_errors=True)
        if removed:
            logger.debug("Discarded staged artifact %s", path)
        return removed

    @contextmanager
    def staged_artifact(self, run_id: Optional[str] = None) -> Iterator[str]:
        """Yield a fresh artifact path; the artifact is discarded when the block exits."""
        path = self.artifact_path(run_id)
        try:
            yield path
        finally:
            self.discard(path)

    def cleanup_expired(self) -> int:
        """Remove run directories older than TTL. Returns count of removed dirs."""
        now = time.time()
        removed = 0
        if not os.path.exists(self._base_dir):
            return 0
        for entry in os.listdir(self._base_dir):
            run_dir = os.path.join(self._base_dir, entry)
            if not os.path.isdir(run_dir):
                continue
            mtime = os.path.getmtime(run_dir)
            if now - mtime > self._ttl_seconds:
                shutil.rmtree(run_dir, ignore_errors=True)
                removed += 1
        return removed


# Global instance
temp_store = TempArtifactStore(
    base_dir=settings.artifact_dir, ttl_hours=settings.artifact_ttl_hours
)
