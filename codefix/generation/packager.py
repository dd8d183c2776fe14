"""Packages a source file into a single-entry zip artifact."""

import asyncio
import logging
import os
import zipfile

from codefix.generation.cancellation import CancellationToken
from codefix.generation.errors import PackagingFailedError

logger = logging.getLogger(__name__)


def _write_zip(file_path: str, artifact_path: str) -> None:
    with zipfile.ZipFile(artifact_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.write(file_path, arcname=os.path.basename(file_path))


async def package_source_file(
    file_path: str, artifact_path: str, token: CancellationToken
) -> str:
    """Write ``file_path`` into a zip at ``artifact_path`` and return that path.

    Runs in a thread executor. On failure the partial archive is removed and
    PackagingFailedError is raised.
    """
    token.check()
    if not os.path.isfile(file_path):
        raise PackagingFailedError(f"Source file not found: {file_path}")

    loop = asyncio.get_event_loop()
    try:
        await loop.run_in_executor(None, _write_zip, file_path, artifact_path)
    except (OSError, zipfile.BadZipFile, ValueError) as e:
        try:
            os.remove(artifact_path)
        except OSError:
            pass
        raise PackagingFailedError(f"Failed to package {file_path}: {e}") from e

    logger.debug(
        "Packaged %s into %s (%d bytes)",
        file_path, artifact_path, os.path.getsize(artifact_path),
    )
    return artifact_path
