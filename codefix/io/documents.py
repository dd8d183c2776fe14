"""Document flushing: make on-disk content match an editor buffer."""

import asyncio
import logging
from typing import Optional

logger = logging.getLogger(__name__)


def _read_text(file_path: str) -> Optional[str]:
    try:
        with open(file_path, "r", encoding="utf-8", newline="") as f:
            return f.read()
    except FileNotFoundError:
        return None


def _write_text(file_path: str, content: str) -> None:
    with open(file_path, "w", encoding="utf-8", newline="") as f:
        f.write(content)


async def save_document_if_dirty(file_path: str, content: Optional[str] = None) -> bool:
    """Write ``content`` to ``file_path`` if it differs from disk.

    ``content=None`` means there is no unsaved buffer. Returns True when the
    file was written.
    """
    if content is None:
        return False

    loop = asyncio.get_event_loop()
    on_disk = await loop.run_in_executor(None, _read_text, file_path)
    if on_disk == content:
        return False

    await loop.run_in_executor(None, _write_text, file_path, content)
    logger.debug("Saved unsaved changes to %s", file_path)
    return True
