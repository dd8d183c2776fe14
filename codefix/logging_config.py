"""Logging setup for the service process."""

import logging

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the ``codefix`` logger."""
    root = logging.getLogger("codefix")
    root.setLevel(level.upper())
    if not any(getattr(h, "_codefix", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._codefix = True
        root.addHandler(handler)
