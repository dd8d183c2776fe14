"""Health check endpoint."""

import platform
import sys

from fastapi import APIRouter

from codefix.config import settings

router = APIRouter()

# Set by main.py during lifespan
_registry = None


def set_registry(registry):
    global _registry
    _registry = registry


@router.get("/health")
async def health_check():
    """Service health, service mode and run counts."""
    return {
        "status": "healthy",
        "service_mode": settings.service_mode,
        "active_runs": _registry.active_count() if _registry else 0,
        "total_runs": len(_registry.list()) if _registry else 0,
        "python_version": sys.version,
        "platform": platform.platform(),
    }
