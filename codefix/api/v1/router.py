"""Aggregate all v1 API routers."""

from fastapi import APIRouter
from codefix.api.v1.health import router as health_router
from codefix.api.v1.code_fix import router as code_fix_router

v1_router = APIRouter(prefix="/api/v1")
v1_router.include_router(health_router, tags=["health"])
v1_router.include_router(code_fix_router, tags=["code-fix"])
