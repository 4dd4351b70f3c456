"""
Main API router. Mounts all sub-routers.
"""

from fastapi import APIRouter

from .registry import registry_router

router = APIRouter()


# ── Health ───────────────────────────────────────────────────────────

@router.get("/health")
async def health():
    return {"status": "ok", "service": "bbf-registry"}


# ── Registry routes (no auth in the demo registry) ──────────────────

router.include_router(registry_router, prefix="/api")
