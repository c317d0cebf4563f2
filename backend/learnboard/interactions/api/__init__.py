"""Interaction API routers."""

from fastapi import APIRouter

from . import admin, content, reports, votes

router = APIRouter()
router.include_router(votes.router)
router.include_router(reports.router)
router.include_router(admin.router)
router.include_router(content.router)

__all__ = ["router"]
