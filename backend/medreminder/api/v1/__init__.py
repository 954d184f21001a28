"""Versioned API router."""

from fastapi import APIRouter

from . import caregiver, health, intake, medications, schedule

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(medications.router, prefix="/medications", tags=["medications"])
router.include_router(intake.router, tags=["intake"])
router.include_router(intake.sync_router, tags=["intake"])
router.include_router(schedule.router, tags=["schedule"])
router.include_router(caregiver.router, tags=["caregiver"])

__all__ = ["router"]
