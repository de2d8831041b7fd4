"""
Maintenance endpoints for administrators
"""
from fastapi import APIRouter, Depends

from arena.core.dependencies import require_admin
from arena.services.scheduler_service import scheduler_service

router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@router.get("/jobs")
async def list_jobs(admin_id: str = Depends(require_admin)):
    return {
        "jobs": scheduler_service.get_scheduled_jobs(),
        "aggressive_cleanup": scheduler_service.aggressive_cleanup_active
    }


@router.post("/aggressive-cleanup")
async def start_aggressive_cleanup(admin_id: str = Depends(require_admin)):
    """Sweep expired tournaments every few seconds until nothing is left to delete"""
    scheduler_service.start_aggressive_cleanup()
    return {"success": True, "message": "Aggressive cleanup started"}
