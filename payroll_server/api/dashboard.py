# payroll_server/api/dashboard.py
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from payroll_server.api.deps import get_store
from payroll_server.core.decorators import log_execution_time, log_requests
from payroll_server.core.storage import PayrollStore
from payroll_server.schemas.schema import DashboardStats

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=DashboardStats)
@log_requests
@log_execution_time
async def get_dashboard_stats(request: Request, store: PayrollStore = Depends(get_store)):
    try:
        return await store.dashboard_stats()
    except Exception as e:
        logger.error(f"Dashboard stats failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get dashboard stats"
        )
