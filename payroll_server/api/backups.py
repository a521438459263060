# payroll_server/api/backups.py
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status

from payroll_server.api.deps import get_backup_manager, get_importer, to_http
from payroll_server.core.backup import BackupManager
from payroll_server.core.decorators import log_execution_time, log_requests
from payroll_server.core.exceptions import BackupNotFoundError, PayrollError
from payroll_server.core.importer import ImportReconciler
from payroll_server.schemas.schema import BackupInfo, ResponseMessage, RestoreRequest, SuccessResponse

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["backups"],
    responses={404: {"description": "Not found"}},
)


@router.get("/backups", response_model=List[BackupInfo])
@log_requests
@log_execution_time
async def list_backups(request: Request, backups: BackupManager = Depends(get_backup_manager)):
    try:
        return await backups.list_snapshots()
    except Exception as e:
        logger.error(f"Backup listing failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list backups"
        )


@router.post("/backup", response_model=BackupInfo)
@log_requests
@log_execution_time
async def create_backup(request: Request, backups: BackupManager = Depends(get_backup_manager)):
    try:
        return await backups.create_snapshot()
    except Exception as e:
        logger.error(f"Backup creation failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create backup"
        )


@router.post("/backup/restore", response_model=SuccessResponse)
@log_requests
@log_execution_time
async def restore_backup(
    request: Request,
    restore: RestoreRequest,
    backups: BackupManager = Depends(get_backup_manager),
):
    try:
        if not await backups.restore(restore.filename):
            raise BackupNotFoundError(restore.filename)
        return SuccessResponse()
    except PayrollError as e:
        raise to_http(e)
    except Exception as e:
        logger.error(f"Backup restore failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to restore backup"
        )


@router.post("/reset", response_model=ResponseMessage, tags=["maintenance"])
@log_requests
@log_execution_time
async def reset_data(
    request: Request,
    importer: ImportReconciler = Depends(get_importer),
):
    try:
        await importer.reset_store()
        return ResponseMessage(message="Data reset successfully")
    except Exception as e:
        logger.error(f"Reset failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to reset data"
        )
