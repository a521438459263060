# payroll_server/api/records.py
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status

from payroll_server.api.deps import get_store, to_http
from payroll_server.core.decorators import log_execution_time, log_requests
from payroll_server.core.exceptions import NoteNotFoundError, PayrollError
from payroll_server.core.storage import PayrollStore
from payroll_server.models.model import HistoryEntry, Note
from payroll_server.schemas.schema import NoteCreate, SuccessResponse

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["history"],
    responses={404: {"description": "Not found"}},
)


@router.get("/history", response_model=List[HistoryEntry])
@log_requests
@log_execution_time
async def get_history(request: Request, store: PayrollStore = Depends(get_store)):
    try:
        return await store.list_history()
    except Exception as e:
        logger.error(f"History lookup failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get history"
        )


@router.get("/notes/{employee_id}", response_model=List[Note], tags=["notes"])
@log_requests
@log_execution_time
async def get_notes(request: Request, employee_id: str, store: PayrollStore = Depends(get_store)):
    try:
        return await store.list_notes(employee_id)
    except Exception as e:
        logger.error(f"Notes lookup failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get notes"
        )


@router.post("/notes/{employee_id}", response_model=Note, tags=["notes"])
@log_requests
@log_execution_time
async def add_note(request: Request, employee_id: str, note: NoteCreate, store: PayrollStore = Depends(get_store)):
    try:
        return await store.add_note(employee_id, note.text)
    except Exception as e:
        logger.error(f"Adding note failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to add note"
        )


@router.delete("/notes/{note_id}", response_model=SuccessResponse, tags=["notes"])
@log_requests
@log_execution_time
async def delete_note(request: Request, note_id: str, store: PayrollStore = Depends(get_store)):
    try:
        if not await store.delete_note(note_id):
            raise NoteNotFoundError(note_id)
        return SuccessResponse()
    except PayrollError as e:
        raise to_http(e)
    except Exception as e:
        logger.error(f"Note deletion failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete note"
        )
