# payroll_server/api/imports.py
import asyncio
import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status

from payroll_server.api.deps import get_importer, get_settings, to_http
from payroll_server.core.config import ServerSettings
from payroll_server.core.decorators import log_execution_time, log_requests
from payroll_server.core.exceptions import PayrollError
from payroll_server.core.fields import CODE_FIELD
from payroll_server.core.importer import ImportReconciler
from payroll_server.core.spreadsheet import read_rows
from payroll_server.schemas.schema import ImportPreview, ImportResult, SeedResult

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/import",
    tags=["import"],
    responses={400: {"description": "Bad request"}},
)


@router.post("/preview", response_model=ImportPreview)
@log_requests
@log_execution_time
async def preview_import(
    request: Request,
    file: UploadFile = File(...),
    key_column: str = Form(CODE_FIELD, alias="keyColumn"),
    importer: ImportReconciler = Depends(get_importer),
):
    try:
        content = await file.read()
        logger.info(f"Import upload received: {file.filename} ({len(content)} bytes), key column '{key_column}'")
        rows = await asyncio.to_thread(read_rows, content)
        return await importer.preview(rows, key_column)
    except PayrollError as e:
        raise to_http(e)
    except Exception as e:
        logger.error(f"Import preview failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to preview import"
        )
    finally:
        await file.close()


@router.post("/confirm", response_model=ImportResult)
@log_requests
@log_execution_time
async def confirm_import(request: Request, importer: ImportReconciler = Depends(get_importer)):
    try:
        return await importer.confirm()
    except PayrollError as e:
        raise to_http(e)
    except Exception as e:
        logger.error(f"Import confirm failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to confirm import"
        )


@router.post("/initial", response_model=SeedResult)
@log_requests
@log_execution_time
async def import_initial(
    request: Request,
    importer: ImportReconciler = Depends(get_importer),
    settings: ServerSettings = Depends(get_settings),
):
    try:
        return await importer.seed_from_workbook(settings.SEED_WORKBOOK_PATH)
    except PayrollError as e:
        raise to_http(e)
    except Exception as e:
        logger.error(f"Initial import failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to import data"
        )
