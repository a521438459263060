# payroll_server/api/exports.py
import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse, JSONResponse, Response

from payroll_server.api.deps import get_store, to_http
from payroll_server.core.decorators import log_execution_time, log_requests
from payroll_server.core.exceptions import EmployeeNotFoundError, PayrollError
from payroll_server.core.fields import ID_FIELD
from payroll_server.core.payslip import render_payslip
from payroll_server.core.spreadsheet import write_workbook
from payroll_server.core.storage import PayrollStore

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
EXPORT_SHEET_TITLE = "الموظفين"

router = APIRouter(
    prefix="/api/export",
    tags=["export"],
    responses={404: {"description": "Not found"}},
)


@router.get("/excel")
@log_requests
@log_execution_time
async def export_excel(request: Request, store: PayrollStore = Depends(get_store)):
    try:
        employees = await store.list_all()
        rows = [{k: v for k, v in record.items() if k != ID_FIELD} for record in employees]
        content = await asyncio.to_thread(write_workbook, rows, EXPORT_SHEET_TITLE)
        return Response(
            content=content,
            media_type=XLSX_MEDIA_TYPE,
            headers={"Content-Disposition": "attachment; filename=employees.xlsx"},
        )
    except Exception as e:
        logger.error(f"Excel export failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to export Excel"
        )


@router.get("/json")
@log_requests
@log_execution_time
async def export_json(request: Request, store: PayrollStore = Depends(get_store)):
    try:
        employees = await store.list_all()
        return JSONResponse(
            content=employees,
            headers={"Content-Disposition": "attachment; filename=employees.json"},
        )
    except Exception as e:
        logger.error(f"JSON export failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to export JSON"
        )


@router.get("/payslip/{employee_id}", response_class=HTMLResponse)
@log_requests
@log_execution_time
async def export_payslip(request: Request, employee_id: str, store: PayrollStore = Depends(get_store)):
    try:
        employee = await store.get_by_id(employee_id)
        if employee is None:
            raise EmployeeNotFoundError(employee_id)
        return HTMLResponse(content=render_payslip(employee))
    except PayrollError as e:
        raise to_http(e)
    except Exception as e:
        logger.error(f"Payslip export failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate payslip"
        )
