# payroll_server/api/employees.py
import logging
from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, status

from payroll_server.api.deps import get_settings, get_store, to_http
from payroll_server.core.config import ServerSettings
from payroll_server.core.decorators import log_execution_time, log_requests
from payroll_server.core.exceptions import EmployeeNotFoundError, InvalidFieldError, PayrollError
from payroll_server.core.fields import is_editable
from payroll_server.core.storage import PayrollStore
from payroll_server.schemas.schema import EmployeePage, EmployeeQuery, FieldUpdate, FilterOptions, SuccessResponse

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/employees",
    tags=["employees"],
    responses={404: {"description": "Not found"}},
)


@router.get("", response_model=EmployeePage)
@log_requests
@log_execution_time
async def list_employees(
    request: Request,
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    search: Optional[str] = None,
    branch: Optional[str] = None,
    department: Optional[str] = None,
    sector: Optional[str] = None,
    sort_field: Optional[str] = Query(None, alias="sortField"),
    sort_direction: Optional[Literal["asc", "desc"]] = Query(None, alias="sortDirection"),
    store: PayrollStore = Depends(get_store),
    settings: ServerSettings = Depends(get_settings),
):
    limit = min(limit or settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)
    query = EmployeeQuery(
        page=page,
        limit=limit,
        search=search,
        branch=branch,
        department=department,
        sector=sector,
        sort_field=sort_field,
        sort_direction=sort_direction,
    )
    try:
        return await store.list(query)
    except Exception as e:
        logger.error(f"Employee listing failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get employees"
        )


@router.get("/filters", response_model=FilterOptions)
@log_requests
@log_execution_time
async def get_filters(request: Request, store: PayrollStore = Depends(get_store)):
    try:
        return await store.distinct_values()
    except Exception as e:
        logger.error(f"Filter lookup failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get filters"
        )


@router.get("/{employee_id}")
@log_requests
@log_execution_time
async def get_employee(request: Request, employee_id: str, store: PayrollStore = Depends(get_store)):
    try:
        employee = await store.get_by_id(employee_id)
        if employee is None:
            raise EmployeeNotFoundError(employee_id)
        return employee
    except PayrollError as e:
        raise to_http(e)
    except Exception as e:
        logger.error(f"Employee lookup failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get employee"
        )


@router.post("", status_code=status.HTTP_201_CREATED)
@log_requests
@log_execution_time
async def create_employee(
    request: Request,
    employee: Dict[str, Any] = Body(..., examples=[{"الكود": "100", "الاسم": "أحمد علي", "الراتب الشهري": 5000}]),
    store: PayrollStore = Depends(get_store),
):
    try:
        return await store.create(employee)
    except Exception as e:
        logger.error(f"Error in create_employee: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create employee"
        )


@router.put("/{employee_id}")
@log_requests
@log_execution_time
async def update_employee(
    request: Request,
    employee_id: str,
    update: FieldUpdate,
    store: PayrollStore = Depends(get_store),
):
    try:
        if not is_editable(update.field):
            raise InvalidFieldError(update.field)

        employee = await store.update_field(employee_id, update.field, update.value)
        if employee is None:
            raise EmployeeNotFoundError(employee_id)
        return employee
    except PayrollError as e:
        raise to_http(e)
    except Exception as e:
        logger.error(f"Employee update failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update employee"
        )


@router.delete("/{employee_id}", response_model=SuccessResponse)
@log_requests
@log_execution_time
async def delete_employee(request: Request, employee_id: str, store: PayrollStore = Depends(get_store)):
    try:
        if not await store.delete(employee_id):
            raise EmployeeNotFoundError(employee_id)
        return SuccessResponse()
    except PayrollError as e:
        raise to_http(e)
    except Exception as e:
        logger.error(f"Employee deletion failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete employee"
        )
