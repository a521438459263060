# payroll_server/schemas/schema.py
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from payroll_server.models.model import FieldValue


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class EmployeeQuery(CamelModel):
    """Listing parameters for the employees table"""
    page: int = Field(1, ge=1, description="1-based page number")
    limit: int = Field(50, ge=1, description="Page size")
    search: Optional[str] = Field(None, description="Case-insensitive text search")
    branch: Optional[str] = Field(None, description="Exact branch, or 'all'")
    department: Optional[str] = Field(None, description="Exact department, or 'all'")
    sector: Optional[str] = Field(None, description="Exact sector, or 'all'")
    sort_field: Optional[str] = Field(None, alias="sortField", description="Field to sort by")
    sort_direction: Optional[Literal["asc", "desc"]] = Field(None, alias="sortDirection")


class EmployeePage(CamelModel):
    """Schema for a page of employee records"""
    data: List[Dict[str, Any]]
    total: int
    page: int
    limit: int
    total_pages: int = Field(..., alias="totalPages")


class FilterOptions(BaseModel):
    """Distinct values available for the listing filters"""
    branches: List[str]
    departments: List[str]
    sectors: List[str]


class FieldUpdate(BaseModel):
    """Schema for updating one payroll field"""
    field: str = Field(..., description="Editable field name", examples=["الراتب الشهري"])
    value: Optional[Union[int, float]] = Field(None, description="New value, or null to clear", examples=[5500])


class NoteCreate(BaseModel):
    text: str = Field(..., min_length=1, description="Note text")


class RestoreRequest(BaseModel):
    filename: str = Field(..., description="Backup file name as listed by /api/backups")


class BackupInfo(CamelModel):
    """Schema for one entry in the backup catalog"""
    filename: str
    timestamp: str
    employee_count: int = Field(..., alias="employeeCount")


class ImportChange(CamelModel):
    """One field-level difference between an imported row and a stored record"""
    employee_id: str = Field(..., alias="employeeId")
    employee_name: str = Field("", alias="employeeName")
    field: str
    old_value: FieldValue = Field(None, alias="oldValue")
    new_value: FieldValue = Field(None, alias="newValue")


class ImportPreview(CamelModel):
    """Schema for the result of an import preview"""
    changes: List[ImportChange]
    total_changes: int = Field(..., alias="totalChanges")
    new_records: int = Field(..., alias="newRecords")
    updated_records: int = Field(..., alias="updatedRecords")


class ImportResult(BaseModel):
    """Schema for the result of an import confirmation"""
    success: bool = True
    applied: int = Field(..., description="Number of field changes applied")
    created: int = Field(..., description="Number of records created")


class SeedResult(BaseModel):
    message: str
    count: int


class TopEarner(CamelModel):
    id: str
    name: str
    total_commissions: float = Field(..., alias="totalCommissions")


class DashboardStats(CamelModel):
    """Aggregate payroll totals"""
    total_employees: int = Field(..., alias="totalEmployees")
    total_salaries: float = Field(..., alias="totalSalaries")
    total_allowances: float = Field(..., alias="totalAllowances")
    total_commissions: float = Field(..., alias="totalCommissions")
    average_salary: float = Field(..., alias="averageSalary")
    top_earners: List[TopEarner] = Field(..., alias="topEarners")


class ResponseMessage(BaseModel):
    """Schema for response messages"""
    message: str = Field(..., description="Response message")


class SuccessResponse(BaseModel):
    success: bool = True
