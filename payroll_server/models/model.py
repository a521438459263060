# payroll_server/models/model.py
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

FieldValue = Optional[Union[int, float, str]]


class HistoryEntry(BaseModel):
    """One recorded field change (or deletion) of an employee record"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    employee_id: str = Field(..., alias="employeeId")
    employee_name: FieldValue = Field(None, alias="employeeName")
    field: str
    old_value: FieldValue = Field(None, alias="oldValue")
    new_value: FieldValue = Field(None, alias="newValue")
    user: str = "guest"
    timestamp: str

    def __repr__(self):
        return f"<HistoryEntry(id={self.id}, employee_id='{self.employee_id}', field='{self.field}')>"


class Note(BaseModel):
    """Free-text annotation attached to an employee"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    employee_id: str = Field(..., alias="employeeId")
    text: str
    user: str = "guest"
    timestamp: str

    def __repr__(self):
        return f"<Note(id={self.id}, employee_id='{self.employee_id}')>"


class Snapshot(BaseModel):
    """Contents of one backup file"""
    model_config = ConfigDict(populate_by_name=True)

    employees: List[Dict[str, Any]] = Field(default_factory=list)
    history: List[HistoryEntry] = Field(default_factory=list)
    notes: List[Note] = Field(default_factory=list)
    timestamp: Optional[str] = None
