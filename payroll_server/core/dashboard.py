# payroll_server/core/dashboard.py
from typing import Any, Iterable, Sequence

from payroll_server.core.fields import (
    ALLOWANCE_FIELDS,
    CODE_FIELD,
    COMMISSION_FIELDS,
    ID_FIELD,
    NAME_FIELD,
    SALARY_FIELD,
    UNKNOWN_NAME,
    EmployeeRecord,
    format_value,
    is_number,
)
from payroll_server.schemas.schema import DashboardStats, TopEarner

TOP_EARNERS_LIMIT = 10


def amount(record: EmployeeRecord, field: str) -> float:
    value = record.get(field)
    return value if is_number(value) else 0


def total_of(record: EmployeeRecord, fields: Iterable[str]) -> float:
    return sum(amount(record, field) for field in fields)


def _name(record: EmployeeRecord) -> str:
    value: Any = record.get(NAME_FIELD) or record.get(CODE_FIELD)
    return format_value(value) if value else UNKNOWN_NAME


def compute_dashboard_stats(employees: Sequence[EmployeeRecord]) -> DashboardStats:
    total_salaries = 0
    total_allowances = 0
    total_commissions = 0
    earners = []

    for record in employees:
        total_salaries += amount(record, SALARY_FIELD)
        total_allowances += total_of(record, ALLOWANCE_FIELDS)
        commissions = total_of(record, COMMISSION_FIELDS)
        total_commissions += commissions
        earners.append(TopEarner(id=str(record.get(ID_FIELD, "")), name=_name(record), total_commissions=commissions))

    earners.sort(key=lambda e: e.total_commissions, reverse=True)
    count = len(employees)

    return DashboardStats(
        total_employees=count,
        total_salaries=total_salaries,
        total_allowances=total_allowances,
        total_commissions=total_commissions,
        average_salary=total_salaries / count if count else 0,
        top_earners=earners[:TOP_EARNERS_LIMIT],
    )
