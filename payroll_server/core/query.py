# payroll_server/core/query.py
import functools
import math
from typing import Any, List, Sequence

from pyuca import Collator

from payroll_server.core.fields import (
    BRANCH_FIELD,
    DEPARTMENT_FIELD,
    SEARCH_FIELDS,
    SECTOR_FIELD,
    EmployeeRecord,
    format_value,
    is_number,
)
from payroll_server.schemas.schema import EmployeePage, EmployeeQuery

ALL = "all"

_collator = Collator()


class _SortItem:
    __slots__ = ("record", "value", "text_key")

    def __init__(self, record: EmployeeRecord, value: Any):
        self.record = record
        self.value = value
        self.text_key = _collator.sort_key(format_value(value))


def _compare(a: _SortItem, b: _SortItem) -> int:
    if is_number(a.value) and is_number(b.value):
        return (a.value > b.value) - (a.value < b.value)
    return (a.text_key > b.text_key) - (a.text_key < b.text_key)


def _matches_search(record: EmployeeRecord, needle: str) -> bool:
    for field in SEARCH_FIELDS:
        value = record.get(field)
        haystack = format_value(value).lower() if value else ""
        if needle in haystack:
            return True
    return False


def _is_active(value: Any) -> bool:
    return bool(value) and value != ALL


def sort_records(records: Sequence[EmployeeRecord], field: str, descending: bool = False) -> List[EmployeeRecord]:
    """Stable sort on one field with null/absent values last in either direction."""
    present = []
    missing = []
    for record in records:
        value = record.get(field)
        if value is None:
            missing.append(record)
        else:
            present.append(_SortItem(record, value))
    present.sort(key=functools.cmp_to_key(_compare), reverse=descending)
    return [item.record for item in present] + missing


def filter_records(records: Sequence[EmployeeRecord], query: EmployeeQuery) -> List[EmployeeRecord]:
    filtered = list(records)

    if query.search:
        needle = query.search.lower()
        filtered = [r for r in filtered if _matches_search(r, needle)]

    for field, wanted in (
        (BRANCH_FIELD, query.branch),
        (DEPARTMENT_FIELD, query.department),
        (SECTOR_FIELD, query.sector),
    ):
        if _is_active(wanted):
            filtered = [r for r in filtered if r.get(field) == wanted]

    if query.sort_field:
        filtered = sort_records(filtered, query.sort_field, query.sort_direction == "desc")

    return filtered


def paginate(records: Sequence[EmployeeRecord], page: int, limit: int) -> EmployeePage:
    total = len(records)
    total_pages = max(1, math.ceil(total / limit))
    start = (page - 1) * limit
    return EmployeePage(
        data=[dict(r) for r in records[start:start + limit]],
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages,
    )


def run_query(records: Sequence[EmployeeRecord], query: EmployeeQuery) -> EmployeePage:
    return paginate(filter_records(records, query), query.page, query.limit)
