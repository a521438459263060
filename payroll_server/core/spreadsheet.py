# payroll_server/core/spreadsheet.py
import io
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

import openpyxl
import xlrd
from openpyxl.styles import Alignment, Font

from payroll_server.core.decorators import log_execution_time
from payroll_server.core.exceptions import MalformedSpreadsheetError
from payroll_server.core.fields import cell_to_value

logger = logging.getLogger(__name__)

EMPTY_HEADER = "__EMPTY"
HEADER_FONT = Font(bold=True)
# OLE2 compound document header used by legacy .xls files
XLS_SIGNATURE = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


def _header_names(cells: Iterable[Any]) -> List[str]:
    """Name each header cell; blank ones become __EMPTY, __EMPTY_1, ... and repeats get a suffix."""
    names = []
    seen = {}
    blanks = 0
    for cell in cells:
        if cell is None or str(cell) == "":
            name = EMPTY_HEADER if blanks == 0 else f"{EMPTY_HEADER}_{blanks}"
            blanks += 1
        else:
            name = str(cell)
        if name in seen:
            seen[name] += 1
            name = f"{name}_{seen[name]}"
        seen.setdefault(name, 0)
        names.append(name)
    return names


def _unreadable(error: Exception) -> MalformedSpreadsheetError:
    logger.error(f"Spreadsheet parse error: {str(error)}")
    return MalformedSpreadsheetError(f"Could not read spreadsheet: {str(error)}")


def _xlsx_values(content: bytes) -> List[Sequence[Any]]:
    try:
        workbook = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except Exception as e:
        raise _unreadable(e) from e

    try:
        return list(workbook.worksheets[0].iter_rows(values_only=True))
    finally:
        workbook.close()


def _xls_cell(cell: xlrd.sheet.Cell, datemode: int) -> Any:
    if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR):
        return None
    if cell.ctype == xlrd.XL_CELL_DATE:
        return xlrd.xldate_as_datetime(cell.value, datemode)
    if cell.ctype == xlrd.XL_CELL_BOOLEAN:
        return bool(cell.value)
    # BIFF stores every number as a float
    if cell.ctype == xlrd.XL_CELL_NUMBER and float(cell.value).is_integer():
        return int(cell.value)
    return cell.value


def _xls_values(content: bytes) -> List[Sequence[Any]]:
    try:
        book = xlrd.open_workbook(file_contents=content, on_demand=True)
    except Exception as e:
        raise _unreadable(e) from e

    try:
        sheet = book.sheet_by_index(0)
        return [[_xls_cell(cell, book.datemode) for cell in sheet.row(index)] for index in range(sheet.nrows)]
    finally:
        book.release_resources()


@log_execution_time
def read_rows(content: bytes) -> List[Dict[str, Any]]:
    """Parse the first worksheet into one mapping per data row.

    Accepts both .xlsx workbooks and legacy .xls (BIFF) files, told apart by
    their leading bytes. Empty cells are left out of a row and rows without
    any value are dropped.
    """
    if not content:
        raise MalformedSpreadsheetError("File is empty")

    if content.startswith(XLS_SIGNATURE):
        values = _xls_values(content)
    else:
        values = _xlsx_values(content)

    if not values:
        raise MalformedSpreadsheetError("File is empty")
    names = _header_names(values[0])

    rows = []
    for cells in values[1:]:
        row = {}
        for name, value in zip(names, cells):
            if value is None or (isinstance(value, str) and value == ""):
                continue
            row[name] = cell_to_value(value)
        if row:
            rows.append(row)

    if not rows:
        raise MalformedSpreadsheetError("File is empty")

    logger.info(f"Parsed {len(rows)} rows from spreadsheet ({len(names)} columns)")
    return rows


@log_execution_time
def write_workbook(records: Iterable[Dict[str, Any]], sheet_title: Optional[str] = None) -> bytes:
    """Write records to a single-sheet workbook; columns follow first appearance."""
    records = list(records)
    columns: Dict[str, None] = {}
    for record in records:
        for key in record:
            columns.setdefault(key, None)
    headers = list(columns)

    workbook = openpyxl.Workbook()
    worksheet = workbook.active
    if sheet_title:
        worksheet.title = sheet_title
    worksheet.sheet_view.rightToLeft = True

    worksheet.append(headers)
    for cell in worksheet[1]:
        cell.font = HEADER_FONT
        cell.alignment = Alignment(horizontal="center")
    for record in records:
        worksheet.append([record.get(header) for header in headers])

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()
