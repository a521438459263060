# payroll_server/core/exceptions.py
"""Domain errors raised by the payroll core and translated to HTTP responses by the API."""


class PayrollError(Exception):
    """Base exception for payroll service errors."""


class EmployeeNotFoundError(PayrollError):
    def __init__(self, employee_id: str):
        self.employee_id = employee_id
        super().__init__(f"Employee {employee_id} not found")


class NoteNotFoundError(PayrollError):
    def __init__(self, note_id: str):
        self.note_id = note_id
        super().__init__(f"Note {note_id} not found")


class BackupNotFoundError(PayrollError):
    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(f"Backup {filename} not found")


class InvalidFieldError(PayrollError):
    """A request names a field that cannot be used for the operation."""

    def __init__(self, field: str, reason: str = "Field is not editable"):
        self.field = field
        self.reason = reason
        super().__init__(f"{reason}: {field}")


class MalformedSpreadsheetError(PayrollError):
    """Uploaded spreadsheet could not be read or holds no rows."""


class NoPendingImportError(PayrollError):
    def __init__(self):
        super().__init__("No pending import")


class SeedWorkbookNotFoundError(PayrollError):
    def __init__(self, path=None):
        self.path = path
        super().__init__(f"Seed workbook not found: {path}")
