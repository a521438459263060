# payroll_server/api/deps.py
from fastapi import HTTPException, Request, status

from payroll_server.core.backup import BackupManager
from payroll_server.core.config import ServerSettings
from payroll_server.core.exceptions import (
    BackupNotFoundError,
    EmployeeNotFoundError,
    InvalidFieldError,
    MalformedSpreadsheetError,
    NoPendingImportError,
    NoteNotFoundError,
    PayrollError,
    SeedWorkbookNotFoundError,
)
from payroll_server.core.importer import ImportReconciler
from payroll_server.core.storage import PayrollStore

ERROR_STATUS = {
    EmployeeNotFoundError: status.HTTP_404_NOT_FOUND,
    NoteNotFoundError: status.HTTP_404_NOT_FOUND,
    BackupNotFoundError: status.HTTP_404_NOT_FOUND,
    SeedWorkbookNotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidFieldError: status.HTTP_400_BAD_REQUEST,
    MalformedSpreadsheetError: status.HTTP_400_BAD_REQUEST,
    NoPendingImportError: status.HTTP_400_BAD_REQUEST,
}


def to_http(error: PayrollError) -> HTTPException:
    code = ERROR_STATUS.get(type(error), status.HTTP_500_INTERNAL_SERVER_ERROR)
    return HTTPException(status_code=code, detail=str(error))


def get_settings(request: Request) -> ServerSettings:
    return request.app.state.settings


def get_store(request: Request) -> PayrollStore:
    return request.app.state.store


def get_backup_manager(request: Request) -> BackupManager:
    return request.app.state.backups


def get_importer(request: Request) -> ImportReconciler:
    return request.app.state.importer
