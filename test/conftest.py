import io

import openpyxl
import pytest
from fastapi.testclient import TestClient

from payroll_server.core.backup import BackupManager
from payroll_server.core.config import ServerSettings
from payroll_server.core.fields import CODE_FIELD, NAME_FIELD, SALARY_FIELD
from payroll_server.core.importer import ImportReconciler
from payroll_server.core.storage import PayrollStore
from payroll_server.main import create_app

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def make_workbook(rows):
    """Build an .xlsx in memory; the first row is the header."""
    workbook = openpyxl.Workbook()
    worksheet = workbook.active
    for row in rows:
        worksheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


# Fixtures
@pytest.fixture
def store(tmp_path):
    """Store backed by a temporary data directory"""
    return PayrollStore(tmp_path / "data")


@pytest.fixture
def backups(store, tmp_path):
    return BackupManager(store, tmp_path / "data" / "backups")


@pytest.fixture
def importer(store):
    return ImportReconciler(store)


@pytest.fixture
def employee_record():
    """Sample employee record"""
    return {"id": "e1", CODE_FIELD: "100", NAME_FIELD: "أحمد علي", SALARY_FIELD: 5000}


@pytest.fixture
def settings(tmp_path):
    return ServerSettings(DATA_DIR=tmp_path / "data", LOG_FILE=None, DEFAULT_PAGE_SIZE=50, MAX_PAGE_SIZE=200)


@pytest.fixture
def client(settings):
    """FastAPI test client running the app lifespan"""
    with TestClient(create_app(settings)) as test_client:
        yield test_client
