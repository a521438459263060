# payroll_server/core/storage.py
import asyncio
import copy
import json
import logging
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from payroll_server.core.audit import AuditLog, timestamp_sort_key, utc_timestamp
from payroll_server.core.dashboard import compute_dashboard_stats
from payroll_server.core.exceptions import InvalidFieldError
from payroll_server.core.fields import (
    BRANCH_FIELD,
    DELETION_FIELD,
    DEPARTMENT_FIELD,
    ID_FIELD,
    SECTOR_FIELD,
    EmployeeRecord,
    FieldValue,
    clean_record,
    clean_value,
    display_name,
    format_value,
)
from payroll_server.core.query import run_query
from payroll_server.models.model import Note, Snapshot
from payroll_server.schemas.schema import DashboardStats, EmployeePage, EmployeeQuery, FilterOptions

logger = logging.getLogger(__name__)

EMPLOYEES_FILE = "employees.json"
HISTORY_FILE = "history.json"
NOTES_FILE = "notes.json"


def read_json_file(path: Path, default: Any) -> Any:
    """Read a JSON document, returning ``default`` when it is missing or unreadable."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        return default
    except (OSError, ValueError) as e:
        logger.warning(f"Could not read {path}, starting empty: {str(e)}")
        return default


def write_json_file(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)


def _as_list(data: Any, path: Path) -> List[Any]:
    if isinstance(data, list):
        return data
    logger.warning(f"Expected a JSON array in {path}, starting empty")
    return []


class PayrollStore:
    """In-memory employee, history and note collections with write-through JSON files.

    The in-memory copy is authoritative once loaded. Loading happens on the
    first operation (or an explicit ``open()``) and every mutation ends with a
    rewrite of all three files. A single lock covers each load, mutate and
    persist sequence.
    """

    def __init__(self, data_dir: Path, default_user: str = "guest"):
        self.data_dir = Path(data_dir)
        self.default_user = default_user
        self.employees_file = self.data_dir / EMPLOYEES_FILE
        self.history_file = self.data_dir / HISTORY_FILE
        self.notes_file = self.data_dir / NOTES_FILE

        self.audit = AuditLog()
        self._employees: List[EmployeeRecord] = []
        self._notes: List[Note] = []
        self._lock = asyncio.Lock()
        self._initialized = False

    # Lifecycle

    @property
    def is_open(self) -> bool:
        return self._initialized

    async def open(self) -> None:
        async with self._lock:
            await self._ensure_open()

    async def close(self) -> None:
        async with self._lock:
            self._initialized = False
        logger.info("Payroll store closed")

    async def _ensure_open(self) -> None:
        if self._initialized:
            return
        employees, history, notes = await asyncio.to_thread(self._read_all)
        self._employees = [r for r in employees if isinstance(r, dict)]
        self.audit.load(history)
        self._notes = self._parse_notes(notes)
        self._initialized = True
        logger.info(
            f"Payroll store loaded from {self.data_dir}: "
            f"{len(self._employees)} employees, {len(self.audit)} history entries, {len(self._notes)} notes"
        )

    def _read_all(self):
        return (
            _as_list(read_json_file(self.employees_file, []), self.employees_file),
            _as_list(read_json_file(self.history_file, []), self.history_file),
            _as_list(read_json_file(self.notes_file, []), self.notes_file),
        )

    def _write_all(self) -> None:
        write_json_file(self.employees_file, self._employees)
        write_json_file(self.history_file, self.audit.dump())
        write_json_file(self.notes_file, [note.model_dump(by_alias=True) for note in self._notes])

    @staticmethod
    def _parse_notes(items: Iterable[Any]) -> List[Note]:
        notes = []
        for item in items:
            try:
                notes.append(item if isinstance(item, Note) else Note.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping malformed note: {e}")
        return notes

    @asynccontextmanager
    async def exclusive(self):
        """Hold the store lock with data loaded. Nested store calls would deadlock."""
        async with self._lock:
            await self._ensure_open()
            yield self

    async def persist(self) -> None:
        """Rewrite all data files. Caller must hold ``exclusive()``."""
        await asyncio.to_thread(self._write_all)

    def state(self) -> Dict[str, Any]:
        """Deep copy of all collections. Caller must hold ``exclusive()``."""
        return {
            "employees": copy.deepcopy(self._employees),
            "history": self.audit.dump(),
            "notes": [note.model_dump(by_alias=True) for note in self._notes],
        }

    def load_state(self, snapshot: Snapshot) -> None:
        """Replace all collections in memory. Caller must hold ``exclusive()``."""
        self._employees = [self._with_id(r) for r in snapshot.employees]
        self.audit.load(snapshot.history)
        self._notes = list(snapshot.notes)

    # Employees

    @staticmethod
    def _with_id(record: EmployeeRecord) -> EmployeeRecord:
        record = clean_record(record)
        if not record.get(ID_FIELD):
            record[ID_FIELD] = str(uuid.uuid4())
        return record

    def _find_index(self, employee_id: str) -> int:
        for index, record in enumerate(self._employees):
            if record.get(ID_FIELD) == employee_id:
                return index
        return -1

    async def list(self, query: EmployeeQuery) -> EmployeePage:
        async with self.exclusive():
            return run_query(self._employees, query)

    async def count(self) -> int:
        async with self.exclusive():
            return len(self._employees)

    async def get_by_id(self, employee_id: str) -> Optional[EmployeeRecord]:
        async with self.exclusive():
            index = self._find_index(employee_id)
            return dict(self._employees[index]) if index >= 0 else None

    def _new_record(self, fields: Dict[str, Any]) -> EmployeeRecord:
        record = {ID_FIELD: str(uuid.uuid4())}
        record.update(clean_record({k: v for k, v in fields.items() if k != ID_FIELD}))
        return record

    async def create(self, fields: Dict[str, Any]) -> EmployeeRecord:
        async with self.exclusive():
            record = self._new_record(fields)
            self._employees.append(record)
            await self.persist()
            logger.info(f"Employee created: {record[ID_FIELD]}")
            return dict(record)

    async def create_many(self, rows: Iterable[Dict[str, Any]]) -> List[EmployeeRecord]:
        async with self.exclusive():
            records = [self._new_record(fields) for fields in rows]
            self._employees.extend(records)
            await self.persist()
            logger.info(f"Employees created: {len(records)}")
            return [dict(r) for r in records]

    async def update_field(
        self, employee_id: str, field: str, value: FieldValue, user: Optional[str] = None
    ) -> Optional[EmployeeRecord]:
        if field == ID_FIELD:
            raise InvalidFieldError(field, reason="Identifier cannot be changed")

        async with self.exclusive():
            index = self._find_index(employee_id)
            if index < 0:
                return None

            record = self._employees[index]
            old_value = clean_value(record.get(field))
            new_value = clean_value(value)
            record[field] = new_value

            self.audit.record(
                employee_id=employee_id,
                employee_name=display_name(record),
                field=field,
                old_value=old_value,
                new_value=new_value,
                user=user or self.default_user,
            )
            await self.persist()
            logger.info(f"Employee {employee_id} field '{field}' updated: {old_value!r} -> {new_value!r}")
            return dict(record)

    async def delete(self, employee_id: str, user: Optional[str] = None) -> bool:
        async with self.exclusive():
            index = self._find_index(employee_id)
            if index < 0:
                return False

            record = self._employees[index]
            name = display_name(record)
            self.audit.record(
                employee_id=employee_id,
                employee_name=name,
                field=DELETION_FIELD,
                old_value=name,
                new_value=None,
                user=user or self.default_user,
            )
            del self._employees[index]
            await self.persist()
            logger.info(f"Employee deleted: {employee_id}")
            return True

    async def list_all(self) -> List[EmployeeRecord]:
        async with self.exclusive():
            return [dict(r) for r in self._employees]

    async def replace_all(self, records: Iterable[EmployeeRecord]) -> None:
        async with self.exclusive():
            self._employees = [self._with_id(r) for r in records]
            await self.persist()
            logger.info(f"Employee collection replaced: {len(self._employees)} records")

    async def distinct_values(self) -> FilterOptions:
        async with self.exclusive():
            options = {}
            for key, field in (("branches", BRANCH_FIELD), ("departments", DEPARTMENT_FIELD), ("sectors", SECTOR_FIELD)):
                seen = {}
                for record in self._employees:
                    value = record.get(field)
                    if value:
                        seen.setdefault(format_value(value), None)
                options[key] = list(seen)
            return FilterOptions(**options)

    async def reset(self) -> None:
        async with self._lock:
            self._employees = []
            self.audit.clear()
            self._notes = []
            self._initialized = True
            await self.persist()
        logger.warning("Payroll store reset: all employees, history and notes cleared")

    async def dashboard_stats(self) -> DashboardStats:
        async with self.exclusive():
            return compute_dashboard_stats(self._employees)

    # History

    async def list_history(self):
        async with self.exclusive():
            return self.audit.list()

    # Notes

    async def list_notes(self, employee_id: str) -> List[Note]:
        async with self.exclusive():
            notes = [n for n in self._notes if n.employee_id == employee_id]
            return sorted(notes, key=lambda n: timestamp_sort_key(n.timestamp), reverse=True)

    async def add_note(self, employee_id: str, text: str, user: Optional[str] = None) -> Note:
        async with self.exclusive():
            note = Note(
                id=str(uuid.uuid4()),
                employee_id=employee_id,
                text=text,
                user=user or self.default_user,
                timestamp=utc_timestamp(),
            )
            self._notes.append(note)
            await self.persist()
            return note

    async def delete_note(self, note_id: str) -> bool:
        async with self.exclusive():
            for index, note in enumerate(self._notes):
                if note.id == note_id:
                    del self._notes[index]
                    await self.persist()
                    return True
            return False
