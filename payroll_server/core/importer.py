# payroll_server/core/importer.py
"""Two-phase spreadsheet import.

``preview`` compares uploaded rows against the stored records and keeps the
result as the single pending import. ``confirm`` applies that pending import
through the store's normal update/create operations. Only confirm mutates.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from payroll_server.core.decorators import log_execution_time
from payroll_server.core.exceptions import InvalidFieldError, NoPendingImportError, SeedWorkbookNotFoundError
from payroll_server.core.fields import (
    CODE_FIELD,
    ID_FIELD,
    KEY_FIELDS,
    NAME_FIELD,
    SEED_COLUMN_MAP,
    EmployeeRecord,
    clean_value,
    coerce_field,
    format_value,
    is_number,
    key_text,
)
from payroll_server.core.spreadsheet import read_rows
from payroll_server.core.storage import PayrollStore
from payroll_server.schemas.schema import ImportChange, ImportPreview, ImportResult, SeedResult

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass(frozen=True)
class FieldChange:
    employee_id: str
    employee_name: str
    field: str
    old_value: Any
    new_value: Any

    def to_schema(self) -> ImportChange:
        return ImportChange(
            employee_id=self.employee_id,
            employee_name=self.employee_name,
            field=self.field,
            old_value=clean_value(self.old_value),
            new_value=clean_value(self.new_value),
        )


@dataclass
class PendingImport:
    key_field: str
    changes: List[FieldChange] = field(default_factory=list)
    new_employees: List[Dict[str, Any]] = field(default_factory=list)
    updated_records: int = 0


def _differs(old: Any, new: Any) -> bool:
    if old is _MISSING:
        return True
    return old != new


def _change_name(record: EmployeeRecord) -> str:
    value = record.get(NAME_FIELD) or record.get(CODE_FIELD)
    return format_value(value) if value else ""


@log_execution_time
def reconcile(rows: Sequence[Mapping[str, Any]], records: Sequence[EmployeeRecord], key_field: str) -> PendingImport:
    """Diff imported rows against stored records, matching on ``key_field``."""
    existing = {}
    for record in records:
        key = key_text(record.get(key_field))
        if key:
            existing[key] = record

    pending = PendingImport(key_field=key_field)
    for row in rows:
        key = key_text(row.get(key_field))
        if not key:
            continue

        record = existing.get(key)
        if record is None:
            candidate = {name: coerce_field(name, raw) for name, raw in row.items() if name != ID_FIELD}
            pending.new_employees.append(candidate)
            continue

        for name, raw in row.items():
            if name in (key_field, ID_FIELD):
                continue
            old_value = record.get(name, _MISSING)
            new_value = coerce_field(name, raw)
            if _differs(old_value, new_value):
                pending.changes.append(
                    FieldChange(
                        employee_id=record[ID_FIELD],
                        employee_name=_change_name(record),
                        field=name,
                        old_value=None if old_value is _MISSING else old_value,
                        new_value=new_value,
                    )
                )
        pending.updated_records += 1

    return pending


def seed_rows(rows: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Rename workbook columns to field names and keep rows whose code is a number."""
    seeded = []
    for row in rows:
        mapped = {SEED_COLUMN_MAP.get(name, name): value for name, value in row.items()}
        if not is_number(mapped.get(CODE_FIELD)):
            continue
        seeded.append({name: coerce_field(name, value) for name, value in mapped.items()})
    return seeded


class ImportReconciler:
    """Holds the single pending import between preview and confirm."""

    def __init__(self, store: PayrollStore, preview_limit: int = 100):
        self.store = store
        self.preview_limit = preview_limit
        self._pending: Optional[PendingImport] = None
        self._lock = asyncio.Lock()

    @property
    def pending(self) -> Optional[PendingImport]:
        return self._pending

    async def reset_store(self) -> None:
        """Wipe the store and discard the pending import as one step."""
        async with self._lock:
            await self.store.reset()
            if self._pending is not None:
                logger.info("Pending import discarded")
            self._pending = None

    async def preview(self, rows: Sequence[Mapping[str, Any]], key_field: str = CODE_FIELD) -> ImportPreview:
        if key_field not in KEY_FIELDS:
            raise InvalidFieldError(key_field, reason="Unsupported key column")

        async with self._lock:
            records = await self.store.list_all()
            pending = reconcile(rows, records, key_field)
            if self._pending is not None:
                logger.info("Discarding previous pending import")
            self._pending = pending

        logger.info(
            f"Import preview on '{key_field}': {len(pending.changes)} changes, "
            f"{pending.updated_records} matched, {len(pending.new_employees)} new"
        )
        return ImportPreview(
            changes=[change.to_schema() for change in pending.changes[:self.preview_limit]],
            total_changes=len(pending.changes),
            new_records=len(pending.new_employees),
            updated_records=pending.updated_records,
        )

    async def confirm(self, user: Optional[str] = None) -> ImportResult:
        """Apply the pending import. Not atomic: a failure leaves earlier steps applied."""
        async with self._lock:
            pending = self._pending
            if pending is None:
                raise NoPendingImportError()

            applied = 0
            for change in pending.changes:
                updated = await self.store.update_field(change.employee_id, change.field, change.new_value, user=user)
                if updated is None:
                    logger.warning(f"Import change skipped, employee {change.employee_id} no longer exists")
                    continue
                applied += 1

            for fields in pending.new_employees:
                await self.store.create(fields)

            self._pending = None

        logger.info(f"Import confirmed: {applied} changes applied, {len(pending.new_employees)} records created")
        return ImportResult(applied=applied, created=len(pending.new_employees))

    async def seed_from_workbook(self, path: Optional[Path]) -> SeedResult:
        """Load the monthly payroll workbook into an empty store."""
        count = await self.store.count()
        if count > 0:
            return SeedResult(message="Data already exists", count=count)

        if path is None or not Path(path).is_file():
            raise SeedWorkbookNotFoundError(path)

        content = await asyncio.to_thread(Path(path).read_bytes)
        rows = seed_rows(read_rows(content))
        created = await self.store.create_many(rows)
        logger.info(f"Seeded {len(created)} employees from {path}")
        return SeedResult(message="Data imported successfully", count=len(created))
