# payroll_server/core/audit.py
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from payroll_server.models.model import FieldValue, HistoryEntry

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def utc_timestamp(precision: str = "milliseconds") -> str:
    """Current UTC time as ISO-8601 with a trailing Z."""
    return datetime.now(timezone.utc).isoformat(timespec=precision).replace("+00:00", "Z")


def timestamp_sort_key(value: Optional[str]) -> datetime:
    if not value:
        return _EPOCH
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return _EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class AuditLog:
    """Append-only history of record mutations."""

    def __init__(self):
        self._entries: List[HistoryEntry] = []

    def __len__(self):
        return len(self._entries)

    def record(
        self,
        employee_id: str,
        field: str,
        old_value: FieldValue,
        new_value: FieldValue,
        user: str,
        employee_name: Optional[str] = None,
        timestamp: Optional[str] = None,
    ) -> HistoryEntry:
        entry = HistoryEntry(
            id=str(uuid.uuid4()),
            employee_id=employee_id,
            employee_name=employee_name,
            field=field,
            old_value=old_value,
            new_value=new_value,
            user=user,
            timestamp=timestamp or utc_timestamp(),
        )
        self._entries.append(entry)
        logger.debug(f"History recorded: {entry!r}")
        return entry

    def list(self) -> List[HistoryEntry]:
        """All entries, newest first. Entries with equal timestamps keep append order."""
        return sorted(self._entries, key=lambda e: timestamp_sort_key(e.timestamp), reverse=True)

    def load(self, items: Iterable[Any]) -> None:
        entries = []
        for item in items:
            if isinstance(item, HistoryEntry):
                entries.append(item)
                continue
            try:
                entries.append(HistoryEntry.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping malformed history entry: {e}")
        self._entries = entries

    def clear(self) -> None:
        self._entries = []

    def dump(self) -> List[Dict[str, Any]]:
        return [entry.model_dump(by_alias=True) for entry in self._entries]
