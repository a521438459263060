# payroll_server/core/backup.py
import asyncio
import json
import logging
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from payroll_server.core.audit import timestamp_sort_key
from payroll_server.core.storage import PayrollStore, read_json_file
from payroll_server.models.model import Snapshot
from payroll_server.schemas.schema import BackupInfo

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "backup-"
BACKUP_SUFFIX = ".json"


def _iso(moment: datetime) -> str:
    return moment.isoformat(timespec="microseconds").replace("+00:00", "Z")


def snapshot_filename(timestamp: str) -> str:
    """File name for a snapshot; sorts in the same order as the timestamps."""
    return f"{BACKUP_PREFIX}{timestamp.replace(':', '-').replace('.', '-')}{BACKUP_SUFFIX}"


class BackupManager:
    """Point-in-time snapshots of the payroll store.

    Each snapshot is one JSON file holding employees, history and notes. The
    backups directory is the catalog; nothing else tracks which snapshots exist.
    """

    def __init__(self, store: PayrollStore, backups_dir: Path):
        self.store = store
        self.backups_dir = Path(backups_dir)

    def _write_exclusive(self, moment: datetime, state: dict) -> BackupInfo:
        self.backups_dir.mkdir(parents=True, exist_ok=True)
        while True:
            timestamp = _iso(moment)
            path = self.backups_dir / snapshot_filename(timestamp)
            try:
                with open(path, "x", encoding="utf-8") as f:
                    json.dump({**state, "timestamp": timestamp}, f, ensure_ascii=False, indent=2)
                break
            except FileExistsError:
                moment += timedelta(microseconds=1)
        return BackupInfo(filename=path.name, timestamp=timestamp, employee_count=len(state["employees"]))

    async def _snapshot_unlocked(self) -> BackupInfo:
        state = self.store.state()
        info = await asyncio.to_thread(self._write_exclusive, datetime.now(timezone.utc), state)
        logger.info(f"Backup created: {info.filename} ({info.employee_count} employees)")
        return info

    async def create_snapshot(self) -> BackupInfo:
        async with self.store.exclusive():
            return await self._snapshot_unlocked()

    def _scan(self) -> List[BackupInfo]:
        if not self.backups_dir.is_dir():
            return []
        backups = []
        for path in self.backups_dir.iterdir():
            if path.suffix != BACKUP_SUFFIX or not path.is_file():
                continue
            data = read_json_file(path, None)
            if not isinstance(data, dict):
                logger.warning(f"Skipping unreadable backup file: {path.name}")
                continue
            employees = data.get("employees")
            timestamp = data.get("timestamp")
            if not isinstance(timestamp, str):
                timestamp = _iso(datetime.fromtimestamp(path.stat().st_mtime, timezone.utc))
            backups.append(
                BackupInfo(
                    filename=path.name,
                    timestamp=timestamp,
                    employee_count=len(employees) if isinstance(employees, list) else 0,
                )
            )
        backups.sort(key=lambda b: (timestamp_sort_key(b.timestamp), b.filename), reverse=True)
        return backups

    async def list_snapshots(self) -> List[BackupInfo]:
        return await asyncio.to_thread(self._scan)

    def _resolve(self, filename: str) -> Optional[Path]:
        if not filename or os.path.basename(filename) != filename or filename in (".", ".."):
            return None
        path = self.backups_dir / filename
        return path if path.is_file() else None

    def _load(self, filename: str) -> Optional[Snapshot]:
        path = self._resolve(filename)
        if path is None:
            return None
        data = read_json_file(path, None)
        if not isinstance(data, dict):
            return None
        try:
            return Snapshot.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Backup {filename} failed validation: {e}")
            return None

    async def restore(self, filename: str) -> bool:
        """Restore a snapshot after saving the current state as a new snapshot.

        Returns False, without touching anything, when the snapshot is
        missing or unreadable.
        """
        async with self.store.exclusive():
            snapshot = await asyncio.to_thread(self._load, filename)
            if snapshot is None:
                logger.warning(f"Restore failed, backup not found or invalid: {filename}")
                return False

            safety = await self._snapshot_unlocked()
            self.store.load_state(snapshot)
            await self.store.persist()
            logger.info(f"Backup restored: {filename} (previous state saved as {safety.filename})")
            return True
