# payroll_client/client.py
import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiohttp

from payroll_client.config import settings
from payroll_client.utils import log_execution_time, retry

logger = logging.getLogger(__name__)

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
XLS_CONTENT_TYPE = "application/vnd.ms-excel"
EXPORT_FORMATS = ("excel", "json")

# Only transport failures are retried; HTTP error statuses are raised at once
TRANSIENT_ERRORS = (aiohttp.ClientConnectionError, asyncio.TimeoutError)
# Raised before the request reaches the server, so a retry cannot apply it twice
CONNECT_ERRORS = (aiohttp.ClientConnectorError,)


class PayrollAPIError(Exception):
    """The server answered with an error status"""

    def __init__(self, status: int, detail: str):
        self.status = status
        self.detail = detail
        super().__init__(f"API error {status}: {detail}")


@dataclass
class PayrollClient:
    server_url: str = field(default_factory=lambda: settings.SERVER_URL)
    timeout: float = field(default_factory=lambda: settings.TIMEOUT)
    max_retries: int = field(default_factory=lambda: settings.MAX_RETRIES)
    retry_delay: float = field(default_factory=lambda: settings.RETRY_DELAY)

    session: Optional[aiohttp.ClientSession] = field(default=None)

    def __post_init__(self):
        self.server_url = self.server_url.rstrip("/")

    async def initialize(self):
        if not self.session:
            self.session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
        logger.info(f"Client ready for {self.server_url}")

    async def close(self):
        if self.session:
            await self.session.close()
            self.session = None
        logger.info("Resources released")

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def _url(self, path: str) -> str:
        return f"{self.server_url}{path}"

    @staticmethod
    async def _check(response: aiohttp.ClientResponse):
        if response.status >= 400:
            try:
                body = await response.json()
                detail = body.get("detail", body) if isinstance(body, dict) else body
            except (aiohttp.ContentTypeError, ValueError):
                detail = await response.text()
            raise PayrollAPIError(response.status, str(detail))

    async def _request_json(self, method: str, path: str, **kwargs) -> Any:
        if not self.session:
            raise RuntimeError("Client not initialized")

        async with self.session.request(method, self._url(path), **kwargs) as response:
            await self._check(response)
            return await response.json()

    @log_execution_time
    @retry(exceptions=TRANSIENT_ERRORS)
    async def preview_import(self, file_path: str, key_column: Optional[str] = None) -> Dict[str, Any]:
        path = Path(file_path)
        content = path.read_bytes()

        form = aiohttp.FormData()
        content_type = XLS_CONTENT_TYPE if path.suffix.lower() == ".xls" else XLSX_CONTENT_TYPE
        form.add_field("file", content, filename=path.name, content_type=content_type)
        form.add_field("keyColumn", key_column or settings.DEFAULT_KEY_COLUMN)

        logger.info(f"Uploading {path.name} ({len(content)} bytes) for preview")
        return await self._request_json("POST", "/api/import/preview", data=form)

    @log_execution_time
    @retry(exceptions=CONNECT_ERRORS)
    async def confirm_import(self) -> Dict[str, Any]:
        return await self._request_json("POST", "/api/import/confirm")

    @log_execution_time
    @retry(exceptions=TRANSIENT_ERRORS)
    async def create_backup(self) -> Dict[str, Any]:
        return await self._request_json("POST", "/api/backup")

    @log_execution_time
    @retry(exceptions=TRANSIENT_ERRORS)
    async def list_backups(self) -> List[Dict[str, Any]]:
        return await self._request_json("GET", "/api/backups")

    @log_execution_time
    @retry(exceptions=TRANSIENT_ERRORS)
    async def restore_backup(self, filename: str) -> Dict[str, Any]:
        return await self._request_json("POST", "/api/backup/restore", json={"filename": filename})

    @log_execution_time
    @retry(exceptions=TRANSIENT_ERRORS)
    async def export(self, export_format: str, output_path: str) -> int:
        """Download an export to ``output_path`` and return the number of bytes written."""
        if export_format not in EXPORT_FORMATS:
            raise ValueError(f"Unsupported export format: {export_format}")
        if not self.session:
            raise RuntimeError("Client not initialized")

        async with self.session.get(self._url(f"/api/export/{export_format}")) as response:
            await self._check(response)
            content = await response.read()

        output = Path(output_path)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(content)
        logger.info(f"Saved {export_format} export to {output} ({len(content)} bytes)")
        return len(content)

    async def import_file(self, file_path: str, key_column: Optional[str] = None) -> Dict[str, Any]:
        """Preview then confirm in one go; returns both results."""
        preview = await self.preview_import(file_path, key_column)
        logger.info(
            f"Preview: {preview.get('totalChanges', len(preview.get('changes', [])))} changes, "
            f"{preview.get('updatedRecords', 0)} matched, {preview.get('newRecords', 0)} new"
        )
        result = await self.confirm_import()
        return {"preview": preview, "result": result}
