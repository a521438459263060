# payroll_server/core/config.py
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class ServerSettings(BaseSettings):
    """Payroll server settings, read from PAYROLL_* environment variables or .env"""
    model_config = SettingsConfigDict(env_prefix="PAYROLL_", env_file=".env", extra="ignore")

    # Storage
    DATA_DIR: Path = Path("data")
    BACKUPS_DIR: Optional[Path] = None
    SEED_WORKBOOK_PATH: Optional[Path] = None

    # Placeholder identity recorded in history and notes
    DEFAULT_USER: str = "guest"

    # Listing
    DEFAULT_PAGE_SIZE: int = 50
    MAX_PAGE_SIZE: int = 200

    # Number of changes returned by an import preview
    IMPORT_PREVIEW_LIMIT: int = 100

    # HTTP
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    CORS_ORIGINS: List[str] = [
        "http://localhost",
        "http://localhost:5000",
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = "server.log"

    @property
    def backups_dir(self) -> Path:
        return self.BACKUPS_DIR or self.DATA_DIR / "backups"


settings = ServerSettings()
