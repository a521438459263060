# payroll_client/config.py
import json
import logging

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)


class ClientSettings(BaseSettings):
    """Client settings"""
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Server connection
    SERVER_URL: str = "http://localhost:8000"
    TIMEOUT: float = 30.0

    # Retry settings
    MAX_RETRIES: int = 3
    RETRY_DELAY: float = 1.0

    # Import settings
    DEFAULT_KEY_COLUMN: str = "الكود"

    # Logging
    LOG_FILE: str = "client.log"


# Create instance of settings
settings = ClientSettings()

logger.debug(f"Client configuration loaded: {json.dumps(settings.model_dump(), indent=2, default=str, ensure_ascii=False)}")
