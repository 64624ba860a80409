import logging
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("recengine.config.settings")

BASE_DIR = Path(__file__).resolve().parents[2]  # project root
dotenv_path = find_dotenv(str(BASE_DIR / ".env"), raise_error_if_not_found=False)
if dotenv_path:
    load_dotenv(dotenv_path)
else:
    logger.debug("No .env file found at the project root, using environment/defaults.")


class Settings(BaseSettings):
    # API
    API_BASE_URL: str = "http://localhost:3000/api"
    API_TOKEN: Optional[str] = None

    # Timeouts (seconds)
    REQUEST_TIMEOUT: float = 30
    GENERATE_TIMEOUT: float = 60
    CONTENT_BULK_TIMEOUT: float = 120

    # Workflow limits
    MAX_CONTEXT_FILE_BYTES: int = 5 * 1024 * 1024  # 5MB
    MIN_RECOMMENDATION_ID_LENGTH: int = 11  # server ids are longer than 10 chars

    # Background data-collection watcher
    RECOVERY_POLL_INTERVAL: float = 30

    # Per-brand session state (last stage, collection-in-progress flags)
    STATE_FILE_PATH: str = str(Path.home() / ".recengine_state.json")

    # Logging
    LOG_LEVEL: str = "INFO"
    ENABLE_FILE_LOG: bool = False
    LOG_FILE_PATH: str = ""
    LOG_MAX_SIZE: int = 10 * 1024 * 1024  # 10MB
    LOG_BACKUP_COUNT: int = 5

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        extra="ignore",
    )


settings = Settings()
