# sitescout/core/config.py
from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    """Loads environment variables from .env file."""
    GEMINI_API_KEY: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("GEMINI_API_KEY", "API_KEY")
    )
    ANALYSIS_MODEL: str = "gemini-3-pro-preview"
    CHAT_MODEL: str = "gemini-3-flash-preview"

    HISTORY_DB_PATH: str = "sitescout_history.sqlite"
    HISTORY_LIMIT: int = 15

    PROGRESS_INTERVAL_SECONDS: float = 3.0
    CORS_ORIGINS: str = "*"
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def cors_origins_list(self) -> List[str]:
        origins = [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]
        return origins or ["*"]

# Create a single instance of the settings to be used across the application
settings = Settings()
