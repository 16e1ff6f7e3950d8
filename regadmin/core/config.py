from pathlib import Path
import os
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]  # repo root

ENV_FILE = os.getenv("ENV_FILE", str(BASE_DIR / ".env"))

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=ENV_FILE, extra="ignore")

    APP_ENV: str = "local"
    DATABASE_URL: str = f"sqlite:///{BASE_DIR / 'registration.db'}"
    CORS_ORIGINS: str = "*"  # Comma-separated list of allowed origins, or "*" for all
    LOG_LEVEL: str = "INFO"

    # Spreadsheet imports
    IMPORT_DIR: Path = BASE_DIR / "storage" / "imports"
    EXPORT_DIR: Path = BASE_DIR / "storage" / "exports"
    DEFAULT_SHEET_NAME: str = "FINAL CLARK REGISTRATION_2024"
    FAILURE_SAMPLE_LIMIT: int = 10
    PREVIEW_LIMIT: int = 20

    # Uploaded registrant files
    STORAGE_DIR: Path = BASE_DIR / "storage" / "user-files"
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list, handling '*' for development"""
        if self.CORS_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

settings = Settings()
