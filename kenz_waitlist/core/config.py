from pydantic_settings import BaseSettings
from typing import List
from pathlib import Path


class Settings(BaseSettings):
    PROJECT_NAME: str = "Kenz Waitlist API"
    # Name shown in user-facing waitlist messages
    PRODUCT_NAME: str = "Kenz Tasks"

    # App Settings
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    # The landing page may be served from any static host
    CORS_ORIGINS: List[str] = ["*"]

    # Ledger storage: "csv" (flat file) or "sql" (DATABASE_URL)
    LEDGER_BACKEND: str = "csv"
    LEDGER_PATH: str = "./data/waitlist.csv"
    LEDGER_ARCHIVE_DIR: str = "./data/archive"
    # Writes are refused once the ledger reaches this size (10MB)
    LEDGER_MAX_BYTES: int = 10 * 1024 * 1024

    # Signup metadata
    DEFAULT_SOURCE: str = "landing_page"
    USER_AGENT_MAX_LENGTH: int = 200

    # Database - only used by the sql ledger backend
    DATABASE_URL: str = "sqlite:///./data/waitlist.db"

    # Admin notification on new signups (off unless explicitly enabled)
    ADMIN_NOTIFY_ENABLED: bool = False
    ADMIN_EMAIL: str = ""

    # Resend (Email)
    RESEND_API_KEY: str = "your-resend-api-key"
    EMAIL_FROM: str = "Kenz Tasks <noreply@kenzapp.com>"

    class Config:
        # Use absolute path to .env file
        env_file = Path(__file__).parent.parent.parent / ".env"
        env_file_encoding = 'utf-8'


settings = Settings()
