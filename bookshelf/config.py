"""Configuration management."""
import os
from typing import Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _optional_int(value: Optional[str]) -> Optional[int]:
    """Parse an optional positive integer; empty or non-positive means unset."""
    if not value:
        return None
    number = int(value)
    return number if number > 0 else None


class Config:
    """Application configuration."""

    # Supabase (auth + row store)
    SUPABASE_URL = os.getenv("SUPABASE_URL")
    SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY")

    # "supabase" or "postgres"
    ROW_STORE = os.getenv("ROW_STORE", "supabase").lower()

    # Direct PostgreSQL row store
    DB_HOST = os.getenv("DB_HOST", "localhost")
    DB_PORT = os.getenv("DB_PORT", "5432")
    DB_NAME = os.getenv("DB_NAME", "bookshelf")
    DB_USER = os.getenv("DB_USER", "postgres")
    DB_PASSWORD = os.getenv("DB_PASSWORD", "")

    @property
    def DATABASE_URL(self):
        """Build PostgreSQL connection string."""
        return f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    # API
    GOOGLE_BOOKS_API_KEY = os.getenv("GOOGLE_BOOKS_API_KEY")

    # Defaults
    DEFAULT_TIMEOUT = int(os.getenv("DEFAULT_TIMEOUT", "10"))
    PAGE_SIZE = int(os.getenv("PAGE_SIZE", "20"))
    LOOKUP_CONCURRENCY = _optional_int(os.getenv("LOOKUP_CONCURRENCY"))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    @property
    def has_backend(self) -> bool:
        """True when both Supabase credentials are present."""
        return bool(self.SUPABASE_URL and self.SUPABASE_ANON_KEY)
