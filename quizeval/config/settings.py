"""
Runtime configuration.

All settings are loaded from environment variables (a local .env file is
honoured through python-dotenv).
"""
import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def get_bool_env(key: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ('true', '1', 'yes', 'on', 'enabled')


def get_int_env(key: str, default: int) -> int:
    """Get an integer value from environment variable, falling back on garbage."""
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


class Settings:
    """
    Application settings.

    To add a new setting:
    1. Add it here as a class attribute
    2. Load it from an environment variable
    3. Read it through the module-level ``settings`` instance
    """

    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./quizeval.db")
    SQL_ECHO: bool = get_bool_env("SQL_ECHO", False)
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # Upper bound on how long one evaluation run may hold the quiz lock
    EVALUATION_TIMEOUT_SECONDS: int = get_int_env("EVALUATION_TIMEOUT_SECONDS", 120)

    # Kill switch for the evaluate endpoint
    FEATURE_EVALUATION_ENGINE: bool = get_bool_env("FEATURE_EVALUATION_ENGINE", True)

    @classmethod
    def is_enabled(cls, flag_name: str) -> bool:
        """Check if a feature flag is enabled."""
        return bool(getattr(cls, flag_name, False))

    @classmethod
    def get(cls, name: str, default: Optional[object] = None) -> Optional[object]:
        return getattr(cls, name, default)


settings = Settings()
