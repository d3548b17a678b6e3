"""Configuration management from environment variables."""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file BEFORE reading environment variables
# Try multiple locations: project root, package directory, current working directory
env_paths = [
    Path(__file__).parent.parent / ".env",  # Project root (preferred)
    Path(__file__).parent / ".env",  # scoped_settings/ directory (fallback)
    Path.cwd() / ".env",  # Current working directory (fallback)
]

for env_path in env_paths:
    if env_path.exists():
        try:
            load_dotenv(env_path, override=False)
            break
        except (PermissionError, IOError):
            # If we can't read the file, continue to next location
            continue


CONFIGURABLE_ID_TYPES = ("int", "bigint", "uuid", "string")
CACHE_DRIVERS = ("memory", "redis")


def _optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name, "").strip()
    if not raw or raw == "0":
        return None
    return int(raw)


class Config:
    """Settings store configuration from environment variables."""

    # Storage
    SETTINGS_TABLE_NAME: str = os.getenv("SETTINGS_TABLE_NAME", "system_settings")
    SETTINGS_CONFIGURABLE_ID_TYPE: str = os.getenv("SETTINGS_CONFIGURABLE_ID_TYPE", "int").lower()

    # Cache
    SETTINGS_CACHE_PREFIX: str = os.getenv("SETTINGS_CACHE_PREFIX", "system_settings")
    SETTINGS_CACHE_DRIVER: str = os.getenv("SETTINGS_CACHE_DRIVER", "memory").lower()
    SETTINGS_CACHE_TTL_SECONDS: Optional[int] = _optional_int("SETTINGS_CACHE_TTL_SECONDS")  # None = backend default

    # Value adapter
    SETTINGS_STRICT_ENTITY_COLLECTIONS: bool = (
        os.getenv("SETTINGS_STRICT_ENTITY_COLLECTIONS", "false").lower() == "true"
    )

    # Logging
    SETTINGS_LOG_LEVEL: str = os.getenv("SETTINGS_LOG_LEVEL", "info").upper()

    # Redis config
    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_DB: int = int(os.getenv("REDIS_DB", "0"))
    REDIS_PASSWORD: Optional[str] = os.getenv("REDIS_PASSWORD")

    @classmethod
    def configurable_id_type(cls) -> str:
        """Get the configurable id column type, falling back to string like the migration does."""
        if cls.SETTINGS_CONFIGURABLE_ID_TYPE in CONFIGURABLE_ID_TYPES:
            return cls.SETTINGS_CONFIGURABLE_ID_TYPE
        return "string"

    @classmethod
    def validate(cls) -> None:
        """Validate configuration and fail fast on invalid settings."""
        if cls.SETTINGS_CONFIGURABLE_ID_TYPE not in CONFIGURABLE_ID_TYPES:
            raise ValueError(
                f"Invalid SETTINGS_CONFIGURABLE_ID_TYPE: {cls.SETTINGS_CONFIGURABLE_ID_TYPE!r}, "
                f"expected one of {', '.join(CONFIGURABLE_ID_TYPES)}"
            )
        if cls.SETTINGS_CACHE_DRIVER not in CACHE_DRIVERS:
            raise ValueError(
                f"Invalid SETTINGS_CACHE_DRIVER: {cls.SETTINGS_CACHE_DRIVER!r}, "
                f"expected one of {', '.join(CACHE_DRIVERS)}"
            )
        if not cls.SETTINGS_TABLE_NAME:
            raise ValueError("SETTINGS_TABLE_NAME must not be empty")


# Global config instance
config = Config()
