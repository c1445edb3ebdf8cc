"""
# Configuration

Pydantic-based settings for the Content Hub backend. Values are read from environment variables,
optionally pre-loaded from a config file.

## Config File Discovery

1. **Environment Variable**: `CONTENT_HUB_CONFIG_PATH` (if set and the file exists).
2. **Local Overrides**: `.env.local` in the project root.
3. **Dotenv**: `.env` in the project root.
4. **Fallback**: environment variables only.

## Required Values

- `MONGODB_URL` - document store connection string
- `MONGODB_DATABASE` - database name
- `SECRET_KEY` - JWT signing key (rejected when empty or a placeholder)

## Collaborators

- `N8N_WEBHOOK_NEW_BRIEF`, `N8N_WEBHOOK_PUBLISH`, `N8N_WEBHOOK_SCHEDULE` - workflow webhooks
- `IMAGE_SERVICE_URL`, `IMAGE_SERVICE_API_KEY` - generative image service

Both collaborator families are called with bounded timeouts (`WORKFLOW_TIMEOUT_SECONDS`,
`IMAGE_SERVICE_TIMEOUT_SECONDS`).

## Usage

```python
from content_hub.config import get_settings

settings = get_settings()
secret_key = settings.SECRET_KEY.get_secret_value()
```
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, List, Optional

from dotenv import load_dotenv
from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Constants ---
LOCAL_ENV_FILENAME: str = ".env.local"
DEFAULT_ENV_FILENAME: str = ".env"
CONFIG_ENV_VAR: str = "CONTENT_HUB_CONFIG_PATH"
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent.parent

PLACEHOLDER_MARKERS = ("change", "0000", "your_")


# --- Config file discovery (no logging) ---
def get_config_path() -> Optional[str]:
    """
    Determine the configuration file path.

    Checks `CONTENT_HUB_CONFIG_PATH`, then `.env.local`, then `.env` in the project root.

    Returns:
        Optional[str]: Path to the configuration file, or `None` for environment-only mode.
    """
    env_path: Optional[str] = os.environ.get(CONFIG_ENV_VAR)
    if env_path and os.path.exists(env_path):
        return env_path
    for filename in (LOCAL_ENV_FILENAME, DEFAULT_ENV_FILENAME):
        candidate: Path = PROJECT_ROOT / filename
        if candidate.exists():
            return str(candidate)
    return None


CONFIG_PATH: Optional[str] = get_config_path()
if CONFIG_PATH:
    load_dotenv(dotenv_path=CONFIG_PATH, override=True)


class Settings(BaseSettings):
    """
    Application configuration settings model.

    **Configuration Groups:**
    *   **Server**: Host, port, debug mode, CORS origins, request body limit.
    *   **Security**: JWT signing configuration.
    *   **Database**: MongoDB connection and collection names.
    *   **Collaborators**: Workflow webhooks and the image generation service.
    *   **Logging**: Default log level.
    """

    model_config = SettingsConfigDict(
        env_file=CONFIG_PATH if CONFIG_PATH else None,
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="allow",
    )

    # Server configuration
    HOST: str = "127.0.0.1"
    PORT: int = 5000
    DEBUG: bool = True
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"
    MAX_REQUEST_BODY_BYTES: int = 10 * 1024 * 1024  # 10 MiB

    # JWT configuration
    SECRET_KEY: SecretStr = SecretStr("")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # MongoDB configuration
    MONGODB_URL: str = ""
    MONGODB_DATABASE: str = "content_hub"
    MONGODB_CONNECTION_TIMEOUT: int = 10000
    MONGODB_SERVER_SELECTION_TIMEOUT: int = 5000
    MONGODB_USERNAME: Optional[str] = None
    MONGODB_PASSWORD: Optional[SecretStr] = None

    MONGODB_COLLECTION_USERS: str = "users"
    MONGODB_COLLECTION_DOMAINS: str = "domains"
    MONGODB_COLLECTION_BRAND_GUIDES: str = "brand_guides"
    MONGODB_COLLECTION_CONTENT_BRIEFS: str = "content_briefs"

    # Workflow automation webhooks (n8n)
    N8N_WEBHOOK_NEW_BRIEF: Optional[str] = None
    N8N_WEBHOOK_PUBLISH: Optional[str] = None
    N8N_WEBHOOK_SCHEDULE: Optional[str] = None
    WORKFLOW_TIMEOUT_SECONDS: float = 30.0

    # Generative image service
    IMAGE_SERVICE_URL: Optional[str] = None
    IMAGE_SERVICE_API_KEY: Optional[SecretStr] = None
    IMAGE_SERVICE_TIMEOUT_SECONDS: float = 120.0

    # Logging configuration
    DEFAULT_LOG_LEVEL: str = "INFO"

    @field_validator("SECRET_KEY", mode="before")
    @classmethod
    def no_hardcoded_secrets(cls, v: Any, info: Any) -> Any:
        """
        Reject empty or placeholder secrets.

        Raises:
            ValueError: If the value is empty or contains placeholder text.
        """
        raw = v.get_secret_value() if hasattr(v, "get_secret_value") else v
        if not raw or not str(raw).strip() or any(marker in str(raw).lower() for marker in PLACEHOLDER_MARKERS):
            raise ValueError(f"{info.field_name} must be set via environment or .env and not hardcoded!")
        return v

    @field_validator("MONGODB_URL", mode="before")
    @classmethod
    def no_empty_urls(cls, v: Any, info: Any) -> Any:
        """
        Validate that the MongoDB URL is not empty.

        Raises:
            ValueError: If the URL is empty or whitespace.
        """
        if not v or not str(v).strip():
            raise ValueError(f"{info.field_name} must be set via environment or .env and not empty!")
        return v

    @field_validator("WORKFLOW_TIMEOUT_SECONDS", "IMAGE_SERVICE_TIMEOUT_SECONDS", mode="before")
    @classmethod
    def validate_timeout_values(cls, v: Any, info: Any) -> float:
        """
        Validate that collaborator timeouts are within 1-300 seconds.

        Raises:
            ValueError: If the timeout is out of range.
        """
        timeout = float(v)
        if timeout < 1 or timeout > 300:
            raise ValueError(f"{info.field_name} must be between 1 and 300 seconds")
        return timeout

    @property
    def is_production(self) -> bool:
        """`True` when `DEBUG` is off."""
        return not self.DEBUG

    @property
    def cors_origins_list(self) -> List[str]:
        """CORS origins parsed from the comma-separated `CORS_ORIGINS` value."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def workflow_webhooks_configured(self) -> bool:
        """`True` when both the publish and schedule webhooks are set."""
        return bool(self.N8N_WEBHOOK_PUBLISH and self.N8N_WEBHOOK_SCHEDULE)


@lru_cache()
def get_settings() -> Settings:
    """Return the process-wide settings, loading them on first use."""
    return Settings()
