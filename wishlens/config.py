import json
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from wishlens.constants import (
    DEFAULT_GRID_SIZE,
    MAX_CONCURRENT_TILES,
    MAX_GRID_SIZE,
    MAX_RETRIES,
    REQUEST_TIMEOUT,
    RETRY_BASE_DELAY,
    RETRY_MAX_DELAY,
    TILE_JPEG_QUALITY,
)
from wishlens.logging import get_logger
from wishlens.net.safety import RetryConfig

WISHLENS_DIR = Path.home() / ".wishlens"
SETTINGS_PATH = WISHLENS_DIR / "settings.json"

_logger = get_logger(__name__)


def load_user_settings() -> dict:
    if not SETTINGS_PATH.exists():
        return {}
    try:
        return json.loads(SETTINGS_PATH.read_text())
    except (json.JSONDecodeError, OSError):
        _logger.warning("Failed to load user settings", exc_info=True)
        return {}


def save_user_settings(settings: dict) -> None:
    WISHLENS_DIR.mkdir(exist_ok=True)
    SETTINGS_PATH.write_text(json.dumps(settings, indent=2))


class Config(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="WISHLENS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        validate_assignment=True,
        populate_by_name=True,
    )

    # Backend (Supabase project): standard env vars via aliases
    backend_url: str | None = Field(default=None, alias="SUPABASE_URL")
    anon_key: str | None = Field(default=None, alias="SUPABASE_ANON_KEY")
    access_token: str | None = None

    # Tiling
    grid_size: int = DEFAULT_GRID_SIZE
    jpeg_quality: int = TILE_JPEG_QUALITY
    max_concurrent: int = MAX_CONCURRENT_TILES

    # Network safety
    max_retries: int = MAX_RETRIES
    retry_base_delay: float = RETRY_BASE_DELAY
    retry_max_delay: float = RETRY_MAX_DELAY
    request_timeout: float = REQUEST_TIMEOUT

    log_level: str = "INFO"

    @field_validator("backend_url", mode="before")
    @classmethod
    def _strip_backend_url(cls, v: str | None) -> str | None:
        if v in ("", None):
            return None
        return v.strip().rstrip("/")

    @field_validator("grid_size")
    @classmethod
    def _validate_grid_size(cls, v: int) -> int:
        if not 1 <= v <= MAX_GRID_SIZE:
            raise ValueError(f"grid_size must be 1-{MAX_GRID_SIZE}, got {v}")
        return v

    @field_validator("jpeg_quality")
    @classmethod
    def _validate_jpeg_quality(cls, v: int) -> int:
        if not 1 <= v <= 95:
            raise ValueError(f"jpeg_quality must be 1-95, got {v}")
        return v

    @field_validator("max_concurrent")
    @classmethod
    def _validate_max_concurrent(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_concurrent must be at least 1, got {v}")
        return v

    @field_validator("max_retries")
    @classmethod
    def _validate_max_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"max_retries cannot be negative, got {v}")
        return v

    @model_validator(mode="after")
    def _check_delays(self) -> "Config":
        if self.retry_max_delay < self.retry_base_delay:
            raise ValueError("retry_max_delay must not be smaller than retry_base_delay")
        return self

    @property
    def retry(self) -> RetryConfig:
        return RetryConfig(
            max_retries=self.max_retries,
            base_delay=self.retry_base_delay,
            max_delay=self.retry_max_delay,
            timeout=self.request_timeout,
        )

    @property
    def is_backend_configured(self) -> bool:
        return bool(self.backend_url and self.anon_key)


PERSIST_KEYS = frozenset(
    {
        "backend_url",
        "grid_size",
        "jpeg_quality",
        "max_concurrent",
        "max_retries",
        "retry_base_delay",
        "retry_max_delay",
        "request_timeout",
        "log_level",
    }
)


def get_config() -> Config:
    settings = load_user_settings()

    # Build config: init args (settings.json) > env vars > defaults
    overrides = {k: settings[k] for k in PERSIST_KEYS if k in settings}
    return Config(**overrides)  # type: ignore - pydantic handles validation
