from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path


DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

PLACEHOLDER_API_KEYS = {"", "YOUR_GOOGLE_AI_KEY"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    try:
        return int(raw) if raw not in (None, "") else default
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    try:
        return float(raw) if raw not in (None, "") else default
    except ValueError:
        return default


@dataclass(slots=True)
class Settings:
    """Process configuration collected from the environment."""

    cors_origins: list[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    log_level: str = "INFO"
    sentinel_root: Path = field(default_factory=lambda: Path(tempfile.gettempdir()))
    google_ai_api_key: str | None = None
    ranking_model: str = "gemini-2.5-flash"
    discovery_hour: int = 2
    discovery_minute: int = 0
    discovery_timezone: str = "UTC"
    discovery_max_terms: int = 5
    discovery_delay_seconds: float = 2.0
    scheduler_enabled: bool = True
    continue_on_item_error: bool = True

    @property
    def ranking_oracle_configured(self) -> bool:
        return bool(self.google_ai_api_key)


def load_settings() -> Settings:
    origins_env = os.getenv("API_CORS_ORIGINS", "")
    origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]

    api_key = (os.getenv("GOOGLE_AI_API_KEY") or "").strip()
    if api_key in PLACEHOLDER_API_KEYS:
        api_key = ""

    sentinel_env = os.getenv("SENTINEL_ROOT")
    sentinel_root = Path(sentinel_env).expanduser() if sentinel_env else Path(tempfile.gettempdir())

    return Settings(
        cors_origins=origins or list(DEFAULT_CORS_ORIGINS),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        sentinel_root=sentinel_root,
        google_ai_api_key=api_key or None,
        ranking_model=os.getenv("RANKING_MODEL") or "gemini-2.5-flash",
        discovery_hour=_env_int("DISCOVERY_SCHEDULE_HOUR", 2),
        discovery_minute=_env_int("DISCOVERY_SCHEDULE_MINUTE", 0),
        discovery_timezone=os.getenv("DISCOVERY_TIMEZONE") or "UTC",
        discovery_max_terms=max(1, _env_int("DISCOVERY_MAX_TERMS", 5)),
        discovery_delay_seconds=max(0.0, _env_float("DISCOVERY_DELAY_SECONDS", 2.0)),
        scheduler_enabled=_env_bool("SCHEDULER_ENABLED", True),
        continue_on_item_error=_env_bool("CONTINUE_ON_ITEM_ERROR", True),
    )
