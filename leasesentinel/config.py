import os
import re
from functools import lru_cache
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file early so env vars are available for YAML interpolation
_env_file = Path(__file__).parent.parent / ".env"
load_dotenv(_env_file)

# Pattern to match $VAR_NAME environment variable references
ENV_VAR_PATTERN = re.compile(r"\$([A-Z_][A-Z0-9_]*)")


def interpolate_env_vars(value):
    """Recursively replace $VAR_NAME with os.environ values."""
    if isinstance(value, str):

        def replace(match):
            var = match.group(1)
            val = os.environ.get(var)
            if val is None:
                raise ValueError(f"Environment variable ${var} not set")
            return val

        return ENV_VAR_PATTERN.sub(replace, value)
    elif isinstance(value, dict):
        return {k: interpolate_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [interpolate_env_vars(item) for item in value]
    return value


def get_config_path() -> Path:
    """Return the app.yaml path for the current working directory."""
    return Path.cwd() / "app.yaml"


def load_app_config() -> dict:
    """Load and parse app.yaml with environment variable interpolation."""
    config_path = get_config_path()

    if not config_path.exists():
        raise FileNotFoundError(f"app.yaml not found at {config_path}")

    with open(config_path, "r") as f:
        config = yaml.safe_load(f) or {}

    return interpolate_env_vars(config)


class DatabaseConfig(BaseModel):
    """Database connection configuration."""

    url: str = "sqlite+aiosqlite:///./leasesentinel.db"
    pool_size: int = 5
    pool_overflow: int = 10
    pool_timeout: int = 30
    echo: bool = False


class CronConfig(BaseModel):
    """Trigger endpoint protection."""

    max_failed_auth: int = 5
    failed_auth_window: float = 60.0


class DispatchConfig(BaseModel):
    """Outbound notification delivery."""

    timeout: float = 5.0
    # Central webhook for slack/teams/email/sms; custom targets bypass it
    relay_url: str | None = None


class SweepConfig(BaseModel):
    """Daily sweep selection.

    ``catch_up_days`` of 0 keeps exact-date selection. A positive value also
    re-selects records still pending from that many previous days.
    """

    catch_up_days: int = 0
    notice_window_days: int = 30
    # "module:ClassName"; empty uses SQLAlchemyStore
    store: str = ""


class LogfireConfig(BaseModel):
    """Pydantic Logfire tracing configuration."""

    enabled: bool = False
    service_name: str = "leasesentinel"
    environment: str | None = None
    sample_rate: float = 1.0
    console: bool = False


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Application
    debug: bool = False
    cron_secret: str = ""
    relay_webhook_url: str = ""

    # Sections (loaded from app.yaml)
    db: DatabaseConfig = DatabaseConfig()
    cron: CronConfig = CronConfig()
    dispatch: DispatchConfig = DispatchConfig()
    sweep: SweepConfig = SweepConfig()
    logfire: LogfireConfig = LogfireConfig()

    @property
    def relay_url(self) -> str | None:
        """Relay webhook from app.yaml, falling back to RELAY_WEBHOOK_URL."""
        return self.dispatch.relay_url or self.relay_webhook_url or None


_SECTIONS = {
    "db": DatabaseConfig,
    "cron": CronConfig,
    "dispatch": DispatchConfig,
    "sweep": SweepConfig,
    "logfire": LogfireConfig,
}


@lru_cache
def get_settings() -> Settings:
    """Load settings from .env and app.yaml."""
    base_settings = Settings()

    try:
        app_config = load_app_config()
    except FileNotFoundError:
        return base_settings

    updates = {}
    for key, model in _SECTIONS.items():
        if key in app_config:
            updates[key] = model(**(app_config[key] or {}))

    if "cron_secret" in app_config:
        updates["cron_secret"] = str(app_config["cron_secret"])

    if updates:
        return base_settings.model_copy(update=updates)

    return base_settings
