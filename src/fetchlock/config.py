"""Configuration management for fetchlock."""

import tomllib
from pathlib import Path

import tomli_w
from pydantic import BaseModel, Field, ValidationError

from .constants import (
    HTTP_RETRIES,
    HTTP_RETRY_DELAY,
    HTTP_TIMEOUT,
    LOCK_TIMEOUT,
    POLL_INTERVAL,
    STALE_TIMEOUT,
)
from .errors import ConfigError


class LockConfig(BaseModel):
    """Lock acquisition settings (seconds)."""

    timeout: float = Field(default=LOCK_TIMEOUT, ge=0, description="Max wait for the lock")
    poll_interval: float = Field(default=POLL_INTERVAL, gt=0, description="Delay between retries")
    stale_timeout: float = Field(
        default=STALE_TIMEOUT, gt=0, description="Age after which a held lock is abandoned"
    )
    dir: Path | None = Field(default=None, description="Locks directory (default: beside dest)")


class HttpConfig(BaseModel):
    """HTTP transport settings."""

    timeout: float = Field(default=HTTP_TIMEOUT, gt=0, description="Per-request timeout")
    retries: int = Field(default=HTTP_RETRIES, ge=0, description="Extra attempts on failure")
    retry_delay: float = Field(default=HTTP_RETRY_DELAY, ge=0, description="Base backoff delay")
    headers: dict[str, str] = Field(default_factory=dict, description="Extra request headers")


class FetchLockConfig(BaseModel):
    """Root configuration for fetchlock."""

    lock: LockConfig = Field(default_factory=LockConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)


def load_config(config_path: Path | None) -> FetchLockConfig:
    """Load config from a TOML file.

    Args:
        config_path: Path to the TOML file, or None

    Returns:
        Loaded configuration, or defaults if no file is given or it doesn't exist

    Raises:
        ConfigError: If the file is not valid TOML or has invalid values
    """
    if config_path is None or not config_path.exists():
        return FetchLockConfig()
    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
        return FetchLockConfig.model_validate(data)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {config_path}: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e


def write_config_template(config_path: Path) -> Path:
    """Write default config template.

    Args:
        config_path: Destination TOML file

    Returns:
        Path to the written config file
    """
    template = {
        "lock": {
            "timeout": LOCK_TIMEOUT,
            "poll_interval": POLL_INTERVAL,
            "stale_timeout": STALE_TIMEOUT,
        },
        "http": {
            "timeout": HTTP_TIMEOUT,
            "retries": HTTP_RETRIES,
            "retry_delay": HTTP_RETRY_DELAY,
            "headers": {},
        },
    }
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "wb") as f:
        tomli_w.dump(template, f)
    return config_path
