"""
imageferry Configuration

Settings resolved from defaults, an optional .env file, and the environment.
Command line flags are applied on top by the CLI layer.
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Mapping, Optional

from dotenv import dotenv_values

from imageferry.constants import (
    DEFAULT_DOCKER_BIN,
    DEFAULT_REGISTRY_HOST,
    DEFAULT_REGISTRY_IMAGE,
    DEFAULT_REGISTRY_PORT,
    DEFAULT_SSH_BIN,
    ENV_FILE_NAME,
    ENV_PREFIX,
    READINESS_MAX_WAIT,
    READINESS_POLL_INTERVAL,
    USER_CONFIG_DIR,
)
from imageferry.exceptions import ConfigurationError
from imageferry.models.transfer import RetryPolicy


@dataclass(frozen=True)
class Settings:
    """Resolved runtime configuration."""

    registry_host: str = DEFAULT_REGISTRY_HOST
    registry_port: int = DEFAULT_REGISTRY_PORT
    registry_image: str = DEFAULT_REGISTRY_IMAGE
    ready_timeout: float = READINESS_MAX_WAIT
    ready_interval: float = READINESS_POLL_INTERVAL
    docker_bin: str = DEFAULT_DOCKER_BIN
    ssh_bin: str = DEFAULT_SSH_BIN
    log_dir: Optional[Path] = None
    verbose: bool = False

    @property
    def readiness_policy(self) -> RetryPolicy:
        return RetryPolicy(max_wait=self.ready_timeout, poll_interval=self.ready_interval)

    def with_overrides(self, **overrides) -> "Settings":
        """Return a copy with non-None overrides applied (CLI flags)."""
        values = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **values)


def find_env_file() -> Optional[Path]:
    """Smart .env file detection"""
    search_paths = [
        Path.cwd() / ENV_FILE_NAME,
        Path(USER_CONFIG_DIR).expanduser() / ENV_FILE_NAME,
    ]

    for path in search_paths:
        if path.exists():
            return path

    return None


def _parse_port(raw: str) -> int:
    try:
        port = int(raw)
    except ValueError:
        raise ConfigurationError(
            f"Invalid registry port '{raw}'", context=f"{ENV_PREFIX}REGISTRY_PORT"
        )
    if not 0 <= port <= 65535:
        raise ConfigurationError(
            f"Registry port out of range: {port}", context=f"{ENV_PREFIX}REGISTRY_PORT"
        )
    return port


def _parse_seconds(raw: str, key: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"Invalid duration '{raw}'", context=key)
    if value < 0:
        raise ConfigurationError(f"Duration must not be negative: {raw}", context=key)
    return value


def load_settings(
    environ: Optional[Mapping[str, str]] = None, env_file: Optional[Path] = None
) -> Settings:
    """
    Load settings from a .env file and the process environment.

    Environment variables win over the .env file.

    Args:
        environ: Environment mapping (defaults to os.environ)
        env_file: Explicit .env path (defaults to smart detection)

    Returns:
        Settings instance

    Raises:
        ConfigurationError: If a value cannot be parsed
    """
    if environ is None:
        environ = os.environ
    if env_file is None:
        env_file = find_env_file()

    merged: Dict[str, str] = {}
    if env_file is not None and env_file.exists():
        merged.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
    merged.update(environ)

    def get(name: str) -> Optional[str]:
        value = merged.get(ENV_PREFIX + name)
        return value if value else None

    values = {}
    if get("REGISTRY_PORT") is not None:
        values["registry_port"] = _parse_port(get("REGISTRY_PORT"))
    if get("REGISTRY_IMAGE") is not None:
        values["registry_image"] = get("REGISTRY_IMAGE")
    if get("READY_TIMEOUT") is not None:
        values["ready_timeout"] = _parse_seconds(
            get("READY_TIMEOUT"), f"{ENV_PREFIX}READY_TIMEOUT"
        )
    if get("READY_INTERVAL") is not None:
        values["ready_interval"] = _parse_seconds(
            get("READY_INTERVAL"), f"{ENV_PREFIX}READY_INTERVAL"
        )
    if get("DOCKER_BIN") is not None:
        values["docker_bin"] = get("DOCKER_BIN")
    if get("SSH_BIN") is not None:
        values["ssh_bin"] = get("SSH_BIN")
    if get("LOG_DIR") is not None:
        values["log_dir"] = Path(get("LOG_DIR")).expanduser()

    return Settings(**values)
