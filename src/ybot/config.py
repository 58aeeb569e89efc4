"""Process configuration loaded from the environment."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

import msgspec

ENV_PREFIX = "YALTER_BOT_"
DEFAULT_STATE_DIR = Path.home() / ".ybot"
LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
LOG_FORMATS = {"console", "json"}


class ConfigError(Exception):
    """Configuration is missing or malformed."""


class Settings(msgspec.Struct, frozen=True, kw_only=True):
    """Runtime settings for the bot."""

    token: str
    client_id: str | None = None
    state_dir: Path = DEFAULT_STATE_DIR
    log_level: str = "INFO"
    log_format: str = "console"

    @property
    def admin_state_path(self) -> Path:
        return self.state_dir / "admin.json"


def _read_token(env: Mapping[str, str]) -> str:
    token = env.get(f"{ENV_PREFIX}TOKEN", "").strip()
    if token:
        return token

    token_file = env.get(f"{ENV_PREFIX}TOKEN_FILE")
    if token_file:
        try:
            token = Path(token_file).expanduser().read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Couldn't read the token file {token_file}: {exc}") from exc
        if token:
            return token
        raise ConfigError(f"The token file {token_file} is empty")

    raise ConfigError(f"Please set the {ENV_PREFIX}TOKEN environment variable")


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Build Settings from environment variables.

    Raises ConfigError when the token is absent or a value is invalid.
    """
    if env is None:
        env = os.environ

    token = _read_token(env)

    log_level = env.get(f"{ENV_PREFIX}LOG_LEVEL", "INFO").upper()
    if log_level not in LOG_LEVELS:
        raise ConfigError(f"Unknown log level: {log_level}")

    log_format = env.get(f"{ENV_PREFIX}LOG_FORMAT", "console").lower()
    if log_format not in LOG_FORMATS:
        raise ConfigError(f"Unknown log format: {log_format}")

    state_dir = env.get(f"{ENV_PREFIX}STATE_DIR")

    return Settings(
        token=token,
        client_id=env.get(f"{ENV_PREFIX}CLIENT_ID") or None,
        state_dir=Path(state_dir).expanduser() if state_dir else DEFAULT_STATE_DIR,
        log_level=log_level,
        log_format=log_format,
    )
