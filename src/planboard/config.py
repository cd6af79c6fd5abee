"""Resolve application configuration from defaults, `config.yaml` and the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

from loguru import logger

from .constants import (
    BACKUPS_DIR,
    CONFIG_FILE,
    DEFAULT_BCRYPT_ROUNDS,
    DATA_DIR_NAME,
    DEFAULT_LOCK_TIMEOUT,
    DEFAULT_SECRET_KEY,
    DEFAULT_TOKEN_EXPIRE_MINUTES,
    JWT_ALGORITHM,
)
from .io_utils import _load_data_with_error


@dataclass
class AppConfig:
    """Runtime settings shared by the store, the services and the API."""

    data_dir: Path = field(default_factory=lambda: Path.cwd() / DATA_DIR_NAME)
    secret_key: str = DEFAULT_SECRET_KEY
    algorithm: str = JWT_ALGORITHM
    token_expire_minutes: int = DEFAULT_TOKEN_EXPIRE_MINUTES
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT
    bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @property
    def backups_dir(self) -> Path:
        return self.data_dir / BACKUPS_DIR


def load_file_config(data_dir: Path) -> tuple[dict[str, Any], str | None]:
    """Load the optional config file.

    Args:
        data_dir: Directory holding the store and ``config.yaml``.

    Returns:
        A tuple of `(config, error_message)`. If the file is missing, returns `({}, None)`.
    """
    path = data_dir / CONFIG_FILE
    data, err = _load_data_with_error(path, {})
    if err:
        return {}, err
    return data, None


def _split_origins(raw: Any) -> list[str]:
    if isinstance(raw, (list, tuple)):
        return [str(item).strip() for item in raw if str(item).strip()]
    return [part.strip() for part in str(raw).split(",") if part.strip()]


def load_config(
    data_dir: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> AppConfig:
    """Build an :class:`AppConfig`.

    Precedence (lowest first): dataclass defaults, ``<data_dir>/config.yaml``,
    then ``PLANBOARD_*`` environment variables.  An explicit *data_dir*
    argument wins over ``PLANBOARD_DATA_DIR``.
    """
    env = os.environ if env is None else env

    if data_dir is None:
        env_dir = env.get("PLANBOARD_DATA_DIR")
        data_dir = Path(env_dir) if env_dir else Path.cwd() / DATA_DIR_NAME
    data_dir = data_dir.expanduser().resolve()

    config = AppConfig(data_dir=data_dir)

    file_config, err = load_file_config(data_dir)
    if err:
        logger.warning("Ignoring unreadable config file: {}", err)

    merged: dict[str, Any] = dict(file_config)
    env_map = {
        "secret_key": "PLANBOARD_SECRET_KEY",
        "token_expire_minutes": "PLANBOARD_TOKEN_EXPIRE_MINUTES",
        "lock_timeout": "PLANBOARD_LOCK_TIMEOUT",
        "cors_origins": "PLANBOARD_CORS_ORIGINS",
        "log_level": "PLANBOARD_LOG_LEVEL",
        "bcrypt_rounds": "PLANBOARD_BCRYPT_ROUNDS",
    }
    for key, var in env_map.items():
        if env.get(var):
            merged[key] = env[var]

    if merged.get("secret_key"):
        config.secret_key = str(merged["secret_key"])
    if merged.get("log_level"):
        config.log_level = str(merged["log_level"]).upper()
    if merged.get("cors_origins") is not None:
        config.cors_origins = _split_origins(merged["cors_origins"])
    try:
        if merged.get("token_expire_minutes") is not None:
            config.token_expire_minutes = int(merged["token_expire_minutes"])
        if merged.get("lock_timeout") is not None:
            config.lock_timeout = float(merged["lock_timeout"])
        if merged.get("bcrypt_rounds") is not None:
            config.bcrypt_rounds = int(merged["bcrypt_rounds"])
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid numeric configuration value: {exc}") from exc

    if config.secret_key == DEFAULT_SECRET_KEY:
        logger.warning("Using the default JWT secret; set PLANBOARD_SECRET_KEY in production")
    return config
