from __future__ import annotations

from pathlib import Path

import pytest

from planboard.config import AppConfig, load_config
from planboard.constants import DEFAULT_BCRYPT_ROUNDS, DEFAULT_SECRET_KEY


def test_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path, env={})
    assert config.data_dir == tmp_path.resolve()
    assert config.secret_key == DEFAULT_SECRET_KEY
    assert config.bcrypt_rounds == DEFAULT_BCRYPT_ROUNDS
    assert config.cors_origins == ["*"]
    assert config.backups_dir == tmp_path.resolve() / "backups"


def test_file_then_env_precedence(tmp_path: Path) -> None:
    (tmp_path / "config.yaml").write_text(
        "secret_key: from-file\n"
        "token_expire_minutes: 30\n"
        "cors_origins:\n  - http://a.test\n  - http://b.test\n",
        encoding="utf-8",
    )
    config = load_config(tmp_path, env={"PLANBOARD_SECRET_KEY": "from-env", "PLANBOARD_LOG_LEVEL": "debug"})
    assert config.secret_key == "from-env"
    assert config.token_expire_minutes == 30
    assert config.cors_origins == ["http://a.test", "http://b.test"]
    assert config.log_level == "DEBUG"


def test_env_data_dir_and_numbers(tmp_path: Path) -> None:
    env = {
        "PLANBOARD_DATA_DIR": str(tmp_path / "data"),
        "PLANBOARD_LOCK_TIMEOUT": "2.5",
        "PLANBOARD_BCRYPT_ROUNDS": "4",
        "PLANBOARD_CORS_ORIGINS": "http://a.test, http://b.test",
    }
    config = load_config(env=env)
    assert config.data_dir == (tmp_path / "data").resolve()
    assert config.lock_timeout == 2.5
    assert config.bcrypt_rounds == 4
    assert config.cors_origins == ["http://a.test", "http://b.test"]


def test_invalid_number(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Invalid numeric configuration value"):
        load_config(tmp_path, env={"PLANBOARD_TOKEN_EXPIRE_MINUTES": "soon"})


def test_unreadable_config_file_is_ignored(tmp_path: Path) -> None:
    (tmp_path / "config.yaml").write_text("secret_key: [unclosed\n", encoding="utf-8")
    config = load_config(tmp_path, env={})
    assert config.secret_key == DEFAULT_SECRET_KEY


def test_dataclass_is_constructible_directly(tmp_path: Path) -> None:
    config = AppConfig(data_dir=tmp_path, secret_key="s", bcrypt_rounds=4)
    assert config.algorithm == "HS256"
