"""
Configuration loading and merging helpers.
"""

from __future__ import annotations

import json
import pathlib
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import yaml
from sqlalchemy.engine import URL

from .gate import DEFAULT_MAX_RETRIES
from .runner import DEFAULT_TIMEOUT

CREDENTIAL_VARIABLE = "OS_USERNAME"


class MissingCredentialsError(RuntimeError):
    pass


@dataclass
class DatabaseConfig:
    username: str
    password: str
    dbname: str
    hostname: str
    port: str

    def url(self) -> URL:
        return URL.create(
            "mysql+pymysql",
            username=self.username,
            password=self.password,
            host=self.hostname,
            port=int(self.port),
            database=self.dbname,
        )


@dataclass
class BatchConfig:
    output_filepath: str = "/dev/stdout"
    max_check_times: int = DEFAULT_MAX_RETRIES
    check_lb: str = ""
    post_check: bool = False
    pace: float = 1.0
    timeout: float = DEFAULT_TIMEOUT
    dry_run: bool = False
    log_level: str = "INFO"
    database: Optional[DatabaseConfig] = None


def load_config_file(path: str) -> Dict[str, Any]:
    """
    Load a JSON or YAML config file.
    """
    config_path = pathlib.Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    text = config_path.read_text()
    if config_path.suffix.lower() in {".yaml", ".yml"}:
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("Config file must define a mapping at the top level")
    return data


def merge_config(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Combine two config dictionaries, keeping override values when provided.
    """
    merged = dict(base)
    for key, value in override.items():
        if value is None:
            continue
        merged[key] = value
    return merged


def database_config(data: Mapping[str, Any]) -> Optional[DatabaseConfig]:
    """Return a DatabaseConfig only when all five connection values are set."""
    values = {
        "username": data.get("db_username"),
        "password": data.get("db_password"),
        "dbname": data.get("db_dbname"),
        "hostname": data.get("db_hostname"),
        "port": data.get("db_tcpport"),
    }
    if not all(values.values()):
        return None
    return DatabaseConfig(**{k: str(v) for k, v in values.items()})


def build_batch_config(data: Dict[str, Any]) -> BatchConfig:
    """
    Normalize dictionary input into a BatchConfig.
    """
    max_check_times = int(_value(data, "max_check_times", DEFAULT_MAX_RETRIES))
    if max_check_times < 1:
        raise ValueError(f"max_check_times must be at least 1, got {max_check_times}")
    timeout = float(_value(data, "timeout", DEFAULT_TIMEOUT))
    if timeout <= 0:
        raise ValueError(f"timeout must be positive, got {timeout}")
    pace = float(_value(data, "pace", 1.0))
    if pace < 0:
        raise ValueError(f"pace must not be negative, got {pace}")

    return BatchConfig(
        output_filepath=str(data.get("output_filepath") or "/dev/stdout"),
        max_check_times=max_check_times,
        check_lb=str(data.get("check_lb") or ""),
        post_check=bool(data.get("post_check", False)),
        pace=pace,
        timeout=timeout,
        dry_run=bool(data.get("dry_run", False)),
        log_level=str(data.get("log_level") or "INFO").upper(),
        database=database_config(data),
    )


def _value(data: Mapping[str, Any], key: str, default: Any) -> Any:
    value = data.get(key)
    return default if value is None else value


def check_environment(env: Mapping[str, str]) -> None:
    if CREDENTIAL_VARIABLE not in env:
        raise MissingCredentialsError(
            f"No {CREDENTIAL_VARIABLE} environment found. Execute `source <path/to/openrc>` first!"
        )
