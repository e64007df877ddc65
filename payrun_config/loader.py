"""
Settings Loader (``payrun_config.loader``).

Responsibility
--------------
Loads YAML settings files and parses them into the frozen
``PayrunSettings`` dataclass.  The single public entry point for runtime
settings is ``payrun_config.get_settings()``.

Invariants enforced
-------------------
* Every parse error raises ``ValueError`` with a descriptive message; unknown
  keys are rejected rather than ignored.
* Later sources override earlier ones key by key (defaults, then the user
  file, then the environment).

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Wrong type or out-of-range value  -> ``ValueError``.
"""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from payrun_config.schema import PayrunSettings

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def merge_settings(*sources: dict[str, Any]) -> dict[str, Any]:
    """Shallow-merge settings dicts; later sources win."""
    merged: dict[str, Any] = {}
    for source in sources:
        merged.update(source)
    return merged


def _parse_int(data: dict[str, Any], key: str, minimum: int) -> int:
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer, got {value!r}")
    if value < minimum:
        raise ValueError(f"{key} must be >= {minimum}, got {value}")
    return value


def _parse_bool(data: dict[str, Any], key: str) -> bool:
    value = data[key]
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be true or false, got {value!r}")
    return value


def parse_settings(data: dict[str, Any]) -> PayrunSettings:
    """
    Parse a ``PayrunSettings`` from a merged settings dict.

    Raises:
        ValueError: on unknown keys, a missing database_url, or any
            wrong-typed or out-of-range value.
    """
    known = {f.name for f in fields(PayrunSettings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown settings: {', '.join(unknown)}")

    database_url = data.get("database_url")
    if not isinstance(database_url, str) or not database_url.strip():
        raise ValueError("database_url is required")

    log_level = str(data.get("log_level", "INFO")).upper()
    if log_level not in _LOG_LEVELS:
        raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}, got {log_level!r}")

    busy_timeout = data.get("sqlite_busy_timeout", 30.0)
    if isinstance(busy_timeout, bool) or not isinstance(busy_timeout, (int, float)):
        raise ValueError(f"sqlite_busy_timeout must be a number, got {busy_timeout!r}")
    if busy_timeout < 0:
        raise ValueError(f"sqlite_busy_timeout must be >= 0, got {busy_timeout}")

    defaults = {f.name: f.default for f in fields(PayrunSettings)}
    values = merge_settings(defaults, data)

    return PayrunSettings(
        database_url=database_url.strip(),
        board_capacity=_parse_int(values, "board_capacity", 1),
        log_level=log_level,
        echo_sql=_parse_bool(values, "echo_sql"),
        pool_size=_parse_int(values, "pool_size", 1),
        max_overflow=_parse_int(values, "max_overflow", 0),
        pool_timeout=_parse_int(values, "pool_timeout", 0),
        sqlite_busy_timeout=float(busy_timeout),
    )
