"""
payrun_config -- single public entrypoint for payrun settings.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_settings()``.  No other component reads settings files or
    environment variables directly.

Architecture position:
    Configuration.  This package sits above ``payrun_kernel``: the kernel
    MUST NEVER import from ``payrun_config``; ``bridges`` turns settings into
    kernel objects.

Failure modes:
    - ``FileNotFoundError`` -- the requested settings file does not exist.
    - ``ValueError`` -- schema or value validation failures.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from payrun_config.loader import load_yaml_file, merge_settings, parse_settings
from payrun_config.schema import PayrunSettings

_logger = logging.getLogger("payrun_kernel.config")

_DEFAULTS_FILE = Path(__file__).parent / "defaults.yaml"

DATABASE_URL_ENV = "PAYRUN_DATABASE_URL"


def get_settings(path: Path | str | None = None) -> PayrunSettings:
    """The ONLY public settings entrypoint.

    Sources, later ones winning key by key:
        1. the packaged ``defaults.yaml``
        2. the YAML file at ``path``, if given
        3. ``PAYRUN_DATABASE_URL`` from the environment

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If the merged settings are invalid.
    """
    sources = [load_yaml_file(_DEFAULTS_FILE)]
    if path is not None:
        sources.append(load_yaml_file(Path(path)))

    env_url = os.environ.get(DATABASE_URL_ENV)
    if env_url:
        sources.append({"database_url": env_url})

    settings = parse_settings(merge_settings(*sources))
    _logger.info(
        "settings_loaded",
        extra={
            "settings_file": str(path) if path is not None else None,
            "database_url_from_env": bool(env_url),
            "board_capacity": settings.board_capacity,
        },
    )
    return settings


__all__ = [
    "DATABASE_URL_ENV",
    "PayrunSettings",
    "get_settings",
]
