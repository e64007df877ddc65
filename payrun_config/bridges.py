"""
Config -> Kernel Bridges.

Functions that turn PayrunSettings into running kernel objects.  They live in
payrun_config (the producer) because the kernel must NEVER import
payrun_config.

Usage:
    from payrun_config import get_settings
    from payrun_config.bridges import build_coordinator, configure_logging_from

    settings = get_settings("payrun.yaml")
    configure_logging_from(settings)
    coordinator = build_coordinator(settings)
"""

from __future__ import annotations

import logging

from payrun_config.schema import PayrunSettings
from payrun_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from payrun_kernel.domain.clock import Clock
from payrun_kernel.logging_config import configure_logging
from payrun_kernel.services.payrun_coordinator import PayrunCoordinator


def build_coordinator(
    settings: PayrunSettings,
    *,
    clock: Clock | None = None,
    create_schema: bool = False,
) -> PayrunCoordinator:
    """
    Initialize the engine from settings and return a coordinator on it.

    Args:
        settings: Loaded settings.
        clock: Clock for settlement timestamps (system clock by default).
        create_schema: Create missing tables first (local SQLite runs).
    """
    engine = init_engine_from_url(settings.database_url, **settings.engine_options())
    if create_schema:
        create_tables(engine)
    return PayrunCoordinator(
        get_session_factory(),
        clock=clock,
        capacity=settings.board_capacity,
    )


def configure_logging_from(
    settings: PayrunSettings,
    handler: logging.Handler | None = None,
) -> logging.Handler:
    """Install the kernel's JSON log handler at ``settings.log_level``."""
    return configure_logging(level=settings.log_level, handler=handler)
