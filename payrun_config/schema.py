"""
Payrun settings schema.

The typed form of the YAML settings file.  The loader parses YAML into this
frozen dataclass; nothing else in the system reads settings files.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PayrunSettings:
    """Runtime settings for one payrun deployment."""

    database_url: str
    board_capacity: int = 10
    log_level: str = "INFO"
    echo_sql: bool = False

    # Connection pool (PostgreSQL only)
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30

    # Seconds a SQLite writer waits on the database lock
    sqlite_busy_timeout: float = 30.0

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def engine_options(self) -> dict:
        """Keyword arguments for payrun_kernel.db.engine.init_engine_from_url."""
        return {
            "echo": self.echo_sql,
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "pool_timeout": self.pool_timeout,
            "sqlite_busy_timeout": self.sqlite_busy_timeout,
        }
