"""
lending_config -- single public entrypoint for lending configuration.

Responsibility:
    Provides the only way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables directly.

Architecture position:
    Configuration -- sits above ``lending_kernel`` and below
    ``lending_services``.  The kernel never imports from this package.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``ValueError`` -- a value failed validation.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``LENDING_CONFIG_TRACE`` log entry with the config id, version,
    checksum, and database dialect.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from lending_config.loader import load_config
from lending_config.schema import (
    DatabaseConfig,
    LendingConfig,
    LoanPolicyConfig,
    LoggingConfig,
    RoleConfig,
)

_logger = logging.getLogger("lending_kernel.config")

CONFIG_PATH_ENV = "LENDING_CONFIG_PATH"
DATABASE_URL_ENV = "DATABASE_URL"

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(path: Path | str | None = None) -> LendingConfig:
    """
    The only public configuration entrypoint.

    Resolution order for the file: ``path`` argument, then the
    ``LENDING_CONFIG_PATH`` environment variable, then the bundled
    ``sets/default.yaml``.  ``DATABASE_URL`` in the environment replaces
    ``database.url``; the checksum covers the file contents only.

    Raises:
        FileNotFoundError: If the resolved file does not exist.
        ValueError: If configuration validation fails.
    """
    resolved = Path(path or os.environ.get(CONFIG_PATH_ENV) or _DEFAULT_CONFIG_PATH)
    config = load_config(resolved)

    database_url = os.environ.get(DATABASE_URL_ENV)
    if database_url:
        config = config.with_database_url(database_url)

    _logger.info(
        "LENDING_CONFIG_TRACE",
        extra={
            "trace_type": "LENDING_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "config_path": str(resolved),
            "database_dialect": config.database.url.split(":", 1)[0],
            "default_loan_period_days": config.loan_policy.default_loan_period_days,
        },
    )
    return config


__all__ = [
    "DatabaseConfig",
    "LendingConfig",
    "LoanPolicyConfig",
    "LoggingConfig",
    "RoleConfig",
    "get_active_config",
]
