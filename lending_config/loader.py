"""
Configuration loader (``lending_config.loader``).

Loads a YAML configuration file and parses it into the frozen dataclasses
of ``lending_config.schema``.  Runtime code goes through
``lending_config.get_active_config()`` instead of calling this directly.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Invalid values (non-positive loan period, unknown log level, ...)
  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any

import yaml

from lending_config.schema import (
    DatabaseConfig,
    LendingConfig,
    LoanPolicyConfig,
    LoggingConfig,
    RoleConfig,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _positive_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"{name} must be a positive integer, got {value!r}")
    return value


def parse_loan_policy(data: dict[str, Any]) -> LoanPolicyConfig:
    default = _positive_int(
        data.get("default_loan_period_days", 14), "default_loan_period_days"
    )
    overrides = tuple(
        sorted(
            (str(tenant), _positive_int(days, f"tenant_overrides.{tenant}"))
            for tenant, days in (data.get("tenant_overrides") or {}).items()
        )
    )
    return LoanPolicyConfig(default_loan_period_days=default, tenant_overrides=overrides)


def parse_roles(data: dict[str, Any]) -> RoleConfig:
    roles = RoleConfig(
        member_role=data.get("member_role", "member"),
        librarian_role=data.get("librarian_role", "librarian"),
    )
    if not roles.member_role or not roles.librarian_role:
        raise ValueError("Role identifiers must be non-empty")
    if roles.member_role == roles.librarian_role:
        raise ValueError(
            f"member_role and librarian_role must differ, both are {roles.member_role!r}"
        )
    return roles


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    return DatabaseConfig(
        url=data.get("url", "sqlite://"),
        echo=bool(data.get("echo", False)),
        pool_size=_positive_int(data.get("pool_size", 20), "pool_size"),
        max_overflow=int(data.get("max_overflow", 10)),
        pool_timeout=_positive_int(data.get("pool_timeout", 30), "pool_timeout"),
        pool_recycle=int(data.get("pool_recycle", 1800)),
        create_tables=bool(data.get("create_tables", False)),
    )


def parse_logging(data: dict[str, Any]) -> LoggingConfig:
    level = str(data.get("level", "INFO")).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"Unknown log level {level!r}")
    return LoggingConfig(level=level)


def parse_config(data: dict[str, Any]) -> LendingConfig:
    """
    Parse a full configuration document.

    Raises:
        KeyError: if ``config_id`` or ``version`` is missing.
        ValueError: if any value is invalid.
    """
    return LendingConfig(
        config_id=data["config_id"],
        version=int(data["version"]),
        loan_policy=parse_loan_policy(data.get("loan_policy") or {}),
        roles=parse_roles(data.get("roles") or {}),
        database=parse_database(data.get("database") or {}),
        logging=parse_logging(data.get("logging") or {}),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON rendering of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def load_config(path: Path) -> LendingConfig:
    return parse_config(load_yaml_file(path))
