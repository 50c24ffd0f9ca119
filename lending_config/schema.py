"""
Lending configuration schema.

Frozen dataclasses parsed from YAML by ``lending_config.loader``.  The
kernel never sees these types; ``lending_services.bootstrap`` translates
them into constructor arguments.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace


@dataclass(frozen=True)
class LoanPolicyConfig:
    """Loan period defaults and per-tenant overrides."""

    default_loan_period_days: int = 14
    tenant_overrides: tuple[tuple[str, int], ...] = ()

    def loan_period_for(self, tenant_id: str) -> int:
        return dict(self.tenant_overrides).get(tenant_id, self.default_loan_period_days)


@dataclass(frozen=True)
class RoleConfig:
    """Role identifiers as named by the identity provider."""

    member_role: str = "member"
    librarian_role: str = "librarian"


@dataclass(frozen=True)
class DatabaseConfig:
    """Engine settings.  Pool settings apply to PostgreSQL only."""

    url: str = "sqlite://"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800
    create_tables: bool = False


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class LendingConfig:
    """Root configuration artifact."""

    config_id: str
    version: int
    loan_policy: LoanPolicyConfig = field(default_factory=LoanPolicyConfig)
    roles: RoleConfig = field(default_factory=RoleConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    checksum: str = ""

    def with_database_url(self, url: str) -> LendingConfig:
        return replace(self, database=replace(self.database, url=url))
