"""
lending_services.bootstrap -- build a runnable lending runtime from config.

Responsibility:
    Creates the engine, every repository, and the coordinator exactly once,
    in dependency order.  No kernel service constructs its own storage.

Usage:
    from lending_services import build_runtime

    runtime = build_runtime()
    item = runtime.items.create("BK-1", "Dune", 2, actor_id=admin_id)
    loan = runtime.loan_service.create(
        LoanCreate(item_id=item.id, member_id=member_id), caller
    )
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.engine import Engine

from lending_config import LendingConfig, get_active_config
from lending_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from lending_kernel.domain.clock import Clock, SystemClock
from lending_kernel.domain.roles import CallerRoleAuthority
from lending_kernel.logging_config import configure_logging, get_logger
from lending_kernel.repositories.sql import (
    SqlItemRepository,
    SqlLoanRepository,
    SqlSettingsResolver,
    SqlTransactionManager,
)
from lending_kernel.services.loan_service import LoanTransactionCoordinator

logger = get_logger("services.bootstrap")

# Audit actor for rows written while wiring the runtime
SYSTEM_ACTOR_ID = UUID(int=0)


@dataclass(frozen=True)
class LendingRuntime:
    """Everything a host process needs to serve loan operations."""

    config: LendingConfig
    engine: Engine
    loans: SqlLoanRepository
    items: SqlItemRepository
    settings: SqlSettingsResolver
    loan_service: LoanTransactionCoordinator


def build_runtime(
    config: LendingConfig | None = None,
    clock: Clock | None = None,
) -> LendingRuntime:
    """
    Wire a SQL-backed runtime.

    Postconditions:
        - The module-level engine in ``lending_kernel.db`` points at
          ``config.database.url``.
        - Tenant overrides from ``loan_policy.tenant_overrides`` are written
          to ``lending_settings``.
    """
    config = config or get_active_config()
    configure_logging(level=config.logging.level)

    db = config.database
    engine = init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        pool_recycle=db.pool_recycle,
    )
    if db.create_tables:
        create_tables()

    session_factory = get_session_factory()
    loans = SqlLoanRepository(session_factory)
    items = SqlItemRepository(session_factory)
    settings = SqlSettingsResolver(
        config.loan_policy.default_loan_period_days, session_factory
    )
    for tenant_id, days in config.loan_policy.tenant_overrides:
        settings.update_loan_period_days(tenant_id, days, actor_id=SYSTEM_ACTOR_ID)

    loan_service = LoanTransactionCoordinator(
        loans=loans,
        items=items,
        transactions=SqlTransactionManager(session_factory),
        settings=settings,
        role_authority=CallerRoleAuthority(
            member_role=config.roles.member_role,
            librarian_role=config.roles.librarian_role,
        ),
        clock=clock or SystemClock(),
    )

    logger.info(
        "lending_runtime_ready",
        extra={
            "config_set_id": config.config_id,
            "dialect": engine.dialect.name,
        },
    )
    return LendingRuntime(
        config=config,
        engine=engine,
        loans=loans,
        items=items,
        settings=settings,
        loan_service=loan_service,
    )
