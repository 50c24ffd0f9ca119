"""
DueDatePolicy -- loan period resolution and due-date derivation.

The loan period belongs to the caller's tenant and is looked up through a
``SettingsResolver`` on every call; nothing is cached across operations.
"""

from __future__ import annotations

from datetime import datetime

from lending_kernel.domain.due_date import compute_due_date, validate_loan_period_days
from lending_kernel.domain.dtos import CallerContext
from lending_kernel.exceptions import ConfigurationError, StorageError
from lending_kernel.logging_config import get_logger
from lending_kernel.repositories.base import SettingsResolver

logger = get_logger("services.due_date_policy")


class DueDatePolicy:
    """Derives due dates from the caller's configured loan period."""

    compute_due_date = staticmethod(compute_due_date)

    def __init__(self, settings: SettingsResolver):
        self._settings = settings

    def loan_period_days(self, caller: CallerContext) -> int:
        """
        Resolve the loan period of the caller's tenant.

        Raises:
            ConfigurationError: If the settings cannot be read or hold a
                non-positive period.
        """
        try:
            settings = self._settings.find_or_create_default(caller)
        except StorageError as exc:
            logger.error(
                "loan_period_unresolved",
                extra={"settings_tenant": caller.tenant_id},
                exc_info=True,
            )
            raise ConfigurationError(
                "loan_period_days",
                f"settings for tenant {caller.tenant_id!r} unavailable: {exc.detail}",
            ) from exc
        return validate_loan_period_days(settings.loan_period_days)

    def due_date_for(self, issue_date: datetime, caller: CallerContext) -> datetime:
        return compute_due_date(issue_date, self.loan_period_days(caller))
