"""
Module: lending_kernel.models.settings
Responsibility: ORM persistence for per-tenant lending settings.

Invariants enforced:
    - One row per tenant (uq_lending_settings_tenant).
    - loan_period_days is strictly positive.

Failure modes:
    - IntegrityError when two callers create the same tenant row at once;
      the settings resolver re-reads the winner's row.
"""

from sqlalchemy import CheckConstraint, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from lending_kernel.db.base import TrackedBase


class LendingSettings(TrackedBase):
    """Loan policy values for one borrowing context (tenant)."""

    __tablename__ = "lending_settings"

    __table_args__ = (
        UniqueConstraint("tenant_id", name="uq_lending_settings_tenant"),
        CheckConstraint("loan_period_days > 0", name="ck_lending_settings_period_positive"),
    )

    tenant_id: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    loan_period_days: Mapped[int] = mapped_column(
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<LendingSettings {self.tenant_id}: {self.loan_period_days}d>"
