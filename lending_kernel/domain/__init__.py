"""
Pure domain layer: DTOs, clocks, and lending policies with no I/O.
"""

from lending_kernel.domain.access_scope import AccessScopeFilter
from lending_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from lending_kernel.domain.due_date import (
    compute_due_date,
    ensure_aware,
    to_canonical_timestamp,
)
from lending_kernel.domain.dtos import (
    CallerContext,
    ItemInfo,
    ItemRef,
    LendingSettingsInfo,
    LoanCreate,
    LoanFilter,
    LoanInfo,
    LoanPage,
    LoanSummary,
    LoanUpdate,
    NewLoan,
    Pagination,
)
from lending_kernel.domain.roles import CallerRoleAuthority, Role, RoleAuthority
from lending_kernel.domain.stock import derive_stock

__all__ = [
    "AccessScopeFilter",
    "CallerContext",
    "CallerRoleAuthority",
    "Clock",
    "DeterministicClock",
    "ItemInfo",
    "ItemRef",
    "LendingSettingsInfo",
    "LoanCreate",
    "LoanFilter",
    "LoanInfo",
    "LoanPage",
    "LoanSummary",
    "LoanUpdate",
    "NewLoan",
    "Pagination",
    "Role",
    "RoleAuthority",
    "SystemClock",
    "compute_due_date",
    "derive_stock",
    "ensure_aware",
    "to_canonical_timestamp",
]
