"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable data structures that cross every repository and
    service boundary: caller identity, loan/item snapshots, command inputs,
    query filters, and result pages.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    ``from_model()`` class methods are boundary converters invoked only from
    SQL repositories; ORM entities never leave a repository.

Data flow:
    LoanCreate -> NewLoan (due date derived) -> LoanInfo
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from lending_kernel.domain.due_date import to_canonical_timestamp

if TYPE_CHECKING:
    from lending_kernel.models.item import Item as ItemModel
    from lending_kernel.models.loan import Loan as LoanModel
    from lending_kernel.models.settings import LendingSettings as LendingSettingsModel


DEFAULT_TENANT = "default"


@dataclass(frozen=True)
class CallerContext:
    """
    Identity of whoever invokes a kernel operation.

    Passed explicitly to every coordinator call; the kernel holds no
    per-request state.
    """

    actor_id: UUID
    roles: frozenset[str] = frozenset()
    tenant_id: str = DEFAULT_TENANT


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ItemRef:
    """Lightweight item reference embedded in loan snapshots."""

    id: UUID
    code: str
    title: str


@dataclass(frozen=True)
class ItemInfo:
    """
    Immutable snapshot of an item and its availability.

    Guarantees:
        - ``stock`` is the value last re-derived by refresh_stock.
    """

    id: UUID
    code: str
    title: str
    total_copies: int
    stock: int

    @property
    def has_stock(self) -> bool:
        return self.stock > 0

    @classmethod
    def from_model(cls, model: ItemModel) -> ItemInfo:
        return cls(
            id=model.id,
            code=model.code,
            title=model.title,
            total_copies=model.total_copies,
            stock=model.stock,
        )


@dataclass(frozen=True)
class LoanInfo:
    """
    Immutable snapshot of a loan with its item reference populated.

    Guarantees:
        - ``due_date`` was derived from ``issue_date`` and the loan period.
        - ``is_returned`` is True iff ``return_date`` is set; such a loan is
          closed and no longer mutable.
    """

    id: UUID
    item: ItemRef
    member_id: UUID
    issue_date: datetime
    due_date: datetime
    return_date: datetime | None = None
    import_hash: str | None = None

    @property
    def item_id(self) -> UUID:
        return self.item.id

    @property
    def is_returned(self) -> bool:
        return self.return_date is not None

    def is_overdue(self, as_of: datetime) -> bool:
        """Open and past its due date at ``as_of``."""
        return not self.is_returned and self.due_date < as_of

    def as_dict(self) -> dict[str, Any]:
        """Transport form with canonical timestamps."""
        return {
            "id": str(self.id),
            "item": {
                "id": str(self.item.id),
                "code": self.item.code,
                "title": self.item.title,
            },
            "member_id": str(self.member_id),
            "issue_date": to_canonical_timestamp(self.issue_date),
            "due_date": to_canonical_timestamp(self.due_date),
            "return_date": (
                to_canonical_timestamp(self.return_date) if self.return_date else None
            ),
            "import_hash": self.import_hash,
        }

    @classmethod
    def from_model(cls, model: LoanModel) -> LoanInfo:
        return cls(
            id=model.id,
            item=ItemRef(id=model.item.id, code=model.item.code, title=model.item.title),
            member_id=model.member_id,
            issue_date=model.issue_date,
            due_date=model.due_date,
            return_date=model.return_date,
            import_hash=model.import_hash,
        )


@dataclass(frozen=True)
class LoanSummary:
    """Autocomplete entry: loan id plus a display label."""

    id: UUID
    label: str


@dataclass(frozen=True)
class LoanPage:
    """One page of a filtered loan listing plus the unpaged total."""

    rows: tuple[LoanInfo, ...]
    count: int


@dataclass(frozen=True)
class LendingSettingsInfo:
    """Resolved loan policy of one tenant."""

    tenant_id: str
    loan_period_days: int

    @classmethod
    def from_model(cls, model: LendingSettingsModel) -> LendingSettingsInfo:
        return cls(tenant_id=model.tenant_id, loan_period_days=model.loan_period_days)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoanCreate:
    """
    Caller input for opening a loan.

    ``due_date`` is accepted for wire compatibility but always discarded;
    the coordinator derives it.  ``issue_date`` defaults to the clock.
    """

    item_id: UUID
    member_id: UUID
    issue_date: datetime | None = None
    due_date: datetime | None = None
    import_hash: str | None = None


@dataclass(frozen=True)
class NewLoan:
    """Fully derived loan handed to ``LoanRepository.create``."""

    item_id: UUID
    member_id: UUID
    issue_date: datetime
    due_date: datetime
    import_hash: str | None = None


@dataclass(frozen=True)
class LoanUpdate:
    """Caller input for closing a loan."""

    return_date: datetime | None = None


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoanFilter:
    """
    Conjunctive loan filter.  ``None`` fields do not constrain.

    ``returned`` selects closed (True) or open (False) loans.
    ``overdue_at`` selects open loans whose due date precedes it.
    """

    item_id: UUID | None = None
    member_id: UUID | None = None
    import_hash: str | None = None
    returned: bool | None = None
    issue_date_from: datetime | None = None
    issue_date_to: datetime | None = None
    overdue_at: datetime | None = None

    def matches(self, loan: LoanInfo) -> bool:
        """Evaluate the filter against a snapshot (used by in-memory storage)."""
        if self.item_id is not None and loan.item_id != self.item_id:
            return False
        if self.member_id is not None and loan.member_id != self.member_id:
            return False
        if self.import_hash is not None and loan.import_hash != self.import_hash:
            return False
        if self.returned is not None and loan.is_returned != self.returned:
            return False
        if self.issue_date_from is not None and loan.issue_date < self.issue_date_from:
            return False
        if self.issue_date_to is not None and loan.issue_date > self.issue_date_to:
            return False
        if self.overdue_at is not None and not loan.is_overdue(self.overdue_at):
            return False
        return True


@dataclass(frozen=True)
class Pagination:
    """Offset pagination.  ``limit=None`` returns every remaining row."""

    limit: int | None = None
    offset: int = 0

    def __post_init__(self) -> None:
        if self.limit is not None and self.limit < 0:
            raise ValueError(f"limit must be >= 0, got {self.limit}")
        if self.offset < 0:
            raise ValueError(f"offset must be >= 0, got {self.offset}")


ALL_ROWS = Pagination()

__all__ = [
    "ALL_ROWS",
    "DEFAULT_TENANT",
    "CallerContext",
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
]
