"""
Repository contracts consumed by the lending kernel.

Responsibility:
    Declares the storage collaborators the services depend on as structural
    ``Protocol`` types.  Two implementations ship with the kernel:
    ``repositories.sql`` (SQLAlchemy) and ``repositories.memory`` (in-process
    test double).

Contract shared by every repository:
    - ``session`` is the transaction handle obtained from the matching
      ``TransactionManager.create_session()``.  Reads accept ``session=None``
      and then run against committed state; writes require a handle.
    - Writes accept ``actor_id`` for audit attribution.
    - Repositories never commit or abort.  The caller owns the transaction.
    - Unknown ids raise ``LoanNotFoundError`` / ``ItemNotFoundError``.
    - Backend failures surface as ``StorageError``.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from lending_kernel.domain.dtos import (
    CallerContext,
    ItemInfo,
    LendingSettingsInfo,
    LoanFilter,
    LoanInfo,
    LoanSummary,
    NewLoan,
    Pagination,
)

# Opaque per-backend transaction handle (SQLAlchemy Session, InMemorySession)
TransactionHandle = Any


class TransactionManager(Protocol):
    """Opens, commits, and aborts one logical transaction per operation."""

    def create_session(self) -> TransactionHandle:
        ...

    def commit_transaction(self, session: TransactionHandle) -> None:
        ...

    def abort_transaction(self, session: TransactionHandle) -> None:
        ...


class LoanRepository(Protocol):
    """Persistence of loan records."""

    def find_by_id(
        self,
        loan_id: UUID,
        *,
        session: TransactionHandle | None = None,
    ) -> LoanInfo:
        ...

    def find_and_count_all(
        self,
        loan_filter: LoanFilter | None = None,
        pagination: Pagination | None = None,
        *,
        session: TransactionHandle | None = None,
    ) -> tuple[Sequence[LoanInfo], int]:
        ...

    def find_all_autocomplete(
        self,
        search: str | None,
        limit: int | None,
        *,
        session: TransactionHandle | None = None,
    ) -> list[LoanSummary]:
        ...

    def count(
        self,
        loan_filter: LoanFilter | None = None,
        *,
        session: TransactionHandle | None = None,
    ) -> int:
        ...

    def create(
        self,
        new_loan: NewLoan,
        *,
        session: TransactionHandle,
        actor_id: UUID,
    ) -> LoanInfo:
        ...

    def update(
        self,
        loan_id: UUID,
        return_date: datetime,
        *,
        session: TransactionHandle,
        actor_id: UUID,
    ) -> LoanInfo:
        ...

    def destroy(
        self,
        loan_id: UUID,
        *,
        session: TransactionHandle,
        actor_id: UUID,
    ) -> None:
        ...


class ItemRepository(Protocol):
    """Persistence of catalog items and their derived stock."""

    def find_by_id(
        self,
        item_id: UUID,
        *,
        session: TransactionHandle | None = None,
    ) -> ItemInfo:
        ...

    def create(
        self,
        code: str,
        title: str,
        total_copies: int,
        *,
        actor_id: UUID,
        session: TransactionHandle | None = None,
    ) -> ItemInfo:
        ...

    def refresh_stock(
        self,
        item_id: UUID,
        *,
        session: TransactionHandle,
        actor_id: UUID | None = None,
    ) -> ItemInfo:
        ...


class SettingsResolver(Protocol):
    """Owns find-or-create of the caller's lending settings."""

    def find_or_create_default(self, caller: CallerContext) -> LendingSettingsInfo:
        ...


def autocomplete_label(loan: LoanInfo) -> str:
    """Display label shared by all autocomplete implementations."""
    return f"{loan.item.title} ({loan.issue_date.date().isoformat()})"
