"""
In-memory repositories for tests and local experimentation.

Each ``InMemorySession`` buffers its writes on top of the shared
``InMemoryStore``.  Reads through a session see committed state overlaid
with that session's own pending writes; reads without a session see
committed state only.  ``commit_transaction`` applies the buffer under the
store lock in one step, ``abort_transaction`` discards it.

The unique import hash is enforced at commit, matching the SQL schema.
Stock of every item the session refreshed is re-derived at commit from the
merged loans, so interleaved sessions on one item cannot leave it stale.
"""

from __future__ import annotations

import threading
from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import datetime
from uuid import UUID, uuid4

from lending_kernel.domain.due_date import validate_loan_period_days
from lending_kernel.domain.dtos import (
    CallerContext,
    ItemInfo,
    ItemRef,
    LendingSettingsInfo,
    LoanFilter,
    LoanInfo,
    LoanSummary,
    NewLoan,
    Pagination,
)
from lending_kernel.domain.stock import derive_stock, is_oversold
from lending_kernel.exceptions import ItemNotFoundError, LoanNotFoundError, StorageError
from lending_kernel.logging_config import get_logger
from lending_kernel.repositories.base import autocomplete_label

logger = get_logger("repositories.memory")


@dataclass(frozen=True)
class _ItemRow:
    id: UUID
    code: str
    title: str
    total_copies: int
    stock: int
    created_by_id: UUID
    updated_by_id: UUID | None = None

    def to_info(self) -> ItemInfo:
        return ItemInfo(
            id=self.id,
            code=self.code,
            title=self.title,
            total_copies=self.total_copies,
            stock=self.stock,
        )


@dataclass(frozen=True)
class _LoanRow:
    id: UUID
    item_id: UUID
    member_id: UUID
    issue_date: datetime
    due_date: datetime
    return_date: datetime | None
    import_hash: str | None
    created_by_id: UUID
    updated_by_id: UUID | None = None

    def to_info(self, item: _ItemRow) -> LoanInfo:
        return LoanInfo(
            id=self.id,
            item=ItemRef(id=item.id, code=item.code, title=item.title),
            member_id=self.member_id,
            issue_date=self.issue_date,
            due_date=self.due_date,
            return_date=self.return_date,
            import_hash=self.import_hash,
        )


class InMemoryStore:
    """Committed state shared by every session of one backend."""

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.items: dict[UUID, _ItemRow] = {}
        self.loans: dict[UUID, _LoanRow] = {}
        self.settings: dict[str, int] = {}
        self.commits = 0


class InMemorySession:
    """Write buffer for one logical transaction."""

    def __init__(self, store: InMemoryStore) -> None:
        self.store = store
        # None marks a loan deleted in this session
        self.loans: dict[UUID, _LoanRow | None] = {}
        self.items: dict[UUID, _ItemRow] = {}
        self.closed = False

    def check_open(self) -> None:
        if self.closed:
            raise StorageError("session", "session is closed")


def _loans_view(store: InMemoryStore, session: InMemorySession | None) -> dict[UUID, _LoanRow]:
    with store.lock:
        view = dict(store.loans)
    if session is not None:
        session.check_open()
        for loan_id, row in session.loans.items():
            if row is None:
                view.pop(loan_id, None)
            else:
                view[loan_id] = row
    return view


def _open_loan_count(loans: dict[UUID, _LoanRow], item_id: UUID) -> int:
    return sum(
        1 for loan in loans.values() if loan.item_id == item_id and loan.return_date is None
    )


def _items_view(store: InMemoryStore, session: InMemorySession | None) -> dict[UUID, _ItemRow]:
    with store.lock:
        view = dict(store.items)
    if session is not None:
        session.check_open()
        view.update(session.items)
    return view


class InMemoryTransactionManager:
    """Hands out ``InMemorySession`` buffers and applies them atomically."""

    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def create_session(self) -> InMemorySession:
        logger.debug("transaction_started")
        return InMemorySession(self._store)

    def commit_transaction(self, session: InMemorySession) -> None:
        session.check_open()
        store = self._store
        with store.lock:
            loans = dict(store.loans)
            for loan_id, row in session.loans.items():
                if row is None:
                    loans.pop(loan_id, None)
                else:
                    loans[loan_id] = row

            seen: set[str] = set()
            for row in loans.values():
                if row.import_hash is None:
                    continue
                if row.import_hash in seen:
                    raise StorageError(
                        "commit",
                        f"duplicate import_hash {row.import_hash!r}",
                    )
                seen.add(row.import_hash)

            store.loans = loans
            # Stock computed inside the session may be stale by now
            for item_id, row in session.items.items():
                open_loans = _open_loan_count(loans, item_id)
                store.items[item_id] = replace(
                    row, stock=derive_stock(row.total_copies, open_loans)
                )
            store.commits += 1

        session.loans.clear()
        session.items.clear()
        session.closed = True
        logger.debug("transaction_committed")

    def abort_transaction(self, session: InMemorySession) -> None:
        session.loans.clear()
        session.items.clear()
        session.closed = True
        logger.debug("transaction_aborted")


class InMemoryLoanRepository:
    """Loan persistence over an ``InMemoryStore``."""

    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def _info(self, row: _LoanRow, session: InMemorySession | None) -> LoanInfo:
        return row.to_info(_items_view(self._store, session)[row.item_id])

    def _require(self, session: InMemorySession | None) -> InMemorySession:
        if session is None:
            raise StorageError("write", "in-memory writes require a session")
        session.check_open()
        return session

    def find_by_id(
        self,
        loan_id: UUID,
        *,
        session: InMemorySession | None = None,
    ) -> LoanInfo:
        row = _loans_view(self._store, session).get(loan_id)
        if row is None:
            raise LoanNotFoundError(loan_id)
        return self._info(row, session)

    def _matching(
        self,
        loan_filter: LoanFilter | None,
        session: InMemorySession | None,
    ) -> list[LoanInfo]:
        items = _items_view(self._store, session)
        loans = [
            row.to_info(items[row.item_id])
            for row in _loans_view(self._store, session).values()
        ]
        if loan_filter is not None:
            loans = [loan for loan in loans if loan_filter.matches(loan)]
        return loans

    def find_and_count_all(
        self,
        loan_filter: LoanFilter | None = None,
        pagination: Pagination | None = None,
        *,
        session: InMemorySession | None = None,
    ) -> tuple[Sequence[LoanInfo], int]:
        pagination = pagination or Pagination()
        loans = self._matching(loan_filter, session)
        loans.sort(key=lambda loan: str(loan.id))
        loans.sort(key=lambda loan: loan.issue_date, reverse=True)
        end = None if pagination.limit is None else pagination.offset + pagination.limit
        return loans[pagination.offset:end], len(loans)

    def find_all_autocomplete(
        self,
        search: str | None,
        limit: int | None,
        *,
        session: InMemorySession | None = None,
    ) -> list[LoanSummary]:
        loans = self._matching(None, session)
        if search:
            needle = search.lower()
            loans = [
                loan
                for loan in loans
                if needle in loan.item.title.lower()
                or needle in loan.item.code.lower()
                or str(loan.id) == needle
            ]
        loans.sort(key=lambda loan: str(loan.id))
        loans.sort(key=lambda loan: loan.issue_date, reverse=True)
        loans.sort(key=lambda loan: loan.item.title)
        if limit is not None:
            loans = loans[:limit]
        return [LoanSummary(id=loan.id, label=autocomplete_label(loan)) for loan in loans]

    def count(
        self,
        loan_filter: LoanFilter | None = None,
        *,
        session: InMemorySession | None = None,
    ) -> int:
        return len(self._matching(loan_filter, session))

    def create(
        self,
        new_loan: NewLoan,
        *,
        session: InMemorySession,
        actor_id: UUID,
    ) -> LoanInfo:
        session = self._require(session)
        if new_loan.item_id not in _items_view(self._store, session):
            raise ItemNotFoundError(new_loan.item_id)

        row = _LoanRow(
            id=uuid4(),
            item_id=new_loan.item_id,
            member_id=new_loan.member_id,
            issue_date=new_loan.issue_date,
            due_date=new_loan.due_date,
            return_date=None,
            import_hash=new_loan.import_hash,
            created_by_id=actor_id,
        )
        session.loans[row.id] = row
        logger.info(
            "loan_persisted",
            extra={"loan_id": str(row.id), "item_id": str(row.item_id)},
        )
        return self._info(row, session)

    def update(
        self,
        loan_id: UUID,
        return_date: datetime,
        *,
        session: InMemorySession,
        actor_id: UUID,
    ) -> LoanInfo:
        session = self._require(session)
        row = _loans_view(self._store, session).get(loan_id)
        if row is None:
            raise LoanNotFoundError(loan_id)
        row = replace(row, return_date=return_date, updated_by_id=actor_id)
        session.loans[loan_id] = row
        logger.info("loan_return_recorded", extra={"loan_id": str(loan_id)})
        return self._info(row, session)

    def destroy(
        self,
        loan_id: UUID,
        *,
        session: InMemorySession,
        actor_id: UUID,
    ) -> None:
        session = self._require(session)
        if loan_id not in _loans_view(self._store, session):
            raise LoanNotFoundError(loan_id)
        session.loans[loan_id] = None
        logger.info(
            "loan_deleted",
            extra={"loan_id": str(loan_id), "deleted_by": str(actor_id)},
        )


class InMemoryItemRepository:
    """Item persistence and stock re-derivation over an ``InMemoryStore``."""

    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def find_by_id(
        self,
        item_id: UUID,
        *,
        session: InMemorySession | None = None,
    ) -> ItemInfo:
        row = _items_view(self._store, session).get(item_id)
        if row is None:
            raise ItemNotFoundError(item_id)
        return row.to_info()

    def create(
        self,
        code: str,
        title: str,
        total_copies: int,
        *,
        actor_id: UUID,
        session: InMemorySession | None = None,
    ) -> ItemInfo:
        if total_copies < 0:
            raise StorageError("item.create", "total_copies must be >= 0")
        items = _items_view(self._store, session)
        if any(existing.code == code for existing in items.values()):
            raise StorageError("item.create", f"duplicate item code {code!r}")

        row = _ItemRow(
            id=uuid4(),
            code=code,
            title=title,
            total_copies=total_copies,
            stock=total_copies,
            created_by_id=actor_id,
        )
        if session is None:
            with self._store.lock:
                self._store.items[row.id] = row
        else:
            session.check_open()
            session.items[row.id] = row
        return row.to_info()

    def refresh_stock(
        self,
        item_id: UUID,
        *,
        session: InMemorySession,
        actor_id: UUID | None = None,
    ) -> ItemInfo:
        if session is None:
            raise StorageError("write", "in-memory writes require a session")
        row = _items_view(self._store, session).get(item_id)
        if row is None:
            raise ItemNotFoundError(item_id)

        open_loans = _open_loan_count(_loans_view(self._store, session), item_id)
        if is_oversold(row.total_copies, open_loans):
            logger.warning(
                "stock_oversold",
                extra={
                    "item_id": str(item_id),
                    "total_copies": row.total_copies,
                    "open_loans": open_loans,
                },
            )

        row = replace(
            row,
            stock=derive_stock(row.total_copies, open_loans),
            updated_by_id=actor_id if actor_id is not None else row.updated_by_id,
        )
        session.items[item_id] = row
        return row.to_info()


class InMemorySettingsResolver:
    """Per-tenant loan periods held in the store, defaulting on first use."""

    def __init__(
        self,
        store: InMemoryStore,
        default_loan_period_days: int,
        overrides: dict[str, int] | None = None,
    ) -> None:
        self._store = store
        self._default_loan_period_days = validate_loan_period_days(default_loan_period_days)
        for tenant_id, days in (overrides or {}).items():
            self.update_loan_period_days(tenant_id, days)

    def find_or_create_default(self, caller: CallerContext) -> LendingSettingsInfo:
        with self._store.lock:
            days = self._store.settings.setdefault(
                caller.tenant_id, self._default_loan_period_days
            )
        return LendingSettingsInfo(tenant_id=caller.tenant_id, loan_period_days=days)

    def update_loan_period_days(
        self,
        tenant_id: str,
        loan_period_days: int,
        *,
        actor_id: UUID | None = None,
    ) -> LendingSettingsInfo:
        loan_period_days = validate_loan_period_days(loan_period_days)
        with self._store.lock:
            self._store.settings[tenant_id] = loan_period_days
        return LendingSettingsInfo(tenant_id=tenant_id, loan_period_days=loan_period_days)
