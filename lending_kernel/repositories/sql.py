"""
SQL repositories -- SQLAlchemy implementation of the storage contracts.

Responsibility:
    Persists loans, items, and lending settings through SQLAlchemy ORM
    sessions and re-derives item stock from open loans.

Architecture position:
    Kernel > Repositories.  May import models/, db/, and domain/.  Returns
    DTOs only; ORM instances never escape a method.

Invariants enforced:
    - Transaction boundaries: repositories flush within the caller's session
      and never commit or roll it back.  ``SqlTransactionManager`` owns
      commit/abort.  A repository call made without a session opens its own
      short-lived one (and commits it when the call writes).
    - Stock re-derivation: ``refresh_stock`` locks the item row (FOR UPDATE
      on PostgreSQL), counts open loans inside the caller's transaction, and
      stores ``derive_stock(total_copies, open_loans)``.

Failure modes:
    - LoanNotFoundError / ItemNotFoundError for ids that do not resolve.
    - StorageError wrapping any SQLAlchemyError (integrity violations,
      connectivity, commit failures), chained from the driver error.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, contains_eager, sessionmaker

from lending_kernel.db.engine import get_session_factory
from lending_kernel.domain.due_date import validate_loan_period_days
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
from lending_kernel.domain.stock import derive_stock, is_oversold
from lending_kernel.exceptions import ItemNotFoundError, LoanNotFoundError, StorageError
from lending_kernel.logging_config import get_logger
from lending_kernel.models.item import Item
from lending_kernel.models.loan import Loan
from lending_kernel.models.settings import LendingSettings
from lending_kernel.repositories.base import autocomplete_label

logger = get_logger("repositories.sql")


class _SqlRepository:
    """Shared session handling and error translation."""

    def __init__(self, session_factory: sessionmaker[Session] | None = None):
        self._session_factory = session_factory or get_session_factory()

    @contextmanager
    def _using(
        self,
        session: Session | None,
        operation: str,
        *,
        commit: bool = False,
    ) -> Iterator[Session]:
        owned = session is None
        active = self._session_factory() if owned else session
        try:
            yield active
            if owned and commit:
                active.commit()
        except SQLAlchemyError as exc:
            logger.error(
                "storage_operation_failed",
                extra={"storage_operation": operation},
                exc_info=True,
            )
            raise StorageError(operation, str(exc)) from exc
        finally:
            if owned:
                active.close()


def _apply_filter(stmt, loan_filter: LoanFilter | None):
    if loan_filter is None:
        return stmt
    if loan_filter.item_id is not None:
        stmt = stmt.where(Loan.item_id == loan_filter.item_id)
    if loan_filter.member_id is not None:
        stmt = stmt.where(Loan.member_id == loan_filter.member_id)
    if loan_filter.import_hash is not None:
        stmt = stmt.where(Loan.import_hash == loan_filter.import_hash)
    if loan_filter.returned is True:
        stmt = stmt.where(Loan.return_date.is_not(None))
    elif loan_filter.returned is False:
        stmt = stmt.where(Loan.return_date.is_(None))
    if loan_filter.issue_date_from is not None:
        stmt = stmt.where(Loan.issue_date >= loan_filter.issue_date_from)
    if loan_filter.issue_date_to is not None:
        stmt = stmt.where(Loan.issue_date <= loan_filter.issue_date_to)
    if loan_filter.overdue_at is not None:
        stmt = stmt.where(
            Loan.return_date.is_(None),
            Loan.due_date < loan_filter.overdue_at,
        )
    return stmt


class SqlTransactionManager:
    """
    One SQLAlchemy ``Session`` per logical transaction.

    Guarantees:
        - ``commit_transaction`` closes the session on success.  On failure
          the session stays open so ``abort_transaction`` can roll it back.
        - ``abort_transaction`` always closes the session.
    """

    def __init__(self, session_factory: sessionmaker[Session] | None = None):
        self._session_factory = session_factory or get_session_factory()

    def create_session(self) -> Session:
        session = self._session_factory()
        logger.debug("transaction_started")
        return session

    def commit_transaction(self, session: Session) -> None:
        try:
            session.commit()
        except SQLAlchemyError as exc:
            raise StorageError("commit", str(exc)) from exc
        session.close()
        logger.debug("transaction_committed")

    def abort_transaction(self, session: Session) -> None:
        try:
            session.rollback()
        except SQLAlchemyError as exc:
            raise StorageError("abort", str(exc)) from exc
        finally:
            session.close()
        logger.debug("transaction_aborted")


class SqlLoanRepository(_SqlRepository):
    """Loan persistence over SQLAlchemy."""

    def _get(self, s: Session, loan_id: UUID) -> Loan:
        loan = s.get(Loan, loan_id)
        if loan is None:
            raise LoanNotFoundError(loan_id)
        return loan

    def find_by_id(self, loan_id: UUID, *, session: Session | None = None) -> LoanInfo:
        with self._using(session, "loan.find_by_id") as s:
            return LoanInfo.from_model(self._get(s, loan_id))

    def find_and_count_all(
        self,
        loan_filter: LoanFilter | None = None,
        pagination: Pagination | None = None,
        *,
        session: Session | None = None,
    ) -> tuple[Sequence[LoanInfo], int]:
        pagination = pagination or Pagination()
        with self._using(session, "loan.find_and_count_all") as s:
            total = s.scalar(_apply_filter(select(func.count(Loan.id)), loan_filter))
            stmt = (
                _apply_filter(select(Loan), loan_filter)
                .order_by(Loan.issue_date.desc(), Loan.id)
                .offset(pagination.offset)
                .limit(pagination.limit)
            )
            rows = s.execute(stmt).scalars().all()
            return [LoanInfo.from_model(loan) for loan in rows], int(total or 0)

    def find_all_autocomplete(
        self,
        search: str | None,
        limit: int | None,
        *,
        session: Session | None = None,
    ) -> list[LoanSummary]:
        stmt = (
            select(Loan)
            .join(Item, Loan.item_id == Item.id)
            .options(contains_eager(Loan.item))
        )
        if search:
            conditions = [
                Item.title.icontains(search, autoescape=True),
                Item.code.icontains(search, autoescape=True),
            ]
            try:
                conditions.append(Loan.id == UUID(search))
            except ValueError:
                pass
            stmt = stmt.where(or_(*conditions))
        stmt = stmt.order_by(Item.title.asc(), Loan.issue_date.desc(), Loan.id)
        if limit is not None:
            stmt = stmt.limit(limit)

        with self._using(session, "loan.find_all_autocomplete") as s:
            loans = [LoanInfo.from_model(loan) for loan in s.execute(stmt).scalars().all()]
        return [LoanSummary(id=loan.id, label=autocomplete_label(loan)) for loan in loans]

    def count(
        self,
        loan_filter: LoanFilter | None = None,
        *,
        session: Session | None = None,
    ) -> int:
        with self._using(session, "loan.count") as s:
            return int(s.scalar(_apply_filter(select(func.count(Loan.id)), loan_filter)) or 0)

    def create(
        self,
        new_loan: NewLoan,
        *,
        session: Session | None,
        actor_id: UUID,
    ) -> LoanInfo:
        with self._using(session, "loan.create", commit=True) as s:
            item = s.get(Item, new_loan.item_id)
            if item is None:
                raise ItemNotFoundError(new_loan.item_id)

            loan = Loan(
                item=item,
                member_id=new_loan.member_id,
                issue_date=new_loan.issue_date,
                due_date=new_loan.due_date,
                import_hash=new_loan.import_hash,
                created_by_id=actor_id,
            )
            s.add(loan)
            s.flush()
            logger.info(
                "loan_persisted",
                extra={"loan_id": str(loan.id), "item_id": str(item.id)},
            )
            return LoanInfo.from_model(loan)

    def update(
        self,
        loan_id: UUID,
        return_date: datetime,
        *,
        session: Session | None,
        actor_id: UUID,
    ) -> LoanInfo:
        with self._using(session, "loan.update", commit=True) as s:
            loan = self._get(s, loan_id)
            loan.return_date = return_date
            loan.updated_by_id = actor_id
            s.flush()
            logger.info("loan_return_recorded", extra={"loan_id": str(loan_id)})
            return LoanInfo.from_model(loan)

    def destroy(
        self,
        loan_id: UUID,
        *,
        session: Session | None,
        actor_id: UUID,
    ) -> None:
        with self._using(session, "loan.destroy", commit=True) as s:
            loan = self._get(s, loan_id)
            s.delete(loan)
            s.flush()
            logger.info(
                "loan_deleted",
                extra={"loan_id": str(loan_id), "deleted_by": str(actor_id)},
            )


class SqlItemRepository(_SqlRepository):
    """Item persistence and stock re-derivation over SQLAlchemy."""

    def _get(self, s: Session, item_id: UUID, *, for_update: bool = False) -> Item:
        item = s.get(Item, item_id, with_for_update=for_update or None)
        if item is None:
            raise ItemNotFoundError(item_id)
        return item

    def find_by_id(self, item_id: UUID, *, session: Session | None = None) -> ItemInfo:
        with self._using(session, "item.find_by_id") as s:
            return ItemInfo.from_model(self._get(s, item_id))

    def create(
        self,
        code: str,
        title: str,
        total_copies: int,
        *,
        actor_id: UUID,
        session: Session | None = None,
    ) -> ItemInfo:
        with self._using(session, "item.create", commit=True) as s:
            item = Item(
                code=code,
                title=title,
                total_copies=total_copies,
                stock=total_copies,
                created_by_id=actor_id,
            )
            s.add(item)
            s.flush()
            return ItemInfo.from_model(item)

    def refresh_stock(
        self,
        item_id: UUID,
        *,
        session: Session | None,
        actor_id: UUID | None = None,
    ) -> ItemInfo:
        with self._using(session, "item.refresh_stock", commit=True) as s:
            item = self._get(s, item_id, for_update=True)
            s.flush()
            open_loans = s.scalar(
                select(func.count(Loan.id)).where(
                    Loan.item_id == item_id,
                    Loan.return_date.is_(None),
                )
            ) or 0

            if is_oversold(item.total_copies, open_loans):
                logger.warning(
                    "stock_oversold",
                    extra={
                        "item_id": str(item_id),
                        "total_copies": item.total_copies,
                        "open_loans": open_loans,
                    },
                )

            item.stock = derive_stock(item.total_copies, open_loans)
            if actor_id is not None:
                item.updated_by_id = actor_id
            s.flush()
            return ItemInfo.from_model(item)


class SqlSettingsResolver(_SqlRepository):
    """
    Per-tenant lending settings stored in ``lending_settings``.

    The first resolution for a tenant creates its row with the configured
    default.  Two concurrent first resolutions race on the unique tenant
    constraint; the loser re-reads the winner's row.
    """

    def __init__(
        self,
        default_loan_period_days: int,
        session_factory: sessionmaker[Session] | None = None,
    ):
        super().__init__(session_factory)
        self._default_loan_period_days = validate_loan_period_days(default_loan_period_days)

    def _select(self, tenant_id: str):
        return select(LendingSettings).where(LendingSettings.tenant_id == tenant_id)

    def find_or_create_default(self, caller: CallerContext) -> LendingSettingsInfo:
        with self._using(None, "settings.find_or_create_default") as s:
            row = s.execute(self._select(caller.tenant_id)).scalar_one_or_none()
            if row is not None:
                return LendingSettingsInfo.from_model(row)

            row = LendingSettings(
                tenant_id=caller.tenant_id,
                loan_period_days=self._default_loan_period_days,
                created_by_id=caller.actor_id,
            )
            s.add(row)
            try:
                s.commit()
            except IntegrityError:
                s.rollback()
                row = s.execute(self._select(caller.tenant_id)).scalar_one()
                logger.info(
                    "settings_created_concurrently",
                    extra={"settings_tenant": caller.tenant_id},
                )
            else:
                logger.info(
                    "settings_created",
                    extra={
                        "settings_tenant": caller.tenant_id,
                        "loan_period_days": row.loan_period_days,
                    },
                )
            return LendingSettingsInfo.from_model(row)

    def update_loan_period_days(
        self,
        tenant_id: str,
        loan_period_days: int,
        *,
        actor_id: UUID,
    ) -> LendingSettingsInfo:
        """Set a tenant's loan period, creating the row if needed."""
        loan_period_days = validate_loan_period_days(loan_period_days)
        with self._using(None, "settings.update_loan_period_days", commit=True) as s:
            row = s.execute(self._select(tenant_id)).scalar_one_or_none()
            if row is None:
                row = LendingSettings(
                    tenant_id=tenant_id,
                    loan_period_days=loan_period_days,
                    created_by_id=actor_id,
                )
                s.add(row)
            else:
                row.loan_period_days = loan_period_days
                row.updated_by_id = actor_id
            s.flush()
            return LendingSettingsInfo.from_model(row)
