"""
LoanTransactionCoordinator -- atomic loan mutations with stock refresh.

Responsibility:
    Executes loan create, close, bulk destroy, and import as single storage
    transactions that also re-derive the affected item's stock, and serves
    the loan read operations with caller scoping applied.

Architecture position:
    Kernel > Services -- imperative shell, owns transaction boundaries.
    Delegates availability and stock to StockPolicy, due dates to
    DueDatePolicy, idempotency to ImportDeduplicator, and row scoping to
    AccessScopeFilter.

Operation flow:
    create(data, caller)
      1. Stock gate (no transaction on failure)
      2. Due date derived; any caller-supplied due date discarded
      3. BEGIN -> persist loan -> refresh stock -> COMMIT
    update(loan_id, data, caller)
      1. Return date required (no transaction on failure)
      2. BEGIN -> load loan -> reject closed / return-before-issue
         -> persist return date -> refresh stock -> COMMIT
    destroy_all(loan_ids, caller)
      BEGIN -> for each id in order: load -> delete -> refresh stock -> COMMIT
    import_loan(data, import_hash, caller)
      dedupe -> create

Invariants enforced:
    - Every loan write and the stock refresh it causes share one
      transaction; on any failure the transaction is aborted and the
      original exception re-raised, so nothing from the operation is
      observable afterward.
    - Within a transaction the loan write always precedes the refresh.
    - One transaction per top-level call, never reused.

Failure modes:
    - ItemOutOfStockError, ReturnDateRequiredError, LoanAlreadyReturnedError,
      ReturnBeforeIssueError, ImportHashRequiredError, ImportHashExistentError.
    - LoanNotFoundError / ItemNotFoundError for unresolved ids (a repeated
      id inside one destroy batch no longer resolves and aborts the batch).
    - ConfigurationError when the loan period cannot be resolved.
    - StorageError from the repositories or the transaction manager.

Audit relevance:
    Every call is logged with a fresh correlation_id, actor_id, tenant_id,
    and operation name, plus start/completion/failure events with timings.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import replace
from typing import TypeVar
from uuid import UUID, uuid4

from lending_kernel.domain.access_scope import AccessScopeFilter
from lending_kernel.domain.clock import Clock, SystemClock
from lending_kernel.domain.due_date import ensure_aware
from lending_kernel.domain.dtos import (
    CallerContext,
    LoanCreate,
    LoanFilter,
    LoanInfo,
    LoanPage,
    LoanSummary,
    LoanUpdate,
    NewLoan,
    Pagination,
)
from lending_kernel.domain.roles import RoleAuthority
from lending_kernel.exceptions import (
    ItemOutOfStockError,
    LoanAlreadyReturnedError,
    ReturnBeforeIssueError,
    ReturnDateRequiredError,
)
from lending_kernel.logging_config import LogContext, get_logger
from lending_kernel.repositories.base import (
    ItemRepository,
    LoanRepository,
    SettingsResolver,
    TransactionHandle,
    TransactionManager,
)
from lending_kernel.services.due_date_policy import DueDatePolicy
from lending_kernel.services.import_deduplicator import ImportDeduplicator
from lending_kernel.services.stock_policy import StockPolicy

logger = get_logger("services.loan")

T = TypeVar("T")


class LoanTransactionCoordinator:
    """
    Entry point for every loan operation.

    Holds only its collaborators.  Caller identity arrives with each call
    as a ``CallerContext``.
    """

    def __init__(
        self,
        loans: LoanRepository,
        items: ItemRepository,
        transactions: TransactionManager,
        settings: SettingsResolver,
        role_authority: RoleAuthority | None = None,
        clock: Clock | None = None,
    ):
        self._loans = loans
        self._transactions = transactions
        self._stock = StockPolicy(items)
        self._due_dates = DueDatePolicy(settings)
        self._deduplicator = ImportDeduplicator(loans)
        self._scope = AccessScopeFilter(role_authority)
        self._clock = clock or SystemClock()

    @property
    def stock_policy(self) -> StockPolicy:
        return self._stock

    @property
    def due_date_policy(self) -> DueDatePolicy:
        return self._due_dates

    @property
    def import_deduplicator(self) -> ImportDeduplicator:
        return self._deduplicator

    @property
    def access_scope(self) -> AccessScopeFilter:
        return self._scope

    # -----------------------------------------------------------------
    # Plumbing
    # -----------------------------------------------------------------

    @contextmanager
    def _operation(
        self,
        name: str,
        caller: CallerContext,
        **fields: str | None,
    ) -> Iterator[None]:
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=str(caller.actor_id),
            tenant_id=caller.tenant_id,
            operation=f"loan.{name}",
            **fields,
        ):
            logger.info(f"loan_{name}_started")
            t0 = time.monotonic()
            try:
                yield
            except Exception:
                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                logger.error(
                    f"loan_{name}_failed",
                    extra={"duration_ms": duration_ms},
                    exc_info=True,
                )
                raise
            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            logger.info(f"loan_{name}_completed", extra={"duration_ms": duration_ms})

    def _in_transaction(self, work: Callable[[TransactionHandle], T]) -> T:
        """Run ``work`` in a fresh transaction; commit on success, abort on failure."""
        session = self._transactions.create_session()
        try:
            result = work(session)
            self._transactions.commit_transaction(session)
        except Exception:
            self._abort(session)
            raise
        return result

    def _abort(self, session: TransactionHandle) -> None:
        # The error that caused the abort is the one the caller sees
        try:
            self._transactions.abort_transaction(session)
        except Exception:
            logger.error("transaction_abort_failed", exc_info=True)

    # -----------------------------------------------------------------
    # Mutations
    # -----------------------------------------------------------------

    def create(self, data: LoanCreate, caller: CallerContext) -> LoanInfo:
        """
        Open a loan and re-derive the item's stock.

        Preconditions:
            - The item exists and has stock > 0.

        Postconditions:
            - The loan is persisted with ``due_date = issue_date + loan period``
              and the item's stock reflects it, or neither happened.

        Raises:
            ItemOutOfStockError: No copy is available.  No transaction opened.
            ItemNotFoundError: The item does not exist.
            ConfigurationError: The loan period cannot be resolved.
            StorageError: Persisting or committing failed.
        """
        with self._operation("create", caller, item_id=str(data.item_id)):
            return self._create(data, caller)

    def _create(self, data: LoanCreate, caller: CallerContext) -> LoanInfo:
        if not self._stock.has_available_stock(data.item_id):
            raise ItemOutOfStockError(data.item_id)

        issue_date = ensure_aware(data.issue_date or self._clock.now())
        due_date = self._due_dates.due_date_for(issue_date, caller)
        if data.due_date is not None and ensure_aware(data.due_date) != due_date:
            logger.info(
                "loan_due_date_overridden",
                extra={"requested_due_date": data.due_date, "due_date": due_date},
            )

        new_loan = NewLoan(
            item_id=data.item_id,
            member_id=data.member_id,
            issue_date=issue_date,
            due_date=due_date,
            import_hash=data.import_hash,
        )

        def work(session: TransactionHandle) -> LoanInfo:
            loan = self._loans.create(new_loan, session=session, actor_id=caller.actor_id)
            self._stock.refresh_stock(
                loan.item_id, session=session, actor_id=caller.actor_id
            )
            return loan

        loan = self._in_transaction(work)
        logger.info(
            "loan_created",
            extra={"loan_id": str(loan.id), "due_date": loan.due_date},
        )
        return loan

    def update(self, loan_id: UUID, data: LoanUpdate, caller: CallerContext) -> LoanInfo:
        """
        Close a loan by recording its return date.

        Closing is the only permitted mutation; a closed loan is immutable.

        Raises:
            ReturnDateRequiredError: ``data.return_date`` is missing.  No
                transaction opened.
            LoanNotFoundError: The loan does not exist.
            LoanAlreadyReturnedError: The loan was already closed.
            ReturnBeforeIssueError: The return precedes the issue date.
            StorageError: Persisting or committing failed.
        """
        with self._operation("update", caller, loan_id=str(loan_id)):
            if data.return_date is None:
                raise ReturnDateRequiredError(loan_id)
            return_date = ensure_aware(data.return_date)

            def work(session: TransactionHandle) -> LoanInfo:
                current = self._loans.find_by_id(loan_id, session=session)
                if current.return_date is not None:
                    raise LoanAlreadyReturnedError(loan_id, current.return_date)
                if return_date < current.issue_date:
                    raise ReturnBeforeIssueError(loan_id, current.issue_date, return_date)

                loan = self._loans.update(
                    loan_id, return_date, session=session, actor_id=caller.actor_id
                )
                self._stock.refresh_stock(
                    loan.item_id, session=session, actor_id=caller.actor_id
                )
                return loan

            return self._in_transaction(work)

    def destroy_all(self, loan_ids: Sequence[UUID], caller: CallerContext) -> None:
        """
        Delete a batch of loans in one transaction.

        Ids are processed in the order given.  Any failure, including an
        unknown or repeated id, aborts the whole batch.
        """
        loan_ids = list(loan_ids)
        with self._operation("destroy_all", caller):

            def work(session: TransactionHandle) -> None:
                for loan_id in loan_ids:
                    loan = self._loans.find_by_id(loan_id, session=session)
                    self._loans.destroy(loan_id, session=session, actor_id=caller.actor_id)
                    self._stock.refresh_stock(
                        loan.item_id, session=session, actor_id=caller.actor_id
                    )

            self._in_transaction(work)
            logger.info("loans_destroyed", extra={"loan_count": len(loan_ids)})

    def import_loan(
        self,
        data: LoanCreate,
        import_hash: str | None,
        caller: CallerContext,
    ) -> LoanInfo:
        """
        Create a loan from an external record exactly once per import hash.

        Raises:
            ImportHashRequiredError: The hash is missing or blank.
            ImportHashExistentError: The hash was already imported.
            Everything ``create`` raises.
        """
        with self._operation("import", caller, item_id=str(data.item_id)):
            import_hash = self._deduplicator.ensure_not_duplicate(import_hash)
            return self._create(replace(data, import_hash=import_hash), caller)

    # -----------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------

    def find_by_id(self, loan_id: UUID, caller: CallerContext) -> LoanInfo:
        with self._operation("find_by_id", caller, loan_id=str(loan_id)):
            return self._loans.find_by_id(loan_id)

    def find_all_autocomplete(
        self,
        search: str | None,
        limit: int | None,
        caller: CallerContext,
    ) -> list[LoanSummary]:
        with self._operation("find_all_autocomplete", caller):
            return self._loans.find_all_autocomplete(search, limit)

    def find_and_count_all(
        self,
        loan_filter: LoanFilter | None,
        pagination: Pagination | None,
        caller: CallerContext,
    ) -> LoanPage:
        """
        List loans matching ``loan_filter`` with the unpaged total.

        Restricted callers are scoped to their own loans before the query
        is dispatched, so both rows and count are scoped.
        """
        with self._operation("find_and_count_all", caller):
            scoped = self._scope.apply(caller, loan_filter)
            rows, count = self._loans.find_and_count_all(scoped, pagination)
            return LoanPage(rows=tuple(rows), count=count)
