"""
Typed Exception Hierarchy for the Lending Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the lending kernel (HTTP handlers, RPC handlers, import jobs) must
tell a fixable input problem apart from a transient storage failure without
parsing message strings. Every error therefore has:

  1. A TYPED exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA as attributes (loan_id, item_id, reason, ...)

Validation errors additionally carry a ``reason``: the localization key the
outer layer uses to render a message in the caller's language. The kernel
never renders messages itself.

Example:
    try:
        service.create(LoanCreate(item_id=item_id, member_id=member_id), caller)
    except ItemOutOfStockError as e:
        api_response(status=422, code=e.code, reason=e.reason)
    except StorageError as e:
        api_response(status=503, code=e.code)   # safe to retry whole call

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LendingKernelError (base)
    |
    +-- ValidationError
    |   +-- ItemOutOfStockError
    |   +-- ReturnDateRequiredError
    |   +-- LoanAlreadyReturnedError
    |   +-- ReturnBeforeIssueError
    |   +-- ImportHashRequiredError
    |   +-- ImportHashExistentError
    |
    +-- NotFoundError
    |   +-- LoanNotFoundError
    |   +-- ItemNotFoundError
    |
    +-- StorageError
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                   | When Raised
--------------|------------------------|------------------------------------------
Validation    | ITEM_OUT_OF_STOCK      | Loan requested for an item with stock 0
              | RETURN_DATE_REQUIRED   | Update without a return date
              | LOAN_ALREADY_RETURNED  | Update of a loan that is already closed
              | RETURN_BEFORE_ISSUE    | Return date earlier than issue date
              | IMPORT_HASH_REQUIRED   | Import without an idempotency key
              | IMPORT_HASH_EXISTENT   | Import key already used by a loan
--------------|------------------------|------------------------------------------
Not found     | LOAN_NOT_FOUND         | Loan id does not resolve
              | ITEM_NOT_FOUND         | Item id does not resolve
--------------|------------------------|------------------------------------------
Storage       | STORAGE_ERROR          | Repository or transaction manager failed
--------------|------------------------|------------------------------------------
Configuration | CONFIGURATION_ERROR    | Loan period could not be resolved

===============================================================================
HANDLING PATTERNS
===============================================================================

1. VALIDATION ERRORS are never retried automatically. Render ``e.reason``
   for the user and let them resubmit.

2. STORAGE ERRORS are transient. The coordinator has already aborted the
   transaction, so nothing partial is visible and the whole operation may be
   retried.

3. NOT FOUND inside a batch aborts the batch. No deletions survive.
"""

from datetime import datetime
from uuid import UUID


class LendingKernelError(Exception):
    """
    Base exception for all lending kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "LENDING_KERNEL_ERROR"


# Validation exceptions


class ValidationError(LendingKernelError):
    """
    Business-rule or input violation.

    ``reason`` is the localization key rendered by the caller.
    """

    code: str = "VALIDATION_ERROR"
    default_reason: str = "entities.loan.validation.invalid"

    def __init__(self, reason: str | None = None, message: str | None = None):
        self.reason = reason or self.default_reason
        super().__init__(message or f"Validation failed: {self.reason}")


class ItemOutOfStockError(ValidationError):
    """No copy of the item is available to lend."""

    code: str = "ITEM_OUT_OF_STOCK"
    default_reason: str = "entities.loan.validation.bookOutOfStock"

    def __init__(self, item_id: UUID | str):
        self.item_id = str(item_id)
        super().__init__(message=f"Item {item_id} is out of stock")


class ReturnDateRequiredError(ValidationError):
    """Update was requested without a return date."""

    code: str = "RETURN_DATE_REQUIRED"
    default_reason: str = "entities.loan.validation.returnDateRequired"

    def __init__(self, loan_id: UUID | str):
        self.loan_id = str(loan_id)
        super().__init__(message=f"Return date is required to close loan {loan_id}")


class LoanAlreadyReturnedError(ValidationError):
    """Loan is closed and can no longer be modified."""

    code: str = "LOAN_ALREADY_RETURNED"
    default_reason: str = "entities.loan.validation.loanAlreadyReturned"

    def __init__(self, loan_id: UUID | str, return_date: datetime):
        self.loan_id = str(loan_id)
        self.return_date = return_date
        super().__init__(
            message=f"Loan {loan_id} was already returned on {return_date.isoformat()}"
        )


class ReturnBeforeIssueError(ValidationError):
    """Return date precedes the issue date."""

    code: str = "RETURN_BEFORE_ISSUE"
    default_reason: str = "entities.loan.validation.returnBeforeIssue"

    def __init__(self, loan_id: UUID | str, issue_date: datetime, return_date: datetime):
        self.loan_id = str(loan_id)
        self.issue_date = issue_date
        self.return_date = return_date
        super().__init__(
            message=(
                f"Return date {return_date.isoformat()} is before issue date "
                f"{issue_date.isoformat()} for loan {loan_id}"
            )
        )


class ImportHashRequiredError(ValidationError):
    """Import attempted without an idempotency key."""

    code: str = "IMPORT_HASH_REQUIRED"
    default_reason: str = "importer.errors.importHashRequired"

    def __init__(self):
        super().__init__(message="Import hash is required")


class ImportHashExistentError(ValidationError):
    """A loan with this import hash was already ingested."""

    code: str = "IMPORT_HASH_EXISTENT"
    default_reason: str = "importer.errors.importHashExistent"

    def __init__(self, import_hash: str):
        self.import_hash = import_hash
        super().__init__(message=f"Import hash already exists: {import_hash}")


# Not-found exceptions


class NotFoundError(LendingKernelError):
    """Base exception for ids that do not resolve."""

    code: str = "NOT_FOUND"


class LoanNotFoundError(NotFoundError):
    """Loan with given ID was not found."""

    code: str = "LOAN_NOT_FOUND"

    def __init__(self, loan_id: UUID | str):
        self.loan_id = str(loan_id)
        super().__init__(f"Loan not found: {loan_id}")


class ItemNotFoundError(NotFoundError):
    """Item with given ID was not found."""

    code: str = "ITEM_NOT_FOUND"

    def __init__(self, item_id: UUID | str):
        self.item_id = str(item_id)
        super().__init__(f"Item not found: {item_id}")


# Infrastructure exceptions


class StorageError(LendingKernelError):
    """
    Repository or transaction manager failure.

    Always transient from the caller's point of view: the enclosing
    transaction has been aborted before this reaches the caller.
    """

    code: str = "STORAGE_ERROR"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Storage failure during {operation}: {detail}")


class ConfigurationError(LendingKernelError):
    """A required setting could not be resolved or is invalid."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, setting: str, detail: str):
        self.setting = setting
        self.detail = detail
        super().__init__(f"Invalid configuration for {setting}: {detail}")
