"""Exception hierarchy: codes, reasons, and structured attributes."""

from datetime import UTC, datetime
from uuid import uuid4

import pytest

from lending_kernel.exceptions import (
    ConfigurationError,
    ImportHashExistentError,
    ImportHashRequiredError,
    ItemNotFoundError,
    ItemOutOfStockError,
    LendingKernelError,
    LoanAlreadyReturnedError,
    LoanNotFoundError,
    NotFoundError,
    ReturnBeforeIssueError,
    ReturnDateRequiredError,
    StorageError,
    ValidationError,
)


class TestValidationReasons:

    @pytest.mark.parametrize(
        "exc, code, reason",
        [
            (ItemOutOfStockError(uuid4()), "ITEM_OUT_OF_STOCK",
             "entities.loan.validation.bookOutOfStock"),
            (ReturnDateRequiredError(uuid4()), "RETURN_DATE_REQUIRED",
             "entities.loan.validation.returnDateRequired"),
            (ImportHashRequiredError(), "IMPORT_HASH_REQUIRED",
             "importer.errors.importHashRequired"),
            (ImportHashExistentError("h1"), "IMPORT_HASH_EXISTENT",
             "importer.errors.importHashExistent"),
        ],
    )
    def test_code_and_reason(self, exc, code, reason):
        assert isinstance(exc, ValidationError)
        assert exc.code == code
        assert exc.reason == reason

    def test_explicit_reason_overrides_default(self):
        exc = ValidationError(reason="entities.loan.validation.custom")
        assert exc.reason == "entities.loan.validation.custom"
        assert exc.code == "VALIDATION_ERROR"

    def test_closed_loan_errors_carry_dates(self):
        issued = datetime(2024, 1, 10, tzinfo=UTC)
        returned = datetime(2024, 1, 5, tzinfo=UTC)
        loan_id = uuid4()

        already = LoanAlreadyReturnedError(loan_id, returned)
        before = ReturnBeforeIssueError(loan_id, issued, returned)

        assert already.loan_id == str(loan_id)
        assert already.return_date == returned
        assert before.issue_date == issued
        assert before.code == "RETURN_BEFORE_ISSUE"


class TestHierarchy:

    def test_not_found_family(self):
        loan_id, item_id = uuid4(), uuid4()
        assert isinstance(LoanNotFoundError(loan_id), NotFoundError)
        assert ItemNotFoundError(item_id).item_id == str(item_id)

    def test_everything_is_a_kernel_error(self):
        for exc in (
            StorageError("commit", "connection lost"),
            ConfigurationError("loan_period_days", "must be positive"),
            LoanNotFoundError(uuid4()),
            ImportHashRequiredError(),
        ):
            assert isinstance(exc, LendingKernelError)

    def test_storage_error_attributes(self):
        exc = StorageError("loan.create", "duplicate key")
        assert exc.operation == "loan.create"
        assert exc.detail == "duplicate key"
        assert "loan.create" in str(exc)
