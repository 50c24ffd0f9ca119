"""Services for the lending kernel (write side and scoped reads)."""

from lending_kernel.services.due_date_policy import DueDatePolicy
from lending_kernel.services.import_deduplicator import ImportDeduplicator
from lending_kernel.services.loan_service import LoanTransactionCoordinator
from lending_kernel.services.stock_policy import StockPolicy

__all__ = [
    "DueDatePolicy",
    "ImportDeduplicator",
    "LoanTransactionCoordinator",
    "StockPolicy",
]
