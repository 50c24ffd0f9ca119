"""Repository contracts and their SQL and in-memory implementations."""

from lending_kernel.repositories.base import (
    ItemRepository,
    LoanRepository,
    SettingsResolver,
    TransactionManager,
)
from lending_kernel.repositories.memory import (
    InMemoryItemRepository,
    InMemoryLoanRepository,
    InMemorySettingsResolver,
    InMemoryStore,
    InMemoryTransactionManager,
)
from lending_kernel.repositories.sql import (
    SqlItemRepository,
    SqlLoanRepository,
    SqlSettingsResolver,
    SqlTransactionManager,
)

__all__ = [
    "InMemoryItemRepository",
    "InMemoryLoanRepository",
    "InMemorySettingsResolver",
    "InMemoryStore",
    "InMemoryTransactionManager",
    "ItemRepository",
    "LoanRepository",
    "SettingsResolver",
    "SqlItemRepository",
    "SqlLoanRepository",
    "SqlSettingsResolver",
    "SqlTransactionManager",
    "TransactionManager",
]
