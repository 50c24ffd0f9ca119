"""Domain models for the lending kernel."""

from lending_kernel.models.item import Item
from lending_kernel.models.loan import Loan
from lending_kernel.models.settings import LendingSettings

__all__ = [
    "Item",
    "Loan",
    "LendingSettings",
]
