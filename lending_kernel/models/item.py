"""
Module: lending_kernel.models.item
Responsibility: ORM persistence for lendable catalog items and their derived
    availability count.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, repositories/, domain/, or outer layers.

Invariants enforced:
    - stock is derived state: total_copies minus open loans referencing the
      item.  It is re-derived by the item repository's refresh_stock inside
      the same transaction as every loan create, close, or delete.  Nothing
      else writes it.
    - stock and total_copies are never negative (CHECK constraints).

Failure modes:
    - IntegrityError on duplicate code (uq_item_code constraint).
    - IntegrityError on a negative stock or total_copies.
"""

from sqlalchemy import CheckConstraint, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from lending_kernel.db.base import TrackedBase


class Item(TrackedBase):
    """
    A lendable catalog entry with a fixed number of copies.

    Contract:
        Items are created by catalog management, never by the loan
        coordinator.  The coordinator only re-derives ``stock``.

    Guarantees:
        - code is globally unique.
        - 0 <= stock.
    """

    __tablename__ = "items"

    __table_args__ = (
        UniqueConstraint("code", name="uq_item_code"),
        CheckConstraint("stock >= 0", name="ck_item_stock_non_negative"),
        CheckConstraint("total_copies >= 0", name="ck_item_total_copies_non_negative"),
    )

    # Business identifier (e.g. ISBN or shelf code)
    code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    total_copies: Mapped[int] = mapped_column(
        nullable=False,
        default=0,
    )

    # Copies currently available
    stock: Mapped[int] = mapped_column(
        nullable=False,
        default=0,
    )

    @property
    def has_stock(self) -> bool:
        """True iff at least one copy is available."""
        return self.stock > 0

    def __repr__(self) -> str:
        return f"<Item {self.code}: {self.title} ({self.stock}/{self.total_copies})>"
