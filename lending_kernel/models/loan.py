"""
Module: lending_kernel.models.loan
Responsibility: ORM persistence for loans: one copy of an item borrowed by a
    member for a bounded period.
Architecture position: Kernel > Models.  May import from db/base.py and
    sibling models only.

Invariants enforced:
    - due_date is always issue_date + the tenant's loan period.  It is
      computed by the coordinator; callers never set it.
    - A loan with a non-null return_date is closed and immutable.
    - import_hash is unique when present (uq_loan_import_hash).  NULLs do not
      collide.

Failure modes:
    - IntegrityError on duplicate import_hash (a concurrent import that
      slipped past the deduplication check).
    - IntegrityError when item_id does not reference an item.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lending_kernel.db.base import TrackedBase, UUIDString
from lending_kernel.models.item import Item


class Loan(TrackedBase):
    """
    A lending transaction for a single item copy.

    Guarantees:
        - item is always loaded with the loan (joined eager load).
        - is_open is True iff return_date is NULL.

    Non-goals:
        - This model does NOT maintain Item.stock; the item repository
          re-derives it inside the same transaction.
    """

    __tablename__ = "loans"

    __table_args__ = (
        UniqueConstraint("import_hash", name="uq_loan_import_hash"),
        Index("idx_loan_item_open", "item_id", "return_date"),
        Index("idx_loan_member", "member_id"),
        Index("idx_loan_issue_date", "issue_date"),
    )

    item_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("items.id"),
        nullable=False,
    )

    # Borrower identity
    member_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    issue_date: Mapped[datetime] = mapped_column(
        nullable=False,
    )

    due_date: Mapped[datetime] = mapped_column(
        nullable=False,
    )

    return_date: Mapped[datetime | None] = mapped_column(
        nullable=True,
    )

    # Idempotency key for externally sourced records
    import_hash: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    item: Mapped[Item] = relationship(lazy="joined")

    @property
    def is_open(self) -> bool:
        """True while the item has not been returned."""
        return self.return_date is None

    def __repr__(self) -> str:
        state = "open" if self.is_open else "returned"
        return f"<Loan {self.id}: item={self.item_id} member={self.member_id} ({state})>"
