"""
StockPolicy -- availability gate and stock re-derivation.

Responsibility:
    Answers whether an item can be lent right now and triggers the
    re-derivation of its stock after a loan mutation.

Architecture position:
    Kernel > Services.  Thin policy over ``ItemRepository``; the counting
    itself happens in the repository inside the caller's transaction.

Invariants enforced:
    - ``has_available_stock`` is true iff stock is strictly positive.
    - ``refresh_stock`` recomputes, never increments or decrements, so
      calling it twice in one transaction is harmless.
"""

from __future__ import annotations

from uuid import UUID

from lending_kernel.domain.dtos import ItemInfo
from lending_kernel.logging_config import get_logger
from lending_kernel.repositories.base import ItemRepository, TransactionHandle

logger = get_logger("services.stock_policy")


class StockPolicy:
    """Availability checks and stock refreshes for items."""

    def __init__(self, items: ItemRepository):
        self._items = items

    def has_available_stock(
        self,
        item_id: UUID,
        *,
        session: TransactionHandle | None = None,
    ) -> bool:
        """
        True iff at least one copy of the item is available.

        Raises:
            ItemNotFoundError: If the item does not exist.
        """
        item = self._items.find_by_id(item_id, session=session)
        return item.has_stock

    def refresh_stock(
        self,
        item_id: UUID,
        *,
        session: TransactionHandle,
        actor_id: UUID | None = None,
    ) -> ItemInfo:
        """
        Re-derive and persist the item's stock inside ``session``.

        Must run after the loan write that touched the item, in the same
        transaction, so the open-loan count includes that write.
        """
        item = self._items.refresh_stock(item_id, session=session, actor_id=actor_id)
        logger.info(
            "stock_refreshed",
            extra={
                "item_id": str(item_id),
                "stock": item.stock,
                "total_copies": item.total_copies,
            },
        )
        return item
