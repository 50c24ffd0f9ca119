"""
Stock derivation.

An item's stock is never incremented or decremented.  It is re-derived from
the number of copies and the number of loans still open against it, so that
a retried or replayed refresh converges to the same value.
"""


def derive_stock(total_copies: int, open_loan_count: int) -> int:
    """
    Available copies given the open loans of an item.

    Clamped at zero: more open loans than copies (a transient oversell) still
    reports no availability rather than a negative count.
    """
    return max(total_copies - open_loan_count, 0)


def is_oversold(total_copies: int, open_loan_count: int) -> bool:
    """True when more loans are open than copies exist."""
    return open_loan_count > total_copies
