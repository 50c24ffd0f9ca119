"""Stock derivation: total copies minus open loans, never negative."""

import pytest

from lending_kernel.domain.stock import derive_stock, is_oversold


class TestDeriveStock:

    @pytest.mark.parametrize(
        "total, open_loans, expected",
        [
            (1, 0, 1),
            (1, 1, 0),
            (5, 2, 3),
            (0, 0, 0),
        ],
    )
    def test_total_minus_open(self, total, open_loans, expected):
        assert derive_stock(total, open_loans) == expected

    def test_oversell_clamped_at_zero(self):
        assert derive_stock(2, 3) == 0
        assert is_oversold(2, 3)

    def test_exactly_lent_out_is_not_oversold(self):
        assert not is_oversold(2, 2)

    def test_idempotent(self):
        first = derive_stock(4, 1)
        assert derive_stock(4, 1) == first
