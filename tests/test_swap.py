"""Swap engine tests: pricing, fee split, slippage and deadlines."""

from decimal import Decimal

import pytest

from amm_pool.core.errors import (
    DeadlineExceeded,
    InsufficientLiquidity,
    InvalidAmount,
    InvalidToken,
    SlippageExceeded,
)
from amm_pool.core.swap import execute_swap, quote_swap
from tests.fixtures import assert_close, create_seeded_pool, snapshot_pool


class TestQuote:
    """quote_swap prices without mutating."""

    def test_constant_product_output(self, seeded_pool):
        pool, _ = seeded_pool
        quote = quote_swap(pool, "ETH", Decimal("100"))

        # 1000 - 1000 * 1000 / 1099.7
        assert_close(quote.output_amount, Decimal("90.661089388"), Decimal("1e-8"))
        assert quote.fee_amount == Decimal("0.3")
        assert quote.input_after_fee == Decimal("99.7")
        assert quote.output_token == "USDC"

    def test_quote_does_not_mutate(self, seeded_pool):
        pool, _ = seeded_pool
        before = snapshot_pool(pool)

        quote_swap(pool, "USDC", Decimal("250"))

        assert snapshot_pool(pool) == before

    def test_quote_matches_execution(self, seeded_pool):
        pool, _ = seeded_pool
        quote = quote_swap(pool, "USDC", Decimal("42"))
        result = execute_swap(pool, "USDC", Decimal("42"))

        assert result.output_amount == quote.output_amount
        assert result.price_impact == quote.price_impact

    def test_price_impact_grows_with_size(self, seeded_pool):
        pool, _ = seeded_pool
        small = quote_swap(pool, "ETH", Decimal("1"))
        large = quote_swap(pool, "ETH", Decimal("100"))

        assert Decimal("0") < small.price_impact < large.price_impact

    def test_effective_price_below_spot(self, seeded_pool):
        pool, _ = seeded_pool
        quote = quote_swap(pool, "ETH", Decimal("10"))

        assert quote.effective_price < pool.spot_price

    def test_unknown_token_rejected(self, seeded_pool):
        pool, _ = seeded_pool

        with pytest.raises(InvalidToken):
            quote_swap(pool, "DOGE", Decimal("1"))

    @pytest.mark.parametrize("amount", ["0", "-10", "abc"])
    def test_invalid_amount_rejected(self, seeded_pool, amount):
        pool, _ = seeded_pool

        with pytest.raises(InvalidAmount):
            quote_swap(pool, "ETH", amount)

    def test_amount_checked_before_token(self, seeded_pool):
        pool, _ = seeded_pool

        with pytest.raises(InvalidAmount):
            quote_swap(pool, "DOGE", Decimal("0"))

    def test_empty_pool_rejected(self, empty_pool):
        with pytest.raises(InsufficientLiquidity):
            quote_swap(empty_pool, "ETH", Decimal("1"))

    def test_dust_input_rejected(self, seeded_pool):
        pool, _ = seeded_pool

        # The whole input is taken as fee after rounding up
        with pytest.raises(InvalidAmount):
            quote_swap(pool, "ETH", Decimal("0.000000000000000001"))


    def test_edge_case_input_below_quantum_rejected(self, seeded_pool):
        pool, _ = seeded_pool

        with pytest.raises(InvalidAmount):
            quote_swap(pool, "ETH", "0.0000000000000000001")


class TestExecute:
    """execute_swap moves reserves and splits the fee."""

    def test_float_input_truncated_to_quantum(self, seeded_pool):
        pool, _ = seeded_pool

        result = execute_swap(pool, "ETH", 1e-5 / 3)

        assert result.output_amount > 0
        assert pool.reserve_a > Decimal("1000.000003")

    def test_zero_fee_keeps_k(self):
        pool, _ = create_seeded_pool(fee_tier=Decimal("0"))
        k_before = snapshot_pool(pool).k

        execute_swap(pool, "ETH", Decimal("100"))

        k_after = snapshot_pool(pool).k
        assert k_after >= k_before
        assert (k_after - k_before) / k_before < Decimal("1e-15")

    def test_reserves_after_swap(self, seeded_pool):
        pool, _ = seeded_pool
        result = execute_swap(pool, "ETH", Decimal("100"))

        # Input reserve takes the traded amount plus the LP cut
        assert pool.reserve_a == Decimal("1099.97")
        assert pool.reserve_b == Decimal("1000") - result.output_amount
        assert_close(pool.reserve_b, Decimal("909.338910612"), Decimal("1e-8"))

    def test_fee_split(self, seeded_pool):
        pool, _ = seeded_pool
        result = execute_swap(pool, "ETH", Decimal("100"))

        assert result.fee_amount == Decimal("0.3")
        assert result.protocol_cut == Decimal("0.03")
        assert result.lp_cut == Decimal("0.27")
        assert pool.accumulated_fees_a == Decimal("0.27")
        assert pool.protocol_fees_a == Decimal("0.03")
        assert pool.accumulated_fees_b == 0
        assert pool.protocol_fees_b == 0

    def test_fee_credited_on_input_side(self, seeded_pool):
        pool, _ = seeded_pool
        execute_swap(pool, "USDC", Decimal("100"))

        assert pool.accumulated_fees_b == Decimal("0.27")
        assert pool.protocol_fees_b == Decimal("0.03")
        assert pool.accumulated_fees_a == 0

    def test_zero_protocol_share_honoured(self):
        pool, _ = create_seeded_pool(protocol_fee_share=Decimal("0"))
        result = execute_swap(pool, "ETH", Decimal("100"))

        assert result.protocol_cut == 0
        assert pool.protocol_fees_a == 0
        assert pool.accumulated_fees_a == Decimal("0.3")

    def test_zero_fee_tier(self):
        pool, _ = create_seeded_pool(fee_tier=Decimal("0"))
        result = execute_swap(pool, "ETH", Decimal("100"))

        assert result.fee_amount == 0
        assert pool.accumulated_fees_a == 0
        assert pool.reserve_a == Decimal("1100")

    def test_constant_product_never_decreases(self, seeded_pool):
        pool, _ = seeded_pool
        k = pool.k
        for token, amount in [("ETH", "12.5"), ("USDC", "80"), ("ETH", "0.001"), ("USDC", "300")]:
            execute_swap(pool, token, amount)
            assert pool.k >= k
            k = pool.k

    def test_slippage_guard(self, seeded_pool):
        pool, _ = seeded_pool
        before = snapshot_pool(pool)

        with pytest.raises(SlippageExceeded):
            execute_swap(pool, "ETH", Decimal("100"), min_output=Decimal("91"))

        assert snapshot_pool(pool) == before

    def test_slippage_guard_at_exact_output(self, seeded_pool):
        pool, _ = seeded_pool
        expected = quote_swap(pool, "ETH", Decimal("100")).output_amount

        result = execute_swap(pool, "ETH", Decimal("100"), min_output=expected)

        assert result.output_amount == expected

    def test_deadline_passed(self, seeded_pool):
        pool, _ = seeded_pool
        before = snapshot_pool(pool)

        with pytest.raises(DeadlineExceeded):
            execute_swap(pool, "ETH", Decimal("1"), deadline=100, now=101)

        assert snapshot_pool(pool) == before

    def test_deadline_checked_before_amount(self, seeded_pool):
        pool, _ = seeded_pool

        with pytest.raises(DeadlineExceeded):
            execute_swap(pool, "ETH", Decimal("0"), deadline=100, now=101)

    def test_deadline_not_yet_reached(self, seeded_pool):
        pool, _ = seeded_pool
        result = execute_swap(pool, "ETH", Decimal("1"), deadline=100, now=100)

        assert result.output_amount > 0

    def test_round_trip_loses_to_fees(self, seeded_pool):
        pool, _ = seeded_pool
        out_b = execute_swap(pool, "ETH", Decimal("100")).output_amount
        out_a = execute_swap(pool, "USDC", out_b).output_amount

        assert out_a < Decimal("100")
