"""Liquidity tests: share minting, ratio tolerance and withdrawals."""

from decimal import Decimal

import pytest

from amm_pool.core.entities import Position
from amm_pool.core.errors import (
    InsufficientLiquidity,
    InvalidAmount,
    PositionMismatch,
    RatioOutOfTolerance,
)
from amm_pool.core.liquidity import (
    add_liquidity,
    deposit,
    remove_liquidity,
    withdraw,
)
from amm_pool.core.swap import execute_swap
from tests.fixtures import create_pool, create_seeded_pool, snapshot_pool


class TestAddLiquidity:
    """Minting LP shares on deposit."""

    def test_first_deposit_mints_geometric_mean(self, empty_pool):
        minted = add_liquidity(empty_pool, Decimal("1000"), Decimal("1000"))

        assert minted == Decimal("1000")
        assert empty_pool.reserve_a == Decimal("1000")
        assert empty_pool.reserve_b == Decimal("1000")
        assert empty_pool.lp_total_supply == Decimal("1000")

    def test_first_deposit_sets_price(self, empty_pool):
        minted = add_liquidity(empty_pool, "10", "20000")

        # sqrt(200000) = 447.2135954999579392818...
        assert minted == Decimal("447.213595499957939281")
        assert empty_pool.spot_price == Decimal("2000")

    def test_first_deposit_100_400(self, empty_pool):
        minted = add_liquidity(empty_pool, Decimal("100"), Decimal("400"))

        assert minted == Decimal("200")
        assert empty_pool.lp_total_supply == Decimal("200")

    def test_off_ratio_deposit_against_100_400(self):
        pool, _ = create_seeded_pool(Decimal("100"), Decimal("400"))
        before = snapshot_pool(pool)

        # Ratio demands 40 B for 10 A
        with pytest.raises(RatioOutOfTolerance):
            add_liquidity(pool, Decimal("10"), Decimal("100"))

        assert snapshot_pool(pool) == before

    def test_subsequent_deposit_is_proportional(self, seeded_pool):
        pool, _ = seeded_pool
        minted = add_liquidity(pool, Decimal("100"), Decimal("100"))

        assert minted == Decimal("100")
        assert pool.lp_total_supply == Decimal("1100")
        assert pool.reserve_a == Decimal("1100")
        assert pool.reserve_b == Decimal("1100")

    def test_deposit_within_tolerance_accepted(self, seeded_pool):
        pool, _ = seeded_pool
        # 0.4% off the 1:1 ratio
        minted = add_liquidity(pool, Decimal("100"), Decimal("100.4"))

        assert minted == Decimal("100")
        assert pool.reserve_b == Decimal("1100.4")

    def test_deposit_outside_tolerance_rejected(self, seeded_pool):
        pool, _ = seeded_pool
        before = snapshot_pool(pool)

        with pytest.raises(RatioOutOfTolerance):
            add_liquidity(pool, Decimal("100"), Decimal("100.6"))

        assert snapshot_pool(pool) == before

    def test_custom_tolerance(self, seeded_pool):
        pool, _ = seeded_pool
        minted = add_liquidity(
            pool, Decimal("100"), Decimal("105"), tolerance=Decimal("0.05")
        )

        assert minted == Decimal("100")

    @pytest.mark.parametrize("amount_a,amount_b", [
        ("0", "100"),
        ("100", "0"),
        ("-1", "100"),
        ("100", "-5"),
    ])
    def test_non_positive_amounts_rejected(self, empty_pool, amount_a, amount_b):
        with pytest.raises(InvalidAmount):
            add_liquidity(empty_pool, amount_a, amount_b)

        assert empty_pool.lp_total_supply == 0

    def test_deposit_too_small_for_a_share_rejected(self, seeded_pool):
        pool, _ = seeded_pool
        # Make one share worth far more than the deposit
        pool.lp_total_supply = Decimal("0.000000000001")

        with pytest.raises(InvalidAmount):
            add_liquidity(pool, Decimal("0.000001"), Decimal("0.000001"))

    def test_supply_with_empty_reserve_rejected(self, seeded_pool):
        pool, _ = seeded_pool
        pool.reserve_a = Decimal("0")

        with pytest.raises(InsufficientLiquidity):
            add_liquidity(pool, Decimal("1"), Decimal("1"))


class TestRemoveLiquidity:
    """Burning LP shares for a proportional slice of reserves."""

    def test_partial_burn_is_proportional(self, seeded_pool):
        pool, _ = seeded_pool
        amount_a, amount_b = remove_liquidity(pool, Decimal("250"))

        assert amount_a == Decimal("250")
        assert amount_b == Decimal("250")
        assert pool.lp_total_supply == Decimal("750")
        assert pool.reserve_a == Decimal("750")

    def test_full_burn_empties_pool(self, seeded_pool):
        pool, _ = seeded_pool
        execute_swap(pool, "ETH", Decimal("37.5"))

        amount_a, amount_b = remove_liquidity(pool, pool.lp_total_supply)

        assert pool.reserve_a == 0
        assert pool.reserve_b == 0
        assert pool.lp_total_supply == 0
        assert amount_a > Decimal("1000")
        assert amount_b < Decimal("1000")

    def test_payout_rounds_down(self):
        pool, _ = create_seeded_pool(Decimal("10"), Decimal("10"))
        add_liquidity(pool, Decimal("20"), Decimal("20"))
        pool.reserve_a = Decimal("31")

        amount_a, _ = remove_liquidity(pool, Decimal("7"))

        # 7 * 31 / 30 = 7.2333...
        assert amount_a == Decimal("7.233333333333333333")

    @pytest.mark.parametrize("lp_amount", ["0", "-1", "1000.000000000000000001"])
    def test_invalid_burn_rejected(self, seeded_pool, lp_amount):
        pool, _ = seeded_pool
        before = snapshot_pool(pool)

        with pytest.raises(InvalidAmount):
            remove_liquidity(pool, lp_amount)

        assert snapshot_pool(pool) == before


class TestPositions:
    """deposit/withdraw keep positions and pool supply in step."""

    def test_deposit_opens_position(self, empty_pool):
        position, minted = deposit(empty_pool, "500", "500", owner="bob")

        assert position.owner == "bob"
        assert position.pool_id == empty_pool.id
        assert position.lp_amount == minted == Decimal("500")

    def test_top_up_accrues_fees_first(self, seeded_pool):
        pool, position = seeded_pool
        execute_swap(pool, "ETH", Decimal("100"))
        fees = pool.accumulated_fees_a

        ratio_b = Decimal("10") * pool.reserve_b / pool.reserve_a
        _, minted = deposit(pool, Decimal("10"), ratio_b.quantize(Decimal("1e-18")),
                            owner="alice", position=position)

        assert position.fees_token_a == fees
        assert pool.accumulated_fees_a == 0
        assert position.lp_amount == Decimal("1000") + minted

    def test_deposit_into_wrong_pool_rejected(self, seeded_pool):
        pool, position = seeded_pool
        other = create_pool(token_a="WBTC", pool_id="pool-2")

        with pytest.raises(PositionMismatch):
            deposit(other, "1", "1", owner="alice", position=position)

    def test_partial_withdraw_keeps_position_open(self, seeded_pool):
        pool, position = seeded_pool
        withdrawal = withdraw(pool, position, Decimal("400"))

        assert not withdrawal.closed
        assert withdrawal.amount_a == Decimal("400")
        assert position.lp_amount == Decimal("600")
        assert pool.lp_total_supply == Decimal("600")

    def test_full_withdraw_closes_and_pays_fees(self, seeded_pool):
        pool, position = seeded_pool
        execute_swap(pool, "ETH", Decimal("100"))

        withdrawal = withdraw(pool, position)

        assert withdrawal.closed
        assert withdrawal.lp_burned == Decimal("1000")
        assert withdrawal.amount_a == Decimal("1099.97")
        assert withdrawal.fees_a == Decimal("0.27")
        assert withdrawal.fees_b == 0
        assert position.fees_token_a == 0
        assert pool.is_empty

    def test_withdraw_third_of_position(self, seeded_pool):
        pool, position = seeded_pool

        withdrawal = withdraw(pool, position, position.lp_amount / 3)

        third = Decimal("333.333333333333333333")
        assert not withdrawal.closed
        assert withdrawal.lp_burned == third
        assert withdrawal.amount_a == third
        assert position.lp_amount == Decimal("1000") - third
        assert position.lp_amount == pool.lp_total_supply

    def test_withdraw_more_than_position_rejected(self, seeded_pool):
        pool, position = seeded_pool
        deposit(pool, "1000", "1000", owner="bob")

        with pytest.raises(InvalidAmount):
            withdraw(pool, position, Decimal("1500"))

    def test_withdraw_from_wrong_pool_rejected(self, seeded_pool):
        pool, _ = seeded_pool
        stray = Position(pool_id="elsewhere", owner="alice", lp_amount=Decimal("1"))

        with pytest.raises(PositionMismatch):
            withdraw(pool, stray)

    def test_shares_match_supply(self, seeded_pool):
        pool, alice = seeded_pool
        bob, _ = deposit(pool, "500", "500", owner="bob")
        execute_swap(pool, "USDC", Decimal("50"))
        withdraw(pool, alice, Decimal("300"))

        assert alice.lp_amount + bob.lp_amount == pool.lp_total_supply
