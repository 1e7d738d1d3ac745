"""Drive a pool through random flow and check the accounting invariants."""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

import numpy as np

from amm_pool.core.curves import curve_for
from amm_pool.core.entities import CurveKind, Pool, Position, Side
from amm_pool.core.errors import InsufficientLiquidity, InvalidAmount
from amm_pool.core.fees import claim_fees
from amm_pool.core.liquidity import deposit, withdraw
from amm_pool.core.market import validate_new_pool
from amm_pool.core.numeric import ZERO, decimal_context, round_down
from amm_pool.core.swap import execute_swap
from amm_pool.simulation.retail import RetailFlow

logger = logging.getLogger(__name__)

# Slack allowed on the stable invariant, which is solved iteratively
INVARIANT_SLACK = Decimal("1e-30")


@dataclass(frozen=True)
class SimulationConfig:
    n_steps: int = 1000
    initial_reserve_a: Decimal = Decimal("10000")
    initial_reserve_b: Decimal = Decimal("10000")
    n_providers: int = 3
    fee_tier: Decimal = Decimal("0.003")
    protocol_fee_share: Decimal = Decimal("0.1")
    curve_kind: CurveKind = CurveKind.CONSTANT_PRODUCT
    stable_amplifier: Decimal = Decimal("50")
    arrival_rate: float = 0.8
    depth_fraction: float = 0.002
    size_sigma: float = 1.2
    claim_prob: float = 0.05
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        if self.n_steps < 0:
            raise ValueError(f"n_steps must be >= 0, got {self.n_steps}")
        if self.n_providers < 1:
            raise ValueError(f"n_providers must be >= 1, got {self.n_providers}")
        if self.initial_reserve_a <= 0 or self.initial_reserve_b <= 0:
            raise ValueError(
                f"initial reserves must be > 0, got "
                f"{self.initial_reserve_a}/{self.initial_reserve_b}"
            )
        if self.arrival_rate < 0:
            raise ValueError(f"arrival_rate must be >= 0, got {self.arrival_rate}")
        if self.depth_fraction <= 0:
            raise ValueError(f"depth_fraction must be > 0, got {self.depth_fraction}")
        if not 0 <= self.claim_prob <= 1:
            raise ValueError(f"claim_prob must be in [0, 1], got {self.claim_prob}")


@dataclass
class SimulationResult:
    """Totals and invariant checks from one run."""
    n_swaps: int
    n_rejected: int
    volume_a: Decimal
    volume_b: Decimal
    lp_fees_a: Decimal
    lp_fees_b: Decimal
    protocol_fees_a: Decimal
    protocol_fees_b: Decimal
    claimed_a: Decimal
    claimed_b: Decimal
    invariant_path: np.ndarray
    final_pool: Pool
    violations: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.violations

    @property
    def invariant_growth(self) -> float:
        """Ratio of final to initial curve invariant."""
        if len(self.invariant_path) == 0 or self.invariant_path[0] == 0:
            return 1.0
        return float(self.invariant_path[-1] / self.invariant_path[0])


class SimulationRunner:
    """Runs retail swaps and LP activity against a single pool.

    Providers seed the pool at its opening ratio, retail orders arrive each
    step, providers occasionally claim fees, and everyone exits at the end.
    After every swap the curve invariant must not have decreased; at the end
    the positions' shares must have matched the pool supply and the pool
    must be empty.
    """

    def __init__(self, config: SimulationConfig):
        self.config = config

    def _open_pool(self) -> Pool:
        cfg = self.config
        pool = validate_new_pool(
            "A",
            "B",
            cfg.fee_tier,
            curve_kind=cfg.curve_kind,
            stable_amplifier=cfg.stable_amplifier,
            protocol_fee_share=cfg.protocol_fee_share,
        )
        pool.id = "simulation"
        return pool

    @decimal_context
    def _seed_liquidity(self, pool: Pool) -> list[Position]:
        cfg = self.config
        positions = []
        slice_a = round_down(cfg.initial_reserve_a / cfg.n_providers)
        for i in range(cfg.n_providers):
            if pool.is_empty:
                amount_b = round_down(cfg.initial_reserve_b / cfg.n_providers)
            else:
                amount_b = round_down(slice_a * pool.reserve_b / pool.reserve_a)
            position, _ = deposit(pool, slice_a, amount_b, owner=f"lp-{i}")
            positions.append(position)
        return positions

    @decimal_context
    def _invariant(self, pool: Pool) -> Decimal:
        return curve_for(pool).invariant(pool.reserve_a, pool.reserve_b)

    @decimal_context
    def run(self) -> SimulationResult:
        cfg = self.config
        rng = np.random.default_rng(cfg.seed)
        flow = RetailFlow(
            arrival_rate=cfg.arrival_rate,
            depth_fraction=cfg.depth_fraction,
            size_sigma=cfg.size_sigma,
            seed=None if cfg.seed is None else cfg.seed + 1,
        )

        pool = self._open_pool()
        positions = self._seed_liquidity(pool)
        violations: list[str] = []

        n_swaps = n_rejected = 0
        volume = {Side.A: ZERO, Side.B: ZERO}
        lp_fees = {Side.A: ZERO, Side.B: ZERO}
        claimed_a = claimed_b = ZERO
        path = [float(self._invariant(pool))]

        for step in range(cfg.n_steps):
            for order in flow.draw(pool):
                before = self._invariant(pool)
                try:
                    result = execute_swap(pool, pool.token(order.side), order.amount)
                except (InsufficientLiquidity, InvalidAmount):
                    n_rejected += 1
                    continue
                n_swaps += 1
                volume[order.side] += order.amount
                lp_fees[order.side] += result.lp_cut

                after = self._invariant(pool)
                if after < before * (1 - INVARIANT_SLACK):
                    violations.append(
                        f"step {step}: invariant fell from {before} to {after}"
                    )

            if positions and rng.random() < cfg.claim_prob:
                position = positions[int(rng.integers(len(positions)))]
                got_a, got_b = claim_fees(pool, position)
                claimed_a += got_a
                claimed_b += got_b

            path.append(float(self._invariant(pool)))

        total_shares = sum((p.lp_amount for p in positions), ZERO)
        if total_shares != pool.lp_total_supply:
            violations.append(
                f"positions hold {total_shares} shares, pool supply is {pool.lp_total_supply}"
            )

        for position in positions:
            withdrawal = withdraw(pool, position)
            claimed_a += withdrawal.fees_a
            claimed_b += withdrawal.fees_b

        if pool.reserve_a != 0 or pool.reserve_b != 0 or pool.lp_total_supply != 0:
            violations.append(
                f"pool not empty after all exits: {pool.reserve_a}/{pool.reserve_b}, "
                f"supply {pool.lp_total_supply}"
            )
        for side in (Side.A, Side.B):
            if pool.accumulated_fees(side) < 0:
                violations.append(f"negative LP fee balance on side {side.value}")
            if pool.protocol_fees(side) < 0:
                violations.append(f"negative protocol fee balance on side {side.value}")

        logger.info(
            "Simulation finished: %s swaps, %s rejected, %s violations",
            n_swaps, n_rejected, len(violations),
        )
        return SimulationResult(
            n_swaps=n_swaps,
            n_rejected=n_rejected,
            volume_a=volume[Side.A],
            volume_b=volume[Side.B],
            lp_fees_a=lp_fees[Side.A],
            lp_fees_b=lp_fees[Side.B],
            protocol_fees_a=pool.protocol_fees(Side.A),
            protocol_fees_b=pool.protocol_fees(Side.B),
            claimed_a=claimed_a,
            claimed_b=claimed_b,
            invariant_path=np.array(path),
            final_pool=pool,
            violations=violations,
        )
