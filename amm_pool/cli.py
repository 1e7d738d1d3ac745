"""Command-line interface for managing pools in a local SQLite store."""

import argparse
import logging
import sys
from decimal import Decimal
from typing import Optional, Sequence

from amm_pool.config import load_settings, resolve_db_path
from amm_pool.core.entities import CurveKind, Pool, Position
from amm_pool.core.numeric import MATH_CONTEXT, to_decimal
from amm_pool.service.pool_service import PoolService
from amm_pool.simulation.runner import SimulationConfig, SimulationRunner
from amm_pool.store.base import StoreError
from amm_pool.store.sqlite import SQLiteRepository


def _fmt(value: Decimal) -> str:
    """Plain notation without the trailing zeros of quantized amounts."""
    return format(value.normalize(MATH_CONTEXT), "f")


def _print_pool(pool: Pool) -> None:
    print(f"Pool {pool.id}")
    print(f"  pair:           {pool.token_a}/{pool.token_b}")
    print(f"  curve:          {pool.curve_kind.value}"
          + (f" (A={_fmt(pool.stable_amplifier)})" if pool.curve_kind is CurveKind.STABLE else ""))
    print(f"  fee tier:       {_fmt(pool.fee_tier)}")
    print(f"  reserves:       {_fmt(pool.reserve_a)} {pool.token_a} / {_fmt(pool.reserve_b)} {pool.token_b}")
    print(f"  LP supply:      {_fmt(pool.lp_total_supply)}")
    print(f"  LP fees:        {_fmt(pool.accumulated_fees_a)} {pool.token_a} / "
          f"{_fmt(pool.accumulated_fees_b)} {pool.token_b}")
    print(f"  protocol fees:  {_fmt(pool.protocol_fees_a)} {pool.token_a} / "
          f"{_fmt(pool.protocol_fees_b)} {pool.token_b}")


def _print_position(position: Position) -> None:
    print(f"Position {position.id}")
    print(f"  pool:           {position.pool_id}")
    print(f"  owner:          {position.owner}")
    print(f"  LP amount:      {_fmt(position.lp_amount)}")
    print(f"  pending fees:   {_fmt(position.fees_token_a)} / {_fmt(position.fees_token_b)}")


def _service(args: argparse.Namespace) -> PoolService:
    return PoolService(SQLiteRepository(args.db), settings=load_settings())


def create_pool_command(args: argparse.Namespace) -> int:
    """Create an empty pool for a token pair."""
    pool = _service(args).create_pool(
        args.token_a,
        args.token_b,
        fee_tier=args.fee_tier,
        curve_kind=args.curve,
        stable_amplifier=args.amplifier,
        protocol_fee_share=args.protocol_fee_share,
    )
    _print_pool(pool)
    return 0


def pools_command(args: argparse.Namespace) -> int:
    """List all pools, newest first."""
    pools = _service(args).list_pools()
    if not pools:
        print("No pools.")
    for pool in pools:
        print(f"{pool.id}  {pool.token_a}/{pool.token_b}  fee={_fmt(pool.fee_tier)}  "
              f"curve={pool.curve_kind.value}  reserves={_fmt(pool.reserve_a)}/{_fmt(pool.reserve_b)}")
    return 0


def pool_command(args: argparse.Namespace) -> int:
    """Show one pool."""
    _print_pool(_service(args).get_pool(args.pool_id))
    return 0


def add_command(args: argparse.Namespace) -> int:
    """Deposit liquidity into a pool."""
    receipt = _service(args).add_liquidity(
        args.pool_id,
        args.amount_a,
        args.amount_b,
        owner=args.owner,
        position_id=args.position,
    )
    print(f"Minted {_fmt(receipt.lp_minted)} LP shares")
    _print_position(receipt.position)
    return 0


def remove_command(args: argparse.Namespace) -> int:
    """Withdraw liquidity from a position."""
    receipt = _service(args).remove_liquidity(args.position_id, args.lp_amount)
    w = receipt.withdrawal
    print(f"Burned {_fmt(w.lp_burned)} LP shares")
    print(f"Withdrawn: {_fmt(w.amount_a)} {receipt.pool.token_a} / {_fmt(w.amount_b)} {receipt.pool.token_b}")
    if w.closed:
        print(f"Position closed; fees paid: {_fmt(w.fees_a)} / {_fmt(w.fees_b)}")
    else:
        _print_position(receipt.position)
    return 0


def quote_command(args: argparse.Namespace) -> int:
    """Price a swap without executing it."""
    quote = _service(args).quote(args.pool_id, args.token, args.amount)
    print(f"Output:          {_fmt(quote.output_amount)} {quote.output_token}")
    print(f"Fee:             {_fmt(quote.fee_amount)} {quote.input_token}")
    print(f"Input after fee: {_fmt(quote.input_after_fee)}")
    print(f"Price impact:    {quote.price_impact:.4%}")
    return 0


def swap_command(args: argparse.Namespace) -> int:
    """Execute a swap."""
    receipt = _service(args).swap(
        args.pool_id,
        args.token,
        args.amount,
        min_output=args.min_output,
        deadline=args.deadline,
    )
    print(f"Output:       {_fmt(receipt.result.output_amount)}")
    print(f"Price impact: {receipt.result.price_impact:.4%}")
    return 0


def claim_command(args: argparse.Namespace) -> int:
    """Claim a position's accrued fees."""
    receipt = _service(args).claim_fees(args.position_id)
    print(f"Claimed: {_fmt(receipt.claimed_a)} {receipt.pool.token_a} / "
          f"{_fmt(receipt.claimed_b)} {receipt.pool.token_b}")
    return 0


def positions_command(args: argparse.Namespace) -> int:
    """List positions, optionally by owner or pool."""
    positions = _service(args).list_positions(owner=args.owner, pool_id=args.pool)
    if not positions:
        print("No positions.")
    for position in positions:
        print(f"{position.id}  pool={position.pool_id}  owner={position.owner}  "
              f"lp={_fmt(position.lp_amount)}")
    return 0


def simulate_command(args: argparse.Namespace) -> int:
    """Run random retail flow against a throwaway pool and check invariants."""
    config = SimulationConfig(
        n_steps=args.steps,
        n_providers=args.providers,
        fee_tier=to_decimal(args.fee_tier, "fee_tier"),
        curve_kind=CurveKind(args.curve),
        seed=args.seed,
    )
    print(f"Running {config.n_steps} steps...")
    result = SimulationRunner(config).run()
    print(f"Swaps:            {result.n_swaps} ({result.n_rejected} rejected)")
    print(f"Volume:           {_fmt(result.volume_a)} A / {_fmt(result.volume_b)} B")
    print(f"LP fees:          {_fmt(result.lp_fees_a)} A / {_fmt(result.lp_fees_b)} B")
    print(f"Protocol fees:    {_fmt(result.protocol_fees_a)} A / {_fmt(result.protocol_fees_b)} B")
    print(f"Invariant growth: {result.invariant_growth:.6f}")
    if not result.ok:
        print("Invariant violations:")
        for violation in result.violations:
            print(f"  - {violation}")
        return 1
    print("All invariants held.")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="AMM pool engine - manage pools, liquidity and swaps",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  amm-pool create-pool ETH USDC --fee-tier 0.003
  amm-pool add <pool-id> 10 20000 --owner alice
  amm-pool swap <pool-id> ETH 1 --min-output 1900
  amm-pool simulate --steps 500 --seed 7
        """,
    )
    parser.add_argument(
        "--db",
        default=resolve_db_path(),
        help="SQLite database path (defaults to $AMM_POOL_DB or data/pools.db)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    create_parser = subparsers.add_parser("create-pool", help="Create a pool for a token pair")
    create_parser.add_argument("token_a")
    create_parser.add_argument("token_b")
    create_parser.add_argument("--fee-tier", default=None)
    create_parser.add_argument(
        "--curve", choices=[k.value for k in CurveKind], default=CurveKind.CONSTANT_PRODUCT.value
    )
    create_parser.add_argument("--amplifier", default=None,
                               help="A coefficient for stable pools")
    create_parser.add_argument("--protocol-fee-share", default=None)
    create_parser.set_defaults(func=create_pool_command)

    pools_parser = subparsers.add_parser("pools", help="List pools")
    pools_parser.set_defaults(func=pools_command)

    pool_parser = subparsers.add_parser("pool", help="Show a pool")
    pool_parser.add_argument("pool_id")
    pool_parser.set_defaults(func=pool_command)

    add_parser = subparsers.add_parser("add", help="Add liquidity")
    add_parser.add_argument("pool_id")
    add_parser.add_argument("amount_a")
    add_parser.add_argument("amount_b")
    add_parser.add_argument("--owner", default=None)
    add_parser.add_argument("--position", default=None, help="Existing position to top up")
    add_parser.set_defaults(func=add_command)

    remove_parser = subparsers.add_parser("remove", help="Remove liquidity")
    remove_parser.add_argument("position_id")
    remove_parser.add_argument("--lp-amount", default=None,
                               help="Shares to burn (defaults to the whole position)")
    remove_parser.set_defaults(func=remove_command)

    quote_parser = subparsers.add_parser("quote", help="Quote a swap")
    quote_parser.add_argument("pool_id")
    quote_parser.add_argument("token", help="Input token symbol")
    quote_parser.add_argument("amount")
    quote_parser.set_defaults(func=quote_command)

    swap_parser = subparsers.add_parser("swap", help="Execute a swap")
    swap_parser.add_argument("pool_id")
    swap_parser.add_argument("token", help="Input token symbol")
    swap_parser.add_argument("amount")
    swap_parser.add_argument("--min-output", default=None)
    swap_parser.add_argument("--deadline", type=float, default=None,
                             help="Absolute expiry, epoch seconds")
    swap_parser.set_defaults(func=swap_command)

    claim_parser = subparsers.add_parser("claim", help="Claim a position's fees")
    claim_parser.add_argument("position_id")
    claim_parser.set_defaults(func=claim_command)

    positions_parser = subparsers.add_parser("positions", help="List positions")
    positions_parser.add_argument("--owner", default=None)
    positions_parser.add_argument("--pool", default=None)
    positions_parser.set_defaults(func=positions_command)

    simulate_parser = subparsers.add_parser(
        "simulate", help="Run random flow against an in-memory pool"
    )
    simulate_parser.add_argument("--steps", type=int, default=1000)
    simulate_parser.add_argument("--providers", type=int, default=3)
    simulate_parser.add_argument("--fee-tier", default="0.003")
    simulate_parser.add_argument(
        "--curve", choices=[k.value for k in CurveKind], default=CurveKind.CONSTANT_PRODUCT.value
    )
    simulate_parser.add_argument("--seed", type=int, default=None)
    simulate_parser.set_defaults(func=simulate_command)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 1

    try:
        return args.func(args)
    except (ValueError, StoreError) as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
