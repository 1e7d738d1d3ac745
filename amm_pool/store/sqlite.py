"""SQLite repository for pools and positions."""

import logging
import sqlite3
import uuid
from decimal import Decimal
from pathlib import Path
from typing import Optional

from amm_pool.core.entities import CurveKind, Pool, Position
from amm_pool.core.errors import DuplicateMarket
from amm_pool.core.market import market_key
from amm_pool.store.base import (
    PoolNotFound,
    PoolRepository,
    PositionNotFound,
    StaleStateError,
)

logger = logging.getLogger(__name__)

# Decimal columns are stored as TEXT so no precision is lost to REAL
_POOL_AMOUNTS = (
    "fee_tier",
    "stable_amplifier",
    "reserve_a",
    "reserve_b",
    "lp_total_supply",
    "accumulated_fees_a",
    "accumulated_fees_b",
    "protocol_fees_a",
    "protocol_fees_b",
    "protocol_fee_share",
)
_POSITION_AMOUNTS = ("lp_amount", "fees_token_a", "fees_token_b")

_POOL_COLUMNS = ", ".join(_POOL_AMOUNTS)
_POOL_ASSIGNMENTS = ", ".join(f"{name} = ?" for name in _POOL_AMOUNTS)
_POSITION_COLUMNS = ", ".join(_POSITION_AMOUNTS)
_POSITION_ASSIGNMENTS = ", ".join(f"{name} = ?" for name in _POSITION_AMOUNTS)


def _placeholders(count: int) -> str:
    return ", ".join("?" * count)


class SQLiteRepository(PoolRepository):
    """Manages the SQLite database of pools and positions."""

    def __init__(self, db_path: str = "data/pools.db"):
        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def init_db(self):
        """Create tables if they don't exist."""
        conn = self._connect()
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS pools (
                id TEXT PRIMARY KEY,
                token_a TEXT NOT NULL,
                token_b TEXT NOT NULL,
                market_token_lo TEXT NOT NULL,
                market_token_hi TEXT NOT NULL,
                market_fee TEXT NOT NULL,
                fee_tier TEXT NOT NULL,
                curve_kind TEXT NOT NULL CHECK(curve_kind IN ('constant', 'stable')),
                stable_amplifier TEXT NOT NULL,
                reserve_a TEXT NOT NULL,
                reserve_b TEXT NOT NULL,
                lp_total_supply TEXT NOT NULL,
                accumulated_fees_a TEXT NOT NULL,
                accumulated_fees_b TEXT NOT NULL,
                protocol_fees_a TEXT NOT NULL,
                protocol_fees_b TEXT NOT NULL,
                protocol_fee_share TEXT NOT NULL,
                version INTEGER NOT NULL DEFAULT 0,
                created_at REAL NOT NULL,
                UNIQUE (market_token_lo, market_token_hi, market_fee)
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS positions (
                id TEXT PRIMARY KEY,
                pool_id TEXT NOT NULL,
                owner TEXT NOT NULL,
                lp_amount TEXT NOT NULL,
                fees_token_a TEXT NOT NULL,
                fees_token_b TEXT NOT NULL,
                created_at REAL NOT NULL,
                FOREIGN KEY (pool_id) REFERENCES pools(id)
            )
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_positions_owner
            ON positions(owner)
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_positions_pool_id
            ON positions(pool_id)
        """)

        conn.commit()
        conn.close()

    @staticmethod
    def _row_to_pool(row: sqlite3.Row) -> Pool:
        amounts = {name: Decimal(row[name]) for name in _POOL_AMOUNTS}
        return Pool(
            token_a=row["token_a"],
            token_b=row["token_b"],
            curve_kind=CurveKind(row["curve_kind"]),
            id=row["id"],
            version=row["version"],
            created_at=row["created_at"],
            **amounts,
        )

    @staticmethod
    def _row_to_position(row: sqlite3.Row) -> Position:
        amounts = {name: Decimal(row[name]) for name in _POSITION_AMOUNTS}
        return Position(
            pool_id=row["pool_id"],
            owner=row["owner"],
            id=row["id"],
            created_at=row["created_at"],
            **amounts,
        )

    def add_pool(self, pool: Pool) -> Pool:
        (token_lo, token_hi), fee = market_key(pool.token_a, pool.token_b, pool.fee_tier)
        pool_id = uuid.uuid4().hex
        conn = self._connect()
        try:
            with conn:
                conn.execute(
                    f"""
                    INSERT INTO pools (
                        id, token_a, token_b, market_token_lo, market_token_hi,
                        market_fee, curve_kind, version, created_at,
                        {_POOL_COLUMNS}
                    ) VALUES ({_placeholders(9 + len(_POOL_AMOUNTS))})
                    """,
                    (
                        pool_id, pool.token_a, pool.token_b, token_lo, token_hi,
                        str(fee), pool.curve_kind.value, 0, pool.created_at,
                        *(str(getattr(pool, name)) for name in _POOL_AMOUNTS),
                    ),
                )
        except sqlite3.IntegrityError:
            raise DuplicateMarket(
                f"pool already trades {pool.token_a}/{pool.token_b} at fee tier {pool.fee_tier}"
            )
        finally:
            conn.close()

        pool.id = pool_id
        pool.version = 0
        return pool

    def get_pool(self, pool_id: str) -> Pool:
        conn = self._connect()
        try:
            row = conn.execute("SELECT * FROM pools WHERE id = ?", (pool_id,)).fetchone()
        finally:
            conn.close()
        if row is None:
            raise PoolNotFound(f"Pool not found: {pool_id}")
        return self._row_to_pool(row)

    def list_pools(self) -> list[Pool]:
        conn = self._connect()
        try:
            rows = conn.execute("SELECT * FROM pools ORDER BY created_at DESC").fetchall()
        finally:
            conn.close()
        return [self._row_to_pool(row) for row in rows]

    def get_position(self, position_id: str) -> Position:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT * FROM positions WHERE id = ?", (position_id,)
            ).fetchone()
        finally:
            conn.close()
        if row is None:
            raise PositionNotFound(f"Position not found: {position_id}")
        return self._row_to_position(row)

    def list_positions(
        self, owner: Optional[str] = None, pool_id: Optional[str] = None
    ) -> list[Position]:
        clauses = []
        params = []
        if owner is not None:
            clauses.append("owner = ?")
            params.append(owner)
        if pool_id is not None:
            clauses.append("pool_id = ?")
            params.append(pool_id)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        conn = self._connect()
        try:
            rows = conn.execute(
                f"SELECT * FROM positions {where} ORDER BY created_at DESC", params
            ).fetchall()
        finally:
            conn.close()
        return [self._row_to_position(row) for row in rows]

    def save(
        self,
        pool: Pool,
        position: Optional[Position] = None,
        delete_position: bool = False,
    ) -> None:
        new_position_id = None
        conn = self._connect()
        try:
            with conn:
                cursor = conn.execute(
                    f"""
                    UPDATE pools
                    SET {_POOL_ASSIGNMENTS},
                        version = version + 1
                    WHERE id = ? AND version = ?
                    """,
                    (
                        *(str(getattr(pool, name)) for name in _POOL_AMOUNTS),
                        pool.id,
                        pool.version,
                    ),
                )
                if cursor.rowcount == 0:
                    exists = conn.execute(
                        "SELECT 1 FROM pools WHERE id = ?", (pool.id,)
                    ).fetchone()
                    if exists is None:
                        raise PoolNotFound(f"Pool not found: {pool.id}")
                    raise StaleStateError(
                        f"pool {pool.id} changed since version {pool.version} was loaded"
                    )

                if position is not None:
                    if delete_position:
                        conn.execute("DELETE FROM positions WHERE id = ?", (position.id,))
                    elif position.id is None:
                        new_position_id = uuid.uuid4().hex
                        conn.execute(
                            f"""
                            INSERT INTO positions (
                                id, pool_id, owner, created_at, {_POSITION_COLUMNS}
                            ) VALUES (?, ?, ?, ?, ?, ?, ?)
                            """,
                            (
                                new_position_id, position.pool_id, position.owner,
                                position.created_at,
                                *(str(getattr(position, name)) for name in _POSITION_AMOUNTS),
                            ),
                        )
                    else:
                        conn.execute(
                            f"""
                            UPDATE positions
                            SET {_POSITION_ASSIGNMENTS}
                            WHERE id = ?
                            """,
                            (
                                *(str(getattr(position, name)) for name in _POSITION_AMOUNTS),
                                position.id,
                            ),
                        )
        finally:
            conn.close()

        if new_position_id is not None:
            position.id = new_position_id
        pool.version += 1
        logger.debug("Saved pool %s at version %s", pool.id, pool.version)
