"""CLI tests driving main() against a temporary database."""

import pytest

from amm_pool.cli import main


@pytest.fixture
def db(tmp_path):
    return str(tmp_path / "cli.db")


def _run(db, capsys, *argv):
    code = main(["--db", db, *argv])
    return code, capsys.readouterr().out


def _id_after(out, label):
    for line in out.splitlines():
        if line.startswith(label + " "):
            return line.split()[1]
    raise AssertionError(f"no {label} line in output:\n{out}")


class TestCLI:

    def test_full_session(self, db, capsys):
        code, out = _run(db, capsys, "create-pool", "ETH", "USDC", "--fee-tier", "0.003")
        assert code == 0
        pool_id = _id_after(out, "Pool")

        code, out = _run(db, capsys, "add", pool_id, "1000", "1000", "--owner", "alice")
        assert code == 0
        assert "Minted 1000 LP shares" in out
        position_id = _id_after(out, "Position")

        code, out = _run(db, capsys, "quote", pool_id, "ETH", "100")
        assert code == 0
        assert "Output:" in out

        code, out = _run(db, capsys, "swap", pool_id, "ETH", "100", "--min-output", "90")
        assert code == 0

        code, out = _run(db, capsys, "claim", position_id)
        assert code == 0
        assert "Claimed: 0.27 ETH" in out

        code, out = _run(db, capsys, "positions", "--owner", "alice")
        assert position_id in out

        code, out = _run(db, capsys, "remove", position_id)
        assert code == 0
        assert "Position closed" in out

        code, out = _run(db, capsys, "pool", pool_id)
        assert "LP supply:      0" in out

    def test_pools_listing(self, db, capsys):
        code, out = _run(db, capsys, "pools")
        assert code == 0
        assert "No pools." in out

        _run(db, capsys, "create-pool", "USDC", "DAI", "--curve", "stable", "--amplifier", "100")
        code, out = _run(db, capsys, "pools")
        assert "USDC/DAI" in out
        assert "curve=stable" in out

    def test_engine_error_exit_code(self, db, capsys):
        _run(db, capsys, "create-pool", "ETH", "USDC")

        code, out = _run(db, capsys, "create-pool", "USDC", "ETH")

        assert code == 1
        assert out.startswith("Error:")

    def test_store_error_exit_code(self, db, capsys):
        code, out = _run(db, capsys, "swap", "missing", "ETH", "1")

        assert code == 1
        assert "Pool not found" in out

    def test_slippage_exit_code(self, db, capsys):
        _, out = _run(db, capsys, "create-pool", "ETH", "USDC")
        pool_id = _id_after(out, "Pool")
        _run(db, capsys, "add", pool_id, "1000", "1000")

        code, out = _run(db, capsys, "swap", pool_id, "ETH", "100", "--min-output", "95")

        assert code == 1
        assert "below minimum" in out

    def test_simulate(self, db, capsys):
        code, out = _run(db, capsys, "simulate", "--steps", "50", "--seed", "3")

        assert code == 0
        assert "All invariants held." in out

    def test_simulate_without_providers_is_an_error(self, db, capsys):
        code, out = _run(db, capsys, "simulate", "--providers", "0")

        assert code == 1
        assert "Error: n_providers must be >= 1" in out

    def test_no_command(self, db, capsys):
        assert main(["--db", db]) == 1
