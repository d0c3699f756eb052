"""
End-to-end runs of the swapbook command line in a temporary directory.
"""

import io

import pytest
import yaml

from swapbook import load_details, load_ledger
from swapbook.cli import main


@pytest.fixture
def config_path(tmp_path, monkeypatch):
    for name in ("SWAPBOOK_CONFIG", "SWAPBOOK_STORE", "SWAPBOOK_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    path = tmp_path / "swapbook.yaml"
    path.write_text(yaml.safe_dump({
        "store_path": str(tmp_path / "store.yaml"),
        "details_path": str(tmp_path / "details.yaml"),
        "log_level": "WARNING",
        "seed": 7,
        "setup": {
            "num_notes": 5, "max_supply": 1000, "fund_amount": 100,
            "total_offered": 50, "total_requested": 50, "user_fund_amount": 100,
        },
    }))
    return path


def run(config_path, *args):
    return main(["--config", str(config_path), *args])


class TestCommands:

    def test_setup_then_list(self, config_path, tmp_path, capsys):
        assert run(config_path, "setup") == 0
        assert (tmp_path / "store.yaml").exists()
        assert (tmp_path / "details.yaml").exists()

        assert run(config_path, "list") == 0
        out = capsys.readouterr().out
        assert "BTC/ETH Notes (total 5):" in out
        assert "ETH/BTC Notes (total 5):" in out

    def test_order_fills_and_persists(self, config_path, tmp_path, capsys):
        run(config_path, "setup")
        block = load_ledger(tmp_path / "store.yaml").block_num

        assert run(config_path, "order", "ETH", "10", "BTC", "1", "--yes") == 0

        out = capsys.readouterr().out
        assert "Balance Update Preview:" in out
        assert "Consumed" in out
        assert load_ledger(tmp_path / "store.yaml").block_num == block + 1

    def test_unfillable_order_is_published(self, config_path, tmp_path, capsys):
        run(config_path, "setup")
        assert run(config_path, "order", "eth", "1", "btc", "1000", "--yes") == 0
        assert "Published new order" in capsys.readouterr().out

        ledger = load_ledger(tmp_path / "store.yaml")
        details = load_details(tmp_path / "details.yaml")
        assert len(ledger.list_notes(tag=details.swap_b_a_tag)) == 6

    def test_declined_order(self, config_path, tmp_path, capsys, monkeypatch):
        run(config_path, "setup")
        block = load_ledger(tmp_path / "store.yaml").block_num
        monkeypatch.setattr("builtins.input", lambda prompt: "n")

        assert run(config_path, "order", "ETH", "10", "BTC", "1") == 0

        assert "Order cancelled." in capsys.readouterr().out
        assert load_ledger(tmp_path / "store.yaml").block_num == block

    def test_closed_stdin_cancels_order(self, config_path, tmp_path, capsys, monkeypatch):
        run(config_path, "setup")
        block = load_ledger(tmp_path / "store.yaml").block_num
        monkeypatch.setattr("sys.stdin", io.StringIO(""))

        assert run(config_path, "order", "ETH", "10", "BTC", "1") == 0

        assert "Order cancelled." in capsys.readouterr().out
        assert load_ledger(tmp_path / "store.yaml").block_num == block

    def test_login_switches_user(self, config_path, tmp_path, capsys):
        run(config_path, "setup")
        first = load_details(tmp_path / "details.yaml").user

        assert run(config_path, "login") == 0

        second = load_details(tmp_path / "details.yaml").user
        assert second != first
        assert f"Logged in as {second}" in capsys.readouterr().out

    def test_init_removes_files(self, config_path, tmp_path):
        run(config_path, "setup")
        assert run(config_path, "init") == 0
        assert not (tmp_path / "store.yaml").exists()
        assert run(config_path, "list") == 1

    def test_demo(self, config_path, capsys):
        assert run(config_path, "demo", "--yes") == 0
        out = capsys.readouterr().out
        assert "Submitting order" in out
        assert "Balances of" in out


class TestErrors:

    def test_unknown_asset(self, config_path, capsys):
        run(config_path, "setup")
        assert run(config_path, "order", "ETH", "10", "DOGE", "1", "--yes") == 1
        assert "Unknown asset" in capsys.readouterr().err

    def test_same_asset_twice(self, config_path):
        run(config_path, "setup")
        assert run(config_path, "order", "ETH", "10", "ETH", "1", "--yes") == 1

    def test_unknown_user(self, config_path):
        run(config_path, "setup")
        assert run(config_path, "order", "ETH", "10", "BTC", "1", "--user", "0xnobody", "--yes") == 1

    def test_commands_before_setup(self, config_path):
        assert run(config_path, "list") == 1
        assert run(config_path, "login") == 1

    def test_bad_config(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.safe_dump({"colour": "blue"}))
        assert main(["--config", str(path), "list"]) == 1

    def test_non_positive_amount_is_usage_error(self, config_path):
        with pytest.raises(SystemExit) as info:
            run(config_path, "order", "ETH", "0", "BTC", "1")
        assert info.value.code == 2
