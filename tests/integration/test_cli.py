"""Integration tests for the Platito CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from platito.cli.main import main
from platito.forex import CriptoYaQuoteSource

QUOTE_PAYLOAD = {
    "blue": {"ask": 1320, "bid": 1280},
    "mep": {"al30": {"24hs": {"price": 1250}}},
    "cripto": {"usdt": {"ask": 1290, "bid": 1270}},
}


def _invoke(runner: CliRunner, db_path: Path, *args: str, testing: bool = False):
    options = ["--db", str(db_path)]
    if testing:
        options.append("--testing")
    return runner.invoke(main, [*options, *args])


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.mark.sit
def test_version(runner: CliRunner) -> None:
    result = runner.invoke(main, ["--version"])

    assert result.exit_code == 0
    assert "platito" in result.output


@pytest.mark.sit
def test_expense_scenario(runner: CliRunner, db_path: Path) -> None:
    added = _invoke(
        runner, db_path, "account", "add", "--name", "Pesos", "--currency", "ARS",
        "--initial-balance", "1000",
    )
    assert added.exit_code == 0, added.output
    assert "Added account 1" in added.output

    categories = _invoke(runner, db_path, "category", "list", "--type", "expense")
    food_key = next(
        line.split("\t")[0] for line in categories.output.splitlines() if "\tFood" in line
    )

    spent = _invoke(
        runner, db_path, "transaction", "add", "--account", "1", "--category", food_key,
        "--amount", "200", "--date", "2026-03-05", "--description", "Groceries",
    )
    assert spent.exit_code == 0, spent.output

    balance = _invoke(runner, db_path, "account", "balance", "1")
    assert balance.exit_code == 0
    assert "Pesos: 800.00 ARS" in balance.output

    listed = _invoke(runner, db_path, "transaction", "list")
    assert "2026-03-05\texpense\t200.00\tARS" in listed.output


@pytest.mark.sit
def test_cross_currency_transfer(runner: CliRunner, db_path: Path) -> None:
    _invoke(runner, db_path, "account", "add", "--name", "Pesos", "--currency", "ARS", "--initial-balance", "1000")
    _invoke(runner, db_path, "account", "add", "--name", "MEP", "--currency", "usd_mep")
    rates = _invoke(runner, db_path, "rates", "set", "USD_MEP=1000")
    assert rates.exit_code == 0, rates.output
    assert "USD_MEP\t1000" in rates.output

    moved = _invoke(
        runner, db_path, "transfer", "add", "--from-account", "1", "--to-account", "2",
        "--amount", "500",
    )
    assert moved.exit_code == 0, moved.output
    assert "500.00 -> 0.50" in moved.output

    assert "Pesos: 500.00 ARS" in _invoke(runner, db_path, "account", "balance", "1").output
    assert "MEP: 0.50 USD_MEP" in _invoke(runner, db_path, "account", "balance", "2").output
    assert "Total: 1000.00 ARS" in _invoke(runner, db_path, "account", "total").output


@pytest.mark.sit
def test_domain_errors_become_click_errors(runner: CliRunner, db_path: Path) -> None:
    protected = _invoke(runner, db_path, "category", "delete", "1")
    missing = _invoke(runner, db_path, "account", "balance", "42")
    same = _invoke(
        runner, db_path, "transfer", "add", "--from-account", "1", "--to-account", "1",
        "--amount", "5",
    )

    assert protected.exit_code == 1
    assert "cannot be deleted" in protected.output
    assert missing.exit_code == 1
    assert "Account 42 not found" in missing.output
    assert same.exit_code == 1
    assert "same account" in same.output


@pytest.mark.sit
def test_bad_input_is_a_usage_error(runner: CliRunner, db_path: Path) -> None:
    bad_date = _invoke(
        runner, db_path, "transaction", "add", "--account", "1", "--category", "1",
        "--amount", "5", "--date", "05/03/2026",
    )
    bad_rate = _invoke(runner, db_path, "rates", "set", "USD_MEP")

    assert bad_date.exit_code == 2
    assert "YYYY-MM-DD" in bad_date.output
    assert bad_rate.exit_code == 2


@pytest.mark.sit
def test_testing_flag_uses_sample_rates(runner: CliRunner, db_path: Path) -> None:
    result = _invoke(runner, db_path, "rates", "show", testing=True)

    assert result.exit_code == 0
    assert "USD_BLUE\t1200" in result.output
    assert "USD_MEP\t1150" in result.output


@pytest.mark.sit
def test_rates_fetch_and_cooldown(
    runner: CliRunner, db_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(CriptoYaQuoteSource, "_fetch_from_api", lambda self: QUOTE_PAYLOAD)

    fetched = _invoke(runner, db_path, "rates", "fetch")
    limited = _invoke(runner, db_path, "rates", "fetch")
    forced = _invoke(runner, db_path, "rates", "fetch", "--force")

    assert fetched.exit_code == 0, fetched.output
    assert "USD_BLUE\t1300" in fetched.output
    assert limited.exit_code == 1
    assert "retry in" in limited.output
    assert forced.exit_code == 0
    assert "fx_update_count\t2" in _invoke(runner, db_path, "settings", "show").output


@pytest.mark.sit
def test_settings_set_and_show(runner: CliRunner, db_path: Path) -> None:
    _invoke(runner, db_path, "account", "add", "--name", "Pesos", "--currency", "ARS")

    updated = _invoke(
        runner, db_path, "settings", "set", "--display-currency", "usdt",
        "--default-account", "1", "--auto-update", "12h",
    )
    nothing = _invoke(runner, db_path, "settings", "set")

    assert updated.exit_code == 0, updated.output
    assert "display_currency\tUSDT" in updated.output
    assert "default_account\t1" in updated.output
    assert "auto_update_interval\t12h" in updated.output
    assert nothing.exit_code == 2


@pytest.mark.sit
def test_export_import_and_reset(runner: CliRunner, tmp_path: Path, db_path: Path) -> None:
    _invoke(runner, db_path, "account", "add", "--name", "Pesos", "--currency", "ARS", "--initial-balance", "75")
    _invoke(runner, db_path, "tag", "add", "Travel")
    export_path = tmp_path / "backup.json"

    exported = _invoke(runner, db_path, "db", "export", "--output", str(export_path))
    assert exported.exit_code == 0, exported.output
    assert json.loads(export_path.read_text(encoding="utf-8"))["tags"] == [{"id": 1, "name": "Travel"}]

    other_db = tmp_path / "other.db"
    imported = _invoke(runner, other_db, "db", "import", str(export_path), "--yes")
    assert imported.exit_code == 0, imported.output
    assert "Account\t1" in imported.output
    assert "Pesos" in _invoke(runner, other_db, "account", "list").output

    reset = _invoke(runner, other_db, "db", "reset", "--yes")
    assert reset.exit_code == 0
    assert "No accounts found." in _invoke(runner, other_db, "account", "list").output


@pytest.mark.sit
def test_rejected_import_keeps_data(runner: CliRunner, tmp_path: Path, db_path: Path) -> None:
    _invoke(runner, db_path, "account", "add", "--name", "Pesos", "--currency", "ARS")
    export_path = tmp_path / "backup.json"
    _invoke(runner, db_path, "db", "export", "--output", str(export_path))
    payload = json.loads(export_path.read_text(encoding="utf-8"))
    payload["accounts"] = []
    payload["settings"]["displayCurrency"] = "EUR"
    export_path.write_text(json.dumps(payload), encoding="utf-8")

    result = _invoke(runner, db_path, "db", "import", str(export_path), "--yes")

    assert result.exit_code == 1
    assert "Unsupported currency" in result.output
    assert "Pesos" in _invoke(runner, db_path, "account", "list").output


@pytest.mark.sit
def test_seed_command(runner: CliRunner, db_path: Path) -> None:
    first = _invoke(runner, db_path, "db", "seed", testing=True)
    second = _invoke(runner, db_path, "db", "seed", testing=True)

    assert "Sample data added." in first.output
    assert "nothing added" in second.output
    assert "Dollars MEP" in _invoke(runner, db_path, "account", "list", testing=True).output
