from datetime import date

import main
from database.db_manager import DatabaseManager
from database.recurring_dao import RecurringDAO
from database.transaction_dao import TransactionDAO
from services.recurring_service import RecurringService


def test_process_command(tmp_path, capsys):
    db_path = str(tmp_path / "cli.db")
    db = DatabaseManager(db_path)
    db.initialize()
    RecurringService(RecurringDAO(db), TransactionDAO(db)).create(
        1, "income", "500000", "Salary", "monthly", date(2024, 1, 15),
    )
    db.close()

    code = main.main(["--db", db_path, "--owner", "1", "--as-of", "2024-01-15", "process"])
    assert code == 0
    assert "Created 1 transaction(s)" in capsys.readouterr().out


def test_missing_owner_fails(tmp_path, monkeypatch):
    monkeypatch.setattr(main, "get_default_owner", lambda: None)
    assert main.main(["--db", str(tmp_path / "cli.db"), "health"]) == 2


def test_forecast_and_health_commands(tmp_path, capsys):
    db_path = str(tmp_path / "cli.db")
    args = ["--db", db_path, "--owner", "1", "--as-of", "2024-01-01"]
    assert main.main(args + ["forecast", "--days", "3"]) == 0
    assert main.main(args + ["health", "--budget", "100", "--spent", "50"]) == 0
    out = capsys.readouterr().out
    assert "confidence" in out
    assert "Overall:" in out


def test_health_rejects_non_finite_budget(tmp_path):
    args = ["--db", str(tmp_path / "cli.db"), "--owner", "1", "--as-of", "2024-01-01"]
    assert main.main(args + ["health", "--budget", "NaN"]) == 1
