import threading
from datetime import date
from decimal import Decimal

import pytest

from utils.errors import ConcurrentModificationError, NotFoundError, ValidationError

OWNER = 1
OTHER_OWNER = 2


def test_create_defaults_next_due_to_start(salary):
    assert salary.next_due_date == date(2024, 1, 15)
    assert salary.amount == Decimal("500000.00")
    assert salary.is_active


def test_create_reports_every_violation(recurring_svc):
    with pytest.raises(ValidationError) as exc_info:
        recurring_svc.create(OWNER, "gift", "-5", "  ", "hourly", date(2024, 1, 1), interval=0)
    errors = exc_info.value.errors
    assert "Amount must be a positive number" in errors
    assert any(e.startswith("Type must be one of") for e in errors)
    assert any(e.startswith("Frequency must be one of") for e in errors)
    assert "Description is required" in errors
    assert "Interval must be at least 1" in errors
    assert str(exc_info.value).startswith("Validation failed: ")


def test_create_rejects_end_before_start(recurring_svc):
    with pytest.raises(ValidationError, match="End date must be after start date"):
        recurring_svc.create(
            OWNER, "expense", "10", "Gym", "monthly", date(2024, 3, 1),
            end_date=date(2024, 2, 1),
        )


def test_other_owner_cannot_see_definition(recurring_svc, salary):
    with pytest.raises(NotFoundError):
        recurring_svc.get_by_id(OTHER_OWNER, salary.id)
    with pytest.raises(NotFoundError):
        recurring_svc.delete(OTHER_OWNER, salary.id)


def test_update_merges_and_validates(recurring_svc, salary):
    updated = recurring_svc.update(OWNER, salary.id, amount="550000", category="work")
    assert updated.amount == Decimal("550000.00")
    assert updated.category == "work"
    assert updated.description == "Salary"

    with pytest.raises(ValidationError):
        recurring_svc.update(OWNER, salary.id, amount="0")
    assert recurring_svc.get_by_id(OWNER, salary.id).amount == Decimal("550000.00")


def test_update_cannot_move_next_due_backwards(recurring_svc, tx_dao, salary):
    recurring_svc.process(OWNER, as_of=date(2024, 1, 15))
    with pytest.raises(ValidationError, match="Next due date cannot move backwards"):
        recurring_svc.update(OWNER, salary.id, next_due_date=date(2024, 1, 15))
    assert recurring_svc.get_by_id(OWNER, salary.id).next_due_date == date(2024, 2, 15)

    moved = recurring_svc.update(OWNER, salary.id, next_due_date=date(2024, 3, 15))
    assert moved.next_due_date == date(2024, 3, 15)
    assert len(tx_dao.get_by_recurring(OWNER, salary.id)) == 1


def test_create_rejects_non_finite_amount(recurring_svc):
    with pytest.raises(ValidationError) as exc_info:
        recurring_svc.create(OWNER, "income", "NaN", "Salary", "monthly", date(2024, 1, 15))
    assert exc_info.value.errors == ["Amount must be a positive number"]


def test_get_due_annotates_items(recurring_svc, salary):
    items = recurring_svc.get_due(OWNER, as_of=date(2024, 1, 20))
    assert len(items) == 1
    assert items[0].days_until_due == -5
    assert items[0].is_overdue
    assert recurring_svc.get_due(OWNER, as_of=date(2024, 1, 10)) == []
    assert len(recurring_svc.get_upcoming(OWNER, days=5, as_of=date(2024, 1, 10))) == 1


def test_process_materializes_and_advances(recurring_svc, tx_dao, salary):
    result = recurring_svc.process(OWNER, as_of=date(2024, 1, 15))

    assert result.created == 1
    assert result.ok
    entries = tx_dao.get_by_recurring(OWNER, salary.id)
    assert len(entries) == 1
    assert entries[0].transaction_date == date(2024, 1, 15)
    assert entries[0].amount == Decimal("500000.00")
    assert entries[0].status == "active"
    assert recurring_svc.get_by_id(OWNER, salary.id).next_due_date == date(2024, 2, 15)


def test_process_twice_same_day_creates_one_entry(recurring_svc, tx_dao, salary):
    recurring_svc.process(OWNER, as_of=date(2024, 1, 15))
    second = recurring_svc.process(OWNER, as_of=date(2024, 1, 15))
    assert second.created == 0
    assert len(tx_dao.get_by_recurring(OWNER, salary.id)) == 1


def test_process_deactivates_past_end_date(recurring_svc):
    rent = recurring_svc.create(
        OWNER, "expense", "2000000", "Rent", "monthly", date(2024, 1, 1),
        end_date=date(2024, 1, 20),
    )
    recurring_svc.process(OWNER, as_of=date(2024, 1, 1))
    stored = recurring_svc.get_by_id(OWNER, rent.id)
    assert not stored.is_active
    assert stored.next_due_date == date(2024, 2, 1)


def test_month_end_series_does_not_drift(recurring_svc):
    rule = recurring_svc.create(OWNER, "expense", "100", "Card", "monthly", date(2024, 1, 31))
    for as_of in (date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31)):
        recurring_svc.process(OWNER, as_of=as_of)
    assert recurring_svc.get_by_id(OWNER, rule.id).next_due_date == date(2024, 4, 30)


def test_process_collects_per_item_failures(recurring_svc, recurring_dao, tx_dao, salary, monkeypatch):
    gym = recurring_svc.create(OWNER, "expense", "150000", "Gym", "monthly", date(2024, 1, 10))
    original = recurring_dao.materialize

    def flaky(definition, new_next_due, is_active):
        if definition.id == gym.id:
            raise RuntimeError("disk full")
        return original(definition, new_next_due, is_active)

    monkeypatch.setattr(recurring_dao, "materialize", flaky)
    result = recurring_svc.process(OWNER, as_of=date(2024, 1, 15))

    assert result.created == 1
    assert len(result.failures) == 1
    assert result.failures[0].item_id == gym.id
    assert "disk full" in result.errors[0]
    assert recurring_svc.get_by_id(OWNER, gym.id).next_due_date == date(2024, 1, 10)
    assert len(tx_dao.get_by_recurring(OWNER, salary.id)) == 1


def test_stale_materialize_rolls_back_entry(recurring_svc, recurring_dao, tx_dao, salary):
    stale = recurring_svc.get_by_id(OWNER, salary.id)
    recurring_dao.update(OWNER, salary.id, {"next_due_date": date(2024, 2, 15)})

    with pytest.raises(ConcurrentModificationError):
        recurring_dao.materialize(stale, date(2024, 2, 15), True)

    assert tx_dao.get_by_recurring(OWNER, salary.id) == []
    assert recurring_svc.get_by_id(OWNER, salary.id).next_due_date == date(2024, 2, 15)


def test_skip_next_advances_without_entry(recurring_svc, tx_dao, salary):
    skipped = recurring_svc.skip_next(OWNER, salary.id)
    assert skipped.next_due_date == date(2024, 2, 15)
    assert tx_dao.get_by_recurring(OWNER, salary.id) == []


def test_toggle_active_round_trip(recurring_svc, salary):
    assert not recurring_svc.toggle_active(OWNER, salary.id).is_active
    assert recurring_svc.get_due(OWNER, as_of=date(2024, 3, 1)) == []
    assert recurring_svc.toggle_active(OWNER, salary.id).is_active


def test_summary_monthly_totals(recurring_svc, salary):
    recurring_svc.create(OWNER, "expense", "100", "Coffee", "weekly", date(2024, 1, 1))
    recurring_svc.create(OWNER, "expense", "1200", "Insurance", "yearly", date(2024, 1, 1))
    recurring_svc.create(OWNER, "debt", "999", "Loan", "monthly", date(2024, 1, 1))
    paused = recurring_svc.create(OWNER, "income", "50", "Side", "daily", date(2024, 1, 1))
    recurring_svc.toggle_active(OWNER, paused.id)

    summary = recurring_svc.get_summary(OWNER, as_of=date(2024, 1, 10))
    assert summary.total_active == 4
    assert summary.total_inactive == 1
    assert summary.monthly_income_total == Decimal("500000")
    assert summary.monthly_expense_total == Decimal("433") + Decimal("100")
    assert summary.due_soon == 1
    assert summary.overdue == 3


def test_get_filtered_and_count(recurring_svc, salary):
    recurring_svc.create(OWNER, "expense", "100", "Coffee", "weekly", date(2024, 1, 1))
    expenses = recurring_svc.get_filtered(OWNER, type_="expense")
    assert [d.description for d in expenses] == ["Coffee"]
    assert recurring_svc.get_count(OWNER) == 2
    assert recurring_svc.get_count(OWNER, due_soon=True, as_of=date(2024, 1, 10)) == 2
    by_amount = recurring_svc.get_filtered(OWNER, sort_field="amount", descending=True)
    assert by_amount[0].description == "Salary"


def test_commit_from_another_owner_does_not_leak_pending_entry(
    recurring_svc, recurring_dao, tx_dao, salary, monkeypatch
):
    rent = recurring_svc.create(OTHER_OWNER, "expense", "200000", "Rent", "monthly", date(2024, 1, 1))
    original = recurring_dao._advance
    other = threading.Thread(target=recurring_svc.process, args=(OTHER_OWNER, date(2024, 1, 15)))

    def advance_then_lose_race(conn, definition, new_next_due, is_active):
        if definition.owner_id != OWNER:
            return original(conn, definition, new_next_due, is_active)
        # The salary entry is inserted but not committed; let the other owner run.
        other.start()
        other.join(timeout=0.5)
        raise ConcurrentModificationError(f"Recurring transaction {definition.id} changed")

    monkeypatch.setattr(recurring_dao, "_advance", advance_then_lose_race)
    result = recurring_svc.process(OWNER, as_of=date(2024, 1, 15))
    other.join()

    assert result.created == 0
    assert len(result.failures) == 1
    assert tx_dao.get_by_recurring(OWNER, salary.id) == []
    assert recurring_svc.get_by_id(OWNER, salary.id).next_due_date == date(2024, 1, 15)
    assert len(tx_dao.get_by_recurring(OTHER_OWNER, rent.id)) == 1
    assert recurring_svc.get_by_id(OTHER_OWNER, rent.id).next_due_date == date(2024, 2, 1)


def test_parallel_process_for_one_owner_creates_one_entry(recurring_svc, tx_dao, salary):
    workers = [
        threading.Thread(target=recurring_svc.process, args=(OWNER, date(2024, 1, 15)))
        for _ in range(4)
    ]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()

    assert len(tx_dao.get_by_recurring(OWNER, salary.id)) == 1
    assert recurring_svc.get_by_id(OWNER, salary.id).next_due_date == date(2024, 2, 15)
