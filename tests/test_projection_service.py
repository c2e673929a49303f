from datetime import date
from decimal import Decimal

import pytest

from utils.errors import ValidationError

OWNER = 1


def test_historical_averages_use_trailing_window(projection_svc, tx_dao):
    start = date(2024, 4, 1)
    tx_dao.create(OWNER, "income", Decimal("9000"), date(2024, 3, 31))
    tx_dao.create(OWNER, "expense", Decimal("4500"), date(2024, 1, 2))
    tx_dao.create(OWNER, "income", Decimal("100000"), date(2024, 4, 1))   # on start: excluded
    tx_dao.create(OWNER, "expense", Decimal("100000"), date(2024, 1, 1))  # 91 days back: excluded
    tx_dao.create(OWNER, "debt", Decimal("100000"), date(2024, 3, 1))     # not cash flow

    averages = projection_svc.get_historical_averages(OWNER, start)
    assert averages.total_days == 90
    assert averages.daily_income == Decimal("100.00")
    assert averages.daily_expenses == Decimal("50.00")


def test_generate_projections_adds_recurring_on_due_days(projection_svc, salary):
    records = projection_svc.generate_projections(
        OWNER, date(2024, 2, 14), date(2024, 2, 16), include_historical=False
    )
    assert [r.projection_date for r in records] == [
        date(2024, 2, 14), date(2024, 2, 15), date(2024, 2, 16),
    ]
    assert [r.projected_income for r in records] == [
        Decimal("0"), Decimal("500000"), Decimal("0"),
    ]
    assert records[1].projected_balance == Decimal("500000")


def test_generate_projections_ignores_debt_and_inactive(projection_svc, recurring_svc):
    recurring_svc.create(OWNER, "debt", "1000", "Loan", "daily", date(2024, 1, 1))
    paused = recurring_svc.create(OWNER, "expense", "50", "Snack", "daily", date(2024, 1, 1))
    recurring_svc.toggle_active(OWNER, paused.id)
    records = projection_svc.generate_projections(
        OWNER, date(2024, 1, 1), date(2024, 1, 2), include_historical=False
    )
    assert all(r.projected_income == 0 and r.projected_expenses == 0 for r in records)


def test_regenerating_keeps_actuals(projection_svc, salary):
    day = date(2024, 2, 15)
    projection_svc.generate_projections(OWNER, day, day, include_historical=False)
    projection_svc.update_actuals(OWNER, day, "480000", "20000")

    projection_svc.generate_projections(OWNER, day, day, include_historical=False)
    record = projection_svc.get_by_date(OWNER, day)
    assert record.projected_income == Decimal("500000")
    assert record.actual_income == Decimal("480000")
    assert record.actual_balance == Decimal("460000")


def test_update_actuals_bootstraps_missing_record(projection_svc):
    day = date(2024, 5, 1)
    record = projection_svc.update_actuals(OWNER, day, "300", "100")
    assert record.projected_income == record.actual_income == Decimal("300")
    assert record.projected_expenses == record.actual_expenses == Decimal("100")
    assert record.projected_balance == record.actual_balance == Decimal("200")

    analysis = projection_svc.get_cash_flow_analysis(OWNER, day, day)[0]
    assert analysis.variance.income_variance == 0
    assert analysis.accuracy == 100.0


def test_update_actuals_from_transactions(projection_svc, tx_dao):
    day = date(2024, 5, 2)
    tx_dao.create(OWNER, "income", Decimal("250"), day)
    tx_dao.create(OWNER, "expense", Decimal("75"), day)
    tx_dao.create(OWNER, "expense", Decimal("25"), day)

    record = projection_svc.update_actuals_from_transactions(OWNER, day)
    assert record.actual_income == Decimal("250")
    assert record.actual_expenses == Decimal("100")


def test_analysis_variance_and_accuracy(projection_svc):
    day = date(2024, 6, 1)
    projection_svc.create_or_update(OWNER, day, "1000", "500")
    projection_svc.update_actuals(OWNER, day, "1100", "400")

    analysis = projection_svc.get_cash_flow_analysis(OWNER, day, day)[0]
    assert analysis.variance.income_variance == Decimal("100")
    assert analysis.variance.expense_variance == Decimal("-100")
    assert analysis.variance.income_variance_percentage == pytest.approx(10.0)
    assert analysis.variance.expense_variance_percentage == pytest.approx(-20.0)
    assert analysis.variance.balance_variance_percentage == pytest.approx(40.0)
    assert analysis.accuracy == pytest.approx(85.0)


def test_zero_base_gives_zero_percentage(projection_svc):
    day = date(2024, 6, 2)
    projection_svc.create_or_update(OWNER, day, "0", "0")
    projection_svc.update_actuals(OWNER, day, "500", "200")

    variance = projection_svc.get_cash_flow_analysis(OWNER, day, day)[0].variance
    assert variance.income_variance_percentage == 0
    assert variance.expense_variance_percentage == 0
    assert variance.balance_variance_percentage == 0


def test_negative_projected_balance_uses_magnitude(projection_svc):
    day = date(2024, 6, 3)
    projection_svc.create_or_update(OWNER, day, "100", "300")
    projection_svc.update_actuals(OWNER, day, "100", "200")

    variance = projection_svc.get_cash_flow_analysis(OWNER, day, day)[0].variance
    assert variance.balance_variance == Decimal("100")
    assert variance.balance_variance_percentage == pytest.approx(50.0)


def test_accuracy_is_floored_at_zero(projection_svc):
    day = date(2024, 6, 4)
    projection_svc.create_or_update(OWNER, day, "10", "10")
    projection_svc.update_actuals(OWNER, day, "1000", "1000")
    assert projection_svc.get_cash_flow_analysis(OWNER, day, day)[0].accuracy == 0.0


def test_no_actuals_means_no_variance(projection_svc):
    day = date(2024, 6, 5)
    projection_svc.create_or_update(OWNER, day, "10", "5")
    analysis = projection_svc.get_cash_flow_analysis(OWNER, day, day)[0]
    assert analysis.variance is None
    assert analysis.accuracy is None


def test_summary(projection_svc):
    projection_svc.create_or_update(OWNER, date(2024, 7, 1), "100", "40")
    projection_svc.create_or_update(OWNER, date(2024, 7, 2), "0", "30")
    projection_svc.create_or_update(OWNER, date(2024, 7, 3), "10", "10")
    projection_svc.update_actuals(OWNER, date(2024, 7, 1), "100", "40")
    projection_svc.update_actuals(OWNER, date(2024, 7, 2), "0", "60")

    summary = projection_svc.get_cash_flow_summary(OWNER, date(2024, 7, 1), date(2024, 7, 3))
    assert summary.projection_count == 3
    assert summary.total_projected_income == Decimal("110")
    assert summary.total_projected_balance == Decimal("30")
    assert summary.total_actual_expenses == Decimal("100")
    assert summary.positive_flow_days == 1
    assert summary.negative_flow_days == 1
    assert summary.average_accuracy == pytest.approx(75.0)


def test_empty_summary_has_zero_accuracy(projection_svc):
    summary = projection_svc.get_cash_flow_summary(OWNER, date(2024, 1, 1), date(2024, 1, 31))
    assert summary.projection_count == 0
    assert summary.average_accuracy == 0.0


def test_create_or_update_validates(projection_svc):
    with pytest.raises(ValidationError) as exc_info:
        projection_svc.create_or_update(OWNER, None, "-1", "abc")
    assert len(exc_info.value.errors) == 3


def test_update_actuals_rejects_nan(projection_svc):
    with pytest.raises(ValidationError) as exc_info:
        projection_svc.update_actuals(OWNER, date(2024, 5, 1), "NaN", "100")
    assert exc_info.value.errors == ["Actual income must be a non-negative number"]
    assert projection_svc.get_by_date(OWNER, date(2024, 5, 1)) is None


def test_generate_rejects_reversed_range(projection_svc):
    with pytest.raises(ValidationError):
        projection_svc.generate_projections(OWNER, date(2024, 2, 2), date(2024, 2, 1))
