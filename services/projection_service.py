import logging
from datetime import date
from decimal import Decimal
from database.projection_dao import ProjectionDAO
from database.recurring_dao import RecurringDAO
from database.transaction_dao import TransactionDAO
from models.projection import (
    CashFlowAnalysis, CashFlowSummary, HistoricalAverages, ProjectionRecord, Variance,
)
from services.recurrence import is_due_on
from utils.constants import HISTORY_WINDOW_DAYS
from utils.date_helpers import date_range, days_before
from utils.errors import ValidationError
from utils.money import ZERO, parse_money, quantize

logger = logging.getLogger(__name__)


def _percent(delta: Decimal, base: Decimal) -> float:
    if base == 0:
        return 0.0
    return float(delta / base * 100)


class ProjectionService:
    """Day-by-day cash-flow projections, reconciled against the ledger."""

    def __init__(self, projection_dao: ProjectionDAO, recurring_dao: RecurringDAO,
                 tx_dao: TransactionDAO):
        self._dao = projection_dao
        self._recurring_dao = recurring_dao
        self._tx_dao = tx_dao

    # ── Inputs ────────────────────────────────────────────────────────────

    def get_historical_averages(self, owner_id: int, before: date,
                                days: int = HISTORY_WINDOW_DAYS) -> HistoricalAverages:
        """Daily income/expense averages over the `days` days ending the day before `before`."""
        if days < 1:
            raise ValidationError(["History window must be at least 1 day"])
        first, last = days_before(before, days)
        income = self._tx_dao.get_totals(owner_id, "income", first, last)
        expenses = self._tx_dao.get_totals(owner_id, "expense", first, last)
        return HistoricalAverages(
            daily_income=quantize(income / days),
            daily_expenses=quantize(expenses / days),
            total_days=days,
        )

    @staticmethod
    def recurring_totals_on(definitions, d: date) -> tuple[Decimal, Decimal]:
        """(income, expense) scheduled on d. Debts and receivables do not move cash flow here."""
        income = ZERO
        expense = ZERO
        for definition in definitions:
            if not is_due_on(definition, d):
                continue
            if definition.type == "income":
                income += definition.amount
            elif definition.type == "expense":
                expense += definition.amount
        return income, expense

    # ── Projections ───────────────────────────────────────────────────────

    def create_or_update(self, owner_id: int, projection_date: date, projected_income,
                         projected_expenses, notes: str | None = None) -> ProjectionRecord:
        errors = []
        if not owner_id:
            errors.append("Owner ID is required")
        if not projection_date:
            errors.append("Projection date is required")
        income = self._coerce_amount(projected_income)
        expenses = self._coerce_amount(projected_expenses)
        if income is None or income < 0:
            errors.append("Projected income must be a non-negative number")
        if expenses is None or expenses < 0:
            errors.append("Projected expenses must be a non-negative number")
        if errors:
            raise ValidationError(errors)

        return self._dao.upsert_projected(
            owner_id, projection_date, income, expenses, income - expenses, notes
        )

    def generate_projections(self, owner_id: int, start: date, end: date,
                             include_historical: bool = True) -> list[ProjectionRecord]:
        """Project every day in [start, end] and upsert it. Existing actuals survive."""
        if end < start:
            raise ValidationError(["End date must not be before start date"])

        definitions = self._recurring_dao.get_filtered(owner_id, is_active=True)
        if include_historical:
            history = self.get_historical_averages(owner_id, start)
            base_income, base_expenses = history.daily_income, history.daily_expenses
        else:
            base_income, base_expenses = ZERO, ZERO

        records = []
        for day in date_range(start, end):
            rec_income, rec_expense = self.recurring_totals_on(definitions, day)
            records.append(self.create_or_update(
                owner_id, day, base_income + rec_income, base_expenses + rec_expense,
            ))

        logger.info("Generated %d projections for owner %s (%s to %s)",
                    len(records), owner_id, start, end)
        return records

    def get_projections(self, owner_id: int, start: date, end: date,
                        limit: int | None = None) -> list[ProjectionRecord]:
        return self._dao.get_range(owner_id, start, end, limit)

    def get_by_date(self, owner_id: int, projection_date: date) -> ProjectionRecord | None:
        return self._dao.get_by_date(owner_id, projection_date)

    # ── Actuals ───────────────────────────────────────────────────────────

    def update_actuals(self, owner_id: int, projection_date: date,
                       actual_income, actual_expenses) -> ProjectionRecord:
        """Record what actually happened on a day.

        A day nobody projected gets a record whose projected values equal the
        actuals, so later variance for it reads as zero.
        """
        income = self._coerce_amount(actual_income)
        expenses = self._coerce_amount(actual_expenses)
        errors = []
        if income is None or income < 0:
            errors.append("Actual income must be a non-negative number")
        if expenses is None or expenses < 0:
            errors.append("Actual expenses must be a non-negative number")
        if errors:
            raise ValidationError(errors)
        return self._dao.upsert_actuals(
            owner_id, projection_date, income, expenses, income - expenses
        )

    def update_actuals_from_transactions(self, owner_id: int, projection_date: date) -> ProjectionRecord:
        income = self._tx_dao.get_totals(owner_id, "income", projection_date, projection_date)
        expenses = self._tx_dao.get_totals(owner_id, "expense", projection_date, projection_date)
        return self.update_actuals(owner_id, projection_date, income, expenses)

    # ── Analysis ──────────────────────────────────────────────────────────

    def analyze(self, record: ProjectionRecord) -> CashFlowAnalysis:
        analysis = CashFlowAnalysis(
            projection_date=record.projection_date,
            projected_income=record.projected_income,
            projected_expenses=record.projected_expenses,
            projected_balance=record.projected_balance,
            actual_income=record.actual_income,
            actual_expenses=record.actual_expenses,
            actual_balance=record.actual_balance,
        )
        if not record.has_actuals:
            return analysis

        actual_balance = record.actual_balance
        if actual_balance is None:
            actual_balance = record.actual_income - record.actual_expenses

        income_delta = record.actual_income - record.projected_income
        expense_delta = record.actual_expenses - record.projected_expenses
        balance_delta = actual_balance - record.projected_balance

        income_pct = _percent(income_delta, record.projected_income)
        expense_pct = _percent(expense_delta, record.projected_expenses)
        analysis.variance = Variance(
            income_variance=income_delta,
            expense_variance=expense_delta,
            balance_variance=balance_delta,
            income_variance_percentage=income_pct,
            expense_variance_percentage=expense_pct,
            balance_variance_percentage=_percent(balance_delta, abs(record.projected_balance)),
        )
        analysis.accuracy = max(0.0, 100 - (abs(income_pct) + abs(expense_pct)) / 2)
        return analysis

    def get_cash_flow_analysis(self, owner_id: int, start: date, end: date) -> list[CashFlowAnalysis]:
        return [self.analyze(r) for r in self._dao.get_range(owner_id, start, end)]

    def get_cash_flow_summary(self, owner_id: int, start: date, end: date) -> CashFlowSummary:
        analyses = self.get_cash_flow_analysis(owner_id, start, end)

        accuracies = [a.accuracy for a in analyses if a.accuracy is not None]
        return CashFlowSummary(
            total_projected_income=sum((a.projected_income for a in analyses), ZERO),
            total_projected_expenses=sum((a.projected_expenses for a in analyses), ZERO),
            total_projected_balance=sum((a.projected_balance for a in analyses), ZERO),
            total_actual_income=sum(
                (a.actual_income for a in analyses if a.actual_income is not None), ZERO),
            total_actual_expenses=sum(
                (a.actual_expenses for a in analyses if a.actual_expenses is not None), ZERO),
            total_actual_balance=sum(
                (a.actual_balance for a in analyses if a.actual_balance is not None), ZERO),
            average_accuracy=sum(accuracies) / len(accuracies) if accuracies else 0.0,
            projection_count=len(analyses),
            positive_flow_days=sum(1 for a in analyses if a.projected_balance > 0),
            negative_flow_days=sum(1 for a in analyses if a.projected_balance < 0),
        )

    def _coerce_amount(self, amount):
        try:
            return parse_money(amount)
        except ValueError:
            return None
