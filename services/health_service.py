import logging
from datetime import date, timedelta
from decimal import Decimal
from database.transaction_dao import TransactionDAO
from models.health import FinancialPosition, FinancialSnapshot, HealthComponent, HealthScore
from services.projection_service import ProjectionService
from services.recurring_service import RecurringService
from utils.constants import (
    AVG_DAYS_PER_MONTH, HEALTH_PERIOD_DAYS, HEALTH_WEIGHTS,
    LOW_RISK_THRESHOLD, MEDIUM_RISK_THRESHOLD,
)
from utils.date_helpers import today

logger = logging.getLogger(__name__)

TREND_SCORES = {"positive": 100.0, "stable": 70.0, "negative": 30.0}


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return min(high, max(low, value))


def calculate_health_score(position: FinancialPosition) -> HealthScore:
    """Weighted 0-100 score over seven components, with a risk tier and advice."""
    raw = {
        # 20% savings rate scores 100
        "savings_rate": (_clamp(position.savings_rate * 5), position.savings_rate),
        # 40% DTI scores 0
        "debt_to_income": (
            max(0.0, 100 - position.debt_to_income_ratio * 2.5), position.debt_to_income_ratio),
        # six months scores 100
        "emergency_fund": (
            min(100.0, position.emergency_fund_months * 16.67), position.emergency_fund_months),
        "budget_compliance": (
            max(0.0, 100 - abs(position.budget_variance) * 2), position.budget_variance),
        "goal_progress": (position.goal_completion_percentage, position.goal_completion_percentage),
        "investment_diversification": (
            min(100.0, position.investment_account_count * 25.0), position.investment_account_count),
        "cash_flow_stability": (
            TREND_SCORES.get(position.cash_flow_trend, TREND_SCORES["stable"]),
            position.projected_cash_flow),
    }
    components = {
        name: HealthComponent(score=score, weight=HEALTH_WEIGHTS[name], value=value)
        for name, (score, value) in raw.items()
    }
    overall = sum(c.score * c.weight for c in components.values())

    recommendations = []
    if components["savings_rate"].score < 50:
        recommendations.append("Increase your savings rate to at least 10% of income")
    if components["debt_to_income"].score < 70:
        recommendations.append("Work on reducing your debt-to-income ratio")
    if components["emergency_fund"].score < 50:
        recommendations.append("Build an emergency fund covering 3-6 months of expenses")
    if components["budget_compliance"].score < 70:
        recommendations.append("Improve budget tracking and stick to spending limits")
    if components["goal_progress"].score < 50:
        recommendations.append("Set up automatic contributions to your financial goals")
    if components["investment_diversification"].score < 50:
        recommendations.append("Diversify your investment portfolio across different accounts")

    if overall >= LOW_RISK_THRESHOLD:
        risk = "low"
    elif overall >= MEDIUM_RISK_THRESHOLD:
        risk = "medium"
    else:
        risk = "high"

    return HealthScore(
        overall_score=overall,
        components=components,
        risk_level=risk,
        recommendations=recommendations,
    )


def _ratio(numerator: Decimal, denominator: Decimal) -> float:
    if denominator <= 0:
        return 0.0
    return float(numerator / denominator)


class FinancialHealthService:
    """Builds a FinancialPosition from the ledger, recurring definitions and projections."""

    def __init__(self, recurring_svc: RecurringService, projection_svc: ProjectionService,
                 tx_dao: TransactionDAO):
        self._recurring_svc = recurring_svc
        self._projection_svc = projection_svc
        self._tx_dao = tx_dao

    def build_position(self, owner_id: int, as_of: date | None = None,
                       snapshot: FinancialSnapshot | None = None) -> FinancialPosition:
        ref = as_of or today()
        snap = snapshot or FinancialSnapshot()

        period_start = ref - timedelta(days=HEALTH_PERIOD_DAYS - 1)
        months_in_period = Decimal(HEALTH_PERIOD_DAYS) / AVG_DAYS_PER_MONTH
        ledger_income = self._tx_dao.get_totals(owner_id, "income", period_start, ref)
        ledger_expenses = self._tx_dao.get_totals(owner_id, "expense", period_start, ref)
        debts = self._tx_dao.get_totals(owner_id, "debt", None, ref)

        summary = self._recurring_svc.get_summary(owner_id, ref)
        monthly_income = summary.monthly_income_total + ledger_income / months_in_period
        monthly_expenses = summary.monthly_expense_total + ledger_expenses / months_in_period

        projected = self._projection_svc.get_projections(
            owner_id, ref + timedelta(days=1), ref + timedelta(days=HEALTH_PERIOD_DAYS)
        )
        if projected:
            projected_cash_flow = sum((p.projected_balance for p in projected), Decimal("0"))
        else:
            # nothing projected yet: fall back to the recurring monthly net
            projected_cash_flow = summary.monthly_income_total - summary.monthly_expense_total

        if projected_cash_flow > monthly_income * Decimal("0.1"):
            trend = "positive"
        elif projected_cash_flow < -monthly_income * Decimal("0.05"):
            trend = "negative"
        else:
            trend = "stable"

        position = FinancialPosition(
            monthly_income=float(monthly_income),
            monthly_expenses=float(monthly_expenses),
            savings_rate=_ratio(monthly_income - monthly_expenses, monthly_income) * 100,
            debt_to_income_ratio=_ratio(debts, monthly_income * 12) * 100,
            emergency_fund_months=_ratio(snap.goal_current_amount, monthly_expenses),
            budget_variance=_ratio(
                snap.total_budget_amount - snap.total_budget_spent, snap.total_budget_amount
            ) * 100,
            goal_completion_percentage=snap.goal_completion_percentage,
            investment_account_count=snap.investment_account_count,
            projected_cash_flow=float(projected_cash_flow),
            cash_flow_trend=trend,
        )
        logger.debug("Financial position for owner %s: %s", owner_id, position)
        return position

    def get_health_score(self, owner_id: int, as_of: date | None = None,
                         snapshot: FinancialSnapshot | None = None) -> HealthScore:
        return calculate_health_score(self.build_position(owner_id, as_of, snapshot))
