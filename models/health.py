from dataclasses import dataclass, field
from decimal import Decimal


@dataclass
class FinancialSnapshot:
    """Inputs owned by collaborators outside this package (budgets, goals,
    investments). Callers fill it from their own stores."""
    total_budget_amount: Decimal = Decimal("0")
    total_budget_spent: Decimal = Decimal("0")
    goal_current_amount: Decimal = Decimal("0")
    goal_completion_percentage: float = 0.0
    investment_account_count: int = 0


@dataclass
class FinancialPosition:
    monthly_income: float
    monthly_expenses: float
    savings_rate: float
    debt_to_income_ratio: float
    emergency_fund_months: float
    budget_variance: float
    goal_completion_percentage: float
    investment_account_count: int
    projected_cash_flow: float
    cash_flow_trend: str    # 'positive' | 'negative' | 'stable'


@dataclass
class HealthComponent:
    score: float
    weight: float
    value: float


@dataclass
class HealthScore:
    overall_score: float
    components: dict[str, HealthComponent]
    risk_level: str         # 'low' | 'medium' | 'high'
    recommendations: list[str] = field(default_factory=list)
