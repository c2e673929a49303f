from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional


@dataclass
class ProjectionRecord:
    id: int
    owner_id: int
    projection_date: date
    projected_income: Decimal
    projected_expenses: Decimal
    projected_balance: Decimal
    actual_income: Optional[Decimal] = None
    actual_expenses: Optional[Decimal] = None
    actual_balance: Optional[Decimal] = None
    notes: Optional[str] = None

    @property
    def has_actuals(self) -> bool:
        return self.actual_income is not None and self.actual_expenses is not None


@dataclass
class Variance:
    income_variance: Decimal
    expense_variance: Decimal
    balance_variance: Decimal
    income_variance_percentage: float
    expense_variance_percentage: float
    balance_variance_percentage: float


@dataclass
class CashFlowAnalysis:
    projection_date: date
    projected_income: Decimal
    projected_expenses: Decimal
    projected_balance: Decimal
    actual_income: Optional[Decimal] = None
    actual_expenses: Optional[Decimal] = None
    actual_balance: Optional[Decimal] = None
    variance: Optional[Variance] = None
    accuracy: Optional[float] = None


@dataclass
class CashFlowSummary:
    total_projected_income: Decimal
    total_projected_expenses: Decimal
    total_projected_balance: Decimal
    total_actual_income: Decimal
    total_actual_expenses: Decimal
    total_actual_balance: Decimal
    average_accuracy: float
    projection_count: int
    positive_flow_days: int
    negative_flow_days: int


@dataclass
class HistoricalAverages:
    daily_income: Decimal
    daily_expenses: Decimal
    total_days: int


@dataclass
class ForecastSources:
    recurring_income: Decimal
    recurring_expenses: Decimal
    historical_average: Decimal


@dataclass
class ForecastPoint:
    date: date
    projected_income: Decimal
    projected_expenses: Decimal
    projected_balance: Decimal
    cumulative_balance: Decimal
    confidence: float
    sources: ForecastSources
