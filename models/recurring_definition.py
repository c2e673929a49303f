from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional


@dataclass
class RecurringDefinition:
    id: int
    owner_id: int
    type: str               # 'income' | 'expense' | 'debt' | 'receivable'
    amount: Decimal
    description: str
    frequency: str          # 'daily' | 'weekly' | 'monthly' | 'yearly'
    start_date: date
    next_due_date: date
    interval: int = 1
    currency: str = "IDR"
    category: Optional[str] = None
    end_date: Optional[date] = None
    is_active: bool = True
    related_party: Optional[str] = None
    tags: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class DueItem:
    definition: RecurringDefinition
    days_until_due: int
    is_overdue: bool
    next_occurrence: date


@dataclass
class RecurringSummary:
    total_active: int
    total_inactive: int
    monthly_income_total: Decimal
    monthly_expense_total: Decimal
    due_soon: int
    overdue: int
