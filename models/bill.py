from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional


@dataclass
class Bill:
    id: int
    owner_id: int
    name: str
    amount: Decimal
    payee: str
    frequency: str          # 'weekly' | 'monthly' | 'quarterly' | 'yearly'
    due_date: date          # first due date; anchors the day-of-month
    next_due_date: date
    reminder_days: int = 3
    currency: str = "IDR"
    category: Optional[str] = None
    is_active: bool = True
    is_paid: bool = False
    last_paid_date: Optional[date] = None
    notes: Optional[str] = None


@dataclass
class BillStatus:
    bill: Bill
    days_until_due: int
    is_overdue: bool
    should_remind: bool
    next_occurrence: date
    estimated_monthly_amount: Decimal


@dataclass
class BillSummary:
    total_bills: int
    active_bills: int
    paid_bills: int
    overdue_bills: int
    due_soon_bills: int
    total_monthly_amount: Decimal
    total_yearly_amount: Decimal
    average_bill_amount: Decimal
