from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class Transaction:
    """A ledger entry. Entries created from a recurring definition keep
    recurring_id but are otherwise independent of it."""
    id: int
    owner_id: int
    type: str               # 'income' | 'expense' | 'debt' | 'receivable'
    amount: Decimal
    currency: str
    description: str
    transaction_date: date
    status: str = "active"
    category: Optional[str] = None
    recurring_id: Optional[int] = None
    related_party: Optional[str] = None
    tags: Optional[str] = None
    notes: Optional[str] = None
    created_at: str = ""
