from dataclasses import dataclass
from typing import Optional


@dataclass
class Notification:
    id: int
    owner_id: int
    type: str               # 'bill_reminder' | 'bill_overdue'
    title: str
    message: str
    priority: str = "medium"
    related_id: Optional[int] = None
    related_type: Optional[str] = None
    is_read: bool = False
    created_at: str = ""
