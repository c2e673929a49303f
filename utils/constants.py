from decimal import Decimal

APP_NAME = "Cashflow Planner"
DB_FILE = "cashflow.db"
DATE_FORMAT = "%Y-%m-%d"

DEFAULT_CURRENCY = "IDR"
DEFAULT_REMINDER_DAYS = 3
DUE_SOON_DAYS = 7
UPCOMING_DAYS = 30
HISTORY_WINDOW_DAYS = 90
FORECAST_DAYS = 30
HEALTH_PERIOD_DAYS = 30
AVG_DAYS_PER_MONTH = Decimal("30.44")

ENTRY_KINDS = ("income", "expense", "debt", "receivable")
ENTRY_STATUS_ACTIVE = "active"

RECURRING_FREQUENCIES = ("daily", "weekly", "monthly", "yearly")
BILL_FREQUENCIES = ("weekly", "monthly", "quarterly", "yearly")

# Monthly-equivalent factors. 4.33 is average weeks per month; keep as-is.
BILL_MONTHLY_FACTORS = {
    "weekly": (Decimal("4.33"), Decimal(1)),
    "monthly": (Decimal(1), Decimal(1)),
    "quarterly": (Decimal(1), Decimal(3)),
    "yearly": (Decimal(1), Decimal(12)),
}
RECURRING_MONTHLY_FACTORS = {
    "daily": (Decimal(30), Decimal(1)),
    "weekly": (Decimal("4.33"), Decimal(1)),
    "monthly": (Decimal(1), Decimal(1)),
    "yearly": (Decimal(1), Decimal(12)),
}

MIN_BASE_CONFIDENCE = 50.0
MAX_BASE_CONFIDENCE = 95.0
CONFIDENCE_DECAY = 0.3
MIN_TIME_DECAY = 0.5

# Financial health weights
HEALTH_WEIGHTS = {
    "savings_rate": 0.2,
    "debt_to_income": 0.2,
    "emergency_fund": 0.15,
    "budget_compliance": 0.15,
    "goal_progress": 0.1,
    "investment_diversification": 0.1,
    "cash_flow_stability": 0.1,
}
LOW_RISK_THRESHOLD = 70
MEDIUM_RISK_THRESHOLD = 40
