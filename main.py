import argparse
import logging
import os
import sys

# Ensure project root is on sys.path when run directly
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from database.db_manager import DatabaseManager
from database.bill_dao import BillDAO
from database.notification_dao import NotificationDAO
from database.projection_dao import ProjectionDAO
from database.recurring_dao import RecurringDAO
from database.transaction_dao import TransactionDAO

from services.forecast_service import ForecastService
from services.health_service import FinancialHealthService
from services.projection_service import ProjectionService
from services.recurring_service import RecurringService
from services.reminder_service import ReminderService

from models.health import FinancialSnapshot
from utils.app_config import get_db_path, get_default_owner
from utils.constants import APP_NAME, DB_FILE, FORECAST_DAYS
from utils.date_helpers import format_date, parse_date, today
from utils.errors import NotFoundError, ValidationError
from utils.money import format_currency, parse_money

logger = logging.getLogger(__name__)


def _date_arg(value: str):
    parsed = parse_date(value)
    if parsed is None:
        raise argparse.ArgumentTypeError(f"not a date: {value!r}")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cashflow", description=APP_NAME)
    parser.add_argument("--db", help="SQLite database path (default: config or CASHFLOW_DB_PATH)")
    parser.add_argument("--owner", type=int, help="owner id (default: config default_owner_id)")
    parser.add_argument("--as-of", type=_date_arg, help="reference date, YYYY-MM-DD")
    parser.add_argument("-v", "--verbose", action="store_true")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("process", help="materialize due recurring transactions")

    bills = sub.add_parser("bills", help="bill status and notifications")
    bills.add_argument("--notify", action="store_true", help="create due-soon/overdue notifications")

    project = sub.add_parser("project", help="generate day-by-day projections")
    project.add_argument("start", type=_date_arg)
    project.add_argument("end", type=_date_arg)
    project.add_argument("--no-history", action="store_true")

    forecast = sub.add_parser("forecast", help="forecast with confidence")
    forecast.add_argument("--days", type=int, default=FORECAST_DAYS)

    health = sub.add_parser("health", help="financial health score")
    health.add_argument("--budget", default="0")
    health.add_argument("--spent", default="0")
    health.add_argument("--savings", default="0", help="current emergency/goal savings")
    health.add_argument("--goal-progress", type=float, default=0.0)
    health.add_argument("--investment-accounts", type=int, default=0)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    owner_id = args.owner or get_default_owner()
    if not owner_id:
        logger.error("No owner id given and no default_owner_id configured")
        return 2
    as_of = args.as_of or today()

    # ── Database ─────────────────────────────────────────────────────────────
    db = DatabaseManager(args.db or get_db_path(DB_FILE))
    db.initialize()

    # ── DAOs ─────────────────────────────────────────────────────────────────
    tx_dao = TransactionDAO(db)
    recurring_dao = RecurringDAO(db)
    bill_dao = BillDAO(db)
    notification_dao = NotificationDAO(db)
    projection_dao = ProjectionDAO(db)

    # ── Services ─────────────────────────────────────────────────────────────
    recurring_svc = RecurringService(recurring_dao, tx_dao)
    reminder_svc = ReminderService(bill_dao, notification_dao)
    projection_svc = ProjectionService(projection_dao, recurring_dao, tx_dao)
    forecast_svc = ForecastService(projection_svc, recurring_dao)
    health_svc = FinancialHealthService(recurring_svc, projection_svc, tx_dao)

    try:
        if args.command == "process":
            result = recurring_svc.process(owner_id, as_of)
            print(f"Created {result.created} transaction(s)")
            for error in result.errors:
                print(f"  ! {error}")
            return 0 if result.ok else 1

        if args.command == "bills":
            summary = reminder_svc.get_bill_summary(owner_id, as_of)
            print(f"Active bills: {summary.active_bills}/{summary.total_bills}  "
                  f"overdue: {summary.overdue_bills}  due soon: {summary.due_soon_bills}")
            print(f"Monthly: {format_currency(summary.total_monthly_amount, '')}  "
                  f"Yearly: {format_currency(summary.total_yearly_amount, '')}")
            for status in reminder_svc.get_upcoming_bills(owner_id, as_of=as_of):
                flag = "OVERDUE" if status.is_overdue else ("remind" if status.should_remind else "")
                print(f"  {format_date(status.next_occurrence)}  {status.bill.name:<24} "
                      f"{format_currency(status.bill.amount, '')} {flag}")
            if args.notify:
                result = reminder_svc.create_bill_notifications(owner_id, as_of)
                print(f"Created {result.created} notification(s)")
                return 0 if result.ok else 1
            return 0

        if args.command == "project":
            records = projection_svc.generate_projections(
                owner_id, args.start, args.end, include_historical=not args.no_history
            )
            for r in records:
                print(f"  {format_date(r.projection_date)}  in {format_currency(r.projected_income, '')}"
                      f"  out {format_currency(r.projected_expenses, '')}"
                      f"  net {format_currency(r.projected_balance, '')}")
            return 0

        if args.command == "forecast":
            for point in forecast_svc.forecast(owner_id, as_of, args.days):
                print(f"  {format_date(point.date)}  net {format_currency(point.projected_balance, '')}"
                      f"  cumulative {format_currency(point.cumulative_balance, '')}"
                      f"  confidence {point.confidence:.1f}%")
            return 0

        if args.command == "health":
            snapshot = FinancialSnapshot(
                total_budget_amount=parse_money(args.budget),
                total_budget_spent=parse_money(args.spent),
                goal_current_amount=parse_money(args.savings),
                goal_completion_percentage=args.goal_progress,
                investment_account_count=args.investment_accounts,
            )
            score = health_svc.get_health_score(owner_id, as_of, snapshot)
            print(f"Overall: {score.overall_score:.1f} ({score.risk_level} risk)")
            for name, component in score.components.items():
                print(f"  {name:<28} {component.score:6.1f}  (weight {component.weight})")
            for rec in score.recommendations:
                print(f"  - {rec}")
            return 0
    except (ValidationError, NotFoundError, ValueError) as exc:
        logger.error("%s", exc)
        return 1
    finally:
        db.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
