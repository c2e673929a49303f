import logging
from dataclasses import replace
from datetime import date, timedelta
from decimal import Decimal
from database.bill_dao import BillDAO
from database.notification_dao import NotificationDAO
from models.batch import BatchFailure, BatchResult
from models.bill import Bill, BillStatus, BillSummary
from services.recurrence import advance, days_between
from utils.constants import (
    BILL_FREQUENCIES, BILL_MONTHLY_FACTORS, DEFAULT_CURRENCY,
    DEFAULT_REMINDER_DAYS, DUE_SOON_DAYS, UPCOMING_DAYS,
)
from utils.date_helpers import today
from utils.errors import NotFoundError, ValidationError
from utils.money import parse_money

logger = logging.getLogger(__name__)


def monthly_equivalent(amount: Decimal, frequency: str) -> Decimal:
    """Normalize a bill amount to a monthly figure (weekly ×4.33, quarterly ÷3, yearly ÷12)."""
    if frequency not in BILL_MONTHLY_FACTORS:
        return Decimal("0")
    multiplier, divisor = BILL_MONTHLY_FACTORS[frequency]
    return amount * multiplier / divisor


def _day_label(days: int) -> str:
    if days == 0:
        return "today"
    return f"in {days} day{'s' if days > 1 else ''}"


class ReminderService:
    """Tracks bills: due-soon/overdue status, payments and notifications."""

    def __init__(self, bill_dao: BillDAO, notification_dao: NotificationDAO):
        self._dao = bill_dao
        self._notifications = notification_dao

    # ── CRUD ──────────────────────────────────────────────────────────────

    def get_by_id(self, owner_id: int, bill_id: int) -> Bill:
        bill = self._dao.get_by_id(owner_id, bill_id)
        if bill is None:
            raise NotFoundError("Bill reminder", bill_id)
        return bill

    def get_filtered(self, owner_id: int, due_soon: bool = False, overdue: bool = False,
                     as_of: date | None = None, **filters) -> list[Bill]:
        """Filters: frequency, category, payee, is_active, is_paid, sort_field, limit..."""
        ref = as_of or today()
        if due_soon:
            filters["due_on_or_before"] = ref + timedelta(days=DUE_SOON_DAYS)
        if overdue:
            filters["due_on_or_before"] = ref
            filters["is_paid"] = False
        return self._dao.get_filtered(owner_id, **filters)

    def create(
        self,
        owner_id: int,
        name: str,
        amount,
        payee: str,
        frequency: str,
        due_date: date,
        next_due_date: date | None = None,
        reminder_days: int = DEFAULT_REMINDER_DAYS,
        currency: str = DEFAULT_CURRENCY,
        category: str | None = None,
        is_active: bool = True,
        is_paid: bool = False,
        notes: str | None = None,
    ) -> Bill:
        bill = Bill(
            id=0,
            owner_id=owner_id,
            name=name,
            amount=self._coerce_amount(amount),
            payee=payee,
            frequency=frequency,
            due_date=due_date,
            next_due_date=next_due_date or due_date,
            reminder_days=reminder_days,
            currency=currency,
            category=category,
            is_active=is_active,
            is_paid=is_paid,
            notes=notes,
        )
        self._validate(bill)
        return self._dao.create(bill)

    def update(self, owner_id: int, bill_id: int, **changes) -> Bill:
        current = self.get_by_id(owner_id, bill_id)
        if "amount" in changes:
            changes["amount"] = self._coerce_amount(changes["amount"])
        try:
            merged = replace(current, **changes)
        except TypeError as exc:
            raise ValidationError([str(exc)]) from exc
        self._validate(merged)
        return self._dao.update(owner_id, bill_id, changes)

    def delete(self, owner_id: int, bill_id: int):
        if not self._dao.delete(owner_id, bill_id):
            raise NotFoundError("Bill reminder", bill_id)

    def toggle_active(self, owner_id: int, bill_id: int) -> Bill:
        bill = self.get_by_id(owner_id, bill_id)
        return self._dao.update(owner_id, bill_id, {"is_active": not bill.is_active})

    # ── Payment ───────────────────────────────────────────────────────────

    def mark_as_paid(self, owner_id: int, bill_id: int, paid_date: date | None = None) -> Bill:
        """Record a payment and roll next_due_date forward one period."""
        bill = self.get_by_id(owner_id, bill_id)
        next_due = advance(bill.next_due_date, bill.frequency, 1, bill.due_date.day)
        logger.info("Bill %s paid; next due %s", bill_id, next_due)
        return self._dao.update(owner_id, bill_id, {
            "is_paid": True,
            "last_paid_date": paid_date or today(),
            "next_due_date": next_due,
        })

    def mark_as_unpaid(self, owner_id: int, bill_id: int) -> Bill:
        """Undo the paid flag. next_due_date stays where mark_as_paid left it."""
        self.get_by_id(owner_id, bill_id)
        return self._dao.update(owner_id, bill_id, {"is_paid": False, "last_paid_date": None})

    # ── Status ────────────────────────────────────────────────────────────

    def get_status(self, bill: Bill, as_of: date | None = None) -> BillStatus:
        ref = as_of or today()
        days_until = days_between(ref, bill.next_due_date)
        return BillStatus(
            bill=bill,
            days_until_due=days_until,
            is_overdue=days_until < 0 and not bill.is_paid,
            should_remind=0 <= days_until <= bill.reminder_days and not bill.is_paid,
            next_occurrence=bill.next_due_date,
            estimated_monthly_amount=monthly_equivalent(bill.amount, bill.frequency),
        )

    def get_bills_due_soon(self, owner_id: int, as_of: date | None = None) -> list[BillStatus]:
        bills = self.get_filtered(owner_id, due_soon=True, as_of=as_of, is_active=True, is_paid=False)
        statuses = [self.get_status(b, as_of) for b in bills]
        return [s for s in statuses if s.should_remind]

    def get_overdue_bills(self, owner_id: int, as_of: date | None = None) -> list[BillStatus]:
        bills = self.get_filtered(owner_id, overdue=True, as_of=as_of, is_active=True)
        statuses = [self.get_status(b, as_of) for b in bills]
        return [s for s in statuses if s.is_overdue]

    def get_upcoming_bills(self, owner_id: int, days: int = UPCOMING_DAYS,
                           as_of: date | None = None) -> list[BillStatus]:
        ref = as_of or today()
        bills = self._dao.get_filtered(
            owner_id, is_active=True, due_on_or_before=ref + timedelta(days=days)
        )
        return [self.get_status(b, ref) for b in bills]

    def get_bill_summary(self, owner_id: int, as_of: date | None = None) -> BillSummary:
        ref = as_of or today()
        soon = ref + timedelta(days=DUE_SOON_DAYS)
        bills = self._dao.get_all(owner_id)
        active = [b for b in bills if b.is_active]

        total_monthly = sum(
            (monthly_equivalent(b.amount, b.frequency) for b in active), Decimal("0")
        )
        unpaid_active = [b for b in active if not b.is_paid]

        return BillSummary(
            total_bills=len(bills),
            active_bills=len(active),
            paid_bills=sum(1 for b in bills if b.is_paid),
            overdue_bills=sum(1 for b in unpaid_active if b.next_due_date < ref),
            due_soon_bills=sum(1 for b in unpaid_active if ref <= b.next_due_date <= soon),
            total_monthly_amount=total_monthly,
            total_yearly_amount=total_monthly * 12,
            average_bill_amount=total_monthly / len(active) if active else Decimal("0"),
        )

    # ── Notifications ─────────────────────────────────────────────────────

    def create_bill_notifications(self, owner_id: int, as_of: date | None = None) -> BatchResult:
        """One notification per due-soon and per overdue bill; failures are collected."""
        result = BatchResult()

        for status in self.get_bills_due_soon(owner_id, as_of):
            bill, days = status.bill, status.days_until_due
            try:
                self._notifications.create(
                    owner_id=owner_id,
                    type_="bill_reminder",
                    title="Bill Due Today" if days == 0 else f"Bill Due {_day_label(days)}",
                    message=(
                        f"{bill.name} payment of {bill.amount} {bill.currency} is due "
                        f"{_day_label(days)} to {bill.payee}"
                    ),
                    priority="high" if days <= 1 else "medium",
                    related_id=bill.id,
                    related_type="bill_reminder",
                )
                result.created += 1
            except Exception as exc:
                message = f"Failed to create notification for bill {bill.id}: {exc}"
                logger.warning(message)
                result.failures.append(BatchFailure(item_id=bill.id, message=message))

        for status in self.get_overdue_bills(owner_id, as_of):
            bill = status.bill
            days_past = abs(status.days_until_due)
            try:
                self._notifications.create(
                    owner_id=owner_id,
                    type_="bill_overdue",
                    title=f"Overdue Bill - {bill.name}",
                    message=(
                        f"{bill.name} payment of {bill.amount} {bill.currency} is "
                        f"{days_past} day{'s' if days_past > 1 else ''} overdue. "
                        f"Please pay {bill.payee} as soon as possible."
                    ),
                    priority="high",
                    related_id=bill.id,
                    related_type="bill_reminder",
                )
                result.created += 1
            except Exception as exc:
                message = f"Failed to create overdue notification for bill {bill.id}: {exc}"
                logger.warning(message)
                result.failures.append(BatchFailure(item_id=bill.id, message=message))

        return result

    # ── Internals ─────────────────────────────────────────────────────────

    def _coerce_amount(self, amount):
        try:
            return parse_money(amount)
        except ValueError:
            return None

    def _validate(self, bill: Bill):
        errors = []
        if not bill.name or not bill.name.strip():
            errors.append("Bill name is required")
        if bill.amount is None or bill.amount <= 0:
            errors.append("Bill amount must be a positive number")
        if bill.frequency not in BILL_FREQUENCIES:
            errors.append("Frequency must be one of: " + ", ".join(BILL_FREQUENCIES))
        if not bill.payee or not bill.payee.strip():
            errors.append("Payee is required")
        if not bill.due_date:
            errors.append("Due date is required")
        if not bill.next_due_date:
            errors.append("Next due date is required")
        if not bill.owner_id:
            errors.append("Owner ID is required")
        if bill.reminder_days is None or bill.reminder_days < 0:
            errors.append("Reminder days cannot be negative")
        if errors:
            raise ValidationError(errors)
