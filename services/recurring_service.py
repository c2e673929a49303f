import logging
import threading
from dataclasses import replace
from datetime import date, timedelta
from decimal import Decimal
from database.recurring_dao import RecurringDAO
from database.transaction_dao import TransactionDAO
from models.batch import BatchFailure, BatchResult
from models.recurring_definition import DueItem, RecurringDefinition, RecurringSummary
from services.recurrence import advance, days_between
from utils.constants import (
    DEFAULT_CURRENCY, DUE_SOON_DAYS, ENTRY_KINDS, RECURRING_FREQUENCIES,
    RECURRING_MONTHLY_FACTORS, UPCOMING_DAYS,
)
from utils.date_helpers import today
from utils.errors import NotFoundError, ValidationError
from utils.money import parse_money

logger = logging.getLogger(__name__)


class RecurringService:
    def __init__(self, recurring_dao: RecurringDAO, tx_dao: TransactionDAO):
        self._dao = recurring_dao
        self._tx_dao = tx_dao
        self._owner_locks: dict[int, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # ── CRUD ──────────────────────────────────────────────────────────────

    def get_by_id(self, owner_id: int, rule_id: int) -> RecurringDefinition:
        definition = self._dao.get_by_id(owner_id, rule_id)
        if definition is None:
            raise NotFoundError("Recurring transaction", rule_id)
        return definition

    def get_filtered(self, owner_id: int, due_soon: bool = False, as_of: date | None = None,
                     sort_field: str = "next_due_date", descending: bool = False,
                     limit: int | None = 50, offset: int = 0, **filters) -> list[RecurringDefinition]:
        """Filters: type_, frequency, category, is_active. due_soon keeps the next 7 days."""
        if due_soon:
            filters["due_on_or_before"] = (as_of or today()) + timedelta(days=DUE_SOON_DAYS)
        return self._dao.get_filtered(
            owner_id, sort_field=sort_field, descending=descending,
            limit=limit, offset=offset, **filters,
        )

    def get_count(self, owner_id: int, due_soon: bool = False, as_of: date | None = None,
                  **filters) -> int:
        if due_soon:
            filters["due_on_or_before"] = (as_of or today()) + timedelta(days=DUE_SOON_DAYS)
        return self._dao.count(owner_id, **filters)

    def create(
        self,
        owner_id: int,
        type_: str,
        amount,
        description: str,
        frequency: str,
        start_date: date,
        interval: int = 1,
        next_due_date: date | None = None,
        end_date: date | None = None,
        currency: str = DEFAULT_CURRENCY,
        category: str | None = None,
        is_active: bool = True,
        related_party: str | None = None,
        tags: str | None = None,
        notes: str | None = None,
    ) -> RecurringDefinition:
        definition = RecurringDefinition(
            id=0,
            owner_id=owner_id,
            type=type_,
            amount=self._coerce_amount(amount),
            description=description,
            frequency=frequency,
            start_date=start_date,
            next_due_date=next_due_date or start_date,
            interval=interval,
            currency=currency,
            category=category,
            end_date=end_date,
            is_active=is_active,
            related_party=related_party,
            tags=tags,
            notes=notes,
        )
        self._validate(definition)
        created = self._dao.create(definition)
        logger.info("Created recurring transaction %s for owner %s", created.id, owner_id)
        return created

    def update(self, owner_id: int, rule_id: int, **changes) -> RecurringDefinition:
        """Apply a partial change set; the merged definition is validated as a whole."""
        current = self.get_by_id(owner_id, rule_id)
        if "amount" in changes:
            changes["amount"] = self._coerce_amount(changes["amount"])
        try:
            merged = replace(current, **changes)
        except TypeError as exc:
            raise ValidationError([str(exc)]) from exc
        self._validate(merged, previous=current)
        return self._dao.update(owner_id, rule_id, changes)

    def delete(self, owner_id: int, rule_id: int):
        if not self._dao.delete(owner_id, rule_id):
            raise NotFoundError("Recurring transaction", rule_id)

    def toggle_active(self, owner_id: int, rule_id: int) -> RecurringDefinition:
        """Pause or resume a definition."""
        definition = self.get_by_id(owner_id, rule_id)
        self._dao.set_active(owner_id, rule_id, not definition.is_active)
        return self.get_by_id(owner_id, rule_id)

    # ── Scheduling ────────────────────────────────────────────────────────

    def get_due(self, owner_id: int, as_of: date | None = None, days_ahead: int = 0) -> list[DueItem]:
        """Active definitions due on or before as_of + days_ahead, earliest first."""
        ref = as_of or today()
        cutoff = ref + timedelta(days=days_ahead)
        due = self._dao.get_filtered(owner_id, is_active=True, due_on_or_before=cutoff)
        result = []
        for definition in due:
            days_until = days_between(ref, definition.next_due_date)
            result.append(DueItem(
                definition=definition,
                days_until_due=days_until,
                is_overdue=days_until < 0,
                next_occurrence=definition.next_due_date,
            ))
        return result

    def get_upcoming(self, owner_id: int, days: int = UPCOMING_DAYS, as_of: date | None = None) -> list[DueItem]:
        return self.get_due(owner_id, as_of=as_of, days_ahead=days)

    def process(self, owner_id: int, as_of: date | None = None) -> BatchResult:
        """Materialize every due definition once and advance it.

        Each definition is its own unit: the entry insert and the advance are
        committed together, and a failure is recorded without stopping the
        rest of the batch.
        """
        result = BatchResult()
        with self._lock_for(owner_id):
            for item in self.get_due(owner_id, as_of=as_of):
                definition = item.definition
                try:
                    new_next_due, still_active = self._next_state(definition)
                    self._dao.materialize(definition, new_next_due, still_active)
                    result.created += 1
                    if not still_active:
                        logger.info(
                            "Recurring transaction %s reached its end date and was deactivated",
                            definition.id,
                        )
                except Exception as exc:
                    message = f"Failed to process recurring transaction {definition.id}: {exc}"
                    logger.warning(message)
                    result.failures.append(BatchFailure(item_id=definition.id, message=message))

        logger.info(
            "Processed recurring transactions for owner %s: %d created, %d failed",
            owner_id, result.created, len(result.failures),
        )
        return result

    def skip_next(self, owner_id: int, rule_id: int) -> RecurringDefinition:
        """Advance past the next occurrence without creating an entry."""
        with self._lock_for(owner_id):
            definition = self.get_by_id(owner_id, rule_id)
            new_next_due, still_active = self._next_state(definition)
            self._dao.advance_next_due(definition, new_next_due, still_active)
        logger.info("Skipped %s for recurring transaction %s", definition.next_due_date, rule_id)
        return self.get_by_id(owner_id, rule_id)

    def get_summary(self, owner_id: int, as_of: date | None = None) -> RecurringSummary:
        ref = as_of or today()
        soon = ref + timedelta(days=DUE_SOON_DAYS)
        everything = self._dao.get_filtered(owner_id)
        active = [d for d in everything if d.is_active]

        income = Decimal("0")
        expense = Decimal("0")
        for definition in active:
            if definition.type == "income":
                income += self.monthly_equivalent(definition)
            elif definition.type == "expense":
                expense += self.monthly_equivalent(definition)

        return RecurringSummary(
            total_active=len(active),
            total_inactive=len(everything) - len(active),
            monthly_income_total=income,
            monthly_expense_total=expense,
            due_soon=sum(1 for d in active if ref <= d.next_due_date <= soon),
            overdue=sum(1 for d in active if d.next_due_date < ref),
        )

    @staticmethod
    def monthly_equivalent(definition: RecurringDefinition) -> Decimal:
        multiplier, divisor = RECURRING_MONTHLY_FACTORS[definition.frequency]
        return definition.amount * multiplier / divisor / (definition.interval or 1)

    # ── Internals ─────────────────────────────────────────────────────────

    def _next_state(self, definition: RecurringDefinition) -> tuple[date, bool]:
        new_next_due = advance(
            definition.next_due_date, definition.frequency,
            definition.interval or 1, definition.start_date.day,
        )
        still_active = not (definition.end_date and new_next_due > definition.end_date)
        return new_next_due, still_active

    def _lock_for(self, owner_id: int) -> threading.Lock:
        with self._locks_guard:
            return self._owner_locks.setdefault(owner_id, threading.Lock())

    def _coerce_amount(self, amount):
        try:
            return parse_money(amount)
        except ValueError:
            return None

    def _validate(self, d: RecurringDefinition, previous: RecurringDefinition | None = None):
        errors = []
        if d.amount is None or d.amount <= 0:
            errors.append("Amount must be a positive number")
        if d.type not in ENTRY_KINDS:
            errors.append("Type must be one of: " + ", ".join(ENTRY_KINDS))
        if d.frequency not in RECURRING_FREQUENCIES:
            errors.append("Frequency must be one of: " + ", ".join(RECURRING_FREQUENCIES))
        if not d.description or not d.description.strip():
            errors.append("Description is required")
        if not d.start_date:
            errors.append("Start date is required")
        if not d.next_due_date:
            errors.append("Next due date is required")
        if not d.owner_id:
            errors.append("Owner ID is required")
        if d.interval is None or d.interval < 1:
            errors.append("Interval must be at least 1")
        if d.end_date and d.start_date and d.end_date <= d.start_date:
            errors.append("End date must be after start date")
        if d.next_due_date and d.start_date and d.next_due_date < d.start_date:
            errors.append("Next due date cannot be before start date")
        if previous and d.next_due_date and d.next_due_date < previous.next_due_date:
            errors.append("Next due date cannot move backwards")
        if errors:
            raise ValidationError(errors)
