from datetime import date
from typing import Optional
from database.db_manager import DatabaseManager
from models.bill import Bill
from utils.date_helpers import format_date, parse_date
from utils.money import from_db, to_db

SORT_COLUMNS = {
    "next_due_date": "next_due_date",
    "amount": "CAST(amount AS REAL)",
    "name": "name",
    "created_at": "created_at",
}

UPDATABLE_COLUMNS = (
    "name", "amount", "currency", "due_date", "frequency", "category", "payee",
    "reminder_days", "is_active", "is_paid", "last_paid_date", "next_due_date",
    "notes",
)


def _to_column_value(field: str, value):
    if field == "amount":
        return to_db(value)
    if field in ("due_date", "last_paid_date", "next_due_date"):
        return format_date(value)
    if field in ("is_active", "is_paid"):
        return 1 if value else 0
    return value


class BillDAO:
    def __init__(self, db: DatabaseManager):
        self._db = db

    def _row_to_model(self, row) -> Bill:
        return Bill(
            id=row["id"],
            owner_id=row["owner_id"],
            name=row["name"],
            amount=from_db(row["amount"]),
            currency=row["currency"],
            due_date=parse_date(row["due_date"]),
            frequency=row["frequency"],
            category=row["category"],
            payee=row["payee"],
            reminder_days=row["reminder_days"],
            is_active=bool(row["is_active"]),
            is_paid=bool(row["is_paid"]),
            last_paid_date=parse_date(row["last_paid_date"]),
            next_due_date=parse_date(row["next_due_date"]),
            notes=row["notes"],
        )

    def get_filtered(
        self,
        owner_id: int,
        frequency: str | None = None,
        category: str | None = None,
        payee: str | None = None,
        is_active: bool | None = None,
        is_paid: bool | None = None,
        due_on_or_before: date | None = None,
        sort_field: str = "next_due_date",
        descending: bool = False,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Bill]:
        if sort_field not in SORT_COLUMNS:
            raise ValueError(f"Cannot sort by {sort_field!r}")
        sql = "SELECT * FROM bill_reminders WHERE owner_id = ?"
        params: list = [owner_id]
        if frequency:
            sql += " AND frequency = ?"
            params.append(frequency)
        if category:
            sql += " AND category = ?"
            params.append(category)
        if payee:
            sql += " AND payee = ?"
            params.append(payee)
        if is_active is not None:
            sql += " AND is_active = ?"
            params.append(1 if is_active else 0)
        if is_paid is not None:
            sql += " AND is_paid = ?"
            params.append(1 if is_paid else 0)
        if due_on_or_before is not None:
            sql += " AND next_due_date <= ?"
            params.append(format_date(due_on_or_before))

        sql += f" ORDER BY {SORT_COLUMNS[sort_field]} {'DESC' if descending else 'ASC'}, id ASC"
        if limit is not None:
            sql += " LIMIT ? OFFSET ?"
            params.extend([limit, offset])
        conn = self._db.get_connection()
        rows = conn.execute(sql, params).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get_all(self, owner_id: int) -> list[Bill]:
        return self.get_filtered(owner_id)

    def get_by_id(self, owner_id: int, bill_id: int) -> Optional[Bill]:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM bill_reminders WHERE id = ? AND owner_id = ?",
            (bill_id, owner_id),
        ).fetchone()
        return self._row_to_model(row) if row else None

    def create(self, bill: Bill) -> Bill:
        with self._db.transaction() as conn:
            cursor = conn.execute(
                """INSERT INTO bill_reminders
                   (owner_id, name, amount, currency, due_date, frequency, category,
                    payee, reminder_days, is_active, is_paid, last_paid_date,
                    next_due_date, notes)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    bill.owner_id, bill.name, to_db(bill.amount), bill.currency,
                    format_date(bill.due_date), bill.frequency, bill.category,
                    bill.payee, bill.reminder_days, 1 if bill.is_active else 0,
                    1 if bill.is_paid else 0, format_date(bill.last_paid_date),
                    format_date(bill.next_due_date), bill.notes,
                ),
            )
        return self.get_by_id(bill.owner_id, cursor.lastrowid)

    def update(self, owner_id: int, bill_id: int, changes: dict) -> Optional[Bill]:
        unknown = set(changes) - set(UPDATABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        if not changes:
            return self.get_by_id(owner_id, bill_id)
        assignments = ", ".join(f"{f} = ?" for f in changes)
        params = [_to_column_value(f, v) for f, v in changes.items()]
        with self._db.transaction() as conn:
            conn.execute(
                f"""UPDATE bill_reminders
                    SET {assignments}, updated_at = datetime('now')
                    WHERE id = ? AND owner_id = ?""",
                (*params, bill_id, owner_id),
            )
        return self.get_by_id(owner_id, bill_id)

    def delete(self, owner_id: int, bill_id: int) -> bool:
        with self._db.transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM bill_reminders WHERE id = ? AND owner_id = ?",
                (bill_id, owner_id),
            )
        return cursor.rowcount > 0
