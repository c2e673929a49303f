import sqlite3
from datetime import date
from decimal import Decimal
from typing import Optional
from database.db_manager import DatabaseManager
from models.transaction import Transaction
from utils.constants import DEFAULT_CURRENCY, ENTRY_STATUS_ACTIVE
from utils.date_helpers import format_date, parse_date
from utils.money import from_db, to_db


def insert_transaction(
    conn: sqlite3.Connection,
    owner_id: int,
    type_: str,
    amount: Decimal,
    transaction_date: date,
    description: str = "",
    currency: str = DEFAULT_CURRENCY,
    category: str | None = None,
    status: str = ENTRY_STATUS_ACTIVE,
    recurring_id: int | None = None,
    related_party: str | None = None,
    tags: str | None = None,
    notes: str | None = None,
) -> int:
    """Insert a ledger row on conn without committing. Returns the new id."""
    cursor = conn.execute(
        """INSERT INTO transactions
           (owner_id, type, amount, currency, description, category,
            transaction_date, status, recurring_id, related_party, tags, notes)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            owner_id, type_, to_db(amount), currency, description, category,
            format_date(transaction_date), status, recurring_id,
            related_party, tags, notes,
        ),
    )
    return cursor.lastrowid


class TransactionDAO:
    def __init__(self, db: DatabaseManager):
        self._db = db

    def _row_to_model(self, row) -> Transaction:
        return Transaction(
            id=row["id"],
            owner_id=row["owner_id"],
            type=row["type"],
            amount=from_db(row["amount"]),
            currency=row["currency"],
            description=row["description"],
            transaction_date=parse_date(row["transaction_date"]),
            status=row["status"],
            category=row["category"],
            recurring_id=row["recurring_id"],
            related_party=row["related_party"],
            tags=row["tags"],
            notes=row["notes"],
            created_at=row["created_at"],
        )

    def get_by_id(self, owner_id: int, tx_id: int) -> Optional[Transaction]:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM transactions WHERE id = ? AND owner_id = ?",
            (tx_id, owner_id),
        ).fetchone()
        return self._row_to_model(row) if row else None

    def get_by_recurring(self, owner_id: int, recurring_id: int) -> list[Transaction]:
        conn = self._db.get_connection()
        rows = conn.execute(
            """SELECT * FROM transactions
               WHERE owner_id = ? AND recurring_id = ?
               ORDER BY transaction_date ASC, id ASC""",
            (owner_id, recurring_id),
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get_totals(
        self,
        owner_id: int,
        type_: str,
        start: date | None,
        end: date,
        status: str = ENTRY_STATUS_ACTIVE,
    ) -> Decimal:
        """Sum of amounts of one kind over [start, end] inclusive; no start means all history.

        Summed in Python so the TEXT amounts never pass through REAL.
        """
        sql = """SELECT amount FROM transactions
                 WHERE owner_id = ? AND type = ? AND status = ? AND transaction_date <= ?"""
        params: list = [owner_id, type_, status, format_date(end)]
        if start is not None:
            sql += " AND transaction_date >= ?"
            params.append(format_date(start))
        conn = self._db.get_connection()
        rows = conn.execute(sql, params).fetchall()
        return sum((from_db(r["amount"]) for r in rows), Decimal("0"))

    def create(
        self,
        owner_id: int,
        type_: str,
        amount: Decimal,
        transaction_date: date,
        description: str = "",
        currency: str = DEFAULT_CURRENCY,
        category: str | None = None,
        status: str = ENTRY_STATUS_ACTIVE,
        recurring_id: int | None = None,
        related_party: str | None = None,
        tags: str | None = None,
        notes: str | None = None,
    ) -> Transaction:
        with self._db.transaction() as conn:
            tx_id = insert_transaction(
                conn, owner_id, type_, amount, transaction_date,
                description=description, currency=currency, category=category,
                status=status, recurring_id=recurring_id,
                related_party=related_party, tags=tags, notes=notes,
            )
        return self.get_by_id(owner_id, tx_id)
