from datetime import date
from typing import Optional
from database.db_manager import DatabaseManager
from database.transaction_dao import insert_transaction
from models.recurring_definition import RecurringDefinition
from utils.constants import ENTRY_STATUS_ACTIVE
from utils.date_helpers import format_date, parse_date
from utils.errors import ConcurrentModificationError
from utils.money import from_db, to_db

SORT_COLUMNS = {
    "next_due_date": "next_due_date",
    "amount": "CAST(amount AS REAL)",
    "description": "description",
    "created_at": "created_at",
}

# Columns a caller may change through update(); maps model field -> column.
UPDATABLE_COLUMNS = {
    "type": "type",
    "amount": "amount",
    "currency": "currency",
    "description": "description",
    "category": "category",
    "frequency": "frequency",
    "interval": "interval_value",
    "start_date": "start_date",
    "end_date": "end_date",
    "next_due_date": "next_due_date",
    "is_active": "is_active",
    "related_party": "related_party",
    "tags": "tags",
    "notes": "notes",
}


def _to_column_value(field: str, value):
    if field == "amount":
        return to_db(value)
    if field in ("start_date", "end_date", "next_due_date"):
        return format_date(value)
    if field == "is_active":
        return 1 if value else 0
    return value


class RecurringDAO:
    def __init__(self, db: DatabaseManager):
        self._db = db

    def _row_to_model(self, row) -> RecurringDefinition:
        return RecurringDefinition(
            id=row["id"],
            owner_id=row["owner_id"],
            type=row["type"],
            amount=from_db(row["amount"]),
            currency=row["currency"],
            description=row["description"],
            category=row["category"],
            frequency=row["frequency"],
            interval=row["interval_value"],
            start_date=parse_date(row["start_date"]),
            end_date=parse_date(row["end_date"]),
            next_due_date=parse_date(row["next_due_date"]),
            is_active=bool(row["is_active"]),
            related_party=row["related_party"],
            tags=row["tags"],
            notes=row["notes"],
        )

    def _where(
        self,
        owner_id: int,
        type_: str | None = None,
        frequency: str | None = None,
        category: str | None = None,
        is_active: bool | None = None,
        due_on_or_before: date | None = None,
    ) -> tuple[str, list]:
        sql = " WHERE owner_id = ?"
        params: list = [owner_id]
        if type_:
            sql += " AND type = ?"
            params.append(type_)
        if frequency:
            sql += " AND frequency = ?"
            params.append(frequency)
        if category:
            sql += " AND category = ?"
            params.append(category)
        if is_active is not None:
            sql += " AND is_active = ?"
            params.append(1 if is_active else 0)
        if due_on_or_before is not None:
            sql += " AND next_due_date <= ?"
            params.append(format_date(due_on_or_before))
        return sql, params

    def get_filtered(
        self,
        owner_id: int,
        type_: str | None = None,
        frequency: str | None = None,
        category: str | None = None,
        is_active: bool | None = None,
        due_on_or_before: date | None = None,
        sort_field: str = "next_due_date",
        descending: bool = False,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[RecurringDefinition]:
        if sort_field not in SORT_COLUMNS:
            raise ValueError(f"Cannot sort by {sort_field!r}")
        where, params = self._where(
            owner_id, type_, frequency, category, is_active, due_on_or_before
        )
        sql = "SELECT * FROM recurring_transactions" + where
        sql += f" ORDER BY {SORT_COLUMNS[sort_field]} {'DESC' if descending else 'ASC'}, id ASC"
        if limit is not None:
            sql += " LIMIT ? OFFSET ?"
            params.extend([limit, offset])
        conn = self._db.get_connection()
        rows = conn.execute(sql, params).fetchall()
        return [self._row_to_model(r) for r in rows]

    def count(self, owner_id: int, **filters) -> int:
        where, params = self._where(owner_id, **filters)
        conn = self._db.get_connection()
        return conn.execute(
            "SELECT COUNT(*) FROM recurring_transactions" + where, params
        ).fetchone()[0]

    def get_by_id(self, owner_id: int, rule_id: int) -> Optional[RecurringDefinition]:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM recurring_transactions WHERE id = ? AND owner_id = ?",
            (rule_id, owner_id),
        ).fetchone()
        return self._row_to_model(row) if row else None

    def create(self, definition: RecurringDefinition) -> RecurringDefinition:
        with self._db.transaction() as conn:
            cursor = conn.execute(
                """INSERT INTO recurring_transactions
                   (owner_id, type, amount, currency, description, category,
                    frequency, interval_value, start_date, end_date, next_due_date,
                    is_active, related_party, tags, notes)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    definition.owner_id, definition.type, to_db(definition.amount),
                    definition.currency, definition.description, definition.category,
                    definition.frequency, definition.interval,
                    format_date(definition.start_date), format_date(definition.end_date),
                    format_date(definition.next_due_date),
                    1 if definition.is_active else 0,
                    definition.related_party, definition.tags, definition.notes,
                ),
            )
        return self.get_by_id(definition.owner_id, cursor.lastrowid)

    def update(self, owner_id: int, rule_id: int, changes: dict) -> Optional[RecurringDefinition]:
        unknown = set(changes) - set(UPDATABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        if not changes:
            return self.get_by_id(owner_id, rule_id)
        assignments = ", ".join(f"{UPDATABLE_COLUMNS[f]} = ?" for f in changes)
        params = [_to_column_value(f, v) for f, v in changes.items()]
        with self._db.transaction() as conn:
            conn.execute(
                f"""UPDATE recurring_transactions
                    SET {assignments}, updated_at = datetime('now')
                    WHERE id = ? AND owner_id = ?""",
                (*params, rule_id, owner_id),
            )
        return self.get_by_id(owner_id, rule_id)

    def set_active(self, owner_id: int, rule_id: int, is_active: bool):
        with self._db.transaction() as conn:
            conn.execute(
                """UPDATE recurring_transactions
                   SET is_active = ?, updated_at = datetime('now')
                   WHERE id = ? AND owner_id = ?""",
                (1 if is_active else 0, rule_id, owner_id),
            )

    def _advance(self, conn, definition: RecurringDefinition, new_next_due: date, is_active: bool):
        """Conditional write: only commits if next_due_date still matches what was read."""
        cursor = conn.execute(
            """UPDATE recurring_transactions
               SET next_due_date = ?, is_active = ?, updated_at = datetime('now')
               WHERE id = ? AND owner_id = ? AND next_due_date = ?""",
            (
                format_date(new_next_due), 1 if is_active else 0,
                definition.id, definition.owner_id,
                format_date(definition.next_due_date),
            ),
        )
        if cursor.rowcount != 1:
            raise ConcurrentModificationError(
                f"Recurring transaction {definition.id} changed since "
                f"{format_date(definition.next_due_date)} was read"
            )

    def advance_next_due(self, definition: RecurringDefinition, new_next_due: date, is_active: bool):
        with self._db.transaction() as conn:
            self._advance(conn, definition, new_next_due, is_active)

    def materialize(self, definition: RecurringDefinition, new_next_due: date, is_active: bool) -> int:
        """Create the ledger entry for the current occurrence and advance the
        definition in one transaction. Returns the new entry id."""
        with self._db.transaction() as conn:
            tx_id = insert_transaction(
                conn,
                owner_id=definition.owner_id,
                type_=definition.type,
                amount=definition.amount,
                transaction_date=definition.next_due_date,
                description=definition.description,
                currency=definition.currency,
                category=definition.category,
                status=ENTRY_STATUS_ACTIVE,
                recurring_id=definition.id,
                related_party=definition.related_party,
                tags=definition.tags,
                notes=definition.notes,
            )
            self._advance(conn, definition, new_next_due, is_active)
        return tx_id

    def delete(self, owner_id: int, rule_id: int) -> bool:
        with self._db.transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM recurring_transactions WHERE id = ? AND owner_id = ?",
                (rule_id, owner_id),
            )
        return cursor.rowcount > 0
