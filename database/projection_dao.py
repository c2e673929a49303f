from datetime import date
from decimal import Decimal
from typing import Optional
from database.db_manager import DatabaseManager
from models.projection import ProjectionRecord
from utils.date_helpers import format_date, parse_date
from utils.money import from_db, to_db


class ProjectionDAO:
    """Projection records, at most one per (owner, date)."""

    def __init__(self, db: DatabaseManager):
        self._db = db

    def _row_to_model(self, row) -> ProjectionRecord:
        return ProjectionRecord(
            id=row["id"],
            owner_id=row["owner_id"],
            projection_date=parse_date(row["projection_date"]),
            projected_income=from_db(row["projected_income"]),
            projected_expenses=from_db(row["projected_expenses"]),
            projected_balance=from_db(row["projected_balance"]),
            actual_income=from_db(row["actual_income"]),
            actual_expenses=from_db(row["actual_expenses"]),
            actual_balance=from_db(row["actual_balance"]),
            notes=row["notes"],
        )

    def get_by_date(self, owner_id: int, projection_date: date) -> Optional[ProjectionRecord]:
        conn = self._db.get_connection()
        row = conn.execute(
            """SELECT * FROM cash_flow_projections
               WHERE owner_id = ? AND projection_date = ?""",
            (owner_id, format_date(projection_date)),
        ).fetchone()
        return self._row_to_model(row) if row else None

    def get_range(
        self, owner_id: int, start: date, end: date, limit: int | None = None
    ) -> list[ProjectionRecord]:
        conn = self._db.get_connection()
        sql = """SELECT * FROM cash_flow_projections
                 WHERE owner_id = ? AND projection_date >= ? AND projection_date <= ?
                 ORDER BY projection_date ASC"""
        params: list = [owner_id, format_date(start), format_date(end)]
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        rows = conn.execute(sql, params).fetchall()
        return [self._row_to_model(r) for r in rows]

    def upsert_projected(
        self,
        owner_id: int,
        projection_date: date,
        projected_income: Decimal,
        projected_expenses: Decimal,
        projected_balance: Decimal,
        notes: str | None = None,
    ) -> ProjectionRecord:
        """Insert or overwrite the projected columns; actuals are left as they are."""
        with self._db.transaction() as conn:
            conn.execute(
                """INSERT INTO cash_flow_projections
                   (owner_id, projection_date, projected_income, projected_expenses,
                    projected_balance, notes)
                   VALUES (?, ?, ?, ?, ?, ?)
                   ON CONFLICT(owner_id, projection_date)
                   DO UPDATE SET projected_income   = excluded.projected_income,
                                 projected_expenses = excluded.projected_expenses,
                                 projected_balance  = excluded.projected_balance,
                                 notes              = COALESCE(excluded.notes, notes),
                                 updated_at         = datetime('now')""",
                (
                    owner_id, format_date(projection_date), to_db(projected_income),
                    to_db(projected_expenses), to_db(projected_balance), notes,
                ),
            )
        return self.get_by_date(owner_id, projection_date)

    def upsert_actuals(
        self,
        owner_id: int,
        projection_date: date,
        actual_income: Decimal,
        actual_expenses: Decimal,
        actual_balance: Decimal,
    ) -> ProjectionRecord:
        """Write actuals. A missing record is created with the actuals also
        used as its projected values."""
        with self._db.transaction() as conn:
            conn.execute(
                """INSERT INTO cash_flow_projections
                   (owner_id, projection_date, projected_income, projected_expenses,
                    projected_balance, actual_income, actual_expenses, actual_balance)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                   ON CONFLICT(owner_id, projection_date)
                   DO UPDATE SET actual_income   = excluded.actual_income,
                                 actual_expenses = excluded.actual_expenses,
                                 actual_balance  = excluded.actual_balance,
                                 updated_at      = datetime('now')""",
                (
                    owner_id, format_date(projection_date),
                    to_db(actual_income), to_db(actual_expenses), to_db(actual_balance),
                    to_db(actual_income), to_db(actual_expenses), to_db(actual_balance),
                ),
            )
        return self.get_by_date(owner_id, projection_date)
