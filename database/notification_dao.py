from database.db_manager import DatabaseManager
from models.notification import Notification


class NotificationDAO:
    """Persists notifications raised by the bill tracker."""

    def __init__(self, db: DatabaseManager):
        self._db = db

    def _row_to_model(self, row) -> Notification:
        return Notification(
            id=row["id"],
            owner_id=row["owner_id"],
            type=row["type"],
            title=row["title"],
            message=row["message"],
            priority=row["priority"],
            related_id=row["related_id"],
            related_type=row["related_type"],
            is_read=bool(row["is_read"]),
            created_at=row["created_at"],
        )

    def create(
        self,
        owner_id: int,
        type_: str,
        title: str,
        message: str,
        priority: str = "medium",
        related_id: int | None = None,
        related_type: str | None = None,
    ) -> Notification:
        with self._db.transaction() as conn:
            cursor = conn.execute(
                """INSERT INTO notifications
                   (owner_id, type, title, message, priority, related_id, related_type)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (owner_id, type_, title, message, priority, related_id, related_type),
            )
        row = self._db.get_connection().execute(
            "SELECT * FROM notifications WHERE id = ?", (cursor.lastrowid,)
        ).fetchone()
        return self._row_to_model(row)

    def get_by_owner(self, owner_id: int, unread_only: bool = False) -> list[Notification]:
        conn = self._db.get_connection()
        sql = "SELECT * FROM notifications WHERE owner_id = ?"
        if unread_only:
            sql += " AND is_read = 0"
        rows = conn.execute(sql + " ORDER BY id ASC", (owner_id,)).fetchall()
        return [self._row_to_model(r) for r in rows]
