import logging
import sqlite3
import threading
from contextlib import contextmanager
from utils.constants import DB_FILE

logger = logging.getLogger(__name__)


class DatabaseManager:
    def __init__(self, db_path: str | None = None):
        self.db_path = db_path or DB_FILE
        self._conn: sqlite3.Connection | None = None
        # One connection is shared by every thread, so a commit from any
        # writer ends the open transaction for all of them. Writers hold
        # this lock for the whole of their transaction.
        self._write_lock = threading.RLock()

    def get_connection(self) -> sqlite3.Connection:
        with self._write_lock:
            if self._conn is None:
                self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
                self._conn.row_factory = sqlite3.Row
                self._conn.execute("PRAGMA foreign_keys = ON")
                self._conn.execute("PRAGMA journal_mode = WAL")
            return self._conn

    @contextmanager
    def transaction(self):
        """Serialized write transaction: commits on exit, rolls back on error."""
        with self._write_lock:
            conn = self.get_connection()
            with conn:
                yield conn

    def initialize(self):
        """Create schema."""
        with self.transaction() as conn:
            self._create_schema(conn)
            self._migrate_schema(conn)
        logger.info("Database ready at %s", self.db_path)

    def _migrate_schema(self, conn: sqlite3.Connection):
        """Idempotent ALTER TABLE for columns added after initial release."""
        cols = {row[1] for row in conn.execute("PRAGMA table_info(cash_flow_projections)").fetchall()}
        if "notes" not in cols:
            conn.execute("ALTER TABLE cash_flow_projections ADD COLUMN notes TEXT")

    def _create_schema(self, conn: sqlite3.Connection):
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS recurring_transactions (
                id             INTEGER PRIMARY KEY AUTOINCREMENT,
                owner_id       INTEGER NOT NULL,
                type           TEXT NOT NULL CHECK(type IN ('income','expense','debt','receivable')),
                amount         TEXT NOT NULL CHECK(CAST(amount AS REAL) > 0),
                currency       TEXT NOT NULL DEFAULT 'IDR',
                description    TEXT NOT NULL,
                category       TEXT,
                frequency      TEXT NOT NULL CHECK(frequency IN ('daily','weekly','monthly','yearly')),
                interval_value INTEGER NOT NULL DEFAULT 1 CHECK(interval_value >= 1),
                start_date     TEXT NOT NULL,
                end_date       TEXT,
                next_due_date  TEXT NOT NULL,
                is_active      INTEGER NOT NULL DEFAULT 1,
                related_party  TEXT,
                tags           TEXT,
                notes          TEXT,
                created_at     TEXT NOT NULL DEFAULT (datetime('now')),
                updated_at     TEXT NOT NULL DEFAULT (datetime('now'))
            );

            CREATE TABLE IF NOT EXISTS transactions (
                id               INTEGER PRIMARY KEY AUTOINCREMENT,
                owner_id         INTEGER NOT NULL,
                type             TEXT NOT NULL CHECK(type IN ('income','expense','debt','receivable')),
                amount           TEXT NOT NULL CHECK(CAST(amount AS REAL) > 0),
                currency         TEXT NOT NULL DEFAULT 'IDR',
                description      TEXT NOT NULL DEFAULT '',
                category         TEXT,
                transaction_date TEXT NOT NULL,
                status           TEXT NOT NULL DEFAULT 'active',
                recurring_id     INTEGER REFERENCES recurring_transactions(id) ON DELETE SET NULL,
                related_party    TEXT,
                tags             TEXT,
                notes            TEXT,
                created_at       TEXT NOT NULL DEFAULT (datetime('now'))
            );

            CREATE TABLE IF NOT EXISTS bill_reminders (
                id             INTEGER PRIMARY KEY AUTOINCREMENT,
                owner_id       INTEGER NOT NULL,
                name           TEXT NOT NULL,
                amount         TEXT NOT NULL CHECK(CAST(amount AS REAL) > 0),
                currency       TEXT NOT NULL DEFAULT 'IDR',
                due_date       TEXT NOT NULL,
                frequency      TEXT NOT NULL CHECK(frequency IN ('weekly','monthly','quarterly','yearly')),
                category       TEXT,
                payee          TEXT NOT NULL,
                reminder_days  INTEGER NOT NULL DEFAULT 3 CHECK(reminder_days >= 0),
                is_active      INTEGER NOT NULL DEFAULT 1,
                is_paid        INTEGER NOT NULL DEFAULT 0,
                last_paid_date TEXT,
                next_due_date  TEXT NOT NULL,
                notes          TEXT,
                created_at     TEXT NOT NULL DEFAULT (datetime('now')),
                updated_at     TEXT NOT NULL DEFAULT (datetime('now'))
            );

            CREATE TABLE IF NOT EXISTS notifications (
                id           INTEGER PRIMARY KEY AUTOINCREMENT,
                owner_id     INTEGER NOT NULL,
                type         TEXT NOT NULL,
                title        TEXT NOT NULL,
                message      TEXT NOT NULL,
                is_read      INTEGER NOT NULL DEFAULT 0,
                priority     TEXT NOT NULL DEFAULT 'medium' CHECK(priority IN ('low','medium','high')),
                related_id   INTEGER,
                related_type TEXT,
                created_at   TEXT NOT NULL DEFAULT (datetime('now'))
            );

            CREATE TABLE IF NOT EXISTS cash_flow_projections (
                id                 INTEGER PRIMARY KEY AUTOINCREMENT,
                owner_id           INTEGER NOT NULL,
                projection_date    TEXT NOT NULL,
                projected_income   TEXT NOT NULL DEFAULT '0.00',
                projected_expenses TEXT NOT NULL DEFAULT '0.00',
                projected_balance  TEXT NOT NULL DEFAULT '0.00',
                actual_income      TEXT,
                actual_expenses    TEXT,
                actual_balance     TEXT,
                notes              TEXT,
                created_at         TEXT NOT NULL DEFAULT (datetime('now')),
                updated_at         TEXT NOT NULL DEFAULT (datetime('now')),
                UNIQUE(owner_id, projection_date)
            );

            CREATE INDEX IF NOT EXISTS idx_recurring_owner_due   ON recurring_transactions(owner_id, next_due_date);
            CREATE INDEX IF NOT EXISTS idx_transactions_owner_date ON transactions(owner_id, transaction_date);
            CREATE INDEX IF NOT EXISTS idx_transactions_recurring  ON transactions(recurring_id);
            CREATE INDEX IF NOT EXISTS idx_bills_owner_due        ON bill_reminders(owner_id, next_due_date);
            CREATE INDEX IF NOT EXISTS idx_notifications_owner    ON notifications(owner_id);
        """)

    def close(self):
        with self._write_lock:
            if self._conn:
                self._conn.close()
                self._conn = None
