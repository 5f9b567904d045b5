"""
SQLite Storage Implementation

DESIGN DECISION: SQLite is the default backend. The tracker is a
single-user, single-writer application and the database is one
local file next to the app.

Amounts are stored as TEXT so Decimal values round-trip exactly;
dates are stored as epoch milliseconds (INTEGER) so range queries
use the index.
"""

import sqlite3
from contextlib import contextmanager
from decimal import Decimal
from pathlib import Path
from typing import Iterator, Optional

from expense_tracker.models.expense import ExpenseRecord, from_epoch_ms
from expense_tracker.services.storage.base import ObservableExpenseStore
from expense_tracker.services.storage.interface import (
    ConnectionError,
    DuplicateError,
    StoreError,
)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS expenses (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    amount TEXT NOT NULL,
    category TEXT,
    notes TEXT,
    receipt_image_uri TEXT,
    date INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS ix_expenses_date ON expenses (date);
CREATE INDEX IF NOT EXISTS ix_expenses_category ON expenses (category);
"""

COLUMNS = "id, title, amount, category, notes, receipt_image_uri, date"


def _fold(value: Optional[str]) -> Optional[str]:
    return value.lower() if value is not None else None


def _open(path: str) -> sqlite3.Connection:
    conn = sqlite3.connect(path)
    # SQLite's LOWER() only folds ASCII; match the other backends
    conn.create_function("FOLD", 1, _fold, deterministic=True)
    return conn


class SQLiteExpenseStore(ObservableExpenseStore):
    """
    SQLite implementation of expense storage.

    Use ":memory:" as the path for a private in-process database;
    the connection is then kept open for the store's lifetime.
    """

    def __init__(self, path: str = "data/expenses.db"):
        super().__init__()
        self._path = path
        self._memory_conn: Optional[sqlite3.Connection] = None
        if path == ":memory:":
            self._memory_conn = _open(":memory:")
        else:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.executescript(SCHEMA_SQL)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        if self._memory_conn is not None:
            yield self._memory_conn
            return
        try:
            conn = _open(self._path)
        except sqlite3.Error as e:
            raise ConnectionError(f"Failed to open database {self._path}: {e}")
        try:
            yield conn
        finally:
            conn.close()

    def close(self) -> None:
        if self._memory_conn is not None:
            self._memory_conn.close()
            self._memory_conn = None

    def _row_to_record(self, row: tuple) -> ExpenseRecord:
        """Convert a table row to an ExpenseRecord."""
        return ExpenseRecord(
            id=row[0],
            title=row[1],
            amount=Decimal(row[2]),
            category=row[3],
            notes=row[4],
            receipt_uri=row[5],
            date=from_epoch_ms(row[6]),
        )

    def _fetch(self, sql: str, params: tuple = ()) -> list[ExpenseRecord]:
        try:
            with self._connect() as conn:
                rows = conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to query expenses: {e}")
        return [self._row_to_record(row) for row in rows]

    async def _insert(self, record: ExpenseRecord) -> None:
        try:
            with self._connect() as conn:
                conn.execute(
                    f"INSERT INTO expenses ({COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (
                        record.id,
                        record.title,
                        str(record.amount),
                        record.category,
                        record.notes,
                        record.receipt_uri,
                        record.timestamp_ms,
                    ),
                )
                conn.commit()
        except sqlite3.IntegrityError:
            raise DuplicateError(f"Expense already exists: {record.id}")
        except sqlite3.Error as e:
            raise StoreError(f"Failed to save expense: {e}")

    async def _delete(self, record: ExpenseRecord) -> bool:
        try:
            with self._connect() as conn:
                cursor = conn.execute("DELETE FROM expenses WHERE id = ?", (record.id,))
                conn.commit()
                return cursor.rowcount > 0
        except sqlite3.Error as e:
            raise StoreError(f"Failed to delete expense: {e}")

    async def _load_all(self) -> list[ExpenseRecord]:
        return self._fetch(f"SELECT {COLUMNS} FROM expenses ORDER BY rowid")

    async def get_expenses_by_date_range(
        self,
        start_ms: int,
        end_ms: int,
    ) -> list[ExpenseRecord]:
        return self._fetch(
            f"SELECT {COLUMNS} FROM expenses "
            "WHERE date >= ? AND date < ? ORDER BY date DESC, rowid",
            (start_ms, end_ms),
        )

    async def get_all_expenses(self) -> list[ExpenseRecord]:
        return self._fetch(
            f"SELECT {COLUMNS} FROM expenses ORDER BY date DESC, rowid"
        )

    async def count_duplicates(
        self,
        timestamp_ms: int,
        title: str,
        category: str,
    ) -> int:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    """
                    SELECT COUNT(*) FROM expenses
                    WHERE date = ?
                    AND FOLD(title) = ?
                    AND FOLD(COALESCE(category, '')) = ?
                    """,
                    (timestamp_ms, title.lower(), category.lower()),
                ).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to count duplicates: {e}")
        return int(row[0])
