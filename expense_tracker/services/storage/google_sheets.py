"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as an optional backend:
1. Users can view and chart their expenses directly in Sheets
2. No database file to manage or back up

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions (one append or one row delete per write)
- Limited query capabilities (we filter in Python, see base.py)
"""

from decimal import Decimal
from typing import Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from expense_tracker.config import GoogleSheetsSettings, get_settings
from expense_tracker.models.expense import ExpenseRecord, from_epoch_ms
from expense_tracker.services.storage.base import ObservableExpenseStore
from expense_tracker.services.storage.interface import (
    ConnectionError,
    DuplicateError,
    StoreError,
)


# Column mappings for Expenses sheet
EXPENSE_COLUMNS = [
    "id",
    "title",
    "amount",
    "category",
    "notes",
    "receipt_image_uri",
    "date_ms",
]


SHEETS_SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

# Applied to every call that talks to the Sheets API
sheets_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


class GoogleSheetsClient:
    """
    Opens the configured spreadsheet with a service account and hands
    out the Expenses worksheet, creating it (with a header row) on
    first use.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._settings = settings or get_settings().google_sheets
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._worksheet: Optional[gspread.Worksheet] = None

    @sheets_retry
    def _open(self) -> gspread.Spreadsheet:
        if self._spreadsheet is not None:
            return self._spreadsheet

        path = self._settings.credentials_path
        try:
            credentials = Credentials.from_service_account_file(path, scopes=SHEETS_SCOPES)
            gc = gspread.authorize(credentials)
            self._spreadsheet = gc.open_by_key(self._settings.spreadsheet_id)
        except FileNotFoundError:
            raise ConnectionError(f"Google credentials file not found: {path}")
        except gspread.SpreadsheetNotFound:
            raise ConnectionError(f"Spreadsheet not found: {self._settings.spreadsheet_id}")
        except gspread.exceptions.APIError as e:
            raise ConnectionError(f"Google Sheets API error: {e}")
        return self._spreadsheet

    def get_expenses_sheet(self) -> gspread.Worksheet:
        """The Expenses worksheet, created with headers if missing."""
        if self._worksheet is not None:
            return self._worksheet

        spreadsheet = self._open()
        name = self._settings.expenses_sheet_name
        try:
            sheet = spreadsheet.worksheet(name)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(title=name, rows=1000, cols=len(EXPENSE_COLUMNS))
            sheet.append_row(EXPENSE_COLUMNS)
        self._worksheet = sheet
        return sheet


class GoogleSheetsExpenseStore(ObservableExpenseStore):
    """
    Google Sheets implementation of expense storage.

    One expense per row, in insertion order. The sheet client only
    needs get_expenses_sheet(), so tests pass a fake.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        super().__init__()
        self._client = client or GoogleSheetsClient()

    def _record_to_row(self, record: ExpenseRecord) -> list:
        """Convert an ExpenseRecord to a spreadsheet row."""
        return [
            record.id,
            record.title,
            str(record.amount),
            record.category or "",
            record.notes or "",
            record.receipt_uri or "",
            str(record.timestamp_ms),
        ]

    def _row_to_record(self, row: list) -> ExpenseRecord:
        """Parse one sheet row. Short rows are padded with blanks."""
        cells = (list(row) + [""] * len(EXPENSE_COLUMNS))[:len(EXPENSE_COLUMNS)]
        expense_id, title, amount, category, notes, receipt, date_ms = cells
        return ExpenseRecord(
            id=expense_id,
            title=title,
            amount=Decimal(amount or "0"),
            category=category or None,
            notes=notes or None,
            receipt_uri=receipt or None,
            date=from_epoch_ms(int(date_ms or "0")),
        )

    def _data_rows(self) -> list[tuple[int, list]]:
        """All non-empty data rows, as (sheet row number, values)."""
        try:
            sheet = self._client.get_expenses_sheet()
            all_rows = sheet.get_all_values()
        except ConnectionError:
            raise
        except Exception as e:
            raise StoreError(f"Failed to read expenses: {e}")
        # Row 1 is the header
        return [
            (idx, row)
            for idx, row in enumerate(all_rows[1:], start=2)
            if row and row[0]
        ]

    @sheets_retry
    def _append(self, row: list) -> None:
        self._client.get_expenses_sheet().append_row(row, value_input_option="RAW")

    async def _insert(self, record: ExpenseRecord) -> None:
        if any(row[0] == record.id for _, row in self._data_rows()):
            raise DuplicateError(f"Expense already exists: {record.id}")
        try:
            self._append(self._record_to_row(record))
        except Exception as e:
            raise StoreError(f"Failed to save expense: {e}")

    async def _delete(self, record: ExpenseRecord) -> bool:
        for idx, row in self._data_rows():
            if row[0] == record.id:
                try:
                    self._client.get_expenses_sheet().delete_rows(idx)
                except Exception as e:
                    raise StoreError(f"Failed to delete expense: {e}")
                return True
        return False

    async def _load_all(self) -> list[ExpenseRecord]:
        records = []
        for idx, row in self._data_rows():
            try:
                records.append(self._row_to_record(row))
            except Exception:
                # Hand-edited rows that no longer parse are left out
                self._logger.warning("malformed_sheet_row", row_number=idx)
        return records
