"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a backend because:
1. Users can look at their own records directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

Each key is one row: [key, value_json, updated_at].

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions (the repository serializes writes per key)
- Every read fetches the key column (fine at personal-finance scale)
"""

from datetime import datetime, timezone
from typing import Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from mindfulpay.config import get_settings
from mindfulpay.services.storage.interface import (
    ConnectionError,
    KeyValueStoreInterface,
    StorageError,
)


# Column layout of the records sheet
RECORD_COLUMNS = [
    "key",
    "value_json",
    "updated_at",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_records_sheet(self) -> gspread.Worksheet:
        """Get or create the key/value worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.records_sheet_name)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=self._settings.records_sheet_name,
                rows=100,
                cols=len(RECORD_COLUMNS),
            )
            sheet.append_row(RECORD_COLUMNS)
        return sheet


class GoogleSheetsKeyValueStore(KeyValueStoreInterface):
    """
    Google Sheets implementation of the key-value store.

    Keys live in column A; the row index is looked up on every call
    so manual edits to the sheet (reordering, deleting) are tolerated.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _find_row(self, sheet: gspread.Worksheet, key: str) -> Optional[int]:
        """1-based row number holding `key`, skipping the header."""
        keys = sheet.col_values(1)
        for idx, existing in enumerate(keys[1:], start=2):
            if existing == key:
                return idx
        return None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def read(self, key: str) -> Optional[str]:
        """Read the value stored under a key."""
        try:
            sheet = self._client.get_records_sheet()
            row_idx = self._find_row(sheet, key)
            if row_idx is None:
                return None
            row = sheet.row_values(row_idx)
            return row[1] if len(row) > 1 else ""
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read {key}: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def write(self, key: str, value: str) -> None:
        """Insert or replace the row for a key."""
        try:
            sheet = self._client.get_records_sheet()
            row = [key, value, datetime.now(timezone.utc).isoformat()]
            row_idx = self._find_row(sheet, key)
            if row_idx is None:
                sheet.append_row(row, value_input_option="RAW")
            else:
                sheet.update(
                    range_name=f"A{row_idx}:C{row_idx}",
                    values=[row],
                    value_input_option="RAW",
                )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to write {key}: {e}")

    async def remove(self, key: str) -> None:
        """Delete the row for a key, if present."""
        try:
            sheet = self._client.get_records_sheet()
            row_idx = self._find_row(sheet, key)
            if row_idx is not None:
                sheet.delete_rows(row_idx)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to remove {key}: {e}")
