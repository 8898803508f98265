"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the shared store because:
1. Both participants can open the sheet and see the raw log
2. No database setup required
3. Built-in backup (Google's infrastructure)

Layout of the Expenses worksheet, one row per date:

    date | a_entries | a_last_writer | b_entries | b_last_writer | ...

Entry lists are JSON. Any further columns are free-form metadata; we
read them into the document and never write them, which is what gives
merge_slot its merge semantics.

TRADEOFFS:
- No push notifications, so subscriptions poll on an interval
- No transactions, so the read-modify-write of a commit can lose an
  update when both sides write the same slot at the same moment
"""

import asyncio
import json
from datetime import datetime
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from gspread.utils import rowcol_to_a1
from tenacity import retry, stop_after_attempt, wait_exponential

from savings_duel.config import get_settings
from savings_duel.models.audit import AuditEvent, AuditEventType, AuditSeverity
from savings_duel.models.expense import DailyRecord, Participant, ParticipantSlot
from savings_duel.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    ExpenseStoreInterface,
    SnapshotEvent,
    StorageError,
    StoreListener,
    Subscription,
    SubscriptionErrorEvent,
)


logger = structlog.get_logger(__name__)


# Column mappings for Expenses sheet
EXPENSE_COLUMNS = [
    "date",
    "a_entries",
    "a_last_writer",
    "b_entries",
    "b_last_writer",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


def entries_column(participant: Participant) -> str:
    return f"{participant.value}_entries"


def writer_column(participant: Participant) -> str:
    return f"{participant.value}_last_writer"


def row_to_document(header: list[str], row: list[str]) -> dict:
    """
    Convert a sheet row into a raw date document.

    A participant whose entries and writer cells are both blank has no
    slot at all. Unknown columns are carried through as metadata.
    """
    def safe_get(index: int) -> str:
        try:
            return row[index]
        except IndexError:
            return ""

    cells = {name: safe_get(idx) for idx, name in enumerate(header) if name}
    document: dict = {}

    for participant in Participant:
        entries_cell = cells.pop(entries_column(participant), "")
        writer_cell = cells.pop(writer_column(participant), "")
        if not entries_cell and not writer_cell:
            continue
        document[participant.value] = {
            "entries": json.loads(entries_cell) if entries_cell else [],
            "last_writer": writer_cell or None,
        }

    cells.pop("date", None)
    document.update({key: value for key, value in cells.items() if value})
    return document


def slot_to_cells(slot: ParticipantSlot) -> tuple[str, str]:
    """Convert a slot to its (entries_json, last_writer) cell values."""
    payload = slot.to_payload()
    return json.dumps(payload["entries"]), payload["last_writer"] or ""


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for connecting.
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

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_expenses_sheet(self) -> gspread.Worksheet:
        """Get or create the Expenses worksheet."""
        return self._get_or_create_sheet(
            self._settings.expenses_sheet_name,
            EXPENSE_COLUMNS,
            rows=1000,
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


class GoogleSheetsExpenseStore(ExpenseStoreInterface):
    """
    Google Sheets implementation of the expense store.

    Dates are stored as rows; each participant owns two cells per row.
    """

    def __init__(
        self,
        client: Optional[GoogleSheetsClient] = None,
        poll_interval_seconds: Optional[float] = None,
    ):
        self._client = client or GoogleSheetsClient()
        self._poll_interval = (
            poll_interval_seconds
            if poll_interval_seconds is not None
            else get_settings().app.poll_interval_seconds
        )

    def _read_all(self) -> tuple[list[str], list[list[str]]]:
        sheet = self._client.get_expenses_sheet()
        all_rows = sheet.get_all_values()
        if not all_rows:
            return list(EXPENSE_COLUMNS), []
        return all_rows[0], all_rows[1:]

    def _find_row(self, rows: list[list[str]], date: str) -> Optional[int]:
        """1-based sheet row number of ``date``, header included."""
        for idx, row in enumerate(rows, start=2):
            if row and row[0] == date:
                return idx
        return None

    async def fetch_record(self, date: str) -> Optional[DailyRecord]:
        """Read one date's row."""
        try:
            header, rows = self._read_all()
            row_number = self._find_row(rows, date)
            if row_number is None:
                return None
            document = row_to_document(header, rows[row_number - 2])
            return DailyRecord.from_payload(date, document)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read record for {date}: {e}")

    async def merge_slot(
        self,
        date: str,
        participant: Participant,
        slot: ParticipantSlot,
    ) -> None:
        """Write only this participant's cells for ``date``."""
        try:
            sheet = self._client.get_expenses_sheet()
            all_rows = sheet.get_all_values()
            header = all_rows[0] if all_rows else list(EXPENSE_COLUMNS)
            entries_cell, writer_cell = slot_to_cells(slot)

            try:
                entries_col = header.index(entries_column(participant)) + 1
                writer_col = header.index(writer_column(participant)) + 1
            except ValueError:
                raise StorageError(
                    f"Expenses sheet is missing columns for participant {participant.value}"
                )

            row_number = self._find_row(all_rows[1:], date)
            if row_number is None:
                new_row = [""] * len(header)
                new_row[0] = date
                new_row[entries_col - 1] = entries_cell
                new_row[writer_col - 1] = writer_cell
                sheet.append_row(new_row, value_input_option="RAW")
            else:
                # One request for both cells, stored verbatim
                sheet.batch_update(
                    [
                        {
                            "range": rowcol_to_a1(row_number, entries_col),
                            "values": [[entries_cell]],
                        },
                        {
                            "range": rowcol_to_a1(row_number, writer_col),
                            "values": [[writer_cell]],
                        },
                    ],
                    value_input_option="RAW",
                )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to write record for {date}: {e}")

    async def fetch_snapshot(self) -> dict[str, dict]:
        """Read every date row."""
        try:
            header, rows = self._read_all()
            snapshot: dict[str, dict] = {}
            for row in rows:
                if not row or not row[0]:  # Skip empty rows
                    continue
                if row[0] in snapshot:
                    logger.warning("duplicate_date_row", date=row[0])
                    continue
                snapshot[row[0]] = row_to_document(header, row)
            return snapshot
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read expenses: {e}")

    async def subscribe(self, listener: StoreListener) -> Subscription:
        """
        Poll the sheet and deliver a snapshot whenever it changes.

        A failed read delivers an error event; polling carries on, so the
        feed heals by itself once the sheet is reachable again.
        """
        last_snapshot: Optional[dict] = None
        subscription: Optional[Subscription] = None

        async def poll() -> None:
            nonlocal last_snapshot
            while subscription is None or subscription.active:
                try:
                    snapshot = await self.fetch_snapshot()
                except StorageError as e:
                    logger.warning("sheet_poll_failed", error=str(e))
                    last_snapshot = None
                    event = SubscriptionErrorEvent(error_message=str(e))
                else:
                    event = None
                    if snapshot != last_snapshot:
                        last_snapshot = snapshot
                        event = SnapshotEvent(snapshot=snapshot)

                if event is not None and (subscription is None or subscription.active):
                    await listener(event)
                await asyncio.sleep(self._poll_interval)

        task = asyncio.create_task(poll())
        subscription = Subscription(task.cancel)
        return subscription


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
            is_user_action=safe_get(10).lower() == "true",
        )

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging must not break the main flow
            logger.warning("audit_append_failed", error=str(e))
            return False

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]

            events = []
            for row in all_rows:
                if row and row[0]:
                    try:
                        events.append(self._row_to_event(row))
                    except (ValueError, KeyError) as e:
                        logger.debug("audit_row_skipped", error=str(e))

            # Sort newest first
            events.sort(key=lambda e: e.timestamp, reverse=True)
            return events[:limit]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
