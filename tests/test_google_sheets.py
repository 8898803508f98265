"""
Tests for the Google Sheets store against an in-memory worksheet.

FakeWorksheet implements the handful of gspread.Worksheet methods the
store calls. Anything else it is asked for raises AttributeError, which
the store turns into StorageError, so an unexpected call fails the test.
"""

import asyncio
import copy
import json
from datetime import datetime
from uuid import uuid4

import pytest
from gspread.utils import a1_to_rowcol

from savings_duel.models.audit import AuditEvent, AuditEventType, AuditSeverity
from savings_duel.models.expense import ExpenseEntry, Participant, ParticipantSlot
from savings_duel.services.storage import (
    SnapshotEvent,
    StorageError,
    SubscriptionErrorEvent,
)
from savings_duel.services.storage.google_sheets import (
    AUDIT_COLUMNS,
    EXPENSE_COLUMNS,
    GoogleSheetsAuditStorage,
    GoogleSheetsExpenseStore,
)


class FakeWorksheet:
    def __init__(self, rows):
        self.rows = [list(row) for row in rows]
        self.fail = None
        self.calls = []

    def get_all_values(self):
        if self.fail:
            raise self.fail
        return copy.deepcopy(self.rows)

    def append_row(self, values, value_input_option=None):
        if self.fail:
            raise self.fail
        self.calls.append(("append_row", value_input_option))
        self.rows.append([str(value) for value in values])

    def batch_update(self, data, value_input_option=None):
        if self.fail:
            raise self.fail
        self.calls.append(("batch_update", value_input_option))
        for item in data:
            row, col = a1_to_rowcol(item["range"])
            while len(self.rows) < row:
                self.rows.append([])
            target = self.rows[row - 1]
            while len(target) < col:
                target.append("")
            target[col - 1] = item["values"][0][0]


class FakeClient:
    def __init__(self, expenses=None, audit=None):
        self.expenses = expenses or FakeWorksheet([EXPENSE_COLUMNS])
        self.audit = audit or FakeWorksheet([AUDIT_COLUMNS])

    def get_expenses_sheet(self):
        return self.expenses

    def get_audit_sheet(self):
        return self.audit


def entries_json(*amounts):
    return json.dumps([
        {"amount": str(amount), "description": "item", "recorded_at": i}
        for i, amount in enumerate(amounts)
    ])


def slot_with(amount, writer):
    entry = ExpenseEntry(amount=amount, description="Lunch", recorded_at=7)
    return ParticipantSlot(entries=(entry,), last_writer=writer)


async def wait_until(predicate, timeout=2.0):
    waited = 0.0
    while not predicate():
        if waited >= timeout:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)
        waited += 0.005


@pytest.fixture
def sheet() -> FakeWorksheet:
    return FakeWorksheet([
        EXPENSE_COLUMNS + ["note"],
        ["2025-08-01", entries_json(1000), "uid-a", entries_json(1600), "uid-b", "payday"],
        ["2025-08-02", "", "", entries_json(300), "uid-b", ""],
    ])


@pytest.fixture
def store(sheet) -> GoogleSheetsExpenseStore:
    return GoogleSheetsExpenseStore(FakeClient(expenses=sheet), poll_interval_seconds=0.005)


class TestFetchRecord:
    """Tests for reading one date row."""

    def test_existing_row(self, store):
        record = asyncio.run(store.fetch_record("2025-08-01"))
        assert record.entries_for(Participant.A)[0].amount == 1000
        assert record.slot(Participant.B).last_writer == "uid-b"

    def test_missing_row(self, store):
        assert asyncio.run(store.fetch_record("2030-01-01")) is None

    def test_read_failure(self, store, sheet):
        sheet.fail = RuntimeError("quota exceeded")
        with pytest.raises(StorageError, match="quota exceeded"):
            asyncio.run(store.fetch_record("2025-08-01"))

    def test_malformed_entries_cell(self, store, sheet):
        sheet.rows[1][1] = "{not json"
        with pytest.raises(StorageError):
            asyncio.run(store.fetch_record("2025-08-01"))


class TestMergeSlot:
    """Tests for writing one participant's cells."""

    def test_existing_row_updates_only_own_cells(self, store, sheet):
        asyncio.run(store.merge_slot("2025-08-01", Participant.A, slot_with(500, "uid-a2")))

        row = sheet.rows[1]
        assert json.loads(row[1])[0]["amount"] == "500"
        assert row[2] == "uid-a2"
        assert row[3] == entries_json(1600)
        assert row[4] == "uid-b"
        assert row[5] == "payday"

    def test_existing_row_written_raw_in_one_call(self, store, sheet):
        asyncio.run(store.merge_slot("2025-08-01", Participant.A, slot_with(500, "0012")))

        assert sheet.calls == [("batch_update", "RAW")]
        record = asyncio.run(store.fetch_record("2025-08-01"))
        assert record.slot(Participant.A).last_writer == "0012"

    def test_new_row_appended_raw(self, store, sheet):
        asyncio.run(store.merge_slot("2025-08-09", Participant.B, slot_with(42, "uid-b")))

        assert sheet.calls == [("append_row", "RAW")]
        new_row = sheet.rows[-1]
        assert new_row[0] == "2025-08-09"
        assert new_row[1] == "" and new_row[2] == ""
        assert new_row[4] == "uid-b"
        record = asyncio.run(store.fetch_record("2025-08-09"))
        assert record.slot(Participant.A) is None

    def test_failed_write_leaves_row_untouched(self, store, sheet):
        before = copy.deepcopy(sheet.rows)

        async def scenario():
            await store.fetch_record("2025-08-01")
            sheet.fail = RuntimeError("permission denied")
            await store.merge_slot("2025-08-01", Participant.A, slot_with(1, "uid-a"))

        with pytest.raises(StorageError, match="permission denied"):
            asyncio.run(scenario())
        assert sheet.rows == before

    def test_missing_participant_columns(self):
        sheet = FakeWorksheet([["date", "a_entries", "a_last_writer"]])
        store = GoogleSheetsExpenseStore(FakeClient(expenses=sheet), poll_interval_seconds=1)
        with pytest.raises(StorageError, match="missing columns"):
            asyncio.run(store.merge_slot("2025-08-01", Participant.B, slot_with(1, "uid-b")))


class TestFetchSnapshot:
    """Tests for reading the whole sheet."""

    def test_all_dates_with_metadata(self, store):
        snapshot = asyncio.run(store.fetch_snapshot())
        assert set(snapshot) == {"2025-08-01", "2025-08-02"}
        assert snapshot["2025-08-01"]["note"] == "payday"
        assert "a" not in snapshot["2025-08-02"]

    def test_empty_rows_skipped(self, store, sheet):
        sheet.rows.append([])
        sheet.rows.append(["", "", "", "", ""])
        assert len(asyncio.run(store.fetch_snapshot())) == 2

    def test_first_duplicate_row_wins(self, store, sheet):
        sheet.rows.append(["2025-08-01", entries_json(9), "uid-x", "", "", ""])
        snapshot = asyncio.run(store.fetch_snapshot())
        assert snapshot["2025-08-01"]["a"]["last_writer"] == "uid-a"

    def test_blank_sheet(self):
        store = GoogleSheetsExpenseStore(FakeClient(expenses=FakeWorksheet([])), poll_interval_seconds=1)
        assert asyncio.run(store.fetch_snapshot()) == {}

    def test_read_failure(self, store, sheet):
        sheet.fail = RuntimeError("timeout")
        with pytest.raises(StorageError, match="timeout"):
            asyncio.run(store.fetch_snapshot())


class TestPollingSubscription:
    """Tests for the polling feed."""

    def test_feed_lifecycle(self, store, sheet):
        events = []

        async def listener(event):
            events.append(event)

        async def scenario():
            subscription = await store.subscribe(listener)

            # Initial snapshot, then nothing while the sheet is unchanged
            await wait_until(lambda: len(events) == 1)
            await asyncio.sleep(0.05)
            assert len(events) == 1
            assert isinstance(events[0], SnapshotEvent)

            sheet.rows.append(["2025-08-03", entries_json(5), "uid-a", "", "", ""])
            await wait_until(lambda: len(events) == 2)
            assert "2025-08-03" in events[1].snapshot

            # Transport error is delivered, polling carries on
            sheet.fail = RuntimeError("network down")
            await wait_until(lambda: len(events) >= 3)
            assert isinstance(events[2], SubscriptionErrorEvent)
            assert "network down" in events[2].error_message

            # Recovery delivers a fresh snapshot even though the data is the same
            sheet.fail = None
            await wait_until(lambda: isinstance(events[-1], SnapshotEvent))
            assert set(events[-1].snapshot) == {"2025-08-01", "2025-08-02", "2025-08-03"}

            subscription.unsubscribe()
            delivered = len(events)
            sheet.rows.append(["2025-08-04", entries_json(1), "uid-a", "", "", ""])
            await asyncio.sleep(0.05)
            assert len(events) == delivered
            assert not subscription.active

        asyncio.run(scenario())


class TestGoogleSheetsAuditStorage:
    """Tests for the audit sheet."""

    def make_event(self, hour, event_type=AuditEventType.EXPENSE_COMMITTED):
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.INFO,
            timestamp=datetime(2025, 8, 1, hour, 0, 0),
            entity_type="daily_record",
            entity_id="2025-08-01",
            correlation_id=uuid4(),
            description="Expense recorded",
            details={"amount": "1200"},
            is_user_action=True,
        )

    def test_append_then_read_back_newest_first(self):
        client = FakeClient()
        storage = GoogleSheetsAuditStorage(client)
        older = self.make_event(9)
        newer = self.make_event(10, AuditEventType.COMMIT_FAILED)

        async def scenario():
            assert await storage.append_event(older)
            assert await storage.append_event(newer)
            return await storage.get_recent_events()

        events = asyncio.run(scenario())

        assert client.audit.calls == [("append_row", "RAW"), ("append_row", "RAW")]
        assert [event.event_id for event in events] == [newer.event_id, older.event_id]
        assert events[1] == older

    def test_limit(self):
        storage = GoogleSheetsAuditStorage(FakeClient())

        async def scenario():
            for hour in range(5):
                await storage.append_event(self.make_event(hour))
            return await storage.get_recent_events(limit=2)

        events = asyncio.run(scenario())
        assert [event.timestamp.hour for event in events] == [4, 3]

    def test_malformed_rows_skipped(self):
        client = FakeClient()
        client.audit.rows.append(["not-a-uuid", "yesterday", "expense_committed"])
        storage = GoogleSheetsAuditStorage(client)

        async def scenario():
            await storage.append_event(self.make_event(9))
            return await storage.get_recent_events()

        assert len(asyncio.run(scenario())) == 1

    def test_append_failure_returns_false(self):
        client = FakeClient()
        client.audit.fail = RuntimeError("quota exceeded")
        storage = GoogleSheetsAuditStorage(client)
        assert asyncio.run(storage.append_event(self.make_event(9))) is False

    def test_read_failure(self):
        client = FakeClient()
        client.audit.fail = RuntimeError("quota exceeded")
        with pytest.raises(StorageError):
            asyncio.run(GoogleSheetsAuditStorage(client).get_recent_events())
