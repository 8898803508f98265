"""
Tests for Savings Duel

Test strategy:
1. Unit tests for individual components (models, engine, validators)
2. Integration tests for flows (with the in-memory store)
3. No real API calls in tests
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from savings_duel.config import ContestSettings
from savings_duel.models.expense import (
    ContestRules,
    DailyRecord,
    ExpenseEntry,
    ExpenseLedger,
    Participant,
    ParticipantSlot,
    SnapshotDecodeError,
)
from savings_duel.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestExpenseEntry:
    """Tests for the ExpenseEntry model."""

    def test_creation(self):
        entry = ExpenseEntry(amount=Decimal("500"), description="Lunch", recorded_at=1)
        assert entry.amount == Decimal("500")
        assert entry.description == "Lunch"

    def test_strips_whitespace(self):
        entry = ExpenseEntry(amount=1, description="  Coffee  ")
        assert entry.description == "Coffee"

    def test_rejects_negative_amount(self):
        with pytest.raises(ValueError):
            ExpenseEntry(amount=Decimal("-1"), description="Refund")

    def test_rejects_blank_description(self):
        with pytest.raises(ValueError):
            ExpenseEntry(amount=1, description="   ")

    def test_is_immutable(self):
        entry = ExpenseEntry(amount=1, description="Tea")
        with pytest.raises(ValueError):
            entry.amount = Decimal("2")

    def test_recorded_at_defaults_to_now(self):
        entry = ExpenseEntry(amount=1, description="Tea")
        assert entry.recorded_at > 1_600_000_000_000

    def test_fractional_recorded_at(self):
        entry = ExpenseEntry(amount=1, description="Tea", recorded_at=1_754_000_000_000.5)
        assert entry.recorded_at == 1_754_000_000_000.5
        assert entry.to_payload()["recorded_at"] == 1_754_000_000_000.5

    def test_rejects_negative_recorded_at(self):
        with pytest.raises(ValueError):
            ExpenseEntry(amount=1, description="Tea", recorded_at=-1)

    def test_long_description_is_accepted(self):
        # Only the input form limits length; stored entries keep any text
        entry = ExpenseEntry(amount=1, description="x" * 250)
        assert len(entry.description) == 250


class TestDailyRecord:
    """Tests for DailyRecord and ParticipantSlot."""

    def test_with_entry_appends_in_order(self):
        record = DailyRecord(date="2025-08-01")
        first = ExpenseEntry(amount=1, description="one", recorded_at=1)
        second = ExpenseEntry(amount=2, description="two", recorded_at=2)

        record = record.with_entry(Participant.A, first, "uid-1")
        record = record.with_entry(Participant.A, second, "uid-2")

        assert record.entries_for(Participant.A) == (first, second)
        assert record.slot(Participant.A).last_writer == "uid-2"

    def test_with_entry_preserves_other_slot(self):
        entry = ExpenseEntry(amount=1, description="one")
        record = DailyRecord(date="2025-08-01").with_entry(Participant.B, entry, "uid-b")
        record = record.with_entry(Participant.A, entry, "uid-a")

        assert record.slot(Participant.B).last_writer == "uid-b"
        assert len(record.entries_for(Participant.B)) == 1

    def test_with_entry_does_not_mutate_original(self):
        original = DailyRecord(date="2025-08-01")
        original.with_entry(Participant.A, ExpenseEntry(amount=1, description="x"), None)
        assert original.slot(Participant.A) is None

    def test_absent_and_empty_slot_have_no_entries(self):
        record = DailyRecord(date="2025-08-01", slots={Participant.A: ParticipantSlot()})
        assert record.entries_for(Participant.A) == ()
        assert record.entries_for(Participant.B) == ()

    def test_rejects_bad_date_format(self):
        with pytest.raises(ValueError):
            DailyRecord(date="2025/08/01")

    def test_rejects_impossible_date(self):
        with pytest.raises(ValueError):
            DailyRecord(date="2025-02-30")

    def test_from_payload_ignores_metadata(self):
        record = DailyRecord.from_payload("2025-08-01", {
            "a": {"entries": [{"amount": "100", "description": "x", "recorded_at": 1}]},
            "updated_at": "whatever",
        })
        assert record.entries_for(Participant.A)[0].amount == Decimal("100")
        assert record.slot(Participant.B) is None

    def test_payload_shape(self):
        record = DailyRecord(date="2025-08-01").with_entry(
            Participant.A,
            ExpenseEntry(amount=Decimal("12.50"), description="Bus", recorded_at=5),
            "uid-a",
        )
        assert record.to_payload() == {
            "a": {
                "entries": [{"amount": "12.50", "description": "Bus", "recorded_at": 5}],
                "last_writer": "uid-a",
            }
        }


class TestExpenseLedger:
    """Tests for the ledger container."""

    def test_sorted_dates(self):
        ledger = ExpenseLedger.from_payload({
            "2025-08-10": {},
            "2025-07-31": {},
            "2025-08-02": {},
        })
        assert ledger.sorted_dates() == ["2025-07-31", "2025-08-02", "2025-08-10"]

    def test_key_must_match_record_date(self):
        with pytest.raises(ValueError):
            ExpenseLedger(records={"2025-08-01": DailyRecord(date="2025-08-02")})

    def test_from_payload_is_all_or_nothing(self):
        with pytest.raises(SnapshotDecodeError):
            ExpenseLedger.from_payload({
                "2025-08-01": {"a": {"entries": []}},
                "2025-08-02": {"a": {"entries": [{"amount": "-5", "description": "x"}]}},
            })

    def test_from_payload_rejects_bad_key(self):
        with pytest.raises(SnapshotDecodeError):
            ExpenseLedger.from_payload({"not-a-date": {}})

    def test_from_payload_accepts_fractional_epoch(self):
        ledger = ExpenseLedger.from_payload({
            "2025-08-01": {"a": {"entries": [
                {"amount": "1000", "description": "Lunch", "recorded_at": 1754000000000.5},
            ]}},
        })
        entry = ledger.get("2025-08-01").entries_for(Participant.A)[0]
        assert entry.recorded_at == 1754000000000.5

    def test_for_month(self):
        ledger = ExpenseLedger.from_payload({
            "2025-07-31": {},
            "2025-08-01": {},
            "2025-08-31": {},
        })
        assert ledger.for_month("2025-08").sorted_dates() == ["2025-08-01", "2025-08-31"]
        assert ledger.months() == ["2025-07", "2025-08"]

    def test_with_record_returns_new_ledger(self):
        ledger = ExpenseLedger()
        updated = ledger.with_record(DailyRecord(date="2025-08-01"))
        assert "2025-08-01" in updated
        assert ledger.is_empty()

    def test_payload_round_trip(self):
        snapshot = {
            "2025-08-01": {
                "a": {
                    "entries": [{"amount": "500", "description": "Lunch", "recorded_at": 1}],
                    "last_writer": "uid-a",
                },
            },
        }
        assert ExpenseLedger.from_payload(snapshot).to_payload() == snapshot


class TestContestRules:
    """Tests for contest configuration."""

    def test_defaults(self):
        rules = ContestRules()
        assert rules.name_of(Participant.A) == "Sota"
        assert rules.name_of(Participant.B) == "Renma"
        assert rules.goal_of(Participant.A) == 80000
        assert rules.goal_of(Participant.B) == 120000
        assert rules.handicap == Decimal("1.5")

    def test_rejects_non_positive_goal(self):
        with pytest.raises(ValueError):
            ContestRules(goal_a=Decimal("0"))

    def test_rejects_non_positive_handicap(self):
        with pytest.raises(ValueError):
            ContestRules(handicap=Decimal("-1"))

    def test_from_settings(self, monkeypatch):
        monkeypatch.setenv("CONTEST_PARTICIPANT_A_NAME", "Alice")
        monkeypatch.setenv("CONTEST_GOAL_A", "50000")
        monkeypatch.setenv("CONTEST_HANDICAP", "2")

        rules = ContestRules.from_settings(ContestSettings())

        assert rules.name_a == "Alice"
        assert rules.name_b == "Renma"
        assert rules.goal_a == 50000
        assert rules.handicap == 2

    def test_participant_other(self):
        assert Participant.A.other is Participant.B
        assert Participant.B.other is Participant.A


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        event = AuditEvent(
            event_type=AuditEventType.EXPENSE_COMMITTED,
            description="Expense recorded",
        )
        assert event.event_type == AuditEventType.EXPENSE_COMMITTED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        event = AuditEventBuilder.expense_committed(
            date="2025-08-01",
            participant="a",
            amount="1200",
            correlation_id=uuid4(),
            writer_id="uid-a",
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "expense_committed"
        assert log_dict["entity_id"] == "2025-08-01"
        assert log_dict["details"]["amount"] == "1200"

    def test_audit_event_to_sheets_row(self):
        event = AuditEventBuilder.participant_selected("b")
        row = event.to_sheets_row()
        assert len(row) == 11  # Expected number of columns
        assert row[2] == "participant_selected"
        assert row[10] == "True"  # is_user_action

    def test_commit_failed_is_error(self):
        event = AuditEventBuilder.commit_failed(
            date="2025-08-01",
            participant="a",
            error_message="boom",
            correlation_id=uuid4(),
        )
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "boom"

    def test_snapshot_applied_is_debug(self):
        event = AuditEventBuilder.snapshot_applied(3)
        assert event.severity == AuditSeverity.DEBUG
        assert event.details["date_count"] == 3


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
