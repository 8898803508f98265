"""
Expense Ledger Models

The ledger is the engine's only input: a mapping from calendar date to
the expenses both participants logged that day.

DESIGN DECISION: Every model here is frozen. Writes never mutate a record
in place; they build a new record (``with_entry``) and hand it to the
store. The scoring engine always folds over an immutable snapshot.

Dates are plain ``YYYY-MM-DD`` strings in the participant's local calendar.
No timezone conversion happens anywhere in the engine, and lexicographic
order of the keys is chronological order.
"""

from datetime import date as date_type, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)


DATE_KEY_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
MONTH_KEY_PATTERN = r"^\d{4}-\d{2}$"

DEFAULT_HANDICAP = Decimal("1.5")


def now_epoch_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(datetime.now().timestamp() * 1000)


# =============================================================================
# ENUMS
# =============================================================================

class Participant(str, Enum):
    """
    The two fixed competitors.

    Roles, not names: participant A is the side whose total is multiplied
    by the handicap. Display names live in ContestRules.
    """
    A = "a"
    B = "b"

    @property
    def other(self) -> "Participant":
        return Participant.B if self is Participant.A else Participant.A


# =============================================================================
# LEDGER MODELS
# =============================================================================

class ExpenseEntry(BaseModel):
    """A single logged expense. Immutable once created."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    amount: Decimal = Field(
        ...,
        ge=0,
        description="Amount spent, in the contest's currency unit"
    )
    description: str = Field(
        ...,
        min_length=1,
        description="What the money was spent on"
    )
    recorded_at: Union[int, float] = Field(
        default_factory=now_epoch_ms,
        description="Epoch milliseconds; orders entries within a day only"
    )

    @field_validator("recorded_at")
    @classmethod
    def validate_recorded_at(cls, v: Union[int, float]) -> Union[int, float]:
        if v < 0:
            raise ValueError("recorded_at cannot be negative")
        return v

    def to_payload(self) -> dict:
        return {
            "amount": str(self.amount),
            "description": self.description,
            "recorded_at": self.recorded_at,
        }


class ParticipantSlot(BaseModel):
    """One participant's expenses for one date, in append order."""

    model_config = ConfigDict(frozen=True)

    entries: tuple[ExpenseEntry, ...] = Field(default_factory=tuple)
    last_writer: Optional[str] = Field(
        default=None,
        description="Opaque id of whoever last wrote this slot"
    )

    def appended(self, entry: ExpenseEntry, writer: Optional[str]) -> "ParticipantSlot":
        """Return a new slot with ``entry`` pushed onto the end."""
        return ParticipantSlot(
            entries=self.entries + (entry,),
            last_writer=writer,
        )

    def to_payload(self) -> dict:
        return {
            "entries": [entry.to_payload() for entry in self.entries],
            "last_writer": self.last_writer,
        }


class DailyRecord(BaseModel):
    """
    Everything logged for one calendar date.

    A record may hold a slot for zero, one, or both participants.
    An absent slot and an empty slot both mean "no spending".
    """

    model_config = ConfigDict(frozen=True)

    date: str = Field(
        ...,
        pattern=DATE_KEY_PATTERN,
        description="Calendar date key, YYYY-MM-DD"
    )
    slots: dict[Participant, ParticipantSlot] = Field(default_factory=dict)

    @field_validator("date")
    @classmethod
    def validate_calendar_date(cls, v: str) -> str:
        """Reject well-shaped but impossible dates such as 2025-02-30."""
        date_type.fromisoformat(v)
        return v

    def slot(self, participant: Participant) -> Optional[ParticipantSlot]:
        return self.slots.get(participant)

    def entries_for(self, participant: Participant) -> tuple[ExpenseEntry, ...]:
        slot = self.slots.get(participant)
        return slot.entries if slot else ()

    def with_entry(
        self,
        participant: Participant,
        entry: ExpenseEntry,
        writer: Optional[str],
    ) -> "DailyRecord":
        """Return a new record with ``entry`` appended to one participant's slot."""
        current = self.slots.get(participant) or ParticipantSlot()
        slots = dict(self.slots)
        slots[participant] = current.appended(entry, writer)
        return DailyRecord(date=self.date, slots=slots)

    @classmethod
    def from_payload(cls, date_key: str, payload: Mapping[str, Any]) -> "DailyRecord":
        """
        Build a record from a raw store document.

        Keys other than the participant wire values are document
        metadata and are ignored here (the store preserves them).
        """
        known = {p.value for p in Participant}
        slots = {
            key: value
            for key, value in payload.items()
            if key in known and value is not None
        }
        return cls(date=date_key, slots=slots)

    def to_payload(self) -> dict:
        return {
            participant.value: slot.to_payload()
            for participant, slot in self.slots.items()
        }


class SnapshotDecodeError(ValueError):
    """A store snapshot could not be turned into a ledger."""
    pass


class ExpenseLedger(BaseModel):
    """
    The full expense log, keyed by date.

    Storage order is irrelevant; consumers call ``sorted_dates``.
    """

    model_config = ConfigDict(frozen=True)

    records: dict[str, DailyRecord] = Field(default_factory=dict)

    @model_validator(mode="after")
    def validate_keys(self) -> "ExpenseLedger":
        """Each record must sit under its own date key."""
        for key, record in self.records.items():
            if key != record.date:
                raise ValueError(
                    f"Ledger key {key} does not match record date {record.date}"
                )
        return self

    def __len__(self) -> int:
        return len(self.records)

    def __contains__(self, date_key: object) -> bool:
        return date_key in self.records

    def get(self, date_key: str) -> Optional[DailyRecord]:
        return self.records.get(date_key)

    def sorted_dates(self) -> list[str]:
        return sorted(self.records)

    def is_empty(self) -> bool:
        return not self.records

    def with_record(self, record: DailyRecord) -> "ExpenseLedger":
        records = dict(self.records)
        records[record.date] = record
        return ExpenseLedger(records=records)

    def for_month(self, month: str) -> "ExpenseLedger":
        """Sub-ledger of a single calendar month (``YYYY-MM``)."""
        prefix = f"{month}-"
        return ExpenseLedger(records={
            key: record
            for key, record in self.records.items()
            if key.startswith(prefix)
        })

    def months(self) -> list[str]:
        return sorted({key[:7] for key in self.records})

    @classmethod
    def from_payload(cls, snapshot: Mapping[str, Mapping[str, Any]]) -> "ExpenseLedger":
        """
        Decode a whole-collection snapshot.

        All-or-nothing: if any document is malformed, no ledger is built.
        """
        try:
            records = {
                date_key: DailyRecord.from_payload(date_key, payload or {})
                for date_key, payload in snapshot.items()
            }
            return cls(records=records)
        except (ValidationError, ValueError, TypeError, AttributeError) as e:
            raise SnapshotDecodeError(f"Invalid ledger snapshot: {e}") from e

    def to_payload(self) -> dict[str, dict]:
        return {key: record.to_payload() for key, record in self.records.items()}


# =============================================================================
# CONTEST CONFIGURATION
# =============================================================================

class ContestRules(BaseModel):
    """
    Names, monthly goals, and handicap for one contest.

    Goals and the handicap must be positive. A bad value is a configuration
    error and fails here, at startup, rather than inside the engine.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    name_a: str = Field(default="Sota", min_length=1)
    name_b: str = Field(default="Renma", min_length=1)
    goal_a: Decimal = Field(default=Decimal("80000"), gt=0)
    goal_b: Decimal = Field(default=Decimal("120000"), gt=0)
    handicap: Decimal = Field(
        default=DEFAULT_HANDICAP,
        gt=0,
        description="Multiplier applied to participant A's total"
    )

    def name_of(self, participant: Participant) -> str:
        return self.name_a if participant is Participant.A else self.name_b

    def goal_of(self, participant: Participant) -> Decimal:
        return self.goal_a if participant is Participant.A else self.goal_b

    @classmethod
    def from_settings(cls, settings=None) -> "ContestRules":
        """Build rules from ContestSettings (loaded from the environment if omitted)."""
        if settings is None:
            from savings_duel.config import get_settings
            settings = get_settings().contest
        return cls(
            name_a=settings.participant_a_name,
            name_b=settings.participant_b_name,
            goal_a=settings.goal_a,
            goal_b=settings.goal_b,
            handicap=settings.handicap,
        )
