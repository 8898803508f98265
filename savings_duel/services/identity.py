"""
Identity and Local Participant Choice

Two small boundary services:

1. IdentityProvider - who is writing. The id is stamped on the slot as
   ``last_writer``. It is a label only; nothing checks it against the
   participant being written for.
2. ParticipantPreference - which participant this device logs for,
   remembered in a local file so it survives reloads. It is never
   shared across devices.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

import structlog
from pydantic import BaseModel, Field, ValidationError

from savings_duel.models.expense import Participant


logger = structlog.get_logger(__name__)


class IdentityProvider(ABC):
    """Supplies the opaque id of the current writer."""

    @abstractmethod
    def current_writer_id(self) -> Optional[str]:
        """Return the writer id, or None if nobody is signed in."""
        pass


class StaticIdentityProvider(IdentityProvider):
    """Identity fixed at startup, e.g. from the WRITER_ID setting."""

    def __init__(self, writer_id: Optional[str]):
        self._writer_id = writer_id.strip() if writer_id else None

    def current_writer_id(self) -> Optional[str]:
        return self._writer_id or None


class StoredPreference(BaseModel):
    """On-disk shape of the participant choice."""

    participant: Participant
    chosen_at: datetime = Field(default_factory=datetime.utcnow)


class ParticipantPreference:
    """Local get/set of the participant this device records for."""

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[Participant]:
        """
        Return the saved participant, or None.

        An unreadable or corrupt file counts as "not chosen yet".
        """
        if not self._path.exists():
            return None
        try:
            stored = StoredPreference.model_validate_json(
                self._path.read_text(encoding="utf-8")
            )
        except (OSError, ValidationError) as e:
            logger.warning(
                "participant_preference_unreadable",
                path=str(self._path),
                error=str(e),
            )
            return None
        return stored.participant

    def save(self, participant: Participant) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        stored = StoredPreference(participant=participant)
        self._path.write_text(stored.model_dump_json(), encoding="utf-8")

    def clear(self) -> None:
        if self._path.exists():
            self._path.unlink()
