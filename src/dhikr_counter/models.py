from dataclasses import dataclass
from typing import Tuple

PhraseKey = str

# Slot index carried by the marker event that opens a new listening session
SESSION_START_SLOT = -1

@dataclass
class VadEvent:
    ts: float
    event_type: str      # "speech_start" | "speech_end"

@dataclass(frozen=True)
class Pattern:
    key: PhraseKey
    tokens: Tuple[str, ...]
    length: int

@dataclass
class RevisionEvent:
    slot_index: int      # one slot per utterance, SESSION_START_SLOT for the session marker
    text: str
    is_final: bool
    ts: float = 0.0

    @property
    def is_session_start(self) -> bool:
        return self.slot_index == SESSION_START_SLOT

    @classmethod
    def session_started(cls, ts: float) -> "RevisionEvent":
        return cls(slot_index=SESSION_START_SLOT, text="", is_final=False, ts=ts)
