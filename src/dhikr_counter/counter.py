import time
from typing import Callable, Dict, Optional

from dhikr_counter.animator import DisplayAnimator, LoopTickScheduler, TickScheduler
from dhikr_counter.config import cfg
from dhikr_counter.matching.lexicon import Lexicon
from dhikr_counter.matching.matcher import Matcher
from dhikr_counter.matching.normalizer import normalize, tokenize
from dhikr_counter.models import PhraseKey, RevisionEvent
from dhikr_counter.recent_finals import RecentFinalsGuard

Snapshot = Dict[PhraseKey, int]


class PhraseCounter:
    """
    Folds a stream of transcript revisions into per-phrase counts.

    Each result slot is revised by the recognizer until it becomes final.
    Only final revisions commit, and only the part of the slot's snapshot
    that has not been applied yet, so committed counts never go down.
    All methods must be called from one thread.
    """

    def __init__(self, lexicon: Lexicon, scheduler: Optional[TickScheduler] = None,
                 guard: Optional[RecentFinalsGuard] = None,
                 clock: Callable[[], float] = time.time,
                 on_change: Optional[Callable[[PhraseKey, int], None]] = None):
        self.lexicon = lexicon
        self.matcher = Matcher(lexicon)
        self.guard = guard or RecentFinalsGuard(window_s=cfg.duplicate_window_s, clock=clock)
        self.committed: Dict[PhraseKey, int] = {key: 0 for key in lexicon.keys}
        self.animator = DisplayAnimator(
            self.committed,
            lexicon.keys,
            scheduler or LoopTickScheduler(clock=clock),
            interval_s=cfg.anim_interval_ms / 1000.0,
            on_change=on_change,
        )

        # Per result slot
        self.last_occurrences: Dict[int, Snapshot] = {}
        self.last_applied: Dict[int, Snapshot] = {}

    def on_revision(self, slot_index: int, transcript_text: Optional[str], is_final: bool):
        normalized = normalize(transcript_text)
        tokens = tokenize(normalized)
        current = self.matcher.match_all(tokens)
        self.last_occurrences[slot_index] = current

        if not is_final:
            if cfg.log_interim:
                spans = [(key, " ".join(tokens[start:end])) for start, end, key in self.matcher.spans(tokens)]
                print(f"[COUNTER] Interim[{slot_index}]: {transcript_text!r} {spans}")
            return

        # Slots before a final are never revised again
        self._forget_slots_before(slot_index)

        if self.guard.is_duplicate(normalized):
            print(f"[COUNTER] Duplicate final[{slot_index}] ignored: {transcript_text!r}")
            return

        applied = self.last_applied.get(slot_index, {})
        for key in self.committed:
            delta = max(0, current.get(key, 0) - applied.get(key, 0))
            if delta > 0:
                self.committed[key] += delta
                self.animator.start_animation_for_key(key)
        self.last_applied[slot_index] = current

        print(f"[COUNTER] Final[{slot_index}]: {transcript_text!r} {self._nonzero(current)} "
              f"committed: {self._nonzero(self.committed)}")

    def on_event(self, event: RevisionEvent):
        if event.is_session_start:
            self.on_session_start()
        else:
            self.on_revision(event.slot_index, event.text, event.is_final)

    def on_session_start(self):
        # Recognizer slot numbering restarts with each session; counts carry over
        self.last_occurrences.clear()
        self.last_applied.clear()

    def on_reset(self):
        self.animator.reset()
        self.last_occurrences.clear()
        self.last_applied.clear()
        self.guard.clear()
        print("[COUNTER] Counts reset")

    def get_displayed_counts(self) -> Dict[PhraseKey, int]:
        return dict(self.animator.displayed)

    def get_committed_counts(self) -> Dict[PhraseKey, int]:
        return dict(self.committed)

    def total_committed(self) -> int:
        return sum(self.committed.values())

    def _forget_slots_before(self, slot_index: int):
        for table in (self.last_occurrences, self.last_applied):
            for slot in [s for s in table if s < slot_index]:
                del table[slot]

    @staticmethod
    def _nonzero(counts: Snapshot) -> Snapshot:
        return {k: v for k, v in counts.items() if v}
