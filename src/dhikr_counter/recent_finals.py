import time
from typing import Callable, List, Tuple


def simple_hash(text: str) -> int:
    """Order-sensitive 31-multiplier string hash, wrapped to a signed 32-bit int."""
    h = 0
    for ch in text:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    return h - 0x100000000 if h & 0x80000000 else h


class RecentFinalsGuard:
    """
    Remembers finalized transcripts for a short window so that a recognizer
    re-delivering the same final text under a new slot index is not counted
    twice. Equal hashes count as equal text.
    """

    def __init__(self, window_s: float = 1.5, clock: Callable[[], float] = time.time):
        self.window_s = window_s
        self.clock = clock
        self.entries: List[Tuple[int, float]] = []  # (hash, ts)

    def is_duplicate(self, normalized_text: str) -> bool:
        now = self.clock()
        self.entries = [(h, ts) for h, ts in self.entries if now - ts < self.window_s]
        h = simple_hash(normalized_text)
        if any(seen == h for seen, _ in self.entries):
            return True
        self.entries.append((h, now))
        return False

    def clear(self):
        self.entries = []
