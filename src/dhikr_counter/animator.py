import time
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Protocol

from dhikr_counter.models import PhraseKey


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class TickScheduler(Protocol):
    def schedule_repeating(self, interval_s: float, fn: Callable[[], None]) -> TimerHandle: ...


class _LoopTimer:
    def __init__(self, interval_s: float, fn: Callable[[], None], due: float):
        self.interval_s = interval_s
        self.fn = fn
        self.due = due
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class LoopTickScheduler:
    """Cooperative timers for a plain polling loop: call run_pending() regularly."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self.timers: List[_LoopTimer] = []

    def schedule_repeating(self, interval_s: float, fn: Callable[[], None]) -> _LoopTimer:
        timer = _LoopTimer(interval_s, fn, self.clock() + interval_s)
        self.timers.append(timer)
        return timer

    def run_pending(self, now: Optional[float] = None) -> int:
        """Fire every due timer at most once. Returns the number of callbacks run."""
        now = self.clock() if now is None else now
        fired = 0
        for timer in list(self.timers):
            if timer.cancelled or timer.due > now:
                continue
            timer.due = now + timer.interval_s
            timer.fn()
            fired += 1
        self.timers = [t for t in self.timers if not t.cancelled]
        return fired

    def active_count(self) -> int:
        return sum(1 for t in self.timers if not t.cancelled)


class AnimationState(Enum):
    IDLE = "idle"
    ANIMATING = "animating"


class DisplayAnimator:
    """
    Moves each displayed count one step per tick towards its committed count.
    `committed` is shared with the counter and only read here, except on reset.
    """

    def __init__(self, committed: Dict[PhraseKey, int], keys: Iterable[PhraseKey],
                 scheduler: TickScheduler, interval_s: float = 0.12,
                 on_change: Optional[Callable[[PhraseKey, int], None]] = None):
        self.committed = committed
        self.scheduler = scheduler
        self.interval_s = interval_s
        self.on_change = on_change
        self.displayed: Dict[PhraseKey, int] = {key: 0 for key in keys}
        self.timers: Dict[PhraseKey, TimerHandle] = {}

    def state(self, key: PhraseKey) -> AnimationState:
        return AnimationState.ANIMATING if key in self.timers else AnimationState.IDLE

    def is_animating(self) -> bool:
        return bool(self.timers)

    def start_animation_for_key(self, key: PhraseKey):
        if key in self.timers:
            return
        self.displayed.setdefault(key, 0)
        self.timers[key] = self.scheduler.schedule_repeating(self.interval_s, lambda: self.tick(key))

    def tick(self, key: PhraseKey):
        target = self.committed.get(key, 0)
        shown = self.displayed.get(key, 0)
        if shown < target:
            self.displayed[key] = shown + 1
        elif shown > target:
            self.displayed[key] = shown - 1
        else:
            self._stop(key)
            return
        if self.on_change:
            self.on_change(key, self.displayed[key])

    def _stop(self, key: PhraseKey):
        timer = self.timers.pop(key, None)
        if timer is not None:
            timer.cancel()

    def reset(self):
        for key in list(self.timers):
            self._stop(key)
        for key in self.committed:
            self.committed[key] = 0
        for key in self.displayed:
            self.displayed[key] = 0
            if self.on_change:
                self.on_change(key, 0)
