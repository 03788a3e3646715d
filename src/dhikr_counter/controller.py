import queue
from typing import Optional

from dhikr_counter.counter import PhraseCounter
from dhikr_counter.models import RevisionEvent
from dhikr_counter.status import ListeningStatus

class CounterController:
    """
    The single consumer of revision events and user commands.

    Hotkeys fire on their own thread and the recognizer runs on another, so
    both only enqueue; poll() applies everything on the caller's thread,
    which is the only thread that touches counter state.
    """

    def __init__(self, counter: PhraseCounter, revision_queue: queue.Queue,
                 command_queue: queue.Queue, status: ListeningStatus, asr=None):
        self.counter = counter
        self.revision_queue = revision_queue
        self.command_queue = command_queue
        self.status = status
        self.asr = asr
        self.listening = False
        self.stop_requested = False

    def poll(self) -> bool:
        """Apply pending commands and revisions. Returns True if anything changed."""
        changed = self._apply_commands()
        try:
            while True:
                event: RevisionEvent = self.revision_queue.get_nowait()
                if not self.listening and not event.is_session_start:
                    # Late revision from a slot abandoned by pause or reset
                    continue
                self.counter.on_event(event)
                self.status.on_event(event)
                changed = True
        except queue.Empty:
            pass
        return changed

    def _apply_commands(self) -> bool:
        changed = False
        try:
            while True:
                cmd = self.command_queue.get_nowait()
                if cmd == "toggle":
                    self.toggle()
                elif cmd == "reset":
                    self.reset()
                elif cmd == "stop":
                    self.stop_requested = True
                else:
                    print(f"[CONTROL] Unknown command: {cmd}")
                    continue
                changed = True
        except queue.Empty:
            pass
        return changed

    def toggle(self):
        self.listening = not self.listening
        if self.asr is not None:
            self.asr.toggle_listening()
        self.status.on_listening_changed(self.listening)

    def reset(self):
        if self.listening:
            self.listening = False
            if self.asr is not None:
                self.asr.pause_listening()
            self.status.on_listening_changed(False)
        self.counter.on_reset()
        self.status.on_reset()

    def summary(self) -> Optional[str]:
        counts = self.counter.get_displayed_counts()
        parts = [f"{key}={value}" for key, value in counts.items() if value]
        return ", ".join(parts) if parts else None
