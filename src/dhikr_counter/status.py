from dhikr_counter.models import RevisionEvent

class ListeningStatus:
    """Status line shown under the counters."""

    def __init__(self, toggle_key: str):
        self.toggle_key = toggle_key.upper()
        self.started = False
        self.listening = False
        self.interim = False
        self.was_reset = False

    def on_listening_changed(self, listening: bool):
        if listening:
            self.started = True
            self.was_reset = False
        self.listening = listening
        self.interim = False

    def on_event(self, event: RevisionEvent):
        if not event.is_session_start:
            self.interim = not event.is_final

    def on_reset(self):
        self.was_reset = True
        self.interim = False

    def text(self) -> str:
        if self.listening:
            return "Listening... (interim)" if self.interim else "Listening..."
        if self.was_reset:
            return f"Counts reset. Press {self.toggle_key} to start listening."
        if self.started:
            return "Stopped listening."
        return f"Press {self.toggle_key} to start listening."
