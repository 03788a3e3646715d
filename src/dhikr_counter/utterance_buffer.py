import numpy as np
import threading

class UtteranceBuffer:
    """
    Holds the audio of the utterance in progress.

    While idle only the last `preroll_samples` are kept, so the start of a
    phrase spoken just before the VAD triggers is not lost. Between begin()
    and end() everything is kept, up to `max_samples` (oldest dropped first).
    """

    def __init__(self, preroll_samples: int, max_samples: int, dtype=np.float32):
        self.preroll_samples = preroll_samples
        self.max_samples = max_samples
        self.dtype = dtype
        self.buffer = np.zeros(0, dtype=dtype)
        self.active = False
        self.lock = threading.Lock()

    def write(self, data: np.ndarray):
        """Append captured samples."""
        if len(data) == 0:
            return

        with self.lock:
            self.buffer = np.concatenate((self.buffer, data.astype(self.dtype, copy=False)))
            limit = self.max_samples if self.active else self.preroll_samples
            if len(self.buffer) > limit:
                self.buffer = self.buffer[-limit:] if limit > 0 else np.zeros(0, dtype=self.dtype)

    def begin(self):
        """Start an utterance; the current pre-roll becomes its beginning."""
        with self.lock:
            self.active = True

    def end(self) -> np.ndarray:
        """Close the utterance and return its audio."""
        with self.lock:
            audio = self.buffer.copy()
            self.active = False
            self.buffer = np.zeros(0, dtype=self.dtype)
            return audio

    def snapshot(self) -> np.ndarray:
        """Audio of the current utterance so far (or the pre-roll when idle)."""
        with self.lock:
            return self.buffer.copy()

    def duration_s(self, sample_rate: int) -> float:
        with self.lock:
            return len(self.buffer) / sample_rate
