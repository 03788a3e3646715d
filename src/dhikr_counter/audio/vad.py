import numpy as np
from typing import List

from dhikr_counter.config import cfg
from dhikr_counter.models import VadEvent

class Vad:
    def __init__(self, threshold: float | None = None, sample_rate: int | None = None):
        self.sample_rate = cfg.target_rate if sample_rate is None else sample_rate
        self.frame_size = 512
        self.frame_duration_ms = (self.frame_size / self.sample_rate) * 1000.0

        # Audio buffer
        self.buffer = np.array([], dtype=np.float32)

        # RMS threshold for speech activity
        self.threshold = cfg.vad_threshold if threshold is None else threshold

    def process_chunk(self, float_chunk: np.ndarray) -> List[bool]:
        """
        Process a chunk of float32 audio.
        Returns a list of booleans (is_speech) corresponding to frames found in the chunk.
        """
        if float_chunk.dtype != np.float32:
            float_chunk = float_chunk.astype(np.float32)

        self.buffer = np.concatenate((self.buffer, float_chunk))

        results = []

        while len(self.buffer) >= self.frame_size:
            frame = self.buffer[:self.frame_size]
            self.buffer = self.buffer[self.frame_size:]

            rms = np.sqrt(np.mean(frame ** 2))
            results.append(bool(rms > self.threshold))

        return results


class PauseDetector:
    """
    Turns per-frame speech flags into utterance boundaries. A pause longer
    than min_silence_ms ends the utterance, which for recitation is the gap
    between two phrases or two rounds of a phrase.
    """

    def __init__(self, threshold: float | None = None):
        self.vad = Vad(threshold=threshold)

        # State
        self.triggered = False

        # Frame counters
        self.num_voiced = 0
        self.num_silence = 0

        self.frame_duration_ms = self.vad.frame_duration_ms
        self.min_speech_frames = int(cfg.min_speech_ms / self.frame_duration_ms)
        self.min_silence_frames = int(cfg.min_silence_ms / self.frame_duration_ms)

    def process(self, chunk: np.ndarray, chunk_start_ts: float) -> List[VadEvent]:
        events = []

        frame_duration_s = self.frame_duration_ms / 1000.0
        current_ts = chunk_start_ts

        for is_speech in self.vad.process_chunk(chunk):
            if self.triggered:
                if is_speech:
                    self.num_silence = 0
                else:
                    self.num_silence += 1

                if self.num_silence > self.min_silence_frames:
                    self.triggered = False
                    events.append(VadEvent(ts=current_ts, event_type="speech_end"))
                    self.num_silence = 0
            else:
                if is_speech:
                    self.num_voiced += 1
                else:
                    self.num_voiced = 0

                if self.num_voiced > self.min_speech_frames:
                    self.triggered = True
                    # Backtrack timestamp for start
                    start_ts = current_ts - (self.num_voiced * frame_duration_s)
                    events.append(VadEvent(ts=start_ts, event_type="speech_start"))
                    self.num_voiced = 0

            current_ts += frame_duration_s

        return events

    def reset(self):
        """Forget any utterance in progress, e.g. when listening is paused."""
        self.triggered = False
        self.num_voiced = 0
        self.num_silence = 0
        self.vad.buffer = np.array([], dtype=np.float32)

    @property
    def in_speech(self) -> bool:
        return self.triggered
