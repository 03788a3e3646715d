import threading
import time
import queue
from faster_whisper import WhisperModel

from dhikr_counter.config import cfg
from dhikr_counter.matching.lexicon import Lexicon, recognizer_hint
from dhikr_counter.models import RevisionEvent, VadEvent
from dhikr_counter.utterance_buffer import UtteranceBuffer

class AsrWorker:
    """
    Decodes the utterance in progress and publishes its transcript revisions.

    Every utterance (VAD speech_start .. speech_end) is one result slot.
    While speech continues the slot receives interim revisions; speech_end
    triggers one more decode with the final beam size, published as final.
    Slot indices only grow for the lifetime of the worker.
    """

    def __init__(self, buffer: UtteranceBuffer, vad_queue: queue.Queue,
                 revision_queue: queue.Queue, lexicon: Lexicon):
        self.buffer = buffer
        self.vad_queue = vad_queue
        self.revision_queue = revision_queue
        self.initial_prompt = recognizer_hint(lexicon, cfg.asr_prompt_max_chars) or None

        self.running = False
        self.thread = None

        self.model = None
        self.paused = True
        self.pause_lock = threading.Lock()
        self.control_queue: queue.Queue[str] = queue.Queue()

        self.is_speech_active = False
        self.next_slot = 0
        self.current_slot: int | None = None
        self.last_text = ""

    def _load_model(self):
        print(f"[ASR] Loading Whisper model: {cfg.asr_model} on {cfg.asr_device}...")
        try:
            self.model = WhisperModel(
                cfg.asr_model,
                device=cfg.asr_device,
                compute_type=cfg.asr_compute_type
            )
            print("[ASR] Model loaded.")
        except Exception as e:
            print(f"[ASR] Failed to load model: {e}")
            raise e

    def _run(self):
        while self.running:
            self._apply_control_commands()

            if self.is_paused():
                self._drain_vad_events()
                time.sleep(0.05)
                continue

            try:
                self._process_vad_events()

                if self.is_speech_active:
                    start_time = time.time()
                    self._decode_step(final=False)

                    elapsed = time.time() - start_time
                    time.sleep(max(0.0, cfg.update_interval_s - elapsed))
                else:
                    time.sleep(0.05)  # Idle wait
            except Exception as e:
                print(f"[ASR] Error: {e}")
                time.sleep(0.2)

    def _drain_vad_events(self):
        try:
            while True:
                self.vad_queue.get_nowait()
        except queue.Empty:
            pass

    def _set_paused_internal(self, value: bool):
        with self.pause_lock:
            self.paused = value

    def _pause(self):
        self._set_paused_internal(True)
        if self.is_speech_active:
            # The open slot is abandoned without a final revision
            print(f"[ASR] Slot {self.current_slot} abandoned")
            self.buffer.end()
        self.is_speech_active = False
        self.current_slot = None
        print("[ASR] Listening paused")

    def _resume(self):
        self._set_paused_internal(False)
        self.revision_queue.put(RevisionEvent.session_started(time.time()))
        print("[ASR] Listening resumed")

    def _apply_control_commands(self):
        try:
            while True:
                cmd = self.control_queue.get_nowait()
                if cmd == "resume" and self.is_paused():
                    self._resume()
                elif cmd == "pause" and not self.is_paused():
                    self._pause()
                elif cmd == "toggle":
                    if self.is_paused():
                        self._resume()
                    else:
                        self._pause()
        except queue.Empty:
            pass

    def _process_vad_events(self):
        try:
            while True:
                event: VadEvent = self.vad_queue.get_nowait()
                if event.event_type == "speech_start":
                    if not self.is_speech_active:
                        self.is_speech_active = True
                        self.current_slot = self.next_slot
                        self.next_slot += 1
                        self.last_text = ""
                        self.buffer.begin()
                        print(f"[ASR] Speech started at {event.ts:.2f} (slot {self.current_slot})")
                elif event.event_type == "speech_end":
                    if self.is_speech_active:
                        self.is_speech_active = False
                        print(f"[ASR] Speech ended at {event.ts:.2f}")
                        self._decode_step(final=True)
                        self.current_slot = None
        except queue.Empty:
            pass

    def is_paused(self) -> bool:
        with self.pause_lock:
            return self.paused

    def resume_listening(self):
        self.control_queue.put("resume")

    def pause_listening(self):
        self.control_queue.put("pause")

    def toggle_listening(self):
        self.control_queue.put("toggle")

    def transcribe(self, audio, final: bool) -> str:
        segments, info = self.model.transcribe(
            audio,
            language=cfg.asr_language,
            task="transcribe",
            beam_size=cfg.asr_beam_size_final if final else cfg.asr_beam_size_streaming,
            vad_filter=False,  # Own VAD already cut the utterance
            temperature=cfg.asr_temperature,
            no_speech_threshold=cfg.asr_no_speech_threshold,
            condition_on_previous_text=False,
            initial_prompt=self.initial_prompt,
        )
        return "".join(seg.text for seg in segments).strip()

    def _decode_step(self, final=False):
        if self.current_slot is None:
            return
        if not final and self.buffer.duration_s(cfg.target_rate) < cfg.min_decode_s:
            return

        audio = self.buffer.end() if final else self.buffer.snapshot()

        text = ""
        if len(audio) >= int(cfg.min_decode_s * cfg.target_rate):
            text = self.transcribe(audio, final)
        elif final:
            # Too short to decode again; keep the last interim transcript
            text = self.last_text

        if not final and (not text or text == self.last_text):
            return

        self.last_text = text
        self.revision_queue.put(RevisionEvent(
            slot_index=self.current_slot,
            text=text,
            is_final=final,
            ts=time.time(),
        ))

    def start(self):
        # Load errors propagate to the caller
        if self.model is None:
            self._load_model()
        self.running = True
        self.thread = threading.Thread(target=self._run, daemon=True)
        self.thread.start()

    def stop(self):
        self.running = False
        if self.thread:
            self.thread.join()
