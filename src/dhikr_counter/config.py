from dataclasses import dataclass
import os
from dotenv import load_dotenv

load_dotenv()

@dataclass
class Config:
    # --- Audio Capture ---
    capture_device: str | None = os.getenv("CAPTURE_DEVICE", None)
    capture_channels: int = 1
    target_rate: int = 16000
    capture_blocksize: int = 1024
    capture_gain: float = float(os.getenv("CAPTURE_GAIN", "1.0"))

    # --- VAD ---
    vad_threshold: float = float(os.getenv("VAD_THRESHOLD", "0.01"))  # RMS level, raise for noisy rooms
    min_silence_ms: int = 700
    min_speech_ms: int = 200
    preroll_s: float = 0.6
    max_utterance_s: float = 20.0

    # --- ASR ---
    asr_model: str = os.getenv("ASR_MODEL", "small")
    asr_device: str = os.getenv("ASR_DEVICE", "cpu")
    asr_compute_type: str = os.getenv("ASR_COMPUTE_TYPE", "int8")
    asr_language: str | None = os.getenv("ASR_LANGUAGE", "ar") or None
    update_interval_s: float = 0.5
    asr_beam_size_streaming: int = int(os.getenv("ASR_BEAM_SIZE_STREAMING", "1"))
    asr_beam_size_final: int = int(os.getenv("ASR_BEAM_SIZE_FINAL", "5"))
    asr_prompt_max_chars: int = int(os.getenv("ASR_PROMPT_MAX_CHARS", "200"))
    asr_temperature: float = 0.0
    asr_no_speech_threshold: float = 0.6
    min_decode_s: float = 0.5  # Shorter audio is not worth a decode

    # --- Counting ---
    anim_interval_ms: int = int(os.getenv("ANIM_INTERVAL_MS", "120"))
    duplicate_window_s: float = float(os.getenv("DUPLICATE_WINDOW_S", "1.5"))
    lexicon_path: str | None = os.getenv("LEXICON_PATH", None)
    log_interim: bool = os.getenv("LOG_INTERIM", "false").lower() == "true"

    # --- Output ---
    overlay_enabled: bool = True
    headless_poll_s: float = 0.02

    # --- Hotkeys ---
    hotkey_toggle: str = os.getenv("HOTKEY_TOGGLE", "f8")
    hotkey_reset: str = os.getenv("HOTKEY_RESET", "f9")
    hotkey_stop: str = os.getenv("HOTKEY_STOP", "f10")

# Global instance
cfg = Config()
