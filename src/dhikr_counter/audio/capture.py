import queue
import numpy as np
import sounddevice as sd
import scipy.signal
from typing import Optional

from dhikr_counter.config import cfg
from dhikr_counter.utterance_buffer import UtteranceBuffer

class AudioCapture:
    def __init__(self, buffer: UtteranceBuffer, vad_audio_queue: Optional[queue.Queue] = None):
        self.buffer = buffer
        self.vad_audio_queue = vad_audio_queue
        self.running = False
        self.stream: Optional[sd.InputStream] = None
        self.device_info = None

    def find_input_device(self):
        """Pick the configured microphone, or the system default input."""
        devices = sd.query_devices()
        candidates = [dev for dev in devices if dev["max_input_channels"] > 0]

        if not candidates:
            print("[CAPTURE] No input device found.")
            return None

        # Priority 1: Configured device
        if cfg.capture_device:
            print(f"[CAPTURE] Searching for configured device: '{cfg.capture_device}'")
            for dev in candidates:
                if cfg.capture_device.lower() in dev["name"].lower():
                    print(f"[CAPTURE] Selected input device (matched config): {dev['name']}")
                    return dev
            print(f"[CAPTURE] Warning: Configured device '{cfg.capture_device}' not found.")

        # Priority 2: System default input
        try:
            default_dev = sd.query_devices(kind="input")
            print(f"[CAPTURE] Selected default input device: {default_dev['name']}")
            return default_dev
        except sd.PortAudioError as e:
            print(f"[CAPTURE] No default input device: {e}")

        # Priority 3: First available
        print(f"[CAPTURE] Selecting first available input: {candidates[0]['name']}")
        return candidates[0]

    def _callback(self, indata, frames, time_info, status):
        """Callback for the sounddevice stream (runs on the PortAudio thread)."""
        if status:
            print(f"[CAPTURE] {status}")

        audio_data = indata.astype(np.float32)
        if audio_data.ndim > 1:
            # Downmix to mono: average channels
            audio_data = audio_data.mean(axis=1)

        stream_rate = int(self.device_info["default_samplerate"])
        if stream_rate != cfg.target_rate:
            target_samples = int(len(audio_data) * cfg.target_rate / stream_rate)
            audio_data = scipy.signal.resample(audio_data, target_samples)

        if cfg.capture_gain != 1.0:
            audio_data = audio_data * cfg.capture_gain

        audio_data = audio_data.astype(np.float32)
        if self.vad_audio_queue:
            self.vad_audio_queue.put(audio_data)

        self.buffer.write(audio_data)

    def start(self):
        self.device_info = self.find_input_device()
        if not self.device_info:
            raise RuntimeError("Cannot find an input device")

        print(f"[CAPTURE] Starting capture on: {self.device_info['name']}")

        self.stream = sd.InputStream(
            device=self.device_info["index"],
            channels=min(cfg.capture_channels, self.device_info["max_input_channels"]),
            samplerate=int(self.device_info["default_samplerate"]),
            blocksize=cfg.capture_blocksize,
            dtype="float32",
            callback=self._callback,
        )
        self.running = True
        self.stream.start()

    def stop(self):
        self.running = False
        if self.stream:
            self.stream.stop()
            self.stream.close()
            self.stream = None
