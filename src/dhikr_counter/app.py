import sys
import threading
import queue
import time
import signal
import argparse
import keyboard

from PySide6.QtWidgets import QApplication

from dhikr_counter.config import cfg
from dhikr_counter.animator import LoopTickScheduler
from dhikr_counter.asr.worker import AsrWorker
from dhikr_counter.audio.capture import AudioCapture
from dhikr_counter.audio.vad import PauseDetector
from dhikr_counter.controller import CounterController
from dhikr_counter.counter import PhraseCounter
from dhikr_counter.matching.lexicon import LexiconError, default_lexicon, load_lexicon
from dhikr_counter.status import ListeningStatus
from dhikr_counter.ui.overlay import CounterWindow, QtTickScheduler
from dhikr_counter.utterance_buffer import UtteranceBuffer

# Global stop event
stop_event = threading.Event()
hotkeys_registered = False

def register_hotkeys(command_queue: queue.Queue):
    global hotkeys_registered
    if hotkeys_registered:
        return

    last_trigger: dict[str, float] = {"toggle": 0.0, "reset": 0.0, "stop": 0.0}

    def _debounced(name: str, interval_s: float = 0.35) -> bool:
        now = time.time()
        if now - last_trigger[name] < interval_s:
            return False
        last_trigger[name] = now
        return True

    def _send(name: str):
        if _debounced(name):
            print(f"[HOTKEY] {name}")
            command_queue.put(name)

    try:
        keyboard.add_hotkey(cfg.hotkey_toggle, lambda: _send("toggle"))
        keyboard.add_hotkey(cfg.hotkey_reset, lambda: _send("reset"))
        keyboard.add_hotkey(cfg.hotkey_stop, lambda: _send("stop"))
    except Exception as e:
        print(f"[HOTKEY] Registration failed: {e}")
        return
    hotkeys_registered = True
    print(f"Hotkeys registered: TOGGLE={cfg.hotkey_toggle.upper()} "
          f"RESET={cfg.hotkey_reset.upper()} STOP={cfg.hotkey_stop.upper()}")

def unregister_hotkeys():
    global hotkeys_registered
    if hotkeys_registered:
        keyboard.unhook_all_hotkeys()
        hotkeys_registered = False

def vad_thread_func(audio_queue: queue.Queue, event_queue: queue.Queue, asr):
    print("[VAD] Thread started")
    detector = PauseDetector()

    while not stop_event.is_set():
        try:
            chunk = audio_queue.get(timeout=1.0)

            if asr.is_paused():
                if detector.in_speech:
                    detector.reset()
                continue

            chunk_duration = len(chunk) / cfg.target_rate
            for v in detector.process(chunk, time.time() - chunk_duration):
                event_queue.put(v)

        except queue.Empty:
            continue
        except Exception as e:
            print(f"[VAD] Error: {e}")

def run_headless(controller: CounterController, scheduler: LoopTickScheduler):
    last_status = ""
    last_summary = None
    try:
        while not stop_event.is_set() and not controller.stop_requested:
            controller.poll()
            scheduler.run_pending()

            status = controller.status.text()
            if status != last_status:
                print(f"[STATUS] {status}")
                last_status = status

            summary = controller.summary()
            if summary != last_summary:
                print(f"[COUNTS] {summary or 'all zero'}")
                last_summary = summary

            time.sleep(cfg.headless_poll_s)
    except KeyboardInterrupt:
        pass
    stop_event.set()

def main():
    parser = argparse.ArgumentParser(description="Count recited phrases from the microphone")
    parser.add_argument("--no-overlay", action="store_true", help="Run in the console without the counter window")
    parser.add_argument("--lexicon", default=cfg.lexicon_path, help="JSON lexicon file (default: built-in phrases)")
    args = parser.parse_args()

    try:
        lexicon = load_lexicon(args.lexicon) if args.lexicon else default_lexicon()
    except LexiconError as e:
        print(f"[LEXICON] {e}")
        sys.exit(1)

    use_overlay = cfg.overlay_enabled and not args.no_overlay

    # 1. Setup Queues
    vad_audio_queue = queue.Queue()
    vad_event_queue = queue.Queue()
    revision_queue = queue.Queue()
    command_queue = queue.Queue()

    # 2. Setup audio buffer
    buffer = UtteranceBuffer(
        preroll_samples=int(cfg.target_rate * cfg.preroll_s),
        max_samples=int(cfg.target_rate * cfg.max_utterance_s),
    )

    # 3. Setup Components
    capture = AudioCapture(buffer, vad_audio_queue)
    asr = AsrWorker(buffer, vad_event_queue, revision_queue, lexicon)

    app = None
    if use_overlay:
        app = QApplication(sys.argv)
        scheduler = QtTickScheduler()
    else:
        scheduler = LoopTickScheduler()

    counter = PhraseCounter(lexicon, scheduler=scheduler)
    controller = CounterController(
        counter, revision_queue, command_queue,
        status=ListeningStatus(cfg.hotkey_toggle),
        asr=asr,
    )

    # 4. Start Threads
    vad_thread = threading.Thread(target=vad_thread_func, args=(vad_audio_queue, vad_event_queue, asr), daemon=True)
    vad_thread.start()
    try:
        asr.start()
    except Exception as e:
        print(f"[ASR] Recognizer unavailable: {e}")
        stop_event.set()
        sys.exit(1)

    try:
        capture.start()
    except Exception as e:
        print(f"Failed to start capture: {e}")
        stop_event.set()
        asr.stop()
        return

    register_hotkeys(command_queue)
    print("System started. Use hotkeys to control listening.")

    # 5. UI or Wait Loop
    if app is not None:
        window = CounterWindow(controller)
        window.show()

        # Handle Ctrl+C in Qt
        signal.signal(signal.SIGINT, lambda *args: app.quit())

        app.exec()  # Blocks
        stop_event.set()
    else:
        run_headless(controller, scheduler)

    # Cleanup
    print("Stopping...")
    unregister_hotkeys()
    capture.stop()
    asr.stop()
    print(f"Final counts: {controller.counter.get_committed_counts()}")
    print("Done.")

if __name__ == "__main__":
    main()
