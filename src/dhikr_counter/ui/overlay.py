from PySide6.QtWidgets import QWidget, QVBoxLayout, QGridLayout, QLabel, QApplication
from PySide6.QtCore import Qt, QTimer
from PySide6.QtGui import QFont

from dhikr_counter.controller import CounterController
from dhikr_counter.models import PhraseKey

class _QtTimerHandle:
    def __init__(self, timer: QTimer):
        self.timer = timer

    def cancel(self):
        self.timer.stop()
        self.timer.deleteLater()


class QtTickScheduler:
    """One QTimer per running animation, all on the Qt main thread."""

    def __init__(self, parent=None):
        self.parent = parent

    def schedule_repeating(self, interval_s: float, fn) -> _QtTimerHandle:
        timer = QTimer(self.parent)
        timer.setInterval(int(interval_s * 1000))
        timer.timeout.connect(fn)
        timer.start()
        return _QtTimerHandle(timer)


class CounterWindow(QWidget):
    def __init__(self, controller: CounterController):
        super().__init__()
        self.controller = controller
        lexicon = controller.counter.lexicon
        controller.counter.animator.on_change = self.set_count

        # Window flags
        self.setWindowFlags(Qt.WindowStaysOnTopHint | Qt.Tool)
        self.setWindowTitle("Dhikr Counter")
        self.setStyleSheet("background-color: rgba(0, 0, 0, 235); color: white;")

        layout = QVBoxLayout()
        self.setLayout(layout)

        grid = QGridLayout()
        layout.addLayout(grid)

        label_font = QFont("Arial", 16)
        count_font = QFont("Arial", 22)
        count_font.setBold(True)

        self.count_labels: dict[PhraseKey, QLabel] = {}
        for row, key in enumerate(lexicon.keys):
            name = QLabel(lexicon.label(key))
            name.setFont(label_font)
            name.setLayoutDirection(Qt.RightToLeft)
            value = QLabel("0")
            value.setFont(count_font)
            value.setAlignment(Qt.AlignRight | Qt.AlignVCenter)
            value.setStyleSheet("color: #FFD700;")
            grid.addWidget(name, row, 0)
            grid.addWidget(value, row, 1)
            self.count_labels[key] = value

        self.total_label = QLabel()
        self.total_label.setStyleSheet("color: #AAAAAA; font-size: 14px;")
        layout.addWidget(self.total_label)

        self.status_label = QLabel()
        self.status_label.setStyleSheet("color: #888888; font-size: 14px; font-style: italic;")
        layout.addWidget(self.status_label)

        # Initial Position: bottom right corner
        screen = QApplication.primaryScreen().geometry()
        width, height = 420, 60 + 40 * len(lexicon.keys)
        self.setGeometry(screen.width() - width - 40, screen.height() - height - 100, width, height)

        # Event pump: the Qt main thread is the only consumer of counter state
        self.timer = QTimer()
        self.timer.timeout.connect(self.update_content)
        self.timer.start(50)

        self.refresh_all()

    def set_count(self, key: PhraseKey, value: int):
        label = self.count_labels.get(key)
        if label is not None:
            label.setText(str(value))

    def refresh_all(self):
        for key, value in self.controller.counter.get_displayed_counts().items():
            self.set_count(key, value)
        self.total_label.setText(f"Total: {self.controller.counter.total_committed()}")
        self.status_label.setText(self.controller.status.text())

    def update_content(self):
        if self.controller.poll():
            self.total_label.setText(f"Total: {self.controller.counter.total_committed()}")
            self.status_label.setText(self.controller.status.text())
        if self.controller.stop_requested:
            QApplication.instance().quit()
