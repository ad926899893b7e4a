"""
Floating microphone widget.

A small frameless window holding a round record button and a status
label whose messages fade after a timeout. Right-click opens the backend
and application menu; Escape stops a running recording.
"""

from typing import Optional

from PySide6.QtCore import QPoint, Qt, QTimer, Signal
from PySide6.QtGui import QAction, QActionGroup
from PySide6.QtWidgets import QLabel, QMenu, QPushButton, QVBoxLayout, QWidget

from ..core.asr.backends import BackendKind
from ..core.asr.model_downloader import DownloadProgress
from ..core.state_machine import RecordingState

_MB = 1024 * 1024

STYLE_SHEET = """
QPushButton#MicButton {
    min-width: 72px;
    min-height: 72px;
    max-width: 72px;
    max-height: 72px;
    border-radius: 36px;
    background-color: #dc2626;
    color: white;
    font-size: 32px;
    font-weight: 600;
    border: none;
}
QPushButton#MicButton:hover { background-color: #b91c1c; }
QPushButton#MicButton:pressed { background-color: #991b1b; }
QPushButton#MicButton[state="recording"] { background-color: #16a34a; }
QPushButton#MicButton[state="processing"] { background-color: #d97706; }
QLabel#StatusLabel {
    color: #e2e8f0;
    font-size: 12px;
    font-weight: 500;
    background-color: rgba(15, 23, 42, 190);
    border-radius: 6px;
    padding: 3px 8px;
}
"""


def format_download_progress(progress: DownloadProgress) -> str:
    downloaded_mb = progress.downloaded / _MB
    if progress.total:
        return f"Downloading: {downloaded_mb:.0f} / {progress.total / _MB:.0f} MB"
    return f"Downloading: {downloaded_mb:.0f} MB"


class MicWindow(QWidget):
    """
    Signals:
        toggle_requested: mic button clicked
        stop_requested: Escape pressed
        backend_requested(BackendKind): a mode was picked from the menu
        history_requested
        quit_requested
    """

    toggle_requested = Signal()
    stop_requested = Signal()
    backend_requested = Signal(object)
    history_requested = Signal()
    quit_requested = Signal()

    def __init__(self, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.setWindowFlags(Qt.Tool | Qt.FramelessWindowHint | Qt.WindowStaysOnTopHint)
        self.setAttribute(Qt.WA_TranslucentBackground)
        self.setWindowTitle("WhisperClip")

        self._backend = BackendKind.REMOTE
        self._drag_offset: Optional[QPoint] = None

        self._status_timer = QTimer(self)
        self._status_timer.setSingleShot(True)
        self._status_timer.timeout.connect(self.clear_status)

        self._build_ui()
        self._build_menu()

    def _build_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(8, 8, 8, 8)
        layout.setSpacing(6)
        layout.setAlignment(Qt.AlignHCenter)

        self._button = QPushButton("\U0001F3A4")
        self._button.setObjectName("MicButton")
        self._button.setProperty("state", RecordingState.IDLE.value)
        self._button.setCursor(Qt.PointingHandCursor)
        self._button.clicked.connect(lambda: self.toggle_requested.emit())
        layout.addWidget(self._button, alignment=Qt.AlignHCenter)

        self._status = QLabel(" ")
        self._status.setObjectName("StatusLabel")
        self._status.setAlignment(Qt.AlignCenter)
        self._status.setVisible(False)
        layout.addWidget(self._status, alignment=Qt.AlignHCenter)

        self.setStyleSheet(STYLE_SHEET)
        self.adjustSize()

    def _build_menu(self) -> None:
        self._menu = QMenu(self)
        self._menu.addSection("Transcription")

        self._mode_group = QActionGroup(self)
        self._mode_group.setExclusive(True)

        self._api_action = QAction("API Mode", self, checkable=True)
        self._local_action = QAction("Local Mode", self, checkable=True)
        for action, kind in (
            (self._api_action, BackendKind.REMOTE),
            (self._local_action, BackendKind.LOCAL),
        ):
            self._mode_group.addAction(action)
            self._menu.addAction(action)
            action.triggered.connect(
                lambda checked=False, k=kind: self._on_mode_picked(k)
            )

        self._menu.addSeparator()
        self._menu.addAction("History", self.history_requested.emit)
        self._menu.addAction("Quit", self.quit_requested.emit)
        self.set_backend(self._backend)

    @property
    def status_text(self) -> str:
        return "" if self._status.isHidden() else self._status.text()

    @property
    def button(self) -> QPushButton:
        return self._button

    @property
    def menu(self) -> QMenu:
        return self._menu

    def set_backend(self, kind: BackendKind) -> None:
        self._backend = kind
        self._api_action.setChecked(kind == BackendKind.REMOTE)
        self._local_action.setChecked(kind == BackendKind.LOCAL)

    def set_recording_state(self, state: RecordingState) -> None:
        self._button.setProperty("state", state.value)
        # Re-polish so the property selector takes effect.
        self._button.style().unpolish(self._button)
        self._button.style().polish(self._button)

        if state == RecordingState.RECORDING:
            self.show_status("Recording...")
        elif state == RecordingState.PROCESSING:
            self.show_status("Transcribing...")

    def show_status(self, message: str, timeout_ms: int = 0) -> None:
        """Show ``message``; it is cleared after ``timeout_ms`` unless 0."""
        self._status_timer.stop()
        self._status.setText(message)
        self._status.setVisible(True)
        self.adjustSize()
        if timeout_ms > 0:
            self._status_timer.start(timeout_ms)

    def show_download_progress(self, progress: DownloadProgress) -> None:
        self.show_status(format_download_progress(progress))

    def clear_status(self) -> None:
        self._status_timer.stop()
        self._status.setText(" ")
        self._status.setVisible(False)
        self.adjustSize()

    def _on_mode_picked(self, kind: BackendKind) -> None:
        # The menu reflects the manager's state, not the click.
        self.set_backend(self._backend)
        self.backend_requested.emit(kind)

    def contextMenuEvent(self, event) -> None:
        self._menu.exec(event.globalPos())

    def keyPressEvent(self, event) -> None:
        if event.key() == Qt.Key_Escape:
            self.stop_requested.emit()
            return
        super().keyPressEvent(event)

    def mousePressEvent(self, event) -> None:
        if event.button() == Qt.LeftButton:
            self._drag_offset = (
                event.globalPosition().toPoint() - self.frameGeometry().topLeft()
            )
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event) -> None:
        if self._drag_offset is not None and event.buttons() & Qt.LeftButton:
            self.move(event.globalPosition().toPoint() - self._drag_offset)
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event) -> None:
        self._drag_offset = None
        super().mouseReleaseEvent(event)
