"""Application runtime."""

import signal
import sys
from typing import Optional

from PySide6.QtCore import QObject, QTimer
from PySide6.QtWidgets import QApplication

from whisperclip import __app_name__, __version__
from whisperclip.config import AppConfig, load_config
from whisperclip.core.asr import (
    BackendKind,
    ModelManager,
    ModelState,
    TranscriptionDispatcher,
)
from whisperclip.core.audio import AudioRecorder
from whisperclip.core.errors import ConfigError
from whisperclip.core.input import HotkeyListener
from whisperclip.core.output import Clipboard
from whisperclip.core.settings import HistoryLog, SettingsStore
from whisperclip.core.state_machine import NOTICE_TIMEOUT_MS, RecordingStateMachine
from whisperclip.ui import HistoryDialog, MicWindow
from whisperclip.utils.logger import get_logger, shutdown_logging

logger = get_logger(__name__)

MODEL_READY_NOTICE_MS = 2000
MODEL_ERROR_NOTICE_MS = 3000


def resolve_initial_backend(config: AppConfig, settings: SettingsStore) -> BackendKind:
    """A persisted mode wins over the configured default."""
    persisted = BackendKind.parse(settings.get("transcription_mode"))
    return persisted or config.default_backend


class WhisperClipApp(QObject):

    def __init__(
        self,
        config: AppConfig,
        settings: Optional[SettingsStore] = None,
        history: Optional[HistoryLog] = None,
    ):
        super().__init__()

        self._config = config
        self._settings = settings or SettingsStore()
        self._history = history or HistoryLog()

        self._recorder = AudioRecorder(device=self._settings.settings.input_device)
        self._model_manager = ModelManager(
            model_path=config.model_path,
            model_url=config.model_url,
            settings=self._settings,
            initial_backend=resolve_initial_backend(config, self._settings),
            parent=self,
        )
        self._dispatcher = TranscriptionDispatcher(parent=self)
        self._state_machine = RecordingStateMachine(
            config=config,
            recorder=self._recorder,
            model_manager=self._model_manager,
            dispatcher=self._dispatcher,
            history=self._history,
            clipboard=Clipboard(),
            parent=self,
        )

        self._window = MicWindow()
        self._window.set_backend(self._model_manager.active_backend)
        self._history_dialog: Optional[HistoryDialog] = None

        self._hotkey_listener: Optional[HotkeyListener] = None
        if self._settings.settings.hotkey_enabled:
            self._hotkey_listener = HotkeyListener(self._settings.settings.hotkey)
            self._hotkey_listener.activated.connect(self._state_machine.toggle)

        self._window.toggle_requested.connect(self._state_machine.toggle)
        self._window.stop_requested.connect(self._state_machine.stop_recording)
        self._window.backend_requested.connect(self._on_backend_requested)
        self._window.history_requested.connect(self._show_history)
        self._window.quit_requested.connect(self._quit)

        self._state_machine.state_changed.connect(self._window.set_recording_state)
        self._state_machine.notice.connect(self._window.show_status)

        self._model_manager.backend_changed.connect(self._window.set_backend)
        self._model_manager.state_changed.connect(self._on_model_state_changed)
        self._model_manager.download_progress.connect(
            self._window.show_download_progress
        )
        self._model_manager.error_occurred.connect(self._on_model_error)

    @property
    def window(self) -> MicWindow:
        return self._window

    @property
    def state_machine(self) -> RecordingStateMachine:
        return self._state_machine

    @property
    def model_manager(self) -> ModelManager:
        return self._model_manager

    def _on_backend_requested(self, kind: BackendKind) -> None:
        if not self._state_machine.switch_backend(kind):
            return
        if kind == BackendKind.REMOTE:
            self._window.show_status("API mode", MODEL_READY_NOTICE_MS)

    def _on_model_state_changed(self, state: ModelState) -> None:
        if state == ModelState.DOWNLOADING:
            self._window.show_status("Downloading model...")
        elif state == ModelState.LOADING:
            self._window.show_status("Loading model...")
        elif state == ModelState.LOADED:
            self._window.show_status("Local mode ready", MODEL_READY_NOTICE_MS)

    def _on_model_error(self, reason: str) -> None:
        short = reason.split(":", 1)[0]
        self._window.show_status(short, MODEL_ERROR_NOTICE_MS)

    def _show_history(self) -> None:
        if self._history_dialog is None:
            self._history_dialog = HistoryDialog(self._history)

        self._history_dialog.show()
        self._history_dialog.raise_()
        self._history_dialog.activateWindow()

    def _quit(self) -> None:
        logger.info("Shutting down application")
        if self._hotkey_listener is not None:
            self._hotkey_listener.stop()
        self._model_manager.shutdown()
        self._dispatcher.wait(2000)
        self._window.hide()
        QApplication.quit()
        logger.info("Application shutdown complete")

    def run(self) -> None:
        logger.info(f"Starting {__app_name__} v{__version__}")
        logger.info(
            f"Config: default={self._config.default_backend.label}, "
            f"active={self._model_manager.active_backend.label}, "
            f"model={self._config.model_path}"
        )

        if self._hotkey_listener is not None:
            self._hotkey_listener.start()

        self._window.show()
        if self._model_manager.active_backend == BackendKind.REMOTE:
            self._window.show_status("API mode", NOTICE_TIMEOUT_MS)

        logger.info("Deferring model load to after UI is shown...")
        QTimer.singleShot(100, self._model_manager.initialize)

        logger.info("Application initialization complete")


def main():
    try:
        config = load_config()
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        print(f"{__app_name__}: {e}", file=sys.stderr)
        sys.exit(1)

    app = QApplication(sys.argv)
    app.setApplicationName(__app_name__)
    app.setQuitOnLastWindowClosed(False)
    signal.signal(signal.SIGINT, lambda *args: QApplication.quit())

    whisperclip_app = WhisperClipApp(config)
    whisperclip_app.run()

    exit_code = app.exec()
    shutdown_logging()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
