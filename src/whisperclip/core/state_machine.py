"""
Recording and processing state machine.

IDLE -> RECORDING -> PROCESSING -> IDLE. All transitions run on the Qt main
thread; the only way out of PROCESSING is the dispatcher delivering a
result.
"""

from enum import Enum
from typing import Optional

from PySide6.QtCore import QObject, Signal

from ..utils.logger import get_logger
from .asr.backends import (
    BackendKind,
    LocalJob,
    RemoteJob,
    TranscriptionJob,
    TranscriptionResult,
)
from .errors import ClipboardError, DeviceError, StorageError

logger = get_logger(__name__)

NOTICE_TIMEOUT_MS = 3000
ERROR_NOTICE_TIMEOUT_MS = 5000


class RecordingState(Enum):
    IDLE = "idle"
    RECORDING = "recording"
    PROCESSING = "processing"


class RecordingStateMachine(QObject):
    """
    Coordinates the recorder, model manager, dispatcher and result sinks.

    Signals:
        state_changed(RecordingState)
        notice(str, int): transient status message and how long to show it
        transcription_ready(str): text of a successful transcription
    """

    state_changed = Signal(object)
    notice = Signal(str, int)
    transcription_ready = Signal(str)

    def __init__(
        self,
        config,
        recorder,
        model_manager,
        dispatcher,
        history,
        clipboard,
        parent=None,
    ):
        super().__init__(parent)
        self._config = config
        self._recorder = recorder
        self._model_manager = model_manager
        self._dispatcher = dispatcher
        self._history = history
        self._clipboard = clipboard
        self._state = RecordingState.IDLE
        self._job_kind: Optional[BackendKind] = None

    @property
    def state(self) -> RecordingState:
        return self._state

    def toggle(self) -> None:
        if self._state == RecordingState.IDLE:
            self.start_recording()
        elif self._state == RecordingState.RECORDING:
            self.stop_recording()
        else:
            logger.debug("Toggle ignored while processing")

    def start_recording(self) -> bool:
        if self._state != RecordingState.IDLE:
            return False

        reason = self._blocked_reason()
        if reason:
            logger.info(f"Recording not started: {reason}")
            self._notify(reason)
            return False

        try:
            self._recorder.start()
        except DeviceError as e:
            logger.error(f"Failed to start recording: {e}")
            self._notify(f"Mic error: {e}", ERROR_NOTICE_TIMEOUT_MS)
            return False

        logger.info("Recording started")
        self._set_state(RecordingState.RECORDING)
        return True

    def stop_recording(self) -> bool:
        if self._state != RecordingState.RECORDING:
            return False

        try:
            audio = self._recorder.stop()
        except DeviceError as e:
            logger.error(f"Recording failed: {e}")
            self._set_state(RecordingState.IDLE)
            self._notify(f"Mic error: {e}", ERROR_NOTICE_TIMEOUT_MS)
            return False

        job = self._snapshot_job()
        if job is None:
            self._set_state(RecordingState.IDLE)
            self._notify("No local model loaded")
            return False

        logger.info(
            f"Recording stopped: {audio.duration:.2f}s, "
            f"transcribing via {job.kind.label}"
        )
        self._job_kind = job.kind
        self._set_state(RecordingState.PROCESSING)
        self._dispatcher.dispatch(audio, job, self._on_result)
        return True

    def switch_backend(self, kind: BackendKind) -> bool:
        if self._state != RecordingState.IDLE:
            logger.info(
                f"Backend switch to {kind.label} rejected while {self._state.value}"
            )
            return False
        return self._model_manager.switch_backend(kind)

    def _blocked_reason(self) -> Optional[str]:
        if self._model_manager.is_downloading:
            return "Downloading model..."
        if self._model_manager.active_backend == BackendKind.LOCAL:
            if not self._model_manager.is_loaded:
                return "No local model loaded"
        elif not self._config.api_key:
            return "No API key set"
        return None

    def _snapshot_job(self) -> Optional[TranscriptionJob]:
        if self._model_manager.active_backend == BackendKind.LOCAL:
            model = self._model_manager.model
            return LocalJob(model) if model is not None else None
        return RemoteJob(
            base_url=self._config.api_base_url,
            api_key=self._config.api_key,
            model=self._config.api_model,
        )

    def _on_result(self, result: TranscriptionResult) -> None:
        self._set_state(RecordingState.IDLE)

        if not result.ok:
            logger.error(f"Transcription failed: {result.error}")
            self._notify(f"Error: {result.error}", ERROR_NOTICE_TIMEOUT_MS)
            return

        text = result.text or ""
        if not text:
            logger.info("Transcription returned no text")
            self._notify("No speech detected")
            return

        self.transcription_ready.emit(text)

        backend = self._job_kind.value if self._job_kind else None
        try:
            self._history.append(text, backend=backend)
        except StorageError as e:
            logger.error(f"Failed to save history: {e}")
            self._notify("History save failed", ERROR_NOTICE_TIMEOUT_MS)

        try:
            self._clipboard.copy(text)
        except ClipboardError as e:
            logger.error(f"Failed to copy to clipboard: {e}")
            self._notify("Error!", ERROR_NOTICE_TIMEOUT_MS)
            return

        self._notify("Copied!")

    def _set_state(self, state: RecordingState) -> None:
        if state == self._state:
            return
        logger.debug(f"Recording state: {self._state.value} -> {state.value}")
        self._state = state
        self.state_changed.emit(state)

    def _notify(self, message: str, timeout_ms: int = NOTICE_TIMEOUT_MS) -> None:
        self.notice.emit(message, timeout_ms)
