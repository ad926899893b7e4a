"""
Lifecycle of the on-device model and the choice of active backend.

The model moves through NOT_INSTALLED -> DOWNLOADING -> INSTALLED -> LOADING
-> LOADED. Downloading and loading run on background threads and report back
through channels polled on the main thread, so every state change below
happens on the main thread. Any download or load failure puts the app back
on the remote backend; nothing is retried automatically.
"""

from enum import Enum
from pathlib import Path
from typing import Optional

from PySide6.QtCore import QObject, QThread, Signal

from ...utils.logger import get_logger
from ..concurrency import POLL_INTERVAL_MS, Channel, ChannelPoller
from ..errors import DownloadError, ModelLoadError, StorageError
from .backends import BackendKind
from .local_backend import LocalWhisper
from .model_downloader import (
    DownloadFailed,
    DownloadFinished,
    DownloadProgress,
    ModelDownloader,
    ModelDownloadThread,
    get_part_path,
)
from .model_loader import ModelLoaded, ModelLoaderThread, ModelLoadFailed

logger = get_logger(__name__)

TRANSCRIPTION_MODE_KEY = "transcription_mode"


class ModelState(Enum):
    NOT_INSTALLED = "not_installed"
    DOWNLOADING = "downloading"
    INSTALLED = "installed"
    LOADING = "loading"
    LOADED = "loaded"
    LOAD_FAILED = "load_failed"


class ModelManager(QObject):
    """
    Owns the model file, the loaded model handle and the active backend.

    Signals:
        state_changed(ModelState)
        backend_changed(BackendKind)
        download_progress(DownloadProgress)
        error_occurred(str): human readable reason for a failed download/load
    """

    state_changed = Signal(object)
    backend_changed = Signal(object)
    download_progress = Signal(object)
    error_occurred = Signal(str)

    def __init__(
        self,
        model_path: Path,
        model_url: str,
        settings,
        initial_backend: BackendKind = BackendKind.REMOTE,
        downloader: Optional[ModelDownloader] = None,
        poll_interval_ms: int = POLL_INTERVAL_MS,
        parent=None,
    ):
        super().__init__(parent)
        self._model_path = Path(model_path)
        self._model_url = model_url
        self._settings = settings
        self._downloader = downloader
        self._poll_interval_ms = poll_interval_ms

        self._active = initial_backend
        self._state = (
            ModelState.INSTALLED
            if self._model_path.is_file()
            else ModelState.NOT_INSTALLED
        )
        self._model: Optional[LocalWhisper] = None
        self._last_progress: Optional[DownloadProgress] = None
        self._last_error: Optional[str] = None

        # Bumped whenever a background result should no longer be applied.
        self._generation = 0
        self._poller: Optional[ChannelPoller] = None

    @property
    def model_path(self) -> Path:
        return self._model_path

    @property
    def state(self) -> ModelState:
        return self._state

    @property
    def active_backend(self) -> BackendKind:
        return self._active

    @property
    def model(self) -> Optional[LocalWhisper]:
        return self._model

    @property
    def is_downloading(self) -> bool:
        return self._state == ModelState.DOWNLOADING

    @property
    def is_loaded(self) -> bool:
        return self._state == ModelState.LOADED and self._model is not None

    @property
    def last_progress(self) -> Optional[DownloadProgress]:
        return self._last_progress

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def initialize(self) -> None:
        """Bring the local model up if Local is the active backend at startup."""
        if self._active != BackendKind.LOCAL:
            logger.info("Starting on remote backend")
            return

        if self._model_path.is_file():
            logger.info("Local backend active at startup, loading existing model")
            self._start_load()
        else:
            logger.info("Local backend active at startup, model missing")
            self._start_download()

    def switch_backend(self, kind: BackendKind) -> bool:
        """
        Make ``kind`` the active backend.

        Returns False without doing anything while a download is running or
        when ``kind`` is already active.
        """
        if self.is_downloading:
            logger.info(f"Ignoring switch to {kind.label} while downloading")
            return False
        if kind == self._active:
            logger.debug(f"{kind.label} backend already active")
            return False

        logger.info(f"Switching backend: {self._active.label} -> {kind.label}")
        if kind == BackendKind.REMOTE:
            self._switch_to_remote()
        else:
            self._switch_to_local()
        return True

    def shutdown(self, timeout_ms: int = 2000) -> None:
        self._discard_pending()
        for worker in self.findChildren(QThread):
            if worker.isRunning() and not worker.wait(timeout_ms):
                logger.warning(f"{type(worker).__name__} still running at shutdown")

    def _switch_to_remote(self) -> None:
        self._discard_pending()
        self._model = None

        try:
            self._model_path.unlink(missing_ok=True)
            logger.info(f"Deleted model file {self._model_path}")
        except OSError as e:
            logger.error(f"Failed to delete model file {self._model_path}: {e}")

        self._set_state(
            ModelState.INSTALLED
            if self._model_path.is_file()
            else ModelState.NOT_INSTALLED
        )
        self._set_backend(BackendKind.REMOTE)

    def _switch_to_local(self) -> None:
        self._set_backend(BackendKind.LOCAL)

        if self._model_path.is_file():
            self._start_load()
        else:
            self._start_download()

    def _start_download(self) -> None:
        generation = self._discard_pending()
        channel = Channel()

        self._last_error = None
        self._last_progress = DownloadProgress(0, None)
        self._set_state(ModelState.DOWNLOADING)

        worker = ModelDownloadThread(
            self._model_url,
            self._model_path,
            channel,
            downloader=self._downloader,
            parent=self,
        )
        self._poller = ChannelPoller(
            channel,
            on_message=lambda message: self._on_download_message(generation, message),
            on_closed=lambda: self._on_download_closed(generation),
            latest_only=True,
            interval_ms=self._poll_interval_ms,
            parent=self,
        )
        self._start_worker(worker)

    def _on_download_message(self, generation: int, message) -> bool:
        if generation != self._generation:
            return False

        if isinstance(message, DownloadProgress):
            self._last_progress = message
            self.download_progress.emit(message)
            return True

        if isinstance(message, DownloadFinished):
            logger.info(f"Model installed at {message.path}")
            self._set_state(ModelState.INSTALLED)
            if self._active == BackendKind.LOCAL:
                self._start_load()
            return False

        if isinstance(message, DownloadFailed):
            self._fail_download(message.error)
            return False

        logger.warning(f"Unexpected download message: {message!r}")
        return True

    def _on_download_closed(self, generation: int) -> None:
        if generation != self._generation:
            return
        part_path = get_part_path(self._model_path)
        try:
            part_path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to remove partial download {part_path}: {e}")
        self._fail_download(DownloadError("Download stopped unexpectedly"))

    def _fail_download(self, error: DownloadError) -> None:
        logger.error(f"Model download failed: {error}")
        self._set_state(
            ModelState.INSTALLED
            if self._model_path.is_file()
            else ModelState.NOT_INSTALLED
        )
        self._revert_to_remote(f"Download failed: {error}")

    def _start_load(self) -> None:
        generation = self._discard_pending()
        channel = Channel()

        self._last_error = None
        self._set_state(ModelState.LOADING)

        worker = ModelLoaderThread(self._model_path, channel, parent=self)
        self._poller = ChannelPoller(
            channel,
            on_message=lambda message: self._on_load_message(generation, message),
            on_closed=lambda: self._on_load_closed(generation),
            interval_ms=self._poll_interval_ms,
            parent=self,
        )
        self._start_worker(worker)

    def _on_load_message(self, generation: int, message) -> bool:
        if generation != self._generation:
            logger.info("Discarding result of a superseded model load")
            return False

        if isinstance(message, ModelLoaded):
            self._model = message.model
            self._set_state(ModelState.LOADED)
        elif isinstance(message, ModelLoadFailed):
            self._fail_load(message.error)
        else:
            logger.warning(f"Unexpected load message: {message!r}")
            return True
        return False

    def _on_load_closed(self, generation: int) -> None:
        if generation != self._generation:
            return
        self._fail_load(ModelLoadError("Model loader stopped unexpectedly"))

    def _fail_load(self, error: ModelLoadError) -> None:
        logger.error(f"Model load failed: {error}")
        self._model = None
        self._set_state(ModelState.LOAD_FAILED)
        self._revert_to_remote(f"Model load failed: {error}")

    def _revert_to_remote(self, reason: str) -> None:
        self._last_error = reason
        self._set_backend(BackendKind.REMOTE)
        self.error_occurred.emit(reason)

    def _discard_pending(self) -> int:
        poller, self._poller = self._poller, None
        if poller is not None:
            poller.stop()
            poller.deleteLater()
        self._generation += 1
        return self._generation

    def _start_worker(self, worker: QThread) -> None:
        worker.finished.connect(worker.deleteLater)
        worker.start()
        self._poller.start()

    def _set_state(self, state: ModelState) -> None:
        if state == self._state:
            return
        logger.info(f"Model state: {self._state.value} -> {state.value}")
        self._state = state
        self.state_changed.emit(state)

    def _set_backend(self, kind: BackendKind) -> None:
        changed = kind != self._active
        self._active = kind
        self._persist_backend(kind)
        if changed:
            self.backend_changed.emit(kind)

    def _persist_backend(self, kind: BackendKind) -> None:
        try:
            self._settings.set(TRANSCRIPTION_MODE_KEY, kind.value)
        except StorageError as e:
            logger.error(f"Failed to persist transcription mode: {e}")
