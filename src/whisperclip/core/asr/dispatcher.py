from typing import Callable, Optional

from PySide6.QtCore import QObject

from ...utils.logger import get_logger
from ..audio.buffer import AudioBuffer
from ..concurrency import POLL_INTERVAL_MS, Channel, ChannelPoller
from ..errors import InferenceError
from .backends import TranscriptionJob, TranscriptionResult
from .transcription_worker import TranscriptionWorkerThread

logger = get_logger(__name__)

ResultCallback = Callable[[TranscriptionResult], None]


class TranscriptionDispatcher(QObject):
    """
    Runs one transcription at a time off the UI thread.

    ``dispatch`` starts a worker for a job snapshot and calls ``on_result``
    exactly once, on the UI thread, with the worker's result. A worker that
    exits without sending one is reported as a failure.
    """

    def __init__(self, poll_interval_ms: int = POLL_INTERVAL_MS, parent=None):
        super().__init__(parent)
        self._poll_interval_ms = poll_interval_ms
        self._poller: Optional[ChannelPoller] = None
        self._on_result: Optional[ResultCallback] = None

    @property
    def is_busy(self) -> bool:
        return self._on_result is not None

    def dispatch(
        self,
        audio: AudioBuffer,
        job: TranscriptionJob,
        on_result: ResultCallback,
    ) -> None:
        if self.is_busy:
            raise RuntimeError("A transcription is already in flight")

        channel = Channel()
        self._on_result = on_result
        worker = TranscriptionWorkerThread(job, audio, channel, parent=self)
        worker.finished.connect(worker.deleteLater)
        self._poller = ChannelPoller(
            channel,
            on_message=self._handle_message,
            on_closed=self._handle_closed,
            interval_ms=self._poll_interval_ms,
            parent=self,
        )

        logger.debug(f"Dispatching transcription to {job.kind.label} backend")
        worker.start()
        self._poller.start()

    def wait(self, timeout_ms: int = -1) -> bool:
        """Block until every worker thread has exited. Intended for shutdown."""
        done = True
        for worker in self.findChildren(TranscriptionWorkerThread):
            if not worker.isRunning():
                continue
            if timeout_ms < 0:
                done = worker.wait() and done
            else:
                done = worker.wait(timeout_ms) and done
        return done

    def _handle_message(self, result: TranscriptionResult) -> bool:
        self._deliver(result)
        return False

    def _handle_closed(self) -> None:
        self._deliver(
            TranscriptionResult.failure(
                InferenceError("Transcription worker exited without a result")
            )
        )

    def _deliver(self, result: TranscriptionResult) -> None:
        callback, self._on_result = self._on_result, None
        poller, self._poller = self._poller, None
        if poller is not None:
            poller.deleteLater()
        if callback is not None:
            callback(result)
