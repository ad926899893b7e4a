import time

from PySide6.QtCore import QThread

from ...utils.logger import get_logger
from ..audio.buffer import AudioBuffer
from ..concurrency import Channel
from ..errors import InferenceError, WhisperClipError
from .backends import LocalJob, RemoteJob, TranscriptionJob, TranscriptionResult
from .remote_backend import RemoteTranscriber

logger = get_logger(__name__)


class TranscriptionWorkerThread(QThread):
    """
    Background thread running exactly one backend call.

    The recording is packaged as WAV and handed to the backend named by the
    job snapshot. Exactly one ``TranscriptionResult`` is sent, then the
    channel is closed.
    """

    def __init__(
        self,
        job: TranscriptionJob,
        audio: AudioBuffer,
        channel: Channel,
        parent=None,
    ):
        super().__init__(parent)
        self._job = job
        self._audio = audio
        self._channel = channel

    def run(self):
        start_time = time.time()

        try:
            logger.info(
                f"Background transcription started: {len(self._audio)} samples "
                f"at {self._audio.sample_rate}Hz via {self._job.kind.label}"
            )
            text = self._transcribe(self._audio.to_wav())

            duration = time.time() - start_time
            logger.info(
                f"Transcription completed in {duration:.2f}s: "
                f"'{text[:50]}{'...' if len(text) > 50 else ''}'"
            )
            self._channel.send(TranscriptionResult.success(text))

        except WhisperClipError as e:
            logger.error(f"Background transcription failed ({e.kind}): {e}")
            self._channel.send(TranscriptionResult.failure(e))
        except Exception as e:
            logger.exception(f"Background transcription error: {e}")
            self._channel.send(TranscriptionResult.failure(InferenceError(str(e))))
        finally:
            # The job may hold the loaded model; the thread object can outlive it.
            self._job = None
            self._audio = None
            self._channel.close()

    def _transcribe(self, wav_data: bytes) -> str:
        job = self._job
        if isinstance(job, LocalJob):
            return job.model.transcribe(wav_data)
        if isinstance(job, RemoteJob):
            transcriber = RemoteTranscriber(job.base_url, job.api_key, job.model)
            return transcriber.transcribe(wav_data)
        raise TypeError(f"Unknown transcription job: {job!r}")
