from .backends import (
    BackendKind,
    LocalJob,
    RemoteJob,
    TranscriptionJob,
    TranscriptionResult,
)
from .dispatcher import TranscriptionDispatcher
from .local_backend import WHISPER_SAMPLE_RATE, LocalWhisper
from .model_downloader import (
    DownloadProgress,
    ModelDownloader,
    ModelDownloadThread,
    get_model_url,
)
from .model_loader import ModelLoaderThread
from .model_manager import ModelManager, ModelState
from .remote_backend import RemoteTranscriber
from .transcription_worker import TranscriptionWorkerThread

__all__ = [
    "BackendKind",
    "LocalJob",
    "RemoteJob",
    "TranscriptionJob",
    "TranscriptionResult",
    "TranscriptionDispatcher",
    "WHISPER_SAMPLE_RATE",
    "LocalWhisper",
    "DownloadProgress",
    "ModelDownloader",
    "ModelDownloadThread",
    "get_model_url",
    "ModelLoaderThread",
    "ModelManager",
    "ModelState",
    "RemoteTranscriber",
    "TranscriptionWorkerThread",
]
