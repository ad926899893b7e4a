"""
Error taxonomy for the transcription core.

Every error that reaches the interactive thread ends the current operation
only; none of them are fatal to the process except ``ConfigError``, which is
raised before any core component is constructed.
"""


class WhisperClipError(Exception):
    """Base class for all application errors."""

    kind = "error"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message or self.kind


class ConfigError(WhisperClipError):
    kind = "config"


class DeviceError(WhisperClipError):
    """Microphone unavailable, already held, or disconnected mid-session."""

    kind = "device"


class FormatError(WhisperClipError):
    """Audio container could not be parsed."""

    kind = "format"


class ResampleError(WhisperClipError):
    kind = "resample"


class ModelLoadError(WhisperClipError):
    kind = "model_load"


class InferenceError(WhisperClipError):
    kind = "inference"


class EmptyAudioError(WhisperClipError):
    kind = "empty_audio"


class DownloadError(WhisperClipError):
    """Network, I/O or rename failure while acquiring the model file."""

    kind = "download"


class RemoteTranscriptionError(WhisperClipError):
    kind = "remote"

    def __init__(self, message: str = "", status_code=None):
        super().__init__(message)
        self.status_code = status_code


class ClipboardError(WhisperClipError):
    kind = "clipboard"


class StorageError(WhisperClipError):
    """Settings or history could not be read or written."""

    kind = "storage"
