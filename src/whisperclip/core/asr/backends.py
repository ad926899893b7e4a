"""
Backend selection and the values exchanged with transcription workers.

The active backend is captured as a job snapshot when a transcription is
dispatched; the worker never looks at the live backend selection again.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional, Union

from ..errors import WhisperClipError

if TYPE_CHECKING:
    from .local_backend import LocalWhisper


class BackendKind(Enum):
    REMOTE = "api"
    LOCAL = "local"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["BackendKind"]:
        """Map a persisted or configured name to a kind, None if unrecognized."""
        if not value:
            return None
        value = value.strip().lower()
        if value in ("api", "groq", "remote"):
            return cls.REMOTE
        if value == "local":
            return cls.LOCAL
        return None

    @property
    def label(self) -> str:
        return "API" if self is BackendKind.REMOTE else "Local"


@dataclass(frozen=True)
class RemoteJob:
    base_url: str
    api_key: str
    model: str

    @property
    def kind(self) -> BackendKind:
        return BackendKind.REMOTE


@dataclass(frozen=True)
class LocalJob:
    model: "LocalWhisper"

    @property
    def kind(self) -> BackendKind:
        return BackendKind.LOCAL


TranscriptionJob = Union[RemoteJob, LocalJob]


@dataclass(frozen=True)
class TranscriptionResult:
    text: Optional[str] = None
    error: Optional[WhisperClipError] = None

    @classmethod
    def success(cls, text: str) -> "TranscriptionResult":
        return cls(text=text)

    @classmethod
    def failure(cls, error: WhisperClipError) -> "TranscriptionResult":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None
