"""
Transcription through an OpenAI-compatible HTTP API (Groq, OpenAI, ...).
"""

import requests

from ...utils.logger import get_logger
from ..errors import RemoteTranscriptionError

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60


class RemoteTranscriber:
    """
    Single-shot client for ``POST <base_url>/audio/transcriptions``.

    No retries: a transport failure or non-success status surfaces as
    ``RemoteTranscriptionError`` straight away.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/audio/transcriptions"

    def transcribe(self, wav_data: bytes) -> str:
        logger.info(
            f"Sending {len(wav_data)} bytes to {self.endpoint} (model={self.model})"
        )

        try:
            response = requests.post(
                self.endpoint,
                headers={"Authorization": f"Bearer {self.api_key}"},
                files={"file": ("audio.wav", wav_data, "audio/wav")},
                data={"model": self.model, "response_format": "text"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise RemoteTranscriptionError(f"Request failed: {e}") from e

        if not response.ok:
            raise RemoteTranscriptionError(
                f"API error: HTTP {response.status_code} {response.reason}: "
                f"{response.text[:200]}",
                status_code=response.status_code,
            )

        return response.text.strip()
