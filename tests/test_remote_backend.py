"""Tests for the OpenAI-compatible remote transcription client."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from whisperclip.core.asr.remote_backend import RemoteTranscriber
from whisperclip.core.errors import RemoteTranscriptionError

POST = "whisperclip.core.asr.remote_backend.requests.post"


def _response(ok=True, status_code=200, text="", reason="OK"):
    response = MagicMock()
    response.ok = ok
    response.status_code = status_code
    response.text = text
    response.reason = reason
    return response


class TestRemoteTranscriber:
    def test_endpoint_strips_trailing_slash(self):
        client = RemoteTranscriber("https://api.example.com/v1/", "key", "whisper-1")
        assert client.endpoint == "https://api.example.com/v1/audio/transcriptions"

    @patch(POST)
    def test_posts_multipart_wav(self, mock_post):
        mock_post.return_value = _response(text="  hello there \n")
        client = RemoteTranscriber("https://api.example.com/v1", "sk-test", "whisper-1")

        assert client.transcribe(b"RIFFdata") == "hello there"

        args, kwargs = mock_post.call_args
        assert args[0] == "https://api.example.com/v1/audio/transcriptions"
        assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
        assert kwargs["files"]["file"] == ("audio.wav", b"RIFFdata", "audio/wav")
        assert kwargs["data"] == {"model": "whisper-1", "response_format": "text"}
        assert kwargs["timeout"] > 0

    @patch(POST)
    def test_non_success_status_raises(self, mock_post):
        mock_post.return_value = _response(
            ok=False, status_code=401, text="invalid key", reason="Unauthorized"
        )
        client = RemoteTranscriber("https://api.example.com/v1", "bad", "whisper-1")

        with pytest.raises(RemoteTranscriptionError) as exc_info:
            client.transcribe(b"RIFF")
        assert exc_info.value.status_code == 401
        assert "401" in str(exc_info.value)

    @patch(POST, side_effect=requests.ConnectionError("no route"))
    def test_transport_failure_raises(self, mock_post):
        client = RemoteTranscriber("https://api.example.com/v1", "key", "whisper-1")

        with pytest.raises(RemoteTranscriptionError, match="no route"):
            client.transcribe(b"RIFF")
        assert mock_post.call_count == 1
