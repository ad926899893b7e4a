"""Tests for background transcription dispatch."""

import gc
import threading
import weakref
from unittest.mock import MagicMock, patch

import numpy as np
import pytest
from PySide6.QtCore import QThread

from whisperclip.core.asr.backends import LocalJob, RemoteJob, TranscriptionResult
from whisperclip.core.asr.dispatcher import TranscriptionDispatcher
from whisperclip.core.asr.transcription_worker import TranscriptionWorkerThread
from whisperclip.core.audio.buffer import AudioBuffer
from whisperclip.core.errors import InferenceError, RemoteTranscriptionError

REMOTE_TRANSCRIBER = "whisperclip.core.asr.transcription_worker.RemoteTranscriber"


@pytest.fixture
def audio():
    return AudioBuffer(np.zeros(1600, dtype=np.int16), 16000)


@pytest.fixture
def dispatcher(qtbot):
    dispatcher = TranscriptionDispatcher(poll_interval_ms=10)
    yield dispatcher
    dispatcher.wait(5000)


def _collect(dispatcher, audio, job):
    results = []
    dispatcher.dispatch(audio, job, results.append)
    return results


class TestDispatchRemote:
    @patch(REMOTE_TRANSCRIBER)
    def test_remote_job_uses_snapshot_values(self, mock_cls, qtbot, dispatcher, audio):
        mock_cls.return_value.transcribe.return_value = "hello"
        job = RemoteJob("https://api.example.com/v1", "sk-1", "whisper-1")

        results = _collect(dispatcher, audio, job)
        qtbot.waitUntil(lambda: len(results) == 1, timeout=5000)

        assert results[0] == TranscriptionResult.success("hello")
        mock_cls.assert_called_once_with("https://api.example.com/v1", "sk-1", "whisper-1")
        wav_data = mock_cls.return_value.transcribe.call_args.args[0]
        assert wav_data[:4] == b"RIFF"
        assert not dispatcher.is_busy

    @patch(REMOTE_TRANSCRIBER)
    def test_remote_error_becomes_failure(self, mock_cls, qtbot, dispatcher, audio):
        error = RemoteTranscriptionError("HTTP 500", status_code=500)
        mock_cls.return_value.transcribe.side_effect = error

        results = _collect(dispatcher, audio, RemoteJob("https://x", "k", "m"))
        qtbot.waitUntil(lambda: len(results) == 1, timeout=5000)

        assert not results[0].ok
        assert results[0].error is error


class TestDispatchLocal:
    def test_local_job_calls_model(self, qtbot, dispatcher, audio):
        model = MagicMock()
        model.transcribe.return_value = "local text"

        results = _collect(dispatcher, audio, LocalJob(model))
        qtbot.waitUntil(lambda: len(results) == 1, timeout=5000)

        assert results[0].text == "local text"
        model.transcribe.assert_called_once()

    def test_unexpected_exception_becomes_inference_error(self, qtbot, dispatcher, audio):
        model = MagicMock()
        model.transcribe.side_effect = KeyError("boom")

        results = _collect(dispatcher, audio, LocalJob(model))
        qtbot.waitUntil(lambda: len(results) == 1, timeout=5000)

        assert isinstance(results[0].error, InferenceError)


class _SilentWorker(QThread):
    """Exits without sending a result."""

    def __init__(self, job, audio, channel, parent=None):
        super().__init__(parent)
        self._channel = channel

    def run(self):
        self._channel.close()


class TestDispatchLifecycle:
    @patch("whisperclip.core.asr.dispatcher.TranscriptionWorkerThread", _SilentWorker)
    def test_closed_channel_without_result_is_failure(self, qtbot, dispatcher, audio):
        results = _collect(dispatcher, audio, LocalJob(MagicMock()))
        qtbot.waitUntil(lambda: len(results) == 1, timeout=5000)

        assert not results[0].ok
        assert isinstance(results[0].error, InferenceError)

    def test_second_dispatch_while_busy_is_refused(self, qtbot, dispatcher, audio):
        release = threading.Event()
        model = MagicMock()
        model.transcribe.side_effect = lambda wav: release.wait(5) and "done"

        results = _collect(dispatcher, audio, LocalJob(model))
        assert dispatcher.is_busy
        with pytest.raises(RuntimeError):
            dispatcher.dispatch(audio, LocalJob(model), results.append)

        release.set()
        qtbot.waitUntil(lambda: len(results) == 1, timeout=5000)
        assert results[0].text == "done"
        assert model.transcribe.call_count == 1

    def test_result_delivered_exactly_once(self, qtbot, dispatcher, audio):
        model = MagicMock()
        model.transcribe.return_value = "once"

        results = _collect(dispatcher, audio, LocalJob(model))
        qtbot.waitUntil(lambda: len(results) == 1, timeout=5000)
        qtbot.wait(100)

        assert len(results) == 1

    def test_dispatcher_reusable_after_result(self, qtbot, dispatcher, audio):
        model = MagicMock()
        model.transcribe.side_effect = ["first", "second"]

        results = _collect(dispatcher, audio, LocalJob(model))
        qtbot.waitUntil(lambda: len(results) == 1, timeout=5000)
        dispatcher.dispatch(audio, LocalJob(model), results.append)
        qtbot.waitUntil(lambda: len(results) == 2, timeout=5000)

        assert [r.text for r in results] == ["first", "second"]


class _Model:
    def transcribe(self, wav_data):
        return "released"


class TestDispatchCleanup:
    def test_model_and_audio_released_after_result(self, qtbot, dispatcher):
        model = _Model()
        audio = AudioBuffer(np.zeros(1600, dtype=np.int16), 16000)
        model_ref = weakref.ref(model)
        audio_ref = weakref.ref(audio)

        results = _collect(dispatcher, audio, LocalJob(model))
        del model, audio
        qtbot.waitUntil(lambda: len(results) == 1, timeout=5000)
        qtbot.waitUntil(
            lambda: not dispatcher.findChildren(TranscriptionWorkerThread),
            timeout=5000,
        )
        gc.collect()

        assert results[0].text == "released"
        assert model_ref() is None
        assert audio_ref() is None

    @patch(REMOTE_TRANSCRIBER)
    def test_children_do_not_accumulate(self, mock_cls, qtbot, dispatcher, audio):
        mock_cls.return_value.transcribe.return_value = "text"
        results = []

        for i in range(5):
            dispatcher.dispatch(audio, RemoteJob("https://x", "k", "m"), results.append)
            qtbot.waitUntil(lambda: len(results) == i + 1, timeout=5000)

        qtbot.waitUntil(lambda: not dispatcher.children(), timeout=5000)
        assert len(results) == 5
