"""
Pytest configuration for Qt-based tests.

Provides fixtures for proper Qt object cleanup between tests and a few
shared audio helpers.
"""

import os
from unittest.mock import MagicMock

import numpy as np
import pytest
from PySide6.QtWidgets import QApplication

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


@pytest.fixture(autouse=True)
def cleanup_qt_objects(qtbot, request):
    """
    Auto-cleanup fixture that runs after each test so Qt objects are
    destroyed before the next test starts.
    """
    yield

    app = QApplication.instance()
    if app:
        app.processEvents()


@pytest.fixture
def sine_int16():
    """Factory for a mono int16 sine tone."""

    def make(freq: float, sample_rate: int, seconds: float, amplitude: float = 0.5):
        t = np.arange(int(sample_rate * seconds)) / sample_rate
        tone = amplitude * np.sin(2 * np.pi * freq * t)
        return (tone * 32767).astype(np.int16)

    return make


def _make_streaming_response(chunks, content_length=None, ok=True, status_code=200):
    response = MagicMock()
    response.ok = ok
    response.status_code = status_code
    response.reason = "OK" if ok else "Not Found"
    response.headers = {}
    if content_length is not None:
        response.headers["content-length"] = str(content_length)

    def iter_content(chunk_size=None):
        for chunk in chunks:
            if isinstance(chunk, Exception):
                raise chunk
            yield chunk

    response.iter_content.side_effect = iter_content
    response.__enter__.return_value = response
    response.__exit__.return_value = False
    return response


@pytest.fixture
def make_response():
    """
    Factory for a mocked streaming ``requests`` response.

    Items of ``chunks`` that are exceptions are raised mid-stream.
    """
    return _make_streaming_response
