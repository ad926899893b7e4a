"""
Tests for AudioRecorder and device enumeration.

Uses mocking to avoid requiring actual audio hardware.
"""

from unittest.mock import MagicMock, patch

import numpy as np
import pytest
import sounddevice as sd

from whisperclip.core.audio.buffer import AudioBuffer
from whisperclip.core.audio.recorder import AudioDevice, AudioRecorder
from whisperclip.core.errors import DeviceError

QUERY_DEVICES = "whisperclip.core.audio.recorder.sd.query_devices"
INPUT_STREAM = "whisperclip.core.audio.recorder.sd.InputStream"


def _query_devices(index=None, kind=None):
    devices = [
        {"name": "Mic 1", "max_input_channels": 2, "default_samplerate": 44100.0},
        {"name": "Speakers", "max_input_channels": 0, "default_samplerate": 48000.0},
        {"name": "USB Mic", "max_input_channels": 1, "default_samplerate": 48000.0},
    ]
    if kind == "input":
        return devices[2] if index == 2 else devices[0]
    return devices


class TestAudioDevice:
    def test_device_creation(self):
        device = AudioDevice(
            name="Test Microphone", index=0, channels=2, default_sample_rate=48000.0
        )
        assert device.name == "Test Microphone"
        assert device.index == 0
        assert device.channels == 2
        assert device.default_sample_rate == 48000.0


class TestAudioRecorderDeviceEnumeration:
    @patch(QUERY_DEVICES, side_effect=_query_devices)
    def test_list_devices_returns_input_devices(self, mock_query):
        devices = AudioRecorder.list_devices()

        assert [d.name for d in devices] == ["Mic 1", "USB Mic"]
        assert devices[1].index == 2
        assert devices[1].channels == 1

    @patch(QUERY_DEVICES, return_value=[])
    def test_list_devices_empty(self, mock_query):
        assert AudioRecorder.list_devices() == []


class TestAudioRecorderSession:
    @patch(INPUT_STREAM)
    @patch(QUERY_DEVICES, side_effect=_query_devices)
    def test_start_opens_stream_at_native_rate(self, mock_query, mock_stream):
        recorder = AudioRecorder()
        recorder.start()

        kwargs = mock_stream.call_args.kwargs
        assert kwargs["samplerate"] == 44100
        assert kwargs["channels"] == 1
        assert kwargs["dtype"] == "int16"
        assert kwargs["device"] is None
        assert recorder.is_recording
        assert recorder.sample_rate == 44100

    @patch(INPUT_STREAM)
    @patch(QUERY_DEVICES, side_effect=_query_devices)
    def test_named_device_selected(self, mock_query, mock_stream):
        recorder = AudioRecorder(device="USB Mic")
        recorder.start()

        kwargs = mock_stream.call_args.kwargs
        assert kwargs["device"] == 2
        assert kwargs["samplerate"] == 48000

    @patch(INPUT_STREAM)
    @patch(QUERY_DEVICES, side_effect=_query_devices)
    def test_start_twice_raises(self, mock_query, mock_stream):
        recorder = AudioRecorder()
        recorder.start()
        with pytest.raises(DeviceError):
            recorder.start()

    @patch(INPUT_STREAM, side_effect=sd.PortAudioError("Device unavailable"))
    @patch(QUERY_DEVICES, side_effect=_query_devices)
    def test_device_unavailable_raises_device_error(self, mock_query, mock_stream):
        recorder = AudioRecorder()
        with pytest.raises(DeviceError):
            recorder.start()
        assert not recorder.is_recording

    def test_stop_without_session_raises(self):
        with pytest.raises(DeviceError):
            AudioRecorder().stop()

    @patch(INPUT_STREAM)
    @patch(QUERY_DEVICES, side_effect=_query_devices)
    def test_stop_returns_tagged_buffer(self, mock_query, mock_stream):
        mock_stream.return_value.active = True
        recorder = AudioRecorder()
        recorder.start()

        recorder._audio_callback(np.array([[1], [2]], dtype=np.int16), 2, None, None)
        recorder._audio_callback(np.array([[3]], dtype=np.int16), 1, None, None)
        buffer = recorder.stop()

        assert isinstance(buffer, AudioBuffer)
        assert buffer.samples.tolist() == [1, 2, 3]
        assert buffer.sample_rate == 44100
        mock_stream.return_value.close.assert_called_once()
        assert not recorder.is_recording

    @patch(INPUT_STREAM)
    @patch(QUERY_DEVICES, side_effect=_query_devices)
    def test_stop_with_no_audio_returns_empty_buffer(self, mock_query, mock_stream):
        mock_stream.return_value.active = True
        recorder = AudioRecorder()
        recorder.start()

        buffer = recorder.stop()
        assert buffer.is_empty

    @patch(INPUT_STREAM)
    @patch(QUERY_DEVICES, side_effect=_query_devices)
    def test_disconnect_mid_session_raises(self, mock_query, mock_stream):
        mock_stream.return_value.active = False
        recorder = AudioRecorder()
        recorder.start()

        with pytest.raises(DeviceError):
            recorder.stop()
        mock_stream.return_value.close.assert_called_once()
        assert not recorder.is_recording

    @patch(INPUT_STREAM)
    @patch(QUERY_DEVICES, side_effect=_query_devices)
    def test_stream_closed_when_stop_fails(self, mock_query, mock_stream):
        mock_stream.return_value.active = True
        mock_stream.return_value.stop.side_effect = sd.PortAudioError("stop failed")
        recorder = AudioRecorder()
        recorder.start()

        with pytest.raises(DeviceError, match="stop failed"):
            recorder.stop()
        mock_stream.return_value.close.assert_called_once()
        assert not recorder.is_recording
