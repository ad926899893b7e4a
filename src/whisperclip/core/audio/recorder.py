"""
Audio recording functionality.

Handles microphone input using the sounddevice library. The device is
opened at its native sample rate; conversion to the model rate happens
later, on the local inference path only.
"""

from dataclasses import dataclass
from typing import List, Optional

import numpy as np
import sounddevice as sd

from ...utils.logger import get_logger
from ..errors import DeviceError
from .buffer import AudioBuffer

logger = get_logger(__name__)


@dataclass
class AudioDevice:
    name: str
    index: int
    channels: int
    default_sample_rate: float


class AudioRecorder:
    """
    Owns the microphone for the duration of one recording session.

    Usage:
        recorder = AudioRecorder()
        recorder.start()
        # ... user speaks ...
        buffer = recorder.stop()
    """

    def __init__(self, device: Optional[str] = None, channels: int = 1):
        self.device = device
        self.channels = channels

        self._stream: Optional[sd.InputStream] = None
        self._audio_buffer: List[np.ndarray] = []
        self._is_recording = False
        self._device_sample_rate: Optional[int] = None

    @property
    def is_recording(self) -> bool:
        return self._is_recording

    @property
    def sample_rate(self) -> Optional[int]:
        """Native rate of the device used by the current or last session."""
        return self._device_sample_rate

    def start(self) -> None:
        """
        Acquire the input device and begin buffering.

        Raises:
            DeviceError: If a session is already active or the device is
                unavailable.
        """
        if self._is_recording:
            raise DeviceError("Recording already in progress")

        self._audio_buffer = []
        stream = None

        try:
            self._device_sample_rate = self._get_device_sample_rate()
            stream = sd.InputStream(
                samplerate=self._device_sample_rate,
                channels=self.channels,
                dtype="int16",
                device=self._get_device_index(),
                callback=self._audio_callback,
            )
            stream.start()
        except (sd.PortAudioError, ValueError) as e:
            if stream is not None:
                stream.close()
            raise DeviceError(f"Audio device error: {e}") from e

        self._stream = stream
        self._is_recording = True
        logger.debug(f"Input stream opened at {self._device_sample_rate}Hz")

    def stop(self) -> AudioBuffer:
        """
        End buffering, release the device and return the recording.

        Raises:
            DeviceError: If no session is active or the device went away
                mid-session.
        """
        if not self._is_recording:
            raise DeviceError("No recording in progress")

        self._is_recording = False
        stream, self._stream = self._stream, None

        disconnected = not stream.active
        try:
            try:
                stream.stop()
            finally:
                stream.close()
        except sd.PortAudioError as e:
            self._audio_buffer = []
            raise DeviceError(f"Audio device error: {e}") from e

        if disconnected:
            raise DeviceError("Audio device disconnected during recording")

        if self._audio_buffer:
            samples = np.concatenate(self._audio_buffer, axis=0)
        else:
            samples = np.zeros(0, dtype=np.int16)
        self._audio_buffer = []

        buffer = AudioBuffer(samples=samples, sample_rate=self._device_sample_rate)
        logger.debug(f"Captured {len(buffer)} samples ({buffer.duration:.2f}s)")
        return buffer

    def _audio_callback(self, indata: np.ndarray, frames: int, time, status) -> None:
        if status:
            logger.debug(f"Input stream status: {status}")
        if self._is_recording:
            self._audio_buffer.append(indata.copy())

    def _get_device_sample_rate(self) -> int:
        device_info = sd.query_devices(self._get_device_index(), "input")
        return int(device_info["default_samplerate"])

    def _get_device_index(self) -> Optional[int]:
        if self.device is None:
            return None

        for device in self.list_devices():
            if device.name == self.device:
                return device.index

        logger.warning(f"Input device '{self.device}' not found, using default")
        return None

    @staticmethod
    def list_devices() -> List[AudioDevice]:
        devices = []

        for i, device in enumerate(sd.query_devices()):
            if device["max_input_channels"] > 0:
                devices.append(
                    AudioDevice(
                        name=device["name"],
                        index=i,
                        channels=device["max_input_channels"],
                        default_sample_rate=device["default_samplerate"],
                    )
                )

        return devices
