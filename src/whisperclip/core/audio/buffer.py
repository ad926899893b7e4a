"""
Finished recordings and their WAV container.
"""

import io
import struct
from dataclasses import dataclass
from typing import Tuple

import numpy as np
import scipy.io.wavfile as wav

from ..errors import FormatError

# Divisors mapping each integer PCM width onto [-1.0, 1.0).
_PCM_SCALE = {
    np.dtype(np.uint8): 128.0,
    np.dtype(np.int16): 32768.0,
    np.dtype(np.int32): 2147483648.0,
}


@dataclass(frozen=True)
class AudioBuffer:
    """
    Mono signed 16-bit PCM samples captured in one recording session.

    The samples array is made read-only on construction.
    """

    samples: np.ndarray
    sample_rate: int

    def __post_init__(self):
        if int(self.sample_rate) <= 0:
            raise ValueError(f"Sample rate must be positive, got {self.sample_rate}")

        samples = np.asarray(self.samples)
        if samples.ndim > 1:
            samples = samples[:, 0] if samples.shape[1] > 0 else samples.flatten()
        samples = np.array(samples, dtype=np.int16)
        samples.flags.writeable = False

        object.__setattr__(self, "samples", samples)
        object.__setattr__(self, "sample_rate", int(self.sample_rate))

    def __len__(self) -> int:
        return len(self.samples)

    @property
    def is_empty(self) -> bool:
        return len(self.samples) == 0

    @property
    def duration(self) -> float:
        return len(self.samples) / self.sample_rate

    def to_wav(self) -> bytes:
        """Encode as a little-endian 16-bit mono WAV file."""
        out = io.BytesIO()
        wav.write(out, self.sample_rate, self.samples)
        return out.getvalue()


def read_wav(data: bytes) -> Tuple[np.ndarray, int]:
    """
    Decode an integer PCM WAV container.

    Returns:
        Tuple of (samples, sample_rate). Samples keep the file's integer
        dtype and shape, (frames,) or (frames, channels).

    Raises:
        FormatError: If the data is not a parseable integer PCM WAV.
    """
    try:
        sample_rate, samples = wav.read(io.BytesIO(data))
    except (ValueError, EOFError, TypeError, struct.error) as e:
        raise FormatError(f"WAV parse error: {e}") from e

    if samples.dtype not in _PCM_SCALE:
        raise FormatError(f"Unsupported WAV sample format: {samples.dtype}")
    if sample_rate <= 0:
        raise FormatError(f"Invalid WAV sample rate: {sample_rate}")

    return samples, int(sample_rate)


def normalize_pcm(samples: np.ndarray) -> np.ndarray:
    """Convert integer PCM samples to float32 in [-1.0, 1.0), down-mixing to mono."""
    scale = _PCM_SCALE.get(samples.dtype)
    if scale is None:
        audio = samples.astype(np.float32)
    elif samples.dtype == np.uint8:
        audio = (samples.astype(np.float32) - 128.0) / scale
    else:
        audio = samples.astype(np.float32) / scale

    if audio.ndim > 1:
        audio = audio.mean(axis=1) if audio.shape[1] > 1 else audio.flatten()

    return audio.astype(np.float32, copy=False)
