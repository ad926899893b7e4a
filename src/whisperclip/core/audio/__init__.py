from .buffer import AudioBuffer, normalize_pcm, read_wav
from .recorder import AudioDevice, AudioRecorder
from .resampler import DEFAULT_CHUNK_SIZE, SincParameters, SincResampler, resample

__all__ = [
    "AudioBuffer",
    "AudioDevice",
    "AudioRecorder",
    "DEFAULT_CHUNK_SIZE",
    "SincParameters",
    "SincResampler",
    "normalize_pcm",
    "read_wav",
    "resample",
]
