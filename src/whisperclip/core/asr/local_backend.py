"""
On-device transcription with a whisper.cpp model.
"""

import os
import time
from pathlib import Path
from typing import Union

import numpy as np

from ...utils.logger import get_logger
from ..audio.buffer import normalize_pcm, read_wav
from ..audio.resampler import resample
from ..errors import EmptyAudioError, InferenceError, ModelLoadError

logger = get_logger(__name__)

WHISPER_SAMPLE_RATE = 16000

# whisper.cpp sampling strategy 0 is greedy decoding.
_GREEDY = 0


class LocalWhisper:
    """
    A loaded whisper.cpp model, ready for inference.

    Construction reads the whole model into memory and is slow; callers run
    it on a background thread. ``transcribe`` is blocking as well.
    """

    def __init__(self, model_path: Union[str, Path]):
        self.model_path = Path(model_path)

        if not self.model_path.is_file() or not os.access(self.model_path, os.R_OK):
            raise ModelLoadError(f"Model file not readable: {self.model_path}")

        try:
            from pywhispercpp.model import Model

            self._model = Model(
                str(self.model_path),
                params_sampling_strategy=_GREEDY,
                print_realtime=False,
                print_progress=False,
                print_timestamps=False,
                print_special=False,
            )
        except Exception as e:
            raise ModelLoadError(f"Failed to load whisper model: {e}") from e

        logger.info(f"Loaded whisper model from {self.model_path}")

    def transcribe(self, wav_data: bytes) -> str:
        """
        Transcribe a WAV recording.

        Raises:
            FormatError: If the WAV container cannot be parsed.
            EmptyAudioError: If the recording holds no samples.
            ResampleError: If conversion to 16kHz fails.
            InferenceError: If whisper.cpp reports a failure.
        """
        samples, sample_rate = read_wav(wav_data)
        audio = normalize_pcm(samples)

        if len(audio) == 0:
            raise EmptyAudioError("No audio samples in WAV")

        if sample_rate != WHISPER_SAMPLE_RATE:
            audio = resample(audio, sample_rate, WHISPER_SAMPLE_RATE)

        return self._run_inference(audio)

    def _run_inference(self, audio: np.ndarray) -> str:
        start_time = time.time()

        try:
            segments = self._model.transcribe(audio)
        except Exception as e:
            raise InferenceError(f"Whisper inference failed: {e}") from e

        text = "".join(segment.text for segment in segments).strip()

        processing_time = time.time() - start_time
        audio_duration = len(audio) / WHISPER_SAMPLE_RATE
        if processing_time > 0:
            logger.debug(
                f"Local transcription finished: audio_len={audio_duration:.2f}s, "
                f"time={processing_time:.2f}s, speed={audio_duration / processing_time:.2f}x"
            )

        return text
