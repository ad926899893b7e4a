"""
Sample-rate conversion for the local inference path.

Band-limited windowed-sinc interpolation, processed in fixed-size chunks
with a separate flush step for the trailing partial chunk. The kernel is
tabulated at ``oversampling_factor`` points per input sample and linearly
interpolated between table entries.
"""

from dataclasses import dataclass
from typing import List

import numpy as np
from scipy.signal import windows

from ...utils.logger import get_logger
from ..errors import ResampleError
from .buffer import normalize_pcm

logger = get_logger(__name__)

DEFAULT_CHUNK_SIZE = 1024


@dataclass(frozen=True)
class SincParameters:
    sinc_len: int = 256
    f_cutoff: float = 0.95
    oversampling_factor: int = 256


def _build_sinc_table(params: SincParameters, cutoff: float) -> np.ndarray:
    half = params.sinc_len // 2
    points = params.sinc_len * params.oversampling_factor + 1
    x = np.arange(points, dtype=np.float64) / params.oversampling_factor - half

    window = windows.blackmanharris(points, sym=True) ** 2
    table = cutoff * np.sinc(cutoff * x) * window

    # Unity gain at DC: taps one input sample apart must sum to 1.
    table /= table[:: params.oversampling_factor].sum()
    return table


class SincResampler:
    """
    Streaming resampler from ``from_rate`` to ``to_rate``.

    Feed full chunks through ``process()`` and finish with ``flush()``, which
    accepts the remaining partial chunk (possibly empty) and emits the tail.
    Output sample ``n`` is centred on input position ``n * from / to``, so the
    total output length is ``ceil(input_len * to / from)``.
    """

    def __init__(
        self,
        from_rate: int,
        to_rate: int,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        params: SincParameters = SincParameters(),
    ):
        if int(from_rate) != from_rate or int(to_rate) != to_rate:
            raise ResampleError(f"Sample rates must be integers: {from_rate} -> {to_rate}")
        if from_rate <= 0 or to_rate <= 0:
            raise ResampleError(f"Invalid resample ratio: {from_rate} -> {to_rate}")
        if chunk_size <= 0:
            raise ResampleError(f"Chunk size must be positive, got {chunk_size}")
        if params.sinc_len < 2 or params.sinc_len % 2:
            raise ResampleError(f"sinc_len must be a positive even number, got {params.sinc_len}")
        if not 0.0 < params.f_cutoff <= 1.0:
            raise ResampleError(f"f_cutoff must be in (0, 1], got {params.f_cutoff}")
        if params.oversampling_factor < 1:
            raise ResampleError(
                f"oversampling_factor must be >= 1, got {params.oversampling_factor}"
            )

        self.from_rate = int(from_rate)
        self.to_rate = int(to_rate)
        self.chunk_size = chunk_size
        self._params = params
        self._half = params.sinc_len // 2

        # Cut off below the Nyquist frequency of the lower of the two rates.
        cutoff = params.f_cutoff * min(1.0, self.to_rate / self.from_rate)
        self._table = _build_sinc_table(params, cutoff)

        # Leading zeros stand in for the signal before sample 0.
        self._buffer = np.zeros(self._half, dtype=np.float64)
        self._buffer_start = -self._half
        self._received = 0
        self._produced = 0
        self._flushed = False

    @property
    def ratio(self) -> float:
        return self.to_rate / self.from_rate

    def output_length(self, input_length: int) -> int:
        return -(-input_length * self.to_rate // self.from_rate)

    def process(self, chunk: np.ndarray) -> np.ndarray:
        """Resample exactly one full chunk, returning every output it completes."""
        if self._flushed:
            raise ResampleError("Resampler has already been flushed")
        if len(chunk) != self.chunk_size:
            raise ResampleError(
                f"Expected a chunk of {self.chunk_size} samples, got {len(chunk)}"
            )

        self._append(chunk)
        limit = self._ceil_outputs(self._received - self._half)
        return self._emit(self._received, limit)

    def flush(self, tail: np.ndarray) -> np.ndarray:
        """Resample the final partial chunk and drain the filter."""
        if self._flushed:
            raise ResampleError("Resampler has already been flushed")
        if len(tail) > self.chunk_size:
            raise ResampleError(
                f"Flush accepts at most {self.chunk_size} samples, got {len(tail)}"
            )

        self._append(tail)
        self._flushed = True

        end = self._received
        self._buffer = np.concatenate([self._buffer, np.zeros(self._half)])
        return self._emit(end + self._half, self.output_length(end))

    def _append(self, samples: np.ndarray) -> None:
        if len(samples):
            self._buffer = np.concatenate([self._buffer, samples.astype(np.float64)])
            self._received += len(samples)

    def _ceil_outputs(self, input_position: int) -> int:
        # Number of outputs whose centre lies strictly before input_position.
        if input_position <= 0:
            return 0
        return -(-input_position * self.to_rate // self.from_rate)

    def _emit(self, available_end: int, output_limit: int) -> np.ndarray:
        start = self._produced
        if output_limit <= start:
            return np.zeros(0, dtype=np.float32)

        n = np.arange(start, output_limit, dtype=np.int64)
        positions = n * self.from_rate / self.to_rate
        base = (n * self.from_rate) // self.to_rate

        ready = base + self._half < available_end
        n, positions, base = n[ready], positions[ready], base[ready]
        if len(n) == 0:
            return np.zeros(0, dtype=np.float32)

        offsets = np.arange(-self._half + 1, self._half + 1, dtype=np.int64)
        taps = base[:, None] + offsets[None, :]
        weights = self._kernel(positions[:, None] - taps)

        samples = self._buffer[taps - self._buffer_start]
        output = (samples * weights).sum(axis=1)

        self._produced = int(n[-1]) + 1
        self._discard_history()
        return output.astype(np.float32)

    def _kernel(self, distance: np.ndarray) -> np.ndarray:
        factor = self._params.oversampling_factor
        index = (distance + self._half) * factor
        lower = np.clip(np.floor(index).astype(np.int64), 0, len(self._table) - 2)
        frac = index - lower
        return self._table[lower] * (1.0 - frac) + self._table[lower + 1] * frac

    def _discard_history(self) -> None:
        next_base = (self._produced * self.from_rate) // self.to_rate
        drop = next_base - self._half + 1 - self._buffer_start
        if drop > 0:
            drop = min(drop, len(self._buffer))
            self._buffer = self._buffer[drop:]
            self._buffer_start += drop


def resample(
    samples: np.ndarray,
    from_rate: int,
    to_rate: int,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> np.ndarray:
    """
    Convert samples from ``from_rate`` to ``to_rate``.

    Equal rates return the input object untouched. Otherwise the samples are
    normalized to float32 and run through a ``SincResampler`` chunk by chunk.

    Raises:
        ResampleError: On invalid rates or a processing failure.
    """
    if from_rate == to_rate:
        return samples

    resampler = SincResampler(from_rate, to_rate, chunk_size)
    audio = normalize_pcm(np.asarray(samples))

    logger.debug(
        f"Resampling {len(audio)} samples: {from_rate}Hz -> {to_rate}Hz "
        f"(chunk={chunk_size})"
    )

    output: List[np.ndarray] = []
    pos = 0
    try:
        while pos + chunk_size <= len(audio):
            output.append(resampler.process(audio[pos : pos + chunk_size]))
            pos += chunk_size
        output.append(resampler.flush(audio[pos:]))
    except (ValueError, IndexError, MemoryError) as e:
        raise ResampleError(f"Resample error: {e}") from e

    return np.concatenate(output)
