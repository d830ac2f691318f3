"""Small signal-processing building blocks."""

from __future__ import annotations

from typing import Iterable

import numpy as np


class LinearInterpolator:
    """Steps linearly from a start value to a stop value over a fixed count."""

    def __init__(self) -> None:
        self._start = 0.0
        self._stop = 0.0
        self._steps = 0
        self._position = 0

    def set_value(self, start: float, stop: float, length: int) -> None:
        """Start a new ramp of ``length`` points from ``start`` to ``stop``."""
        self._start = float(start)
        self._stop = float(stop)
        self._steps = int(length)
        self._position = 0

    def get_value(self) -> float:
        """Value at the current step."""
        if self._steps <= 1:
            return self._start
        increment = (self._stop - self._start) / (self._steps - 1)
        return self._start + self._position * increment

    def next_step(self) -> None:
        """Advance one step; the position never passes the ramp length."""
        if self._position < self._steps:
            self._position += 1


class RingBuffer:
    """Fixed-capacity sample history; new samples overwrite the oldest."""

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._buffer = np.zeros(capacity, dtype=float)
        self._head = 0
        self._tail = 0
        self._size = 0

    def __len__(self) -> int:
        return self._size

    @property
    def capacity(self) -> int:
        return int(self._buffer.size)

    def enqueue(self, block: Iterable[float]) -> None:
        """Append a block no larger than the capacity."""
        samples = np.asarray(list(block) if not isinstance(block, np.ndarray) else block, dtype=float).ravel()
        capacity = self.capacity
        count = samples.size
        if count > capacity:
            raise ValueError("Block size must be smaller than buffer size.")
        if count == 0:
            return
        positions = (self._tail + np.arange(count)) % capacity
        self._buffer[positions] = samples
        self._tail = (self._tail + count) % capacity
        overflow = max(0, self._size + count - capacity)
        self._size = min(capacity, self._size + count)
        self._head = (self._head + overflow) % capacity

    def get_samples(self) -> np.ndarray:
        """All ``capacity`` slots, oldest first, starting at the head."""
        return np.roll(self._buffer, -self._head)


class OnsetDetector:
    """Suppresses onsets (samples equal to one) that follow too closely."""

    def __init__(self, debounce_threshold: int) -> None:
        self._threshold = 0
        self._last_onset = 0
        self.set_debounce_threshold(debounce_threshold)

    @property
    def debounce_threshold(self) -> int:
        return self._threshold

    def set_debounce_threshold(self, new_threshold: int) -> None:
        """Set the minimum spacing in samples and forget the previous onset."""
        self._threshold = int(new_threshold)
        self._last_onset = -self._threshold

    def detect_onset_in_block(self, block: Iterable[float]) -> np.ndarray:
        """Return the block with debounced onsets set to zero."""
        result = np.array(list(block) if not isinstance(block, np.ndarray) else block, dtype=float)
        if result.size == 0:
            return result
        for position in np.flatnonzero(result == 1):
            if position - self._last_onset >= self._threshold:
                self._last_onset = int(position)
            else:
                result[position] = 0.0
        self._last_onset -= result.size
        return result


class FrequencyTransformer:
    """Hann-windowed real FFT producing a scaled power spectrum."""

    def __init__(self, frame_size: int) -> None:
        if frame_size <= 0:
            raise ValueError(f"frame size must be positive, got {frame_size}")
        self.frame_size = int(frame_size)
        self.fft_size = self.frame_size // 2 + 1
        self._window = np.hanning(self.frame_size)

    def hann_window(self) -> np.ndarray:
        """The analysis window applied before the transform."""
        return self._window.copy()

    def power_spectrum(self, frame: Iterable[float]) -> np.ndarray:
        """Power spectrum of one frame, ``fft_size`` bins long."""
        samples = np.asarray(list(frame) if not isinstance(frame, np.ndarray) else frame, dtype=float)
        if samples.shape != (self.frame_size,):
            raise ValueError(
                f"frame must hold {self.frame_size} samples, got shape {samples.shape}"
            )
        spectrum = np.fft.rfft(samples * self._window)
        return (spectrum.real**2 + spectrum.imag**2) / (2.0 * self.fft_size)