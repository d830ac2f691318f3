"""Audio feature extractors that turn analysis frames into control signals."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import ClassVar, Optional

import numpy as np

from zerr.utils import SystemConfigs, ZerrError

AUDIO_BUFFER_SIZE = 1024
"""Length of the analysis window kept by the feature bank."""

_FLATNESS_EPSILON = 1e-10


def _as_array(values: object) -> np.ndarray:
    return np.asarray(values, dtype=float).ravel()


@dataclass
class AudioInputs:
    """One analysis step: the waveform window, its power spectrum and the raw block."""

    wave: np.ndarray = field(default_factory=lambda: np.zeros(0))
    spec: np.ndarray = field(default_factory=lambda: np.zeros(0))
    block: np.ndarray = field(default_factory=lambda: np.zeros(0))

    def __post_init__(self) -> None:
        self.wave = _as_array(self.wave)
        self.spec = _as_array(self.spec)
        self.block = _as_array(self.block)


class FeatureExtractor(ABC):
    """Common interface of every feature: fetch inputs, extract, send values."""

    name: ClassVar[str] = ""
    category: ClassVar[str] = ""
    description: ClassVar[str] = ""

    def __init__(self) -> None:
        self._configs: Optional[SystemConfigs] = None
        self.reset()

    @property
    def is_initialized(self) -> bool:
        return self._configs is not None

    @property
    def system_configs(self) -> Optional[SystemConfigs]:
        return self._configs

    def initialize(self, system_configs: SystemConfigs) -> None:
        """Bind the feature to the system settings and clear its state."""
        self._configs = system_configs
        self.reset()

    def _require_configs(self) -> SystemConfigs:
        if self._configs is None:
            raise ZerrError(f"feature '{self.name}' is not initialized")
        return self._configs

    @abstractmethod
    def reset(self) -> None:
        """Return the feature to its initial state."""

    @abstractmethod
    def fetch(self, inputs: AudioInputs) -> None:
        """Take the part of ``inputs`` this feature analyses."""

    @abstractmethod
    def extract(self) -> None:
        """Compute the feature from the fetched data."""

    @abstractmethod
    def send(self) -> np.ndarray:
        """One block of feature values."""


class _FrameFeature(FeatureExtractor):
    """A feature with one value per frame, ramped linearly across each block."""

    def reset(self) -> None:
        self._x = np.zeros(AUDIO_BUFFER_SIZE)
        self._prv_y = 0.0
        self._crr_y = 0.0

    @property
    def value(self) -> float:
        """The most recently extracted value."""
        return self._crr_y

    @property
    def _freq_max(self) -> float:
        return self._require_configs().sample_rate / 2.0

    def fetch(self, inputs: AudioInputs) -> None:
        self._x = self._select(inputs)
        self._prv_y = self._crr_y

    def extract(self) -> None:
        self._require_configs()
        self._crr_y = float(self._compute(self._x))

    def send(self) -> np.ndarray:
        block_size = self._require_configs().block_size
        return np.linspace(self._prv_y, self._crr_y, block_size)

    @abstractmethod
    def _select(self, inputs: AudioInputs) -> np.ndarray:
        ...

    @abstractmethod
    def _compute(self, x: np.ndarray) -> float:
        ...


class Centroid(_FrameFeature):
    name = "Spectral Centroid"
    category = "Frequency-Domain"
    description = (
        "The spectral centroid is a measure used in digital signal processing to "
        "characterise a spectrum."
    )

    def _select(self, inputs: AudioInputs) -> np.ndarray:
        return inputs.spec.copy()

    def _compute(self, x: np.ndarray) -> float:
        if x.size == 0:
            return 0.0
        frequencies = np.arange(x.size) * self._freq_max / x.size
        centroid = float(np.dot(frequencies, x))
        total = float(x.sum())
        return centroid / total if total > 0.0 else centroid


class CrestFactor(_FrameFeature):
    name = "Crest Factor"
    category = "Time-Domain"
    description = (
        "Crest Factor is a parameter used in signal processing and audio "
        "engineering to describe the characteristics of a waveform. It is defined "
        "as the ratio of the peak value of a waveform to its RMS (Root Mean "
        "Square) value. "
    )

    def _select(self, inputs: AudioInputs) -> np.ndarray:
        return inputs.wave.copy()

    def _compute(self, x: np.ndarray) -> float:
        if x.size == 0:
            return float("nan")
        rms = float(np.sqrt(np.mean(x * x)))
        peak = float(np.max(np.abs(x)))
        if rms == 0.0:
            return float("nan")
        return peak / rms


class Flatness(_FrameFeature):
    name = "Spectral Flatness"
    category = "Frequency-Domain"
    description = (
        "Spectral flatness, also known as Wiener entropy, is a measure used in "
        "digital signal processing to characterize an audio spectrum. Spectral "
        "flatness is typically used to quantify how noise-like a signal is, as "
        "opposed to being tonal. A higher value of spectral flatness indicates a "
        "more noise-like signal, whereas a lower value indicates a more tonal "
        "signal."
    )

    def _select(self, inputs: AudioInputs) -> np.ndarray:
        return inputs.spec.copy()

    def _compute(self, x: np.ndarray) -> float:
        if x.size == 0:
            return float("nan")
        with np.errstate(invalid="ignore", divide="ignore"):
            geometric_mean = float(np.exp(np.mean(np.log(x + _FLATNESS_EPSILON))))
        arithmetic_mean = float(np.mean(x))
        if arithmetic_mean == 0.0:
            return 0.0
        return geometric_mean / arithmetic_mean


class Flux(_FrameFeature):
    name = "Spectral Flux"
    category = "Frequency-Domain"
    description = (
        "Spectral flux is a measure used in digital signal processing that "
        "quantifies how quickly the power spectrum of a signal changes. It is "
        "often used in audio analysis for onset detection and other applications."
    )

    def reset(self) -> None:
        super().reset()
        self._prv_x = np.zeros(AUDIO_BUFFER_SIZE)

    def fetch(self, inputs: AudioInputs) -> None:
        self._prv_x = self._x
        super().fetch(inputs)

    def _select(self, inputs: AudioInputs) -> np.ndarray:
        return inputs.spec.copy()

    def _compute(self, x: np.ndarray) -> float:
        previous = self._prv_x[: x.size]
        if previous.size < x.size:
            previous = np.pad(previous, (0, x.size - previous.size))
        diff = x - previous
        return float(np.sqrt(np.sum(diff * diff)))


class Rolloff(_FrameFeature):
    name = "Spectral Rolloff"
    category = "Frequency-Domain"
    description = (
        "The spectral rolloff is a measure used in signal processing to determine "
        "the frequency below which a specified percentage of the total spectral "
        "energy lies. It is often used to distinguish between harmonic and "
        "non-harmonic content in an audio signal."
    )

    def __init__(self, rolloff_percent: float = 0.85) -> None:
        self.rolloff_percent = float(rolloff_percent)
        super().__init__()

    def _select(self, inputs: AudioInputs) -> np.ndarray:
        return inputs.spec.copy()

    def _compute(self, x: np.ndarray) -> float:
        threshold = float(x.sum()) * self.rolloff_percent
        reached = np.flatnonzero(np.cumsum(x) >= threshold)
        if reached.size == 0:
            return self._freq_max
        return float(reached[0]) * self._freq_max / x.size


class RootMeanSquare(_FrameFeature):
    name = "Root-Mean-Squre Amplitude"
    category = "Time-Domain"
    description = (
        "The RMS is defined as the square root of the mean over time of the square "
        "of the vertical distance of the graph from the rest state"
    )

    def _select(self, inputs: AudioInputs) -> np.ndarray:
        return inputs.wave.copy()

    def _compute(self, x: np.ndarray) -> float:
        if x.size == 0:
            return float("nan")
        return float(np.sqrt(np.mean(x * x)))


class ZeroCrossingRate(_FrameFeature):
    name = "Zero crossing rate"
    category = "Time-Domain"
    description = (
        "The zero crossing rate (ZCR) is a measure of how frequently a signal "
        "changes its sign. It represents the rate at which the signal crosses the "
        "zero amplitude level over a given time period."
    )

    def _select(self, inputs: AudioInputs) -> np.ndarray:
        return inputs.wave.copy()

    def _compute(self, x: np.ndarray) -> float:
        if x.size < 2:
            return float("nan")
        non_negative = x >= 0
        crossings = int(np.count_nonzero(non_negative[1:] != non_negative[:-1]))
        return crossings / (x.size - 1)


class ZeroCrossings(FeatureExtractor):
    """Marks every sample where the signal changes sign with a one."""

    name = "ZeroCrossings"
    category = "Sample-Level"
    description = (
        "Zero crossing is used to describe the point at which a signal changes its "
        "sign from positive to negative or from negative to positive."
    )

    def reset(self) -> None:
        size = self._configs.block_size if self._configs is not None else 0
        self._x = np.zeros(size)
        self._y = np.zeros(size)
        self._last_sample = 0.0

    def fetch(self, inputs: AudioInputs) -> None:
        self._x = inputs.block.copy()
        self._y = np.zeros(self._x.size)

    def extract(self) -> None:
        if self._x.size == 0:
            return
        non_negative = np.concatenate(([self._last_sample >= 0], self._x >= 0))
        self._y = (non_negative[1:] != non_negative[:-1]).astype(float)
        self._last_sample = float(self._x[-1])

    def send(self) -> np.ndarray:
        return self._y.copy()