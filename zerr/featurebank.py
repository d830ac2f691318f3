"""A registry of feature extractors run together on each incoming block."""

from __future__ import annotations

from typing import Callable, Iterable, Sequence

import numpy as np

from zerr.dsp import FrequencyTransformer, RingBuffer
from zerr.features import (
    AUDIO_BUFFER_SIZE,
    AudioInputs,
    Centroid,
    CrestFactor,
    FeatureExtractor,
    Flatness,
    Flux,
    Rolloff,
    RootMeanSquare,
    ZeroCrossingRate,
    ZeroCrossings,
)
from zerr.utils import SystemConfigs, ZerrError

FeatureFactory = Callable[[], FeatureExtractor]

_DEFAULT_FEATURES: tuple[tuple[str, FeatureFactory], ...] = (
    ("rms", RootMeanSquare),
    ("zcr", ZeroCrossingRate),
    ("flx", Flux),
    ("ctd", Centroid),
    ("rlf", Rolloff),
    ("cf", CrestFactor),
    ("flt", Flatness),
    ("zc", ZeroCrossings),
)


class FeatureBank:
    """Buffers incoming audio and runs the activated features on it."""

    def __init__(self) -> None:
        self._registry: dict[str, FeatureFactory] = {}
        self._active: list[FeatureExtractor] = []
        self._ring = RingBuffer(AUDIO_BUFFER_SIZE)
        self._transformer = FrequencyTransformer(AUDIO_BUFFER_SIZE)
        for name, factory in _DEFAULT_FEATURES:
            self.register(name, factory)

    @property
    def activated_features(self) -> tuple[FeatureExtractor, ...]:
        return tuple(self._active)

    def register(self, name: str, factory: FeatureFactory) -> None:
        """Make a feature available under ``name``, replacing any earlier one."""
        self._registry[name] = factory

    def registered_names(self) -> list[str]:
        """Names of all registered features in registration order."""
        return list(self._registry)

    def _create(self, name: str) -> FeatureExtractor:
        try:
            factory = self._registry[name]
        except KeyError:
            raise ZerrError(
                f"Feature |{name}| not found, please check your spelling"
            ) from None
        return factory()

    def initialize(
        self, feature_names: Iterable[str], system_configs: SystemConfigs
    ) -> None:
        """Create and initialize the named features, in the given order."""
        features = [self._create(name) for name in feature_names]
        for feature in features:
            feature.initialize(system_configs)
        self._active = features

    def perform(self, block: Sequence[float]) -> list[np.ndarray]:
        """Feed one audio block and return one value block per active feature."""
        samples = np.asarray(block, dtype=float).ravel()
        self._ring.enqueue(samples)
        wave = self._ring.get_samples()
        inputs = AudioInputs(
            wave=wave,
            spec=self._transformer.power_spectrum(wave),
            block=samples,
        )
        results = []
        for feature in self._active:
            feature.fetch(inputs)
            feature.extract()
            results.append(feature.send())
        return results

    def print_all_features(self) -> None:
        print("All registered features: ")
        for name in self._registry:
            print(f"  -Name: {name}")

    def print_active_features(self) -> None:
        print("All activated features: ")
        for feature in self._active:
            print(f"  -Name: {feature.name}")
            print(f"  -Category: {feature.category}")
            print(f"  -Description: {feature.description}")
            print()