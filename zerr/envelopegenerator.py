"""Turns control signals into one gain envelope per loudspeaker."""

from __future__ import annotations

import math
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence

import numpy as np

from zerr.dsp import OnsetDetector
from zerr.speakermanager import SpeakerManager
from zerr.utils import SystemConfigs, ZerrError, get_logger, is_equal_to_0

DISTANCE_SCALE = 1.0
"""Factor applied to speaker distances before the spread gain is computed."""

VOLUME_THRESHOLD = 1e-6
"""Below this the spread curve is treated as closed."""

DEFAULT_DEBOUNCE_SAMPLES = 50
"""Initial minimum spacing between accepted trigger onsets, in samples."""

GENERATOR_MODES = ("trigger", "trajectory")

_NUM_INLET = 3

_logger = get_logger("envelopegenerator")


def calculate_gain(x: float, theta: float) -> float:
    """Spread gain of a speaker at distance ``x`` for a spread ``theta`` in [0, 1].

    ``theta`` is clipped to [0, 1] and the result to [0, 1]; a spread of zero
    silences every other speaker.
    """
    x = x * DISTANCE_SCALE
    theta = min(max(theta, 0.0), 1.0)
    slope = math.tan(theta * math.pi / 2.0)
    gain = 0.0 if is_equal_to_0(slope, VOLUME_THRESHOLD) else 1.0 - x / slope
    return min(max(gain, 0.0), 1.0)


class EnvelopeGenerator:
    """Distributes a signal across a speaker array.

    Input blocks are, in order, the trigger (or trajectory position), the
    spread and the volume. ``perform`` returns one envelope block per speaker.
    """

    def __init__(
        self,
        system_configs: SystemConfigs,
        speaker_configs: str | Path,
        gen_mode: str,
    ) -> None:
        self.system_configs = system_configs
        self.speaker_configs = Path(speaker_configs)
        self.gen_mode = gen_mode
        self.trigger_mode = "random"
        self.speaker_manager = SpeakerManager(self.speaker_configs)
        self._onset_detector = OnsetDetector(DEFAULT_DEBOUNCE_SAMPLES)
        self._channel_lookup: dict[int, int] = {}
        self._num_outlet = 0
        self._process: Optional[Callable[[np.ndarray], np.ndarray]] = None

    @property
    def debounce_threshold(self) -> int:
        """Minimum spacing between accepted trigger onsets, in samples."""
        return self._onset_detector.debounce_threshold

    def initialize(self) -> None:
        """Load the speaker array and prepare the chosen generator mode."""
        self.speaker_manager.initialize()

        if self.gen_mode == "trigger":
            process = self._process_trigger
        elif self.gen_mode == "trajectory":
            process = self._process_trajectory
        else:
            raise ValueError(f"Unknown selection mode: {self.gen_mode}")

        self._num_outlet = self.speaker_manager.num_all_speakers()
        self._channel_lookup = {
            index: channel
            for channel, index in enumerate(self.speaker_manager.active_speaker_indexes())
        }

        if self.gen_mode == "trigger":
            self.speaker_manager.set_current_speaker(self.speaker_manager.random_index())
            self.trigger_mode = "random"

        self._process = process

    def perform(self, blocks: Sequence[Sequence[float]]) -> np.ndarray:
        """Return a ``(num_speakers, block_length)`` array of envelopes."""
        if self._process is None:
            raise ZerrError("EnvelopeGenerator is not initialized")
        try:
            array = np.asarray(blocks, dtype=float)
        except ValueError as exc:
            raise ValueError("blocks must all have the same length") from exc
        if array.ndim != 2 or array.shape[0] != _NUM_INLET:
            raise ValueError(f"expected {_NUM_INLET} blocks, got shape {array.shape}")
        return self._process(array)

    def num_speakers(self) -> int:
        return self.speaker_manager.num_all_speakers()

    def set_current_speaker(self, index: int) -> None:
        self.speaker_manager.set_current_speaker(index)

    def set_active_speakers(self, action: str, indexes: Iterable[int]) -> None:
        self.speaker_manager.set_active_speakers(action, indexes)

    def set_trajectory_vector(self, indexes: Iterable[int]) -> None:
        self.speaker_manager.set_trajectory_vector(indexes)

    def set_topo_matrix(self, action: str, indexes: Sequence[int]) -> None:
        self.speaker_manager.set_topo_matrix(action, indexes)

    def set_trigger_interval(self, interval_ms: float) -> None:
        """Set the minimum time between accepted triggers in milliseconds."""
        interval_ms = max(interval_ms, 0.0)
        threshold = int(interval_ms / 1000.0 * self.system_configs.sample_rate)
        self._onset_detector.set_debounce_threshold(threshold)

    def print_parameters(self) -> None:
        self.speaker_manager.print_parameters()

    def _channel(self, index: Optional[int]) -> int:
        if index is None:
            raise ZerrError("no current speaker is set")
        try:
            return self._channel_lookup[index]
        except KeyError:
            raise ZerrError(f"speaker {index} has no output channel") from None

    def _process_trigger(self, inputs: np.ndarray) -> np.ndarray:
        trigger = self._onset_detector.detect_onset_in_block(inputs[0])
        spread, volume = inputs[1], inputs[2]
        output = np.zeros((self._num_outlet, inputs.shape[1]))

        for cnt, (trig, spr, vol) in enumerate(zip(trigger, spread, volume)):
            current = self.speaker_manager.index_by_trigger(float(trig), self.trigger_mode)
            channel = self._channel(current)
            column = np.zeros(self._num_outlet)
            column[channel] = 1.0
            distances = self.speaker_manager.distance_vector(current)
            for chnl, distance in enumerate(distances[: self._num_outlet]):
                if chnl == channel:
                    continue
                gain = calculate_gain(distance, float(spr))
                column[chnl] = gain * gain
            output[:, cnt] = np.sqrt(column / column.sum()) * vol

        return output

    def _process_trajectory(self, inputs: np.ndarray) -> np.ndarray:
        trajectory, volume = inputs[0], inputs[2]
        output = np.zeros((self._num_outlet, inputs.shape[1]))

        for cnt, (position, vol) in enumerate(zip(trajectory, volume)):
            lower, upper = self.speaker_manager.indexes_by_trajectory(float(position))
            first, second = self._channel(lower), self._channel(upper)
            if lower == upper:
                output[first, cnt] = vol
            else:
                ratio = self.speaker_manager.panning_ratio(float(position))
                output[first, cnt] = vol * (1.0 - ratio)
                output[second, cnt] = vol * ratio

        return output