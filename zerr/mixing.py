"""Block-wise mixing of envelopes and audio across speaker channels."""

from __future__ import annotations

from enum import Enum
from typing import Sequence

import numpy as np

from zerr.utils import SystemConfigs


def _as_blocks(blocks: Sequence[Sequence[float]], expected: int, block_size: int) -> np.ndarray:
    try:
        array = np.asarray(blocks, dtype=float)
    except ValueError as exc:
        raise ValueError("blocks must all have the same length") from exc
    if array.ndim != 2 or array.shape[0] != expected:
        raise ValueError(f"expected {expected} blocks, got shape {array.shape}")
    if array.shape[1] < block_size:
        raise ValueError(f"blocks must hold at least {block_size} samples")
    return array[:, :block_size]


class AudioDisperser:
    """Multiplies a source block by one envelope per output channel.

    Input block 0 is the source; blocks 1..n are the channel envelopes.
    """

    def __init__(self, num_channel: int, system_configs: SystemConfigs) -> None:
        if num_channel < 0:
            raise ValueError(f"channel count must not be negative, got {num_channel}")
        self.num_channel = num_channel
        self.system_configs = system_configs
        self.num_inlet = num_channel + 1
        self.num_outlet = num_channel

    def perform(self, blocks: Sequence[Sequence[float]]) -> np.ndarray:
        """Return ``num_channel`` blocks of source times envelope."""
        array = _as_blocks(blocks, self.num_inlet, self.system_configs.block_size)
        return array[0] * array[1:]


class CombinationMode(Enum):
    """How several envelope sources are merged per channel."""

    ADD = "add"
    ROOT = "root"
    MAX = "max"


class EnvelopeCombinator:
    """Merges ``num_source`` groups of ``num_channel`` envelopes into one group.

    Input block ``channel + source * num_channel`` belongs to that source and channel.
    """

    def __init__(
        self,
        num_source: int,
        num_channel: int,
        system_configs: SystemConfigs,
        comb_mode: CombinationMode | str,
    ) -> None:
        if num_source < 1:
            raise ValueError(f"at least one source is required, got {num_source}")
        if num_channel < 0:
            raise ValueError(f"channel count must not be negative, got {num_channel}")
        try:
            self.comb_mode = CombinationMode(comb_mode)
        except ValueError as exc:
            raise ValueError(f"Unknown combination mode: {comb_mode}") from exc
        self.num_source = num_source
        self.num_channel = num_channel
        self.system_configs = system_configs
        self.num_inlet = num_source * num_channel
        self.num_outlet = num_channel

    def perform(self, blocks: Sequence[Sequence[float]]) -> np.ndarray:
        """Return ``num_channel`` combined envelope blocks."""
        block_size = self.system_configs.block_size
        array = _as_blocks(blocks, self.num_inlet, block_size)
        grouped = array.reshape(self.num_source, self.num_channel, block_size)
        if self.comb_mode is CombinationMode.ADD:
            return grouped.sum(axis=0)
        if self.comb_mode is CombinationMode.ROOT:
            return np.abs(grouped.prod(axis=0)) ** (1.0 / self.num_source)
        return np.maximum(grouped.max(axis=0), 0.0)