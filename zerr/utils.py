"""Shared configuration, logging and numeric helpers."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import Iterable, Sequence

_ROOT_LOGGER_NAME = "zerr"


@dataclass(frozen=True)
class SystemConfigs:
    """Audio system settings shared by all processing stages."""

    sample_rate: int
    block_size: int

    def __post_init__(self) -> None:
        if self.sample_rate <= 0:
            raise ValueError(f"sample rate must be positive, got {self.sample_rate}")
        if self.block_size <= 0:
            raise ValueError(f"block size must be positive, got {self.block_size}")


class ZerrError(Exception):
    """Raised when a zerr component is misconfigured or misused."""


class _StdoutHandler(logging.Handler):
    """Writes records to whatever ``sys.stdout`` is at the time of emission."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            print(self.format(record), file=sys.stdout)
        except Exception:
            self.handleError(record)


def _root_logger() -> logging.Logger:
    logger = logging.getLogger(_ROOT_LOGGER_NAME)
    if not any(isinstance(handler, _StdoutHandler) for handler in logger.handlers):
        handler = _StdoutHandler()
        handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        logger.addHandler(handler)
        logger.setLevel(logging.ERROR)
        logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger below the package logger, printing ``[LEVEL] message``."""
    root = _root_logger()
    return root.getChild(name) if name else root


def is_equal_to_1(value: float, epsilon: float) -> bool:
    """True when ``value`` lies strictly within ``epsilon`` of one."""
    return abs(value - 1.0) < epsilon


def is_equal_to_0(value: float, epsilon: float) -> bool:
    """True when ``value`` lies strictly within ``epsilon`` of zero."""
    return abs(value) < epsilon


def format_vector(values: Iterable[object]) -> str:
    """Render a sequence as comma separated text."""
    return ", ".join(str(value) for value in values)


def apply_moving_average(segment: Sequence[float], window_size: int) -> list[float]:
    """Smooth ``segment`` with a running window.

    The first ``window_size`` outputs are cumulative means; the remaining ones
    divide the windowed sum by the segment length.
    """
    if window_size <= 0:
        raise ValueError("Window size must be greater than 0")

    values = [float(value) for value in segment]
    segment_size = len(values)
    window_size = min(window_size, segment_size)

    averaged: list[float] = []
    window_sum = 0.0
    for count, value in enumerate(values[:window_size], start=1):
        window_sum += value
        averaged.append(window_sum / count)

    for incoming, outgoing in zip(values[window_size:], values):
        window_sum += incoming
        window_sum -= outgoing
        averaged.append(window_sum / segment_size)

    return averaged