"""Speaker layouts and the selection rules that move sound between speakers."""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

import yaml

from zerr.utils import ZerrError, format_vector, get_logger, is_equal_to_1

TRIGGER_THRESHOLD = 1e-6
"""How close to one a trigger value must be to count as a trigger."""

_logger = get_logger("speakermanager")


@dataclass(frozen=True)
class Cartesian:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


@dataclass(frozen=True)
class Spherical:
    """Angles in degrees, distance in the layout's length unit."""

    azimuth: float = 0.0
    elevation: float = 0.0
    distance: float = 0.0


@dataclass(frozen=True)
class Orientation:
    yaw: float = 0.0
    pitch: float = 0.0


@dataclass(frozen=True)
class Position:
    cartesian: Cartesian
    spherical: Spherical


@dataclass(frozen=True)
class Speaker:
    """One loudspeaker of the array."""

    index: int
    position: Position
    orientation: Orientation = Orientation()

    @property
    def x(self) -> float:
        return self.position.cartesian.x

    @property
    def y(self) -> float:
        return self.position.cartesian.y

    @property
    def z(self) -> float:
        return self.position.cartesian.z

    @property
    def azimuth(self) -> float:
        return self.position.spherical.azimuth

    @property
    def elevation(self) -> float:
        return self.position.spherical.elevation

    @property
    def distance(self) -> float:
        return self.position.spherical.distance

    def describe(self) -> str:
        """Multi-line summary of index, position and orientation."""
        lines = [
            "-----------------------",
            f"Speaker ID: {self.index}",
            "Cartesian Position: ",
            f"    x: {self.x:.2f}",
            f"    y: {self.y:.2f}",
            f"    z: {self.z:.2f}",
            "Spherical Position: ",
            f"    azimuth:   : {self.azimuth:.2f}",
            f"    elevation: : {self.elevation:.2f}",
            f"    distance:  : {self.distance:.2f}",
            "Orientation: ",
            f"    yaw:   : {self.orientation.yaw:.2f}",
            f"    pitch: : {self.orientation.pitch:.2f}",
        ]
        return "\n".join(lines)


def spherical_to_cartesian(spherical: Spherical) -> Cartesian:
    """Convert degrees-based spherical coordinates to cartesian ones."""
    azimuth = math.radians(spherical.azimuth)
    elevation = math.radians(spherical.elevation)
    return Cartesian(
        x=spherical.distance * math.cos(elevation) * math.cos(azimuth),
        y=spherical.distance * math.cos(elevation) * math.sin(azimuth),
        z=spherical.distance * math.sin(elevation),
    )


def cartesian_to_spherical(cartesian: Cartesian) -> Spherical:
    """Convert cartesian coordinates to degrees-based spherical ones."""
    distance = math.sqrt(cartesian.x**2 + cartesian.y**2 + cartesian.z**2)
    azimuth = math.degrees(math.atan2(cartesian.y, cartesian.x))
    if distance == 0.0:
        elevation = float("nan")
    else:
        ratio = max(-1.0, min(1.0, cartesian.z / distance))
        elevation = math.degrees(math.asin(ratio))
    return Spherical(azimuth=azimuth, elevation=elevation, distance=distance)


def _section(node: Any, key: str) -> Mapping[str, Any] | None:
    if not isinstance(node, Mapping):
        return None
    value = node.get(key)
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise ZerrError(f"'{key}' must be a mapping")
    return value


def _number(node: Mapping[str, Any], key: str, context: str) -> float:
    try:
        return float(node[key])
    except (KeyError, TypeError, ValueError) as exc:
        raise ZerrError(f"{context}: missing or invalid '{key}'") from exc


def _parse_speaker(key: Any, value: Any) -> Speaker:
    try:
        index = int(key)
    except (TypeError, ValueError) as exc:
        raise ZerrError(f"speaker key {key!r} is not an integer") from exc
    context = f"speaker {index}"

    position_node = _section(value, "position")
    cartesian_node = _section(position_node, "cartesian")
    spherical_node = _section(position_node, "spherical")
    if cartesian_node is None and spherical_node is None:
        raise ZerrError(f"{context}: neither cartesian nor spherical position given")

    cartesian = (
        Cartesian(*(_number(cartesian_node, k, context) for k in ("x", "y", "z")))
        if cartesian_node is not None
        else None
    )
    spherical = (
        Spherical(
            *(
                _number(spherical_node, k, context)
                for k in ("azimuth", "elevation", "distance")
            )
        )
        if spherical_node is not None
        else None
    )
    if cartesian is None:
        cartesian = spherical_to_cartesian(spherical)
    if spherical is None:
        spherical = cartesian_to_spherical(cartesian)

    orientation_node = _section(value, "orientation")
    orientation = (
        Orientation(
            yaw=_number(orientation_node, "yaw", context),
            pitch=_number(orientation_node, "pitch", context),
        )
        if orientation_node is not None
        else Orientation()
    )
    return Speaker(index, Position(cartesian, spherical), orientation)


class SpeakerManager:
    """Holds a speaker array and decides which speakers a signal goes to."""

    def __init__(self, speaker_array_path: str | Path) -> None:
        self.speaker_array_path = Path(speaker_array_path)
        self._speakers: dict[int, Speaker] = {}
        self._active: list[int] = []
        self._trajectory: list[int] = []
        self._topology: dict[int, list[int]] = {}
        self._distances: dict[int, list[float]] = {}
        self._current: int | None = None
        _logger.info("SpeakerManager::SpeakerManager %s", self.speaker_array_path)

    # ----------------------------------------------------------------- loading
    def initialize(self) -> None:
        """Load the speaker file; every speaker starts active and fully connected."""
        try:
            with self.speaker_array_path.open("r", encoding="utf-8") as handle:
                document = yaml.safe_load(handle)
        except (OSError, yaml.YAMLError) as exc:
            raise ZerrError(
                f"Load speaker configuration {self.speaker_array_path} failed"
            ) from exc

        standard = document.get("standard") if isinstance(document, Mapping) else None
        if standard is None:
            standard = {}
        if not isinstance(standard, Mapping):
            raise ZerrError("'standard' must map speaker indexes to settings")

        parsed = [_parse_speaker(key, value) for key, value in standard.items()]
        self._speakers = {s.index: s for s in sorted(parsed, key=lambda s: s.index)}
        self._active = []
        for speaker in parsed:
            if speaker.index not in self._active:
                self._active.append(speaker.index)
        self._current = None
        self._reset_layout()

    def _reset_layout(self) -> None:
        self._init_distance_matrix()
        self._trajectory = sorted(self._active)
        self._topology = {index: list(self._active) for index in self._active}

    def _init_distance_matrix(self) -> None:
        self._distances = {}
        for first in self._active:
            a = self._speakers[first]
            self._distances[first] = [
                math.dist((a.x, a.y, a.z), (b.x, b.y, b.z))
                for b in (self._speakers[second] for second in self._active)
            ]

    # ----------------------------------------------------------------- queries
    @property
    def trajectory_vector(self) -> list[int]:
        return list(self._trajectory)

    @property
    def topo_matrix(self) -> dict[int, list[int]]:
        return {key: list(value) for key, value in sorted(self._topology.items())}

    @property
    def current_index(self) -> int | None:
        return self._current

    def num_all_speakers(self) -> int:
        return len(self._speakers)

    def num_active_speakers(self) -> int:
        return len(self._active)

    def active_speaker_indexes(self) -> list[int]:
        return list(self._active)

    def random_index(self) -> int:
        """A uniformly chosen active speaker index."""
        if not self._active:
            raise ZerrError("no active speakers")
        return random.choice(self._active)

    def speaker_by_index(self, index: int) -> Speaker:
        try:
            return self._speakers[index]
        except KeyError:
            raise KeyError(f"Index {index} not found in SpeakerManager") from None

    def _wrapped(self, traj_val: float) -> float:
        if not self._trajectory:
            raise ZerrError("trajectory vector is empty")
        traj_val = max(traj_val, 0.0)
        return traj_val - math.floor(traj_val)

    def indexes_by_trajectory(self, traj_val: float) -> tuple[int, int]:
        """The two neighbouring trajectory speakers around a position in [0, 1)."""
        scaled = self._wrapped(traj_val) * len(self._trajectory)
        lower = self._trajectory[math.floor(scaled)]
        upper = self._trajectory[math.ceil(scaled) % len(self._trajectory)]
        return lower, upper

    def panning_ratio(self, traj_val: float) -> float:
        """How far the position lies from the lower towards the upper speaker."""
        scaled = self._wrapped(traj_val) * len(self._trajectory)
        return scaled - math.floor(scaled)

    def indexes_by_geometry(
        self,
        pos: Sequence[float],
        mask: Sequence[bool],
        coordinate: str = "cartesian",
    ) -> tuple[int, int]:
        """The two speakers closest to ``pos`` by masked per-axis distance."""
        if len(mask) != 3:
            raise ValueError("The mask vector for geometry selection must be of size 3.")
        if len(pos) != 3:
            raise ValueError("The position for geometry selection must be of size 3.")
        if len(self._speakers) < 2:
            raise ZerrError("geometry selection needs at least two speakers")

        indexes = list(self._speakers)
        distances = []
        for speaker in self._speakers.values():
            if coordinate == "cartesian":
                axes = (speaker.x, speaker.y, speaker.z)
            else:
                axes = (speaker.azimuth, speaker.elevation, speaker.distance)
            distances.append(
                sum(abs(a - p) * bool(m) for a, p, m in zip(axes, pos, mask))
            )

        first, second = 0, 1
        for i in range(2, len(distances)):
            if distances[i] < distances[first]:
                second, first = first, i
            elif distances[i] < distances[second]:
                second = i
        return indexes[first], indexes[second]

    def index_by_trigger(self, trigger: float, mode: str = "random") -> int | None:
        """Jump to a connected speaker when ``trigger`` is one; else stay put."""
        if not is_equal_to_1(trigger, TRIGGER_THRESHOLD):
            return self._current
        if self._current is None:
            raise ZerrError("no current speaker is set")
        candidates = self._topology.get(self._current, [])
        if not candidates:
            raise ZerrError(f"speaker {self._current} has no connected speakers")
        self._current = candidates[0] if len(candidates) == 1 else random.choice(candidates)
        return self._current

    def distance_vector(self, index: int) -> list[float]:
        """Distances from ``index`` to every active speaker, in active order."""
        try:
            return list(self._distances[index])
        except KeyError:
            raise KeyError(f"no distances known for speaker {index}") from None

    # ----------------------------------------------------------------- editing
    def set_active_speakers(self, action: str, indexes: Iterable[int]) -> None:
        """Replace (``set``), extend (``add``) or shrink (``del``) the active set."""
        indexes = list(indexes)
        handlers = {
            "set": self._set_active,
            "add": self._add_active,
            "del": self._del_active,
        }
        if action not in handlers:
            raise ValueError(f"unknown action {action!r}")
        unknown = [index for index in indexes if index not in self._speakers]
        if unknown:
            raise ZerrError(f"unknown speaker index {unknown[0]}")
        handlers[action](indexes)

    def _append_unique(self, target: list[int], indexes: Iterable[int]) -> None:
        for index in indexes:
            if index in target:
                _logger.warning("SpeakerManager: index %d already added, ignored", index)
            else:
                target.append(index)

    def _set_active(self, indexes: list[int]) -> None:
        self._active = []
        self._append_unique(self._active, indexes)
        self._reset_layout()

    def _add_active(self, indexes: list[int]) -> None:
        self._append_unique(self._active, indexes)

    def _del_active(self, indexes: list[int]) -> None:
        for index in indexes:
            for target in (self._active, self._trajectory):
                if index in target:
                    target[:] = [value for value in target if value != index]
                else:
                    _logger.warning(
                        "SpeakerManager index %d already removed, ignored", index
                    )
            self._topology.pop(index, None)
            for connected in self._topology.values():
                connected[:] = [value for value in connected if value != index]

    def set_trajectory_vector(self, indexes: Iterable[int]) -> None:
        """Set the speaker order a trajectory moves through; all must be active."""
        indexes = list(indexes)
        for index in indexes:
            self._require_active(index)
        self._trajectory = indexes

    def set_topo_matrix(self, action: str, indexes: Sequence[int]) -> None:
        """Edit the speakers connected to ``indexes[0]`` with the rest of ``indexes``."""
        if action not in ("set", "add", "del"):
            raise ValueError(f"unknown action {action!r}")
        if not indexes:
            raise ValueError("at least the main speaker index is required")
        main, *others = indexes
        self._require_active(main)

        if action == "set":
            for index in others:
                self._require_active(index)
            self._topology[main] = list(others)
            return

        connected = self._topology.setdefault(main, [])
        for index in others:
            if index not in self._active:
                _logger.error("Speaker %d is not activated!", index)
                continue
            if action == "add" and index not in connected:
                connected.append(index)
            elif action == "del" and index in connected:
                connected[:] = [value for value in connected if value != index]

    def set_current_speaker(self, index: int) -> None:
        self._require_active(index)
        self._current = index

    def _require_active(self, index: int) -> None:
        if index not in self._active:
            raise ZerrError(f"SpeakerManager: speaker {index} is not activated!")

    # ----------------------------------------------------------------- logging
    def print_parameters(self) -> None:
        """Log active speakers, trajectory vector and topology."""
        _logger.info("Active Speakers: ")
        _logger.info("    %s", format_vector(self._active))
        _logger.info("Trajectory Vector: ")
        _logger.info("    %s", format_vector(self._trajectory))
        _logger.info("Topological Matrix: ")
        for index, connected in sorted(self._topology.items()):
            _logger.info("    %d | %s", index, format_vector(connected))