import math

import pytest

from zerr.speakermanager import (
    Cartesian,
    Spherical,
    SpeakerManager,
    cartesian_to_spherical,
    spherical_to_cartesian,
)
from zerr.utils import ZerrError

SQUARE = """
standard:
  3:
    position:
      cartesian: {x: -1.0, y: 0.0, z: 0.0}
  1:
    position:
      cartesian: {x: 1.0, y: 0.0, z: 0.0}
    orientation: {yaw: 10.0, pitch: 5.0}
  2:
    position:
      cartesian: {x: 0.0, y: 1.0, z: 0.0}
  4:
    position:
      spherical: {azimuth: -90.0, elevation: 0.0, distance: 1.0}
"""


@pytest.fixture
def manager(tmp_path):
    path = tmp_path / "square.yaml"
    path.write_text(SQUARE)
    mgr = SpeakerManager(path)
    mgr.initialize()
    return mgr


def test_initialize_counts_and_orders(manager):
    assert manager.num_all_speakers() == 4
    assert manager.num_active_speakers() == 4
    assert manager.active_speaker_indexes() == [3, 1, 2, 4]
    assert manager.trajectory_vector == [1, 2, 3, 4]
    assert manager.topo_matrix[1] == [3, 1, 2, 4]


def test_missing_file_raises(tmp_path):
    mgr = SpeakerManager(tmp_path / "absent.yaml")
    with pytest.raises(ZerrError):
        mgr.initialize()


def test_speaker_without_position_raises(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("standard:\n  1:\n    orientation: {yaw: 0.0, pitch: 0.0}\n")
    with pytest.raises(ZerrError):
        SpeakerManager(path).initialize()


def test_spherical_only_speaker_gets_cartesian(manager):
    speaker = manager.speaker_by_index(4)
    assert speaker.x == pytest.approx(0.0, abs=1e-12)
    assert speaker.y == pytest.approx(-1.0)
    assert speaker.z == pytest.approx(0.0, abs=1e-12)


def test_speaker_orientation_and_description(manager):
    speaker = manager.speaker_by_index(1)
    assert speaker.orientation.yaw == 10.0
    text = speaker.describe()
    assert "Speaker ID: 1" in text
    assert "    x: 1.00" in text


def test_unknown_speaker_index_raises(manager):
    with pytest.raises(KeyError):
        manager.speaker_by_index(99)


def test_coordinate_round_trip():
    original = Cartesian(0.3, -1.2, 0.7)
    back = spherical_to_cartesian(cartesian_to_spherical(original))
    assert back.x == pytest.approx(original.x)
    assert back.y == pytest.approx(original.y)
    assert back.z == pytest.approx(original.z)


def test_spherical_worked_example():
    result = spherical_to_cartesian(Spherical(azimuth=90.0, elevation=0.0, distance=2.0))
    assert result.x == pytest.approx(0.0, abs=1e-12)
    assert result.y == pytest.approx(2.0)


def test_distance_vector_invariants(manager):
    active = manager.active_speaker_indexes()
    for i, first in enumerate(active):
        row = manager.distance_vector(first)
        assert row[i] == pytest.approx(0.0)
        for j, second in enumerate(active):
            assert row[j] == pytest.approx(manager.distance_vector(second)[i])
    assert manager.distance_vector(1)[active.index(3)] == pytest.approx(2.0)


def test_indexes_by_trajectory(manager):
    assert manager.indexes_by_trajectory(0.0) == (1, 1)
    assert manager.indexes_by_trajectory(0.3) == (2, 3)
    assert manager.indexes_by_trajectory(0.9) == (4, 1)
    assert manager.indexes_by_trajectory(-0.5) == (1, 1)
    assert manager.indexes_by_trajectory(1.3) == manager.indexes_by_trajectory(0.3)


def test_panning_ratio_invariants(manager):
    for value in (0.0, 0.1, 0.37, 0.8, 0.99):
        ratio = manager.panning_ratio(value)
        assert 0.0 <= ratio < 1.0
        assert manager.panning_ratio(value + 2.0) == pytest.approx(ratio)
    assert manager.panning_ratio(0.5) == pytest.approx(0.0)


def test_set_trajectory_vector_requires_active(manager):
    manager.set_trajectory_vector([4, 2])
    assert manager.trajectory_vector == [4, 2]
    assert manager.indexes_by_trajectory(0.75) == (2, 4)
    manager.set_active_speakers("del", [1])
    with pytest.raises(ZerrError):
        manager.set_trajectory_vector([2, 1])
    assert manager.trajectory_vector == [4, 2]


def test_trigger_stays_without_trigger(manager):
    manager.set_current_speaker(2)
    assert manager.index_by_trigger(0.0) == 2
    assert manager.index_by_trigger(0.5) == 2


def test_trigger_follows_single_connection(manager):
    manager.set_current_speaker(2)
    manager.set_topo_matrix("set", [2, 4])
    assert manager.index_by_trigger(1.0) == 4
    assert manager.current_index == 4


def test_trigger_picks_connected_speaker(manager):
    manager.set_current_speaker(1)
    manager.set_topo_matrix("set", [1, 2, 3])
    for _ in range(20):
        manager.set_current_speaker(1)
        assert manager.index_by_trigger(1.0) in (2, 3)


def test_set_current_speaker_inactive_raises(manager):
    manager.set_active_speakers("del", [3])
    with pytest.raises(ZerrError):
        manager.set_current_speaker(3)


def test_set_active_speakers_resets_layout(manager):
    manager.set_active_speakers("set", [2, 1, 2])
    assert manager.active_speaker_indexes() == [2, 1]
    assert manager.trajectory_vector == [1, 2]
    assert manager.topo_matrix == {1: [2, 1], 2: [2, 1]}
    assert len(manager.distance_vector(2)) == 2


def test_set_active_unknown_index_leaves_state(manager):
    with pytest.raises(ZerrError):
        manager.set_active_speakers("set", [1, 42])
    assert manager.active_speaker_indexes() == [3, 1, 2, 4]


def test_add_and_delete_active(manager):
    manager.set_active_speakers("del", [2])
    assert manager.active_speaker_indexes() == [3, 1, 4]
    assert 2 not in manager.trajectory_vector
    assert 2 not in manager.topo_matrix
    assert all(2 not in row for row in manager.topo_matrix.values())
    manager.set_active_speakers("add", [2, 1])
    assert manager.active_speaker_indexes() == [3, 1, 4, 2]


def test_unknown_action_raises(manager):
    with pytest.raises(ValueError):
        manager.set_active_speakers("move", [1])
    with pytest.raises(ValueError):
        manager.set_topo_matrix("move", [1, 2])


def test_topo_matrix_add_and_delete(manager):
    manager.set_topo_matrix("set", [1, 2])
    manager.set_topo_matrix("add", [1, 3, 2])
    assert manager.topo_matrix[1] == [2, 3]
    manager.set_topo_matrix("del", [1, 2])
    assert manager.topo_matrix[1] == [3]


def test_topo_matrix_set_requires_active(manager):
    manager.set_active_speakers("del", [4])
    with pytest.raises(ZerrError):
        manager.set_topo_matrix("set", [1, 4])
    with pytest.raises(ZerrError):
        manager.set_topo_matrix("add", [4, 1])


def test_indexes_by_geometry(manager):
    first, second = manager.indexes_by_geometry([1.0, 0.0, 0.0], [True, True, True])
    assert first == 1
    assert second in (2, 3, 4)
    assert first != second


def test_indexes_by_geometry_mask_size(manager):
    with pytest.raises(ValueError):
        manager.indexes_by_geometry([1.0, 0.0, 0.0], [True, True])


def test_random_index_is_active(manager):
    manager.set_active_speakers("set", [2, 4])
    for _ in range(20):
        assert manager.random_index() in (2, 4)


def test_cartesian_to_spherical_matches_speaker(manager):
    speaker = manager.speaker_by_index(2)
    spherical = cartesian_to_spherical(speaker.position.cartesian)
    assert spherical.azimuth == pytest.approx(speaker.azimuth)
    assert spherical.distance == pytest.approx(math.hypot(speaker.x, speaker.y))