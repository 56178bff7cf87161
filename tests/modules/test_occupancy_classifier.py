"""Tests for the occupancy classifier."""

import pytest

from room_release.modules.occupancy import (
    OccupancyConfiguration,
    SensorSnapshot,
    is_room_occupied,
)

ALL_SIGNALS = OccupancyConfiguration(
    use_sound=True,
    use_active_calls=True,
    use_presentation_mode=True,
)
NO_EXTRA_SIGNALS = OccupancyConfiguration(
    use_sound=False,
    use_active_calls=False,
    use_presentation_mode=False,
)


class TestAndMode:
    """People count and presence must agree (default)."""

    def test_empty_snapshot_is_vacant(self):
        assert is_room_occupied(SensorSnapshot(), ALL_SIGNALS) is False

    def test_count_and_presence_together(self):
        snapshot = SensorSnapshot(people_count=2, people_presence=True)
        assert is_room_occupied(snapshot, NO_EXTRA_SIGNALS) is True

    @pytest.mark.parametrize(
        "snapshot",
        [
            SensorSnapshot(people_count=2, people_presence=False),
            SensorSnapshot(people_count=0, people_presence=True),
        ],
    )
    def test_count_or_presence_alone_is_not_enough(self, snapshot):
        assert is_room_occupied(snapshot, NO_EXTRA_SIGNALS) is False

    @pytest.mark.parametrize(
        "snapshot",
        [
            SensorSnapshot(in_call=True),
            SensorSnapshot(sound_detected=True),
            SensorSnapshot(sharing=True),
        ],
    )
    def test_other_enabled_signal_suffices(self, snapshot):
        assert is_room_occupied(snapshot, ALL_SIGNALS) is True

    @pytest.mark.parametrize(
        "snapshot",
        [
            SensorSnapshot(in_call=True),
            SensorSnapshot(sound_detected=True),
            SensorSnapshot(sharing=True),
        ],
    )
    def test_disabled_signal_contributes_nothing(self, snapshot):
        assert is_room_occupied(snapshot, NO_EXTRA_SIGNALS) is False


class TestOrMode:
    """Any enabled signal alone suffices."""

    def test_count_alone(self):
        config = OccupancyConfiguration(use_presence_and_count=False)
        assert is_room_occupied(SensorSnapshot(people_count=1), config) is True

    def test_presence_alone(self):
        config = OccupancyConfiguration(use_presence_and_count=False)
        assert is_room_occupied(SensorSnapshot(people_presence=True), config) is True

    def test_presence_ignored_when_count_only(self):
        config = OccupancyConfiguration(
            use_presence_and_count=False,
            use_people_count_only=True,
        )
        assert is_room_occupied(SensorSnapshot(people_presence=True), config) is False

    def test_all_false_is_vacant(self):
        config = OccupancyConfiguration(use_presence_and_count=False, use_sound=True)
        assert is_room_occupied(SensorSnapshot(), config) is False

    def test_sound_only_when_enabled(self):
        snapshot = SensorSnapshot(sound_detected=True)
        assert is_room_occupied(
            snapshot, OccupancyConfiguration(use_presence_and_count=False, use_sound=True)
        )
        assert not is_room_occupied(
            snapshot, OccupancyConfiguration(use_presence_and_count=False, use_sound=False)
        )


def test_classifier_has_no_memory():
    """Same input, same answer, whatever came before."""
    config = OccupancyConfiguration()
    occupied = SensorSnapshot(people_count=3, people_presence=True)
    vacant = SensorSnapshot()

    assert is_room_occupied(occupied, config) is True
    assert is_room_occupied(vacant, config) is False
    assert is_room_occupied(occupied, config) is True
