"""
Tests for the presence hysteresis engine.

The engine is time-agnostic, so tests simply pass increasing `now` values.
"""

from datetime import datetime, timedelta, UTC

import pytest

from room_release.modules.occupancy import (
    OccupancyConfiguration,
    PresenceState,
    PresenceStateMachine,
    PresenceStatus,
    SensorSnapshot,
)

T0 = datetime(2024, 1, 1, 9, 0, tzinfo=UTC)
OCCUPIED = SensorSnapshot(people_count=2, people_presence=True)
VACANT = SensorSnapshot()


def at(seconds: float) -> datetime:
    return T0 + timedelta(seconds=seconds)


@pytest.fixture
def machine():
    """Listening engine with 5 minute debounce both ways."""
    engine = PresenceStateMachine(
        OccupancyConfiguration(min_before_book=5, min_before_release=5)
    )
    engine.reset(listening=True)
    return engine


class TestOccupiedDebounce:
    """Confirming occupancy."""

    def test_first_occupied_sample_only_starts_timer(self, machine):
        result = machine.evaluate(OCCUPIED, at(0))

        assert result.transitions == []
        assert machine.state.status == PresenceStatus.UNSET
        assert machine.state.occupied_since == at(0)
        assert machine.state.vacant_since is None

    def test_short_occupancy_never_becomes_full(self, machine):
        for second in range(0, 300, 10):
            result = machine.evaluate(OCCUPIED, at(second))
            assert result.transitions == []
        machine.evaluate(VACANT, at(300))

        assert machine.state.status == PresenceStatus.UNSET

    def test_full_after_min_before_book(self, machine):
        machine.evaluate(OCCUPIED, at(0))
        result = machine.evaluate(OCCUPIED, at(301))

        assert len(result.transitions) == 1
        assert result.transitions[0].new_state.status == PresenceStatus.FULL
        assert machine.state.is_full
        assert machine.state.occupied_since == at(301)

    def test_exactly_min_before_book_is_not_enough(self, machine):
        machine.evaluate(OCCUPIED, at(0))
        result = machine.evaluate(OCCUPIED, at(300))

        assert result.transitions == []

    def test_sustained_occupancy_reports_full_once(self, machine):
        transitions = []
        for second in range(0, 20 * 60, 10):
            transitions.extend(machine.evaluate(OCCUPIED, at(second)).transitions)

        assert len(transitions) == 1
        assert machine.state.is_full

    def test_occupied_timer_keeps_restarting(self, machine):
        machine.evaluate(OCCUPIED, at(0))
        machine.evaluate(OCCUPIED, at(301))
        machine.evaluate(OCCUPIED, at(602))

        assert machine.state.occupied_since == at(602)


class TestVacantDebounce:
    """Confirming vacancy."""

    def test_first_vacant_sample_only_starts_timer(self, machine):
        machine.evaluate(OCCUPIED, at(0))
        result = machine.evaluate(VACANT, at(10))

        assert result.transitions == []
        assert result.release_requested is False
        assert machine.state.vacant_since == at(10)
        assert machine.state.occupied_since is None

    def test_short_vacancy_does_not_release(self, machine):
        for second in range(0, 300, 10):
            result = machine.evaluate(VACANT, at(second))
            assert result.release_requested is False

        assert not machine.state.is_empty

    def test_empty_after_min_before_release(self, machine):
        machine.evaluate(VACANT, at(0))
        result = machine.evaluate(VACANT, at(301))

        assert result.release_requested is True
        assert machine.state.is_empty
        assert not machine.state.is_full
        assert machine.state.listener_active is False

    def test_release_requested_once(self, machine):
        machine.evaluate(VACANT, at(0))
        first = machine.evaluate(VACANT, at(301))
        second = machine.evaluate(VACANT, at(400))

        assert first.release_requested is True
        assert second.release_requested is False
        assert second.transitions == []

    def test_empty_without_listener_does_not_request_release(self):
        machine = PresenceStateMachine(OccupancyConfiguration())
        machine.evaluate(VACANT, at(0))
        result = machine.evaluate(VACANT, at(301))

        assert machine.state.is_empty
        assert result.release_requested is False

    def test_occupancy_interrupts_vacancy(self, machine):
        machine.evaluate(VACANT, at(0))
        machine.evaluate(OCCUPIED, at(200))
        machine.evaluate(VACANT, at(250))
        result = machine.evaluate(VACANT, at(400))

        # Vacant timer restarted at 250
        assert result.release_requested is False
        assert machine.state.vacant_since == at(250)

    def test_irregular_polling(self, machine):
        """Only wall-clock time counts, not the number of samples."""
        machine.evaluate(VACANT, at(0))
        result = machine.evaluate(VACANT, at(1000))

        assert result.release_requested is True


class TestCancellationAndReset:
    """mark_full and reset."""

    def test_mark_full_reopens_gate(self, machine):
        machine.evaluate(VACANT, at(0))
        machine.evaluate(VACANT, at(301))

        result = machine.mark_full(at(320), "presence detected")

        assert machine.state.is_full
        assert machine.state.listener_active is True
        assert machine.state.occupied_since == at(320)
        assert machine.state.vacant_since is None
        assert result.transitions[0].previous_state.status == PresenceStatus.EMPTY

    def test_mark_full_without_timer_restart(self, machine):
        machine.mark_full(at(10), "check-in", restart_occupied_timer=False)

        assert machine.state.is_full
        assert machine.state.occupied_since is None
        assert machine.state.vacant_since is None

    def test_mark_full_when_already_full_reports_nothing(self, machine):
        machine.mark_full(at(10), "user interaction")
        result = machine.mark_full(at(20), "user interaction")

        assert result.transitions == []

    @pytest.mark.parametrize("listening", [True, False])
    def test_reset_returns_to_unset(self, machine, listening):
        machine.evaluate(OCCUPIED, at(0))
        machine.evaluate(OCCUPIED, at(301))

        machine.reset(listening=listening)

        assert machine.state == PresenceState(listener_active=listening)

    def test_full_and_empty_never_both_true(self, machine):
        samples = [OCCUPIED, VACANT] * 3 + [VACANT] * 5 + [OCCUPIED] * 5
        for index, snapshot in enumerate(samples):
            machine.evaluate(snapshot, at(index * 120))
            assert not (machine.state.is_full and machine.state.is_empty)

    def test_export_state(self, machine):
        machine.evaluate(OCCUPIED, at(0))
        state = machine.export_state()

        assert state["status"] == "unset"
        assert state["occupied_since"] == at(0).isoformat()
        assert state["vacant_since"] is None
        assert state["listener_active"] is True


class TestConfiguration:
    """OccupancyConfiguration validation and serialization."""

    def test_defaults(self):
        config = OccupancyConfiguration()
        assert config.min_before_book == 5
        assert config.min_before_release == 5
        assert config.countdown_seconds == 60
        assert config.prompt_repeat_seconds == 3
        assert config.forced_update_period == 301
        assert config.use_presence_sensor is True

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"min_before_book": -1},
            {"min_before_release": -1},
            {"countdown_seconds": 0},
            {"prompt_repeat_seconds": 0},
            {"forced_update_margin_seconds": -1},
        ],
    )
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError):
            OccupancyConfiguration(**kwargs)

    def test_dict_round_trip(self):
        config = OccupancyConfiguration(use_sound=True, min_before_release=2)
        assert OccupancyConfiguration.from_dict(config.to_dict()) == config

    def test_from_dict_ignores_unknown_keys(self):
        config = OccupancyConfiguration.from_dict({"version": 1, "use_sound": True})
        assert config.use_sound is True
