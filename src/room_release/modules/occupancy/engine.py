"""The Core Logic Engine for room presence.

This module contains the pure hysteresis logic. It accepts sensor snapshots
and time, and returns state transitions and instructions. It never reads a
clock and never schedules timers: the caller passes `now`.

Debounce timers are absolute timestamps, so irregular evaluation intervals
do not affect them.

Licensed under MIT License
"""

import logging
from dataclasses import replace
from datetime import datetime

from .classifier import is_room_occupied
from .models import (
    EngineResult,
    OccupancyConfiguration,
    PresenceState,
    PresenceStatus,
    SensorSnapshot,
    StateTransition,
)

_LOGGER = logging.getLogger(__name__)


class PresenceStateMachine:
    """The functional core of the presence system."""

    def __init__(
        self,
        config: OccupancyConfiguration,
        initial_state: PresenceState | None = None,
    ) -> None:
        """Initialize the engine with static configuration.

        Args:
            config: Occupancy configuration.
            initial_state: Optional initial state for restoration.
        """
        self.config = config
        self.state = initial_state or PresenceState()

    def evaluate(self, snapshot: SensorSnapshot, now: datetime) -> EngineResult:
        """Feed fresh sensor data into the hysteresis.

        Args:
            snapshot: Latest sensor values.
            now: Current datetime (time-agnostic).

        Returns:
            EngineResult with the status change (if any) and whether the
            release countdown must start.
        """
        if is_room_occupied(snapshot, self.config):
            return self._evaluate_occupied(now)
        return self._evaluate_vacant(now)

    def _evaluate_occupied(self, now: datetime) -> EngineResult:
        current = self.state

        if current.occupied_since is None:
            _LOGGER.info("Room occupancy detected - starting timer")
            self.state = replace(current, occupied_since=now, vacant_since=None)
            return EngineResult()

        if now - current.occupied_since > self.config.book_delay:
            # Timer restarts so sustained occupancy keeps FULL without
            # reporting it again on every evaluation.
            new_state = replace(current, status=PresenceStatus.FULL, occupied_since=now)
            return EngineResult(transitions=self._commit(new_state, "occupancy confirmed"))

        _LOGGER.debug(f"Occupied since {current.occupied_since.isoformat()}, waiting")
        return EngineResult()

    def _evaluate_vacant(self, now: datetime) -> EngineResult:
        current = self.state

        if current.vacant_since is None:
            _LOGGER.info("Room empty detected - starting timer")
            self.state = replace(current, vacant_since=now, occupied_since=None)
            return EngineResult()

        if now - current.vacant_since > self.config.release_delay and not current.is_empty:
            release = current.listener_active
            # The gate closes in the same replacement as the EMPTY status so
            # repeated evaluations cannot request a second countdown.
            new_state = replace(current, status=PresenceStatus.EMPTY, listener_active=False)
            transitions = self._commit(new_state, "vacancy confirmed")
            if release:
                _LOGGER.info("No presence detected - release requested")
            else:
                _LOGGER.debug("Room empty but listener inactive - no release requested")
            return EngineResult(transitions=transitions, release_requested=release)

        return EngineResult()

    def mark_full(
        self, now: datetime, reason: str, restart_occupied_timer: bool = True
    ) -> EngineResult:
        """Force the FULL status and reopen the evaluation gate.

        Used by every cancellation path (presence detected, touch-panel
        interaction, check-in).

        Args:
            now: Current datetime.
            reason: Why the room is considered occupied (for logs/events).
            restart_occupied_timer: Stamp "occupied since now". When False
                both debounce timers are cleared instead.

        Returns:
            EngineResult with the status change, if any.
        """
        new_state = PresenceState(
            status=PresenceStatus.FULL,
            occupied_since=now if restart_occupied_timer else None,
            vacant_since=None,
            listener_active=True,
        )
        return EngineResult(transitions=self._commit(new_state, reason))

    def reset(self, listening: bool) -> None:
        """Return to the unset form.

        Args:
            listening: True when a booking starts monitoring, False when
                monitoring stops (booking end, countdown resolved).
        """
        _LOGGER.debug(f"Resetting presence state (listening={listening})")
        self.state = PresenceState(listener_active=listening)

    def export_state(self) -> dict:
        """Export the current state for diagnostics."""
        return self.state.to_dict()

    def _commit(self, new_state: PresenceState, reason: str) -> list[StateTransition]:
        previous = self.state
        self.state = new_state
        if previous.status == new_state.status:
            return []
        _LOGGER.info(
            f"Presence: {previous.status.value.upper()} -> "
            f"{new_state.status.value.upper()} ({reason})"
        )
        return [StateTransition(previous_state=previous, new_state=new_state, reason=reason)]
