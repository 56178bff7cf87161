"""
MonitoringSession - the single owned state of the release logic.

Everything that used to be process-wide (booking, presence state, the
evaluation gate, countdown and forced-update timers) lives here. Every
method performs its whole transition synchronously, so a handler that
resumes after an await never sees a half-applied change.
"""

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from room_release.core.scheduler import TimerHandle
from room_release.modules.occupancy import (
    EngineResult,
    OccupancyConfiguration,
    PresenceState,
    PresenceStateMachine,
    SensorSnapshot,
)

from .models import BookingContext, SessionPhase

if TYPE_CHECKING:
    from .countdown import ReleaseCountdown

logger = logging.getLogger(__name__)


class MonitoringSession:
    """
    Owned state for monitoring one booked room.

    Invariants:
    - A running countdown exists only while the evaluation gate is closed
      and the presence status is EMPTY.
    - Outside of a booking the presence state is in its initial unset form
      and no timer is running.
    """

    def __init__(self, config: OccupancyConfiguration) -> None:
        self.config = config
        self.snapshot = SensorSnapshot()
        self.machine = PresenceStateMachine(config)
        self.booking: Optional[BookingContext] = None
        self._countdown: Optional["ReleaseCountdown"] = None
        self._forced_update: Optional[TimerHandle] = None

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def presence(self) -> PresenceState:
        return self.machine.state

    @property
    def countdown(self) -> Optional["ReleaseCountdown"]:
        return self._countdown

    @property
    def is_monitoring(self) -> bool:
        return self.booking is not None

    @property
    def gate_open(self) -> bool:
        """Whether sensor data may be evaluated right now."""
        return self.is_monitoring and self.machine.state.listener_active

    @property
    def release_pending(self) -> bool:
        """Whether a release countdown is running."""
        return self._countdown is not None and self._countdown.is_running

    @property
    def phase(self) -> SessionPhase:
        if not self.is_monitoring:
            return SessionPhase.IDLE
        if self.release_pending:
            return SessionPhase.COUNTDOWN
        return SessionPhase.MONITORING

    # =========================================================================
    # Transitions
    # =========================================================================

    def activate(self, booking: BookingContext) -> bool:
        """
        Start monitoring a booking.

        Any previous booking is dropped together with its timers.

        Args:
            booking: The booking to monitor

        Returns:
            True if a running countdown was cancelled in the process
        """
        if self.booking is not None:
            logger.warning(
                f"Booking {booking.booking_id} replaces monitored booking "
                f"{self.booking.booking_id}"
            )
        cancelled = self._stop_timers()
        self.booking = booking
        self.machine.reset(listening=True)
        logger.info(f"Monitoring booking {booking.booking_id}")
        return cancelled

    def deactivate(self) -> Optional[BookingContext]:
        """
        Stop monitoring and return to the initial form.

        Safe to call when nothing is monitored.

        Returns:
            The booking that was monitored, if any
        """
        booking = self.booking
        self._stop_timers()
        self.booking = None
        self.machine.reset(listening=False)
        return booking

    def set_forced_update(self, handle: TimerHandle) -> None:
        """Store the forced re-evaluation timer, replacing any previous one."""
        if self._forced_update is not None:
            self._forced_update.cancel()
        self._forced_update = handle

    def attach_countdown(self, countdown: "ReleaseCountdown") -> None:
        """
        Take ownership of a new release countdown.

        Raises:
            RuntimeError: If a countdown is already running
        """
        if self.release_pending:
            raise RuntimeError("A release countdown is already running")
        self._countdown = countdown

    def evaluate(self, now: datetime) -> EngineResult:
        """
        Run the presence state machine on the current snapshot.

        Does nothing while the gate is closed.

        Args:
            now: Current datetime

        Returns:
            EngineResult from the state machine
        """
        if not self.gate_open:
            logger.debug(f"Evaluation skipped (phase={self.phase.value})")
            return EngineResult()
        return self.machine.evaluate(self.snapshot, now)

    def mark_full(
        self, now: datetime, reason: str, restart_occupied_timer: bool = True
    ) -> EngineResult:
        """
        Cancel any pending release and mark the room FULL.

        Args:
            now: Current datetime
            reason: What proved the room is in use
            restart_occupied_timer: Stamp "occupied since now" (False clears
                both debounce timers)

        Returns:
            EngineResult from the state machine (empty when not monitoring)
        """
        if not self.is_monitoring:
            logger.debug(f"Ignoring '{reason}' (no booking monitored)")
            return EngineResult()
        if self._countdown is not None:
            self._countdown.cancel()
            self._countdown = None
        return self.machine.mark_full(now, reason, restart_occupied_timer)

    def _stop_timers(self) -> bool:
        cancelled = False
        if self._countdown is not None:
            cancelled = self._countdown.cancel()
            self._countdown = None
        if self._forced_update is not None:
            self._forced_update.cancel()
            self._forced_update = None
        return cancelled

    def dump_state(self) -> dict:
        """Serialize session state for diagnostics."""
        return {
            "phase": self.phase.value,
            "booking": self.booking.to_dict() if self.booking else None,
            "presence": self.machine.export_state(),
            "snapshot": self.snapshot.to_dict(),
            "countdown_remaining": (
                self._countdown.remaining_seconds if self.release_pending else None
            ),
        }
