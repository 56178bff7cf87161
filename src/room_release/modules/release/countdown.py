"""
Release countdown: the grace period between vacancy confirmation and the
automatic booking decline.
"""

import logging
from datetime import datetime
from typing import Awaitable, Callable, Optional

from room_release.core.bus import Event, EventBus
from room_release.core.scheduler import Scheduler, TimerHandle
from room_release.modules.occupancy import EngineResult, StateTransition

from .adapter import RoomDevice
from .session import MonitoringSession

logger = logging.getLogger(__name__)

TickHook = Callable[[int], Awaitable[None]]
ExpireHook = Callable[[], Awaitable[None]]


class ReleaseCountdown:
    """
    A cancelable countdown task.

    Ticks once per second (on_tick receives the seconds left) and fires
    on_expire once when the deadline is reached. cancel() stops both timers
    and is a no-op once the countdown is no longer running.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        duration: int,
        on_tick: TickHook,
        on_expire: ExpireHook,
    ) -> None:
        self._scheduler = scheduler
        self.duration = duration
        self._on_tick = on_tick
        self._on_expire = on_expire
        self.remaining_seconds = duration
        self.started_at: Optional[datetime] = None
        self.expired = False
        self._running = False
        self._tick_timer: Optional[TimerHandle] = None
        self._deadline: Optional[TimerHandle] = None

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        """
        Start ticking.

        Raises:
            RuntimeError: If the countdown was already started
        """
        if self.started_at is not None:
            raise RuntimeError("Countdown can only be started once")
        self.started_at = self._scheduler.now()
        self._running = True
        self._tick_timer = self._scheduler.call_every(1, self._tick)
        self._deadline = self._scheduler.call_later(self.duration, self._expire)

    def cancel(self) -> bool:
        """
        Stop the countdown.

        Returns:
            True if a running countdown was stopped, False if there was
            nothing to stop
        """
        if not self._running:
            return False
        self._stop()
        logger.debug(f"Countdown cancelled with {self.remaining_seconds}s left")
        return True

    def _stop(self) -> None:
        self._running = False
        if self._tick_timer is not None:
            self._tick_timer.cancel()
        if self._deadline is not None:
            self._deadline.cancel()

    async def _tick(self) -> None:
        if not self._running:
            return
        self.remaining_seconds -= 1
        if self.remaining_seconds <= 0:
            # The deadline takes over from here
            if self._tick_timer is not None:
                self._tick_timer.cancel()
            return
        await self._on_tick(self.remaining_seconds)

    async def _expire(self) -> None:
        if not self._running:
            return
        self._stop()
        self.remaining_seconds = 0
        self.expired = True
        await self._on_expire()


class ReleaseCountdownController:
    """
    Runs the check-in protocol for a MonitoringSession.

    - Starts exactly one countdown per EMPTY transition
    - Keeps the countdown line and the check-in prompt on screen
    - Declines the booking when the countdown expires
    - Cancels the release when the room proves to be in use

    Events Emitted:
    - occupancy.changed: presence status changed
    - release.countdown_started / release.countdown_canceled
    - release.booking_declined: decline attempted (payload says if it worked)
    """

    def __init__(
        self,
        session: MonitoringSession,
        device: RoomDevice,
        scheduler: Scheduler,
        bus: Optional[EventBus] = None,
    ) -> None:
        self._session = session
        self._device = device
        self._scheduler = scheduler
        self.bus = bus

    async def handle_result(self, result: EngineResult) -> None:
        """
        Act on the output of the presence state machine.

        The countdown is started before anything is awaited, so a
        cancellation dispatched while events are published finds it.

        Args:
            result: EngineResult from an evaluation or cancellation
        """
        countdown = self._start_countdown() if result.release_requested else None

        for transition in result.transitions:
            await self._emit_occupancy_changed(transition)

        if countdown is not None:
            await self._announce(countdown)

    async def begin(self) -> None:
        """Start the release countdown and show the check-in prompt."""
        await self._announce(self._start_countdown())

    def _start_countdown(self) -> ReleaseCountdown:
        config = self._session.config
        countdown = ReleaseCountdown(
            self._scheduler,
            config.countdown_seconds,
            on_tick=self._on_tick,
            on_expire=self._on_expire,
        )
        self._session.attach_countdown(countdown)
        countdown.start()
        logger.info(f"No presence detected - releasing in {config.countdown_seconds}s")
        return countdown

    async def _announce(self, countdown: ReleaseCountdown) -> None:
        if not countdown.is_running:
            logger.debug("Countdown cancelled before the prompt was shown")
            return
        await self._publish(
            "release.countdown_started", {"remaining_seconds": countdown.remaining_seconds}
        )
        if countdown.is_running:
            await self._device.show_check_in_prompt()

    async def cancel_release(
        self,
        reason: str,
        now: datetime,
        restart_occupied_timer: bool = True,
        clear_prompt: bool = True,
    ) -> None:
        """
        Mark the room in use, stopping any running countdown.

        Args:
            reason: What proved the room is in use
            now: Current datetime
            restart_occupied_timer: Stamp "occupied since now"
            clear_prompt: Also remove the check-in prompt (a check-in answer
                already dismissed it)
        """
        was_pending = self._session.release_pending
        result = self._session.mark_full(now, reason, restart_occupied_timer)

        if was_pending:
            logger.info(f"Release cancelled ({reason})")
            await self._publish("release.countdown_canceled", {"reason": reason})
            if clear_prompt:
                await self._device.clear_prompt()
            await self._device.clear_countdown()

        await self.handle_result(result)

    async def _on_tick(self, remaining: int) -> None:
        await self._device.show_countdown(remaining)
        if remaining % self._session.config.prompt_repeat_seconds == 0:
            # The earlier prompt may have been dismissed
            await self._device.show_check_in_prompt()

    async def _on_expire(self) -> None:
        booking = self._session.deactivate()
        logger.info("Countdown expired - releasing room")

        await self._device.clear_ui()

        if booking is None:
            logger.warning("Countdown expired without a monitored booking")
            return

        meeting_id = booking.meeting_id
        if meeting_id is None:
            meeting_id = await self._device.get_meeting_id(booking.booking_id)
        if meeting_id is None:
            logger.error(f"Cannot decline booking {booking.booking_id}: meeting id unknown")
            await self._publish(
                "release.booking_declined",
                {"booking_id": booking.booking_id, "meeting_id": None, "ok": False},
            )
            return

        result = await self._device.decline_booking(meeting_id)
        if result.ok:
            logger.info(f"Booking {booking.booking_id} declined (meeting {meeting_id})")
        await self._publish(
            "release.booking_declined",
            {"booking_id": booking.booking_id, "meeting_id": meeting_id, "ok": result.ok},
        )

    async def _emit_occupancy_changed(self, transition: StateTransition) -> None:
        """Emit semantic occupancy.changed event."""
        new_state = transition.new_state
        await self._publish(
            "occupancy.changed",
            {
                "status": new_state.status.value,
                "previous_status": transition.previous_state.status.value,
                "full": new_state.is_full,
                "empty": new_state.is_empty,
                "reason": transition.reason,
            },
        )

    async def _publish(self, event_type: str, payload: dict) -> None:
        if self.bus is None:
            return
        booking = self._session.booking
        payload = dict(payload)
        payload.setdefault("booking_id", booking.booking_id if booking else None)
        await self.bus.publish(
            Event(
                type=event_type,
                source="release",
                payload=payload,
                timestamp=self._scheduler.now(),
            )
        )
