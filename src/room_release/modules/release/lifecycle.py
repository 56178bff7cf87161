"""
Booking lifecycle: monitoring runs in lockstep with the active booking.
"""

import logging

from room_release.core.scheduler import Scheduler

from .adapter import BOOKED_UNTIL, RoomDevice, StatusPath
from .countdown import ReleaseCountdownController
from .models import BookingContext
from .sensors import SensorReader
from .session import MonitoringSession

logger = logging.getLogger(__name__)


class BookingLifecycleCoordinator:
    """
    Starts and stops monitoring on booking start/end.

    While a booking is monitored a forced re-evaluation runs every
    min_before_book (+ a small margin), so occupancy is still reassessed
    when the device stops pushing sensor updates.
    """

    def __init__(
        self,
        session: MonitoringSession,
        device: RoomDevice,
        reader: SensorReader,
        scheduler: Scheduler,
        countdown: ReleaseCountdownController,
    ) -> None:
        self._session = session
        self._device = device
        self._reader = reader
        self._scheduler = scheduler
        self._countdown = countdown

    async def on_booking_started(self, booking_id: str) -> bool:
        """
        Handle a booking-start notification.

        Only a room that is booked from now on ("BookedUntil") is monitored.

        Args:
            booking_id: Booking identifier from the device event

        Returns:
            True if monitoring started for this booking
        """
        logger.info(f"Booking {booking_id} detected")

        availability = await self._device.read_status(StatusPath.BOOKING_AVAILABILITY)
        if availability != BOOKED_UNTIL:
            logger.info(f"Booking {booking_id} ignored (availability={availability!r})")
            return False

        meeting_id = await self._device.get_meeting_id(booking_id)

        booking = BookingContext(
            booking_id=booking_id,
            meeting_id=meeting_id,
            started_at=self._scheduler.now(),
        )
        countdown_cancelled = self._session.activate(booking)
        self._session.set_forced_update(
            self._scheduler.call_every(
                self._session.config.forced_update_period, self.force_reevaluate
            )
        )
        if countdown_cancelled:
            await self._device.clear_ui()

        snapshot = await self._reader.poll(self._session.snapshot)
        if self._session.booking is not booking:
            logger.info(f"Booking {booking_id} superseded during sensor poll")
            return True

        self._session.snapshot = snapshot
        result = self._session.evaluate(self._scheduler.now())
        await self._countdown.handle_result(result)
        return True

    async def on_booking_ended(self, booking_id: str) -> None:
        """
        Handle a booking-end notification.

        Stops monitoring unconditionally, whatever the current state.

        Args:
            booking_id: Booking identifier from the device event
        """
        previous = self._session.deactivate()
        if previous is not None and previous.booking_id != booking_id:
            logger.debug(f"Booking {booking_id} ended while {previous.booking_id} was monitored")
        logger.info(f"Booking {booking_id} ended - stop checking")

        await self._device.clear_ui()

    async def force_reevaluate(self) -> None:
        """Re-evaluate occupancy from the last known sensor values."""
        if not self._session.gate_open:
            logger.debug("Forced update skipped (gate closed)")
            return
        logger.debug("Forced update")
        result = self._session.evaluate(self._scheduler.now())
        await self._countdown.handle_result(result)
