"""
EventRouter - single dispatch point for device events.

Events Consumed:
- sensor.state_changed: entity_id is the device status path, payload
  carries "new_state" (and optionally "old_state")
- ui.interaction: any touch-panel activity
- ui.prompt_response: payload carries "feedback_id" and "option_id"
- booking.started / booking.ended: payload carries "booking_id"
"""

import logging
from typing import Optional

from room_release.core.bus import Event, EventBus, EventFilter
from room_release.core.scheduler import Scheduler

from .adapter import ALERT_FEEDBACK_ID, CHECK_IN_OPTION_ID
from .countdown import ReleaseCountdownController
from .lifecycle import BookingLifecycleCoordinator
from .sensors import apply_signal, indicates_presence
from .session import MonitoringSession

logger = logging.getLogger(__name__)

SENSOR_CHANGED = "sensor.state_changed"
UI_INTERACTION = "ui.interaction"
UI_PROMPT_RESPONSE = "ui.prompt_response"
BOOKING_STARTED = "booking.started"
BOOKING_ENDED = "booking.ended"


class EventRouter:
    """
    Routes device events into the monitoring session.

    Sensor values are only evaluated while the gate is open, so once a
    countdown is running nothing re-enters the state machine until the
    countdown is resolved or cancelled.
    """

    def __init__(
        self,
        session: MonitoringSession,
        scheduler: Scheduler,
        countdown: ReleaseCountdownController,
        lifecycle: BookingLifecycleCoordinator,
    ) -> None:
        self._session = session
        self._scheduler = scheduler
        self._countdown = countdown
        self._lifecycle = lifecycle
        self._bus: Optional[EventBus] = None

    def attach(self, bus: EventBus) -> None:
        """Subscribe to every event type the router handles."""
        self._bus = bus
        bus.subscribe(self._on_sensor_event, EventFilter(event_type=SENSOR_CHANGED))
        bus.subscribe(self._on_ui_interaction, EventFilter(event_type=UI_INTERACTION))
        bus.subscribe(self._on_prompt_response, EventFilter(event_type=UI_PROMPT_RESPONSE))
        bus.subscribe(self._on_booking_started, EventFilter(event_type=BOOKING_STARTED))
        bus.subscribe(self._on_booking_ended, EventFilter(event_type=BOOKING_ENDED))

    def detach(self) -> None:
        """Remove all subscriptions."""
        if self._bus is None:
            return
        for handler in (
            self._on_sensor_event,
            self._on_ui_interaction,
            self._on_prompt_response,
            self._on_booking_started,
            self._on_booking_ended,
        ):
            self._bus.unsubscribe(handler)
        self._bus = None

    async def _on_sensor_event(self, event: Event) -> None:
        """Handle a pushed sensor value."""
        session = self._session
        if not session.is_monitoring:
            return

        path = event.entity_id
        raw = event.payload.get("new_state")
        if path is None or not apply_signal(session.snapshot, path, raw, session.config):
            logger.debug(f"Ignoring unmonitored signal {path!r}")
            return
        logger.debug(f"Sensor '{path}' = {raw!r}")

        # Fast path only while a countdown runs; otherwise presence goes
        # through the occupied debounce like any other signal.
        if session.release_pending and indicates_presence(path, raw, session.config):
            await self._countdown.cancel_release("presence detected", self._scheduler.now())

        if session.gate_open:
            result = session.evaluate(self._scheduler.now())
            await self._countdown.handle_result(result)

    async def _on_ui_interaction(self, event: Event) -> None:
        """Touch-panel activity counts as someone in the room."""
        if not self._session.is_monitoring or not self._session.config.use_gui_interaction:
            return
        logger.debug("User interaction detected")
        await self._countdown.cancel_release("user interaction", self._scheduler.now())

    async def _on_prompt_response(self, event: Event) -> None:
        """Handle the answer to the check-in prompt."""
        feedback_id = event.payload.get("feedback_id")
        option_id = str(event.payload.get("option_id"))
        if feedback_id != ALERT_FEEDBACK_ID or option_id != CHECK_IN_OPTION_ID:
            return
        if not self._session.is_monitoring:
            logger.debug("Check-in ignored (no booking monitored)")
            return

        logger.info("Check-in received")
        self._session.snapshot.people_presence = True
        await self._countdown.cancel_release(
            "check-in",
            self._scheduler.now(),
            restart_occupied_timer=False,
            clear_prompt=False,
        )

    async def _on_booking_started(self, event: Event) -> None:
        booking_id = event.payload.get("booking_id") or event.entity_id
        if not booking_id:
            logger.warning(f"booking.started without booking id: {event.payload}")
            return
        await self._lifecycle.on_booking_started(str(booking_id))

    async def _on_booking_ended(self, event: Event) -> None:
        booking_id = event.payload.get("booking_id") or event.entity_id
        await self._lifecycle.on_booking_ended(str(booking_id))
