"""RoomReleaseModule - releases a booked room nobody is using.

This module wires the occupancy engine, the release countdown and the
booking lifecycle to the kernel EventBus and a room-control device.
"""

import logging
from typing import Any, Dict, Optional, Union

from room_release.core.bus import EventBus
from room_release.core.scheduler import AsyncioScheduler, Scheduler
from room_release.modules.base import RoomModule
from room_release.modules.occupancy import OccupancyConfiguration

from .adapter import DeviceAdapter, RoomDevice
from .countdown import ReleaseCountdownController
from .lifecycle import BookingLifecycleCoordinator
from .models import SessionPhase
from .router import EventRouter
from .sensors import SensorReader
from .session import MonitoringSession

logger = logging.getLogger(__name__)

# Constant names used by the legacy device macro, accepted in
# unversioned configuration.
_LEGACY_KEYS = {
    "USE_SOUND": "use_sound",
    "SOUND_LEVEL": "sound_level",
    "USE_ACTIVE_CALLS": "use_active_calls",
    "USE_PRESENTATION_MODE": "use_presentation_mode",
    "USE_PEOPLE_COUNT_ONLY": "use_people_count_only",
    "USE_PRESENCE_AND_COUNT": "use_presence_and_count",
    "USE_GUI_INTERACTION": "use_gui_interaction",
    "MIN_BEFORE_BOOK": "min_before_book",
    "MIN_BEFORE_RELEASE": "min_before_release",
}


class RoomReleaseModule(RoomModule):
    """
    Room release module.

    Features:
    - Monitoring gated by the booking lifecycle
    - Hysteresis occupancy judgment from people count, presence, calls,
      sound and presentation sharing
    - Check-in prompt with a visible countdown before the booking is declined
    - Fast cancellation on presence, touch-panel activity or check-in
    - Forced periodic re-evaluation when sensor pushes stall

    Configuration is resolved once, at construction.
    """

    CURRENT_CONFIG_VERSION = 1

    def __init__(
        self,
        adapter: DeviceAdapter,
        scheduler: Optional[Scheduler] = None,
        config: Union[Dict[str, Any], OccupancyConfiguration, None] = None,
    ) -> None:
        """
        Initialize the release module.

        Args:
            adapter: Device adapter for status reads and commands
            scheduler: Timer source (defaults to the asyncio event loop)
            config: Configuration dict or object (defaults used if None)

        Raises:
            ValueError: If the configuration is invalid
        """
        if isinstance(config, OccupancyConfiguration):
            self._config = config
        else:
            self._config = OccupancyConfiguration.from_dict(self.resolve_config(config))

        self._bus: Optional[EventBus] = None
        self._scheduler = scheduler or AsyncioScheduler()
        self._device = RoomDevice(adapter)
        self._session = MonitoringSession(self._config)
        self._countdown = ReleaseCountdownController(self._session, self._device, self._scheduler)
        self._lifecycle = BookingLifecycleCoordinator(
            self._session,
            self._device,
            SensorReader(self._device, self._config),
            self._scheduler,
            self._countdown,
        )
        self._router = EventRouter(self._session, self._scheduler, self._countdown, self._lifecycle)

    @property
    def id(self) -> str:
        return "room_release"

    @property
    def config(self) -> OccupancyConfiguration:
        return self._config

    @property
    def session(self) -> MonitoringSession:
        return self._session

    @property
    def lifecycle(self) -> BookingLifecycleCoordinator:
        return self._lifecycle

    @property
    def phase(self) -> SessionPhase:
        return self._session.phase

    def attach(self, bus: EventBus) -> None:
        """Attach to the kernel and start routing device events."""
        logger.info("Attaching RoomReleaseModule")
        self._bus = bus
        self._countdown.bus = bus
        self._router.attach(bus)
        logger.info(f"Room release configured: {self._config.to_dict()}")

    def detach(self) -> None:
        """Stop routing events and stop every timer."""
        self._router.detach()
        self._countdown.bus = None
        self._session.deactivate()
        self._bus = None
        logger.info("RoomReleaseModule detached")

    def default_config(self) -> Dict:
        """Default configuration."""
        return {"version": self.CURRENT_CONFIG_VERSION, **OccupancyConfiguration().to_dict()}

    def config_schema(self) -> Dict:
        """JSON schema for UI configuration."""
        return {
            "type": "object",
            "properties": {
                "use_sound": {
                    "type": "boolean",
                    "title": "Use Sound Level",
                    "description": "Ambient sound above the threshold counts as occupancy",
                    "default": False,
                },
                "sound_level": {
                    "type": "integer",
                    "title": "Sound Threshold (dB A)",
                    "minimum": 0,
                    "default": 50,
                },
                "use_active_calls": {
                    "type": "boolean",
                    "title": "Use Active Calls",
                    "default": True,
                },
                "use_presentation_mode": {
                    "type": "boolean",
                    "title": "Use Presentation Sharing",
                    "default": True,
                },
                "use_people_count_only": {
                    "type": "boolean",
                    "title": "People Count Only",
                    "description": "Ignore the presence detector; derive presence from the count",
                    "default": False,
                },
                "use_presence_and_count": {
                    "type": "boolean",
                    "title": "Require Presence And Count",
                    "description": "People count and presence detector must agree",
                    "default": True,
                },
                "use_gui_interaction": {
                    "type": "boolean",
                    "title": "Touch Panel Cancels Release",
                    "default": True,
                },
                "min_before_book": {
                    "type": "number",
                    "title": "Minutes Before Occupied",
                    "minimum": 0,
                    "default": 5,
                },
                "min_before_release": {
                    "type": "number",
                    "title": "Minutes Before Release",
                    "minimum": 0,
                    "default": 5,
                },
                "countdown_seconds": {
                    "type": "integer",
                    "title": "Countdown (seconds)",
                    "minimum": 1,
                    "default": 60,
                },
                "prompt_repeat_seconds": {
                    "type": "integer",
                    "title": "Prompt Repeat (seconds)",
                    "minimum": 1,
                    "default": 3,
                },
            },
        }

    def migrate_config(self, config: Dict) -> Dict:
        """Migrate configuration to current version."""
        version = config.get("version")
        if version == self.CURRENT_CONFIG_VERSION:
            return config

        migrated = {}
        for key, value in config.items():
            new_key = _LEGACY_KEYS.get(key, key)
            if new_key != key:
                logger.debug(f"Migrating config key {key} -> {new_key}")
            migrated[new_key] = value

        migrated["version"] = self.CURRENT_CONFIG_VERSION
        return migrated

    def dump_state(self) -> Dict:
        """Export session state for diagnostics."""
        return {"version": 1, **self._session.dump_state()}
