"""
room-release: occupancy-driven release of booked meeting rooms.

This library decides when a booked room is really unused:
- Event Bus for device pushes and semantic events
- Hysteresis occupancy engine over several room sensors
- Check-in countdown before the booking is declined
- Cancelable timers on asyncio or a virtual clock
"""

from room_release.core.bus import Event, EventBus, EventFilter
from room_release.core.scheduler import AsyncioScheduler, ManualScheduler, Scheduler
from room_release.modules.release import MockDeviceAdapter, RoomReleaseModule

__version__ = "0.1.0"

__all__ = [
    "Event",
    "EventBus",
    "EventFilter",
    "AsyncioScheduler",
    "ManualScheduler",
    "Scheduler",
    "MockDeviceAdapter",
    "RoomReleaseModule",
]
