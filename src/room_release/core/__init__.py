"""
Core components of the room-release kernel.

This package contains:
- bus: Event Bus implementation
- scheduler: Cancelable timers on asyncio or a virtual clock
"""

from room_release.core.bus import Event, EventBus, EventFilter
from room_release.core.scheduler import (
    AsyncioScheduler,
    ManualScheduler,
    Scheduler,
    TimerHandle,
)

__all__ = [
    "Event",
    "EventBus",
    "EventFilter",
    "AsyncioScheduler",
    "ManualScheduler",
    "Scheduler",
    "TimerHandle",
]
