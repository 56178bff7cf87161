"""
Release module for room-release.

Declines a room booking when the occupancy engine confirms the room is
empty and nobody checks in during the grace period.

Features:
- Booking-gated monitoring session with an explicit phase
- Cancelable countdown task with periodic check-in prompts
- Best-effort device commands (logged, never raised)
- Forced re-evaluation when sensor pushes stall
"""

from .adapter import (
    CommandResult,
    DeviceAdapter,
    MockDeviceAdapter,
    RoomDevice,
    StatusPath,
)
from .countdown import ReleaseCountdown, ReleaseCountdownController
from .lifecycle import BookingLifecycleCoordinator
from .models import BookingContext, SessionPhase
from .module import RoomReleaseModule
from .router import EventRouter
from .sensors import SensorReader
from .session import MonitoringSession

__all__ = [
    "RoomReleaseModule",
    "BookingLifecycleCoordinator",
    "EventRouter",
    "MonitoringSession",
    "ReleaseCountdown",
    "ReleaseCountdownController",
    "SensorReader",
    "BookingContext",
    "SessionPhase",
    "CommandResult",
    "DeviceAdapter",
    "MockDeviceAdapter",
    "RoomDevice",
    "StatusPath",
]
