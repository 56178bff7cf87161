"""
Occupancy module for room-release.

Turns independently arriving sensor signals into a stable occupied/empty
judgment for a meeting room.

Features:
- Pure classifier over a sensor snapshot (AND / OR signal combination)
- Hysteresis with separate debounce for "confirm occupied" and "confirm empty"
- Time-agnostic engine (caller passes `now`, no internal timers)
- Immutable presence state, replaced atomically on each transition
"""

from .models import (
    EngineResult,
    OccupancyConfiguration,
    PresenceState,
    PresenceStatus,
    SensorSnapshot,
    StateTransition,
)
from .classifier import is_room_occupied
from .engine import PresenceStateMachine

__all__ = [
    "PresenceStateMachine",
    "is_room_occupied",
    "EngineResult",
    "OccupancyConfiguration",
    "PresenceState",
    "PresenceStatus",
    "SensorSnapshot",
    "StateTransition",
]
