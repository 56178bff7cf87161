"""
Sensor reading and normalization.

Raw device values arrive as strings or numbers, sometimes as garbage. They
are normalized here the same way for full polls and for push updates:
unparseable numbers count as 0, the "no reading" people count (-1) counts
as 0, and a failed read keeps the last known value.
"""

import asyncio
import logging
from dataclasses import replace
from typing import Any

from room_release.modules.occupancy.models import OccupancyConfiguration, SensorSnapshot

from .adapter import RoomDevice, StatusPath

logger = logging.getLogger(__name__)

SIGNAL_PATHS = (
    StatusPath.ACTIVE_CALLS,
    StatusPath.PEOPLE_PRESENCE,
    StatusPath.PEOPLE_COUNT,
    StatusPath.SOUND_LEVEL,
    StatusPath.PRESENTATION_MODE,
)


def parse_int(raw: Any, default: int = 0) -> int:
    """
    Parse a device value as an integer.

    Args:
        raw: Raw value (e.g. "2", 2, "45.5")
        default: Value used when raw is not numeric

    Returns:
        Parsed integer, or default
    """
    try:
        return int(float(str(raw).strip()))
    except (TypeError, ValueError, OverflowError):
        logger.debug(f"Non-numeric sensor value {raw!r}, using {default}")
        return default


def normalize_people_count(raw: Any) -> int:
    """People count with "no reading" (-1) and garbage mapped to 0."""
    count = parse_int(raw)
    return count if count > 0 else 0


def apply_signal(
    snapshot: SensorSnapshot,
    path: str,
    raw: Any,
    config: OccupancyConfiguration,
) -> bool:
    """
    Update one snapshot field from a raw device value.

    Args:
        snapshot: Snapshot to update in place
        path: Status path the value belongs to
        raw: Raw device value
        config: Occupancy configuration (presence synthesis, sound threshold)

    Returns:
        True if the path is a monitored signal, False otherwise
    """
    if path == StatusPath.ACTIVE_CALLS:
        snapshot.in_call = parse_int(raw) > 0
    elif path == StatusPath.PEOPLE_PRESENCE:
        # With people-count-only, presence is derived from the count instead.
        if config.use_presence_sensor:
            snapshot.people_presence = raw == "Yes"
    elif path == StatusPath.PEOPLE_COUNT:
        snapshot.people_count = normalize_people_count(raw)
        if not config.use_presence_sensor:
            snapshot.people_presence = snapshot.people_count > 0
    elif path == StatusPath.SOUND_LEVEL:
        snapshot.sound_detected = parse_int(raw) > config.sound_level
    elif path == StatusPath.PRESENTATION_MODE:
        snapshot.sharing = raw is not None and str(raw) != "Off"
    else:
        return False
    return True


def indicates_presence(path: str, raw: Any, config: OccupancyConfiguration) -> bool:
    """
    Check if a pushed value is a direct sign of people in the room.

    Args:
        path: Status path of the pushed value
        raw: Raw device value
        config: Occupancy configuration

    Returns:
        True for a non-zero people count or a "Yes" from the presence
        detector (when it is trusted)
    """
    if path == StatusPath.PEOPLE_COUNT:
        return normalize_people_count(raw) > 0
    if path == StatusPath.PEOPLE_PRESENCE:
        return config.use_presence_sensor and raw == "Yes"
    return False


class SensorReader:
    """Full poll of every monitored signal."""

    def __init__(self, device: RoomDevice, config: OccupancyConfiguration) -> None:
        self._device = device
        self._config = config

    async def poll(self, previous: SensorSnapshot) -> SensorSnapshot:
        """
        Read all signals concurrently and build a fresh snapshot.

        Signals whose read fails keep their value from `previous`.

        Args:
            previous: Last known snapshot

        Returns:
            New snapshot (previous is not modified)
        """
        values = await asyncio.gather(*(self._device.read_status(p) for p in SIGNAL_PATHS))

        snapshot = replace(previous)
        for path, raw in zip(SIGNAL_PATHS, values):
            if raw is None:
                logger.warning(f"No value for '{path}', keeping last known value")
                continue
            apply_signal(snapshot, path, raw, self._config)

        logger.debug(f"Polled sensors: {snapshot.to_dict()}")
        return snapshot
