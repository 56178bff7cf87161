"""Occupancy classification: sensor snapshot -> occupied / not occupied."""

from .models import OccupancyConfiguration, SensorSnapshot


def is_room_occupied(snapshot: SensorSnapshot, config: OccupancyConfiguration) -> bool:
    """Decide whether the snapshot shows an occupied room.

    Pure function: no side effects and no memory of earlier calls.
    Disabled signals contribute False regardless of their raw value.

    In AND mode (use_presence_and_count) the people count and the presence
    detector must agree. In OR mode any enabled signal alone suffices.

    Args:
        snapshot: Latest sensor values.
        config: Which signals are enabled and how they combine.

    Returns:
        True if the room should be considered occupied.
    """
    other_signals = (
        (config.use_active_calls and snapshot.in_call)
        or (config.use_sound and snapshot.sound_detected)
        or (config.use_presentation_mode and snapshot.sharing)
    )

    if config.use_presence_and_count:
        people = snapshot.people_count > 0 and snapshot.people_presence
    else:
        people = snapshot.people_count > 0 or (
            config.use_presence_sensor and snapshot.people_presence
        )

    return bool(people or other_signals)
