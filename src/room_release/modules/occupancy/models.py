"""Data models for the occupancy module.

This module defines the core data structures of the occupancy decision:
the sensor snapshot, the static configuration and the presence state.
Configuration and state are frozen (immutable); the engine replaces the
state as a whole on every transition so a partial update is never visible.

Licensed under MIT License
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any


class PresenceStatus(Enum):
    """Resolved occupancy judgment for the room.

    UNSET: No judgment yet (debounce timers may be running)
    FULL: Occupancy confirmed and stable
    EMPTY: Vacancy confirmed and stable, eligible for release
    """

    UNSET = "unset"
    FULL = "full"
    EMPTY = "empty"


@dataclass
class SensorSnapshot:
    """Latest known value of each monitored signal.

    Attributes:
        people_count: Number of people counted (0 when there is no reading).
        people_presence: Presence detector says someone is there.
        in_call: At least one call is active.
        sound_detected: Ambient sound level above the configured threshold.
        sharing: A presentation is being shared.
    """

    people_count: int = 0
    people_presence: bool = False
    in_call: bool = False
    sound_detected: bool = False
    sharing: bool = False

    def to_dict(self) -> dict:
        """Serialize to dict."""
        return {
            "people_count": self.people_count,
            "people_presence": self.people_presence,
            "in_call": self.in_call,
            "sound_detected": self.sound_detected,
            "sharing": self.sharing,
        }


@dataclass(frozen=True)
class OccupancyConfiguration:
    """Static configuration, resolved once at startup.

    Attributes:
        use_sound: Count ambient sound as an occupancy signal.
        sound_level: Sound level (dB A) above which sound is detected.
        use_active_calls: Count an active call as an occupancy signal.
        use_presentation_mode: Count presentation sharing as a signal.
        use_people_count_only: Ignore the presence detector and derive
            presence from the people count.
        use_presence_and_count: AND mode. People count and presence must
            agree; otherwise any enabled signal alone suffices (OR mode).
        use_gui_interaction: Touch-panel activity cancels a pending release.
        min_before_book: Minutes of continuous occupancy before FULL.
        min_before_release: Minutes of continuous vacancy before EMPTY.
        countdown_seconds: Grace period before the booking is declined.
        prompt_repeat_seconds: Cadence for re-displaying the check-in prompt.
        forced_update_margin_seconds: Added to min_before_book to get the
            forced re-evaluation period.
    """

    use_sound: bool = False
    sound_level: int = 50
    use_active_calls: bool = True
    use_presentation_mode: bool = True
    use_people_count_only: bool = False
    use_presence_and_count: bool = True
    use_gui_interaction: bool = True
    min_before_book: float = 5
    min_before_release: float = 5
    countdown_seconds: int = 60
    prompt_repeat_seconds: int = 3
    forced_update_margin_seconds: float = 1

    def __post_init__(self) -> None:
        if self.min_before_book < 0:
            raise ValueError(f"min_before_book must be >= 0, got {self.min_before_book}")
        if self.min_before_release < 0:
            raise ValueError(f"min_before_release must be >= 0, got {self.min_before_release}")
        if self.countdown_seconds < 1:
            raise ValueError(f"countdown_seconds must be >= 1, got {self.countdown_seconds}")
        if self.prompt_repeat_seconds < 1:
            raise ValueError(
                f"prompt_repeat_seconds must be >= 1, got {self.prompt_repeat_seconds}"
            )
        if self.forced_update_margin_seconds < 0:
            raise ValueError(
                "forced_update_margin_seconds must be >= 0, "
                f"got {self.forced_update_margin_seconds}"
            )

    @property
    def use_presence_sensor(self) -> bool:
        """Whether the presence detector reading is trusted."""
        return not self.use_people_count_only

    @property
    def book_delay(self) -> timedelta:
        return timedelta(minutes=self.min_before_book)

    @property
    def release_delay(self) -> timedelta:
        return timedelta(minutes=self.min_before_release)

    @property
    def forced_update_period(self) -> float:
        """Seconds between forced re-evaluations."""
        return self.min_before_book * 60 + self.forced_update_margin_seconds

    def to_dict(self) -> dict:
        """Serialize to dict."""
        return {
            "use_sound": self.use_sound,
            "sound_level": self.sound_level,
            "use_active_calls": self.use_active_calls,
            "use_presentation_mode": self.use_presentation_mode,
            "use_people_count_only": self.use_people_count_only,
            "use_presence_and_count": self.use_presence_and_count,
            "use_gui_interaction": self.use_gui_interaction,
            "min_before_book": self.min_before_book,
            "min_before_release": self.min_before_release,
            "countdown_seconds": self.countdown_seconds,
            "prompt_repeat_seconds": self.prompt_repeat_seconds,
            "forced_update_margin_seconds": self.forced_update_margin_seconds,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OccupancyConfiguration":
        """Deserialize from dict. Unknown keys are ignored."""
        defaults = cls()
        return cls(
            use_sound=data.get("use_sound", defaults.use_sound),
            sound_level=data.get("sound_level", defaults.sound_level),
            use_active_calls=data.get("use_active_calls", defaults.use_active_calls),
            use_presentation_mode=data.get(
                "use_presentation_mode", defaults.use_presentation_mode
            ),
            use_people_count_only=data.get(
                "use_people_count_only", defaults.use_people_count_only
            ),
            use_presence_and_count=data.get(
                "use_presence_and_count", defaults.use_presence_and_count
            ),
            use_gui_interaction=data.get("use_gui_interaction", defaults.use_gui_interaction),
            min_before_book=data.get("min_before_book", defaults.min_before_book),
            min_before_release=data.get("min_before_release", defaults.min_before_release),
            countdown_seconds=data.get("countdown_seconds", defaults.countdown_seconds),
            prompt_repeat_seconds=data.get(
                "prompt_repeat_seconds", defaults.prompt_repeat_seconds
            ),
            forced_update_margin_seconds=data.get(
                "forced_update_margin_seconds", defaults.forced_update_margin_seconds
            ),
        )


@dataclass(frozen=True)
class PresenceState:
    """Presence judgment for one monitoring session (Immutable).

    Attributes:
        status: Last resolved judgment.
        occupied_since: Start of the current occupied stretch (None = unset).
        vacant_since: Start of the current vacant stretch (None = unset).
        listener_active: Whether new evaluations are allowed. Closed while a
            release countdown is running and outside of a booking.
    """

    status: PresenceStatus = PresenceStatus.UNSET
    occupied_since: datetime | None = None
    vacant_since: datetime | None = None
    listener_active: bool = False

    @property
    def is_full(self) -> bool:
        return self.status == PresenceStatus.FULL

    @property
    def is_empty(self) -> bool:
        return self.status == PresenceStatus.EMPTY

    def to_dict(self) -> dict:
        """Serialize to dict."""
        return {
            "status": self.status.value,
            "occupied_since": self.occupied_since.isoformat() if self.occupied_since else None,
            "vacant_since": self.vacant_since.isoformat() if self.vacant_since else None,
            "listener_active": self.listener_active,
        }


@dataclass(frozen=True)
class StateTransition:
    """A record of a status change for debugging and event emission."""

    previous_state: PresenceState
    new_state: PresenceState
    reason: str


@dataclass(frozen=True)
class EngineResult:
    """Instructions for the caller of the engine.

    Attributes:
        transitions: Status changes that occurred (at most one per call).
        release_requested: The room was just confirmed EMPTY while the
            listener was active; the caller must start the release countdown.
    """

    transitions: list[StateTransition] = field(default_factory=list)
    release_requested: bool = False
