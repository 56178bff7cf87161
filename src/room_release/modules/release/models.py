"""Data models for the release module."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class SessionPhase(Enum):
    """Phase of the monitoring session.

    IDLE: No booking is monitored; sensor events are ignored
    MONITORING: A booking is monitored and the evaluation gate is open
    COUNTDOWN: Vacancy confirmed; a release countdown is running
    """

    IDLE = "idle"
    MONITORING = "monitoring"
    COUNTDOWN = "countdown"


@dataclass(frozen=True)
class BookingContext:
    """
    The booking currently monitored for release.

    Attributes:
        booking_id: Identifier from the booking-start event
        meeting_id: Meeting identifier used to decline (None if lookup failed)
        started_at: When monitoring started for this booking
    """

    booking_id: str
    meeting_id: Optional[str]
    started_at: datetime

    def to_dict(self) -> dict:
        """Serialize to dict."""
        return {
            "booking_id": self.booking_id,
            "meeting_id": self.meeting_id,
            "started_at": self.started_at.isoformat(),
        }
