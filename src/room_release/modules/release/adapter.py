"""
Device adapter interface for the room-release module.

The adapter provides an abstraction layer between the release logic and the
room-control device API. The integration layer provides a concrete
implementation (e.g. over the device's websocket or SSH transport).

Design Principle:
    The adapter is intentionally minimal: one status read and one command
    send, both asynchronous and both allowed to raise. Everything the
    release logic needs (prompts, text lines, booking responses) is built
    on top of these two calls by RoomDevice, which turns failures into
    logged CommandResults instead of exceptions.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class StatusPath:
    """Device status paths read or subscribed to by the release module."""

    ACTIVE_CALLS = "SystemUnit State NumberOfActiveCalls"
    PEOPLE_PRESENCE = "RoomAnalytics PeoplePresence"
    PEOPLE_COUNT = "RoomAnalytics PeopleCount Current"
    SOUND_LEVEL = "RoomAnalytics Sound Level A"
    PRESENTATION_MODE = "Conference Presentation Mode"
    BOOKING_AVAILABILITY = "Bookings Availability Status"


class Command:
    """Device commands issued by the release module."""

    PROMPT_DISPLAY = "UserInterface Message Prompt Display"
    PROMPT_CLEAR = "UserInterface Message Prompt Clear"
    TEXT_LINE_DISPLAY = "UserInterface Message TextLine Display"
    TEXT_LINE_CLEAR = "UserInterface Message TextLine Clear"
    BOOKING_GET = "Bookings Get"
    BOOKING_RESPOND = "Bookings Respond"


ALERT_FEEDBACK_ID = "alert_response"
CHECK_IN_OPTION_ID = "1"
BOOKED_UNTIL = "BookedUntil"

PROMPT_TEXT = (
    "This room seems unused. It will be self-released.<br>"
    "Press check-in if you have booked this room"
)
COUNTDOWN_TEXT = (
    "This room seems unused. It will be released in {remaining} seconds.<br>"
    "Use the check-in button on the touch panel if you have booked this room."
)


class DeviceAdapter(ABC):
    """
    Abstract interface for room-control device operations.

    Both methods are coroutines and may raise any exception on failure;
    callers are expected to handle it (RoomDevice does).
    """

    @abstractmethod
    async def get_status(self, path: str) -> Any:
        """
        Read a status value from the device.

        Args:
            path: Status path (see StatusPath)

        Returns:
            The raw status value (usually a string or number)
        """
        pass

    @abstractmethod
    async def send_command(self, command: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Send a command to the device.

        Args:
            command: Command path (see Command)
            params: Command parameters

        Returns:
            The raw command response
        """
        pass


class MockDeviceAdapter(DeviceAdapter):
    """
    Mock adapter for testing and demos.

    Serves canned status values, records every command and can be told to
    fail specific reads or commands.
    """

    def __init__(self) -> None:
        self._statuses: Dict[str, Any] = {}
        self._status_errors: Dict[str, Exception] = {}
        self._command_responses: Dict[str, Any] = {}
        self._command_errors: Dict[str, Exception] = {}
        self._commands: List[Tuple[str, Optional[Dict[str, Any]]]] = []

    def set_status(self, path: str, value: Any) -> None:
        """Set a status value for testing."""
        self._statuses[path] = value
        self._status_errors.pop(path, None)

    def fail_status(self, path: str, error: Exception) -> None:
        """Make reads of a status path raise."""
        self._status_errors[path] = error

    def set_command_response(self, command: str, response: Any) -> None:
        """Set the response returned for a command."""
        self._command_responses[command] = response
        self._command_errors.pop(command, None)

    def fail_command(self, command: str, error: Exception) -> None:
        """Make a command raise."""
        self._command_errors[command] = error

    def get_commands(self, command: Optional[str] = None) -> List[Tuple[str, Optional[Dict]]]:
        """Get recorded commands, optionally only those of one type."""
        if command is None:
            return self._commands.copy()
        return [c for c in self._commands if c[0] == command]

    def clear_commands(self) -> None:
        """Clear recorded commands."""
        self._commands.clear()

    # DeviceAdapter implementation

    async def get_status(self, path: str) -> Any:
        if path in self._status_errors:
            raise self._status_errors[path]
        if path not in self._statuses:
            raise KeyError(path)
        return self._statuses[path]

    async def send_command(self, command: str, params: Optional[Dict[str, Any]] = None) -> Any:
        self._commands.append((command, params))
        if command in self._command_errors:
            raise self._command_errors[command]
        return self._command_responses.get(command)


@dataclass(frozen=True)
class CommandResult:
    """
    Outcome of a best-effort device command.

    Attributes:
        command: The command that was sent
        ok: True if the device accepted it
        response: Raw response on success
        error: Error description on failure
    """

    command: str
    ok: bool
    response: Any = None
    error: Optional[str] = None


class RoomDevice:
    """
    Best-effort command helpers over a DeviceAdapter.

    Commands are never retried and never raise: a failure is logged with
    the command and its parameters and returned as a failed CommandResult
    that callers may ignore.
    """

    def __init__(self, adapter: DeviceAdapter) -> None:
        self._adapter = adapter

    @property
    def adapter(self) -> DeviceAdapter:
        return self._adapter

    async def read_status(self, path: str) -> Optional[Any]:
        """
        Read a status value.

        Args:
            path: Status path

        Returns:
            Raw value, or None if the read failed
        """
        try:
            return await self._adapter.get_status(path)
        except Exception as e:
            logger.warning(f"Couldn't read status '{path}': {e}")
            return None

    async def send(self, command: str, params: Optional[Dict[str, Any]] = None) -> CommandResult:
        """
        Send a command, logging instead of raising on failure.

        Args:
            command: Command path
            params: Command parameters

        Returns:
            CommandResult describing the outcome
        """
        try:
            response = await self._adapter.send_command(command, params)
        except Exception as e:
            logger.warning(f"Command '{command}' failed (params={params}): {e}")
            return CommandResult(command=command, ok=False, error=str(e))
        logger.debug(f"Command '{command}' sent")
        return CommandResult(command=command, ok=True, response=response)

    # --- UI ---

    async def show_check_in_prompt(self) -> CommandResult:
        return await self.send(
            Command.PROMPT_DISPLAY,
            {
                "Text": PROMPT_TEXT,
                "FeedbackId": ALERT_FEEDBACK_ID,
                "Option.1": "CHECK IN",
            },
        )

    async def clear_prompt(self) -> CommandResult:
        return await self.send(Command.PROMPT_CLEAR, {"FeedbackId": ALERT_FEEDBACK_ID})

    async def show_countdown(self, remaining: int) -> CommandResult:
        return await self.send(
            Command.TEXT_LINE_DISPLAY,
            {"Text": COUNTDOWN_TEXT.format(remaining=remaining), "Duration": 0},
        )

    async def clear_countdown(self) -> CommandResult:
        return await self.send(Command.TEXT_LINE_CLEAR, {})

    async def clear_ui(self) -> None:
        """Remove the check-in prompt and the countdown line."""
        await self.clear_prompt()
        await self.clear_countdown()

    # --- Bookings ---

    async def get_meeting_id(self, booking_id: str) -> Optional[str]:
        """
        Look up the meeting id of a booking.

        Args:
            booking_id: Booking identifier from the booking-start event

        Returns:
            Meeting id, or None if the lookup failed
        """
        result = await self.send(Command.BOOKING_GET, {"Id": booking_id})
        if not result.ok:
            return None
        try:
            return result.response["Booking"]["MeetingId"]
        except (KeyError, TypeError):
            logger.warning(f"Booking {booking_id} lookup returned no meeting id: {result.response}")
            return None

    async def decline_booking(self, meeting_id: str) -> CommandResult:
        return await self.send(
            Command.BOOKING_RESPOND,
            {"Type": "Decline", "MeetingId": meeting_id},
        )
