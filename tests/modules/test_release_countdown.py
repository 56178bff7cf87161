"""Tests for the release countdown task and controller."""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from room_release import EventBus, ManualScheduler
from room_release.modules.occupancy import OccupancyConfiguration
from room_release.modules.release import (
    BookingContext,
    MockDeviceAdapter,
    MonitoringSession,
    ReleaseCountdown,
    ReleaseCountdownController,
    RoomDevice,
    SessionPhase,
)
from room_release.modules.release.adapter import Command


@pytest.fixture
def scheduler():
    return ManualScheduler()


class TestReleaseCountdown:
    """The cancelable countdown task."""

    def test_ticks_then_expires_once(self, scheduler):
        on_tick = AsyncMock()
        on_expire = AsyncMock()
        countdown = ReleaseCountdown(scheduler, 60, on_tick, on_expire)
        countdown.start()

        async def run():
            await scheduler.advance(59)
            assert on_expire.await_count == 0
            await scheduler.advance(1)
            await scheduler.advance(30)

        asyncio.run(run())

        assert [c.args[0] for c in on_tick.await_args_list] == list(range(59, 0, -1))
        assert on_expire.await_count == 1
        assert countdown.expired is True
        assert countdown.is_running is False
        assert countdown.remaining_seconds == 0
        assert scheduler.pending == 0

    def test_cancel_stops_everything(self, scheduler):
        on_tick = AsyncMock()
        on_expire = AsyncMock()
        countdown = ReleaseCountdown(scheduler, 60, on_tick, on_expire)
        countdown.start()

        async def run():
            await scheduler.advance(10)
            assert countdown.cancel() is True
            await scheduler.advance(120)

        asyncio.run(run())

        assert on_tick.await_count == 10
        assert on_expire.await_count == 0
        assert countdown.remaining_seconds == 50
        assert scheduler.pending == 0

    def test_cancel_is_idempotent(self, scheduler):
        countdown = ReleaseCountdown(scheduler, 60, AsyncMock(), AsyncMock())
        assert countdown.cancel() is False

        countdown.start()
        assert countdown.cancel() is True
        assert countdown.cancel() is False

    def test_cancel_after_expiry_is_noop(self, scheduler):
        on_expire = AsyncMock()
        countdown = ReleaseCountdown(scheduler, 5, AsyncMock(), on_expire)
        countdown.start()
        asyncio.run(scheduler.advance(5))

        assert countdown.cancel() is False
        assert on_expire.await_count == 1

    def test_start_twice_rejected(self, scheduler):
        countdown = ReleaseCountdown(scheduler, 60, AsyncMock(), AsyncMock())
        countdown.start()
        with pytest.raises(RuntimeError):
            countdown.start()


class TestReleaseCountdownController:
    """Check-in protocol around the countdown."""

    @pytest.fixture
    def adapter(self):
        return MockDeviceAdapter()

    @pytest.fixture
    def session(self, scheduler):
        session = MonitoringSession(OccupancyConfiguration())
        session.activate(
            BookingContext(booking_id="b-1", meeting_id="m-1", started_at=scheduler.now())
        )
        return session

    @pytest.fixture
    def controller(self, session, adapter, scheduler):
        return ReleaseCountdownController(session, RoomDevice(adapter), scheduler)

    def test_prompts_and_countdown_line(self, controller, session, adapter, scheduler):
        async def run():
            await controller.begin()
            assert session.phase == SessionPhase.COUNTDOWN
            await scheduler.advance(59)

        asyncio.run(run())

        prompts = adapter.get_commands(Command.PROMPT_DISPLAY)
        lines = adapter.get_commands(Command.TEXT_LINE_DISPLAY)
        # Initial prompt plus one for every third second left (57, 54, ..., 3)
        assert len(prompts) == 1 + 19
        assert prompts[0][1]["FeedbackId"] == "alert_response"
        assert prompts[0][1]["Option.1"] == "CHECK IN"
        assert len(lines) == 59
        assert "59 seconds" in lines[0][1]["Text"]
        assert "1 seconds" in lines[-1][1]["Text"]

    def test_expiry_declines_and_resets(self, controller, session, adapter, scheduler):
        async def run():
            await controller.begin()
            await scheduler.advance(60)

        asyncio.run(run())

        declines = adapter.get_commands(Command.BOOKING_RESPOND)
        assert declines == [(Command.BOOKING_RESPOND, {"Type": "Decline", "MeetingId": "m-1"})]
        assert adapter.get_commands(Command.PROMPT_CLEAR)
        assert adapter.get_commands(Command.TEXT_LINE_CLEAR)
        assert session.phase == SessionPhase.IDLE
        assert session.booking is None

    def test_expiry_looks_up_unknown_meeting_id(self, scheduler, adapter):
        session = MonitoringSession(OccupancyConfiguration())
        session.activate(BookingContext(booking_id="b-2", meeting_id=None, started_at=scheduler.now()))
        adapter.set_command_response(Command.BOOKING_GET, {"Booking": {"MeetingId": "m-2"}})
        controller = ReleaseCountdownController(session, RoomDevice(adapter), scheduler)

        async def run():
            await controller.begin()
            await scheduler.advance(60)

        asyncio.run(run())

        assert adapter.get_commands(Command.BOOKING_GET) == [(Command.BOOKING_GET, {"Id": "b-2"})]
        declines = adapter.get_commands(Command.BOOKING_RESPOND)
        assert declines[0][1]["MeetingId"] == "m-2"

    def test_failed_prompt_does_not_stop_countdown(self, controller, adapter, scheduler):
        adapter.fail_command(Command.PROMPT_DISPLAY, ConnectionError("ui unavailable"))
        adapter.fail_command(Command.TEXT_LINE_DISPLAY, ConnectionError("ui unavailable"))

        async def run():
            await controller.begin()
            await scheduler.advance(60)

        asyncio.run(run())

        assert len(adapter.get_commands(Command.BOOKING_RESPOND)) == 1

    def test_failed_decline_still_resets(self, controller, session, adapter, scheduler):
        adapter.fail_command(Command.BOOKING_RESPOND, ConnectionError("backend down"))

        async def run():
            await controller.begin()
            await scheduler.advance(60)

        asyncio.run(run())

        assert len(adapter.get_commands(Command.BOOKING_RESPOND)) == 1
        assert session.phase == SessionPhase.IDLE

    def test_second_countdown_rejected(self, controller):
        async def run():
            await controller.begin()
            with pytest.raises(RuntimeError):
                await controller.begin()

        asyncio.run(run())

    def test_cancel_release_clears_ui(self, controller, session, adapter, scheduler):
        async def run():
            await controller.begin()
            await scheduler.advance(20)
            adapter.clear_commands()
            await controller.cancel_release("presence detected", scheduler.now())
            await scheduler.advance(120)

        asyncio.run(run())

        commands = [c[0] for c in adapter.get_commands()]
        assert commands == [Command.PROMPT_CLEAR, Command.TEXT_LINE_CLEAR]
        assert session.phase == SessionPhase.MONITORING
        assert session.presence.is_full
        assert session.presence.listener_active is True

    def test_cancel_release_without_countdown_sends_nothing(self, controller, session, adapter, scheduler):
        asyncio.run(controller.cancel_release("user interaction", scheduler.now()))

        assert adapter.get_commands() == []
        assert session.presence.is_full

    def test_cancel_during_empty_announcement(self, controller, session, adapter, scheduler):
        """A check-in handled while EMPTY is published finds the countdown running."""
        bus = EventBus()
        controller.bus = bus

        async def check_in_on_empty(event):
            if event.type == "occupancy.changed" and event.payload["status"] == "empty":
                await controller.cancel_release(
                    "check-in", scheduler.now(), restart_occupied_timer=False, clear_prompt=False
                )

        bus.subscribe(check_in_on_empty)

        session.evaluate(scheduler.now())
        result = session.evaluate(scheduler.now() + timedelta(seconds=301))
        assert result.release_requested is True

        async def run():
            await controller.handle_result(result)
            await scheduler.advance(120)

        asyncio.run(run())

        assert adapter.get_commands(Command.PROMPT_DISPLAY) == []
        assert adapter.get_commands(Command.BOOKING_RESPOND) == []
        assert session.presence.is_full
        assert session.release_pending is False
