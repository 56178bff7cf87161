#!/usr/bin/env python3
"""
Room Release Demo

Walks through two bookings on a simulated device:
- An empty room that is released after the check-in countdown
- A room where someone checks in during the countdown

Virtual time is used, so the whole demo runs instantly.

Run with: PYTHONPATH=src python3 examples/release-demo.py
"""

import asyncio
import logging

from room_release import Event, EventBus, ManualScheduler, MockDeviceAdapter, RoomReleaseModule
from room_release.modules.release import StatusPath
from room_release.modules.release.adapter import Command


def make_device() -> MockDeviceAdapter:
    adapter = MockDeviceAdapter()
    adapter.set_status(StatusPath.BOOKING_AVAILABILITY, "BookedUntil")
    adapter.set_status(StatusPath.ACTIVE_CALLS, "0")
    adapter.set_status(StatusPath.PEOPLE_PRESENCE, "No")
    adapter.set_status(StatusPath.PEOPLE_COUNT, "-1")
    adapter.set_status(StatusPath.SOUND_LEVEL, "28")
    adapter.set_status(StatusPath.PRESENTATION_MODE, "Off")
    adapter.set_command_response(Command.BOOKING_GET, {"Booking": {"MeetingId": "meeting-1"}})
    return adapter


def print_event(event: Event) -> None:
    if event.source == "release":
        print(f"   → {event.type} {event.payload}")


async def main():
    print("=" * 70)
    print("Room Release Demo")
    print("=" * 70)

    # 1. Setup kernel
    print("\n1. Setting up kernel...")
    bus = EventBus()
    bus.subscribe(print_event)
    scheduler = ManualScheduler()
    adapter = make_device()

    release = RoomReleaseModule(adapter, scheduler=scheduler, config={"version": 1})
    release.attach(bus)
    print(f"   ✓ {release.id} attached (phase: {release.phase.value})")

    # 2. Empty room
    print("\n2. Booking starts, nobody shows up...")
    await bus.publish(Event(type="booking.started", source="device", payload={"booking_id": "b-1"}))
    print(f"   Phase: {release.phase.value}")

    print("\n   ...6 minutes pass")
    await scheduler.advance(6 * 60)
    print(f"   Phase: {release.phase.value}, {release.session.countdown.remaining_seconds}s left")

    await scheduler.advance(60)
    print(f"   Phase: {release.phase.value}")
    for command, params in adapter.get_commands(Command.BOOKING_RESPOND):
        print(f"   Sent: {command} {params}")

    # 3. Check-in
    print("\n3. Next booking, someone checks in during the countdown...")
    adapter.clear_commands()
    await bus.publish(Event(type="booking.started", source="device", payload={"booking_id": "b-2"}))
    await scheduler.advance(6 * 60)
    print(f"   Phase: {release.phase.value}")

    await bus.publish(
        Event(
            type="ui.prompt_response",
            source="device",
            payload={"feedback_id": "alert_response", "option_id": "1"},
        )
    )
    print(f"   Phase: {release.phase.value}, presence: {release.session.presence.status.value}")

    await scheduler.advance(2 * 60)
    declined = adapter.get_commands(Command.BOOKING_RESPOND)
    print(f"   Declines sent: {len(declined)}")

    # 4. Booking ends
    print("\n4. Booking ends...")
    await bus.publish(Event(type="booking.ended", source="device", payload={"booking_id": "b-2"}))
    print(f"   Phase: {release.phase.value}, timers pending: {scheduler.pending}")

    release.detach()

    print("\n" + "=" * 70)
    print("Demo complete!")
    print("=" * 70)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(name)s - %(levelname)s - %(message)s")
    asyncio.run(main())
