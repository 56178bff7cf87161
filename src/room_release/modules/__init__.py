"""
Modules package for room-release.

Modules are plug-ins that add behavior to the kernel.
"""

from room_release.modules.base import RoomModule

__all__ = ["RoomModule"]
