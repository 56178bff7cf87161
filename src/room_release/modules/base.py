"""
Base class for room-release modules.

A module plugs into the kernel EventBus: it subscribes to device events on
attach(), keeps its own runtime state and publishes semantic events back.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional

from room_release.core.bus import EventBus


class RoomModule(ABC):
    """
    Base class for room modules.

    Configuration is a plain dict carrying a "version" key. Stored dicts
    go through migrate_config() and are completed with default_config()
    by resolve_config() before the module interprets them.
    """

    @property
    @abstractmethod
    def id(self) -> str:
        """Unique identifier for this module type."""
        pass

    @property
    @abstractmethod
    def CURRENT_CONFIG_VERSION(self) -> int:
        pass

    @abstractmethod
    def attach(self, bus: EventBus) -> None:
        """
        Subscribe to the bus and start reacting to events.

        Args:
            bus: EventBus instance
        """
        pass

    def detach(self) -> None:
        """Stop reacting to events. Modules without timers need nothing here."""
        pass

    @abstractmethod
    def default_config(self) -> Dict:
        """Complete configuration at the current version."""
        pass

    @abstractmethod
    def config_schema(self) -> Dict:
        """
        JSON-schema-like description of the configuration.

        Returns:
            Schema dict that UIs can use to render configuration forms
        """
        pass

    def migrate_config(self, config: Dict) -> Dict:
        """Bring an older configuration dict to the current version."""
        return config

    def resolve_config(self, config: Optional[Dict]) -> Dict:
        """
        Migrate a stored configuration and fill in missing keys.

        Args:
            config: Stored configuration (any version), or None

        Returns:
            Configuration dict at CURRENT_CONFIG_VERSION
        """
        migrated = self.migrate_config(dict(config or {}))
        return {**self.default_config(), **migrated}

    def dump_state(self) -> Dict:
        """Runtime state for diagnostics."""
        return {}
