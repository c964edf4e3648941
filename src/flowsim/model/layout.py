"""EditorLayout dataclass: The device/connection set produced by the editor."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flowsim.model.connection import Connection
    from flowsim.model.device import Device


@dataclass
class EditorLayout:
    """Container for the devices and connections of one layout.

    The layout is the input of the simulation. Swapping layouts replaces the
    whole set; devices are never deleted from a layout mid-run.
    """

    devices: list[Device] = field(default_factory=list)
    connections: list[Connection] = field(default_factory=list)

    def get_device(self, device_id: str) -> Device | None:
        """Find a device by id (linear scan)."""
        for device in self.devices:
            if device.id == device_id:
                return device
        return None
