"""Token dataclass: Transient unit of material flowing through devices."""

from __future__ import annotations

from dataclasses import dataclass, field

from flowsim.model.device import Position

DEFAULT_TOKEN_COLOR = "#3b82f6"


@dataclass(frozen=True)
class Token:
    """A unit of material traversing the device network.

    Tokens are updated immutably: every advance or transfer returns a new
    Token built with ``dataclasses.replace``. The engine holds the
    authoritative list.
    """

    id: str
    current_device_id: str
    position: Position = field(default_factory=Position)

    # 0.0 (device entry) to 1.0 (device exit)
    progress: float = 0.0

    color: str = DEFAULT_TOKEN_COLOR
