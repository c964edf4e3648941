"""Device dataclass: Stationary node in a layout that tokens travel through."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class DeviceType(StrEnum):
    """Device variants. The tag decides which variant fields are meaningful."""

    CONVEYOR = "conveyor"
    SOURCE = "source"
    SINK = "sink"
    JUNCTION = "junction"


class DeviceState(StrEnum):
    """Operational state of a device."""

    RUNNING = "running"
    STOPPED = "stopped"
    FAULTED = "faulted"


class Direction(StrEnum):
    """Direction of conveyor flow."""

    LEFT = "left"
    RIGHT = "right"
    UP = "up"
    DOWN = "down"


@dataclass
class Position:
    """2D point in canvas coordinates."""

    x: float = 0.0
    y: float = 0.0


@dataclass
class Device:
    """A stationary node in the layout (conveyor, source, sink or junction).

    Devices are flat tagged records: ``type`` selects the variant and only the
    matching variant fields are consulted. The engine and the connectivity
    graph share the same Device objects, so a state change made through one
    is visible through the other.
    """

    # Identity
    id: str
    type: DeviceType

    # Geometry (top-left anchor, axis-aligned box)
    position: Position
    width: float
    height: float

    # Run state
    state: DeviceState = DeviceState.RUNNING
    fault_reason: str | None = None  # set iff state is FAULTED

    # Variant fields
    speed: float = 0.0  # conveyor: units per second
    direction: Direction = Direction.RIGHT  # conveyor flow direction
    generation_rate: float = 0.0  # source: tokens per second
    output_direction: Direction = Direction.RIGHT  # junction (not used for routing)

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            msg = f"Device '{self.id}' must have positive width and height"
            raise ValueError(msg)
        if self.type == DeviceType.CONVEYOR and self.speed < 0:
            msg = f"Conveyor '{self.id}' speed must be non-negative"
            raise ValueError(msg)
        if self.type == DeviceType.SOURCE and self.generation_rate <= 0:
            msg = f"Source '{self.id}' generation rate must be positive"
            raise ValueError(msg)
        if self.state == DeviceState.FAULTED and not self.fault_reason:
            msg = f"Faulted device '{self.id}' needs a fault reason"
            raise ValueError(msg)

    @property
    def is_faulted(self) -> bool:
        """Whether the device is currently faulted."""
        return self.state == DeviceState.FAULTED


def conveyor(
    device_id: str,
    x: float,
    y: float,
    width: float,
    height: float,
    speed: float,
    direction: Direction = Direction.RIGHT,
    state: DeviceState = DeviceState.RUNNING,
) -> Device:
    """Create a conveyor moving tokens at ``speed`` units/second."""
    return Device(
        id=device_id,
        type=DeviceType.CONVEYOR,
        position=Position(x, y),
        width=width,
        height=height,
        state=state,
        speed=speed,
        direction=direction,
    )


def source(
    device_id: str,
    x: float,
    y: float,
    width: float,
    height: float,
    generation_rate: float,
    state: DeviceState = DeviceState.RUNNING,
) -> Device:
    """Create a source emitting ``generation_rate`` tokens/second."""
    return Device(
        id=device_id,
        type=DeviceType.SOURCE,
        position=Position(x, y),
        width=width,
        height=height,
        state=state,
        generation_rate=generation_rate,
    )


def sink(
    device_id: str,
    x: float,
    y: float,
    width: float,
    height: float,
    state: DeviceState = DeviceState.RUNNING,
) -> Device:
    """Create a sink that consumes tokens."""
    return Device(
        id=device_id,
        type=DeviceType.SINK,
        position=Position(x, y),
        width=width,
        height=height,
        state=state,
    )


def junction(
    device_id: str,
    x: float,
    y: float,
    width: float,
    height: float,
    output_direction: Direction = Direction.RIGHT,
    state: DeviceState = DeviceState.RUNNING,
) -> Device:
    """Create a junction. Transfers always take the first connected output."""
    return Device(
        id=device_id,
        type=DeviceType.JUNCTION,
        position=Position(x, y),
        width=width,
        height=height,
        state=state,
        output_direction=output_direction,
    )
