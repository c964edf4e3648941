"""Path geometry: device geometry + progress to positions on the canvas.

Every device is traversed along a single straight segment from its entry
point to its exit point. Conveyors orient the segment by their direction;
every other device type runs left-mid to right-mid.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from flowsim.model.device import DeviceState, DeviceType, Direction, Position

if TYPE_CHECKING:
    from collections.abc import Iterable

    from flowsim.model.device import Device

DEFAULT_DEVICE_SPEED = 100.0  # units/second for running non-conveyor devices


@dataclass(frozen=True)
class PathSegment:
    """Straight path a token follows through one device."""

    device_id: str
    entry_point: Position
    exit_point: Position
    length: float


def get_device_entry_point(device: Device) -> Position:
    """Get the point where tokens enter a device."""
    x, y = device.position.x, device.position.y
    width, height = device.width, device.height

    if device.type == DeviceType.CONVEYOR:
        if device.direction == Direction.RIGHT:
            return Position(x, y + height / 2)
        if device.direction == Direction.LEFT:
            return Position(x + width, y + height / 2)
        if device.direction == Direction.DOWN:
            return Position(x + width / 2, y)
        if device.direction == Direction.UP:
            return Position(x + width / 2, y + height)

    return Position(x, y + height / 2)


def get_device_exit_point(device: Device) -> Position:
    """Get the point where tokens leave a device."""
    x, y = device.position.x, device.position.y
    width, height = device.width, device.height

    if device.type == DeviceType.CONVEYOR:
        if device.direction == Direction.RIGHT:
            return Position(x + width, y + height / 2)
        if device.direction == Direction.LEFT:
            return Position(x, y + height / 2)
        if device.direction == Direction.DOWN:
            return Position(x + width / 2, y + height)
        if device.direction == Direction.UP:
            return Position(x + width / 2, y)

    return Position(x + width, y + height / 2)


def calculate_distance(start: Position, end: Position) -> float:
    """Euclidean distance between two points."""
    return math.hypot(end.x - start.x, end.y - start.y)


def create_path_segment(device: Device) -> PathSegment:
    """Build the path segment for a device from its current geometry."""
    entry_point = get_device_entry_point(device)
    exit_point = get_device_exit_point(device)
    return PathSegment(
        device_id=device.id,
        entry_point=entry_point,
        exit_point=exit_point,
        length=calculate_distance(entry_point, exit_point),
    )


def get_position_on_segment(segment: PathSegment, progress: float) -> Position:
    """Interpolate along a segment. Progress is clamped to [0, 1] first."""
    clamped = max(0.0, min(1.0, progress))
    start, end = segment.entry_point, segment.exit_point
    return Position(
        start.x + (end.x - start.x) * clamped,
        start.y + (end.y - start.y) * clamped,
    )


def get_effective_speed(device: Device) -> float:
    """Speed a token moves through the device; 0 unless the device is running."""
    if device.state != DeviceState.RUNNING:
        return 0.0
    if device.type == DeviceType.CONVEYOR:
        return device.speed
    return DEFAULT_DEVICE_SPEED


def calculate_progress_delta(
    device: Device,
    segment: PathSegment,
    delta_time: float,
    time_scale: float,
) -> float:
    """Fraction of the segment covered in ``delta_time`` real seconds.

    Distance travelled (speed * dt * scale) divided by segment length.
    """
    speed = get_effective_speed(device)
    if speed == 0 or segment.length == 0:
        return 0.0
    distance = speed * delta_time * time_scale
    return distance / segment.length


def get_direction_vector(direction: Direction) -> Position:
    """Unit vector for a direction (canvas y grows downward)."""
    vectors = {
        Direction.RIGHT: Position(1.0, 0.0),
        Direction.LEFT: Position(-1.0, 0.0),
        Direction.DOWN: Position(0.0, 1.0),
        Direction.UP: Position(0.0, -1.0),
    }
    return vectors[direction]


def positions_equal(a: Position, b: Position, tolerance: float = 0.001) -> bool:
    """Check if two positions are equal within ``tolerance`` on each axis."""
    return abs(a.x - b.x) < tolerance and abs(a.y - b.y) < tolerance


def lerp_position(start: Position, end: Position, t: float) -> Position:
    """Linear interpolation without clamping."""
    return Position(start.x + (end.x - start.x) * t, start.y + (end.y - start.y) * t)


def calculate_total_path_length(devices: Iterable[Device]) -> float:
    """Sum of segment lengths through a series of devices."""
    return sum(create_path_segment(device).length for device in devices)


def get_device_center(device: Device) -> Position:
    """Center of a device's bounding box."""
    return Position(
        device.position.x + device.width / 2,
        device.position.y + device.height / 2,
    )
