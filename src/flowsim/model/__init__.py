"""Domain model: Device, Connection, EditorLayout, Token."""

from flowsim.model.connection import Connection, Port
from flowsim.model.device import (
    Device,
    DeviceState,
    DeviceType,
    Direction,
    Position,
    conveyor,
    junction,
    sink,
    source,
)
from flowsim.model.layout import EditorLayout
from flowsim.model.token import DEFAULT_TOKEN_COLOR, Token

__all__ = [
    "DEFAULT_TOKEN_COLOR",
    "Connection",
    "Device",
    "DeviceState",
    "DeviceType",
    "Direction",
    "EditorLayout",
    "Port",
    "Position",
    "Token",
    "conveyor",
    "junction",
    "sink",
    "source",
]
