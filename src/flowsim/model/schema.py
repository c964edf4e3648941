"""Pydantic models for the editor layout wire format.

The editor exchanges layouts as plain JSON records using camelCase keys
(``fromDeviceId``, ``generationRate``, ``faultReason``...). These models parse
and validate that format and convert it to and from the dataclasses in
``flowsim.model``. Device records are discriminated by their ``type`` field.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from flowsim.model.connection import Connection, Port
from flowsim.model.device import Device, DeviceState, DeviceType, Direction, Position
from flowsim.model.layout import EditorLayout


class _WireModel(BaseModel):
    """Base for wire models: camelCase aliases, field names also accepted."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PositionModel(_WireModel):
    """A 2D point."""

    x: float = Field(description="X coordinate")
    y: float = Field(description="Y coordinate")


class _DeviceModelBase(_WireModel):
    id: str = Field(min_length=1, description="Unique device ID")
    position: PositionModel = Field(description="Top-left anchor")
    width: float = Field(gt=0, description="Bounding box width")
    height: float = Field(gt=0, description="Bounding box height")
    state: DeviceState = Field(default=DeviceState.RUNNING, description="Run state")
    fault_reason: str | None = Field(default=None, description="Fault reason if faulted")

    @model_validator(mode="after")
    def validate_fault_reason(self) -> _DeviceModelBase:
        """Faulted devices must say why."""
        if self.state == DeviceState.FAULTED and not self.fault_reason:
            raise ValueError(f"Faulted device '{self.id}' needs a faultReason")
        return self

    def _base_kwargs(self) -> dict:
        state = self.state
        return {
            "id": self.id,
            "position": Position(self.position.x, self.position.y),
            "width": self.width,
            "height": self.height,
            "state": state,
            "fault_reason": self.fault_reason if state == DeviceState.FAULTED else None,
        }


class ConveyorModel(_DeviceModelBase):
    """Conveyor record."""

    type: Literal["conveyor"] = "conveyor"
    speed: float = Field(ge=0, description="Units per second")
    direction: Direction = Field(default=Direction.RIGHT, description="Flow direction")

    def to_device(self) -> Device:
        return Device(
            type=DeviceType.CONVEYOR,
            speed=self.speed,
            direction=self.direction,
            **self._base_kwargs(),
        )


class SourceModel(_DeviceModelBase):
    """Source record."""

    type: Literal["source"] = "source"
    generation_rate: float = Field(gt=0, description="Tokens per second")

    def to_device(self) -> Device:
        return Device(
            type=DeviceType.SOURCE,
            generation_rate=self.generation_rate,
            **self._base_kwargs(),
        )


class SinkModel(_DeviceModelBase):
    """Sink record."""

    type: Literal["sink"] = "sink"

    def to_device(self) -> Device:
        return Device(type=DeviceType.SINK, **self._base_kwargs())


class JunctionModel(_DeviceModelBase):
    """Junction record."""

    type: Literal["junction"] = "junction"
    output_direction: Direction = Field(default=Direction.RIGHT, description="Output side")

    def to_device(self) -> Device:
        return Device(
            type=DeviceType.JUNCTION,
            output_direction=self.output_direction,
            **self._base_kwargs(),
        )


DeviceModel = Annotated[
    ConveyorModel | SourceModel | SinkModel | JunctionModel,
    Field(discriminator="type"),
]


class ConnectionModel(_WireModel):
    """Directed connection record."""

    from_device_id: str = Field(description="Upstream device ID")
    to_device_id: str = Field(description="Downstream device ID")
    from_port: Port = Field(default=Port.OUTPUT)
    to_port: Port = Field(default=Port.INPUT)


class LayoutModel(_WireModel):
    """Complete editor layout record."""

    devices: list[DeviceModel] = Field(default_factory=list)
    connections: list[ConnectionModel] = Field(default_factory=list)

    @field_validator("devices")
    @classmethod
    def validate_unique_ids(cls, v: list) -> list:
        """Device IDs identify graph nodes, so they must be unique."""
        seen: set[str] = set()
        duplicates: list[str] = []
        for device in v:
            if device.id in seen and device.id not in duplicates:
                duplicates.append(device.id)
            seen.add(device.id)
        if duplicates:
            raise ValueError(f"Duplicate device IDs: {', '.join(duplicates)}")
        return v

    def to_layout(self) -> EditorLayout:
        """Convert to an EditorLayout of fresh Device/Connection objects."""
        return EditorLayout(
            devices=[d.to_device() for d in self.devices],
            connections=[
                Connection(
                    from_device_id=c.from_device_id,
                    to_device_id=c.to_device_id,
                    from_port=c.from_port,
                    to_port=c.to_port,
                )
                for c in self.connections
            ],
        )

    @classmethod
    def from_layout(cls, layout: EditorLayout) -> LayoutModel:
        """Build the wire record for an EditorLayout."""
        return cls(
            devices=[device_to_model(d) for d in layout.devices],
            connections=[
                ConnectionModel(
                    from_device_id=c.from_device_id,
                    to_device_id=c.to_device_id,
                    from_port=c.from_port,
                    to_port=c.to_port,
                )
                for c in layout.connections
            ],
        )


def device_to_model(device: Device) -> ConveyorModel | SourceModel | SinkModel | JunctionModel:
    """Build the wire record for a single device."""
    common = {
        "id": device.id,
        "position": PositionModel(x=device.position.x, y=device.position.y),
        "width": device.width,
        "height": device.height,
        "state": device.state,
        "fault_reason": device.fault_reason,
    }
    if device.type == DeviceType.CONVEYOR:
        return ConveyorModel(speed=device.speed, direction=device.direction, **common)
    if device.type == DeviceType.SOURCE:
        return SourceModel(generation_rate=device.generation_rate, **common)
    if device.type == DeviceType.JUNCTION:
        return JunctionModel(output_direction=device.output_direction, **common)
    return SinkModel(**common)
