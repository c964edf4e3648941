"""Tests for the domain model and the layout wire format."""

import pytest
from pydantic import ValidationError

from flowsim.model import (
    Connection,
    Device,
    DeviceState,
    DeviceType,
    Direction,
    EditorLayout,
    Port,
    Position,
    conveyor,
    junction,
    sink,
    source,
)
from flowsim.model.schema import LayoutModel, device_to_model
from flowsim.model.simulation import SimulationConfig, SimulationStatus, clamp_time_scale


class TestDevice:
    """Tests for Device and its factories."""

    def test_conveyor_factory(self):
        """The conveyor factory fills geometry, speed and direction."""
        device = conveyor("belt", 1, 2, 100, 20, speed=50, direction=Direction.UP)
        assert device.type == DeviceType.CONVEYOR
        assert device.position == Position(1, 2)
        assert device.state == DeviceState.RUNNING
        assert device.direction == Direction.UP
        assert device.fault_reason is None

    def test_junction_keeps_output_direction(self):
        """Junctions keep their output direction."""
        assert junction("j", 0, 0, 10, 10, Direction.DOWN).output_direction == Direction.DOWN

    @pytest.mark.parametrize(("width", "height"), [(0, 10), (10, -5)])
    def test_non_positive_size_rejected(self, width, height):
        """Zero or negative sizes are rejected."""
        with pytest.raises(ValueError, match="positive width and height"):
            sink("k", 0, 0, width, height)

    def test_negative_conveyor_speed_rejected(self):
        """Conveyors cannot run backwards."""
        with pytest.raises(ValueError, match="non-negative"):
            conveyor("belt", 0, 0, 10, 10, speed=-1)

    def test_source_rate_must_be_positive(self):
        """Sources need a positive generation rate."""
        with pytest.raises(ValueError, match="generation rate"):
            source("src", 0, 0, 10, 10, generation_rate=0)

    def test_is_faulted(self):
        """is_faulted reflects the FAULTED state."""
        device = Device(
            id="x",
            type=DeviceType.SINK,
            position=Position(),
            width=1,
            height=1,
            state=DeviceState.FAULTED,
            fault_reason="jam",
        )
        assert device.is_faulted

    def test_faulted_without_reason_rejected(self):
        """A faulted device must carry a fault reason."""
        with pytest.raises(ValueError, match="needs a fault reason"):
            Device(
                id="x",
                type=DeviceType.SINK,
                position=Position(),
                width=1,
                height=1,
                state=DeviceState.FAULTED,
            )

    def test_faulted_factory_without_reason_rejected(self):
        """Factories cannot build a faulted device without a reason."""
        with pytest.raises(ValueError, match="needs a fault reason"):
            conveyor("belt", 0, 0, 10, 10, speed=1, state=DeviceState.FAULTED)


class TestLayout:
    """Tests for EditorLayout and Connection."""

    def test_get_device(self):
        """get_device finds devices by ID."""
        layout = EditorLayout(devices=[sink("k", 0, 0, 10, 10)])
        assert layout.get_device("k") is layout.devices[0]
        assert layout.get_device("missing") is None

    def test_connection_default_ports(self):
        """Connections default to output -> input ports."""
        connection = Connection(from_device_id="a", to_device_id="b")
        assert connection.from_port == Port.OUTPUT
        assert connection.to_port == Port.INPUT


class TestSimulationConfig:
    """Tests for SimulationConfig and time scale clamping."""

    def test_from_partial_none(self):
        """No config means all defaults."""
        assert SimulationConfig.from_partial(None) == SimulationConfig()

    def test_from_partial_mapping(self):
        """A partial mapping overrides only the given keys."""
        config = SimulationConfig.from_partial({"time_scale": 3})
        assert config.time_scale == 3
        assert config.token_color == "#3b82f6"

    def test_from_partial_copies_config(self):
        """Passing a config returns an independent copy."""
        original = SimulationConfig(time_scale=2)
        copy = SimulationConfig.from_partial(original)
        copy.time_scale = 5
        assert original.time_scale == 2

    def test_from_partial_rejects_unknown_keys(self):
        """Unknown keys raise ValueError."""
        with pytest.raises(ValueError, match="Unknown simulation config keys"):
            SimulationConfig.from_partial({"speed": 1})

    def test_clamp(self):
        """Time scale is clamped to [0.1, 10]."""
        assert clamp_time_scale(0) == 0.1
        assert clamp_time_scale(11) == 10.0
        assert clamp_time_scale(1.5) == 1.5

    def test_status_values(self):
        """Status values match the editor's strings."""
        assert [s.value for s in SimulationStatus] == ["running", "paused", "stopped"]


class TestLayoutModel:
    """Tests for the camelCase layout wire format."""

    WIRE = {
        "devices": [
            {
                "id": "src",
                "type": "source",
                "position": {"x": 0, "y": 0},
                "width": 50,
                "height": 50,
                "generationRate": 2,
            },
            {
                "id": "belt",
                "type": "conveyor",
                "position": {"x": 50, "y": 0},
                "width": 200,
                "height": 30,
                "speed": 100,
                "direction": "down",
                "state": "faulted",
                "faultReason": "Motor jam",
            },
            {
                "id": "j",
                "type": "junction",
                "position": {"x": 250, "y": 0},
                "width": 40,
                "height": 40,
                "outputDirection": "up",
            },
            {"id": "out", "type": "sink", "position": {"x": 300, "y": 0}, "width": 50, "height": 50},
        ],
        "connections": [
            {"fromDeviceId": "src", "toDeviceId": "belt"},
            {"fromDeviceId": "belt", "toDeviceId": "j", "fromPort": "output", "toPort": "input"},
        ],
    }

    def test_parses_camel_case(self):
        """camelCase records parse into devices and connections."""
        layout = LayoutModel.model_validate(self.WIRE).to_layout()
        src, belt, j, out = layout.devices
        assert src.generation_rate == 2
        assert belt.direction == Direction.DOWN
        assert belt.state == DeviceState.FAULTED
        assert belt.fault_reason == "Motor jam"
        assert j.output_direction == Direction.UP
        assert out.type == DeviceType.SINK
        assert layout.connections[1].from_device_id == "belt"

    def test_fault_reason_dropped_unless_faulted(self):
        """A faultReason on a non-faulted device is dropped."""
        wire = {
            "devices": [
                {
                    "id": "k",
                    "type": "sink",
                    "position": {"x": 0, "y": 0},
                    "width": 1,
                    "height": 1,
                    "faultReason": "stale",
                }
            ]
        }
        layout = LayoutModel.model_validate(wire).to_layout()
        assert layout.devices[0].fault_reason is None

    def test_dumps_camel_case(self):
        """Layouts serialize back to camelCase."""
        layout = EditorLayout(
            devices=[source("src", 0, 0, 50, 50, generation_rate=1)],
            connections=[Connection(from_device_id="src", to_device_id="src")],
        )
        data = LayoutModel.from_layout(layout).model_dump(by_alias=True, mode="json")
        assert data["devices"][0]["generationRate"] == 1
        assert data["devices"][0]["type"] == "source"
        assert data["connections"][0]["fromDeviceId"] == "src"

    def test_unknown_device_type_rejected(self):
        """Unknown device types fail validation."""
        wire = {"devices": [{"id": "x", "type": "robot", "position": {"x": 0, "y": 0}}]}
        with pytest.raises(ValidationError):
            LayoutModel.model_validate(wire)

    def test_invalid_geometry_rejected(self):
        """Non-positive sizes fail validation."""
        wire = {
            "devices": [
                {"id": "k", "type": "sink", "position": {"x": 0, "y": 0}, "width": 0, "height": 1}
            ]
        }
        with pytest.raises(ValidationError):
            LayoutModel.model_validate(wire)

    def test_device_to_model_variant(self):
        """device_to_model picks the record class for the device type."""
        model = device_to_model(junction("j", 0, 0, 10, 10, Direction.LEFT))
        assert model.type == "junction"
        assert model.output_direction == Direction.LEFT

    def test_faulted_without_reason_rejected(self):
        """A faulted wire record needs a faultReason."""
        wire = {
            "devices": [
                {
                    "id": "k",
                    "type": "sink",
                    "position": {"x": 0, "y": 0},
                    "width": 1,
                    "height": 1,
                    "state": "faulted",
                }
            ]
        }
        with pytest.raises(ValidationError, match="needs a faultReason"):
            LayoutModel.model_validate(wire)

    def test_faulted_with_empty_reason_rejected(self):
        """An empty faultReason does not count as a reason."""
        wire = {
            "devices": [
                {
                    "id": "k",
                    "type": "sink",
                    "position": {"x": 0, "y": 0},
                    "width": 1,
                    "height": 1,
                    "state": "faulted",
                    "faultReason": "",
                }
            ]
        }
        with pytest.raises(ValidationError):
            LayoutModel.model_validate(wire)

    def test_duplicate_device_ids_rejected(self):
        """Two devices with the same ID cannot share one layout."""
        wire = {
            "devices": [
                {"id": "k", "type": "sink", "position": {"x": 0, "y": 0}, "width": 1, "height": 1},
                {"id": "k", "type": "sink", "position": {"x": 5, "y": 0}, "width": 1, "height": 1},
                {"id": "j", "type": "sink", "position": {"x": 9, "y": 0}, "width": 1, "height": 1},
            ]
        }
        with pytest.raises(ValidationError, match="Duplicate device IDs: k"):
            LayoutModel.model_validate(wire)
