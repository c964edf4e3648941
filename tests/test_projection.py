"""Tests for the frame projector that turns draw calls into Frames."""

import pytest

from flowsim.model import Connection, DeviceState, Direction, Token, conveyor, sink, source
from flowsim.model.device import Position
from flowsim.model.simulation import SimulationConfig
from flowsim.projection import (
    Frame,
    FrameRenderer,
    Renderer,
    RenderSurfaceError,
    frame_to_dict,
)


def render_pass(renderer: FrameRenderer, devices=(), connections=(), tokens=(), status="running"):
    """Issue one full pass of draw calls in engine order."""
    renderer.clear()
    renderer.render_connections(list(devices), list(connections))
    renderer.render_devices(list(devices))
    renderer.render_tokens(list(tokens))
    renderer.render_status(status, 10, 10)
    return renderer.latest_frame


class TestFrameRenderer:
    """Tests for FrameRenderer."""

    def test_is_a_renderer(self):
        """FrameRenderer satisfies the Renderer protocol."""
        assert isinstance(FrameRenderer(), Renderer)

    @pytest.mark.parametrize(("width", "height"), [(0, 600), (800, -1)])
    def test_invalid_surface_raises(self, width, height):
        """Non-positive surface sizes are rejected."""
        with pytest.raises(RenderSurfaceError):
            FrameRenderer(width=width, height=height)

    def test_frame_numbers_increase(self):
        """Frame numbers count up with each render pass."""
        renderer = FrameRenderer()
        assert render_pass(renderer).frame == 1
        assert render_pass(renderer).frame == 2

    def test_frame_published_only_after_status(self):
        """A frame is only published once the status badge is drawn."""
        renderer = FrameRenderer()
        renderer.clear()
        renderer.render_devices([sink("k", 0, 0, 10, 10)])
        assert renderer.latest_frame is None

    def test_on_frame_callback(self):
        """The on_frame callback receives each published frame."""
        frames: list[Frame] = []
        renderer = FrameRenderer(on_frame=frames.append)
        frame = render_pass(renderer)
        assert frames == [frame]

    def test_device_colors_follow_state(self):
        """Device colours follow running, faulted and stopped states."""
        config = SimulationConfig(running_color="#00ff00", fault_color="#ff0000")
        renderer = FrameRenderer(config=config)
        faulted = conveyor("b", 0, 0, 100, 20, speed=10)
        faulted.state = DeviceState.FAULTED
        faulted.fault_reason = "jam"
        devices = [
            conveyor("a", 0, 0, 100, 20, speed=10),
            faulted,
            conveyor("c", 0, 0, 100, 20, speed=10, state=DeviceState.STOPPED),
        ]
        frame = render_pass(renderer, devices=devices)
        assert [d.color for d in frame.devices] == ["#00ff00", "#ff0000", "#6b7280"]

    def test_device_visual_fields(self):
        """Device visuals carry shape, direction and center."""
        devices = [
            conveyor("belt", 10, 20, 100, 40, speed=10, direction=Direction.DOWN),
            source("src", 0, 0, 50, 50, generation_rate=1),
        ]
        frame = render_pass(FrameRenderer(), devices=devices)
        belt, src = frame.devices
        assert belt.shape == "rounded_rect"
        assert belt.direction == "down"
        assert belt.center == (60, 40)
        assert src.shape == "circle"
        assert src.direction is None

    def test_connections_link_edges(self):
        """Connections run exit to entry; ones to unknown devices are skipped."""
        devices = [sink("a", 0, 0, 50, 50), sink("b", 100, 0, 50, 50)]
        connections = [
            Connection(from_device_id="a", to_device_id="b"),
            Connection(from_device_id="a", to_device_id="ghost"),
        ]
        frame = render_pass(FrameRenderer(), devices=devices, connections=connections)
        assert len(frame.connections) == 1
        assert frame.connections[0].points == [(50, 25), (100, 25)]
        assert frame.connections[0].dashed is True

    def test_tokens_projected(self):
        """Tokens are drawn at their position with the configured radius."""
        token = Token(id="token-1", current_device_id="a", position=Position(12, 34))
        frame = render_pass(FrameRenderer(token_radius=5), tokens=[token])
        assert frame.tokens[0].x == 12
        assert frame.tokens[0].y == 34
        assert frame.tokens[0].radius == 5

    @pytest.mark.parametrize(
        ("status", "dot_color"),
        [("running", "#22c55e"), ("paused", "#fbbf24"), ("stopped", "#6b7280")],
    )
    def test_status_badge(self, status, dot_color):
        """The status badge shows the label and a matching dot colour."""
        frame = render_pass(FrameRenderer(), status=status)
        assert frame.status.dot_color == dot_color
        assert frame.status.label == status.upper()
        assert (frame.status.x, frame.status.y) == (10, 10)


class TestFrameToDict:
    """Tests for frame_to_dict()."""

    def test_converts_nested_visuals(self):
        """frame_to_dict turns nested visuals into plain dicts."""
        frame = render_pass(FrameRenderer(), devices=[sink("k", 0, 0, 10, 10)])
        data = frame_to_dict(frame)
        assert data["frame"] == 1
        assert data["devices"][0]["id"] == "k"
        assert data["status"]["status"] == "running"
