"""Frame projector: engine draw calls to visual Frames for the frontend.

FrameRenderer implements the Renderer capability without drawing pixels.
Each engine render pass is projected into a Frame dataclass, a JSON-ready
snapshot holding every visual element the browser canvas needs to draw one
animation frame.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any

from flowsim.engine.path import get_device_center
from flowsim.model.device import DeviceState, DeviceType
from flowsim.model.simulation import SimulationConfig
from flowsim.projection.renderer import RenderSurfaceError

if TYPE_CHECKING:
    from flowsim.model.connection import Connection
    from flowsim.model.device import Device
    from flowsim.model.token import Token

logger = logging.getLogger(__name__)


@dataclass
class DeviceVisual:
    """Visual representation of a device.

    Conveyors draw as rounded rectangles with a direction arrow, sources as
    circles, sinks as crossed boxes, junctions as plain rectangles.
    """

    id: str
    type: str
    shape: str

    # Bounding box
    x: float
    y: float
    width: float
    height: float

    color: str
    state: str
    fault_reason: str | None = None
    direction: str | None = None  # conveyors only
    center: tuple[float, float] = (0.0, 0.0)


@dataclass
class ConnectionVisual:
    """Dashed line from the upstream device's right edge to the downstream left edge."""

    from_device_id: str
    to_device_id: str
    points: list[tuple[float, float]] = field(default_factory=list)
    color: str = "#9ca3af"
    dashed: bool = True


@dataclass
class TokenVisual:
    """Visual representation of a token."""

    id: str
    x: float
    y: float
    color: str
    radius: float = 8.0


@dataclass
class StatusVisual:
    """Status badge drawn in a corner of the canvas."""

    status: str
    x: float
    y: float
    dot_color: str
    label: str


@dataclass
class Frame:
    """A complete visual frame for rendering."""

    frame: int
    width: float
    height: float

    devices: list[DeviceVisual] = field(default_factory=list)
    connections: list[ConnectionVisual] = field(default_factory=list)
    tokens: list[TokenVisual] = field(default_factory=list)
    status: StatusVisual | None = None


# Device type to drawn shape
DEVICE_SHAPES: dict[str, str] = {
    DeviceType.CONVEYOR: "rounded_rect",
    DeviceType.SOURCE: "circle",
    DeviceType.SINK: "crossed_box",
    DeviceType.JUNCTION: "rect",
}

# Simulation status to badge dot colour
STATUS_COLORS: dict[str, str] = {
    "running": "#22c55e",  # Green
    "paused": "#fbbf24",  # Amber
    "stopped": "#6b7280",  # Gray
}


class FrameRenderer:
    """Renderer that builds Frames instead of drawing.

    The frame under construction is started by ``clear`` and published as
    ``latest_frame`` by ``render_status``, the last draw call of a pass.
    """

    def __init__(
        self,
        width: float = 800.0,
        height: float = 600.0,
        config: SimulationConfig | None = None,
        token_radius: float = 8.0,
        on_frame: Callable[[Frame], None] | None = None,
    ) -> None:
        """Initialize the renderer surface.

        Args:
            width: Surface width in canvas units.
            height: Surface height in canvas units.
            config: Colours to use; defaults to SimulationConfig().
            token_radius: Radius of drawn tokens.
            on_frame: Called with each published frame.

        Raises:
            RenderSurfaceError: If the surface size is not positive.
        """
        if width <= 0 or height <= 0:
            raise RenderSurfaceError(f"Failed to acquire {width}x{height} rendering surface")
        self.width = width
        self.height = height
        self.config = config if config is not None else SimulationConfig()
        self.token_radius = token_radius
        self.on_frame = on_frame
        self.latest_frame: Frame | None = None
        self._frame_count = 0
        self._working: Frame | None = None

    def get_device_color(self, state: DeviceState) -> str:
        """Fill colour for a device state."""
        if state == DeviceState.RUNNING:
            return self.config.running_color
        if state == DeviceState.FAULTED:
            return self.config.fault_color
        return self.config.stopped_color

    def clear(self) -> None:
        self._frame_count += 1
        self._working = Frame(frame=self._frame_count, width=self.width, height=self.height)

    def render_devices(self, devices: Sequence[Device]) -> None:
        frame = self._frame()
        frame.devices.extend(self._project_device(device) for device in devices)

    def render_connections(
        self, devices: Sequence[Device], connections: Sequence[Connection]
    ) -> None:
        frame = self._frame()
        by_id = {device.id: device for device in devices}
        for connection in connections:
            start = by_id.get(connection.from_device_id)
            end = by_id.get(connection.to_device_id)
            if start is None or end is None:
                continue
            frame.connections.append(
                ConnectionVisual(
                    from_device_id=start.id,
                    to_device_id=end.id,
                    points=[
                        (start.position.x + start.width, start.position.y + start.height / 2),
                        (end.position.x, end.position.y + end.height / 2),
                    ],
                )
            )

    def render_tokens(self, tokens: Sequence[Token]) -> None:
        frame = self._frame()
        frame.tokens.extend(
            TokenVisual(
                id=token.id,
                x=token.position.x,
                y=token.position.y,
                color=token.color,
                radius=self.token_radius,
            )
            for token in tokens
        )

    def render_status(self, status: str, x: float, y: float) -> None:
        frame = self._frame()
        frame.status = StatusVisual(
            status=str(status),
            x=x,
            y=y,
            dot_color=STATUS_COLORS.get(str(status), STATUS_COLORS["stopped"]),
            label=str(status).upper(),
        )
        self._publish(frame)

    def _frame(self) -> Frame:
        # Draw calls without a preceding clear() still land in a frame
        if self._working is None:
            self.clear()
        assert self._working is not None
        return self._working

    def _publish(self, frame: Frame) -> None:
        self.latest_frame = frame
        self._working = None
        if self.on_frame is not None:
            self.on_frame(frame)

    def _project_device(self, device: Device) -> DeviceVisual:
        center = get_device_center(device)
        return DeviceVisual(
            id=device.id,
            type=device.type.value,
            shape=DEVICE_SHAPES.get(device.type, "rect"),
            x=device.position.x,
            y=device.position.y,
            width=device.width,
            height=device.height,
            color=self.get_device_color(device.state),
            state=device.state.value,
            fault_reason=device.fault_reason,
            direction=device.direction.value if device.type == DeviceType.CONVEYOR else None,
            center=(center.x, center.y),
        )


def frame_to_dict(frame: Frame) -> dict[str, Any]:
    """Convert a Frame to a JSON-serializable dict."""
    return asdict(frame)
