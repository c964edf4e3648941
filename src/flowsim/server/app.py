"""FastAPI server with REST API and WebSocket frame streaming.

Provides:
- WebSocket /ws/frames: Stream Frame objects at the configured frame rate
- WebSocket /ws/control: Receive play/pause/reset/set_time_scale commands
- REST API for simulation control, device state, layout and graph queries
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections import deque
from contextlib import asynccontextmanager
from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Literal

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel, Field

from flowsim.config import SimulationSettings, get_settings
from flowsim.engine.events import EventType, SimulationEvent
from flowsim.engine.graph import (
    get_sink_devices,
    get_source_devices,
    has_cycle,
    topological_sort,
)
from flowsim.engine.scheduler import RealtimeScheduler
from flowsim.engine.simulation import SimulationEngine
from flowsim.layouts import available_layouts, get_layout
from flowsim.model.device import DeviceState
from flowsim.model.schema import LayoutModel
from flowsim.projection.projector import Frame, FrameRenderer, frame_to_dict

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from flowsim.model.device import Device
    from flowsim.model.layout import EditorLayout
    from flowsim.model.token import Token

logger = logging.getLogger(__name__)


def _jsonable(value: Any) -> Any:
    """Convert event payload values (tokens, enums) to JSON-ready data."""
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value) and not isinstance(value, type):
        return _jsonable(asdict(value))
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_jsonable(v) for v in value]
    return value


def _event_to_dict(event: SimulationEvent) -> dict[str, Any]:
    return {
        "type": event.type.value,
        "timestamp": event.timestamp,
        "data": _jsonable(event.data),
    }


class SimulationState:
    """Thread-safe owner of the simulation engine.

    The engine itself is single-threaded. Every call into it, including the
    background frame loop, goes through ``self._lock`` so there is only ever
    one mutator at a time.
    """

    # Tick events are too frequent to keep in the history
    RECORDED_EVENTS = tuple(t for t in EventType if t != EventType.TICK)

    def __init__(
        self,
        settings: SimulationSettings | None = None,
        layout: EditorLayout | None = None,
    ) -> None:
        """Create the engine for ``layout`` (or the configured default layout)."""
        self._settings = settings if settings is not None else get_settings()
        self._lock = threading.Lock()
        self._scheduler = RealtimeScheduler()
        self._events: deque[dict[str, Any]] = deque(maxlen=self._settings.event_history)
        self._renderer = FrameRenderer(
            width=self._settings.canvas_width,
            height=self._settings.canvas_height,
            config=self._settings.to_simulation_config(),
        )
        if layout is None:
            layout = get_layout(self._settings.default_layout)
        self._engine = SimulationEngine(
            layout,
            config=self._settings.to_simulation_config(),
            scheduler=self._scheduler,
        )
        self._engine.attach_renderer(self._renderer)
        for event_type in self.RECORDED_EVENTS:
            self._engine.on(event_type, self._record_event)
        self._engine.force_render()

        self._running = False
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def _record_event(self, event: SimulationEvent) -> None:
        self._events.append(_event_to_dict(event))

    # Read access

    @property
    def engine(self) -> SimulationEngine:
        """Underlying engine. Callers must not use it across threads."""
        return self._engine

    @property
    def status(self) -> str:
        with self._lock:
            return self._engine.get_status().value

    @property
    def time_scale(self) -> float:
        with self._lock:
            return self._engine.get_time_scale()

    @time_scale.setter
    def time_scale(self, value: float) -> None:
        """Set time scale (clamped to 0.1-10.0)."""
        with self._lock:
            self._engine.set_time_scale(value)

    @property
    def latest_frame(self) -> Frame | None:
        with self._lock:
            return self._renderer.latest_frame

    def summary(self) -> dict[str, Any]:
        with self._lock:
            snapshot = self._engine.get_snapshot()
            layout = self._engine.get_layout()
            return {
                "status": snapshot.status.value,
                "elapsed_time": snapshot.elapsed_time,
                "time_scale": snapshot.time_scale,
                "token_count": len(snapshot.tokens),
                "device_count": len(layout.devices),
                "connection_count": len(layout.connections),
            }

    def tokens(self) -> list[Token]:
        with self._lock:
            return self._engine.get_tokens()

    def devices(self) -> list[dict[str, Any]]:
        with self._lock:
            return [_device_to_dict(d) for d in self._engine.get_layout().devices]

    def device(self, device_id: str) -> dict[str, Any] | None:
        with self._lock:
            node = self._engine.get_graph().get_node(device_id)
            return _device_to_dict(node.device) if node is not None else None

    def layout(self) -> LayoutModel:
        with self._lock:
            return LayoutModel.from_layout(self._engine.get_layout())

    def graph_summary(self) -> dict[str, Any]:
        with self._lock:
            graph = self._engine.get_graph()
            return {
                "nodes": [
                    {"device_id": n.device_id, "inputs": list(n.inputs), "outputs": list(n.outputs)}
                    for n in graph
                ],
                "has_cycle": has_cycle(graph),
                "topological_order": topological_sort(graph),
                "sources": [d.id for d in get_source_devices(graph)],
                "sinks": [d.id for d in get_sink_devices(graph)],
            }

    def find_path(self, from_device_id: str, to_device_id: str) -> list[str] | None:
        with self._lock:
            return self._engine.get_graph().get_path(from_device_id, to_device_id)

    def recent_events(self, limit: int | None = None) -> list[dict[str, Any]]:
        with self._lock:
            events = list(self._events)
        return events[-limit:] if limit else events

    # Control

    def play(self) -> None:
        with self._lock:
            self._engine.play()

    def pause(self) -> None:
        with self._lock:
            self._engine.pause()

    def reset(self) -> None:
        with self._lock:
            self._engine.reset()

    def step(self) -> int:
        """Run the pending frame, if any. Called by the background loop."""
        with self._lock:
            return self._scheduler.pump()

    def set_device_state(self, device_id: str, state: DeviceState) -> bool:
        with self._lock:
            if self._engine.get_graph().get_node(device_id) is None:
                return False
            self._engine.set_device_state(device_id, state)
            self._engine.force_render()
            return True

    def set_device_fault(self, device_id: str, reason: str) -> bool:
        with self._lock:
            if self._engine.get_graph().get_node(device_id) is None:
                return False
            self._engine.set_device_fault(device_id, reason)
            self._engine.force_render()
            return True

    def clear_device_fault(self, device_id: str) -> bool:
        with self._lock:
            if self._engine.get_graph().get_node(device_id) is None:
                return False
            self._engine.clear_device_fault(device_id)
            self._engine.force_render()
            return True

    def spawn_token(self, device_id: str) -> Token | None:
        with self._lock:
            token = self._engine.spawn_token(device_id)
            self._engine.force_render()
            return token

    def replace_layout(self, layout: EditorLayout) -> None:
        """Swap the layout; live tokens are cleaned up by the next frame."""
        with self._lock:
            self._engine.update_layout(layout)
            self._engine.force_render()

    def load_layout(self, name: str) -> None:
        """Reset and load a named sample layout.

        Raises:
            ValueError: If the layout name is not recognized.
        """
        layout = get_layout(name)
        with self._lock:
            self._engine.reset()
            self._engine.update_layout(layout)
            self._engine.force_render()

    # Background loop

    def start(self) -> None:
        """Start the background frame loop."""
        if self._running:
            return
        self._running = True
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._frame_loop, daemon=True)
        self._thread.start()
        logger.info("Frame loop started at %.0f fps", self._settings.frame_rate)

    def stop(self) -> None:
        """Stop the background frame loop."""
        if not self._running:
            return
        self._running = False
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=2.0)
        logger.info("Frame loop stopped")

    def _frame_loop(self) -> None:
        interval = 1.0 / self._settings.frame_rate
        while self._running and not self._stop_event.is_set():
            self.step()
            self._stop_event.wait(timeout=interval)


def _device_to_dict(device: Device) -> dict[str, Any]:
    return {
        "id": device.id,
        "type": device.type.value,
        "state": device.state.value,
        "fault_reason": device.fault_reason,
        "x": device.position.x,
        "y": device.position.y,
        "width": device.width,
        "height": device.height,
    }


# Global simulation state
_sim_state: SimulationState | None = None


def get_sim_state() -> SimulationState:
    """Get or create the global simulation state."""
    global _sim_state
    if _sim_state is None:
        _sim_state = SimulationState()
    return _sim_state


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager: start/stop the frame loop."""
    sim = get_sim_state()
    sim.start()
    yield
    sim.stop()


app = FastAPI(
    title="FlowSim",
    description="Visual discrete-event simulator for conveyor device networks",
    version="0.1.0",
    lifespan=lifespan,
)


# Pydantic models for REST requests/responses


class SimulationResponse(BaseModel):
    """Simulation status summary."""

    status: str = Field(description="stopped, running or paused")
    elapsed_time: float = Field(description="Simulated seconds elapsed")
    time_scale: float = Field(description="Time multiplier")
    token_count: int = Field(description="Number of live tokens")
    device_count: int = Field(description="Number of devices")
    connection_count: int = Field(description="Number of declared connections")


class TokenResponse(BaseModel):
    """A live token."""

    id: str = Field(description="Token ID")
    current_device_id: str = Field(description="Device the token is traversing")
    progress: float = Field(description="Progress through the device (0-1)")
    x: float = Field(description="X position")
    y: float = Field(description="Y position")
    color: str = Field(description="Display colour")


class DeviceResponse(BaseModel):
    """Device summary."""

    id: str = Field(description="Device ID")
    type: str = Field(description="conveyor, source, sink or junction")
    state: str = Field(description="running, stopped or faulted")
    fault_reason: str | None = Field(default=None, description="Fault reason if faulted")
    x: float = Field(description="X position")
    y: float = Field(description="Y position")
    width: float = Field(description="Width")
    height: float = Field(description="Height")


class DeviceStateRequest(BaseModel):
    """Request to change a device's run state."""

    state: Literal["running", "stopped"] = Field(
        description="New run state; use the fault endpoint to fault a device"
    )


class DeviceFaultRequest(BaseModel):
    """Request to fault a device."""

    reason: str = Field(min_length=1, description="Human-readable fault reason")


class GraphNodeResponse(BaseModel):
    """Adjacency of one device."""

    device_id: str
    inputs: list[str]
    outputs: list[str]


class GraphResponse(BaseModel):
    """Connectivity graph analysis."""

    nodes: list[GraphNodeResponse] = Field(description="Adjacency per device")
    has_cycle: bool = Field(description="Whether the graph has a directed cycle")
    topological_order: list[str] | None = Field(description="Order, or null with cycles")
    sources: list[str] = Field(description="Source device IDs")
    sinks: list[str] = Field(description="Sink device IDs")


class PathResponse(BaseModel):
    """Shortest path between two devices."""

    from_device_id: str
    to_device_id: str
    path: list[str] | None = Field(description="Device IDs along the path, or null")


class EventResponse(BaseModel):
    """A recorded simulation event."""

    type: str
    timestamp: float
    data: dict[str, Any]


class ControlCommandResponse(BaseModel):
    """Response for control commands."""

    success: bool = Field(description="Whether command succeeded")
    message: str = Field(description="Status message")


def _token_response(token: Token) -> TokenResponse:
    return TokenResponse(
        id=token.id,
        current_device_id=token.current_device_id,
        progress=token.progress,
        x=token.position.x,
        y=token.position.y,
        color=token.color,
    )


def _device_not_found(device_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Device '{device_id}' not found",
    )


# Simulation endpoints


@app.get("/api/simulation", response_model=SimulationResponse, tags=["simulation"])
async def get_simulation() -> SimulationResponse:
    """Get the current simulation summary."""
    return SimulationResponse(**get_sim_state().summary())


@app.get("/api/simulation/tokens", response_model=list[TokenResponse], tags=["simulation"])
async def get_tokens() -> list[TokenResponse]:
    """Get every live token."""
    return [_token_response(t) for t in get_sim_state().tokens()]


@app.post("/api/simulation/play", response_model=ControlCommandResponse, tags=["simulation"])
async def play_simulation() -> ControlCommandResponse:
    """Start or resume the simulation."""
    get_sim_state().play()
    return ControlCommandResponse(success=True, message="Simulation playing")


@app.post("/api/simulation/pause", response_model=ControlCommandResponse, tags=["simulation"])
async def pause_simulation() -> ControlCommandResponse:
    """Pause the simulation."""
    get_sim_state().pause()
    return ControlCommandResponse(success=True, message="Simulation paused")


@app.post("/api/simulation/reset", response_model=ControlCommandResponse, tags=["simulation"])
async def reset_simulation() -> ControlCommandResponse:
    """Reset the simulation to the stopped state."""
    get_sim_state().reset()
    logger.info("Simulation reset via API")
    return ControlCommandResponse(success=True, message="Simulation reset")


@app.post("/api/simulation/speed", response_model=ControlCommandResponse, tags=["simulation"])
async def set_time_scale(scale: float = 1.0) -> ControlCommandResponse:
    """Set the time multiplier (clamped to 0.1-10.0)."""
    sim = get_sim_state()
    sim.time_scale = scale
    return ControlCommandResponse(success=True, message=f"Time scale set to {sim.time_scale}")


# Device endpoints


@app.get("/api/devices", response_model=list[DeviceResponse], tags=["devices"])
async def get_devices() -> list[DeviceResponse]:
    """Get all devices in the current layout."""
    return [DeviceResponse(**d) for d in get_sim_state().devices()]


@app.get("/api/devices/{device_id}", response_model=DeviceResponse, tags=["devices"])
async def get_device(device_id: str) -> DeviceResponse:
    """Get a device by ID."""
    device = get_sim_state().device(device_id)
    if device is None:
        raise _device_not_found(device_id)
    return DeviceResponse(**device)


@app.post(
    "/api/devices/{device_id}/state", response_model=ControlCommandResponse, tags=["devices"]
)
async def set_device_state(device_id: str, request: DeviceStateRequest) -> ControlCommandResponse:
    """Set a device's run state."""
    if not get_sim_state().set_device_state(device_id, DeviceState(request.state)):
        raise _device_not_found(device_id)
    return ControlCommandResponse(
        success=True, message=f"Device '{device_id}' set to {request.state}"
    )


@app.post(
    "/api/devices/{device_id}/fault", response_model=ControlCommandResponse, tags=["devices"]
)
async def set_device_fault(device_id: str, request: DeviceFaultRequest) -> ControlCommandResponse:
    """Fault a device with a reason."""
    if not get_sim_state().set_device_fault(device_id, request.reason):
        raise _device_not_found(device_id)
    return ControlCommandResponse(success=True, message=f"Device '{device_id}' faulted")


@app.post(
    "/api/devices/{device_id}/clear_fault",
    response_model=ControlCommandResponse,
    tags=["devices"],
)
async def clear_device_fault(device_id: str) -> ControlCommandResponse:
    """Clear a device fault; the device is left stopped."""
    if not get_sim_state().clear_device_fault(device_id):
        raise _device_not_found(device_id)
    return ControlCommandResponse(success=True, message=f"Device '{device_id}' fault cleared")


@app.post("/api/devices/{device_id}/spawn", response_model=TokenResponse, tags=["devices"])
async def spawn_token(device_id: str) -> TokenResponse:
    """Create a token at a device's entry point."""
    token = get_sim_state().spawn_token(device_id)
    if token is None:
        raise _device_not_found(device_id)
    return _token_response(token)


# Layout and graph endpoints


@app.get("/api/layout", tags=["layout"])
async def get_current_layout() -> dict[str, Any]:
    """Get the current layout in the editor wire format."""
    return get_sim_state().layout().model_dump(by_alias=True, mode="json")


@app.put("/api/layout", response_model=ControlCommandResponse, tags=["layout"])
async def put_layout(layout: LayoutModel) -> ControlCommandResponse:
    """Replace the layout. Tokens on removed devices disappear on the next frame."""
    try:
        editor_layout = layout.to_layout()
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    get_sim_state().replace_layout(editor_layout)
    return ControlCommandResponse(
        success=True, message=f"Layout updated with {len(editor_layout.devices)} devices"
    )


@app.get("/api/layouts", tags=["layout"])
async def list_layouts() -> list[str]:
    """Names of the sample layouts."""
    return available_layouts()


@app.post("/api/layout/load", response_model=ControlCommandResponse, tags=["layout"])
async def load_layout(name: str = "basic_line") -> ControlCommandResponse:
    """Reset the simulation and load a sample layout by name."""
    try:
        get_sim_state().load_layout(name)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    logger.info("Loaded layout: %s", name)
    return ControlCommandResponse(success=True, message=f"Loaded layout: {name}")


@app.get("/api/graph", response_model=GraphResponse, tags=["graph"])
async def get_graph() -> GraphResponse:
    """Get connectivity graph analysis for the current layout."""
    return GraphResponse(**get_sim_state().graph_summary())


@app.get("/api/graph/path", response_model=PathResponse, tags=["graph"])
async def get_graph_path(from_device_id: str, to_device_id: str) -> PathResponse:
    """Shortest path between two devices (null when unreachable)."""
    path = get_sim_state().find_path(from_device_id, to_device_id)
    return PathResponse(from_device_id=from_device_id, to_device_id=to_device_id, path=path)


@app.get("/api/events", response_model=list[EventResponse], tags=["events"])
async def get_events(limit: int = 50) -> list[EventResponse]:
    """Most recent simulation events (tick events are not recorded)."""
    if limit < 1:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="limit must be at least 1"
        )
    return [EventResponse(**e) for e in get_sim_state().recent_events(limit)]


# WebSocket connections management


class ConnectionManager:
    """Manage WebSocket connections for frame streaming."""

    def __init__(self) -> None:
        self.frame_connections: list[WebSocket] = []
        self.control_connections: list[WebSocket] = []

    async def connect_frames(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.frame_connections.append(websocket)
        logger.info("Frame client connected, total: %d", len(self.frame_connections))

    async def connect_control(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.control_connections.append(websocket)
        logger.info("Control client connected, total: %d", len(self.control_connections))

    def disconnect_frames(self, websocket: WebSocket) -> None:
        if websocket in self.frame_connections:
            self.frame_connections.remove(websocket)
        logger.info("Frame client disconnected, remaining: %d", len(self.frame_connections))

    def disconnect_control(self, websocket: WebSocket) -> None:
        if websocket in self.control_connections:
            self.control_connections.remove(websocket)
        logger.info("Control client disconnected, remaining: %d", len(self.control_connections))


manager = ConnectionManager()

EMPTY_FRAME: dict[str, Any] = {
    "frame": -1,
    "width": 0,
    "height": 0,
    "devices": [],
    "connections": [],
    "tokens": [],
    "status": None,
}


@app.websocket("/ws/frames")
async def websocket_frames(websocket: WebSocket) -> None:
    """Stream the latest Frame at the configured frame rate.

    An empty frame marker (frame = -1) is sent until the first render.
    """
    await manager.connect_frames(websocket)
    sim = get_sim_state()
    interval = 1.0 / get_settings().frame_rate

    try:
        while True:
            start = asyncio.get_running_loop().time()

            frame = sim.latest_frame
            await websocket.send_json(frame_to_dict(frame) if frame is not None else EMPTY_FRAME)

            elapsed = asyncio.get_running_loop().time() - start
            await asyncio.sleep(max(0.0, interval - elapsed))

    except WebSocketDisconnect:
        manager.disconnect_frames(websocket)
    except Exception as e:
        logger.error("Frame streaming error: %s", str(e))
        manager.disconnect_frames(websocket)


def handle_control_command(sim: SimulationState, data: dict[str, Any]) -> dict[str, Any]:
    """Apply one control command and build its response.

    Commands:
    - {"type": "play"} / {"type": "pause"} / {"type": "reset"}
    - {"type": "set_time_scale", "scale": 2.0}
    """
    cmd_type = str(data.get("type", "")).lower()

    if cmd_type == "play":
        sim.play()
        return {"success": True, "message": "Simulation playing"}
    if cmd_type == "pause":
        sim.pause()
        return {"success": True, "message": "Simulation paused"}
    if cmd_type == "reset":
        sim.reset()
        return {"success": True, "message": "Simulation reset"}
    if cmd_type == "set_time_scale":
        try:
            sim.time_scale = float(data.get("scale", 1.0))
        except (TypeError, ValueError):
            return {"success": False, "message": "Invalid time scale value"}
        return {"success": True, "message": f"Time scale set to {sim.time_scale}"}
    return {"success": False, "message": f"Unknown command: {cmd_type}"}


@app.websocket("/ws/control")
async def websocket_control(websocket: WebSocket) -> None:
    """Receive control commands and reply with a success/message response."""
    await manager.connect_control(websocket)
    sim = get_sim_state()

    try:
        while True:
            data = await websocket.receive_json()
            if not isinstance(data, dict):
                await websocket.send_json({"success": False, "message": "Expected a JSON object"})
                continue
            await websocket.send_json(handle_control_command(sim, data))

    except WebSocketDisconnect:
        manager.disconnect_control(websocket)
    except Exception as e:
        logger.error("Control WebSocket error: %s", str(e))
        manager.disconnect_control(websocket)


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
