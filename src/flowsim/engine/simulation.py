"""Simulation engine: frame-driven token flow through a device network.

Frame sequence (runs only while the status is RUNNING):
1. Compute delta_time since the previous frame
2. Accumulate elapsed_time += delta_time * time_scale
3. Fire running sources whose accumulated timer reached 1 / generation_rate
4. Advance every token; transfer or remove those that completed their device
5. Replace the token list and emit removals
6. Emit a tick event
7. Render (if a renderer is attached)
8. Schedule the next frame (only if still running)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from flowsim.engine.events import EventEmitter, EventType
from flowsim.engine.graph import build_connectivity_graph
from flowsim.engine.scheduler import ManualScheduler
from flowsim.engine.tokens import (
    TokenIdGenerator,
    advance_token,
    create_token,
    create_tokens_at_sources,
    get_next_device_id,
    should_remove_token,
    transfer_token,
)
from flowsim.model.device import DeviceState, DeviceType
from flowsim.model.simulation import (
    SimulationConfig,
    SimulationSnapshot,
    SimulationStatus,
    clamp_time_scale,
)
from flowsim.projection.renderer import Renderer, RenderSurfaceError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from flowsim.engine.events import SimulationEventListener
    from flowsim.engine.graph import ConnectivityGraph
    from flowsim.engine.scheduler import Scheduler
    from flowsim.model.layout import EditorLayout
    from flowsim.model.token import Token

logger = logging.getLogger(__name__)

STATUS_BADGE_POSITION = (10.0, 10.0)
TICK_LOG_INTERVAL = 100  # frames between debug summaries


class SimulationEngine:
    """Animates tokens through the devices of an editor layout.

    The engine is single-threaded: every mutation happens inside a frame
    callback or a public method call, never concurrently. It shares Device
    objects with the layout and the connectivity graph, so device state set
    here is visible through ``get_layout()`` and ``get_graph()`` alike.
    """

    def __init__(
        self,
        layout: EditorLayout,
        config: Mapping[str, Any] | SimulationConfig | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        """Initialize the engine in the STOPPED state.

        Args:
            layout: Devices and connections to simulate.
            config: Full config or a partial mapping of overrides.
            scheduler: Frame clock; defaults to a ManualScheduler.
        """
        self._layout = layout
        self._graph = build_connectivity_graph(layout)
        self._config = SimulationConfig.from_partial(config)
        self._config.time_scale = clamp_time_scale(self._config.time_scale)
        self._scheduler: Scheduler = scheduler if scheduler is not None else ManualScheduler()
        self._events = EventEmitter(clock=self._scheduler.now)
        self._token_ids = TokenIdGenerator()

        self._tokens: list[Token] = []
        self._status = SimulationStatus.STOPPED
        self._elapsed_time = 0.0
        self._last_frame_time = 0.0
        self._frame_handle: int | None = None
        self._frame_count = 0
        self._renderer: Renderer | None = None
        self._source_timers: dict[str, float] = {}

    # Renderer

    def attach_renderer(self, renderer: Renderer) -> None:
        """Attach a renderer that is drawn to after every frame.

        Raises:
            RenderSurfaceError: If ``renderer`` does not provide the draw calls.
        """
        if not isinstance(renderer, Renderer):
            msg = f"{type(renderer).__name__} does not provide a rendering surface"
            raise RenderSurfaceError(msg)
        self._renderer = renderer

    def detach_renderer(self) -> None:
        """Detach the renderer, if any."""
        self._renderer = None

    def force_render(self) -> None:
        """Render the current state now (useful while paused)."""
        self._render()

    # Status transitions

    def play(self) -> None:
        """Start or resume the simulation. No-op while running.

        Source timers restart from zero only when starting from STOPPED;
        resuming from PAUSED keeps them.
        """
        if self._status == SimulationStatus.RUNNING:
            return

        previous_status = self._status
        self._status = SimulationStatus.RUNNING
        self._last_frame_time = self._scheduler.now()

        if previous_status == SimulationStatus.STOPPED:
            self._initialize_source_timers()

        logger.info("Simulation %s -> %s", previous_status.value, self._status.value)
        self._emit_status_change(previous_status)
        self._schedule_frame()

    def pause(self) -> None:
        """Pause a running simulation. No-op unless running."""
        if self._status != SimulationStatus.RUNNING:
            return

        previous_status = self._status
        self._status = SimulationStatus.PAUSED
        self._cancel_frame()

        logger.info("Simulation %s -> %s", previous_status.value, self._status.value)
        self._emit_status_change(previous_status)

    def reset(self) -> None:
        """Return to STOPPED with no tokens, zero time and no faults."""
        previous_status = self._status
        self._status = SimulationStatus.STOPPED
        self._cancel_frame()

        for token in self._tokens:
            self._events.emit(EventType.TOKEN_REMOVED, {"token": token})
        self._tokens = []

        self._elapsed_time = 0.0
        self._last_frame_time = 0.0
        self._frame_count = 0
        self._source_timers.clear()
        self._token_ids.reset()

        for device in self._layout.devices:
            if device.state == DeviceState.FAULTED:
                device.state = DeviceState.STOPPED
                device.fault_reason = None

        logger.info("Simulation reset (was %s)", previous_status.value)
        self._emit_status_change(previous_status)
        self._render()

    def dispose(self) -> None:
        """Reset, drop every listener and detach the renderer.

        The engine should be discarded afterwards.
        """
        self.reset()
        self._events.clear()
        self._renderer = None

    # Accessors

    def get_status(self) -> SimulationStatus:
        return self._status

    def get_tokens(self) -> list[Token]:
        """Copy of the live token list."""
        return list(self._tokens)

    def get_snapshot(self) -> SimulationSnapshot:
        return SimulationSnapshot(
            status=self._status,
            tokens=list(self._tokens),
            elapsed_time=self._elapsed_time,
            time_scale=self._config.time_scale,
        )

    def get_elapsed_time(self) -> float:
        """Simulated seconds since play() from STOPPED."""
        return self._elapsed_time

    def get_graph(self) -> ConnectivityGraph:
        return self._graph

    def get_layout(self) -> EditorLayout:
        return self._layout

    def get_config(self) -> SimulationConfig:
        return self._config

    def set_time_scale(self, scale: float) -> None:
        """Set the time multiplier, clamped to [0.1, 10]."""
        self._config.time_scale = clamp_time_scale(scale)

    def get_time_scale(self) -> float:
        return self._config.time_scale

    # Device state

    def set_device_state(self, device_id: str, state: DeviceState | str) -> None:
        """Set a device's run state. Unknown devices are ignored.

        Raises:
            ValueError: If ``state`` is FAULTED; faults go through
                ``set_device_fault`` so they always carry a reason.
        """
        new_state = DeviceState(state)
        if new_state == DeviceState.FAULTED:
            raise ValueError("Use set_device_fault() to fault a device")

        node = self._graph.get_node(device_id)
        if node is None:
            return

        device = node.device
        previous_state = device.state
        device.state = new_state
        device.fault_reason = None

        self._events.emit(
            EventType.DEVICE_STATE_CHANGE,
            {
                "device_id": device_id,
                "previous_state": previous_state,
                "new_state": new_state,
            },
        )

    def set_device_fault(self, device_id: str, reason: str) -> None:
        """Fault a device with a human-readable reason. Unknown devices are ignored."""
        if not reason:
            raise ValueError("A fault needs a non-empty reason")
        node = self._graph.get_node(device_id)
        if node is None:
            return

        device = node.device
        previous_state = device.state
        device.state = DeviceState.FAULTED
        device.fault_reason = reason

        logger.info("Device '%s' faulted: %s", device_id, reason)
        self._events.emit(
            EventType.DEVICE_STATE_CHANGE,
            {
                "device_id": device_id,
                "previous_state": previous_state,
                "new_state": DeviceState.FAULTED,
                "fault_reason": reason,
            },
        )

    def clear_device_fault(self, device_id: str) -> None:
        """Clear a fault, leaving the device STOPPED. No-op unless faulted."""
        node = self._graph.get_node(device_id)
        if node is None or node.device.state != DeviceState.FAULTED:
            return

        node.device.state = DeviceState.STOPPED
        node.device.fault_reason = None

        logger.info("Device '%s' fault cleared", device_id)
        self._events.emit(
            EventType.DEVICE_STATE_CHANGE,
            {
                "device_id": device_id,
                "previous_state": DeviceState.FAULTED,
                "new_state": DeviceState.STOPPED,
            },
        )

    # Events

    def on(self, event_type: EventType | str, listener: SimulationEventListener) -> None:
        """Subscribe to an event type."""
        self._events.on(event_type, listener)

    def off(self, event_type: EventType | str, listener: SimulationEventListener) -> None:
        """Unsubscribe from an event type."""
        self._events.off(event_type, listener)

    # Layout

    def update_layout(self, layout: EditorLayout) -> None:
        """Swap in a new layout and rebuild the graph.

        Existing tokens are kept; tokens whose device vanished are removed on
        the next frame.
        """
        self._layout = layout
        self._graph = build_connectivity_graph(layout)
        logger.info(
            "Layout updated: devices=%d, connections=%d",
            len(layout.devices),
            len(layout.connections),
        )

    # Explicit spawning

    def spawn_token(self, device_id: str) -> Token | None:
        """Create a token at the entry of ``device_id`` regardless of timers.

        Returns:
            The new token, or None if the device is unknown.
        """
        node = self._graph.get_node(device_id)
        if node is None:
            return None
        token = create_token(device_id, node.device, self._config.token_color, self._token_ids)
        self._tokens.append(token)
        self._events.emit(EventType.TOKEN_CREATED, {"token": token})
        return token

    def spawn_tokens_at_sources(self) -> list[Token]:
        """Create one token at every running source."""
        tokens = create_tokens_at_sources(self._graph, self._config.token_color, self._token_ids)
        for token in tokens:
            self._tokens.append(token)
            self._events.emit(EventType.TOKEN_CREATED, {"token": token})
        return tokens

    # Frame loop

    def _schedule_frame(self) -> None:
        self._frame_handle = self._scheduler.schedule_next(self._on_frame)

    def _cancel_frame(self) -> None:
        if self._frame_handle is not None:
            self._scheduler.cancel(self._frame_handle)
            self._frame_handle = None

    def _on_frame(self, timestamp: float) -> None:
        self._frame_handle = None
        self._tick(timestamp)

    def _tick(self, timestamp: float) -> None:
        # A frame that fires after pause()/reset() does nothing
        if self._status != SimulationStatus.RUNNING:
            return

        delta_time = max(0.0, timestamp - self._last_frame_time)
        self._last_frame_time = timestamp
        self._elapsed_time += delta_time * self._config.time_scale
        self._frame_count += 1

        self._process_source_devices(delta_time)
        self._update_tokens(delta_time)

        self._events.emit(
            EventType.TICK,
            {
                "delta_time": delta_time,
                "elapsed_time": self._elapsed_time,
                "token_count": len(self._tokens),
            },
        )

        self._render()

        if self._frame_count % TICK_LOG_INTERVAL == 0:
            logger.debug(
                "Simulation frame %d: elapsed=%.2fs, tokens=%d",
                self._frame_count,
                self._elapsed_time,
                len(self._tokens),
            )

        # A listener may have paused, reset or restarted the engine
        if self._status == SimulationStatus.RUNNING and self._frame_handle is None:
            self._schedule_frame()

    def _initialize_source_timers(self) -> None:
        self._source_timers.clear()
        for device in self._layout.devices:
            if device.type == DeviceType.SOURCE:
                self._source_timers[device.id] = 0.0

    def _process_source_devices(self, delta_time: float) -> None:
        """Fire sources whose timers reached their generation interval.

        At most one token per source per frame. The timer keeps the remainder
        so the long-run rate does not drift with frame jitter.
        """
        scaled = delta_time * self._config.time_scale
        for node in self._graph:
            device = node.device
            if device.type != DeviceType.SOURCE or device.state != DeviceState.RUNNING:
                continue

            timer = self._source_timers.get(device.id, 0.0) + scaled
            interval = 1.0 / device.generation_rate

            if timer >= interval:
                token = create_token(
                    device.id, device, self._config.token_color, self._token_ids
                )
                self._tokens.append(token)
                self._events.emit(EventType.TOKEN_CREATED, {"token": token})
                logger.debug("Source '%s' created %s", device.id, token.id)
                timer %= interval

            self._source_timers[device.id] = timer

    def _update_tokens(self, delta_time: float) -> None:
        """Advance, transfer and remove tokens."""
        survivors: list[Token] = []
        removed: list[Token] = []
        time_scale = self._config.time_scale

        for token in self._tokens:
            node = self._graph.get_node(token.current_device_id)
            if node is None:
                removed.append(token)
                continue

            advanced, completed = advance_token(token, node.device, delta_time, time_scale)
            if not completed:
                survivors.append(advanced)
                continue

            if should_remove_token(advanced, self._graph):
                removed.append(advanced)
                continue

            next_device_id = get_next_device_id(advanced, self._graph)
            next_node = self._graph.get_node(next_device_id) if next_device_id else None
            if next_node is None:
                removed.append(advanced)
                continue

            moved = transfer_token(advanced, next_node.device_id, next_node.device)
            survivors.append(moved)
            self._events.emit(
                EventType.TOKEN_MOVED,
                {
                    "token": moved,
                    "from_device": token.current_device_id,
                    "to_device": next_node.device_id,
                },
            )

        self._tokens = survivors
        for token in removed:
            self._events.emit(EventType.TOKEN_REMOVED, {"token": token})
        if removed:
            logger.debug("Removed %d token(s)", len(removed))

    def _render(self) -> None:
        renderer = self._renderer
        if renderer is None:
            return
        renderer.clear()
        renderer.render_connections(self._layout.devices, self._layout.connections)
        renderer.render_devices(self._layout.devices)
        renderer.render_tokens(list(self._tokens))
        renderer.render_status(self._status.value, *STATUS_BADGE_POSITION)

    def _emit_status_change(self, previous_status: SimulationStatus) -> None:
        self._events.emit(
            EventType.STATUS_CHANGE,
            {"previous_status": previous_status, "new_status": self._status},
        )
