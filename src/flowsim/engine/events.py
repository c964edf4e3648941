"""Typed publish/subscribe registry for simulation events."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)


class EventType(StrEnum):
    """Events emitted by the simulation engine."""

    STATUS_CHANGE = "statusChange"
    TOKEN_CREATED = "tokenCreated"
    TOKEN_MOVED = "tokenMoved"
    TOKEN_REMOVED = "tokenRemoved"
    DEVICE_STATE_CHANGE = "deviceStateChange"
    TICK = "tick"


@dataclass
class SimulationEvent:
    """An emitted event: its type, emit time and payload."""

    type: EventType
    timestamp: float
    data: dict[str, Any] = field(default_factory=dict)


SimulationEventListener = Callable[[SimulationEvent], None]


class EventEmitter:
    """Listener sets keyed by event type.

    Each listener call is guarded on its own: an exception is logged and the
    remaining listeners still run.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._listeners: dict[EventType, set[SimulationEventListener]] = {}

    def on(self, event_type: EventType | str, listener: SimulationEventListener) -> None:
        """Register ``listener`` for ``event_type``."""
        self._listeners.setdefault(EventType(event_type), set()).add(listener)

    def off(self, event_type: EventType | str, listener: SimulationEventListener) -> None:
        """Unregister ``listener``; unknown listeners are ignored."""
        listeners = self._listeners.get(EventType(event_type))
        if listeners is not None:
            listeners.discard(listener)

    def listener_count(self, event_type: EventType | str) -> int:
        """Number of listeners registered for ``event_type``."""
        return len(self._listeners.get(EventType(event_type), ()))

    def clear(self) -> None:
        """Remove every listener."""
        self._listeners.clear()

    def emit(self, event_type: EventType, data: dict[str, Any]) -> SimulationEvent:
        """Deliver an event to every listener of its type."""
        event = SimulationEvent(type=event_type, timestamp=self._clock(), data=data)
        # Copy: listeners may unsubscribe while being notified
        for listener in list(self._listeners.get(event_type, ())):
            try:
                listener(event)
            except Exception:
                logger.exception("Error in simulation event listener for %s", event_type.value)
        return event
