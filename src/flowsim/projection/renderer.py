"""Renderer capability consumed by the simulation engine."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from flowsim.model.connection import Connection
    from flowsim.model.device import Device
    from flowsim.model.token import Token


class RenderSurfaceError(RuntimeError):
    """Raised when a rendering surface cannot be acquired."""


@runtime_checkable
class Renderer(Protocol):
    """Draw calls the engine issues once per frame, in this order:
    clear, connections, devices, tokens, status.

    Renderers receive read-only snapshots and must not change simulation state.
    """

    def clear(self) -> None: ...

    def render_devices(self, devices: Sequence[Device]) -> None: ...

    def render_connections(
        self, devices: Sequence[Device], connections: Sequence[Connection]
    ) -> None: ...

    def render_tokens(self, tokens: Sequence[Token]) -> None: ...

    def render_status(self, status: str, x: float, y: float) -> None: ...
