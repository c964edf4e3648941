"""Token lifecycle: creation, advancement, transfer and removal checks.

Functions here never mutate a Token; they return updated copies. The
simulation engine owns the authoritative token list.
"""

from __future__ import annotations

import itertools
from dataclasses import replace
from typing import TYPE_CHECKING, NamedTuple

from flowsim.engine.path import (
    calculate_progress_delta,
    create_path_segment,
    get_position_on_segment,
)
from flowsim.model.device import DeviceState, DeviceType
from flowsim.model.token import DEFAULT_TOKEN_COLOR, Token

if TYPE_CHECKING:
    from flowsim.engine.graph import ConnectivityGraph
    from flowsim.engine.path import PathSegment
    from flowsim.model.device import Device


class TokenIdGenerator:
    """Monotonic token ID source ("token-1", "token-2", ...).

    Each simulation engine owns one, so engines running side by side do not
    share IDs. ``reset`` restarts the sequence.
    """

    def __init__(self, prefix: str = "token") -> None:
        self.prefix = prefix
        self._counter = itertools.count(1)

    def next_id(self) -> str:
        """Return the next ID in the sequence."""
        return f"{self.prefix}-{next(self._counter)}"

    def reset(self) -> None:
        """Restart the sequence at 1."""
        self._counter = itertools.count(1)


_default_ids = TokenIdGenerator()


def generate_token_id() -> str:
    """Next ID from the module-level generator."""
    return _default_ids.next_id()


def reset_token_id_counter() -> None:
    """Reset the module-level generator (test isolation)."""
    _default_ids.reset()


class AdvanceResult(NamedTuple):
    """Outcome of advancing a token through its current device."""

    token: Token
    completed: bool


def create_token(
    device_id: str,
    device: Device,
    color: str = DEFAULT_TOKEN_COLOR,
    id_generator: TokenIdGenerator | None = None,
) -> Token:
    """Create a token at the entry point of ``device`` with progress 0."""
    ids = id_generator if id_generator is not None else _default_ids
    segment = create_path_segment(device)
    return Token(
        id=ids.next_id(),
        current_device_id=device_id,
        position=replace(segment.entry_point),
        progress=0.0,
        color=color,
    )


def update_token_position(token: Token, segment: PathSegment) -> Token:
    """Recompute the token position from its progress along ``segment``."""
    return replace(token, position=get_position_on_segment(segment, token.progress))


def advance_token(
    token: Token,
    device: Device,
    delta_time: float,
    time_scale: float,
) -> AdvanceResult:
    """Move a token forward through its current device.

    ``completed`` is judged on the unclamped progress; the stored progress is
    clamped to 1.
    """
    segment = create_path_segment(device)
    delta = calculate_progress_delta(device, segment, delta_time, time_scale)

    raw_progress = token.progress + delta
    progress = min(raw_progress, 1.0)

    advanced = replace(
        token,
        progress=progress,
        position=get_position_on_segment(segment, progress),
    )
    return AdvanceResult(advanced, raw_progress >= 1)


def transfer_token(token: Token, next_device_id: str, next_device: Device) -> Token:
    """Move a token onto the entry point of the next device."""
    segment = create_path_segment(next_device)
    return replace(
        token,
        current_device_id=next_device_id,
        progress=0.0,
        position=replace(segment.entry_point),
    )


def get_next_device_id(token: Token, graph: ConnectivityGraph) -> str | None:
    """First connected output of the token's device, or None.

    There is no routing policy: junctions forward to their first output too.
    """
    outputs = graph.get_connected_outputs(token.current_device_id)
    return outputs[0] if outputs else None


def should_remove_token(token: Token, graph: ConnectivityGraph) -> bool:
    """Whether a token has left the network.

    True when its device is gone from the graph, or when it has finished a
    device that has no outputs or is a sink.
    """
    node = graph.get_node(token.current_device_id)
    if node is None:
        return True
    if token.progress >= 1 and not node.outputs:
        return True
    return node.device.type == DeviceType.SINK and token.progress >= 1


def create_tokens_at_sources(
    graph: ConnectivityGraph,
    color: str = DEFAULT_TOKEN_COLOR,
    id_generator: TokenIdGenerator | None = None,
) -> list[Token]:
    """Create one token at every running source in the graph."""
    return [
        create_token(node.device_id, node.device, color, id_generator)
        for node in graph.nodes.values()
        if node.device.type == DeviceType.SOURCE and node.device.state == DeviceState.RUNNING
    ]
