"""Connectivity graph: directed adjacency over device IDs built from a layout.

The graph is built once per layout and is not modified afterwards. Nodes hold
references to the layout's Device objects (not copies), so device state
changes made through a node are visible to everyone holding the device.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from flowsim.model.device import DeviceType

if TYPE_CHECKING:
    from flowsim.model.device import Device
    from flowsim.model.layout import EditorLayout

logger = logging.getLogger(__name__)


@dataclass
class GraphNode:
    """A device plus its deduplicated, ordered neighbor lists."""

    device_id: str
    device: Device
    inputs: list[str] = field(default_factory=list)  # upstream device ids
    outputs: list[str] = field(default_factory=list)  # downstream device ids


class ConnectivityGraph:
    """Directed graph of devices keyed by device ID.

    Lookups for unknown IDs never raise: ``get_node`` returns None and the
    neighbor accessors return an empty list.
    """

    def __init__(self, nodes: dict[str, GraphNode]) -> None:
        self.nodes = nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, device_id: object) -> bool:
        return device_id in self.nodes

    def __iter__(self) -> Iterator[GraphNode]:
        return iter(self.nodes.values())

    def get_node(self, device_id: str) -> GraphNode | None:
        """Get the node for a device, or None if unknown."""
        return self.nodes.get(device_id)

    def get_connected_outputs(self, device_id: str) -> list[str]:
        """Downstream device IDs in connection order."""
        node = self.nodes.get(device_id)
        return node.outputs if node is not None else []

    def get_connected_inputs(self, device_id: str) -> list[str]:
        """Upstream device IDs in connection order."""
        node = self.nodes.get(device_id)
        return node.inputs if node is not None else []

    def get_path(self, from_device_id: str, to_device_id: str) -> list[str] | None:
        """Shortest path (by edge count) between two devices, or None."""
        return find_path(self.nodes, from_device_id, to_device_id)


def build_connectivity_graph(layout: EditorLayout) -> ConnectivityGraph:
    """Build a connectivity graph from an editor layout.

    Connections referencing a device that is not in the layout are dropped.
    Repeated connections between the same pair produce a single edge.
    """
    nodes: dict[str, GraphNode] = {}
    for device in layout.devices:
        nodes[device.id] = GraphNode(device_id=device.id, device=device)

    dropped = 0
    for connection in layout.connections:
        from_node = nodes.get(connection.from_device_id)
        to_node = nodes.get(connection.to_device_id)
        if from_node is None or to_node is None:
            dropped += 1
            continue
        if connection.to_device_id not in from_node.outputs:
            from_node.outputs.append(connection.to_device_id)
        if connection.from_device_id not in to_node.inputs:
            to_node.inputs.append(connection.from_device_id)

    if dropped:
        logger.debug("Dropped %d connection(s) referencing unknown devices", dropped)

    return ConnectivityGraph(nodes)


def find_path(
    nodes: dict[str, GraphNode],
    from_device_id: str,
    to_device_id: str,
) -> list[str] | None:
    """Breadth-first search along outputs for the shortest path."""
    if from_device_id == to_device_id:
        return [from_device_id]

    visited = {from_device_id}
    queue: deque[tuple[str, list[str]]] = deque([(from_device_id, [from_device_id])])

    while queue:
        node_id, path = queue.popleft()
        node = nodes.get(node_id)
        if node is None:
            continue
        for output_id in node.outputs:
            if output_id == to_device_id:
                return [*path, to_device_id]
            if output_id not in visited:
                visited.add(output_id)
                queue.append((output_id, [*path, output_id]))

    return None


def get_reachable_devices(graph: ConnectivityGraph, start_device_id: str) -> list[str]:
    """All device IDs reachable from ``start_device_id``, excluding itself."""
    visited: dict[str, None] = {}  # ordered set
    queue: deque[str] = deque([start_device_id])

    while queue:
        current = queue.popleft()
        if current in visited:
            continue
        visited[current] = None
        for output_id in graph.get_connected_outputs(current):
            if output_id not in visited:
                queue.append(output_id)

    visited.pop(start_device_id, None)
    return list(visited)


def get_source_devices(graph: ConnectivityGraph) -> list[Device]:
    """Devices with no inputs, plus every device tagged as a source."""
    return [
        node.device
        for node in graph.nodes.values()
        if not node.inputs or node.device.type == DeviceType.SOURCE
    ]


def get_sink_devices(graph: ConnectivityGraph) -> list[Device]:
    """Devices with no outputs, plus every device tagged as a sink."""
    return [
        node.device
        for node in graph.nodes.values()
        if not node.outputs or node.device.type == DeviceType.SINK
    ]


class _Mark(Enum):
    WHITE = 0  # unvisited
    GRAY = 1  # on the current DFS path
    BLACK = 2  # finished


def has_cycle(graph: ConnectivityGraph) -> bool:
    """Detect a directed cycle (self-loops included) with a colouring DFS.

    Iterative, so long conveyor chains do not hit the recursion limit.
    """
    marks = dict.fromkeys(graph.nodes, _Mark.WHITE)

    for root in graph.nodes:
        if marks[root] is not _Mark.WHITE:
            continue
        marks[root] = _Mark.GRAY
        stack: list[tuple[str, Iterator[str]]] = [
            (root, iter(graph.get_connected_outputs(root)))
        ]
        while stack:
            node_id, children = stack[-1]
            for child in children:
                mark = marks.get(child, _Mark.WHITE)
                if mark is _Mark.GRAY:
                    return True
                if mark is _Mark.WHITE:
                    marks[child] = _Mark.GRAY
                    stack.append((child, iter(graph.get_connected_outputs(child))))
                    break
            else:
                marks[node_id] = _Mark.BLACK
                stack.pop()

    return False


def topological_sort(graph: ConnectivityGraph) -> list[str] | None:
    """Kahn's algorithm over in-degrees.

    Returns:
        Every device ID in dependency order (disconnected components
        included), or None when a cycle leaves nodes unprocessed.
    """
    in_degree = {node_id: len(graph.get_connected_inputs(node_id)) for node_id in graph.nodes}
    queue: deque[str] = deque(node_id for node_id, degree in in_degree.items() if degree == 0)
    result: list[str] = []

    while queue:
        current = queue.popleft()
        result.append(current)
        for output_id in graph.get_connected_outputs(current):
            in_degree[output_id] -= 1
            if in_degree[output_id] == 0:
                queue.append(output_id)

    if len(result) != len(graph.nodes):
        return None
    return result
