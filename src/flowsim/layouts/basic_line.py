"""The basic line: one source feeding a three-segment conveyor run into a sink.

The middle segment runs downward, so tokens turn a corner on their way.
"""

from __future__ import annotations

from flowsim.model import Connection, Direction, EditorLayout, conveyor, sink, source


def create_layout() -> EditorLayout:
    """Create the basic line layout.

    Devices:
    - source-1: 1 token/second
    - conveyor-1: right, 80 units/s
    - conveyor-2: down, 60 units/s
    - conveyor-3: right, 100 units/s
    - sink-1

    Returns:
        EditorLayout: Fresh device and connection objects.
    """
    devices = [
        source("source-1", 50, 200, 60, 60, generation_rate=1),
        conveyor("conveyor-1", 130, 212, 200, 36, speed=80, direction=Direction.RIGHT),
        conveyor("conveyor-2", 330, 212, 36, 150, speed=60, direction=Direction.DOWN),
        conveyor("conveyor-3", 366, 326, 200, 36, speed=100, direction=Direction.RIGHT),
        sink("sink-1", 590, 314, 60, 60),
    ]
    chain = ["source-1", "conveyor-1", "conveyor-2", "conveyor-3", "sink-1"]
    connections = [
        Connection(from_device_id=a, to_device_id=b) for a, b in zip(chain, chain[1:], strict=False)
    ]
    return EditorLayout(devices=devices, connections=connections)
