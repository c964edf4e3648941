"""The merge line: two sources merging at a junction before a shared conveyor.

The junction forwards everything to its first output; the spur conveyor
declared second never receives tokens.
"""

from __future__ import annotations

from flowsim.model import (
    Connection,
    Direction,
    EditorLayout,
    conveyor,
    junction,
    sink,
    source,
)


def create_layout() -> EditorLayout:
    """Create the merge line layout.

    Returns:
        EditorLayout: Fresh device and connection objects.
    """
    devices = [
        source("source-a", 40, 80, 50, 50, generation_rate=0.5),
        source("source-b", 40, 320, 50, 50, generation_rate=0.8),
        conveyor("feed-a", 110, 90, 160, 30, speed=90, direction=Direction.RIGHT),
        conveyor("feed-b", 110, 330, 160, 30, speed=90, direction=Direction.RIGHT),
        junction("merge", 290, 190, 60, 60, output_direction=Direction.RIGHT),
        conveyor("main", 370, 205, 240, 30, speed=120, direction=Direction.RIGHT),
        conveyor("spur", 305, 270, 30, 120, speed=60, direction=Direction.DOWN),
        sink("sink", 630, 190, 60, 60),
        sink("spur-sink", 290, 410, 60, 60),
    ]
    edges = [
        ("source-a", "feed-a"),
        ("source-b", "feed-b"),
        ("feed-a", "merge"),
        ("feed-b", "merge"),
        ("merge", "main"),
        ("merge", "spur"),
        ("main", "sink"),
        ("spur", "spur-sink"),
    ]
    connections = [Connection(from_device_id=a, to_device_id=b) for a, b in edges]
    return EditorLayout(devices=devices, connections=connections)
