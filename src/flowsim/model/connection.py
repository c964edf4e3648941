"""Connection dataclass: Directed edge between two devices."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class Port(StrEnum):
    """Connection port names. Documentation only; they carry no behavior."""

    INPUT = "input"
    OUTPUT = "output"


@dataclass
class Connection:
    """A directed connection from one device's output to another's input.

    Repeated connections between the same pair are allowed in a layout; the
    connectivity graph deduplicates them.
    """

    from_device_id: str
    to_device_id: str
    from_port: Port = Port.OUTPUT
    to_port: Port = Port.INPUT
