"""Sample layouts that can be loaded by name."""

from __future__ import annotations

from collections.abc import Callable

from flowsim.layouts import basic_line, merge_line
from flowsim.model import EditorLayout

LAYOUTS: dict[str, Callable[[], EditorLayout]] = {
    "basic_line": basic_line.create_layout,
    "merge_line": merge_line.create_layout,
}


def available_layouts() -> list[str]:
    """Names accepted by ``get_layout``."""
    return sorted(LAYOUTS)


def get_layout(name: str) -> EditorLayout:
    """Create a fresh copy of a named layout.

    Raises:
        ValueError: If the name is not recognized.
    """
    factory = LAYOUTS.get(name)
    if factory is None:
        raise ValueError(f"Unknown layout: {name}. Available: {', '.join(available_layouts())}")
    return factory()


__all__ = ["LAYOUTS", "available_layouts", "get_layout"]
