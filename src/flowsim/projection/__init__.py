"""Projection: Renderer capability and the Frame projector for the frontend."""

from flowsim.projection.projector import (
    ConnectionVisual,
    DeviceVisual,
    Frame,
    FrameRenderer,
    StatusVisual,
    TokenVisual,
    frame_to_dict,
)
from flowsim.projection.renderer import Renderer, RenderSurfaceError

__all__ = [
    "ConnectionVisual",
    "DeviceVisual",
    "Frame",
    "FrameRenderer",
    "RenderSurfaceError",
    "Renderer",
    "StatusVisual",
    "TokenVisual",
    "frame_to_dict",
]
