"""Settings for the simulation host.

Pydantic-based settings loaded from environment variables (prefix
``FLOWSIM_``) and an optional .env file.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from flowsim.model.simulation import MAX_TIME_SCALE, MIN_TIME_SCALE, SimulationConfig

logger = logging.getLogger(__name__)

_HEX_DIGITS = set("0123456789abcdefABCDEF")


class SimulationSettings(BaseSettings):
    """Host and engine settings.

    Environment Variables:
        FLOWSIM_TIME_SCALE: Initial time multiplier 0.1-10 (default: 1.0)
        FLOWSIM_TOKEN_COLOR: Token colour (default: #3b82f6)
        FLOWSIM_FAULT_COLOR: Faulted device colour (default: #ef4444)
        FLOWSIM_RUNNING_COLOR: Running device colour (default: #22c55e)
        FLOWSIM_STOPPED_COLOR: Stopped device colour (default: #6b7280)
        FLOWSIM_FRAME_RATE: Host frame loop rate in fps (default: 30)
        FLOWSIM_CANVAS_WIDTH / FLOWSIM_CANVAS_HEIGHT: Frame surface size
        FLOWSIM_DEFAULT_LAYOUT: Layout loaded at startup (default: basic_line)
        FLOWSIM_EVENT_HISTORY: Recent events kept for /api/events (default: 200)
        FLOWSIM_HOST / FLOWSIM_PORT: Server bind address

    Example:
        >>> settings = SimulationSettings()  # Loads from environment
        >>> settings = SimulationSettings(_env_file=".env")
    """

    model_config = SettingsConfigDict(
        env_prefix="FLOWSIM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Engine
    time_scale: float = Field(
        default=1.0,
        ge=MIN_TIME_SCALE,
        le=MAX_TIME_SCALE,
        description="Initial time multiplier",
    )
    token_color: str = Field(default="#3b82f6", description="Token colour")
    fault_color: str = Field(default="#ef4444", description="Faulted device colour")
    running_color: str = Field(default="#22c55e", description="Running device colour")
    stopped_color: str = Field(default="#6b7280", description="Stopped device colour")

    # Host loop
    frame_rate: float = Field(default=30.0, ge=1.0, le=240.0, description="Frames per second")
    canvas_width: float = Field(default=800.0, gt=0, description="Frame surface width")
    canvas_height: float = Field(default=600.0, gt=0, description="Frame surface height")
    default_layout: str = Field(default="basic_line", description="Layout loaded at startup")
    event_history: int = Field(default=200, ge=0, le=10000, description="Recent events kept")

    # Server
    host: str = Field(default="127.0.0.1", description="Bind host")
    port: int = Field(default=8000, ge=1, le=65535, description="Bind port")

    @field_validator("token_color", "fault_color", "running_color", "stopped_color")
    @classmethod
    def validate_color(cls, v: str) -> str:
        """Accept #rgb, #rrggbb or #rrggbbaa hex colours."""
        digits = v[1:]
        if not v.startswith("#") or len(digits) not in (3, 6, 8) or not set(digits) <= _HEX_DIGITS:
            raise ValueError(f"Invalid hex colour: {v!r}")
        return v.lower()

    def to_simulation_config(self) -> SimulationConfig:
        """Engine configuration built from these settings."""
        return SimulationConfig(
            time_scale=self.time_scale,
            token_color=self.token_color,
            fault_color=self.fault_color,
            running_color=self.running_color,
            stopped_color=self.stopped_color,
        )


@lru_cache
def get_settings() -> SimulationSettings:
    """Get cached settings singleton.

    To reload, call ``get_settings.cache_clear()`` first.
    """
    settings = SimulationSettings()
    logger.info(
        "Loaded settings: time_scale=%s, frame_rate=%s, layout=%s",
        settings.time_scale,
        settings.frame_rate,
        settings.default_layout,
    )
    return settings
