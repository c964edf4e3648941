"""Simulation status, configuration and snapshot dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

    from flowsim.model.token import Token

MIN_TIME_SCALE = 0.1
MAX_TIME_SCALE = 10.0


class SimulationStatus(StrEnum):
    """Engine status: stopped -> running <-> paused, reset returns to stopped."""

    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"


def clamp_time_scale(scale: float) -> float:
    """Clamp a time scale to the supported range."""
    return max(MIN_TIME_SCALE, min(MAX_TIME_SCALE, scale))


@dataclass
class SimulationConfig:
    """Engine configuration. Only ``time_scale`` changes after construction."""

    time_scale: float = 1.0  # 1.0 = real time
    token_color: str = "#3b82f6"
    fault_color: str = "#ef4444"
    running_color: str = "#22c55e"
    stopped_color: str = "#6b7280"

    @classmethod
    def from_partial(cls, overrides: Mapping[str, Any] | SimulationConfig | None) -> SimulationConfig:
        """Build a config from defaults plus a partial mapping of overrides.

        Raises:
            ValueError: If a key is not a config field.
        """
        if overrides is None:
            return cls()
        if isinstance(overrides, SimulationConfig):
            return cls(**{f.name: getattr(overrides, f.name) for f in fields(cls)})
        known = {f.name for f in fields(cls)}
        unknown = set(overrides) - known
        if unknown:
            msg = f"Unknown simulation config keys: {', '.join(sorted(unknown))}"
            raise ValueError(msg)
        return cls(**dict(overrides))


@dataclass
class SimulationSnapshot:
    """Point-in-time view of the engine."""

    status: SimulationStatus
    tokens: list[Token] = field(default_factory=list)
    elapsed_time: float = 0.0
    time_scale: float = 1.0
