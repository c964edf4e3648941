"""Simulation core: path geometry, connectivity graph, token lifecycle, engine."""

from flowsim.engine.path import (
    DEFAULT_DEVICE_SPEED,
    PathSegment,
    calculate_distance,
    calculate_progress_delta,
    calculate_total_path_length,
    create_path_segment,
    get_device_center,
    get_device_entry_point,
    get_device_exit_point,
    get_direction_vector,
    get_effective_speed,
    get_position_on_segment,
    lerp_position,
    positions_equal,
)
from flowsim.engine.graph import (
    ConnectivityGraph,
    GraphNode,
    build_connectivity_graph,
    find_path,
    get_reachable_devices,
    get_sink_devices,
    get_source_devices,
    has_cycle,
    topological_sort,
)
from flowsim.engine.tokens import (
    AdvanceResult,
    TokenIdGenerator,
    advance_token,
    create_token,
    create_tokens_at_sources,
    generate_token_id,
    get_next_device_id,
    reset_token_id_counter,
    should_remove_token,
    transfer_token,
    update_token_position,
)
from flowsim.engine.events import EventEmitter, EventType, SimulationEvent
from flowsim.engine.scheduler import (
    FrameQueue,
    ManualScheduler,
    RealtimeScheduler,
    Scheduler,
)
from flowsim.engine.simulation import SimulationEngine

__all__ = [
    "DEFAULT_DEVICE_SPEED",
    "AdvanceResult",
    "ConnectivityGraph",
    "EventEmitter",
    "EventType",
    "FrameQueue",
    "GraphNode",
    "ManualScheduler",
    "PathSegment",
    "RealtimeScheduler",
    "Scheduler",
    "SimulationEngine",
    "SimulationEvent",
    "TokenIdGenerator",
    "advance_token",
    "build_connectivity_graph",
    "calculate_distance",
    "calculate_progress_delta",
    "calculate_total_path_length",
    "create_path_segment",
    "create_token",
    "create_tokens_at_sources",
    "find_path",
    "generate_token_id",
    "get_device_center",
    "get_device_entry_point",
    "get_device_exit_point",
    "get_direction_vector",
    "get_effective_speed",
    "get_next_device_id",
    "get_position_on_segment",
    "get_reachable_devices",
    "get_sink_devices",
    "get_source_devices",
    "has_cycle",
    "lerp_position",
    "positions_equal",
    "reset_token_id_counter",
    "should_remove_token",
    "topological_sort",
    "transfer_token",
    "update_token_position",
]
