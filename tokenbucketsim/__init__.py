"""Frame-based token bucket simulation.

Models token replenishment, request arrival, and admission decisions one
frame at a time. The engine is a set of pure functions over an immutable
``SimulationState``; ``FrameLoop`` drives it headlessly and records a trace.

Example:
    from tokenbucketsim import FrameLoop, SimulationConfig, format_state

    loop = FrameLoop(SimulationConfig(bucket_size=5, requests_per_second=3).create_state())
    trace = loop.run(600)
    print(format_state(loop.state))
    print(trace.summary().drop_rate)
"""

import logging

from tokenbucketsim.config import SimulationConfig, no_burst_demo
from tokenbucketsim.driver import FrameLoop, FrameRecord, SimulationTrace, TraceSummary
from tokenbucketsim.engine import (
    add_request,
    add_token,
    create_initial_state,
    format_state,
    frames_between,
    set_bucket_size,
    set_request_burstiness,
    set_requests_per_second,
    set_tokens_per_second,
    update_state,
)
from tokenbucketsim.generator import BurstyRequestGenerator
from tokenbucketsim.logging_config import (
    configure_from_env,
    disable_logging,
    enable_console_logging,
    enable_file_logging,
    enable_json_logging,
    set_level,
    set_module_level,
)
from tokenbucketsim.model import (
    DROPPED_ITEM_LIFETIME,
    FRAMES_TO_REACH_BUCKET,
    PROCESSED_ITEM_LIFETIME,
    Bucket,
    Item,
    ItemKind,
    SimulationState,
)

# Silent unless the application opts in.
logging.getLogger("tokenbucketsim").addHandler(logging.NullHandler())

__all__ = [
    # Model
    "Bucket",
    "DROPPED_ITEM_LIFETIME",
    "FRAMES_TO_REACH_BUCKET",
    "Item",
    "ItemKind",
    "PROCESSED_ITEM_LIFETIME",
    "SimulationState",
    # Engine
    "add_request",
    "add_token",
    "create_initial_state",
    "format_state",
    "frames_between",
    "set_bucket_size",
    "set_request_burstiness",
    "set_requests_per_second",
    "set_tokens_per_second",
    "update_state",
    # Arrivals
    "BurstyRequestGenerator",
    # Configuration
    "SimulationConfig",
    "no_burst_demo",
    # Driver
    "FrameLoop",
    "FrameRecord",
    "SimulationTrace",
    "TraceSummary",
    # Logging
    "configure_from_env",
    "disable_logging",
    "enable_console_logging",
    "enable_file_logging",
    "enable_json_logging",
    "set_level",
    "set_module_level",
]
