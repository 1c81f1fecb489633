"""Simulation parameters, presets, and environment loading.

The engine accepts raw numbers and trusts its caller. SimulationConfig is
the validated entry point: it checks parameters once, then builds the
initial ``SimulationState``.

Environment variables (all optional):
    TBS_BUCKET_SIZE: Bucket capacity (int)
    TBS_TOKENS_PER_SECOND: Token replenishment rate (float)
    TBS_FRAMES_PER_SECOND: Frame cadence (int)
    TBS_REQUESTS_PER_SECOND: Automatic request rate (float)
    TBS_REQUEST_BURSTINESS: Request burstiness (float)
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace

from tokenbucketsim.engine import create_initial_state
from tokenbucketsim.model import SimulationState

logger = logging.getLogger(__name__)

DEFAULT_BUCKET_SIZE = 10
DEFAULT_TOKENS_PER_SECOND = 1.0
DEFAULT_FRAMES_PER_SECOND = 30
DEFAULT_REQUESTS_PER_SECOND = 1.0
DEFAULT_REQUEST_BURSTINESS = 0.5

ENV_PREFIX = "TBS_"


@dataclass(frozen=True)
class SimulationConfig:
    """Validated parameters for a simulation run.

    Attributes:
        bucket_size: Bucket capacity; the bucket starts full.
        tokens_per_second: Token replenishment rate (0 disables it).
        frames_per_second: Frames per simulated second.
        requests_per_second: Automatic request rate (0 = manual only).
        request_burstiness: Spread of automatic request start ages.

    Raises:
        ValueError: If any parameter is out of range.
    """

    bucket_size: int = DEFAULT_BUCKET_SIZE
    tokens_per_second: float = DEFAULT_TOKENS_PER_SECOND
    frames_per_second: int = DEFAULT_FRAMES_PER_SECOND
    requests_per_second: float = DEFAULT_REQUESTS_PER_SECOND
    request_burstiness: float = DEFAULT_REQUEST_BURSTINESS

    def __post_init__(self) -> None:
        if self.bucket_size <= 0:
            raise ValueError(f"bucket_size must be > 0, got {self.bucket_size}")
        if self.frames_per_second <= 0:
            raise ValueError(f"frames_per_second must be > 0, got {self.frames_per_second}")
        if self.tokens_per_second < 0:
            raise ValueError(f"tokens_per_second must be >= 0, got {self.tokens_per_second}")
        if self.requests_per_second < 0:
            raise ValueError(
                f"requests_per_second must be >= 0, got {self.requests_per_second}"
            )
        if self.request_burstiness < 0:
            raise ValueError(
                f"request_burstiness must be >= 0, got {self.request_burstiness}"
            )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> SimulationConfig:
        """Build a config from ``TBS_*`` environment variables.

        Unset variables keep their defaults.

        Raises:
            ValueError: If a variable cannot be parsed or is out of range.
        """
        environ = os.environ if environ is None else environ
        overrides = {}
        for f in fields(cls):
            key = ENV_PREFIX + f.name.upper()
            raw = environ.get(key, "").strip()
            if not raw:
                continue
            parse = int if f.type in ("int", int) else float
            try:
                overrides[f.name] = parse(raw)
            except ValueError:
                raise ValueError(f"{key} must be a number, got {raw!r}") from None

        if overrides:
            logger.debug("Config overrides from environment: %s", overrides)
        return cls(**overrides)

    def create_state(self) -> SimulationState:
        """Initial snapshot for these parameters."""
        return create_initial_state(
            self.bucket_size,
            self.tokens_per_second,
            self.frames_per_second,
            self.requests_per_second,
            self.request_burstiness,
        )


def no_burst_demo(frames_per_second: int = DEFAULT_FRAMES_PER_SECOND) -> SimulationState:
    """Steady-state preset: one token and one request per second, bucket of one.

    The token is due immediately and the first request half a second later,
    so the bucket visibly alternates between 0 and 1.
    """
    config = SimulationConfig(
        bucket_size=1,
        tokens_per_second=1,
        frames_per_second=frames_per_second,
        requests_per_second=1,
        request_burstiness=0,
    )
    return replace(
        config.create_state(),
        frames_until_next_token=0,
        frames_until_next_request=frames_per_second // 2,
    )
