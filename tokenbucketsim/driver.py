"""Headless frame loop and per-frame trace collection.

FrameLoop owns the current ``SimulationState`` and advances it one frame at
a time, optionally injecting requests from a ``BurstyRequestGenerator``.
Each frame is summarised as a FrameRecord; a run returns a SimulationTrace
that can be exported to pandas for analysis or plotting.

Per-frame deltas are derived by diffing consecutive snapshots by item id:
- processed/dropped: requests whose kind changed this frame
- absorbed: bucket level change plus requests processed this frame
- wasted: tokens that disappeared minus tokens absorbed
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path

import pandas as pd

from tokenbucketsim.engine import add_request, set_bucket_size, update_state
from tokenbucketsim.generator import BurstyRequestGenerator
from tokenbucketsim.model import ItemKind, RandomSource, SimulationState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameRecord:
    """What happened during one call to ``FrameLoop.step``."""

    frame: int
    bucket_level: int
    max_level: int
    tokens_in_flight: int
    requests_in_flight: int
    processed_on_screen: int
    dropped_on_screen: int
    requests_processed: int = 0
    requests_dropped: int = 0
    tokens_absorbed: int = 0
    tokens_wasted: int = 0


@dataclass(frozen=True)
class TraceSummary:
    """Aggregate statistics over a SimulationTrace."""

    frames: int
    requests_processed: int
    requests_dropped: int
    tokens_absorbed: int
    tokens_wasted: int
    mean_bucket_level: float

    @property
    def drop_rate(self) -> float:
        """Fraction of resolved requests that were dropped. 0.0 if none resolved."""
        resolved = self.requests_processed + self.requests_dropped
        if resolved == 0:
            return 0.0
        return self.requests_dropped / resolved


class SimulationTrace:
    """Ordered list of FrameRecords from a run."""

    def __init__(self, records: list[FrameRecord] | None = None) -> None:
        self._records: list[FrameRecord] = list(records or [])

    def append(self, record: FrameRecord) -> None:
        self._records.append(record)

    @property
    def records(self) -> list[FrameRecord]:
        return self._records

    def to_dataframe(self) -> pd.DataFrame:
        """One row per record, indexed by frame."""
        columns = [f.name for f in fields(FrameRecord)]
        df = pd.DataFrame([asdict(r) for r in self._records], columns=columns)
        return df.set_index("frame")

    def to_csv(self, path: str | Path) -> Path:
        """Write the trace as CSV, creating parent directories."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.to_dataframe().to_csv(path)
        return path

    def summary(self) -> TraceSummary:
        df = self.to_dataframe()
        if df.empty:
            return TraceSummary(0, 0, 0, 0, 0, 0.0)
        return TraceSummary(
            frames=len(df),
            requests_processed=int(df["requests_processed"].sum()),
            requests_dropped=int(df["requests_dropped"].sum()),
            tokens_absorbed=int(df["tokens_absorbed"].sum()),
            tokens_wasted=int(df["tokens_wasted"].sum()),
            mean_bucket_level=float(df["bucket_level"].mean()),
        )

    def __len__(self) -> int:
        return len(self._records)


def diff_states(before: SimulationState, after: SimulationState) -> FrameRecord:
    """Summarise the transition from ``before`` to ``after``.

    ``after`` must be the result of a single ``update_state`` (plus any
    request injected ahead of it); bucket resizes in between would be
    counted as token absorption.
    """
    previous = {item.id: item.kind for item in before.items}
    processed = 0
    dropped = 0
    for item in after.items:
        prior = previous.get(item.id, ItemKind.REQUEST)
        if prior is ItemKind.REQUEST and item.kind is ItemKind.PROCESSED:
            processed += 1
        elif prior is ItemKind.REQUEST and item.kind is ItemKind.DROPPED:
            dropped += 1

    surviving = {item.id for item in after.items}
    tokens_gone = sum(
        1 for item in before.items if item.kind is ItemKind.TOKEN and item.id not in surviving
    )
    absorbed = after.bucket.level - before.bucket.level + processed
    wasted = tokens_gone - absorbed

    return FrameRecord(
        frame=after.frame_count,
        bucket_level=after.bucket.level,
        max_level=after.bucket.max_level,
        tokens_in_flight=len(after.items_of(ItemKind.TOKEN)),
        requests_in_flight=len(after.items_of(ItemKind.REQUEST)),
        processed_on_screen=len(after.items_of(ItemKind.PROCESSED)),
        dropped_on_screen=len(after.items_of(ItemKind.DROPPED)),
        requests_processed=processed,
        requests_dropped=dropped,
        tokens_absorbed=absorbed,
        tokens_wasted=wasted,
    )


class FrameLoop:
    """Drives a simulation one frame at a time.

    Args:
        state: Initial snapshot.
        rng: Random source forwarded to the engine for bursty request ages.
        generator: Optional arrival generator. Polled once per frame with a
            tick of ``1 / frames_per_second``; each arrival injects a request.
            Pair it with ``requests_per_second=0`` in the state so the
            engine's own request timer stays idle.
    """

    def __init__(
        self,
        state: SimulationState,
        rng: RandomSource | None = None,
        generator: BurstyRequestGenerator | None = None,
    ):
        self._state = state
        self._rng = rng
        self._generator = generator

    @property
    def state(self) -> SimulationState:
        return self._state

    def add_request(self, burstiness: float = 0) -> SimulationState:
        """Inject a manual request into the current state."""
        self._state = add_request(self._state, burstiness, self._rng)
        return self._state

    def set_bucket_size(self, new_size: int) -> SimulationState:
        self._state = set_bucket_size(self._state, new_size)
        return self._state

    def step(self) -> FrameRecord:
        """Advance one frame and return what happened."""
        before = self._state
        state = before
        if self._generator is not None and self._generator.tick(1 / state.frames_per_second):
            state = add_request(state, 0, self._rng)
        self._state = update_state(state, self._rng)
        return diff_states(before, self._state)

    def run(self, frames: int) -> SimulationTrace:
        """Advance ``frames`` frames and collect a trace."""
        trace = SimulationTrace()
        for _ in range(frames):
            trace.append(self.step())

        summary = trace.summary()
        logger.info(
            "Ran %d frames: processed=%d dropped=%d absorbed=%d wasted=%d",
            summary.frames,
            summary.requests_processed,
            summary.requests_dropped,
            summary.tokens_absorbed,
            summary.tokens_wasted,
        )
        return trace
