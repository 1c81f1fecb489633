"""Value types for the frame-based token bucket simulation.

Every type here is a frozen dataclass. The engine never mutates a state in
place; each transition builds a new ``SimulationState`` with
``dataclasses.replace`` so old snapshots stay valid for replay and tests.

Timing constants are expressed in frames:
- FRAMES_TO_REACH_BUCKET: frames an item travels before the admission decision
- PROCESSED_ITEM_LIFETIME: frames a processed request lingers after admission
- DROPPED_ITEM_LIFETIME: frames a dropped request lingers after rejection
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

FRAMES_TO_REACH_BUCKET = 120
PROCESSED_ITEM_LIFETIME = 120
DROPPED_ITEM_LIFETIME = 120

# Position scale: 0-100 while approaching the bucket, 100-200 while leaving.
ARRIVAL_POSITION = 100
EXIT_POSITION = 200


class RandomSource(Protocol):
    """Anything that produces uniform floats in [0, 1), e.g. ``random.Random``."""

    def random(self) -> float: ...


class ItemKind(Enum):
    """Lifecycle stage of an in-flight item."""

    REQUEST = "request"
    TOKEN = "token"
    PROCESSED = "processed"
    DROPPED = "dropped"

    @property
    def is_pending(self) -> bool:
        """True while the item is still travelling toward the bucket."""
        return self in (ItemKind.REQUEST, ItemKind.TOKEN)


@dataclass(frozen=True)
class Bucket:
    """Token pool with a fixed capacity.

    Attributes:
        level: Tokens currently held, always within [0, max_level].
        max_level: Capacity of the bucket (the allowed burst size).
    """

    level: int
    max_level: int


@dataclass(frozen=True)
class Item:
    """A single token or request moving through the simulation.

    Attributes:
        id: Unique identifier, assigned in creation order.
        age: Frames since creation.
        position: Progress indicator (0 = spawned, 100 = at the bucket,
            200 = fully departed).
        kind: Current lifecycle stage.
    """

    id: int
    age: int
    position: int
    kind: ItemKind


@dataclass(frozen=True)
class SimulationState:
    """Complete snapshot of the simulation at one frame.

    Attributes:
        bucket: The token bucket.
        items: In-flight items in creation order.
        next_id: Identifier handed to the next created item.
        frame_count: Number of frame transitions applied so far.
        tokens_per_second: Token replenishment rate. Zero disables replenishment.
        frames_per_second: Frame cadence used to convert rates into frame counts.
        frames_until_next_token: Countdown to the next token injection.
        requests_per_second: Automatic request rate. Zero disables auto requests.
        request_burstiness: Spread of the initial age given to auto requests.
        frames_until_next_request: Countdown to the next automatic request.
    """

    bucket: Bucket
    items: tuple[Item, ...] = field(default_factory=tuple)
    next_id: int = 1
    frame_count: int = 0
    tokens_per_second: float = 1.0
    frames_per_second: int = 30
    frames_until_next_token: int = 0
    requests_per_second: float = 0.0
    request_burstiness: float = 0.0
    frames_until_next_request: int = 0

    @property
    def auto_tokens(self) -> bool:
        """Whether tokens are injected on a timer."""
        return self.tokens_per_second > 0

    @property
    def auto_requests(self) -> bool:
        """Whether requests are injected on a timer."""
        return self.requests_per_second > 0

    def items_of(self, kind: ItemKind) -> tuple[Item, ...]:
        """Items of the given kind, in creation order."""
        return tuple(item for item in self.items if item.kind is kind)
