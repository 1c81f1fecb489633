"""Frame-by-frame state transitions for the token bucket simulation.

All functions are pure: they take a ``SimulationState`` and return a new one.
The caller (usually ``FrameLoop``) owns the current snapshot and decides
when to advance it.

A frame does the following, in order:
1. Advance the frame counter and the token/request countdowns.
2. If a token is due, inject it and restart the frame. Otherwise, if an
   automatic request is due, inject it and restart the frame.
3. Age every item, move it along its path, and resolve items that reach
   the bucket against a level accumulator shared by the whole frame.
4. Remove tokens that arrived and resolved requests whose lifetime is over.

The engine does not validate its inputs. Rates must be non-negative and the
frame rate positive; a rate of zero disables that timer.
"""

from __future__ import annotations

import logging
import random
from dataclasses import replace

from tokenbucketsim.model import (
    ARRIVAL_POSITION,
    DROPPED_ITEM_LIFETIME,
    EXIT_POSITION,
    FRAMES_TO_REACH_BUCKET,
    PROCESSED_ITEM_LIFETIME,
    Bucket,
    Item,
    ItemKind,
    RandomSource,
    SimulationState,
)

logger = logging.getLogger(__name__)


def frames_between(frames_per_second: float, rate: float) -> int:
    """Number of frames between two timer events at ``rate`` per second.

    Returns 0 when the rate is zero or negative, which callers treat as
    "timer disabled".
    """
    if rate <= 0:
        return 0
    return int(frames_per_second // rate)


def create_initial_state(
    max_level: int,
    tokens_per_second: float,
    frames_per_second: int,
    requests_per_second: float = 0,
    request_burstiness: float = 0,
) -> SimulationState:
    """Build the starting snapshot with a full bucket and no items.

    Args:
        max_level: Bucket capacity. The bucket starts full.
        tokens_per_second: Token replenishment rate.
        frames_per_second: Frame cadence of the driver.
        requests_per_second: Automatic request rate (0 = manual requests only).
        request_burstiness: Spread of initial ages for automatic requests.
    """
    return SimulationState(
        bucket=Bucket(level=max_level, max_level=max_level),
        items=(),
        next_id=1,
        frame_count=0,
        tokens_per_second=tokens_per_second,
        frames_per_second=frames_per_second,
        frames_until_next_token=frames_between(frames_per_second, tokens_per_second),
        requests_per_second=requests_per_second,
        request_burstiness=request_burstiness,
        frames_until_next_request=frames_between(frames_per_second, requests_per_second),
    )


def add_request(
    state: SimulationState,
    burstiness: float = 0,
    rng: RandomSource | None = None,
) -> SimulationState:
    """Append a new request item.

    With ``burstiness > 0`` the request starts with a random age in
    ``[0, floor(burstiness * FRAMES_TO_REACH_BUCKET / 2))`` so it appears part
    of the way to the bucket. The request countdown is reset only when
    automatic requests are enabled.
    """
    initial_age = 0
    if burstiness > 0:
        source = rng if rng is not None else random
        max_offset = int(burstiness * FRAMES_TO_REACH_BUCKET // 2)
        initial_age = int(source.random() * max_offset)

    item = Item(
        id=state.next_id,
        age=initial_age,
        position=ARRIVAL_POSITION * initial_age // FRAMES_TO_REACH_BUCKET,
        kind=ItemKind.REQUEST,
    )
    logger.debug(
        "Request %d added at frame %d (age=%d)", item.id, state.frame_count, initial_age
    )

    if state.auto_requests:
        countdown = frames_between(state.frames_per_second, state.requests_per_second)
    else:
        countdown = state.frames_until_next_request

    return replace(
        state,
        items=state.items + (item,),
        next_id=state.next_id + 1,
        frames_until_next_request=countdown,
    )


def add_token(state: SimulationState) -> SimulationState:
    """Append a new token item and restart the token countdown."""
    item = Item(id=state.next_id, age=0, position=0, kind=ItemKind.TOKEN)
    logger.debug("Token %d added at frame %d", item.id, state.frame_count)
    return replace(
        state,
        items=state.items + (item,),
        next_id=state.next_id + 1,
        frames_until_next_token=frames_between(
            state.frames_per_second, state.tokens_per_second
        ),
    )


def set_bucket_size(state: SimulationState, new_size: int) -> SimulationState:
    """Change the bucket capacity, clamping the current level to fit."""
    return replace(
        state,
        bucket=Bucket(level=min(state.bucket.level, new_size), max_level=new_size),
    )


def set_tokens_per_second(state: SimulationState, tokens_per_second: float) -> SimulationState:
    """Change the replenishment rate and restart the token countdown."""
    return replace(
        state,
        tokens_per_second=tokens_per_second,
        frames_until_next_token=frames_between(state.frames_per_second, tokens_per_second),
    )


def set_requests_per_second(state: SimulationState, requests_per_second: float) -> SimulationState:
    """Change the automatic request rate and restart the request countdown."""
    return replace(
        state,
        requests_per_second=requests_per_second,
        frames_until_next_request=frames_between(state.frames_per_second, requests_per_second),
    )


def set_request_burstiness(state: SimulationState, burstiness: float) -> SimulationState:
    return replace(state, request_burstiness=burstiness)


def update_state(state: SimulationState, rng: RandomSource | None = None) -> SimulationState:
    """Advance the simulation by one frame.

    When a token or an automatic request becomes due, it is injected and the
    frame restarts from the timer step, so the new item is aged alongside
    the existing ones. Tokens take priority over requests, and a timer fires
    again whenever a restart brings its countdown back to zero.

    Firing depends only on the two countdowns, so a countdown pair that
    repeats within one call would restart forever (an interval of one frame
    or less, or both timers locked in step). The cascade stops there and the
    due timer fires on the next call.

    Args:
        state: The current snapshot.
        rng: Random source for bursty request ages. Defaults to ``random``.

    Returns:
        The snapshot for the next frame.
    """
    state = _advance_timers(state)
    seen: set[tuple[int, int]] = set()

    while True:
        countdowns = (state.frames_until_next_token, state.frames_until_next_request)
        token_due = state.auto_tokens and state.frames_until_next_token == 0
        request_due = state.auto_requests and state.frames_until_next_request == 0
        if not (token_due or request_due):
            break
        if countdowns in seen:
            logger.debug("Timer cascade cut at frame %d", state.frame_count)
            break
        seen.add(countdowns)

        if token_due:
            state = _advance_timers(add_token(state))
        else:
            state = _advance_timers(add_request(state, state.request_burstiness, rng))

    return _advance_items(state)


def format_state(state: SimulationState) -> str:
    """Render the snapshot as a short multi-line summary.

    Example:
        Bucket: 5/10 tokens
        Tokens: [15]
        Requests: [30]
        Dropped: [180]
        Processed: [150]
    """

    def ages(kind: ItemKind) -> str:
        return ", ".join(str(item.age) for item in state.items_of(kind))

    return "\n".join(
        [
            f"Bucket: {state.bucket.level}/{state.bucket.max_level} tokens",
            f"Tokens: [{ages(ItemKind.TOKEN)}]",
            f"Requests: [{ages(ItemKind.REQUEST)}]",
            f"Dropped: [{ages(ItemKind.DROPPED)}]",
            f"Processed: [{ages(ItemKind.PROCESSED)}]",
        ]
    )


def _advance_timers(state: SimulationState) -> SimulationState:
    frames_until_next_request = state.frames_until_next_request
    if state.auto_requests:
        frames_until_next_request = max(0, frames_until_next_request - 1)
    return replace(
        state,
        frame_count=state.frame_count + 1,
        frames_until_next_token=max(0, state.frames_until_next_token - 1),
        frames_until_next_request=frames_until_next_request,
    )


def _position(kind: ItemKind, age: int) -> int:
    if kind.is_pending:
        return min(ARRIVAL_POSITION, ARRIVAL_POSITION * age // FRAMES_TO_REACH_BUCKET)
    # Processed and dropped items share the outbound scale.
    departed = ARRIVAL_POSITION * (age - FRAMES_TO_REACH_BUCKET) // PROCESSED_ITEM_LIFETIME
    return min(EXIT_POSITION, ARRIVAL_POSITION + departed)


def _expired(kind: ItemKind, age: int) -> bool:
    if kind is ItemKind.PROCESSED:
        return age > FRAMES_TO_REACH_BUCKET + PROCESSED_ITEM_LIFETIME
    if kind is ItemKind.DROPPED:
        return age > FRAMES_TO_REACH_BUCKET + DROPPED_ITEM_LIFETIME
    return False


def _advance_items(state: SimulationState) -> SimulationState:
    level = state.bucket.level
    max_level = state.bucket.max_level
    kept: list[Item] = []

    for item in state.items:
        age = item.age + 1
        kind = item.kind
        position = _position(kind, age)

        if position == ARRIVAL_POSITION and kind.is_pending:
            if kind is ItemKind.TOKEN:
                if level < max_level:
                    level += 1
                    logger.debug("Token %d absorbed (level=%d)", item.id, level)
                else:
                    logger.debug("Token %d wasted, bucket full", item.id)
                continue

            if level > 0:
                level -= 1
                kind = ItemKind.PROCESSED
                logger.debug("Request %d processed (level=%d)", item.id, level)
            else:
                kind = ItemKind.DROPPED
                logger.debug("Request %d dropped, bucket empty", item.id)

        if _expired(kind, age):
            continue

        kept.append(Item(id=item.id, age=age, position=position, kind=kind))

    return replace(
        state,
        bucket=Bucket(level=level, max_level=max_level),
        items=tuple(kept),
    )
