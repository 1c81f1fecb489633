"""Bursty interarrival times from a Gamma-modulated Poisson process.

BurstyRequestGenerator produces request spacing with a fixed long-run mean
rate and a tunable burstiness:

- burstiness == 0: deterministic spacing of exactly 1 / mean_rps
- burstiness > 0: an exponential gap scaled by a Gamma(1/b, b) factor.
  The factor has mean 1, so the average rate is unchanged while the
  variance of the spacing grows with burstiness.

Gamma samples use the Marsaglia-Tsang squeeze method for shape >= 1 and the
``gamma(1 + shape) * U ** (1 / shape)`` boost for shape < 1. Normal deviates
come from the Box-Muller transform.

Randomness is drawn from an injectable source so tests can pass a seeded
``random.Random``.
"""

from __future__ import annotations

import logging
import math
import random

import numpy as np

from tokenbucketsim.model import RandomSource

logger = logging.getLogger(__name__)


class BurstyRequestGenerator:
    """Generates request arrivals at a mean rate with random spacing.

    Supports two styles of use:
    - ``next_interarrival_time()`` returns a single gap, statelessly.
    - ``tick(delta_time)`` advances an internal clock and reports whether an
      arrival happened during the tick.

    Args:
        mean_rps: Mean arrival rate (arrivals per unit time). Must be > 0.
        burstiness: Coefficient >= 0 controlling spacing variance.
        rng: Uniform random source. Defaults to a fresh ``random.Random``.
    """

    def __init__(
        self,
        mean_rps: float,
        burstiness: float,
        rng: RandomSource | None = None,
    ):
        self.mean_rps = mean_rps
        self.burstiness = burstiness
        self.next_event_time = 0.0
        self.current_time = 0.0
        self._rng = rng if rng is not None else random.Random()

    def reset(self) -> None:
        """Restart the internal clock. The next tick reports an arrival."""
        self.current_time = 0.0
        self.next_event_time = 0.0
        logger.debug(
            "Generator reset: mean_rps=%s burstiness=%s", self.mean_rps, self.burstiness
        )

    def set_mean_rps(self, mean_rps: float) -> None:
        self.mean_rps = mean_rps
        self.reset()

    def set_burstiness(self, burstiness: float) -> None:
        self.burstiness = burstiness
        self.reset()

    def next_interarrival_time(self) -> float:
        """Time until the next arrival."""
        if self.burstiness == 0:
            return 1 / self.mean_rps

        base_time = -math.log(1.0 - self._rng.random()) / self.mean_rps
        gamma_factor = self.gamma_sample(1 / self.burstiness, self.burstiness)
        return base_time * gamma_factor

    def gamma_sample(self, shape: float, scale: float) -> float:
        """Draw from Gamma(shape, scale)."""
        if shape < 1:
            u = self._rng.random()
            return self.gamma_sample(1 + shape, scale) * u ** (1 / shape)

        d = shape - 1 / 3
        c = 1 / math.sqrt(9 * d)

        while True:
            x = self.normal_sample()
            v = 1 + c * x
            while v <= 0:
                x = self.normal_sample()
                v = 1 + c * x

            v = v * v * v
            u = self._rng.random()

            if u < 1 - 0.0331 * x**4:
                return d * v * scale
            if u > 0 and math.log(u) < 0.5 * x * x + d * (1 - v + math.log(v)):
                return d * v * scale

    def normal_sample(self) -> float:
        """Standard normal deviate via Box-Muller."""
        u = 0.0
        v = 0.0
        while u == 0:
            u = self._rng.random()
        while v == 0:
            v = self._rng.random()
        return math.sqrt(-2 * math.log(u)) * math.cos(2 * math.pi * v)

    def tick(self, delta_time: float) -> bool:
        """Advance the clock by ``delta_time``.

        Returns:
            True if an arrival is due during this tick, False otherwise.
        """
        self.current_time += delta_time

        if self.current_time >= self.next_event_time:
            self.next_event_time += self.next_interarrival_time()
            return True
        return False

    def sample(self, n: int) -> np.ndarray:
        """Draw ``n`` independent interarrival times."""
        return np.fromiter(
            (self.next_interarrival_time() for _ in range(n)),
            dtype=float,
            count=n,
        )
