"""Delay schedules applied between retry attempts of a job."""

import math
import random
from typing import Optional

# Sinus schedule defaults, in seconds
BASE_DELAY = 1.0
MAX_DELAY = 20.0
MIN_OSCILLATION = 5
MAX_OSCILLATION = 30
JITTER_FACTOR = 0.1


class BackoffStrategy:
    """Maps a job's attempt count to the delay before its next attempt."""

    def delay(self, attempts: int) -> float:
        raise NotImplementedError

    def __call__(self, attempts: int) -> float:
        return self.delay(attempts)


class ExponentialBackoff(BackoffStrategy):
    """2^attempts seconds, optionally capped at ``max_delay``."""

    def __init__(self, base: float = 2.0, max_delay: Optional[float] = None):
        self.base = base
        self.max_delay = max_delay

    def delay(self, attempts: int) -> float:
        if attempts < 0:
            raise ValueError("attempts must be >= 0")
        try:
            delay = self.base ** attempts
        except OverflowError:
            delay = math.inf
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay


class SinusBackoff(BackoffStrategy):
    """Delay oscillating between ``base_delay`` and ``max_delay``, plus jitter.

    Every instance draws its own phase shift and jitter factor, so jobs
    retried on the same schedule drift apart instead of hitting the remote
    system in lockstep. The delay is bounded but not monotone in attempts.
    """

    def __init__(
        self,
        base_delay: float = BASE_DELAY,
        max_delay: float = MAX_DELAY,
        min_oscillation: int = MIN_OSCILLATION,
        max_oscillation: int = MAX_OSCILLATION,
        rng: Optional[random.Random] = None,
    ):
        if base_delay <= 0 or max_delay < base_delay:
            raise ValueError("require 0 < base_delay <= max_delay")
        rng = rng or random.Random()

        self.base_delay = base_delay
        self.max_delay = max_delay

        oscillation = (int(max_delay / base_delay) + int(max_oscillation / min_oscillation)) // 2
        self.oscillation = max(min_oscillation, min(oscillation, max_oscillation))

        self.phase_shift = rng.random()
        self.jitter_factor = rng.random() * JITTER_FACTOR

    def delay(self, attempts: int) -> float:
        if attempts < 0:
            raise ValueError("attempts must be >= 0")
        sin_factor = math.sin(attempts * math.pi / self.oscillation + self.phase_shift - math.pi / 2)

        # sin() is in [-1, 1]; scale onto [base_delay, max_delay]
        delay = self.base_delay + (sin_factor + 1.0) * (self.max_delay - self.base_delay) / 2.0
        return delay + self.jitter_factor * delay


def build_backoff(name: str, max_delay: Optional[float] = None) -> BackoffStrategy:
    """Create a fresh strategy instance by name (``sinus`` or ``exponential``)."""
    name = (name or "").lower()
    if name == "exponential":
        return ExponentialBackoff(max_delay=max_delay)
    if name == "sinus":
        return SinusBackoff()
    raise ValueError(f"unknown backoff strategy: {name}")
