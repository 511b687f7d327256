# src/arrakis/sim/profiles
"""
Synthetic message arrival profiles for offline polling simulations.

Each profile is a rate function (messages per second over simulated time).
Arrivals are drawn as a Poisson process, one bucket per simulated second.
"""
from dataclasses import dataclass
from typing import Callable, Dict

import numpy as np


@dataclass(frozen=True)
class TrafficProfile:
    name: str
    description: str
    rate: Callable[[float], float]


def _steady(t: float) -> float:
    return 3.0


def _bursty(t: float) -> float:
    # one minute of burst every two minutes
    return 15.0 if int(t // 60) % 2 == 0 else 0.2


def _idle_after_burst(t: float) -> float:
    return 20.0 if t < 120 else 0.0


def _drop(t: float) -> float:
    return 8.0 if t < 200 else 0.05


PROFILES: Dict[str, TrafficProfile] = {
    "steady": TrafficProfile("steady", "constant 3 msg/s", _steady),
    "bursty": TrafficProfile("bursty", "alternating 60s bursts of 15 msg/s and 0.2 msg/s", _bursty),
    "idle_after_burst": TrafficProfile("idle_after_burst", "20 msg/s for 120s, then silence", _idle_after_burst),
    "drop": TrafficProfile("drop", "8 msg/s for 200s, then 0.05 msg/s", _drop),
}


def generate_arrivals(profile: TrafficProfile, duration: float, rng: np.random.Generator) -> np.ndarray:
    """
    Draw sorted message arrival times for `profile` over `[0, duration)`.

    Args:
        profile (TrafficProfile): Arrival rate function.
        duration (float): Simulated seconds.
        rng (np.random.Generator): Random source.

    Returns:
        np.ndarray: Sorted arrival timestamps in seconds.
    """
    buckets = []
    for second in range(int(np.ceil(duration))):
        n = rng.poisson(max(profile.rate(float(second)), 0.0))
        if n:
            buckets.append(second + rng.random(n))
    if not buckets:
        return np.empty(0, dtype=float)
    arrivals = np.sort(np.concatenate(buckets))
    return arrivals[arrivals < duration]
