# src/arrakis/core/ewma
"""
EWMA update with spike protection.

The smoothed average follows ``new = alpha * count + (1 - alpha) * average``.
Once an average exists, a single observation may not exceed the prior average
by more than 200%; larger observations are clamped before blending.

Typical usage:
    >>> round(update_average(1.0, 100, 0.3), 6)
    1.6
"""

SPIKE_MAX_RATIO: float = 2.0


def clamp_spike(average: float, observed_count: float) -> float:
    """
    Limit an observation to at most `average + SPIKE_MAX_RATIO * average`.

    Args:
        average (float): The current smoothed average.
        observed_count (float): The raw message count.

    Returns:
        float: The effective count to blend into the average.
    """
    if average <= 0:
        return float(observed_count)
    max_delta = average * SPIKE_MAX_RATIO
    if observed_count - average > max_delta:
        return average + max_delta
    return float(observed_count)


def update_average(average: float, observed_count: float, alpha: float) -> float:
    """
    Blend a new observation into the exponentially weighted moving average.

    Args:
        average (float): The current smoothed average (0 means no prior signal).
        observed_count (float): Messages returned by the latest poll (>= 0).
        alpha (float): Smoothing factor in (0, 1].

    Returns:
        float: The updated average.
    """
    if average == 0:
        return alpha * observed_count

    effective = clamp_spike(average, observed_count)
    return alpha * effective + (1.0 - alpha) * average
