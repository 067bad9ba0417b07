"""Threshold policy deciding the minimum fill ratio for collection."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_THRESHOLD = 0.2
SKIP_LOW_FILL_FLOOR = 0.3
EMERGENCY_ONLY_FLOOR = 0.6
COMMERCIAL_DISCOUNT = 0.05
COMMERCIAL_FLOOR = 0.1
THRESHOLD_CEILING = 0.9


@dataclass(slots=True, frozen=True)
class ThresholdFlags:
    skip_low_fill: bool = False
    emergency_only: bool = False
    prioritize_commercial: bool = False


def resolve_threshold(base_threshold: float | None = DEFAULT_THRESHOLD, flags: ThresholdFlags | None = None) -> float:
    """Apply operator flags to the base ratio.

    Flags apply in a fixed order (skip-low-fill, emergency-only,
    prioritize-commercial) and the result never exceeds 0.9, so some bins
    always remain eligible.
    """
    flags = flags or ThresholdFlags()
    threshold = DEFAULT_THRESHOLD if base_threshold is None else max(0.0, float(base_threshold))

    if flags.skip_low_fill:
        threshold = max(threshold, SKIP_LOW_FILL_FLOOR)
    if flags.emergency_only:
        threshold = max(threshold, EMERGENCY_ONLY_FLOOR)
    if flags.prioritize_commercial:
        threshold = max(threshold - COMMERCIAL_DISCOUNT, COMMERCIAL_FLOOR)

    return min(threshold, THRESHOLD_CEILING)
