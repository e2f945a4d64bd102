from __future__ import annotations

import math
from datetime import datetime

from pubdash.modules.publicdashboards.application.timerange import resolve_time_range
from pubdash.modules.publicdashboards.domain.models import TimeSettings

# Upper bound on points per query, shared by the interval floor and maxDataPoints.
SAFE_RESOLUTION = 11000
# Largest accepted ratio between the point count of a rounded interval and SAFE_RESOLUTION.
MAX_OVERSHOOT = 1.25

# (raw interval upper bound ms, rounded interval ms)
_ROUNDING_STEPS: tuple[tuple[int, int], ...] = (
    (10, 1),
    (15, 10),
    (35, 20),
    (75, 50),
    (150, 100),
    (350, 200),
    (750, 500),
    (1_500, 1_000),
    (3_500, 2_000),
    (7_500, 5_000),
    (12_500, 10_000),
    (17_500, 15_000),
    (25_000, 20_000),
    (45_000, 30_000),
    (90_000, 60_000),
    (210_000, 120_000),
    (450_000, 300_000),
    (750_000, 600_000),
    (1_050_000, 900_000),
    (1_500_000, 1_200_000),
    (2_700_000, 1_800_000),
    (5_400_000, 3_600_000),
    (9_000_000, 7_200_000),
    (16_200_000, 10_800_000),
    (32_400_000, 21_600_000),
    (86_400_000, 43_200_000),
    (172_800_000, 86_400_000),
    (604_800_000, 86_400_000),
    (1_814_400_000, 604_800_000),
)
_ROUNDED_30_DAYS = 2_592_000_000
_ROUNDED_1_YEAR = 31_536_000_000
_TWO_MONTHS_MS = 3_628_800_000


def round_interval(interval_ms: float) -> int:
    for upper_bound, rounded in _ROUNDING_STEPS:
        if interval_ms <= upper_bound:
            return rounded
    if interval_ms < _TWO_MONTHS_MS:
        return _ROUNDED_30_DAYS
    return _ROUNDED_1_YEAR


def calculate_safe_interval_ms(duration_ms: int, resolution: int = SAFE_RESOLUTION) -> int:
    duration_ms = max(0, duration_ms)
    rounded = round_interval(duration_ms / resolution)
    # the table rounds down, so cap how far past the ceiling that can push the point count
    if duration_ms / rounded > resolution * MAX_OVERSHOOT:
        return max(1, math.ceil(duration_ms / resolution))
    return rounded


def get_safe_interval_and_max_data_points(
    interval_ms: int,
    max_data_points: int,
    time_settings: TimeSettings,
    *,
    now: datetime | None = None,
) -> tuple[int, int]:
    """Return ``(interval_ms, max_data_points)`` that keep the point count near ``SAFE_RESOLUTION``.

    The requested pair is kept only when both values are set and the requested
    interval is already coarser than the safe floor for the range. Anything else,
    including zero or negative input, gets the safe floor and the ceiling.
    """
    time_from, time_to = resolve_time_range(time_settings, now=now)
    safe_interval_ms = calculate_safe_interval_ms(time_to - time_from)

    if interval_ms > 0 and max_data_points > 0 and interval_ms > safe_interval_ms:
        return interval_ms, min(max_data_points, SAFE_RESOLUTION)
    return safe_interval_ms, SAFE_RESOLUTION
