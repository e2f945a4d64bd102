import math
from datetime import datetime, timezone

import pytest

from pubdash.errors import PublicDashboardValidationError
from pubdash.modules.publicdashboards.application.intervals import (
    MAX_OVERSHOOT,
    SAFE_RESOLUTION,
    calculate_safe_interval_ms,
    get_safe_interval_and_max_data_points,
    round_interval,
)
from pubdash.modules.publicdashboards.application.timerange import (
    build_time_settings,
    parse_time_expression,
    resolve_time_range,
    to_epoch_ms,
)
from pubdash.modules.publicdashboards.domain.models import TimeSettings


@pytest.mark.parametrize(
    ("time_from", "interval_ms", "max_data_points", "expected"),
    [
        ("now-3h", 10000, 300, (10000, 300)),
        ("now-6h", 1000, 300, (2000, SAFE_RESOLUTION)),
        ("now-90d", 100, 300, (600000, SAFE_RESOLUTION)),
        ("now-90d", 0, 0, (600000, SAFE_RESOLUTION)),
        ("now-90d", -5, -1, (600000, SAFE_RESOLUTION)),
    ],
)
def test_safe_interval_and_max_data_points(
    fixed_now: datetime,
    time_from: str,
    interval_ms: int,
    max_data_points: int,
    expected: tuple[int, int],
) -> None:
    result = get_safe_interval_and_max_data_points(
        interval_ms,
        max_data_points,
        TimeSettings(from_=time_from, to="now"),
        now=fixed_now,
    )
    assert result == expected


def test_requested_max_data_points_never_exceed_ceiling(fixed_now: datetime) -> None:
    _, max_data_points = get_safe_interval_and_max_data_points(
        60_000,
        1_000_000,
        TimeSettings(from_="now-1h", to="now"),
        now=fixed_now,
    )
    assert max_data_points == SAFE_RESOLUTION


@pytest.mark.parametrize(
    "time_from",
    ["now-5m", "now-1h", "now-24h", "now-7d", "now-30d", "now-90d", "now-1y", "now-10y", "now-60y", "now-100y", "0"],
)
def test_point_count_stays_near_ceiling(fixed_now: datetime, time_from: str) -> None:
    settings = TimeSettings(from_=time_from, to="now")
    interval_ms, _ = get_safe_interval_and_max_data_points(1, 1, settings, now=fixed_now)
    time_from_ms, time_to_ms = resolve_time_range(settings, now=fixed_now)
    assert (time_to_ms - time_from_ms) / interval_ms <= SAFE_RESOLUTION * MAX_OVERSHOOT


def test_coarse_rounding_falls_back_to_exact_floor(fixed_now: datetime) -> None:
    settings = TimeSettings(from_="now-100y", to="now")
    time_from_ms, time_to_ms = resolve_time_range(settings, now=fixed_now)

    interval_ms, max_data_points = get_safe_interval_and_max_data_points(100, 300, settings, now=fixed_now)

    assert interval_ms == math.ceil((time_to_ms - time_from_ms) / SAFE_RESOLUTION)
    assert max_data_points == SAFE_RESOLUTION
    # rounded steps are kept while they stay within the tolerance
    assert calculate_safe_interval_ms(90 * 86_400_000) == 600_000


def test_round_interval_table() -> None:
    assert round_interval(0) == 1
    assert round_interval(706_909) == 600_000
    assert round_interval(1_963) == 2_000
    assert round_interval(10**12) == 31_536_000_000
    assert calculate_safe_interval_ms(-10) == 1


def test_parse_relative_expressions(fixed_now: datetime) -> None:
    assert parse_time_expression("now", now=fixed_now) == fixed_now
    assert parse_time_expression("now-6h", now=fixed_now) == datetime(2026, 1, 15, 6, 0, tzinfo=timezone.utc)
    assert parse_time_expression("now-1M", now=fixed_now) == datetime(2025, 12, 15, 12, 0, tzinfo=timezone.utc)
    assert parse_time_expression("now/d", now=fixed_now) == datetime(2026, 1, 15, tzinfo=timezone.utc)
    rounded_up = parse_time_expression("now/d", now=fixed_now, round_up=True)
    assert rounded_up == datetime(2026, 1, 15, 23, 59, 59, 999000, tzinfo=timezone.utc)


def test_parse_absolute_expressions() -> None:
    assert to_epoch_ms(parse_time_expression("1700000000000")) == 1700000000000
    assert parse_time_expression("2026-01-01T00:00:00") == datetime(2026, 1, 1, tzinfo=timezone.utc)


@pytest.mark.parametrize("value", ["", "yesterday", "now-6x"])
def test_invalid_time_expression(value: str) -> None:
    with pytest.raises(PublicDashboardValidationError) as exc_info:
        parse_time_expression(value)
    assert exc_info.value.code == "invalid_time_expression"


def test_build_time_settings_uses_dashboard_range(fixed_now: datetime) -> None:
    settings = build_time_settings({"time": {"from": "now-1h", "to": "now"}}, now=fixed_now)
    assert settings.to == str(to_epoch_ms(fixed_now))
    assert int(settings.to) - int(settings.from_) == 3_600_000


def test_build_time_settings_defaults_to_last_six_hours(fixed_now: datetime) -> None:
    settings = build_time_settings({}, now=fixed_now)
    assert int(settings.to) - int(settings.from_) == 6 * 3_600_000
