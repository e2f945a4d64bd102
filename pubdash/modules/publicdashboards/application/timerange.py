from __future__ import annotations

import calendar
import re
from datetime import datetime, timedelta, timezone
from typing import Any

from pubdash.errors import PublicDashboardValidationError
from pubdash.modules.publicdashboards.domain.models import TimeSettings

DEFAULT_TIME_FROM = "now-6h"
DEFAULT_TIME_TO = "now"

_RELATIVE_RE = re.compile(r"^now(?P<offsets>(?:[+-]\d+[smhdwMy])*)(?:/(?P<round>[smhdwMy]))?$")
_OFFSET_RE = re.compile(r"([+-])(\d+)([smhdwMy])")

_FIXED_UNITS = {
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
    "w": timedelta(weeks=1),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _invalid(value: str) -> PublicDashboardValidationError:
    return PublicDashboardValidationError(
        code="invalid_time_expression",
        message=f"Invalid time expression: {value!r}",
    )


def _add_months(value: datetime, months: int) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return value.replace(year=year, month=month, day=min(value.day, last_day))


def _shift(value: datetime, amount: int, unit: str) -> datetime:
    if unit == "M":
        return _add_months(value, amount)
    if unit == "y":
        return _add_months(value, amount * 12)
    return value + _FIXED_UNITS[unit] * amount


def _round(value: datetime, unit: str, round_up: bool) -> datetime:
    start = value.replace(microsecond=0)
    if unit in ("m", "h", "d", "w", "M", "y"):
        start = start.replace(second=0)
    if unit in ("h", "d", "w", "M", "y"):
        start = start.replace(minute=0)
    if unit in ("d", "w", "M", "y"):
        start = start.replace(hour=0)
    if unit == "w":
        start = start - timedelta(days=start.weekday())
    if unit in ("M", "y"):
        start = start.replace(day=1)
    if unit == "y":
        start = start.replace(month=1)

    if not round_up:
        return start
    return _shift(start, 1, unit) - timedelta(milliseconds=1)


def parse_time_expression(value: str, *, now: datetime | None = None, round_up: bool = False) -> datetime:
    """Resolve a dashboard time expression to an aware UTC datetime.

    Accepts ``now`` with optional offsets and rounding (``now-7d/d``), epoch
    milliseconds and ISO-8601 timestamps.
    """
    text = (value or "").strip()
    if not text:
        raise _invalid(value)

    if text.isdigit():
        return datetime.fromtimestamp(int(text) / 1000, tz=timezone.utc)

    match = _RELATIVE_RE.match(text)
    if match:
        result = now or _utcnow()
        for sign, amount, unit in _OFFSET_RE.findall(match.group("offsets")):
            result = _shift(result, int(amount) if sign == "+" else -int(amount), unit)
        if match.group("round"):
            result = _round(result, match.group("round"), round_up)
        return result

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise _invalid(value) from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_epoch_ms(value: datetime) -> int:
    return round(value.timestamp() * 1000)


def resolve_time_range(time_settings: TimeSettings, *, now: datetime | None = None) -> tuple[int, int]:
    current = now or _utcnow()
    time_from = parse_time_expression(time_settings.from_ or DEFAULT_TIME_FROM, now=current)
    time_to = parse_time_expression(time_settings.to or DEFAULT_TIME_TO, now=current, round_up=True)
    return to_epoch_ms(time_from), to_epoch_ms(time_to)


def build_time_settings(dashboard_data: dict[str, Any], *, now: datetime | None = None) -> TimeSettings:
    """Resolve the dashboard's own time picker range to epoch milliseconds.

    Query backends cache on absolute ranges, so relative expressions are pinned
    to the request time here.
    """
    raw_time = dashboard_data.get("time")
    raw_time = raw_time if isinstance(raw_time, dict) else {}
    raw_from = raw_time.get("from")
    raw_to = raw_time.get("to")
    time_from, time_to = resolve_time_range(
        TimeSettings(
            from_=str(raw_from) if raw_from not in (None, "") else None,
            to=str(raw_to) if raw_to not in (None, "") else None,
        ),
        now=now,
    )
    return TimeSettings(from_=str(time_from), to=str(time_to))
