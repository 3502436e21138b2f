"""Timestamp parsing and calendar-day ranges for report filtering."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Any, Iterator, Mapping, Optional

from .errors import InvalidReportRequest

# Epoch values above this are milliseconds (year 5138 in seconds)
_EPOCH_MS_THRESHOLD = 1e11


def parse_timestamp(value: Any, tz: Optional[tzinfo] = None) -> Optional[datetime]:
    """Parse a stored timestamp, returning ``None`` when it cannot be read.

    Aware values are converted into ``tz`` (system local time when omitted);
    naive values are taken to be local already.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time())
    elif isinstance(value, (int, float)):
        seconds = value / 1000.0 if abs(value) > _EPOCH_MS_THRESHOLD else value
        try:
            parsed = datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(tz)
    return parsed


def order_timestamp(order: Mapping[str, Any], tz: Optional[tzinfo] = None) -> Optional[datetime]:
    """Return when the order was placed, preferring ``orderedAt`` over ``createdAt``."""
    ordered_at = parse_timestamp(order.get("orderedAt"), tz)
    if ordered_at is not None:
        return ordered_at
    return parse_timestamp(order.get("createdAt"), tz)


def _as_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError as e:
        raise InvalidReportRequest(f"Invalid date {value!r}") from e


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of local calendar days."""

    start: date
    end: date

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", _as_date(self.start))
        object.__setattr__(self, "end", _as_date(self.end))
        if self.start > self.end:
            raise InvalidReportRequest(f"Date range starts after it ends: {self.start} > {self.end}")

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def __contains__(self, day: object) -> bool:
        if isinstance(day, datetime):
            day = day.date()
        return isinstance(day, date) and self.start <= day <= self.end

    def __iter__(self) -> Iterator[date]:
        for offset in range(self.days):
            yield self.start + timedelta(days=offset)

    def bounds(self, tz: Optional[tzinfo] = None) -> tuple[datetime, datetime]:
        """Return ``[start, end)`` datetimes covering the range in ``tz``."""
        lower = datetime.combine(self.start, time())
        upper = datetime.combine(self.end + timedelta(days=1), time())
        if tz is not None:
            return lower.replace(tzinfo=tz), upper.replace(tzinfo=tz)
        lower, upper = lower.astimezone(), upper.astimezone()
        return lower, upper
