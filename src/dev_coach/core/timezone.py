# src/dev_coach/core/timezone.py

"""
Timezone boundary.

Everything persisted is UTC; everything shown to the user is local. The local
zone comes from the runtime configuration store (key "timezone") and is
re-resolved on every call, so `/config set timezone ...` takes effect at once.

This module also owns the check-in time-spec grammar:
- "HH:MM"          -> next occurrence of that local wall-clock time
- "2h 30m" / "2h" / "45m" -> local now plus the interval
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError, available_timezones

from .errors import ConfigError, ValidationError

DEFAULT_TIMEZONE = "America/New_York"
TIMEZONE_KEY = "timezone"

ConfigGetter = Callable[[str], str | None]
Clock = Callable[[], datetime]

FORMAT_ERROR = "Invalid format. Use HH:MM (e.g., '09:30') or interval (e.g., '2h 30m')"
CLOCK_RANGE_ERROR = "Invalid time: hour must be 0-23, minute must be 0-59"
EMPTY_INTERVAL_ERROR = "Invalid interval: must specify at least one hour or minute"
INTERVAL_RANGE_ERROR = "Invalid interval: too far in the future"

_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
_INTERVAL_RE = re.compile(r"^(?:(?P<h>\d+)\s*h)?\s*(?:(?P<m>\d+)\s*m)?$")


def utc_now() -> datetime:
    return datetime.now(UTC)


def is_valid_timezone(name: str | None) -> bool:
    if not name or not name.strip():
        return False
    try:
        ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def list_timezones() -> list[str]:
    return sorted(available_timezones())


def resolve_zone(config_get: ConfigGetter | None = None, *, default: str = DEFAULT_TIMEZONE) -> ZoneInfo:
    """
    Resolve the active zone.

    Absent/blank config -> `default`. A configured but unknown identifier is a
    configuration error and is raised, not replaced by the default.
    """
    name: str | None = None
    if config_get is not None:
        name = config_get(TIMEZONE_KEY)
    name = (name or "").strip() or default

    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigError(f"Invalid timezone: {name}. Use an IANA name such as 'Europe/Berlin'.") from e


def to_utc(dt: datetime, zone: ZoneInfo) -> datetime:
    """Naive datetimes are taken as wall-clock time in `zone`."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=zone)
    return dt.astimezone(UTC)


def to_local(dt: datetime, zone: ZoneInfo) -> datetime:
    """Naive datetimes are taken as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(zone)


def local_now(zone: ZoneInfo, *, clock: Clock = utc_now) -> datetime:
    return clock().astimezone(zone)


def to_epoch(dt: datetime) -> float:
    if dt.tzinfo is None:
        raise ValidationError("naive datetime cannot be persisted; attach a timezone first")
    return dt.timestamp()


def from_epoch(ts: float) -> datetime:
    return datetime.fromtimestamp(float(ts), UTC)


@dataclass(slots=True)
class TimeBoundary:
    """
    Zone + clock threaded explicitly through stores and the scheduler.

    `config_get` is usually ConfigStore.get; tests pass a lambda.
    """

    config_get: ConfigGetter | None = None
    default_zone: str = DEFAULT_TIMEZONE
    clock: Clock = utc_now

    def zone(self) -> ZoneInfo:
        return resolve_zone(self.config_get, default=self.default_zone)

    def now_utc(self) -> datetime:
        return self.clock().astimezone(UTC)

    def local_now(self) -> datetime:
        return local_now(self.zone(), clock=self.clock)

    def to_utc(self, dt: datetime) -> datetime:
        return to_utc(dt, self.zone())

    def to_local(self, dt: datetime) -> datetime:
        return to_local(dt, self.zone())


def _occurrences(day: date, hour: int, minute: int, zone: tzinfo) -> list[datetime]:
    """
    UTC instants at which the wall clock in `zone` reads HH:MM on `day`.

    Two during a fall-back overlap (earlier first). A time inside a
    spring-forward gap does not exist; it maps to the instant the same distance
    past the gap's start (02:30 -> 03:30 when clocks jump 02:00 -> 03:00).
    """
    naive = datetime.combine(day, time(hour, minute))
    first = naive.replace(tzinfo=zone, fold=0).astimezone(UTC)
    second = naive.replace(tzinfo=zone, fold=1).astimezone(UTC)
    if first == second:
        return [first]
    if first.astimezone(zone).replace(tzinfo=None) != naive:
        return [first]
    return sorted((first, second))


def next_clock_time(hour: int, minute: int, now_local: datetime) -> datetime:
    """
    Next occurrence of HH:MM in the zone of `now_local`.

    Candidates are compared as UTC instants, so a repeated hour in autumn is
    offered twice and never resolves to an instant that has already passed.
    The date shift is done on the wall-clock date so the result keeps HH:MM
    across DST changes.
    """
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValidationError(CLOCK_RANGE_ERROR)
    if now_local.tzinfo is None:
        raise ValidationError("now_local must be timezone-aware")

    zone = now_local.tzinfo
    now_utc = now_local.astimezone(UTC)
    for days_ahead in range(3):
        for instant in _occurrences(now_local.date() + timedelta(days=days_ahead), hour, minute, zone):
            if instant > now_utc:
                return instant.astimezone(zone)
    raise ValidationError(f"No upcoming {hour:02d}:{minute:02d} in {zone}")


def parse_interval(spec: str) -> timedelta:
    m = _INTERVAL_RE.match(spec.strip().lower())
    if not m or (m.group("h") is None and m.group("m") is None):
        raise ValidationError(FORMAT_ERROR)
    hours = int(m.group("h") or 0)
    minutes = int(m.group("m") or 0)
    if hours == 0 and minutes == 0:
        raise ValidationError(EMPTY_INTERVAL_ERROR)
    try:
        return timedelta(hours=hours, minutes=minutes)
    except OverflowError:
        raise ValidationError(INTERVAL_RANGE_ERROR) from None


def parse_time_spec(spec: str, now_local: datetime) -> datetime:
    """
    Turn a user time spec into an aware local datetime.

    Intervals are added as absolute durations (via UTC), clock times are
    resolved on the local calendar.
    """
    raw = (spec or "").strip()
    if not raw:
        raise ValidationError(FORMAT_ERROR)

    m = _CLOCK_RE.match(raw)
    if m:
        return next_clock_time(int(m.group(1)), int(m.group(2)), now_local)

    delta = parse_interval(raw)
    try:
        return (now_local.astimezone(UTC) + delta).astimezone(now_local.tzinfo)
    except OverflowError:
        raise ValidationError(INTERVAL_RANGE_ERROR) from None
