"""
Activity Profile Domain Object
==============================

Per-user notification timing preferences: quiet hours, preferred reminder
times and the hours the user is usually active.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from growcare.utils.time import parse_time_of_day

DEFAULT_PREFERRED_TIMES = (time(9, 0), time(18, 0))
DEFAULT_QUIET_START = time(22, 0)
DEFAULT_QUIET_END = time(8, 0)
DEFAULT_ACTIVE_HOURS = frozenset({9, 10, 11, 17, 18, 19})


@dataclass(frozen=True)
class ActivityProfile:
    """User activity pattern.

    Quiet hours may wrap midnight (22:00-08:00). Equal start and end means no
    quiet window.
    """

    user_id: str
    preferred_times: tuple[time, ...] = DEFAULT_PREFERRED_TIMES
    quiet_hours_start: time = DEFAULT_QUIET_START
    quiet_hours_end: time = DEFAULT_QUIET_END
    most_active_hours: frozenset[int] = field(default=DEFAULT_ACTIVE_HOURS)
    average_response_minutes: int = 30
    timezone_name: str = "UTC"

    @classmethod
    def default(cls, user_id: str) -> "ActivityProfile":
        return cls(user_id=str(user_id))

    @property
    def tz(self):
        try:
            return ZoneInfo(self.timezone_name)
        except (ZoneInfoNotFoundError, ValueError):
            return timezone.utc

    def local(self, moment: datetime) -> datetime:
        return moment.astimezone(self.tz)

    def local_date(self, moment: datetime) -> date:
        return self.local(moment).date()

    def is_quiet(self, moment: datetime) -> bool:
        start, end = self.quiet_hours_start, self.quiet_hours_end
        if start == end:
            return False
        current = self.local(moment).time().replace(tzinfo=None)
        if start < end:
            return start <= current < end
        return current >= start or current < end

    def next_quiet_end(self, moment: datetime) -> datetime:
        """First quiet-hours end strictly after `moment`, in UTC."""
        local = self.local(moment)
        candidate = local.replace(
            hour=self.quiet_hours_end.hour,
            minute=self.quiet_hours_end.minute,
            second=0,
            microsecond=0,
        )
        if candidate <= local:
            candidate += timedelta(days=1)
        return candidate.astimezone(timezone.utc)

    def defer_past_quiet_hours(self, moment: datetime) -> datetime:
        return self.next_quiet_end(moment) if self.is_quiet(moment) else moment

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "preferred_times": [t.strftime("%H:%M") for t in self.preferred_times],
            "quiet_hours_start": self.quiet_hours_start.strftime("%H:%M"),
            "quiet_hours_end": self.quiet_hours_end.strftime("%H:%M"),
            "most_active_hours": sorted(self.most_active_hours),
            "average_response_minutes": self.average_response_minutes,
            "timezone": self.timezone_name,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ActivityProfile":
        """Create a profile from a dictionary; unparseable fields keep defaults."""
        preferred = tuple(
            t for t in (parse_time_of_day(v) for v in data.get("preferred_times") or []) if t is not None
        )
        hours = frozenset(int(h) for h in data.get("most_active_hours") or [] if 0 <= int(h) <= 23)
        return cls(
            user_id=str(data["user_id"]),
            preferred_times=preferred or DEFAULT_PREFERRED_TIMES,
            quiet_hours_start=parse_time_of_day(data.get("quiet_hours_start")) or DEFAULT_QUIET_START,
            quiet_hours_end=parse_time_of_day(data.get("quiet_hours_end")) or DEFAULT_QUIET_END,
            most_active_hours=hours or DEFAULT_ACTIVE_HOURS,
            average_response_minutes=int(data.get("average_response_minutes", 30)),
            timezone_name=data.get("timezone") or "UTC",
        )
