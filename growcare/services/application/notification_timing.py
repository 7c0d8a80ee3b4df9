"""
Notification Timing
===================

Turns a task's due date into the moment its reminder should fire:

1. optionally align the due date to the task type's preferred care hour
   (in the user's local time),
2. subtract the per-type lead time scaled by priority,
3. move non-critical reminders that land in quiet hours to the end of the
   quiet window,
4. clamp anything not in the future to one minute from now.

The batcher clamps again at dispatch, so a delivery time that lapsed while
the request waited in the queue or behind a retrying batch is still sent.

An optional focus window rejects requests due too far ahead.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Callable

from growcare.domain.notifications import NotificationBatchRequest
from growcare.domain.task_catalog import care_hour, lead_time_minutes
from growcare.enums import EscalationLevel, Priority
from growcare.services.application.activity_profile_service import ActivityProfileService
from growcare.utils.time import start_of_day, utc_now

logger = logging.getLogger(__name__)

MINIMUM_LEAD = timedelta(minutes=1)
ALIGNED_PAST_GRACE = timedelta(minutes=5)
CRITICAL_FOCUS_EXTRA_DAYS = 2


class NotificationTimingPolicy:
    def __init__(
        self,
        profiles: ActivityProfileService,
        *,
        align_to_care_hours: bool = False,
        focus_window_days: int = 0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.profiles = profiles
        self.align_to_care_hours = align_to_care_hours
        self.focus_window_days = focus_window_days
        self._clock = clock

    def prepare(self, request: NotificationBatchRequest) -> NotificationBatchRequest | None:
        """Return `request` with `notify_at` filled, or None if outside the focus window."""
        now = self._clock()
        if not self.in_focus_window(request, now):
            logger.debug("Task %s is outside the focus window; not scheduling", request.task_id)
            return None

        profile = self.profiles.get(request.user_id)
        target = request.due_date
        if self.align_to_care_hours:
            target = self._align(request, profile.tz, now)

        notify_at = target - timedelta(minutes=lead_time_minutes(request.task_type, request.priority))
        if request.priority != Priority.CRITICAL:
            notify_at = profile.defer_past_quiet_hours(notify_at)
        return request.timed(self.clamp_forward(notify_at, now))

    def clamp_forward(self, moment: datetime, now: datetime | None = None) -> datetime:
        """Push a delivery time that is not in the future to one minute from now."""
        now = now or self._clock()
        if moment <= now:
            return now + MINIMUM_LEAD
        return moment

    def in_focus_window(self, request: NotificationBatchRequest, now: datetime | None = None) -> bool:
        if self.focus_window_days <= 0:
            return True
        now = now or self._clock()
        days = self.focus_window_days
        if request.priority == Priority.CRITICAL:
            days += CRITICAL_FOCUS_EXTRA_DAYS
        return request.due_date < start_of_day(now) + timedelta(days=days + 1)

    def escalation_fire_in(self, user_id: str, level: EscalationLevel, now: datetime | None = None) -> int:
        """Seconds until an escalation reminder may fire; critical ignores quiet hours."""
        now = now or self._clock()
        if level == EscalationLevel.CRITICAL:
            return 1
        profile = self.profiles.get(user_id)
        if not profile.is_quiet(now):
            return 1
        return max(1, int((profile.next_quiet_end(now) - now).total_seconds()))

    def day_label(self, user_id: str, moment: datetime) -> str:
        """Human label for the local day of `moment` relative to today."""
        profile = self.profiles.get(user_id)
        today: date = profile.local_date(self._clock())
        target = profile.local_date(moment)
        delta = (target - today).days
        if delta == 0:
            return "Today"
        if delta == 1:
            return "Tomorrow"
        if delta == -1:
            return "Yesterday"
        if 1 < delta < 5:
            return f"Day {delta}"
        return target.strftime("%b %d")

    def _align(self, request: NotificationBatchRequest, tz, now: datetime) -> datetime:
        hour = care_hour(request.task_type, request.priority)
        local_due = request.due_date.astimezone(tz)
        aligned = local_due.replace(hour=hour, minute=0, second=0, microsecond=0).astimezone(request.due_date.tzinfo)
        if aligned <= now:
            return now + ALIGNED_PAST_GRACE
        return aligned
