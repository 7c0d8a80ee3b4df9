"""Cached access to per-user activity profiles."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

from growcare.domain.activity_profile import ActivityProfile
from growcare.services.protocols import ActivityProfileProvider
from growcare.utils.cache import TTLCache

logger = logging.getLogger(__name__)


class ActivityProfileService:
    """Wraps an ActivityProfileProvider with a per-user TTL cache.

    A user with no stored profile, or a provider failure, gets the default
    profile (09:00/18:00 reminders, quiet 22:00-08:00, UTC).
    """

    def __init__(
        self,
        provider: ActivityProfileProvider | None,
        *,
        cache_ttl_seconds: int = 300,
        cache_maxsize: int = 512,
    ) -> None:
        self._provider = provider
        self._cache = TTLCache(ttl_seconds=cache_ttl_seconds, maxsize=cache_maxsize)

    def get(self, user_id: str) -> ActivityProfile:
        user_id = str(user_id)
        return self._cache.get(user_id, lambda: self._load(user_id)) or ActivityProfile.default(user_id)

    def local_date(self, user_id: str, moment: datetime) -> date:
        return self.get(user_id).local_date(moment)

    def invalidate(self, user_id: str) -> None:
        self._cache.invalidate(str(user_id))

    def clear(self) -> None:
        self._cache.clear()

    def cache_stats(self) -> dict[str, Any]:
        return self._cache.get_stats()

    def _load(self, user_id: str) -> ActivityProfile:
        if self._provider is None:
            return ActivityProfile.default(user_id)
        try:
            profile = self._provider.get(user_id)
        except Exception as exc:
            logger.warning("Activity profile lookup failed for user %s: %s", user_id, exc)
            return ActivityProfile.default(user_id)
        return profile or ActivityProfile.default(user_id)
