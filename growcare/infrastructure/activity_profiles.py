"""In-process activity profile provider."""

from __future__ import annotations

import threading
from typing import Any, Mapping

from growcare.domain.activity_profile import ActivityProfile


class StaticActivityProfileProvider:
    """Profiles held in memory and replaced through ``set_profile``.

    Users without an entry get None so the caller falls back to defaults.
    """

    def __init__(self, profiles: Mapping[str, ActivityProfile] | None = None) -> None:
        self._profiles: dict[str, ActivityProfile] = {str(k): v for k, v in (profiles or {}).items()}
        self._lock = threading.Lock()

    def get(self, user_id: str) -> ActivityProfile | None:
        with self._lock:
            return self._profiles.get(str(user_id))

    def set_profile(self, profile: ActivityProfile | dict[str, Any]) -> ActivityProfile:
        if not isinstance(profile, ActivityProfile):
            profile = ActivityProfile.from_dict(profile)
        with self._lock:
            self._profiles[profile.user_id] = profile
        return profile

    def remove(self, user_id: str) -> bool:
        with self._lock:
            return self._profiles.pop(str(user_id), None) is not None
