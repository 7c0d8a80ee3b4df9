"""Development dispatcher that logs notifications instead of sending them."""

from __future__ import annotations

import itertools
import logging
from typing import Any

logger = logging.getLogger(__name__)


class LoggingDispatcher:
    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self.scheduled: dict[str, dict[str, Any]] = {}

    def schedule(self, title: str, body: str, data: dict[str, Any], fire_in_seconds: int) -> str:
        notification_id = f"local-{next(self._ids)}"
        self.scheduled[notification_id] = {
            "title": title,
            "body": body,
            "data": data,
            "fire_in_seconds": fire_in_seconds,
        }
        logger.info("[notify +%ss] %s | %s", fire_in_seconds, title, body)
        return notification_id

    def cancel(self, notification_id: str) -> None:
        if self.scheduled.pop(notification_id, None) is not None:
            logger.info("[notify] cancelled %s", notification_id)
