"""Push-gateway dispatcher speaking JSON over HTTP."""

from __future__ import annotations

import logging
from typing import Any

import requests

from growcare.domain.exceptions import DispatchFailure

logger = logging.getLogger(__name__)


class WebhookDispatcher:
    """
    Hands notifications to an HTTP push gateway.

    POST {base_url}/notifications with ``{"title", "body", "data",
    "fire_in_seconds"}`` must answer 2xx with ``{"id": "..."}``;
    DELETE {base_url}/notifications/{id} cancels a scheduled notification.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.setdefault("Content-Type", "application/json")

    def schedule(self, title: str, body: str, data: dict[str, Any], fire_in_seconds: int) -> str:
        payload = {"title": title, "body": body, "data": data, "fire_in_seconds": int(fire_in_seconds)}
        try:
            response = self._session.post(f"{self.base_url}/notifications", json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise DispatchFailure(f"Push gateway unreachable: {e}") from e

        if not response.ok:
            raise DispatchFailure(
                f"Push gateway rejected notification ({response.status_code})",
                detail={"status": response.status_code, "body": response.text[:200]},
            )
        try:
            notification_id = response.json().get("id")
        except ValueError as e:
            raise DispatchFailure("Push gateway returned a non-JSON response") from e
        if not notification_id:
            raise DispatchFailure("Push gateway response has no notification id")
        logger.debug("Scheduled notification %s in %ss", notification_id, fire_in_seconds)
        return str(notification_id)

    def cancel(self, notification_id: str) -> None:
        try:
            response = self._session.delete(
                f"{self.base_url}/notifications/{notification_id}",
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise DispatchFailure(f"Push gateway unreachable: {e}") from e
        if response.status_code == 404:
            logger.info("Notification %s already gone at the gateway", notification_id)
            return
        if not response.ok:
            raise DispatchFailure(f"Push gateway refused cancel of {notification_id} ({response.status_code})")

    def close(self) -> None:
        self._session.close()
