"""Centralized exception hierarchy for GrowCare.

All domain and service exceptions inherit from :class:`GrowCareError` so that
callers can catch a single base class when they need a broad safety net, yet
still match on specific subclasses where narrower handling is appropriate.

Blueprint-level error handling (see ``growcare/utils/http.safe_route``) maps
these to the correct HTTP status codes automatically.

Hierarchy
---------
::

    GrowCareError (base: maps to 500)
    ├── ValidationError          (400: bad input from caller)
    ├── NotFoundError            (404: entity does not exist)
    ├── ServiceError             (500: business-logic failure)
    │   ├── RepositoryError      (500: database / persistence)
    │   ├── InvalidWindowError   (500: batch has no future delivery time)
    │   └── ExternalServiceError (502: third-party / network)
    │       └── DispatchFailure  (502: notification dispatcher rejected a send)
    └── ConfigurationError       (500: missing / invalid config or tables)
"""

from __future__ import annotations


class GrowCareError(Exception):
    """Base exception for all GrowCare application errors.

    Parameters
    ----------
    message:
        Human-readable description (logged server-side, **not** leaked to
        the HTTP client unless the exception class opts in).
    detail:
        Optional machine-readable context dict attached to the error for
        structured logging.
    """

    http_status: int = 500

    def __init__(self, message: str = "", *, detail: dict | None = None) -> None:
        super().__init__(message)
        self.detail = detail or {}


# ── Client errors (4xx) ──────────────────────────────────────────────


class ValidationError(GrowCareError):
    """Caller supplied invalid or incomplete input (HTTP 400)."""

    http_status: int = 400


class NotFoundError(GrowCareError):
    """Requested entity does not exist (HTTP 404)."""

    http_status: int = 404


# ── Server errors (5xx) ──────────────────────────────────────────────


class ServiceError(GrowCareError):
    """Business-logic failure in a service method (HTTP 500)."""

    http_status: int = 500


class RepositoryError(ServiceError):
    """Database / persistence layer failure (HTTP 500)."""

    http_status: int = 500


class InvalidWindowError(ServiceError):
    """A batch was due for dispatch but its delivery time already passed."""

    http_status: int = 500


class ExternalServiceError(ServiceError):
    """Third-party or network dependency failure (HTTP 502)."""

    http_status: int = 502


class DispatchFailure(ExternalServiceError):
    """The notification dispatcher failed to accept a notification."""

    http_status: int = 502


class ConfigurationError(GrowCareError):
    """Missing or invalid application configuration (HTTP 500)."""

    http_status: int = 500
