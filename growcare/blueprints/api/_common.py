"""
Blueprint Common Utilities
==========================

Shared helpers for the API blueprints: service container access and request
body parsing.
"""
from __future__ import annotations

from flask import current_app, request

from growcare.domain.exceptions import ValidationError


def get_container():
    """
    Get the service container from Flask app config.

    Raises:
        RuntimeError: If container is not configured
    """
    container = current_app.config.get("CONTAINER")
    if not container:
        raise RuntimeError("ServiceContainer not found in app config")
    return container


def get_care_engine():
    return get_container().care_engine


def get_json(*, required: bool = True) -> dict:
    """
    Get the JSON request body.

    Raises:
        ValidationError: body missing (when required) or not a JSON object
    """
    raw = request.get_json(silent=True)
    if raw is None:
        if required:
            raise ValidationError("Request body is required")
        return {}
    if not isinstance(raw, dict):
        raise ValidationError("Request body must be a JSON object")
    return raw
