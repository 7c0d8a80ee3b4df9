"""
Care API
========

JSON endpoints under ``/api/care``. Every response uses the
``{"ok", "data", "error"}`` envelope from ``growcare.utils.http``.
"""

from growcare.blueprints.api.care import care_api

__all__ = ["care_api"]
