"""
Configuration for the GrowCare scheduling engine
================================================
Runtime settings for task generation, notification batching, escalation and
the background scheduler, loaded from ``GROWCARE_*`` environment variables.
Sets up the logging configuration as well.
"""

import os
from contextlib import suppress
from dataclasses import dataclass, field
from typing import Any

from growcare.domain.exceptions import ConfigurationError
from growcare.enums import BatchType
from growcare.utils.time import parse_time_of_day


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "t", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer.") from None


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be a number.") from None


@dataclass
class AppConfig:
    """Runtime configuration loaded from environment variables."""

    environment: str = field(default_factory=lambda: os.getenv("GROWCARE_ENV", "development"))
    DEBUG: bool = field(default_factory=lambda: _env_bool("GROWCARE_DEBUG", False))
    log_level: str = field(default_factory=lambda: os.getenv("GROWCARE_LOG_LEVEL", "INFO"))
    database_path: str = field(default_factory=lambda: os.getenv("GROWCARE_DATABASE_PATH", "database/growcare.db"))

    # Task generation
    task_horizon_days: int = field(default_factory=lambda: _env_int("GROWCARE_TASK_HORIZON_DAYS", 7))
    recurring_horizon_days: int = field(default_factory=lambda: _env_int("GROWCARE_RECURRING_HORIZON_DAYS", 30))
    strain_catalog_path: str = field(default_factory=lambda: os.getenv("GROWCARE_STRAIN_CATALOG_PATH", ""))
    strain_cache_ttl_seconds: int = field(default_factory=lambda: _env_int("GROWCARE_STRAIN_CACHE_TTL", 600))

    # Notification batching
    batch_max_size: int = field(default_factory=lambda: _env_int("GROWCARE_BATCH_MAX_SIZE", 20))
    batch_timeout_seconds: float = field(default_factory=lambda: _env_float("GROWCARE_BATCH_TIMEOUT_SECONDS", 5.0))
    dispatch_max_retries: int = field(default_factory=lambda: _env_int("GROWCARE_DISPATCH_MAX_RETRIES", 3))
    retry_base_delay_ms: int = field(default_factory=lambda: _env_int("GROWCARE_RETRY_BASE_DELAY_MS", 2000))
    retry_cap_ms: int = field(default_factory=lambda: _env_int("GROWCARE_RETRY_CAP_MS", 15000))
    batch_strategy_order: str = field(
        default_factory=lambda: os.getenv("GROWCARE_BATCH_STRATEGY_ORDER", "daily,plant_grouped,priority_grouped")
    )
    align_to_care_hours: bool = field(default_factory=lambda: _env_bool("GROWCARE_ALIGN_TO_CARE_HOURS", False))
    focus_window_days: int = field(default_factory=lambda: _env_int("GROWCARE_FOCUS_WINDOW_DAYS", 0))
    activity_profile_ttl_seconds: int = field(default_factory=lambda: _env_int("GROWCARE_ACTIVITY_PROFILE_TTL", 300))

    # Dispatcher (empty webhook URL logs notifications instead of sending them)
    dispatch_webhook_url: str = field(default_factory=lambda: os.getenv("GROWCARE_DISPATCH_WEBHOOK_URL", ""))
    dispatch_timeout_seconds: float = field(default_factory=lambda: _env_float("GROWCARE_DISPATCH_TIMEOUT", 10.0))

    # Background scheduler
    scheduler_enabled: bool = field(default_factory=lambda: _env_bool("GROWCARE_SCHEDULER_ENABLED", True))
    scheduler_workers: int = field(default_factory=lambda: _env_int("GROWCARE_SCHEDULER_WORKERS", 2))
    escalation_sweep_interval_seconds: int = field(
        default_factory=lambda: _env_int("GROWCARE_ESCALATION_SWEEP_INTERVAL", 300)
    )
    stage_sweep_time: str = field(default_factory=lambda: os.getenv("GROWCARE_STAGE_SWEEP_TIME", "00:15"))
    notification_flush_interval_seconds: int = field(
        default_factory=lambda: _env_int("GROWCARE_NOTIFICATION_FLUSH_INTERVAL", 60)
    )

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        problems: list[str] = []
        if self.batch_max_size < 1:
            problems.append("GROWCARE_BATCH_MAX_SIZE must be at least 1")
        if self.retry_cap_ms < self.retry_base_delay_ms:
            problems.append("GROWCARE_RETRY_CAP_MS must not be below GROWCARE_RETRY_BASE_DELAY_MS")
        if self.focus_window_days < 0:
            problems.append("GROWCARE_FOCUS_WINDOW_DAYS must not be negative")
        if parse_time_of_day(self.stage_sweep_time) is None:
            problems.append(f"GROWCARE_STAGE_SWEEP_TIME must be HH:MM (got {self.stage_sweep_time!r})")
        try:
            self.strategy_order
        except ValueError as exc:
            problems.append(str(exc))
        if problems:
            raise ConfigurationError("Invalid configuration", detail={"problems": problems})

    @property
    def strategy_order(self) -> tuple[BatchType, ...]:
        """Parsed batch strategy order; each strategy may appear once."""
        names = [name.strip() for name in self.batch_strategy_order.split(",") if name.strip()]
        try:
            order = tuple(BatchType(name) for name in names)
        except ValueError:
            raise ValueError(f"Unknown batch strategy in {self.batch_strategy_order!r}") from None
        if not order or len(set(order)) != len(order):
            raise ValueError(f"Batch strategy order must list distinct strategies (got {self.batch_strategy_order!r})")
        if BatchType.DAILY not in order:
            raise ValueError(f"Batch strategy order must include daily (got {self.batch_strategy_order!r})")
        return order

    def as_flask_config(self) -> dict[str, Any]:
        """Render configuration values for Flask application."""
        return {
            "ENV": self.environment,
            "DEBUG": self.DEBUG,
            "DATABASE_PATH": self.database_path,
            "JSON_SORT_KEYS": False,
        }


def setup_logging(debug: bool = False) -> None:
    """Setup logging configuration."""
    import logging
    import sys
    from logging.handlers import RotatingFileHandler

    log_level = logging.DEBUG if debug else logging.INFO

    root = logging.getLogger()
    root.setLevel(log_level)

    # Avoid duplicate handlers when create_app is called multiple times
    has_console = any(getattr(h, "name", "") == "growcare_console" for h in root.handlers)
    has_file = any(getattr(h, "name", "") == "growcare_file" for h in root.handlers)
    added_handler = False

    stream = sys.stdout
    with suppress(AttributeError, ValueError):
        stream.reconfigure(encoding="utf-8", errors="replace")
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    if not has_console:
        console_handler = logging.StreamHandler(stream=stream)
        console_handler.name = "growcare_console"
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)
        added_handler = True

    if not has_file:
        os.makedirs("logs", exist_ok=True)
        file_handler = RotatingFileHandler(
            "logs/growcare.log",
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.name = "growcare_file"
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
        added_handler = True

    for handler in root.handlers:
        if getattr(handler, "name", "") in {"growcare_console", "growcare_file"}:
            handler.setLevel(log_level)

    if added_handler:
        root.info("Logging initialized at level: %s", logging.getLevelName(log_level))

    if _env_bool("GROWCARE_SILENCE_WERKZEUG", True):
        logging.getLogger("werkzeug").setLevel(logging.WARNING)
    # Webhook dispatch logs one line per request otherwise
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def load_config() -> AppConfig:
    """Helper for callers to load and validate configuration."""
    return AppConfig()
