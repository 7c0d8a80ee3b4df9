from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from growcare.config import AppConfig
from growcare.domain.validation import validate_tables
from growcare.infrastructure.activity_profiles import StaticActivityProfileProvider
from growcare.infrastructure.database.repositories.plant_tasks import PlantTaskRepository
from growcare.infrastructure.database.sqlite_handler import SQLiteDatabaseHandler
from growcare.infrastructure.dispatch import LoggingDispatcher, WebhookDispatcher
from growcare.infrastructure.strain_directory import JsonStrainDirectory
from growcare.services.application.activity_profile_service import ActivityProfileService
from growcare.services.application.care_engine import CareEngine
from growcare.services.application.escalation_tracker import EscalationTracker
from growcare.services.application.flowering_predictor import FloweringPredictor
from growcare.services.application.notification_batcher import NotificationBatcher
from growcare.services.application.notification_timing import NotificationTimingPolicy
from growcare.services.application.schedule_adjuster import ScheduleAdjuster
from growcare.services.application.stage_transition_detector import StageTransitionDetector
from growcare.services.application.strain_profile_resolver import StrainProfileResolver
from growcare.services.application.task_generator import TaskGenerator
from growcare.services.protocols import Dispatcher, PlantDirectory
from growcare.workers.unified_scheduler import UnifiedScheduler

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Aggregate and manage the care engine and its collaborators."""

    config: AppConfig
    database: SQLiteDatabaseHandler
    task_repo: PlantTaskRepository
    strain_directory: JsonStrainDirectory
    strain_resolver: StrainProfileResolver
    activity_provider: StaticActivityProfileProvider
    activity_profiles: ActivityProfileService
    dispatcher: Dispatcher
    batcher: NotificationBatcher
    escalation: EscalationTracker
    care_engine: CareEngine
    scheduler: UnifiedScheduler
    plant_directory: Optional[PlantDirectory] = None

    @classmethod
    def build(
        cls,
        config: AppConfig,
        *,
        start_scheduler: bool | None = None,
        dispatcher: Dispatcher | None = None,
        plant_directory: PlantDirectory | None = None,
    ) -> "ServiceContainer":
        """Construct the service container with all dependencies.

        Args:
            config: Application configuration
            start_scheduler: Override ``config.scheduler_enabled``
            dispatcher: Notification transport; defaults to the webhook
                dispatcher when a URL is configured, else the logging one
            plant_directory: Plant source for the daily stage sweep
        """
        logger.info("Building ServiceContainer...")
        validate_tables()

        database = SQLiteDatabaseHandler(config.database_path)
        database.create_tables()
        task_repo = PlantTaskRepository(database)

        strain_directory = JsonStrainDirectory(config.strain_catalog_path or None)
        strain_resolver = StrainProfileResolver(
            strain_directory,
            cache_ttl_seconds=config.strain_cache_ttl_seconds,
        )

        activity_provider = StaticActivityProfileProvider()
        activity_profiles = ActivityProfileService(
            activity_provider,
            cache_ttl_seconds=config.activity_profile_ttl_seconds,
        )

        if dispatcher is None:
            dispatcher = _default_dispatcher(config)

        timing = NotificationTimingPolicy(
            activity_profiles,
            align_to_care_hours=config.align_to_care_hours,
            focus_window_days=config.focus_window_days,
        )
        batcher = NotificationBatcher(
            dispatcher,
            timing,
            max_batch_size=config.batch_max_size,
            batch_timeout_seconds=config.batch_timeout_seconds,
            max_retries=config.dispatch_max_retries,
            retry_base_delay_ms=config.retry_base_delay_ms,
            retry_cap_ms=config.retry_cap_ms,
            strategy_order=config.strategy_order,
        )
        escalation = EscalationTracker(
            task_repo,
            dispatcher,
            timing,
            plant_name_lookup=_plant_name_lookup(plant_directory) if plant_directory is not None else None,
        )

        care_engine = CareEngine(
            task_store=task_repo,
            strain_resolver=strain_resolver,
            generator=TaskGenerator(
                strain_resolver,
                horizon_days=config.task_horizon_days,
                recurring_horizon_days=config.recurring_horizon_days,
            ),
            adjuster=ScheduleAdjuster(),
            detector=StageTransitionDetector(strain_resolver),
            flowering=FloweringPredictor(strain_resolver),
            batcher=batcher,
            escalation=escalation,
            plant_directory=plant_directory,
        )

        container = cls(
            config=config,
            database=database,
            task_repo=task_repo,
            strain_directory=strain_directory,
            strain_resolver=strain_resolver,
            activity_provider=activity_provider,
            activity_profiles=activity_profiles,
            dispatcher=dispatcher,
            batcher=batcher,
            escalation=escalation,
            care_engine=care_engine,
            scheduler=UnifiedScheduler(max_workers=config.scheduler_workers),
            plant_directory=plant_directory,
        )

        # Tasks need the full container, so the scheduler is configured last.
        from growcare.workers.scheduled_tasks import configure_scheduler

        if start_scheduler is None:
            start_scheduler = config.scheduler_enabled
        try:
            configure_scheduler(container.scheduler, container, start=start_scheduler)
        except Exception as e:
            raise RuntimeError("Failed to initialize UnifiedScheduler") from e

        logger.info("ServiceContainer built successfully (scheduler %s)", "running" if start_scheduler else "idle")
        return container

    def shutdown(self) -> None:
        """Release external resources before process exit."""
        try:
            self.scheduler.shutdown()
            logger.info("UnifiedScheduler stopped")
        except Exception as e:
            logger.warning("Failed to stop UnifiedScheduler: %s", e)

        self.care_engine.shutdown()

        close = getattr(self.dispatcher, "close", None)
        if callable(close):
            close()
        self.database.close_db()


def _default_dispatcher(config: AppConfig) -> Dispatcher:
    if config.dispatch_webhook_url:
        logger.info("Dispatching notifications to %s", config.dispatch_webhook_url)
        return WebhookDispatcher(config.dispatch_webhook_url, timeout=config.dispatch_timeout_seconds)
    logger.warning("No dispatch webhook configured; notifications will only be logged")
    return LoggingDispatcher()


def _plant_name_lookup(directory: PlantDirectory):
    def lookup(plant_id: str) -> str | None:
        for plant in directory.list_plants():
            if plant.plant_id == plant_id:
                return plant.name
        return None

    return lookup
