"""
Shared test fixtures for the GrowCare test suite.

Provides:
- In-memory SQLite database with the task table created
- A fixed, advanceable clock shared by every service fixture
- A recording dispatcher that can be told to fail
- Service factories for the care engine and its collaborators
- A Flask app built around a real ServiceContainer (scheduler idle)

Usage:
    def test_example(care_engine, make_plant):
        tasks = care_engine.generate_tasks_for_stage(make_plant())
        assert tasks
"""

from __future__ import annotations

import itertools
import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from growcare.domain.exceptions import DispatchFailure
from growcare.domain.notifications import NotificationBatchRequest
from growcare.domain.plant import PlantRecord
from growcare.enums import GrowthStage, Priority, TaskType
from growcare.infrastructure.activity_profiles import StaticActivityProfileProvider
from growcare.infrastructure.database.repositories.plant_tasks import PlantTaskRepository
from growcare.infrastructure.database.sqlite_handler import SQLiteDatabaseHandler
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

# ---------------------------------------------------------------------------
# Logging: keep test output clean
# ---------------------------------------------------------------------------
logging.getLogger("growcare").setLevel(logging.WARNING)

# Tuesday, midday UTC: outside the default 22:00-08:00 quiet hours.
FIXED_NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


# ========================== Test Doubles ===================================


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now += timedelta(**delta)
        return self.now


class RecordingDispatcher:
    """Dispatcher that records every call; `fail_next` makes the next N sends fail."""

    def __init__(self, fail_next: int = 0):
        self.sent: list[dict[str, Any]] = []
        self.cancelled: list[str] = []
        self.attempts = 0
        self.fail_next = fail_next
        self._ids = itertools.count(1)

    def schedule(self, title: str, body: str, data: dict[str, Any], fire_in_seconds: int) -> str:
        self.attempts += 1
        if self.fail_next > 0:
            self.fail_next -= 1
            raise DispatchFailure("push gateway unavailable")
        notification_id = f"n-{next(self._ids)}"
        self.sent.append(
            {
                "id": notification_id,
                "title": title,
                "body": body,
                "data": data,
                "fire_in_seconds": fire_in_seconds,
            }
        )
        return notification_id

    def cancel(self, notification_id: str) -> None:
        self.cancelled.append(notification_id)


class FakeTimer:
    """Stand-in for threading.Timer that never fires on its own."""

    created: list["FakeTimer"] = []

    def __init__(self, interval: float, function):
        self.interval = interval
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        self.function()


class InMemoryPlantDirectory:
    """Plant directory holding PlantRecords in a dict."""

    def __init__(self, plants: list[PlantRecord] | None = None):
        self.plants = {p.plant_id: p for p in plants or []}
        self.stage_updates: list[tuple[str, GrowthStage]] = []

    def list_plants(self) -> list[PlantRecord]:
        return list(self.plants.values())

    def update_stage(self, plant_id: str, stage: GrowthStage) -> bool:
        plant = self.plants.get(plant_id)
        if plant is None:
            return False
        self.plants[plant_id] = plant.with_stage(stage)
        self.stage_updates.append((plant_id, stage))
        return True


# ========================== Core Fixtures ==================================


@pytest.fixture()
def clock():
    return FixedClock()


@pytest.fixture()
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture()
def db_handler():
    """In-memory SQLite database with all tables created.

    Each test gets a fresh database.
    """
    handler = SQLiteDatabaseHandler(":memory:")
    handler.create_tables()
    yield handler


@pytest.fixture()
def task_repo(db_handler):
    """PlantTaskRepository backed by the in-memory DB."""
    return PlantTaskRepository(db_handler)


@pytest.fixture()
def strain_directory():
    """The bundled strain catalog."""
    return JsonStrainDirectory()


@pytest.fixture()
def strain_resolver(strain_directory):
    return StrainProfileResolver(strain_directory)


@pytest.fixture()
def profile_provider():
    return StaticActivityProfileProvider()


@pytest.fixture()
def profile_service(profile_provider):
    return ActivityProfileService(profile_provider)


@pytest.fixture()
def timing(profile_service, clock):
    return NotificationTimingPolicy(profile_service, clock=clock)


@pytest.fixture()
def sleeps():
    """Collects the delays passed to the batcher's sleep function."""
    return []


@pytest.fixture()
def batcher(dispatcher, timing, clock, sleeps):
    """NotificationBatcher with no real sleeping, zero jitter and a manual timer."""
    return NotificationBatcher(
        dispatcher,
        timing,
        clock=clock,
        sleep=sleeps.append,
        jitter_ms=lambda: 0.0,
        timer_factory=FakeTimer,
    )


@pytest.fixture()
def escalation(task_repo, dispatcher, timing, clock):
    return EscalationTracker(task_repo, dispatcher, timing, clock=clock)


@pytest.fixture()
def generator(strain_resolver, clock):
    return TaskGenerator(strain_resolver, clock=clock)


@pytest.fixture()
def detector(strain_resolver, clock):
    return StageTransitionDetector(strain_resolver, clock=clock)


@pytest.fixture()
def plant_directory():
    return InMemoryPlantDirectory()


@pytest.fixture()
def care_engine(task_repo, strain_resolver, generator, detector, batcher, escalation, plant_directory):
    """CareEngine wired to real services, the in-memory DB and the recording dispatcher."""
    return CareEngine(
        task_store=task_repo,
        strain_resolver=strain_resolver,
        generator=generator,
        adjuster=ScheduleAdjuster(),
        detector=detector,
        flowering=FloweringPredictor(strain_resolver),
        batcher=batcher,
        escalation=escalation,
        plant_directory=plant_directory,
    )


# ========================== Factories ======================================


@pytest.fixture()
def make_plant():
    """Factory for PlantRecords; defaults to a vegetative plant with no strain."""

    def _make(
        plant_id: str = "p1",
        *,
        user_id: str = "u1",
        name: str = "Basil",
        stage: GrowthStage | None = GrowthStage.VEGETATIVE,
        strain_id: str | None = None,
        planted_days_ago: float | None = 20,
        cannabis_type: str | None = None,
    ) -> PlantRecord:
        planted = FIXED_NOW - timedelta(days=planted_days_ago) if planted_days_ago is not None else None
        return PlantRecord(
            plant_id=plant_id,
            user_id=user_id,
            name=name,
            strain_id=strain_id,
            planted_date=planted,
            growth_stage=stage,
            cannabis_type=cannabis_type,
            raw_stage=stage.value if stage else None,
        )

    return _make


@pytest.fixture()
def make_request():
    """Factory for NotificationBatchRequests due relative to FIXED_NOW."""

    def _make(
        task_id: str = "t1",
        *,
        plant_id: str = "p1",
        plant_name: str = "Basil",
        task_type: TaskType = TaskType.WATERING,
        due_in: timedelta = timedelta(hours=4),
        priority: Priority = Priority.MEDIUM,
        user_id: str = "u1",
    ) -> NotificationBatchRequest:
        return NotificationBatchRequest(
            task_id=task_id,
            plant_id=plant_id,
            plant_name=plant_name,
            task_type=task_type,
            title=f"Water {plant_name}" if task_type == TaskType.WATERING else f"{task_type} {plant_name}",
            due_date=FIXED_NOW + due_in,
            priority=priority,
            user_id=user_id,
        )

    return _make


# ========================== Flask App ======================================


@pytest.fixture()
def app_dispatcher():
    return RecordingDispatcher()


@pytest.fixture()
def app(app_dispatcher):
    """Flask app around a real container: in-memory DB, scheduler idle.

    pytest-flask provides the `client` fixture from this.
    """
    from growcare import create_app

    flask_app = create_app(
        {
            "database_path": ":memory:",
            "scheduler_enabled": False,
            "batch_timeout_seconds": 3600.0,
        },
        dispatcher=app_dispatcher,
    )
    flask_app.config["TESTING"] = True
    yield flask_app
    flask_app.extensions["growcare_shutdown"]("test teardown")


@pytest.fixture()
def container(app):
    return app.config["CONTAINER"]
