"""
Service protocols (structural typing interfaces).

The care engine depends on five external collaborators. Each is declared here
as the minimal surface the engine calls, so hosts can plug in any
implementation and tests can pass simple stubs or mocks.

At runtime the concrete adapters in ``growcare.infrastructure`` satisfy these
protocols via structural subtyping; no explicit inheritance needed.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Protocol, runtime_checkable

from growcare.domain.activity_profile import ActivityProfile
from growcare.domain.plant import PlantRecord
from growcare.domain.plant_task import PlantTask, TaskMutation
from growcare.enums import GrowthStage, TaskStatus


@runtime_checkable
class TaskStore(Protocol):
    """CRUD access to persisted plant tasks."""

    def create(self, task: PlantTask) -> PlantTask | None:
        """Persist a new task and return it, or None on failure."""
        ...

    def get(self, task_id: str) -> PlantTask | None:
        ...

    def query(
        self,
        plant_id: str | None = None,
        *,
        status: TaskStatus | None = None,
        due_before: datetime | None = None,
    ) -> list[PlantTask]:
        """Return tasks matching every given filter, ordered by due date."""
        ...

    def update(self, task_id: str, mutation: TaskMutation) -> bool:
        ...


@runtime_checkable
class StrainDirectory(Protocol):
    """Read-only strain lookup."""

    def lookup(self, strain_id: str) -> Mapping[str, Any] | None:
        """Return the raw strain record (catalog or user shape), or None."""
        ...


@runtime_checkable
class Dispatcher(Protocol):
    """Notification delivery transport."""

    def schedule(self, title: str, body: str, data: dict[str, Any], fire_in_seconds: int) -> str:
        """Schedule a notification and return its id.

        Raises:
            DispatchFailure: the transport rejected or could not accept it
        """
        ...

    def cancel(self, notification_id: str) -> None:
        ...


@runtime_checkable
class ActivityProfileProvider(Protocol):
    def get(self, user_id: str) -> ActivityProfile | None:
        ...


@runtime_checkable
class PlantDirectory(Protocol):
    """Plant source used by the periodic stage-transition sweep."""

    def list_plants(self) -> list[PlantRecord]:
        ...

    def update_stage(self, plant_id: str, stage: GrowthStage) -> bool:
        ...
