"""
Care API Routes
===============

Task generation, environmental adjustment, stage transitions, flowering
prediction, notification batching and escalation sweeps.

Plant data is owned by the host application, so plant routes take the plant
record in the request body; ``plant_id`` always comes from the path.
"""

from __future__ import annotations

import logging

from flask import Blueprint, Response

from growcare.blueprints.api._common import get_care_engine, get_container, get_json
from growcare.domain.exceptions import NotFoundError, ValidationError
from growcare.enums import CancelOutcome, GrowthStage
from growcare.schemas import (
    ActivityProfileRequest,
    ConditionsRequest,
    GenerateTasksRequest,
    NotificationRequest,
    PlantRequest,
    RecurringTasksRequest,
    StageTransitionRequest,
)
from growcare.utils.http import error_response, safe_route, success_response

logger = logging.getLogger(__name__)

care_api = Blueprint("care_api", __name__, url_prefix="/api/care")


@care_api.errorhandler(404)
def not_found(error):
    return error_response("Resource not found", 404)


@care_api.errorhandler(405)
def method_not_allowed(error):
    return error_response("Method not allowed", 405)


# ==================== Task generation ====================


@care_api.post("/plants/<plant_id>/tasks/generate")
@safe_route("Failed to generate tasks")
def generate_tasks(plant_id: str) -> Response:
    """
    Generate and persist the tasks of a growth stage.

    Request body:
    {
        "plant": {"user_id": "7", "name": "Blue #1", "growth_stage": "vegetative", ...},
        "stage": "flowering",        (optional, defaults to the plant's stage)
        "strain_specific": true      (optional)
    }
    """
    body = GenerateTasksRequest.model_validate(get_json())
    plant = body.plant.to_record(plant_id)

    stage = plant.growth_stage
    if body.stage is not None:
        stage = GrowthStage.parse(body.stage)
        if stage is None:
            raise ValidationError(f"Unknown growth stage: {body.stage}")
    if stage is None:
        raise ValidationError(f"Unknown growth stage: {plant.raw_stage}")

    engine = get_care_engine()
    if body.strain_specific:
        tasks = engine.generate_strain_specific_tasks(plant, stage)
    else:
        tasks = engine.generate_tasks_for_stage(plant, stage)
    return success_response({"tasks": [t.to_dict() for t in tasks], "count": len(tasks)}, 201)


@care_api.post("/plants/<plant_id>/tasks/recurring")
@safe_route("Failed to generate recurring tasks")
def generate_recurring_tasks(plant_id: str) -> Response:
    """Generate and persist a fixed-interval task series."""
    body = RecurringTasksRequest.model_validate(get_json())
    tasks = get_care_engine().generate_recurring_tasks(
        body.plant.to_record(plant_id),
        body.task_type,
        body.interval_days,
        body.end_date,
    )
    return success_response({"tasks": [t.to_dict() for t in tasks], "count": len(tasks)}, 201)


# ==================== Adjustment / transitions ====================


@care_api.post("/plants/<plant_id>/conditions")
@safe_route("Failed to adjust tasks for conditions")
def adjust_for_conditions(plant_id: str) -> Response:
    """Apply the latest humidity / pH / temperature readings to pending tasks."""
    body = ConditionsRequest.model_validate(get_json())
    mutations = get_care_engine().adjust_for_conditions(plant_id, body.to_conditions())
    return success_response({"adjusted": [m.to_dict() for m in mutations], "count": len(mutations)})


@care_api.post("/plants/<plant_id>/stage-transition")
@safe_route("Failed to check stage transition")
def stage_transition(plant_id: str) -> Response:
    """Report the next stage when the plant has outgrown its current one.

    With ``"advance": true`` the transition is also recorded and the new
    stage's tasks are generated.
    """
    body = StageTransitionRequest.model_validate(get_json())
    plant = body.plant.to_record(plant_id)
    engine = get_care_engine()

    if body.advance:
        next_stage, tasks = engine.advance_stage(plant)
    else:
        next_stage, tasks = engine.detect_stage_transition(plant), []

    return success_response(
        {
            "plant_id": plant.plant_id,
            "current_stage": plant.growth_stage.value if plant.growth_stage else plant.raw_stage,
            "next_stage": next_stage.value if next_stage else None,
            "tasks": [t.to_dict() for t in tasks],
        }
    )


@care_api.post("/plants/<plant_id>/flowering-prediction")
@safe_route("Failed to predict flowering")
def flowering_prediction(plant_id: str) -> Response:
    body = PlantRequest.model_validate(get_json())
    prediction = get_care_engine().predict_flowering_and_harvest(body.plant.to_record(plant_id))
    if prediction is None:
        raise ValidationError("Plant has no planted date")
    return success_response(prediction.to_dict())


# ==================== Notifications ====================


@care_api.post("/notifications")
@safe_route("Failed to queue notification")
def enqueue_notification() -> Response:
    """
    Queue a task reminder for batched delivery.

    Returns 202 when queued and 200 with ``queued: false`` when the timing
    policy drops the request (outside the focus window).
    """
    body = NotificationRequest.model_validate(get_json())
    queued = get_care_engine().enqueue_notification(body.to_request())
    return success_response({"task_id": body.task_id, "queued": queued}, 202 if queued else 200)


@care_api.delete("/notifications/<task_id>")
@safe_route("Failed to cancel notification")
def cancel_notification(task_id: str) -> Response:
    outcome = get_care_engine().cancel_notification(task_id)
    if outcome is CancelOutcome.NOT_FOUND:
        raise NotFoundError(f"No notification for task {task_id}")
    return success_response({"task_id": task_id, "outcome": outcome.value})


@care_api.post("/notifications/flush")
@safe_route("Failed to flush notifications")
def flush_notifications() -> Response:
    results = get_care_engine().flush_notifications()
    return success_response(
        {
            "batches": [r.to_dict() for r in results],
            "scheduled": sum(r.scheduled for r in results),
            "failed": sum(r.failed for r in results),
            "skipped": sum(r.skipped for r in results),
        }
    )


@care_api.get("/notifications/stats")
@safe_route("Failed to get notification stats")
def notification_stats() -> Response:
    return success_response(get_care_engine().notification_stats())


@care_api.post("/escalations/sweep")
@safe_route("Failed to run escalation sweep")
def run_escalation_sweep() -> Response:
    report = get_care_engine().run_escalation_sweep()
    return success_response(report.to_dict())


# ==================== Activity profiles ====================


@care_api.put("/users/<user_id>/activity-profile")
@safe_route("Failed to update activity profile")
def update_activity_profile(user_id: str) -> Response:
    """Replace a user's quiet hours and reminder preferences."""
    body = ActivityProfileRequest.model_validate(get_json())
    container = get_container()
    profile = container.activity_provider.set_profile(body.to_profile(user_id))
    container.activity_profiles.invalidate(user_id)
    logger.info("Updated activity profile for user %s", user_id)
    return success_response(profile.to_dict())
