from datetime import timedelta
from unittest.mock import MagicMock

from growcare.domain.plant_task import EnvironmentalConditions
from growcare.enums import CancelOutcome, GrowthStage, Priority, TaskStatus, TaskType

from conftest import FIXED_NOW, InMemoryPlantDirectory

TODAY = FIXED_NOW.replace(hour=0)


class TestGenerationPersistence:
    def test_stage_tasks_are_stored(self, care_engine, task_repo, make_plant):
        created = care_engine.generate_tasks_for_stage(make_plant())
        stored = task_repo.query("p1")
        assert len(created) == len(stored) == 12
        assert {t.task_id for t in created} == {t.task_id for t in stored}
        assert stored[0].due_date == TODAY

    def test_strain_specific_tasks_are_stored_adjusted(self, care_engine, task_repo, make_plant):
        care_engine.generate_strain_specific_tasks(make_plant(strain_id="sour-diesel"))
        watering = [t for t in task_repo.query("p1") if t.task_type == TaskType.WATERING]
        assert watering[0].due_date == TODAY - timedelta(hours=5)
        assert watering[0].description.endswith("Strain-specific: Sour Diesel (sativa)")

    def test_recurring_series(self, care_engine, task_repo, make_plant):
        care_engine.generate_recurring_tasks(make_plant(), TaskType.FEEDING, 7)
        stored = task_repo.query("p1")
        assert [t.sequence_number for t in stored] == [1, 2, 3, 4, 5]

    def test_rejected_tasks_are_left_out(self, care_engine, make_plant):
        store = MagicMock()
        store.create.side_effect = lambda task: None if task.task_type == TaskType.PRUNING else task
        care_engine.task_store = store
        created = care_engine.generate_tasks_for_stage(make_plant())
        assert len(created) == 11
        assert store.create.call_count == 12


class TestConditions:
    def test_low_humidity_updates_stored_watering_tasks(self, care_engine, task_repo, make_plant):
        care_engine.generate_tasks_for_stage(make_plant())
        care_engine.generate_tasks_for_stage(make_plant("p2"))

        applied = care_engine.adjust_for_conditions("p1", {"humidity": 30})
        assert len(applied) == 3

        watering = [t for t in task_repo.query("p1") if t.task_type == TaskType.WATERING]
        assert watering[0].due_date == TODAY - timedelta(hours=6)
        assert watering[0].priority == Priority.HIGH
        assert watering[0].environmental_conditions == {"humidity": 30.0}

        untouched = [t for t in task_repo.query("p2") if t.task_type == TaskType.WATERING]
        assert untouched[0].due_date == TODAY

    def test_completed_tasks_are_not_adjusted(self, care_engine, task_repo, make_plant):
        tasks = care_engine.generate_recurring_tasks(make_plant(), TaskType.WATERING, 10)
        for task in tasks:
            task_repo.set_status(task.task_id, TaskStatus.COMPLETED)
        assert care_engine.adjust_for_conditions("p1", EnvironmentalConditions(humidity=90)) == []


class TestStageTransitions:
    def test_advance_records_stage_and_generates_tasks(self, care_engine, plant_directory, task_repo, make_plant):
        plant = make_plant(stage=GrowthStage.GERMINATION, planted_days_ago=8)
        plant_directory.plants[plant.plant_id] = plant

        next_stage, tasks = care_engine.advance_stage(plant)
        assert next_stage == GrowthStage.SEEDLING
        assert tasks
        assert all(t.growth_stage == GrowthStage.SEEDLING for t in tasks)
        assert plant_directory.stage_updates == [("p1", GrowthStage.SEEDLING)]
        assert len(task_repo.query("p1")) == len(tasks)

    def test_no_transition(self, care_engine, make_plant):
        assert care_engine.advance_stage(make_plant(planted_days_ago=1)) == (None, [])
        assert care_engine.detect_stage_transition(make_plant(planted_days_ago=1)) is None

    def test_sweep_over_directory(self, care_engine, plant_directory, make_plant):
        plant_directory.plants.update(
            {
                "p1": make_plant("p1", stage=GrowthStage.GERMINATION, planted_days_ago=8),
                "p2": make_plant("p2", stage=GrowthStage.VEGETATIVE, planted_days_ago=5),
            }
        )
        summary = care_engine.run_stage_transition_sweep()
        assert summary["checked"] == 2
        assert [a["plant_id"] for a in summary["advanced"]] == ["p1"]
        assert summary["advanced"][0]["stage"] == "seedling"
        assert summary["errors"] == []
        assert plant_directory.plants["p1"].growth_stage == GrowthStage.SEEDLING

    def test_sweep_collects_per_plant_errors(self, care_engine, make_plant):
        broken = MagicMock(spec=InMemoryPlantDirectory)
        broken.list_plants.return_value = [make_plant(stage=GrowthStage.GERMINATION, planted_days_ago=8)]
        broken.update_stage.side_effect = RuntimeError("read-only replica")
        care_engine.plant_directory = broken
        summary = care_engine.run_stage_transition_sweep()
        assert summary["checked"] == 1
        assert summary["advanced"] == []
        assert summary["errors"] == ["p1: read-only replica"]

    def test_sweep_without_directory(self, care_engine):
        care_engine.plant_directory = None
        assert care_engine.run_stage_transition_sweep()["errors"] == ["no plant directory configured"]

    def test_flowering_prediction(self, care_engine, make_plant):
        prediction = care_engine.predict_flowering_and_harvest(make_plant(strain_id="northern-lights"))
        assert prediction.expected_flowering_start == FIXED_NOW - timedelta(days=20) + timedelta(days=49)


class TestNotifications:
    def test_task_notification_round_trip(self, care_engine, dispatcher, make_plant):
        [task, *_] = care_engine.generate_recurring_tasks(
            make_plant(), TaskType.INSPECTION, 3, end_date=TODAY + timedelta(days=1)
        )
        task.due_date = FIXED_NOW + timedelta(hours=3)
        assert care_engine.enqueue_task_notification(task, "Basil")
        [result] = care_engine.flush_notifications()
        assert result.scheduled == 1
        assert dispatcher.sent[0]["data"]["task_ids"] == [task.task_id]

    def test_cancel_forgets_escalation_state(self, care_engine, make_plant):
        [task, *_] = care_engine.generate_recurring_tasks(make_plant(), TaskType.WATERING, 10)
        care_engine.run_escalation_sweep(FIXED_NOW + timedelta(hours=1))
        assert care_engine.escalation.get_state(task.task_id) is not None

        assert care_engine.cancel_notification(task.task_id) == CancelOutcome.NOT_FOUND
        assert care_engine.escalation.get_state(task.task_id) is None

    def test_reschedule_replaces_pending_request(self, care_engine, dispatcher, make_request):
        request = make_request("t1", due_in=timedelta(hours=4))
        care_engine.enqueue_notification(request)
        assert care_engine.reschedule_notification(request, FIXED_NOW + timedelta(hours=8))
        assert care_engine.batcher.pending_count() == 1
        care_engine.flush_notifications()
        assert dispatcher.sent[0]["fire_in_seconds"] == 7 * 3600 + 45 * 60

    def test_stats_sections(self, care_engine):
        stats = care_engine.notification_stats()
        assert set(stats) == {"batching", "escalation", "strain_cache"}
        assert stats["batching"]["pending"] == 0
        assert stats["escalation"]["tracked"] == 0
