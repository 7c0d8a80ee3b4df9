import threading
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from growcare.domain.plant_task import PlantTask
from growcare.enums import EscalationLevel, TaskStatus, TaskType
from growcare.services.application.escalation_tracker import EscalationTracker

from conftest import FIXED_NOW, RecordingDispatcher


@pytest.fixture()
def overdue_task(task_repo):
    """Create a pending watering task `hours` overdue at FIXED_NOW."""

    def _create(hours: float = 3, task_id: str = "t1", **overrides) -> PlantTask:
        task = PlantTask(
            task_id=task_id,
            plant_id="p1",
            user_id="u1",
            task_type=TaskType.WATERING,
            title="Water Basil",
            due_date=FIXED_NOW - timedelta(hours=hours),
            **overrides,
        )
        assert task_repo.create(task) is not None
        return task

    return _create


class TestEscalationSweep:
    def test_first_sweep_sends_gentle_reminder(self, escalation, dispatcher, overdue_task):
        overdue_task(3)
        report = escalation.sweep()

        assert (report.checked, report.escalated, report.failed) == (1, 1, 0)
        [sent] = dispatcher.sent
        assert sent["title"] == "⏰ Overdue: Water Basil"
        assert sent["body"] == "Your plant needs attention - 3h overdue"
        assert sent["fire_in_seconds"] == 1
        assert sent["data"]["level"] == "gentle"
        assert sent["data"]["type"] == "task_escalation"

        state = escalation.get_state("t1")
        assert state.next_check_time == FIXED_NOW + timedelta(hours=2)
        assert state.last_notification_id == "n-1"

    def test_recheck_interval_defers_reminders(self, escalation, dispatcher, clock, overdue_task):
        overdue_task(3)
        escalation.sweep()
        report = escalation.sweep()
        assert report.deferred == 1
        assert report.escalated == 0

        clock.advance(hours=2)
        assert escalation.sweep().escalated == 1
        assert len(dispatcher.sent) == 2
        assert escalation.get_state("t1").notifications_sent == 2

    def test_level_climbs_while_overdue(self, escalation, dispatcher, clock, overdue_task):
        overdue_task(5)
        escalation.sweep()
        assert escalation.get_state("t1").level == EscalationLevel.GENTLE

        clock.advance(hours=2)
        escalation.sweep()
        state = escalation.get_state("t1")
        assert state.level == EscalationLevel.STANDARD
        assert state.hours_overdue == 7
        assert dispatcher.sent[-1]["title"].startswith("⚠️ Overdue")

    @pytest.mark.parametrize(
        "hours, level",
        [(30, EscalationLevel.URGENT), (100, EscalationLevel.CRITICAL)],
    )
    def test_initial_level_from_hours_overdue(self, escalation, dispatcher, overdue_task, hours, level):
        overdue_task(hours)
        escalation.sweep()
        assert dispatcher.sent[0]["data"]["level"] == level.value
        assert dispatcher.sent[0]["data"]["hours_overdue"] == hours

    def test_only_overdue_pending_tasks(self, escalation, task_repo, overdue_task):
        overdue_task(-2, task_id="future")
        overdue_task(4, task_id="done")
        task_repo.set_status("done", TaskStatus.COMPLETED)
        report = escalation.sweep()
        assert report.checked == 0

    def test_escalation_start_time_is_the_origin(self, escalation, dispatcher, overdue_task):
        overdue_task(200, escalation_start_time=FIXED_NOW - timedelta(hours=1))
        escalation.sweep()
        assert dispatcher.sent[0]["data"]["hours_overdue"] == 1
        assert dispatcher.sent[0]["data"]["level"] == "gentle"

    def test_quiet_hours_delay_non_critical(self, escalation, dispatcher, clock, overdue_task):
        overdue_task(3)
        overdue_task(100, task_id="t2")
        clock.now = FIXED_NOW.replace(hour=23)
        escalation.sweep()
        fire_in = {s["data"]["task_id"]: s["fire_in_seconds"] for s in dispatcher.sent}
        assert fire_in == {"t1": 9 * 3600, "t2": 1}

    def test_plant_name_lookup(self, task_repo, dispatcher, timing, clock, overdue_task):
        tracker = EscalationTracker(task_repo, dispatcher, timing, clock=clock, plant_name_lookup={"p1": "Basil"}.get)
        overdue_task(3)
        tracker.sweep()
        assert dispatcher.sent[0]["body"] == "Basil needs attention - 3h overdue"


class TestEscalationFailures:
    def test_dispatch_failure_is_retried_next_sweep(self, escalation, dispatcher, overdue_task):
        overdue_task(3)
        dispatcher.fail_next = 1
        report = escalation.sweep()
        assert report.failed == 1
        assert report.escalated == 0
        assert "push gateway unavailable" in report.errors[0]
        assert not escalation.get_state("t1").has_escalated

        assert escalation.sweep().escalated == 1

    def test_overlapping_sweeps_send_once(self, timing, clock):
        entered = threading.Event()
        release = threading.Event()

        class BlockingDispatcher(RecordingDispatcher):
            def schedule(self, title, body, data, fire_in_seconds):
                entered.set()
                assert release.wait(timeout=5)
                return super().schedule(title, body, data, fire_in_seconds)

        task = PlantTask(
            task_id="t1",
            plant_id="p1",
            user_id="u1",
            task_type=TaskType.WATERING,
            title="Water Basil",
            due_date=FIXED_NOW - timedelta(hours=3),
        )
        store = MagicMock()
        store.query.return_value = [task]
        dispatcher = BlockingDispatcher()
        tracker = EscalationTracker(store, dispatcher, timing, clock=clock)

        reports = []
        worker = threading.Thread(target=lambda: reports.append(tracker.sweep()))
        worker.start()
        assert entered.wait(timeout=5)

        overlapping = tracker.sweep()
        release.set()
        worker.join(timeout=5)

        assert overlapping.escalated == 0
        assert overlapping.deferred == 1
        assert reports[0].escalated == 1
        assert len(dispatcher.sent) == 1
        assert tracker.get_state("t1").dispatching is False

    def test_failed_send_releases_the_reservation(self, escalation, dispatcher, overdue_task):
        overdue_task(3)
        dispatcher.fail_next = 1
        escalation.sweep()
        assert escalation.get_state("t1").dispatching is False

    def test_store_failure_is_reported(self, dispatcher, timing, clock):
        store = MagicMock()
        store.query.side_effect = RuntimeError("database is locked")
        report = EscalationTracker(store, dispatcher, timing, clock=clock).sweep()
        assert report.checked == 0
        assert report.errors == ["task store: database is locked"]


class TestEscalationState:
    def test_resolved_tasks_are_dropped(self, escalation, task_repo, overdue_task):
        overdue_task(3)
        escalation.sweep()
        task_repo.set_status("t1", TaskStatus.COMPLETED)
        report = escalation.sweep()
        assert report.dropped == 1
        assert escalation.get_state("t1") is None

    def test_forget_and_stats(self, escalation, overdue_task):
        overdue_task(3)
        overdue_task(30, task_id="t2")
        escalation.sweep()
        stats = escalation.get_stats()
        assert stats["tracked"] == 2
        assert stats["by_level"]["gentle"] == 1
        assert stats["by_level"]["urgent"] == 1

        assert escalation.forget("t1") is True
        assert escalation.forget("t1") is False
        escalation.clear()
        assert escalation.get_stats()["tracked"] == 0
