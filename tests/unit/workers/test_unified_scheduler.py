from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from growcare.workers.unified_scheduler import ScheduleType, UnifiedScheduler

from conftest import FIXED_NOW


@pytest.fixture()
def scheduler(clock):
    return UnifiedScheduler(check_interval_seconds=0.01, clock=clock)


class TestRegistration:
    def test_register_and_run_now(self, scheduler):
        scheduler.register_task("care.escalation_sweep", lambda: {"escalated": 2})
        assert scheduler.has_task("care.escalation_sweep")

        result = scheduler.run_now("care.escalation_sweep")
        assert result.success
        assert result.result == {"escalated": 2}
        assert scheduler.get_history()[0] is result

    def test_run_now_failure_is_recorded(self, scheduler):
        scheduler.register_task("care.escalation_sweep", MagicMock(side_effect=RuntimeError("db locked")))
        result = scheduler.run_now("care.escalation_sweep")
        assert not result.success
        assert result.error == "db locked"

    def test_run_now_unknown_task(self, scheduler):
        assert scheduler.run_now("care.nothing") is None


class TestDueJobs:
    def test_interval_job_due_after_interval(self, scheduler, clock):
        job = scheduler.schedule_interval("notifications.flush", 60, job_id="flush")
        assert job.namespace == "notifications"
        assert scheduler.due_jobs() == []

        clock.advance(seconds=60)
        assert scheduler.due_jobs() == [("flush", FIXED_NOW + timedelta(seconds=60))]
        assert job.next_run == FIXED_NOW + timedelta(seconds=120)
        assert scheduler.due_jobs() == []

    def test_interval_skips_missed_slots(self, scheduler, clock):
        job = scheduler.schedule_interval("notifications.flush", 60, job_id="flush")
        clock.advance(seconds=60 * 5 + 10)
        assert len(scheduler.due_jobs()) == 1
        assert job.next_run == FIXED_NOW + timedelta(seconds=360)

    def test_start_immediately(self, scheduler):
        scheduler.schedule_interval("care.escalation_sweep", 300, job_id="sweep", start_immediately=True)
        assert [job_id for job_id, _ in scheduler.due_jobs()] == ["sweep"]

    def test_daily_job_runs_next_day_when_time_passed(self, scheduler):
        job = scheduler.schedule_daily("care.stage_transition_sweep", "00:15", job_id="stages")
        assert job.schedule_type == ScheduleType.DAILY
        assert job.next_run == FIXED_NOW.replace(hour=0, minute=15) + timedelta(days=1)

        later = scheduler.schedule_daily("care.stage_transition_sweep", "18:30")
        assert later.job_id == "care.stage_transition_sweep_daily_1830"
        assert later.next_run == FIXED_NOW.replace(hour=18, minute=30)

    def test_once_job_disables_itself(self, scheduler, clock):
        job = scheduler.schedule_once("care.escalation_sweep", FIXED_NOW + timedelta(minutes=5), job_id="once")
        clock.advance(minutes=5)
        assert len(scheduler.due_jobs()) == 1
        assert job.enabled is False
        assert job.next_run is None
        clock.advance(days=1)
        assert scheduler.due_jobs() == []

    def test_removed_and_disabled_jobs_are_skipped(self, scheduler, clock):
        scheduler.schedule_interval("care.escalation_sweep", 60, job_id="a")
        scheduler.schedule_interval("notifications.flush", 60, job_id="b")
        assert scheduler.remove_job("a")
        assert not scheduler.remove_job("a")
        assert scheduler.enable_job("b", False)
        clock.advance(seconds=61)
        assert scheduler.due_jobs() == []

        assert scheduler.enable_job("b")
        assert [job_id for job_id, _ in scheduler.due_jobs()] == ["b"]
        assert scheduler.get_job("b").next_run == FIXED_NOW + timedelta(seconds=120)
        assert not scheduler.enable_job("a")


class TestExecution:
    def test_execute_job_counts_outcomes(self, scheduler, clock):
        task = MagicMock(side_effect=[{"ok": 1}, ValueError("bad payload")])
        scheduler.register_task("care.escalation_sweep", task)
        scheduler.schedule_interval("care.escalation_sweep", 60, job_id="sweep", args=("x",))

        first = scheduler.execute_job("sweep", FIXED_NOW)
        second = scheduler.execute_job("sweep", FIXED_NOW)

        job = scheduler.get_job("sweep")
        assert first.success and not second.success
        assert (job.run_count, job.success_count, job.failure_count) == (2, 1, 1)
        assert job.last_error == "bad payload"
        task.assert_called_with("x")

    def test_missing_task_function(self, scheduler):
        scheduler.schedule_interval("care.unregistered", 60, job_id="ghost")
        result = scheduler.execute_job("ghost", FIXED_NOW)
        assert not result.success
        assert "Task function not found" in result.error

    def test_unknown_job(self, scheduler):
        assert scheduler.execute_job("nope", FIXED_NOW) is None


class TestStatus:
    def test_status_and_filters(self, scheduler):
        scheduler.schedule_interval("care.escalation_sweep", 60, job_id="sweep")
        scheduler.schedule_interval("notifications.flush", 60, job_id="flush", enabled=False)

        status = scheduler.get_status()
        assert status["running"] is False
        assert status["total_jobs"] == 2
        assert status["enabled_jobs"] == 1
        assert status["namespaces"] == ["care", "notifications"]
        assert [j.job_id for j in scheduler.get_jobs(namespace="care")] == ["sweep"]
        assert [j.job_id for j in scheduler.get_jobs(enabled_only=True)] == ["sweep"]
        assert scheduler.get_job("flush").to_dict()["enabled"] is False

    def test_history_is_bounded(self, clock):
        scheduler = UnifiedScheduler(max_history=3, clock=clock)
        scheduler.register_task("care.escalation_sweep", lambda: None)
        for _ in range(5):
            scheduler.run_now("care.escalation_sweep")
        assert scheduler.get_status()["history_size"] == 3

    def test_start_and_stop(self, scheduler):
        scheduler.start()
        try:
            assert scheduler.is_running()
        finally:
            scheduler.shutdown()
        assert not scheduler.is_running()
