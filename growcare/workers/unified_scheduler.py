"""
Background scheduler for the care engine's periodic sweeps.

One loop thread pops due jobs off a heap and hands them to a small
ThreadPoolExecutor. Jobs are grouped by the namespace prefix of their task
name ("care.escalation_sweep" -> "care") and run on an interval, once a day
at a UTC "HH:MM", or once.

The scheduler is an ordinary object owned by the ServiceContainer; tests and
the CLI construct their own instances with a fixed clock.
"""

from __future__ import annotations

import heapq
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable

from growcare.utils.time import utc_now

logger = logging.getLogger(__name__)


class ScheduleType(Enum):
    INTERVAL = "interval"
    DAILY = "daily"
    ONCE = "once"


@dataclass
class JobResult:
    """Outcome of one task run, scheduled or immediate."""

    job_id: str
    success: bool
    started_at: datetime
    completed_at: datetime
    result: Any = None
    error: str | None = None

    @property
    def duration_seconds(self) -> float:
        return (self.completed_at - self.started_at).total_seconds()


@dataclass
class ScheduledJob:
    job_id: str
    task_name: str
    namespace: str
    schedule_type: ScheduleType
    enabled: bool = True

    args: tuple = field(default_factory=tuple)
    kwargs: dict[str, Any] = field(default_factory=dict)

    interval_seconds: int | None = None
    time_of_day: str | None = None  # "HH:MM" UTC
    run_at: datetime | None = None

    next_run: datetime | None = None
    last_run: datetime | None = None
    run_count: int = 0
    success_count: int = 0
    failure_count: int = 0
    last_error: str | None = None

    def record(self, started_at: datetime, error: str | None) -> None:
        self.last_run = started_at
        self.run_count += 1
        if error is None:
            self.success_count += 1
        else:
            self.failure_count += 1
        self.last_error = error

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "task_name": self.task_name,
            "namespace": self.namespace,
            "schedule_type": self.schedule_type.value,
            "enabled": self.enabled,
            "interval_seconds": self.interval_seconds,
            "time_of_day": self.time_of_day,
            "next_run": self.next_run.isoformat() if self.next_run else None,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "run_count": self.run_count,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "last_error": self.last_error,
        }


def _namespace_of(task_name: str) -> str:
    return task_name.split(".")[0] if "." in task_name else "default"


class UnifiedScheduler:
    """Runs registered task functions for the care and notification sweeps.

    The heap holds ``(run_at_ts, seq, job_id)`` entries. Removing, disabling
    or rescheduling a job leaves its old entry in place; entries that no
    longer match the job's ``next_run`` are dropped when popped.

    Interval jobs are fixed-rate: the next slot is counted from the slot that
    just fired, and slots missed while the process was busy are skipped
    rather than replayed.
    """

    def __init__(
        self,
        check_interval_seconds: float = 1.0,
        max_history: int = 1000,
        max_workers: int = 2,
        *,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._check_interval = float(check_interval_seconds)
        self._max_history = int(max_history)
        self._max_workers = int(max_workers)
        self._clock = clock

        self._jobs: dict[str, ScheduledJob] = {}
        self._tasks: dict[str, Callable] = {}
        self._heap: list[tuple[float, int, str]] = []
        self._seq = 0
        self._history: list[JobResult] = []

        self._running = False
        self._thread: threading.Thread | None = None
        self._lock = threading.RLock()
        self._executor: ThreadPoolExecutor | None = None

    # ==================== Tasks ====================

    def register_task(self, name: str, func: Callable) -> None:
        self._tasks[name] = func
        logger.debug("Registered task: %s", name)

    def has_task(self, name: str) -> bool:
        return name in self._tasks

    def run_now(
        self,
        task_name: str,
        *,
        args: tuple = (),
        kwargs: dict[str, Any] | None = None,
    ) -> JobResult | None:
        """Run a registered task synchronously on the calling thread."""
        func = self._tasks.get(task_name)
        if func is None:
            logger.error("Task not found: %s", task_name)
            return None
        started_at = self._clock()
        return self._invoke(f"{task_name}_immediate_{int(started_at.timestamp())}", func, args, kwargs or {})

    # ==================== Jobs ====================

    def schedule_interval(
        self,
        task_name: str,
        interval_seconds: int,
        *,
        job_id: str | None = None,
        namespace: str | None = None,
        args: tuple = (),
        kwargs: dict[str, Any] | None = None,
        enabled: bool = True,
        start_immediately: bool = False,
    ) -> ScheduledJob:
        interval = int(interval_seconds)
        now = self._clock()
        job = ScheduledJob(
            job_id=job_id or f"{task_name}_every_{interval}s",
            task_name=task_name,
            namespace=namespace or _namespace_of(task_name),
            schedule_type=ScheduleType.INTERVAL,
            enabled=enabled,
            args=args,
            kwargs=kwargs or {},
            interval_seconds=interval,
            next_run=now if start_immediately else now + timedelta(seconds=interval),
        )
        self._add_job(job)
        logger.info("Scheduled interval job: %s (every %ss)", job.job_id, interval)
        return job

    def schedule_daily(
        self,
        task_name: str,
        time_of_day: str,
        *,
        job_id: str | None = None,
        namespace: str | None = None,
        args: tuple = (),
        kwargs: dict[str, Any] | None = None,
        enabled: bool = True,
    ) -> ScheduledJob:
        """Run `task_name` every day at `time_of_day` ("HH:MM", UTC)."""
        job = ScheduledJob(
            job_id=job_id or f"{task_name}_daily_{time_of_day.replace(':', '')}",
            task_name=task_name,
            namespace=namespace or _namespace_of(task_name),
            schedule_type=ScheduleType.DAILY,
            enabled=enabled,
            args=args,
            kwargs=kwargs or {},
            time_of_day=time_of_day,
            next_run=self._next_daily(time_of_day),
        )
        self._add_job(job)
        logger.info("Scheduled daily job: %s (at %s UTC)", job.job_id, time_of_day)
        return job

    def schedule_once(
        self,
        task_name: str,
        run_at: datetime,
        *,
        job_id: str | None = None,
        namespace: str | None = None,
        args: tuple = (),
        kwargs: dict[str, Any] | None = None,
    ) -> ScheduledJob:
        job = ScheduledJob(
            job_id=job_id or f"{task_name}_once_{int(run_at.timestamp())}",
            task_name=task_name,
            namespace=namespace or _namespace_of(task_name),
            schedule_type=ScheduleType.ONCE,
            args=args,
            kwargs=kwargs or {},
            run_at=run_at,
            next_run=run_at,
        )
        self._add_job(job)
        logger.info("Scheduled one-time job: %s (at %s)", job.job_id, run_at.isoformat())
        return job

    def remove_job(self, job_id: str) -> bool:
        with self._lock:
            if self._jobs.pop(job_id, None) is None:
                return False
        logger.info("Removed job: %s", job_id)
        return True

    def enable_job(self, job_id: str, enabled: bool = True) -> bool:
        """Toggle a job; a re-enabled job keeps its pending slot if it has one."""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return False
            job.enabled = bool(enabled)
            if job.enabled:
                if job.next_run is None:
                    self._advance(job, self._clock())
                self._push(job)
        logger.info("Job %s %s", job_id, "enabled" if enabled else "disabled")
        return True

    def clear_jobs(self) -> None:
        with self._lock:
            self._jobs.clear()
            self._heap.clear()
            self._seq = 0

    def get_job(self, job_id: str) -> ScheduledJob | None:
        return self._jobs.get(job_id)

    def get_jobs(self, namespace: str | None = None, enabled_only: bool = False) -> list[ScheduledJob]:
        return [
            job
            for job in list(self._jobs.values())
            if (namespace is None or job.namespace == namespace) and (job.enabled or not enabled_only)
        ]

    # ==================== Loop ====================

    def start(self) -> None:
        if self._running:
            logger.warning("Scheduler already running")
            return
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="GrowCareSchedulerJob")
        self._running = True
        self._thread = threading.Thread(target=self._run_loop, daemon=True, name="GrowCareScheduler")
        self._thread.start()
        logger.info("Scheduler started (%s jobs)", len(self._jobs))

    def stop(self, wait: bool = True, timeout: float = 5.0) -> None:
        if not self._running:
            return
        self._running = False
        if wait and self._thread:
            self._thread.join(timeout=timeout)
        if self._executor:
            self._executor.shutdown(wait=wait)
            self._executor = None
        logger.info("Scheduler stopped")

    def shutdown(self, wait: bool = True, timeout: float = 5.0) -> None:
        self.stop(wait=wait, timeout=timeout)

    def is_running(self) -> bool:
        return self._running

    def _run_loop(self) -> None:
        while self._running:
            try:
                self._submit_due_jobs()
            except Exception as e:
                logger.error("Error in scheduler loop: %s", e, exc_info=True)
            time.sleep(self._check_interval)

    def _submit_due_jobs(self) -> None:
        for job_id, scheduled_for in self.due_jobs():
            executor = self._executor
            if executor is None:
                logger.warning("Scheduler stopping; job %s not submitted", job_id)
                continue
            try:
                executor.submit(self.execute_job, job_id, scheduled_for)
            except RuntimeError as e:
                logger.error("Failed to submit job %s: %s", job_id, e)

    # ==================== Execution ====================

    def due_jobs(self) -> list[tuple[str, datetime]]:
        """Pop every due job, move it to its next slot and return (job_id, slot) pairs."""
        now_ts = self._clock().timestamp()
        due: list[tuple[str, datetime]] = []
        with self._lock:
            while self._heap and self._heap[0][0] <= now_ts:
                run_at_ts, _, job_id = heapq.heappop(self._heap)
                job = self._jobs.get(job_id)
                if job is None or not job.enabled or job.next_run is None:
                    continue
                if abs(job.next_run.timestamp() - run_at_ts) > 1e-6:
                    continue
                slot = job.next_run
                self._advance(job, slot)
                self._push(job)
                due.append((job_id, slot))
        return due

    def execute_job(self, job_id: str, scheduled_for: datetime) -> JobResult | None:
        """Run one job on the calling thread and update its counters."""
        with self._lock:
            job = self._jobs.get(job_id)
        if job is None:
            return None

        func = self._tasks.get(job.task_name)
        if func is None:
            func = _missing_task(job.task_name)
        result = self._invoke(job.job_id, func, job.args, job.kwargs)
        with self._lock:
            job.record(result.started_at, result.error)
        if result.success:
            logger.debug(
                "Job %s finished in %.2fs (slot %s)", job.job_id, result.duration_seconds, scheduled_for.isoformat()
            )
        return result

    def _invoke(self, job_id: str, func: Callable, args: tuple, kwargs: dict[str, Any]) -> JobResult:
        started_at = self._clock()
        try:
            value = func(*args, **kwargs)
        except Exception as e:
            logger.error("Job %s failed: %s", job_id, e, exc_info=True)
            result = JobResult(job_id, False, started_at, self._clock(), error=str(e))
        else:
            result = JobResult(job_id, True, started_at, self._clock(), result=value)
        with self._lock:
            self._history.append(result)
            del self._history[: -self._max_history]
        return result

    # ==================== Slots ====================

    def _add_job(self, job: ScheduledJob) -> None:
        with self._lock:
            self._jobs[job.job_id] = job
            self._push(job)

    def _push(self, job: ScheduledJob) -> None:
        if job.enabled and job.next_run is not None:
            self._seq += 1
            heapq.heappush(self._heap, (job.next_run.timestamp(), self._seq, job.job_id))

    def _advance(self, job: ScheduledJob, slot: datetime) -> None:
        """Set `job.next_run` to the first slot after `slot` that is still ahead."""
        if job.schedule_type == ScheduleType.INTERVAL:
            step = timedelta(seconds=int(job.interval_seconds or 60))
            next_run = slot + step
            now = self._clock()
            if next_run <= now:
                next_run += step * (int((now - next_run) / step) + 1)
            job.next_run = next_run
        elif job.schedule_type == ScheduleType.DAILY:
            job.next_run = self._next_daily(job.time_of_day or "00:00")
        else:
            job.next_run = None
            job.enabled = False

    def _next_daily(self, time_of_day: str) -> datetime:
        now = self._clock()
        hour, minute = map(int, time_of_day.split(":"))
        candidate = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
        return candidate if candidate > now else candidate + timedelta(days=1)

    # ==================== Status ====================

    def get_status(self) -> dict[str, Any]:
        with self._lock:
            enabled = [job for job in self._jobs.values() if job.enabled]
            return {
                "running": self._running,
                "total_jobs": len(self._jobs),
                "enabled_jobs": len(enabled),
                "namespaces": sorted({job.namespace for job in self._jobs.values()}),
                "pending_jobs": sum(1 for job in enabled if job.next_run is not None),
                "history_size": len(self._history),
                "recent_failures": sum(1 for r in self._history[-20:] if not r.success),
                "max_workers": self._max_workers,
            }

    def get_history(self, job_id: str | None = None, limit: int = 100) -> list[JobResult]:
        """Most recent runs first."""
        with self._lock:
            results = [r for r in self._history if job_id is None or r.job_id == job_id]
        return sorted(results, key=lambda r: r.started_at, reverse=True)[: int(limit)]


def _missing_task(task_name: str) -> Callable[..., Any]:
    def _raise(*_args: Any, **_kwargs: Any) -> Any:
        raise LookupError(f"Task function not found: {task_name}")

    return _raise
