"""
Notification Batcher
====================

Accumulates reminder requests and delivers them as combined notifications.

Lifecycle: idle -> accumulating -> flushing -> idle. A flush is triggered by
the batch timeout timer, by the pending queue reaching ``max_batch_size`` or
by an incoming critical request.

Flush algorithm:
1. Snapshot and clear the pending queue.
2. Run every grouping strategy over the whole snapshot (in the configured
   order) and chunk each bucket to ``max_batch_size``.
3. Deduplicate globally: a task placed in an earlier batch is dropped from
   every later one; empty batches are discarded.
4. Dispatch each batch, retrying failures with capped exponential backoff.
   A delivery time that lapsed before dispatch is clamped forward again.

Batches never mix users: every strategy buckets by ``user_id`` first.
"""

from __future__ import annotations

import itertools
import logging
import math
import random
import threading
import time
from collections import OrderedDict
from datetime import datetime
from typing import Any, Callable, Iterable, Sequence

from growcare.domain.exceptions import DispatchFailure, InvalidWindowError
from growcare.domain.notifications import (
    BatchProcessingResult,
    BatchProcessingStats,
    NotificationBatch,
    NotificationBatchRequest,
    NotificationContent,
)
from growcare.domain.task_catalog import DEFAULT_TASK_ICON, PRIORITY_ICONS, task_icon
from growcare.enums import BatchType, CancelOutcome, Priority
from growcare.services.application.notification_timing import NotificationTimingPolicy
from growcare.services.protocols import Dispatcher
from growcare.utils.time import utc_now

logger = logging.getLogger(__name__)

DEFAULT_STRATEGY_ORDER: tuple[BatchType, ...] = (
    BatchType.DAILY,
    BatchType.PLANT_GROUPED,
    BatchType.PRIORITY_GROUPED,
)

# Remembered task -> notification id pairs used to answer "already sent".
DISPATCHED_HISTORY_LIMIT = 10_000

_URGENT = (Priority.HIGH, Priority.CRITICAL)


def _chunks(items: Sequence[NotificationBatchRequest], size: int) -> Iterable[list[NotificationBatchRequest]]:
    for start in range(0, len(items), size):
        yield list(items[start : start + size])


class NotificationBatcher:
    """Single-owner batching component guarded by one re-entrant lock."""

    def __init__(
        self,
        dispatcher: Dispatcher,
        timing: NotificationTimingPolicy,
        *,
        max_batch_size: int = 20,
        batch_timeout_seconds: float = 5.0,
        max_retries: int = 3,
        retry_base_delay_ms: int = 2000,
        retry_cap_ms: int = 15000,
        strategy_order: Iterable[BatchType | str] = DEFAULT_STRATEGY_ORDER,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], None] = time.sleep,
        jitter_ms: Callable[[], float] = lambda: random.uniform(0, 1000),
        timer_factory: Callable[..., Any] = threading.Timer,
    ) -> None:
        self._dispatcher = dispatcher
        self._timing = timing
        self.max_batch_size = max(1, max_batch_size)
        self.batch_timeout_seconds = batch_timeout_seconds
        self.max_retries = max(0, max_retries)
        self.retry_base_delay_ms = retry_base_delay_ms
        self.retry_cap_ms = retry_cap_ms
        self.strategy_order = tuple(dict.fromkeys(BatchType(s) for s in strategy_order))
        # Daily is the only strategy that places every request.
        if BatchType.DAILY not in self.strategy_order:
            raise ValueError("strategy_order must include the daily strategy")
        self._clock = clock
        self._sleep = sleep
        self._jitter_ms = jitter_ms
        self._timer_factory = timer_factory

        self._lock = threading.RLock()
        self._pending: "OrderedDict[str, NotificationBatchRequest]" = OrderedDict()
        self._in_flight: dict[str, NotificationBatch] = {}
        self._dispatched: "OrderedDict[str, str]" = OrderedDict()
        self._timer: Any = None
        self._flushing = False
        self._stats = BatchProcessingStats()
        self._sequence = itertools.count(1)

        self._strategies: dict[BatchType, Callable[[list[NotificationBatchRequest]], dict[tuple, list]]] = {
            BatchType.DAILY: self._group_daily,
            BatchType.PLANT_GROUPED: self._group_by_plant,
            BatchType.PRIORITY_GROUPED: self._group_by_priority,
        }

    # ==================== Queue ====================

    def enqueue(self, request: NotificationBatchRequest) -> bool:
        """Queue a request; returns False when the timing policy rejects it.

        A request for a task that is already pending replaces the earlier one.
        """
        prepared = self._timing.prepare(request)
        if prepared is None:
            return False

        with self._lock:
            self._pending.pop(prepared.task_id, None)
            self._pending[prepared.task_id] = prepared
            flush_now = prepared.priority == Priority.CRITICAL or len(self._pending) >= self.max_batch_size
            if not flush_now:
                self._arm_timer()

        logger.debug(
            "Queued notification for task %s (user %s, notify at %s)",
            prepared.task_id,
            prepared.user_id,
            prepared.notify_at.isoformat() if prepared.notify_at else None,
        )
        if flush_now:
            self.flush()
        return True

    def cancel(self, task_id: str) -> CancelOutcome:
        """Remove a task's reminder from the queue or from an undispatched batch."""
        with self._lock:
            if self._pending.pop(task_id, None) is not None:
                return CancelOutcome.REMOVED_PENDING
            removed = False
            for batch in self._in_flight.values():
                kept = [n for n in batch.notifications if n.task_id != task_id]
                if len(kept) != len(batch.notifications):
                    batch.notifications[:] = kept
                    removed = True
            if removed:
                return CancelOutcome.REMOVED_IN_FLIGHT
            if task_id in self._dispatched:
                return CancelOutcome.ALREADY_SENT
            return CancelOutcome.NOT_FOUND

    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    # ==================== Flush ====================

    def flush(self) -> list[BatchProcessingResult]:
        """Dispatch everything queued; returns one result per dispatched batch.

        A flush already in progress picks up requests queued while it runs,
        so a concurrent call returns an empty list.
        """
        with self._lock:
            if self._flushing:
                return []
            self._flushing = True
            self._cancel_timer()

        results: list[BatchProcessingResult] = []
        try:
            while True:
                with self._lock:
                    snapshot = list(self._pending.values())
                    self._pending.clear()
                    batches = self.build_batches(snapshot)
                    for batch in batches:
                        self._in_flight[batch.batch_id] = batch

                for batch in batches:
                    result = self._process_batch(batch)
                    if result is not None:
                        results.append(result)

                with self._lock:
                    if not self._needs_immediate_flush():
                        self._flushing = False
                        if self._pending:
                            self._arm_timer()
                        break
        except Exception:
            with self._lock:
                self._flushing = False
            raise

        if results:
            logger.info(
                "Flushed %s batches (%s scheduled, %s failed, %s skipped)",
                len(results),
                sum(r.scheduled for r in results),
                sum(r.failed for r in results),
                sum(r.skipped for r in results),
            )
        return results

    def build_batches(self, requests: Iterable[NotificationBatchRequest]) -> list[NotificationBatch]:
        """Group, chunk and deduplicate requests into batches."""
        ordered = sorted(requests, key=lambda r: (-r.priority.rank, r.effective_time))
        seen: set[str] = set()
        batches: list[NotificationBatch] = []
        for batch_type in self.strategy_order:
            buckets = self._strategies[batch_type](ordered)
            for key, members in buckets.items():
                label = "_".join(str(part) for part in key)
                for index, chunk in enumerate(_chunks(members, self.max_batch_size)):
                    fresh = [r for r in chunk if r.task_id not in seen]
                    if not fresh:
                        continue
                    seen.update(r.task_id for r in fresh)
                    batches.append(
                        NotificationBatch(
                            batch_id=f"{batch_type}_{label}_{index}_{next(self._sequence)}",
                            user_id=fresh[0].user_id,
                            batch_type=batch_type,
                            notifications=fresh,
                        )
                    )
        return batches

    # ==================== Grouping strategies ====================

    def _group_daily(self, requests: list[NotificationBatchRequest]) -> dict[tuple, list]:
        buckets: dict[tuple, list] = {}
        for request in requests:
            day = self._timing.profiles.local_date(request.user_id, request.effective_time)
            buckets.setdefault((request.user_id, day.isoformat()), []).append(request)
        return buckets

    def _group_by_plant(self, requests: list[NotificationBatchRequest]) -> dict[tuple, list]:
        buckets: dict[tuple, list] = {}
        for request in requests:
            buckets.setdefault((request.user_id, request.plant_id), []).append(request)
        return {key: members for key, members in buckets.items() if len(members) >= 2}

    def _group_by_priority(self, requests: list[NotificationBatchRequest]) -> dict[tuple, list]:
        buckets: dict[tuple, list] = {}
        for request in requests:
            if request.priority in _URGENT:
                buckets.setdefault((request.user_id, request.priority.value), []).append(request)
        return buckets

    # ==================== Dispatch ====================

    def retry_delay_ms(self, retry_count: int) -> float:
        return min(self.retry_base_delay_ms * 2**retry_count + self._jitter_ms(), self.retry_cap_ms)

    def _process_batch(self, batch: NotificationBatch) -> BatchProcessingResult | None:
        started = time.perf_counter()
        result = BatchProcessingResult(batch_id=batch.batch_id, batch_type=batch.batch_type)
        size = 0
        attempt_errors: list[str] = []
        try:
            while True:
                with self._lock:
                    members = list(batch.notifications)
                if not members:
                    logger.debug("Batch %s emptied by cancellation; skipping", batch.batch_id)
                    return None
                size = size or len(members)

                fire_in = self._fire_in_seconds(batch)
                if fire_in <= 0:
                    error = InvalidWindowError(f"Batch {batch.batch_id} has no future delivery time")
                    logger.warning("%s", error)
                    result.skipped = len(members)
                    result.errors.append(str(error))
                    break

                content = self.build_content(batch)
                try:
                    notification_id = self._dispatcher.schedule(content.title, content.body, content.data, fire_in)
                    if not notification_id:
                        raise DispatchFailure("Dispatcher returned no notification id")
                except Exception as exc:
                    attempt_errors.append(f"attempt {batch.retry_count + 1}: {exc}")
                    if batch.retry_count >= self.max_retries:
                        result.failed = len(members)
                        result.errors.extend(attempt_errors)
                        logger.error(
                            "Batch %s failed after %s attempts: %s",
                            batch.batch_id,
                            batch.retry_count + 1,
                            exc,
                        )
                        break
                    delay_ms = self.retry_delay_ms(batch.retry_count)
                    batch.retry_count += 1
                    result.retries = batch.retry_count
                    logger.warning(
                        "Dispatch of batch %s failed (%s); retry %s in %.0f ms",
                        batch.batch_id,
                        exc,
                        batch.retry_count,
                        delay_ms,
                    )
                    self._sleep(delay_ms / 1000)
                    continue

                with self._lock:
                    for member in members:
                        self._remember_dispatch(member.task_id, notification_id)
                result.scheduled = len(members)
                result.notification_ids.append(notification_id)
                break
        finally:
            with self._lock:
                self._in_flight.pop(batch.batch_id, None)

        result.duration_ms = (time.perf_counter() - started) * 1000
        with self._lock:
            self._stats.record(result, size, self._clock())
        return result

    def _fire_in_seconds(self, batch: NotificationBatch) -> int:
        """Seconds until the batch should fire; 0 when it has no usable window.

        A timed batch whose delivery time lapsed while it waited is moved to
        one minute from now. Untimed requests never went through the timing
        policy, so a past due date cannot be clamped.
        """
        now = self._clock()
        scheduled = batch.scheduled_time
        if scheduled <= now:
            if any(n.notify_at is None for n in batch.notifications):
                return 0
            scheduled = self._timing.clamp_forward(scheduled, now)
            logger.debug("Batch %s delivery time lapsed; firing at %s", batch.batch_id, scheduled.isoformat())
        return max(1, math.ceil((scheduled - now).total_seconds()))

    def build_content(self, batch: NotificationBatch) -> NotificationContent:
        """Single task: direct title. One plant: task-type summary. Several plants: plant count."""
        members = batch.notifications
        first = members[0]
        plant_ids = batch.plant_ids
        count = len(members)

        if count == 1:
            title = f"{task_icon(first.task_type)} {first.title}"
            body = f"Time to {first.task_type} your {first.plant_name}!"
        elif len(plant_ids) == 1:
            task_types = ", ".join(dict.fromkeys(str(m.task_type) for m in members))
            title = f"{DEFAULT_TASK_ICON} {count} tasks for {first.plant_name}"
            body = f"Care needed: {task_types}"
        else:
            if batch.batch_type == BatchType.DAILY:
                day = self._timing.day_label(batch.user_id, batch.scheduled_time)
                title = f"{DEFAULT_TASK_ICON} {day}: {count} plant care tasks"
            elif batch.batch_type == BatchType.PRIORITY_GROUPED:
                title = f"{PRIORITY_ICONS[batch.priority]} {count} {batch.priority} priority tasks"
            else:
                title = f"{DEFAULT_TASK_ICON} {count} plant care tasks"
            body = f"{len(plant_ids)} plants need attention"

        return NotificationContent(
            title=title,
            body=body,
            data={
                "type": "task_batch",
                "batch_id": batch.batch_id,
                "batch_type": batch.batch_type.value,
                "user_id": batch.user_id,
                "priority": batch.priority.value,
                "task_ids": batch.task_ids,
                "plant_ids": plant_ids,
            },
        )

    # ==================== Stats / lifecycle ====================

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            stats = self._stats.to_dict()
            stats.update(
                {
                    "pending": len(self._pending),
                    "in_flight": len(self._in_flight),
                    "flushing": self._flushing,
                    "strategy_order": [s.value for s in self.strategy_order],
                }
            )
        return stats

    def clear(self) -> None:
        """Drop queued and in-flight requests and reset statistics."""
        with self._lock:
            self._cancel_timer()
            self._pending.clear()
            self._in_flight.clear()
            self._dispatched.clear()
            self._stats = BatchProcessingStats()

    def shutdown(self, *, flush_pending: bool = True) -> None:
        if flush_pending and self.pending_count():
            self.flush()
        with self._lock:
            self._cancel_timer()

    def _needs_immediate_flush(self) -> bool:
        if len(self._pending) >= self.max_batch_size:
            return True
        return any(r.priority == Priority.CRITICAL for r in self._pending.values())

    def _remember_dispatch(self, task_id: str, notification_id: str) -> None:
        self._dispatched.pop(task_id, None)
        self._dispatched[task_id] = notification_id
        while len(self._dispatched) > DISPATCHED_HISTORY_LIMIT:
            self._dispatched.popitem(last=False)

    def _arm_timer(self) -> None:
        if self._timer is not None:
            return
        timer = self._timer_factory(self.batch_timeout_seconds, self._on_timer)
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        with self._lock:
            self._timer = None
        try:
            self.flush()
        except Exception as exc:
            logger.exception("Timed notification flush failed: %s", exc)
