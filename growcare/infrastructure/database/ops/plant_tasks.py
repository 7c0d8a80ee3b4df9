"""Database operations for PlantTask rows."""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime
from typing import Any

from growcare.domain.exceptions import RepositoryError
from growcare.utils.time import coerce_datetime, iso_now

logger = logging.getLogger(__name__)

_TASK_COLUMNS: tuple[str, ...] = (
    "task_id",
    "plant_id",
    "user_id",
    "task_type",
    "title",
    "description",
    "due_date",
    "status",
    "priority",
    "estimated_duration_minutes",
    "auto_generated",
    "template_id",
    "environmental_conditions",
    "escalation_start_time",
    "growth_stage",
    "sequence_number",
    "week_number",
    "created_at",
)

# Columns update_plant_task may write.
_UPDATABLE_COLUMNS: frozenset[str] = frozenset(
    {"due_date", "priority", "status", "environmental_conditions", "escalation_start_time"}
)


def storage_timestamp(value: datetime | str | None) -> str | None:
    """UTC ISO-8601 with fixed microsecond precision so text comparison orders correctly."""
    parsed = coerce_datetime(value)
    return parsed.isoformat(timespec="microseconds") if parsed else None


def _row_to_dict(row: sqlite3.Row) -> dict[str, Any]:
    data = dict(row)
    conditions = data.get("environmental_conditions")
    if conditions:
        try:
            data["environmental_conditions"] = json.loads(conditions)
        except ValueError:
            logger.warning("Task %s has unreadable environmental conditions", data.get("task_id"))
            data["environmental_conditions"] = None
    data["auto_generated"] = bool(data.get("auto_generated"))
    return data


class PlantTaskOperations:
    """Database operations for plant care tasks."""

    def insert_plant_task(self, task: dict[str, Any]) -> bool:
        """Insert one task row; `task` uses PlantTask.to_dict() keys."""
        values = dict(task)
        for key in ("due_date", "escalation_start_time", "created_at"):
            values[key] = storage_timestamp(values.get(key))
        values["auto_generated"] = 1 if values.get("auto_generated", True) else 0
        if values.get("environmental_conditions") is not None:
            values["environmental_conditions"] = json.dumps(values["environmental_conditions"])

        columns = ", ".join(_TASK_COLUMNS)
        placeholders = ", ".join("?" for _ in _TASK_COLUMNS)
        try:
            db = self.get_db()
            db.execute(
                f"INSERT INTO PlantTasks ({columns}) VALUES ({placeholders})",  # nosec B608
                [values.get(column) for column in _TASK_COLUMNS],
            )
            db.commit()
            return True
        except sqlite3.Error as exc:
            logger.error("Failed to insert plant task %s: %s", task.get("task_id"), exc)
            return False

    def get_plant_task(self, task_id: str) -> dict[str, Any] | None:
        try:
            db = self.get_db()
            row = db.execute("SELECT * FROM PlantTasks WHERE task_id = ?", (task_id,)).fetchone()
            return _row_to_dict(row) if row else None
        except sqlite3.Error as exc:
            logger.error("Failed to get plant task %s: %s", task_id, exc)
            return None

    def query_plant_tasks(
        self,
        plant_id: str | None = None,
        status: str | None = None,
        due_before: datetime | None = None,
    ) -> list[dict[str, Any]]:
        """Tasks matching every given filter, ordered by due date.

        Raises RepositoryError when the query fails; an empty list always
        means no task matched.
        """
        clauses: list[str] = []
        params: list[Any] = []
        if plant_id is not None:
            clauses.append("plant_id = ?")
            params.append(str(plant_id))
        if status is not None:
            clauses.append("status = ?")
            params.append(status)
        if due_before is not None:
            clauses.append("due_date < ?")
            params.append(storage_timestamp(due_before))
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        try:
            db = self.get_db()
            rows = db.execute(
                f"SELECT * FROM PlantTasks {where} ORDER BY due_date, sequence_number",  # nosec B608
                params,
            ).fetchall()
            return [_row_to_dict(row) for row in rows]
        except sqlite3.Error as exc:
            logger.error("Failed to query plant tasks: %s", exc)
            raise RepositoryError(f"Failed to query plant tasks: {exc}") from exc

    def update_plant_task(self, task_id: str, fields: dict[str, Any]) -> bool:
        """Update allowlisted columns; returns False if nothing matched."""
        cols = {key: value for key, value in fields.items() if key in _UPDATABLE_COLUMNS}
        rejected = set(fields) - set(cols)
        if rejected:
            logger.warning("update_plant_task: dropped non-allowed keys: %s", sorted(rejected))
        if not cols:
            return False
        for key in ("due_date", "escalation_start_time"):
            if key in cols:
                cols[key] = storage_timestamp(cols[key])
        if cols.get("environmental_conditions") is not None:
            cols["environmental_conditions"] = json.dumps(cols["environmental_conditions"])
        cols["updated_at"] = iso_now()

        set_sql = ", ".join(f"{key} = ?" for key in cols)
        try:
            db = self.get_db()
            cur = db.execute(
                f"UPDATE PlantTasks SET {set_sql} WHERE task_id = ?",  # nosec B608
                [*cols.values(), task_id],
            )
            db.commit()
            return cur.rowcount > 0
        except sqlite3.Error as exc:
            logger.error("Failed to update plant task %s: %s", task_id, exc)
            return False
