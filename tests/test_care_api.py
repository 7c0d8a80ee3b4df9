"""
Care API endpoint tests.

Run against a real ServiceContainer (in-memory SQLite, recording dispatcher,
scheduler idle) through the pytest-flask ``client`` fixture.
"""

from datetime import timedelta

import pytest

from growcare.utils.time import start_of_day, utc_now

BASE = "/api/care"


def _plant(**overrides):
    plant = {"user_id": "u1", "name": "Basil", "growth_stage": "vegetative"}
    plant.update(overrides)
    return plant


def _notification(task_id="t1", *, due_in_days=2, **overrides):
    body = {
        "task_id": task_id,
        "plant_id": "p1",
        "plant_name": "Basil",
        "task_type": "watering",
        "title": "Water Basil",
        "due_date": (start_of_day(utc_now()) + timedelta(days=due_in_days, hours=12)).isoformat(),
        "priority": "medium",
        "user_id": "u1",
    }
    body.update(overrides)
    return body


class TestTaskGeneration:
    def test_generate_stage_tasks(self, client, container):
        resp = client.post(f"{BASE}/plants/p1/tasks/generate", json={"plant": _plant()})
        assert resp.status_code == 201
        data = resp.get_json()
        assert data["ok"] is True
        assert data["data"]["count"] == 12
        assert {t["plant_id"] for t in data["data"]["tasks"]} == {"p1"}
        assert len(container.task_repo.query("p1")) == 12

    def test_generate_strain_specific(self, client):
        resp = client.post(
            f"{BASE}/plants/p1/tasks/generate",
            json={"plant": _plant(strainId="sour-diesel"), "strain_specific": True},
        )
        assert resp.status_code == 201
        descriptions = [t["description"] for t in resp.get_json()["data"]["tasks"] if t["task_type"] == "watering"]
        assert descriptions
        assert all(d.endswith("Strain-specific: Sour Diesel (sativa)") for d in descriptions)

    def test_unknown_stage(self, client):
        resp = client.post(f"{BASE}/plants/p1/tasks/generate", json={"plant": _plant(growth_stage="dormant")})
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "Unknown growth stage: dormant"

        resp = client.post(f"{BASE}/plants/p1/tasks/generate", json={"plant": _plant(), "stage": "sprouting"})
        assert resp.status_code == 400

    def test_missing_body(self, client):
        resp = client.post(f"{BASE}/plants/p1/tasks/generate")
        assert resp.status_code == 400
        assert resp.get_json()["error"]["message"] == "Request body is required"

    def test_recurring_series(self, client):
        resp = client.post(
            f"{BASE}/plants/p1/tasks/recurring",
            json={"plant": _plant(), "task_type": "FEEDING", "interval_days": 7},
        )
        assert resp.status_code == 201
        tasks = resp.get_json()["data"]["tasks"]
        assert [t["sequence_number"] for t in tasks] == [1, 2, 3, 4, 5]

    def test_schema_errors_are_listed(self, client):
        resp = client.post(
            f"{BASE}/plants/p1/tasks/recurring",
            json={"plant": _plant(), "task_type": "watering", "interval_days": 0},
        )
        assert resp.status_code == 400
        errors = resp.get_json()["details"]["errors"]
        assert errors[0]["loc"] == ["interval_days"]


class TestPlantLifecycle:
    def test_conditions_adjust_pending_watering(self, client):
        client.post(f"{BASE}/plants/p1/tasks/generate", json={"plant": _plant()})
        resp = client.post(f"{BASE}/plants/p1/conditions", json={"humidity": 30})
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["count"] == 3
        assert {m["reschedule_hours"] for m in data["adjusted"]} == {-6}
        assert {m["priority"] for m in data["adjusted"]} == {"high"}

    def test_out_of_range_reading(self, client):
        resp = client.post(f"{BASE}/plants/p1/conditions", json={"pH": 19})
        assert resp.status_code == 400

    def test_stage_transition(self, client):
        planted = (utc_now() - timedelta(days=10)).isoformat()
        plant = _plant(growth_stage="germination", planted_date=planted)

        resp = client.post(f"{BASE}/plants/p1/stage-transition", json={"plant": plant})
        data = resp.get_json()["data"]
        assert data["current_stage"] == "germination"
        assert data["next_stage"] == "seedling"
        assert data["tasks"] == []

        resp = client.post(f"{BASE}/plants/p1/stage-transition", json={"plant": plant, "advance": True})
        tasks = resp.get_json()["data"]["tasks"]
        assert tasks
        assert {t["growth_stage"] for t in tasks} == {"seedling"}

    def test_flowering_prediction(self, client):
        plant = _plant(strain_id="northern-lights", planted_date="2026-01-01T00:00:00Z")
        resp = client.post(f"{BASE}/plants/p1/flowering-prediction", json={"plant": plant})
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["strain_name"] == "Northern Lights"
        assert data["expected_flowering_start"].startswith("2026-02-19")

    def test_flowering_prediction_needs_planted_date(self, client):
        resp = client.post(f"{BASE}/plants/p1/flowering-prediction", json={"plant": _plant()})
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "Plant has no planted date"


class TestNotifications:
    def test_queue_and_cancel(self, client, container):
        resp = client.post(f"{BASE}/notifications", json=_notification())
        assert resp.status_code == 202
        assert resp.get_json()["data"] == {"task_id": "t1", "queued": True}
        assert container.batcher.pending_count() == 1

        resp = client.delete(f"{BASE}/notifications/t1")
        assert resp.status_code == 200
        assert resp.get_json()["data"]["outcome"] == "removed_pending"

        resp = client.delete(f"{BASE}/notifications/t1")
        assert resp.status_code == 404

    def test_flush_dispatches_queued(self, client, app_dispatcher):
        client.post(f"{BASE}/notifications", json=_notification("t1"))
        client.post(f"{BASE}/notifications", json=_notification("t2", task_type="inspection", title="Inspect Basil"))

        resp = client.post(f"{BASE}/notifications/flush")
        data = resp.get_json()["data"]
        assert data["scheduled"] == 2
        assert data["failed"] == 0
        assert len(app_dispatcher.sent) == 1
        assert sorted(app_dispatcher.sent[0]["data"]["task_ids"]) == ["t1", "t2"]

    def test_invalid_notification(self, client):
        resp = client.post(f"{BASE}/notifications", json=_notification(task_type="pollinating"))
        assert resp.status_code == 400

    def test_stats(self, client):
        resp = client.get(f"{BASE}/notifications/stats")
        assert resp.status_code == 200
        assert set(resp.get_json()["data"]) == {"batching", "escalation", "strain_cache"}

    def test_escalation_sweep(self, client):
        resp = client.post(f"{BASE}/escalations/sweep")
        assert resp.status_code == 200
        assert resp.get_json()["data"]["checked"] == 0


class TestActivityProfile:
    def test_replace_profile(self, client, container):
        resp = client.put(
            f"{BASE}/users/u1/activity-profile",
            json={"quiet_hours_start": "23:00", "quiet_hours_end": "07:00", "timezone": "Europe/Madrid"},
        )
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["quiet_hours_start"] == "23:00"
        assert data["timezone"] == "Europe/Madrid"
        assert container.activity_profiles.get("u1").timezone_name == "Europe/Madrid"

    @pytest.mark.parametrize("body", [{"quiet_hours_start": "late"}, {"most_active_hours": [25]}])
    def test_invalid_profile(self, client, body):
        resp = client.put(f"{BASE}/users/u1/activity-profile", json=body)
        assert resp.status_code == 400


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["status"] == "ok"
    assert data["scheduler"]["running"] is False


def test_unknown_route_returns_envelope(client):
    resp = client.get(f"{BASE}/nothing-here")
    assert resp.status_code == 404
    assert resp.get_json()["ok"] is False
