import json

import pytest

import config
from services import procurement as procurement_service

from conftest import ADMIN, DOCTOR, INVENTORY


@pytest.fixture
def queued(client, patient):
    response = client.post("/queue", json={"patient_id": patient.id}, headers=DOCTOR)
    assert response.status_code == 201
    return response.json()


def _complete_payload(patient_id, queue_id, items=None):
    return {
        "patient_id": patient_id,
        "queue_id": queue_id,
        "consultation": {
            "notes": "Productive cough",
            "diagnosis": "Acute bronchitis",
            "treatment_items": items
            if items is not None
            else [
                {"name": "Amoxicillin", "quantity": 21, "rate": 1.2, "dosage": "500mg", "frequency": "TDS"},
                {"name": "Chest X-Ray", "quantity": 1, "rate": 80},
            ],
        },
    }


def test_unknown_api_key_is_rejected(client):
    assert client.get("/reorder-suggestions", headers={"X-API-Key": "nope"}).status_code == 401


def test_role_is_enforced(client, patient, queued):
    response = client.post(
        "/consultations/complete", json=_complete_payload(patient.id, queued["id"]), headers=INVENTORY
    )
    assert response.status_code == 403


def test_full_consultation_flow(client, patient, catalog, queued):
    assert queued["queue_number"] == "Q001"

    started = client.post(
        "/consultations/start", json={"patient_id": patient.id, "queue_id": queued["id"]}, headers=DOCTOR
    )
    assert started.status_code == 201

    response = client.post(
        "/consultations/complete", json=_complete_payload(patient.id, queued["id"]), headers=DOCTOR
    )
    assert response.status_code == 200
    outcome = response.json()
    assert outcome["session_id"] == started.json()["id"]
    assert len(outcome["treatment_item_ids"]) == 2
    assert len(outcome["activity_ids"]) == 3

    session = client.get(f"/consultations/{outcome['session_id']}").json()
    assert session["status"] == "completed"
    assert session["total_cost"] == pytest.approx(105.2)

    activities = client.get(f"/patients/{patient.id}/activities").json()
    assert len(activities) == 3
    summary = next(a for a in activities if a["activity_type"] == "consultation")
    assert summary["metadata"]["queue_id"] == queued["id"]
    assert summary["metadata"]["total_items"] == 2

    medications = client.get(f"/patients/{patient.id}/medications").json()
    assert [m["medication_name"] for m in medications] == ["Amoxicillin"]

    titles = [n["title"] for n in client.get("/notifications").json()]
    assert titles[:2] == ["Consultation Completed", "Consultation started"]

    with open(config.AUDIT_LOG_PATH) as f:
        actions = [json.loads(line)["action"] for line in f]
    assert actions == ["consultation.completed"]


def test_service_item_with_dosage_is_unprocessable(client, patient, queued):
    items = [{"name": "Chest X-Ray", "item_type": "service", "dosage": "1 tab"}]
    response = client.post(
        "/consultations/complete", json=_complete_payload(patient.id, queued["id"], items), headers=DOCTOR
    )
    assert response.status_code == 422


def test_unknown_queue_is_not_found(client, patient):
    response = client.put("/queue/missing/session", json={"session_data": {}}, headers=DOCTOR)
    assert response.status_code == 404
    response = client.post(
        "/consultations/complete", json=_complete_payload(patient.id, "missing", []), headers=DOCTOR
    )
    assert response.status_code == 404


def test_archived_session_is_a_conflict(client, patient, queued):
    assert client.post(f"/queue/{queued['id']}/archive", headers=DOCTOR).status_code == 200

    response = client.put(
        f"/queue/{queued['id']}/session", json={"session_data": {"diagnosis": "late edit"}}, headers=DOCTOR
    )
    assert response.status_code == 409

    response = client.post(
        "/consultations/complete", json=_complete_payload(patient.id, queued["id"]), headers=DOCTOR
    )
    assert response.status_code == 409
    assert client.get(f"/queue/{queued['id']}/session").json()["session_data"].get("diagnosis") is None


def test_cleanup_requires_admin(client):
    assert client.post("/admin/sessions/cleanup", headers=DOCTOR).status_code == 403
    response = client.post("/admin/sessions/cleanup", headers=ADMIN)
    assert response.status_code == 200
    assert response.json()["deleted_sessions"] == 0


def test_catalog_search(client, catalog):
    names = [m["name"] for m in client.get("/catalog/medications", params={"search": "para"}).json()]
    assert names == ["Paracetamol", "Paracetamol Syrup"]
    xray = client.get("/catalog/services", params={"search": "ray"}).json()[0]
    assert xray["price_tiers"] == {"panel": 65.0}


def test_analytics_endpoint(client):
    response = client.get(
        "/analytics/procurement", params={"start": "2024-01-01", "end": "2024-01-31"}, headers=INVENTORY
    )
    assert response.status_code == 200
    body = response.json()
    assert body["start"] == "2024-01-01"
    assert body["analytics"]["total_orders"] == 0


def test_analytics_failure_yields_null_and_export_unavailable(client, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(procurement_service, "fetch_analytics", broken)
    response = client.get("/analytics/procurement", headers=INVENTORY)
    assert response.status_code == 200
    assert response.json()["analytics"] is None
    assert client.get("/analytics/procurement/export", headers=INVENTORY).status_code == 503


def test_analytics_export_is_csv(client):
    response = client.get("/analytics/procurement/export", headers=INVENTORY)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.text.splitlines()[0] == "Report Section,Key,Value"
    assert "Summary,Total Spend,RM 0.00" in response.text.splitlines()


def test_pause_and_resume(client, patient, queued):
    started = client.post(
        "/consultations/start", json={"patient_id": patient.id, "queue_id": queued["id"]}, headers=DOCTOR
    ).json()
    paused = client.post(f"/consultations/{started['id']}/pause", headers=DOCTOR).json()
    assert paused["status"] == "paused"
    assert paused["paused_at"] is not None
    resumed = client.post(f"/consultations/{started['id']}/resume", headers=DOCTOR).json()
    assert resumed["status"] == "active"
    assert resumed["paused_at"] is None


def test_unknown_consultation_is_not_found(client):
    assert client.get("/consultations/missing").status_code == 404
    assert client.post("/consultations/missing/pause", headers=DOCTOR).status_code == 404
