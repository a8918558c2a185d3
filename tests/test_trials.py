import io

import pytest
from openpyxl import load_workbook

from constants import ROLE_ADMIN, ROLE_HOD, STATUS_CREATED, Dept
from conftest import auth_headers, trial_payload
from models import AuditLog, DepartmentProgress, MaterialCorrection, TrialCard, TrialReport
from services.trial_report import generate_and_store_trial_report


@pytest.fixture
def admin(make_user):
    return make_user("boss", Dept.ADMIN, role=ROLE_ADMIN)


def _create(client, user, trial_id="BRAKE DRUM-1", **kw):
    r = client.post("/api/trial", json=trial_payload(trial_id, **kw), headers=auth_headers(user))
    assert r.status_code == 201, r.json()
    return r.json()["data"]


def test_next_trial_id_never_reuses_numbers(client, db, admin):
    h = auth_headers(admin)
    assert client.get("/api/trial/id", params={"part_name": "BRAKE DRUM"}, headers=h).json() == {"trialId": "BRAKE DRUM-1"}

    _create(client, admin, "BRAKE DRUM-1")
    _create(client, admin, "BRAKE DRUM-2")
    client.request("DELETE", "/api/trial", json={"trial_id": "BRAKE DRUM-2"}, headers=h)

    r = client.get("/api/trial/id", params={"part_name": "'BRAKE DRUM'"}, headers=h)
    assert r.json()["trialId"] == "BRAKE DRUM-3"
    assert client.get("/api/trial/id", headers=h).status_code == 400


def test_admin_creates_trial_without_moving_workflow(client, db, admin):
    data = _create(client, admin)
    assert data["status"] == STATUS_CREATED
    assert data["current_department"] == "METHODS"

    db.expire_all()
    rows = db.query(DepartmentProgress).all()
    assert [(p.department_id, p.username, p.approval_status) for p in rows] == [(2, "boss", "pending")]
    assert db.query(AuditLog).filter(AuditLog.action == "Trial created").count() == 1


def test_create_rules(client, admin, make_user):
    _create(client, admin)
    h = auth_headers(admin)
    assert client.post("/api/trial", json=trial_payload(), headers=h).status_code == 409
    assert client.post("/api/trial", json=trial_payload("X-1", plan_moulds=0), headers=h).status_code == 400
    assert client.post("/api/trial", json=trial_payload("X-2", trial_type="OTHER"), headers=h).status_code == 400

    qc = make_user("qc1", Dept.QC)
    assert client.post("/api/trial", json=trial_payload("X-3"), headers=auth_headers(qc)).status_code == 403


def test_list_and_get(client, admin, make_user):
    _create(client, admin, "BRAKE DRUM-1")
    _create(client, admin, "HUB-1", part_name="HUB")
    h = auth_headers(make_user("viewer", Dept.QA))

    assert {t["trial_id"] for t in client.get("/api/trial", headers=h).json()} == {"BRAKE DRUM-1", "HUB-1"}
    rows = client.get("/api/trial/trial_id", params={"trial_id": "HUB-1"}, headers=h).json()
    assert rows[0]["part_name"] == "HUB"
    assert client.get("/api/trial/trial_id", params={"trial_id": "NOPE"}, headers=h).json() == []


def test_all_data_groups_records(client, admin):
    _create(client, admin)
    h = auth_headers(admin)
    client.post("/api/material-correction", json={"trial_id": "BRAKE DRUM-1", "remarks": "qc"}, headers=h)

    data = client.get("/api/trial/all-data", params={"trial_id": "BRAKE DRUM-1"}, headers=h).json()["data"]
    assert data["trial_card"]["trial_id"] == "BRAKE DRUM-1"
    assert data["material_correction"][0]["remarks"] == "qc"
    assert data["sand_properties"] == []
    assert client.get("/api/trial/all-data", params={"trial_id": "NOPE"}, headers=h).status_code == 404


def test_update_requires_hod_or_admin(client, db, admin, make_user):
    _create(client, admin)
    user = make_user("methods1", Dept.METHODS)
    r = client.put("/api/trial/update", json={"trial_id": "BRAKE DRUM-1", "remarks": "x"}, headers=auth_headers(user))
    assert r.status_code == 403

    r = client.put(
        "/api/trial/update",
        json={"trial_id": "BRAKE DRUM-1", "remarks": "changed", "part_name": None},
        headers=auth_headers(admin),
    )
    assert r.status_code == 200
    assert r.json()["data"]["remarks"] == "changed"
    assert r.json()["data"]["part_name"] == "BRAKE DRUM"

    # admin edits leave the workflow alone
    db.expire_all()
    assert db.query(DepartmentProgress).count() == 1


def test_update_notifies_planning_departments(client, db, admin, make_user, monkeypatch):
    from services import mailer

    sent = []
    monkeypatch.setattr(mailer, "send_mail", lambda to, subject, body, cc=None: sent.append(list(to)) or True)
    make_user("sand1", Dept.SAND_PLANT, email="sand@example.com")
    make_user("qa1", Dept.QA, email="qa@example.com")
    _create(client, admin)

    client.put("/api/trial/update", json={"trial_id": "BRAKE DRUM-1", "plan_moulds": 4}, headers=auth_headers(admin))
    assert sent == [["sand@example.com"]]


def test_recycle_bin(client, db, admin, make_user):
    _create(client, admin, "BRAKE DRUM-1")
    _create(client, admin, "BRAKE DRUM-2")
    h = auth_headers(admin)
    client.post("/api/material-correction", json={"trial_id": "BRAKE DRUM-1"}, headers=h)

    hod = make_user("hod", Dept.METHODS, role=ROLE_HOD)
    assert client.request("DELETE", "/api/trial", json={"trial_id": "BRAKE DRUM-1"},
                          headers=auth_headers(hod)).status_code == 403

    r = client.request("DELETE", "/api/trial", json={"trial_id": ["BRAKE DRUM-1", "BRAKE DRUM-2"]}, headers=h)
    assert r.status_code == 200
    assert client.get("/api/trial", headers=h).json() == []
    assert len(client.get("/api/trial/deleted", headers=h).json()) == 2

    # only binned cards can be purged
    r = client.post("/api/trial/restore", json={"trial_id": "BRAKE DRUM-2"}, headers=h)
    assert r.status_code == 200
    r = client.request("DELETE", "/api/trial/permanent", json={"trial_id": "BRAKE DRUM-2"}, headers=h)
    assert r.status_code == 404

    r = client.request("DELETE", "/api/trial/permanent", json={"trial_id": ["BRAKE DRUM-1"]}, headers=h)
    assert r.status_code == 200
    db.expire_all()
    assert db.get(TrialCard, "BRAKE DRUM-1") is None
    assert db.query(MaterialCorrection).count() == 0
    assert db.query(DepartmentProgress).filter(DepartmentProgress.trial_id == "BRAKE DRUM-1").count() == 0
    assert [t["trial_id"] for t in client.get("/api/trial", headers=h).json()] == ["BRAKE DRUM-2"]


def test_report_recycle_bin(client, db, admin, master_card):
    _create(client, admin)
    generate_and_store_trial_report(db, "BRAKE DRUM-1")
    db.commit()
    h = auth_headers(admin)
    body = {"trial_id": "BRAKE DRUM-1"}

    assert len(client.get("/api/trial/recent-reports", headers=h).json()) == 1
    assert client.request("DELETE", "/api/trial/permanent-report", json=body, headers=h).status_code == 404

    assert client.request("DELETE", "/api/trial/delete-reports", json=body, headers=h).status_code == 200
    assert client.get("/api/trial/trial-reports", headers=h).json() == []
    assert len(client.get("/api/trial/deleted-reports", headers=h).json()) == 1

    assert client.post("/api/trial/restore-report", json=body, headers=h).status_code == 200
    assert len(client.get("/api/trial/trial-reports", headers=h).json()) == 1

    client.request("DELETE", "/api/trial/delete-reports", json=body, headers=h)
    assert client.request("DELETE", "/api/trial/permanent-report", json=body, headers=h).status_code == 200
    db.expire_all()
    assert db.query(TrialReport).count() == 0


def test_export_workbook(client, admin):
    _create(client, admin, "BRAKE DRUM-1")
    _create(client, admin, "HUB-1", part_name="HUB")
    r = client.get("/api/trial/export", headers=auth_headers(admin))
    assert r.status_code == 200
    assert "trial_cards.xlsx" in r.headers["content-disposition"]

    ws = load_workbook(io.BytesIO(r.content)).active
    rows = list(ws.iter_rows(values_only=True))
    assert rows[0][0] == "Trial ID"
    assert {row[0] for row in rows[1:]} == {"BRAKE DRUM-1", "HUB-1"}
    assert rows[1][10] == "METHODS"
