import pytest
from fastapi import HTTPException

from constants import ROLE_ADMIN, ROLE_HOD, Dept
from conftest import auth_headers, trial_payload
from models import TrialCard
from routers.v1.visual_inspection import derive_cavity_row

TID = "BRAKE DRUM-1"


@pytest.fixture
def trial(client, make_user):
    admin = make_user("boss", Dept.ADMIN, role=ROLE_ADMIN)
    r = client.post("/api/trial", json=trial_payload(), headers=auth_headers(admin))
    assert r.status_code == 201
    return admin


def test_derive_cavity_row():
    row = derive_cavity_row({"Cavity Number": "2", "Inspected Quantity": "50", "Accepted Quantity": "45"})
    assert row["Rejected Quantity"] == 5
    assert row["Rejection Percentage"] == 10.0

    untouched = derive_cavity_row({"Cavity Number": "3", "Inspected Quantity": ""})
    assert "Rejected Quantity" not in untouched

    with pytest.raises(HTTPException) as exc:
        derive_cavity_row({"Cavity Number": "4", "Inspected Quantity": 5, "Accepted Quantity": 6})
    assert exc.value.status_code == 400
    assert "Cavity 4" in exc.value.detail


def test_derive_cavity_row_from_entered_rejections():
    row = derive_cavity_row({"Cavity Number": "1", "Inspected Quantity": "40", "Rejected Quantity": "10"})
    assert row["Rejection Percentage"] == 25.0
    assert row["Rejected Quantity"] == "10"

    # a stale client figure is replaced
    row = derive_cavity_row({"Inspected Quantity": "40", "Rejected Quantity": "10", "Rejection Percentage": "99"})
    assert row["Rejection Percentage"] == 25.0

    row = derive_cavity_row({"Inspected Quantity": "0", "Rejected Quantity": "0", "Rejection Percentage": "5"})
    assert row["Rejection Percentage"] == ""

    with pytest.raises(HTTPException) as exc:
        derive_cavity_row({"Cavity number": "7", "Inspected Quantity": 5, "Rejected Quantity": 8})
    assert exc.value.status_code == 400
    assert "Cavity 7" in exc.value.detail


def test_visual_inspection_rejections(client, trial):
    r = client.post(
        "/api/visual-inspection",
        json={
            "trial_id": TID,
            "visual_ok": False,
            "inspections": [
                {"Cavity Number": "1", "Inspected Quantity": 40, "Accepted Quantity": 30},
                {"Cavity Number": "2", "Inspected Quantity": 0, "Accepted Quantity": 0},
            ],
        },
        headers=auth_headers(trial),
    )
    assert r.status_code == 201
    rows = r.json()["data"]["inspections"]
    assert rows[0]["Rejected Quantity"] == 10
    assert rows[0]["Rejection Percentage"] == 25.0
    assert rows[1]["Rejection Percentage"] == ""

    r = client.post(
        "/api/visual-inspection",
        json={"trial_id": TID, "visual_ok": True},
        headers=auth_headers(trial),
    )
    assert r.status_code == 409


def test_visual_inspection_accepted_over_inspected(client, trial):
    r = client.post(
        "/api/visual-inspection",
        json={
            "trial_id": TID,
            "visual_ok": True,
            "inspections": [{"Cavity Number": "1", "Inspected Quantity": 4, "Accepted Quantity": 9}],
        },
        headers=auth_headers(trial),
    )
    assert r.status_code == 400


def test_dimensional_yield(client, trial):
    h = auth_headers(trial)
    r = client.post(
        "/api/dimensional-inspection",
        json={"trial_id": TID, "inspection_date": "2026-10-04", "casting_weight": 6, "no_of_cavities": 4, "bunch_weight": 20},
        headers=h,
    )
    assert r.status_code == 400
    assert r.json()["message"].startswith("Yield exceeds 100%")

    r = client.post(
        "/api/dimensional-inspection",
        json={"trial_id": TID, "inspection_date": "2026-10-04", "casting_weight": 2.5, "no_of_cavities": 4,
              "bunch_weight": 20, "yields": 99},
        headers=h,
    )
    assert r.status_code == 201
    assert float(r.json()["data"]["yields"]) == 50.0

    # update recomputes from the stored weights
    r = client.put("/api/dimensional-inspection", json={"trial_id": TID, "bunch_weight": 25}, headers=h)
    assert r.status_code == 200
    assert float(r.json()["data"]["yields"]) == 40.0

    r = client.put("/api/dimensional-inspection", json={"trial_id": TID, "casting_weight": 7}, headers=h)
    assert r.status_code == 400


def test_pouring_updates_actual_moulds(client, db, trial):
    h = auth_headers(trial)
    r = client.post(
        "/api/pouring-details",
        json={"trial_id": TID, "pour_date": "2026-10-03", "no_of_mould_poured": 7, "heat_code": "H1"},
        headers=h,
    )
    assert r.status_code == 201
    db.expire_all()
    assert db.get(TrialCard, TID).actual_moulds == 7

    r = client.put("/api/pouring-details", json={"trial_id": TID, "no_of_mould_poured": 9}, headers=h)
    assert r.status_code == 200
    assert r.json()["data"]["heat_code"] == "H1"
    db.expire_all()
    assert db.get(TrialCard, TID).actual_moulds == 9


def test_update_without_edit_flag_keeps_record(client, trial, make_user):
    h = auth_headers(trial)
    client.post("/api/sand-properties", json={"trial_id": TID, "date": "2026-10-02", "gcs": 1400}, headers=h)
    r = client.put("/api/sand-properties", json={"trial_id": TID, "gcs": 1, "is_edit": False}, headers=h)
    assert r.status_code == 200
    assert float(r.json()["data"]["gcs"]) == 1400


def test_validation_on_measurements(client, trial):
    r = client.post(
        "/api/sand-properties",
        json={"trial_id": TID, "date": "2026-10-02", "gcs": -3},
        headers=auth_headers(trial),
    )
    assert r.status_code == 400


def test_records_for_unknown_or_deleted_trial(client, db, trial):
    h = auth_headers(trial)
    r = client.post("/api/material-correction", json={"trial_id": "NOPE-1"}, headers=h)
    assert r.status_code == 404

    client.request("DELETE", "/api/trial", json={"trial_id": TID}, headers=h)
    r = client.post("/api/material-correction", json={"trial_id": TID}, headers=h)
    assert r.status_code == 404


def test_read_endpoints(client, trial, make_user):
    client.post("/api/material-correction", json={"trial_id": TID, "remarks": "r"}, headers=auth_headers(trial))
    viewer = make_user("viewer", Dept.QA)
    h = auth_headers(viewer)

    assert len(client.get("/api/material-correction", headers=h).json()) == 1
    rows = client.get("/api/material-correction/trial_id", params={"trial_id": f'"{TID}"'}, headers=h).json()
    assert rows[0]["remarks"] == "r"
    assert client.get("/api/material-correction/trial_id", headers=h).status_code == 400
    assert client.get("/api/material-correction").status_code == 401


def test_machine_shop_open_to_metallurgy(client, trial, make_user):
    metal = make_user("metal1", Dept.METALLURGICAL_INSPECTION, role=ROLE_HOD)
    r = client.post(
        "/api/machine-shop",
        json={"trial_id": TID, "inspection_date": "2026-10-06", "is_draft": True},
        headers=auth_headers(metal),
    )
    # draft from the last flow department has nothing to open
    assert r.status_code == 201
