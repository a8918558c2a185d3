from constants import ROLE_ADMIN, ROLE_HOD, Dept
from conftest import auth_headers, trial_payload
from models import MasterCard, TrialCard


def _card(**overrides):
    data = {
        "pattern_code": "PC-200",
        "part_name": "HUB",
        "material_grade": "FG260",
        "chemical_composition": {"C": "3.2", "Si": "1.9"},
        "micro_structure": "Pearlite: 95% min",
        "tensile": "260 MPa min",
        "impact": "--",
        "hardness": "180-230 BHN",
        "xray": "Level 3",
        "tooling": {"number_of_cavity": 4, "pattern_material": "Aluminium"},
    }
    data.update(overrides)
    return data


def test_create_and_list(client, make_user):
    u = make_user("methods1")
    h = auth_headers(u)
    r = client.post("/api/master-list", json=_card(), headers=h)
    assert r.status_code == 201
    card = r.json()["data"]
    assert card["tooling"]["number_of_cavity"] == "4"
    assert card["is_active"] is True

    rows = client.get("/api/master-list", headers=h).json()
    assert [c["pattern_code"] for c in rows] == ["PC-200"]


def test_missing_fields_and_duplicates(client, make_user, master_card):
    h = auth_headers(make_user("methods1"))
    r = client.post("/api/master-list", json=_card(xray="", tensile=None), headers=h)
    assert r.status_code == 400
    assert "tensile" in r.json()["message"] and "xray" in r.json()["message"]

    r = client.post("/api/master-list", json=_card(pattern_code="PC-100"), headers=h)
    assert r.status_code == 409


def test_search_and_specs(client, make_user, master_card):
    h = auth_headers(make_user("methods1"))
    r = client.get("/api/master-list/search", params={"pattern_code": "'PC-100'"}, headers=h)
    assert r.json()["part_name"] == "BRAKE DRUM"
    assert client.get("/api/master-list/search", params={"pattern_code": "NOPE"}, headers=h).json() is None

    specs = client.get("/api/master-list/specs", params={"pattern_code": "PC-100"}, headers=h).json()
    assert specs["chemical_composition"]["c"] == "3.5-3.8"
    assert specs["tensile"]["tensile_strength"] == "≥500"
    assert specs["micro_structure"]["nodularity"] == "≥85"
    assert specs["hardness"]["core"] == "160-220"


def test_update_and_toggle(client, db, make_user, master_card):
    h = auth_headers(make_user("methods1"))
    make_other = client.post("/api/master-list", json=_card(), headers=h).json()["data"]

    r = client.put(
        f"/api/master-list/{master_card.id}",
        json={"pattern_code": "PC-200", "part_name": "BRAKE DRUM"},
        headers=h,
    )
    assert r.status_code == 409

    r = client.put(
        f"/api/master-list/{master_card.id}",
        json={"pattern_code": "PC-100", "part_name": "BRAKE DRUM MK2", "tooling": {"yield_label": "62%"}},
        headers=h,
    )
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["part_name"] == "BRAKE DRUM MK2"
    assert data["material_grade"] == "SG500/7"
    assert data["tooling"]["yield_label"] == "62%"

    r = client.put("/api/master-list/toggle-status", json={"id": make_other["id"], "is_active": False}, headers=h)
    assert r.status_code == 200
    db.expire_all()
    assert db.get(MasterCard, make_other["id"]).is_active is False


def test_bulk_delete_takes_trials_along(client, db, make_user, master_card):
    admin = make_user("boss", department_id=Dept.ADMIN, role=ROLE_ADMIN)
    r = client.post("/api/trial", json=trial_payload(), headers=auth_headers(admin))
    assert r.status_code == 201

    hod = make_user("hod", department_id=Dept.METHODS, role=ROLE_HOD)
    r = client.request("DELETE", "/api/master-list/bulk", json={"ids": [master_card.id]}, headers=auth_headers(hod))
    assert r.status_code == 403

    r = client.request("DELETE", "/api/master-list/bulk", json={"ids": [master_card.id]}, headers=auth_headers(admin))
    assert r.status_code == 200
    assert r.json()["deleted_trials"] == 1
    db.expire_all()
    assert db.query(MasterCard).count() == 0
    assert db.query(TrialCard).count() == 0
