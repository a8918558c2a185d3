import pytest

from constants import ROLE_ADMIN, ROLE_HOD, Dept
from conftest import auth_headers, trial_payload


@pytest.fixture
def admin(client, make_user):
    admin = make_user("boss", Dept.ADMIN, role=ROLE_ADMIN)
    h = auth_headers(admin)
    client.post("/api/trial", json=trial_payload("BRAKE DRUM-1"), headers=h)
    client.post("/api/trial", json=trial_payload("BRAKE DRUM-2"), headers=h)
    return admin


def _stats(client, user, **params):
    r = client.get("/api/stats/dashboard", params=params, headers=auth_headers(user))
    assert r.status_code == 200
    assert r.json()["success"] is True
    return {s["label"]: s["value"] for s in r.json()["data"]["stats"]}


def test_admin_stats(client, admin, make_user):
    make_user("qc1", Dept.QC)
    make_user("gone", Dept.QC, is_active=False)
    assert _stats(client, admin) == {
        "Total Users": "2",
        "Total Trials": "2",
        "Ongoing Trials": "2",
        "Pending Tasks": "2",
    }


def test_admin_trial_stats(client, admin):
    assert _stats(client, admin, statsType="admin_trials") == {"Total Trials": "2", "Ongoing": "2", "Approved": "0"}


def test_methods_stats(client, admin, make_user):
    hod = make_user("mhod", Dept.METHODS, role=ROLE_HOD)
    stats = _stats(client, hod, role="Methods")
    assert stats["Process Reviews"] == "2"
    assert stats["Completed Trials"] == "0"
    assert stats["Ongoing Trials"] == "2"
    assert stats["Team Members"] == "1"

    dash = _stats(client, hod, statsType="methods_dashboard")
    assert dash["Active Projects"] == "2"
    assert "Ongoing Trials" not in dash


def test_hod_stats(client, admin, make_user):
    hod = make_user("mhod", Dept.METHODS, role=ROLE_HOD)
    assert _stats(client, hod) == {"Department Trials": "2", "Pending Review": "2", "Approved": "0"}


def test_user_stats_and_unknown_role(client, admin):
    assert _stats(client, admin, role="User") == {"My Tasks": "2", "Completed": "0", "Pending": "2"}
    assert _stats(client, admin, role="Guest") == {}


def test_colors_and_descriptions(client, admin):
    r = client.get("/api/stats/dashboard", headers=auth_headers(admin))
    first = r.json()["data"]["stats"][0]
    assert first["color"].startswith("#")
    assert first["description"] == "System users"
