from datetime import timedelta

from constants import OTP_MAX_ATTEMPTS, PROFILE_PHOTO_MAX_CHARS, ROLE_ADMIN, ROLE_HOD, Dept
from conftest import auth_headers
from deps.auth import verify_password
from models import EmailOtp, User
from services import mailer
from utils import utcnow


def _admin(make_user):
    return make_user("boss", department_id=Dept.ADMIN, role=ROLE_ADMIN)


def test_admin_creates_user(client, db, make_user):
    admin = _admin(make_user)
    r = client.post(
        "/api/users",
        json={
            "username": " sand1 ",
            "password": "secret123",
            "department_id": int(Dept.SAND_PLANT),
            "role": ROLE_HOD,
            "email": "sand1@example.com",
        },
        headers=auth_headers(admin),
    )
    assert r.status_code == 201
    out = r.json()["user"]
    assert out["username"] == "sand1"
    assert out["department_name"] == "SAND PLANT"
    assert out["needs_password_change"] is True
    assert "password_hash" not in out

    db.expire_all()
    u = db.query(User).filter(User.username == "sand1").one()
    assert u.password_hash != "secret123"
    assert verify_password("secret123", u.password_hash)


def test_duplicate_username_and_bad_department(client, make_user):
    admin = _admin(make_user)
    make_user("sand1", department_id=Dept.SAND_PLANT)
    base = {"password": "secret123", "department_id": int(Dept.SAND_PLANT)}

    r = client.post("/api/users", json={"username": "SAND1", **base}, headers=auth_headers(admin))
    assert r.status_code == 409

    r = client.post(
        "/api/users",
        json={"username": "other", "password": "secret123", "department_id": 99},
        headers=auth_headers(admin),
    )
    assert r.status_code == 400


def test_only_admin_creates_users(client, make_user):
    hod = make_user("hod", department_id=Dept.QC, role=ROLE_HOD)
    r = client.post(
        "/api/users",
        json={"username": "x1x", "password": "secret123", "department_id": 3},
        headers=auth_headers(hod),
    )
    assert r.status_code == 403


def test_list_hides_admins(client, make_user):
    admin = _admin(make_user)
    make_user("methods1")
    r = client.get("/api/users", headers=auth_headers(admin))
    names = [u["username"] for u in r.json()["users"]]
    assert names == ["methods1"]


def test_update_email_resets_verification(client, db, make_user):
    admin = _admin(make_user)
    u = make_user("qc1", department_id=Dept.QC, email="old@example.com")
    u.email_verified = True
    db.commit()

    r = client.put(f"/api/users/{u.id}", json={"email": "new@example.com"}, headers=auth_headers(admin))
    assert r.status_code == 200
    assert r.json()["user"]["email_verified"] is False


def test_delete_user(client, db, make_user):
    admin = _admin(make_user)
    u = make_user("qc1", department_id=Dept.QC)
    assert client.delete(f"/api/users/{admin.id}", headers=auth_headers(admin)).status_code == 400
    assert client.delete(f"/api/users/{u.id}", headers=auth_headers(admin)).status_code == 200
    assert client.delete("/api/users/9999", headers=auth_headers(admin)).status_code == 404


def test_change_status_requires_boolean(client, db, make_user):
    admin = _admin(make_user)
    u = make_user("qc1", department_id=Dept.QC)

    r = client.post("/api/users/change-status", json={"userId": u.id, "status": "no"}, headers=auth_headers(admin))
    assert r.status_code == 400

    r = client.post("/api/users/change-status", json={"userId": u.id, "status": False}, headers=auth_headers(admin))
    assert r.status_code == 200
    db.expire_all()
    assert db.get(User, u.id).is_active is False

    # an inactive account's token stops working
    r = client.get("/api/departments", headers=auth_headers(u))
    assert r.status_code == 401


def test_change_password(client, db, make_user):
    u = make_user("qc1", department_id=Dept.QC)
    h = auth_headers(u)

    assert client.post("/api/users/change-password", json={"newPassword": "123"}, headers=h).status_code == 400
    assert client.post("/api/users/change-password", json={"newPassword": "qc1"}, headers=h).status_code == 400
    r = client.post(
        "/api/users/change-password",
        json={"newPassword": "another-pass", "oldPassword": "wrong"},
        headers=h,
    )
    assert r.status_code == 400

    r = client.post(
        "/api/users/change-password",
        json={"newPassword": "another-pass", "oldPassword": "secret123"},
        headers=h,
    )
    assert r.status_code == 200
    db.expire_all()
    fresh = db.get(User, u.id)
    assert verify_password("another-pass", fresh.password_hash)
    assert fresh.needs_password_change is False


def test_update_username(client, make_user):
    u = make_user("qc1", department_id=Dept.QC)
    make_user("taken", department_id=Dept.QC)
    h = auth_headers(u)

    assert client.post("/api/users/update-username", json={"username": "qc1"}, headers=h).status_code == 400
    assert client.post("/api/users/update-username", json={"username": "ab"}, headers=h).status_code == 400
    assert client.post("/api/users/update-username", json={"username": "taken"}, headers=h).status_code == 409
    r = client.post("/api/users/update-username", json={"username": "qc-lead"}, headers=h)
    assert r.status_code == 200
    assert r.json()["username"] == "qc-lead"


def test_email_otp_flow(client, db, make_user, monkeypatch):
    sent = []
    monkeypatch.setattr(mailer, "send_mail", lambda to, subject, body, cc=None: sent.append((to, body)) or True)
    u = make_user("qc1", department_id=Dept.QC)
    h = auth_headers(u)

    r = client.post("/api/users/send-otp", json={"email": "qc1@example.com"}, headers=h)
    assert r.status_code == 200
    assert sent and sent[0][0] == "qc1@example.com"

    db.expire_all()
    otp = db.query(EmailOtp).filter(EmailOtp.user_id == u.id).one()
    assert len(otp.otp_code) == 6
    assert otp.otp_code in sent[0][1]

    r = client.post("/api/users/verify-otp", json={"email": "qc1@example.com", "otp": "x"}, headers=h)
    assert r.status_code == 400

    r = client.post("/api/users/verify-otp", json={"email": "qc1@example.com", "otp": otp.otp_code}, headers=h)
    assert r.status_code == 200
    db.expire_all()
    fresh = db.get(User, u.id)
    assert fresh.email == "qc1@example.com"
    assert fresh.email_verified is True


def test_expired_email_otp(client, db, make_user):
    u = make_user("qc1", department_id=Dept.QC)
    db.add(EmailOtp(user_id=u.id, email="qc1@example.com", otp_code="123456",
                    expires_at=utcnow() - timedelta(minutes=1), used=False, attempts=0))
    db.commit()
    r = client.post(
        "/api/users/verify-otp",
        json={"email": "qc1@example.com", "otp": "123456"},
        headers=auth_headers(u),
    )
    assert r.status_code == 400


def test_send_otp_email_in_use(client, make_user):
    make_user("other", department_id=Dept.QC, email="dup@example.com")
    u = make_user("qc1", department_id=Dept.QC)
    r = client.post("/api/users/send-otp", json={"email": "DUP@example.com"}, headers=auth_headers(u))
    assert r.status_code == 409


def test_profile_photo(client, make_user):
    u = make_user("qc1", department_id=Dept.QC)
    h = auth_headers(u)
    assert client.post("/api/users/upload-photo", json={"photoBase64": "hello"}, headers=h).status_code == 400

    photo = "data:image/png;base64,iVBORw0KGgo="
    assert client.post("/api/users/upload-photo", json={"photoBase64": photo}, headers=h).status_code == 200
    assert client.get("/api/users/profile-photo", headers=h).json()["profilePhoto"] == photo


def test_email_otp_locks_after_max_attempts(client, db, make_user):
    u = make_user("qc1", department_id=Dept.QC)
    h = auth_headers(u)
    db.add(EmailOtp(user_id=u.id, email="qc1@example.com", otp_code="123456",
                    expires_at=utcnow() + timedelta(minutes=5), used=False, attempts=0))
    db.commit()

    for _ in range(OTP_MAX_ATTEMPTS):
        r = client.post("/api/users/verify-otp", json={"email": "qc1@example.com", "otp": "000000"}, headers=h)
        assert r.status_code == 400
        assert r.json()["message"] == "Invalid OTP"

    db.expire_all()
    otp = db.query(EmailOtp).filter(EmailOtp.user_id == u.id).one()
    assert otp.attempts == OTP_MAX_ATTEMPTS
    assert otp.used is True

    r = client.post("/api/users/verify-otp", json={"email": "qc1@example.com", "otp": "123456"}, headers=h)
    assert r.status_code == 400
    assert r.json()["message"] == "OTP not found or expired"
    assert db.get(User, u.id).email_verified is False


def test_profile_photo_size_limit(client, make_user):
    h = auth_headers(make_user("qc1", department_id=Dept.QC))
    prefix = "data:image/png;base64,"
    too_big = prefix + "A" * (PROFILE_PHOTO_MAX_CHARS - len(prefix) + 1)
    r = client.post("/api/users/upload-photo", json={"photoBase64": too_big}, headers=h)
    assert r.status_code == 400

    at_limit = prefix + "A" * (PROFILE_PHOTO_MAX_CHARS - len(prefix))
    assert client.post("/api/users/upload-photo", json={"photoBase64": at_limit}, headers=h).status_code == 200
