import base64

import pytest

from constants import ROLE_ADMIN, Dept
from conftest import auth_headers, trial_payload
from models import AuditLog
from routers.v1.documents import decode_base64_payload, mime_type_for

PDF = b"%PDF-1.4 trial document"


@pytest.fixture
def trial(client, make_user):
    admin = make_user("boss", Dept.ADMIN, role=ROLE_ADMIN)
    client.post("/api/trial", json=trial_payload(), headers=auth_headers(admin))
    return admin


def _upload(client, user, **overrides):
    body = {
        "trial_id": "BRAKE DRUM-1",
        "document_type": "Pattern Photo",
        "file_name": "pattern.pdf",
        "file_base64": "data:application/pdf;base64," + base64.b64encode(PDF).decode(),
    }
    body.update(overrides)
    return client.post("/api/documents", json=body, headers=auth_headers(user))


def test_helpers():
    assert mime_type_for("A.PDF") == "application/pdf"
    assert mime_type_for("photo.jpeg") == "image/jpeg"
    assert mime_type_for("blob") == "application/octet-stream"
    assert decode_base64_payload(base64.b64encode(b"xyz").decode()) == b"xyz"


def test_upload_list_and_view(client, db, trial, make_user):
    qc = make_user("qc1", Dept.QC)
    r = _upload(client, qc, remarks="front side")
    assert r.status_code == 201
    doc_id = r.json()["document_id"]

    docs = client.get("/api/documents", params={"trial_id": "BRAKE DRUM-1"}, headers=auth_headers(qc)).json()["data"]
    assert len(docs) == 1
    assert docs[0]["uploaded_by"] == "qc1"
    assert docs[0]["remarks"] == "front side"

    db.expire_all()
    assert db.query(AuditLog).filter(AuditLog.action == "Document uploaded").count() == 1

    # opened by the browser without a token
    r = client.get(f"/api/documents/view/{doc_id}")
    assert r.status_code == 200
    assert r.content == PDF
    assert r.headers["content-type"] == "application/pdf"
    assert r.headers["content-disposition"] == 'inline; filename="pattern.pdf"'


def test_upload_errors(client, trial):
    assert _upload(client, trial, trial_id="NOPE-1").status_code == 404
    assert _upload(client, trial, file_base64="abc").status_code == 400
    assert _upload(client, trial, file_name="").status_code == 400


def test_view_missing_document(client):
    assert client.get("/api/documents/view/999").status_code == 404


def test_list_requires_trial_id(client, trial):
    assert client.get("/api/documents", headers=auth_headers(trial)).status_code == 400
