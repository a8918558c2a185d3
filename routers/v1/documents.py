# routers/v1/documents.py
import base64
import binascii
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from database import get_db
from deps.auth import get_current_user
from generic_router import get_trial_or_404
from models import Document, User
from schemas import DocumentCreate
from services.audit import record_audit
from utils import strip_quotes

router = APIRouter(prefix="/documents", tags=["documents"])

MIME_TYPES = {
    ".pdf": "application/pdf",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


def mime_type_for(file_name: str) -> str:
    return MIME_TYPES.get(Path(file_name or "").suffix.lower(), "application/octet-stream")


def decode_base64_payload(data: str) -> bytes:
    """Accepts raw base64 or a data URI ("data:application/pdf;base64,....")."""
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    return base64.b64decode(data, validate=False)


@router.post("", status_code=status.HTTP_201_CREATED)
def upload_document(
    payload: DocumentCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    trial = get_trial_or_404(db, strip_quotes(payload.trial_id))
    try:
        decode_base64_payload(payload.file_base64)
    except (binascii.Error, ValueError):
        raise HTTPException(400, "file_base64 is not valid base64")

    doc = Document(
        trial_id=trial.trial_id,
        document_type=payload.document_type,
        file_name=payload.file_name,
        file_base64=payload.file_base64,
        uploaded_by=user.id,
        remarks=payload.remarks,
    )
    db.add(doc)
    db.flush()
    record_audit(
        db, user, "Document uploaded",
        f"{payload.document_type}: {payload.file_name}", trial.trial_id,
    )
    db.commit()
    return {"success": True, "message": "Document uploaded successfully", "document_id": doc.id}


@router.get("")
def list_documents(
    trial_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    tid = strip_quotes(trial_id)
    if not tid:
        raise HTTPException(400, "trial_id is required")
    rows = (
        db.query(Document, User.username)
        .outerjoin(User, User.id == Document.uploaded_by)
        .filter(Document.trial_id == tid)
        .order_by(Document.uploaded_at.desc(), Document.id.desc())
        .all()
    )
    return {
        "success": True,
        "data": [
            {
                "document_id": d.id,
                "trial_id": d.trial_id,
                "document_type": d.document_type,
                "file_name": d.file_name,
                "file_base64": d.file_base64,
                "remarks": d.remarks,
                "uploaded_by": username,
                "uploaded_at": d.uploaded_at,
            }
            for d, username in rows
        ],
    }


# no token: opened directly by the browser in a new tab
@router.get("/view/{document_id}")
def view_document(document_id: int, db: Session = Depends(get_db)):
    doc = db.get(Document, document_id)
    if not doc:
        raise HTTPException(404, "Document not found")
    try:
        content = decode_base64_payload(doc.file_base64)
    except (binascii.Error, ValueError):
        raise HTTPException(500, "Stored document is corrupt")
    safe_name = doc.file_name.replace('"', "")
    return Response(
        content=content,
        media_type=mime_type_for(doc.file_name),
        headers={"Content-Disposition": f'inline; filename="{safe_name}"'},
    )
