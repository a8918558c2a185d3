# routers/v1/departments.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from constants import Dept
from database import get_db
from deps.auth import get_current_user
from models import Department, User
from schemas import DepartmentOut

router = APIRouter(prefix="/departments", tags=["departments"])


@router.get("")
def list_departments(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    rows = db.query(Department).filter(Department.id != int(Dept.ADMIN)).order_by(Department.id).all()
    return [DepartmentOut.model_validate(d).model_dump() for d in rows]
