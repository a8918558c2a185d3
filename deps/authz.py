# deps/authz.py
from fastapi import Depends, HTTPException, status

from deps.auth import get_current_user
from models import User


def require_roles(*roles: str):
    """Allow-list on User.role ("User" / "HOD" / "Admin")."""
    def dep(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access Denied")
        return user
    return dep


def require_departments(*department_ids: int):
    """Allow-list on User.department_id."""
    allowed = {int(d) for d in department_ids}

    def dep(user: User = Depends(get_current_user)) -> User:
        if user.department_id not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access Denied")
        return user
    return dep
