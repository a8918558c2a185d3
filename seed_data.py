# seed_data.py
"""
Reference data for a fresh database: departments, the default department
flow and a first Admin account. Safe to run more than once.

    python seed_data.py --admin-username admin --admin-password 'S3cret!'
"""
import argparse
import logging

from sqlalchemy.orm import Session

from constants import DEFAULT_FLOW, DEPARTMENT_NAMES, ROLE_ADMIN, Dept
from database import SessionLocal
from deps.auth import get_password_hash
from logging_config import setup_logging
from models import Department, DepartmentFlow, User

logger = logging.getLogger(__name__)


def seed_departments(db: Session) -> int:
    created = 0
    for dept_id, name in DEPARTMENT_NAMES.items():
        dept = db.get(Department, int(dept_id))
        if dept is None:
            db.add(Department(id=int(dept_id), name=name))
            created += 1
        elif dept.name != name:
            dept.name = name
    db.flush()
    return created


def seed_flow(db: Session) -> int:
    """Writes DEFAULT_FLOW only when no flow is configured yet."""
    if db.query(DepartmentFlow).count():
        return 0
    for seq, dept_id in enumerate(DEFAULT_FLOW, start=1):
        db.add(DepartmentFlow(department_id=int(dept_id), sequence_no=seq))
    db.flush()
    return len(DEFAULT_FLOW)


def ensure_admin(db: Session, username: str, password: str, email: str = None) -> bool:
    if db.query(User).filter(User.username == username).first():
        return False
    db.add(
        User(
            username=username,
            full_name="Administrator",
            email=email,
            password_hash=get_password_hash(password),
            department_id=int(Dept.ADMIN),
            role=ROLE_ADMIN,
            is_active=True,
            email_verified=bool(email),
            needs_password_change=True,
        )
    )
    db.flush()
    return True


def seed_reference_data(db: Session) -> None:
    seed_departments(db)
    seed_flow(db)


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Seed departments, flow and the first Admin user")
    parser.add_argument("--admin-username", default="admin")
    parser.add_argument("--admin-password", required=True)
    parser.add_argument("--admin-email", default=None)
    args = parser.parse_args(argv)

    setup_logging()
    db = SessionLocal()
    try:
        depts = seed_departments(db)
        steps = seed_flow(db)
        admin = ensure_admin(db, args.admin_username, args.admin_password, args.admin_email)
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    logger.info("Seeded %s department(s), %s flow step(s)", depts, steps)
    print(f"✅ departments +{depts}, flow +{steps}, admin {'created' if admin else 'already exists'}")


if __name__ == "__main__":
    main()
