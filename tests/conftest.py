import os

# settings.py reads the environment at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["BCRYPT_SALT_ROUNDS"] = "4"
os.environ["MAIL_ENABLED"] = "false"
os.environ["LOG_TO_FILE"] = "false"

import datetime as dt

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401  (registers all tables)
from constants import ROLE_USER, Dept
from database import Base, get_db
from deps.auth import create_access_token, get_password_hash
from main import app
from models import MasterCard, User
from seed_data import seed_reference_data

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    seed_reference_data(session)
    session.commit()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        s = TestingSessionLocal()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make(
        username,
        department_id=Dept.METHODS,
        role=ROLE_USER,
        password="secret123",
        email=None,
        machine_shop_user_type="N/A",
        is_active=True,
    ):
        u = User(
            username=username,
            full_name=username.title(),
            email=email,
            password_hash=get_password_hash(password),
            department_id=int(department_id),
            role=role,
            machine_shop_user_type=machine_shop_user_type,
            is_active=is_active,
        )
        db.add(u)
        db.commit()
        db.refresh(u)
        return u
    return _make


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def master_card(db):
    card = MasterCard(
        pattern_code="PC-100",
        part_name="BRAKE DRUM",
        material_grade="SG500/7",
        chemical_composition={"C": "3.5-3.8", "Si": "2.2-2.6", "Mn": "0.3"},
        micro_structure="Nodularity: 85% min\nPearlite: 40-60%\nCarbide: 5% max",
        tensile="Tensile Strength: 500 MPa min\nYield Strength: 320 MPa\nElongation: 7%",
        impact="--",
        hardness="Surface: 170-230 BHN\nCore: 160-220 BHN",
        xray="Level 2",
        is_active=True,
    )
    db.add(card)
    db.commit()
    db.refresh(card)
    return card


def trial_payload(trial_id="BRAKE DRUM-1", **overrides) -> dict:
    data = {
        "trial_id": trial_id,
        "part_name": "BRAKE DRUM",
        "pattern_code": "PC-100",
        "trial_type": "INHOUSE MACHINING(NPD)",
        "material_grade": "SG500/7",
        "initiated_by": "methods1",
        "date_of_sampling": dt.date(2026, 10, 1).isoformat(),
        "plan_moulds": 10,
        "reason_for_sampling": "New pattern",
        "disa": "DISA 1",
        "sample_traceability": "Heat 42",
    }
    data.update(overrides)
    return data
