import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["API_KEYS"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import config
import main
from models.catalog import MedicalService, Medication
from models.database import Base, get_db
from models.patient import Patient
from services import notifications
from services import queue as queue_service

DOCTOR = {"X-API-Key": "demo-doctor-key"}
INVENTORY = {"X-API-Key": "demo-inventory-key"}
ADMIN = {"X-API-Key": "demo-admin-key"}
DOCTOR_ID = "00000000-0000-0000-0000-00000000d0c1"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    main.app.dependency_overrides[get_db] = override_get_db
    with TestClient(main.app) as test_client:
        yield test_client
    main.app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def isolated_side_effects(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "AUDIT_LOG_PATH", str(tmp_path / "audit_log.jsonl"))
    notifications.clear_notifications()
    yield
    notifications.clear_notifications()


@pytest.fixture
def patient(db):
    patient = Patient(first_name="Aisyah", last_name="Rahman", allergies="Penicillin")
    db.add(patient)
    db.commit()
    db.refresh(patient)
    return patient


@pytest.fixture
def catalog(db):
    paracetamol = Medication(
        name="Paracetamol",
        category="Analgesic",
        price_per_unit=0.5,
        price_tiers={"standard": 0.5, "panel": 0.4},
    )
    syrup = Medication(name="Paracetamol Syrup", category="Analgesic", price_per_unit=8.0)
    amoxicillin = Medication(name="Amoxicillin", category="Antibiotic", price_per_unit=1.2)
    xray = MedicalService(name="Chest X-Ray", category="investigation", price=80.0, price_tiers={"panel": 65.0})
    dressing = MedicalService(name="Wound Dressing", category="procedure", price=25.0)
    db.add_all([paracetamol, syrup, amoxicillin, xray, dressing])
    db.commit()
    return {
        "paracetamol": paracetamol,
        "syrup": syrup,
        "amoxicillin": amoxicillin,
        "xray": xray,
        "dressing": dressing,
    }


@pytest.fixture
def queue_entry(db, patient):
    return queue_service.add_to_queue(db, patient.id, DOCTOR_ID)
