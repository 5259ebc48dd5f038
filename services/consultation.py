"""
Consultation sessions, treatment items and consultation notes.

A session tracks one doctor-patient encounter from start to completion.  Each
function here commits its own write; callers that chain several of them get
no transaction spanning the chain.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from models.consultation import ConsultationNote, ConsultationSession, TreatmentItem
from models.schemas import (
    ConsultationSessionRead,
    ItemType,
    QueueStatus,
    SessionStatus,
    TreatmentItemIn,
    UrgencyLevel,
)
from services import queue as queue_service
from services.treatment import parse_duration_days

logger = logging.getLogger(__name__)

OPEN_STATUSES = (SessionStatus.ACTIVE.value, SessionStatus.PAUSED.value)


def start_consultation(
    db: Session,
    patient_id: str,
    doctor_id: Optional[str],
    queue_id: Optional[str] = None,
    urgency_level: UrgencyLevel = UrgencyLevel.NORMAL,
) -> ConsultationSession:
    """Open an active session and move the queue entry into consultation."""
    session = ConsultationSession(
        patient_id=patient_id,
        doctor_id=doctor_id,
        queue_id=queue_id,
        status=SessionStatus.ACTIVE.value,
        urgency_level=UrgencyLevel(urgency_level).value,
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    if queue_id and queue_service.get_queue_entry(db, queue_id) is not None:
        queue_service.update_queue_status(db, queue_id, QueueStatus.IN_CONSULTATION, doctor_id)
    logger.info("Consultation session %s started for patient %s", session.id, patient_id)
    return session


def get_session(db: Session, session_id: str) -> Optional[ConsultationSession]:
    return db.query(ConsultationSession).filter(ConsultationSession.id == session_id).first()


def find_open_session(db: Session, patient_id: str, queue_id: str) -> Optional[ConsultationSession]:
    """Newest session for (patient, queue) that is active or paused."""
    return (
        db.query(ConsultationSession)
        .filter(
            ConsultationSession.patient_id == patient_id,
            ConsultationSession.queue_id == queue_id,
            ConsultationSession.status.in_(OPEN_STATUSES),
        )
        .order_by(ConsultationSession.started_at.desc())
        .first()
    )


def resolve_or_create_session(
    db: Session, patient_id: str, queue_id: str, doctor_id: Optional[str]
) -> ConsultationSession:
    """Reuse the open session for (patient, queue) or create one.

    Lookup-before-insert only: two concurrent callers can both create one.
    """
    session = find_open_session(db, patient_id, queue_id)
    if session is not None:
        return session
    session = ConsultationSession(
        patient_id=patient_id,
        doctor_id=doctor_id,
        queue_id=queue_id,
        status=SessionStatus.ACTIVE.value,
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    return session


def _set_status(db: Session, session_id: str, status: SessionStatus, **fields) -> ConsultationSession:
    session = get_session(db, session_id)
    if session is None:
        raise ValueError(f"Consultation session {session_id} not found")
    session.status = status.value
    for key, value in fields.items():
        setattr(session, key, value)
    session.update_timestamp()
    db.commit()
    db.refresh(session)
    return session


def pause_consultation(db: Session, session_id: str) -> ConsultationSession:
    return _set_status(db, session_id, SessionStatus.PAUSED, paused_at=datetime.utcnow())


def resume_consultation(db: Session, session_id: str) -> ConsultationSession:
    return _set_status(db, session_id, SessionStatus.ACTIVE, paused_at=None)


def complete_session(db: Session, session_id: str) -> ConsultationSession:
    """Mark a session completed and record its duration in whole minutes."""
    session = get_session(db, session_id)
    if session is None:
        raise ValueError(f"Consultation session {session_id} not found")
    now = datetime.utcnow()
    minutes = int((now - session.started_at).total_seconds() // 60)
    return _set_status(
        db,
        session_id,
        SessionStatus.COMPLETED,
        completed_at=now,
        total_duration_minutes=max(minutes, 0),
    )


def add_treatment_item(
    db: Session,
    session_id: str,
    item: TreatmentItemIn,
    catalog_id: Optional[str] = None,
    tier_price: Optional[float] = None,
) -> TreatmentItem:
    """Insert one prescribed line; ``catalog_id`` may be None."""
    is_medication = item.item_type == ItemType.MEDICATION
    record = TreatmentItem(
        consultation_session_id=session_id,
        item_type=item.item_type.value,
        item_name=item.name,
        medication_id=catalog_id if is_medication else None,
        service_id=None if is_medication else catalog_id,
        quantity=item.quantity,
        rate=item.rate,
        total_amount=item.amount,
        tier_used=item.price_tier,
        tier_price_applied=tier_price,
        dosage_instructions=item.dosage,
        frequency=item.frequency,
        duration_days=parse_duration_days(item.duration),
        notes=item.instruction,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def create_consultation_note(
    db: Session,
    patient_id: str,
    doctor_id: Optional[str],
    session_id: Optional[str] = None,
    diagnosis: Optional[str] = None,
    treatment_plan: Optional[str] = None,
    chief_complaint: Optional[str] = None,
    prescriptions: Optional[str] = None,
) -> ConsultationNote:
    note = ConsultationNote(
        consultation_session_id=session_id,
        patient_id=patient_id,
        doctor_id=doctor_id,
        chief_complaint=chief_complaint,
        diagnosis=diagnosis,
        treatment_plan=treatment_plan,
        prescriptions=prescriptions,
    )
    db.add(note)
    db.commit()
    db.refresh(note)
    return note


def calculate_total_cost(session: ConsultationSession) -> float:
    return sum(item.total_amount for item in session.treatment_items)


def to_session_read(session: ConsultationSession) -> ConsultationSessionRead:
    read = ConsultationSessionRead.model_validate(session)
    read.total_cost = calculate_total_cost(session)
    return read


def get_session_details(db: Session, session_id: str) -> ConsultationSessionRead:
    """Session with its treatment items, notes and total cost."""
    session = get_session(db, session_id)
    if session is None:
        raise ValueError(f"Consultation session {session_id} not found")
    return to_session_read(session)
