"""
Patient queue and queue session-state store.

Each queue entry owns one `QueueSession` whose `session_data` holds the
structured snapshot of the visit in progress.  Writes to `session_data` are
guarded: the stored record must not be archived and must belong to the queue
id being written.  The guard is check-then-act and relies on the database to
serialise concurrent writers.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from models.queue import PatientQueue, QueueSession
from models.schemas import QueueSessionStatus, QueueStatus

logger = logging.getLogger(__name__)


class IntegrityViolation(ValueError):
    """A write would corrupt the session-state store and was refused."""


def next_queue_number(db: Session, queue_date: Optional[date] = None) -> str:
    """Sequential per-day number: Q001, Q002, ..."""
    queue_date = queue_date or date.today()
    count = db.query(PatientQueue).filter(PatientQueue.queue_date == queue_date).count()
    return f"Q{count + 1:03d}"


def add_to_queue(db: Session, patient_id: str, doctor_id: Optional[str] = None) -> PatientQueue:
    """Check a patient in and open the queue session that tracks the visit."""
    queue_number = next_queue_number(db)
    entry = PatientQueue(
        patient_id=patient_id,
        queue_number=queue_number,
        assigned_doctor_id=doctor_id,
        status=QueueStatus.WAITING.value,
    )
    db.add(entry)
    db.flush()  # flush to assign an ID before adding the session
    session = QueueSession(
        queue_id=entry.id,
        patient_id=patient_id,
        session_data={
            "queue_number": queue_number,
            "assigned_doctor_id": doctor_id,
            "registration_timestamp": datetime.utcnow().isoformat(),
        },
        status=QueueSessionStatus.ACTIVE.value,
    )
    db.add(session)
    db.commit()
    db.refresh(entry)
    logger.info("Patient %s added to queue as %s", patient_id, queue_number)
    return entry


def get_queue_entry(db: Session, queue_id: str) -> Optional[PatientQueue]:
    return db.query(PatientQueue).filter(PatientQueue.id == queue_id).first()


def update_queue_status(
    db: Session, queue_id: str, status: QueueStatus, doctor_id: Optional[str] = None
) -> PatientQueue:
    entry = get_queue_entry(db, queue_id)
    if entry is None:
        raise ValueError(f"Queue entry {queue_id} not found")
    status = QueueStatus(status)
    entry.status = status.value
    if status == QueueStatus.IN_CONSULTATION:
        entry.consultation_started_at = datetime.utcnow()
        if doctor_id:
            entry.assigned_doctor_id = doctor_id
    elif status in (QueueStatus.COMPLETED, QueueStatus.DISPENSARY):
        entry.consultation_completed_at = datetime.utcnow()
    entry.update_timestamp()
    db.commit()
    db.refresh(entry)
    logger.info("Queue entry %s moved to %s", queue_id, status.value)
    return entry


def call_next_patient(db: Session, doctor_id: Optional[str] = None) -> Optional[PatientQueue]:
    """Move today's first waiting patient into consultation."""
    entry = (
        db.query(PatientQueue)
        .filter(
            PatientQueue.queue_date == date.today(),
            PatientQueue.status == QueueStatus.WAITING.value,
        )
        .order_by(PatientQueue.checked_in_at, PatientQueue.queue_number)
        .first()
    )
    if entry is None:
        return None
    return update_queue_status(db, entry.id, QueueStatus.IN_CONSULTATION, doctor_id)


def get_queue_session(db: Session, queue_id: str) -> Optional[QueueSession]:
    return db.query(QueueSession).filter(QueueSession.queue_id == queue_id).first()


def _guarded_session(db: Session, queue_id: str) -> QueueSession:
    record = get_queue_session(db, queue_id)
    if record is None:
        raise ValueError(f"Queue session for {queue_id} not found")
    if record.status == QueueSessionStatus.ARCHIVED.value:
        raise IntegrityViolation(f"Queue session {record.id} is archived and cannot be modified")
    # Re-checked on the loaded row: a stale or cached record must not be written under another queue
    if record.queue_id != queue_id:
        raise IntegrityViolation(
            f"Queue session {record.id} belongs to queue {record.queue_id}, not {queue_id}"
        )
    return record


def update_session_data(db: Session, queue_id: str, session_data: Dict[str, Any]) -> QueueSession:
    """Replace the session snapshot for a queue entry.

    Raises IntegrityViolation, without writing, when the stored record is
    archived or does not belong to ``queue_id``.
    """
    record = _guarded_session(db, queue_id)
    record.session_data = dict(session_data)
    record.update_timestamp()
    db.commit()
    db.refresh(record)
    return record


def complete_queue_session(db: Session, queue_id: str) -> QueueSession:
    """Mark the session-state record and its queue entry completed."""
    record = _guarded_session(db, queue_id)
    now = datetime.utcnow()
    record.status = QueueSessionStatus.COMPLETED.value
    record.update_timestamp()
    entry = record.queue
    if entry is not None:
        entry.status = QueueStatus.COMPLETED.value
        entry.consultation_completed_at = now
        entry.update_timestamp()
    db.commit()
    db.refresh(record)
    return record


def archive_queue_session(db: Session, queue_id: str) -> QueueSession:
    record = get_queue_session(db, queue_id)
    if record is None:
        raise ValueError(f"Queue session for {queue_id} not found")
    if record.status != QueueSessionStatus.ARCHIVED.value:
        record.status = QueueSessionStatus.ARCHIVED.value
        record.archived_at = datetime.utcnow()
        record.update_timestamp()
        db.commit()
        db.refresh(record)
    return record


def cleanup_archived_sessions(db: Session, older_than_days: int, now: Optional[datetime] = None) -> int:
    """Delete archived sessions archived before the cutoff. Returns the count."""
    cutoff = (now or datetime.utcnow()) - timedelta(days=older_than_days)
    stale = (
        db.query(QueueSession)
        .filter(
            QueueSession.status == QueueSessionStatus.ARCHIVED.value,
            QueueSession.archived_at < cutoff,
        )
        .all()
    )
    for record in stale:
        db.delete(record)
    db.commit()
    logger.info("Cleaned up %d archived queue sessions older than %s", len(stale), cutoff.isoformat())
    return len(stale)
