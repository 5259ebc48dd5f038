"""
SQLAlchemy ORM models for the patient queue and its session-state records.

A `QueueSession` carries the in-progress clinical snapshot (`session_data`) for
one queue entry while the patient moves through the visit.
"""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import JSON, Column, Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from models.database import Base, new_id
from models.patient import Patient


class PatientQueue(Base):
    __tablename__ = "patient_queue"

    id = Column(String(36), primary_key=True, default=new_id)
    patient_id = Column(String(36), ForeignKey("patients.id"), nullable=False, index=True)
    queue_number = Column(String, nullable=False)
    queue_date = Column(Date, default=date.today, nullable=False)
    status = Column(String, nullable=False, default="waiting")
    assigned_doctor_id = Column(String(36), nullable=True)
    estimated_consultation_duration = Column(Integer, nullable=True, default=30)
    checked_in_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    consultation_started_at = Column(DateTime, nullable=True)
    consultation_completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    patient = relationship(Patient)
    session = relationship("QueueSession", back_populates="queue", uselist=False)

    def update_timestamp(self) -> None:
        self.updated_at = datetime.utcnow()


class QueueSession(Base):
    __tablename__ = "queue_sessions"

    id = Column(String(36), primary_key=True, default=new_id)
    queue_id = Column(String(36), ForeignKey("patient_queue.id"), nullable=False, index=True)
    patient_id = Column(String(36), ForeignKey("patients.id"), nullable=False)
    session_data = Column(JSON, nullable=False, default=dict)
    status = Column(String, nullable=False, default="active")  # active | completed | archived
    archived_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    queue = relationship("PatientQueue", back_populates="session")

    def update_timestamp(self) -> None:
        self.updated_at = datetime.utcnow()
