"""
SQLAlchemy ORM models for consultation sessions, treatment items and notes.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from models.catalog import MedicalService, Medication
from models.database import Base, new_id
from models.patient import Patient
from models.queue import PatientQueue


class ConsultationSession(Base):
    __tablename__ = "consultation_sessions"

    id = Column(String(36), primary_key=True, default=new_id)
    patient_id = Column(String(36), ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id = Column(String(36), nullable=True)
    queue_id = Column(String(36), ForeignKey("patient_queue.id"), nullable=True, index=True)
    status = Column(String, nullable=False, default="active")  # active | paused | completed
    urgency_level = Column(String, nullable=False, default="normal")
    started_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    paused_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    total_duration_minutes = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    patient = relationship(Patient)
    queue = relationship(PatientQueue)
    treatment_items = relationship("TreatmentItem", back_populates="session")
    notes = relationship("ConsultationNote", back_populates="session")

    def update_timestamp(self) -> None:
        self.updated_at = datetime.utcnow()


class TreatmentItem(Base):
    __tablename__ = "treatment_items"

    id = Column(String(36), primary_key=True, default=new_id)
    consultation_session_id = Column(
        String(36), ForeignKey("consultation_sessions.id"), nullable=False, index=True
    )
    item_type = Column(String, nullable=False)  # medication | service
    item_name = Column(String, nullable=False)
    # Null when the name did not resolve against the directory
    medication_id = Column(String(36), ForeignKey("medications.id"), nullable=True)
    service_id = Column(String(36), ForeignKey("medical_services.id"), nullable=True)
    quantity = Column(Float, nullable=False, default=1)
    rate = Column(Float, nullable=False, default=0.0)
    total_amount = Column(Float, nullable=False, default=0.0)
    tier_used = Column(String, nullable=True)
    tier_price_applied = Column(Float, nullable=True)
    dosage_instructions = Column(String, nullable=True)
    frequency = Column(String, nullable=True)
    duration_days = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    session = relationship("ConsultationSession", back_populates="treatment_items")
    medication = relationship(Medication)
    service = relationship(MedicalService)


class ConsultationNote(Base):
    __tablename__ = "consultation_notes"

    id = Column(String(36), primary_key=True, default=new_id)
    consultation_session_id = Column(
        String(36), ForeignKey("consultation_sessions.id"), nullable=True, index=True
    )
    patient_id = Column(String(36), ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id = Column(String(36), nullable=True)
    chief_complaint = Column(Text, nullable=True)
    diagnosis = Column(Text, nullable=True)
    treatment_plan = Column(Text, nullable=True)
    prescriptions = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    session = relationship("ConsultationSession", back_populates="notes")
