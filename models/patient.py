"""
SQLAlchemy ORM models for patients and their clinical timeline.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Column, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from models.database import Base, new_id


class Patient(Base):
    __tablename__ = "patients"

    id = Column(String(36), primary_key=True, default=new_id)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    date_of_birth = Column(Date, nullable=True)
    gender = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    allergies = Column(Text, nullable=True)
    visit_reason = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    activities = relationship("PatientActivity", back_populates="patient")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class PatientActivity(Base):
    """Append-only activity feed entry on a patient's timeline."""

    __tablename__ = "patient_activities"

    id = Column(String(36), primary_key=True, default=new_id)
    patient_id = Column(String(36), ForeignKey("patients.id"), nullable=False, index=True)
    activity_type = Column(String, nullable=False)  # consultation | medication | treatment
    activity_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    title = Column(String, nullable=False)
    content = Column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    activity_metadata = Column("metadata", JSON, nullable=True)
    staff_member_id = Column(String(36), nullable=True)
    related_record_id = Column(String(36), nullable=True)
    priority = Column(String, nullable=True, default="normal")
    status = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    patient = relationship("Patient", back_populates="activities")


class CurrentMedication(Base):
    __tablename__ = "patient_current_medications"

    id = Column(String(36), primary_key=True, default=new_id)
    patient_id = Column(String(36), ForeignKey("patients.id"), nullable=False, index=True)
    medication_name = Column(String, nullable=False)
    dosage = Column(String, nullable=True)
    frequency = Column(String, nullable=True)
    duration_days = Column(Integer, nullable=True)
    prescribed_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    prescribed_by = Column(String(36), nullable=True)
    instructions = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="active")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
