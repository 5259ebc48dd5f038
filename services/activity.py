"""
Patient activity feed and current medications.

The activity feed is append-only: entries are inserted and listed, never
updated or removed.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from models.patient import CurrentMedication, PatientActivity
from models.schemas import ActivityType, TreatmentItemIn
from services.treatment import parse_duration_days

DEFAULT_DOSAGE = "As directed"
DEFAULT_FREQUENCY = "As needed"
DEFAULT_INSTRUCTIONS = "Follow as prescribed"


def record_activity(
    db: Session,
    patient_id: str,
    activity_type: ActivityType,
    title: str,
    content: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    staff_member_id: Optional[str] = None,
    priority: str = "normal",
    status: str = "completed",
    related_record_id: Optional[str] = None,
) -> PatientActivity:
    activity = PatientActivity(
        patient_id=patient_id,
        activity_type=ActivityType(activity_type).value,
        activity_date=datetime.utcnow(),
        title=title,
        content=content,
        activity_metadata=metadata or {},
        staff_member_id=staff_member_id,
        priority=priority,
        status=status,
        related_record_id=related_record_id,
    )
    db.add(activity)
    db.commit()
    db.refresh(activity)
    return activity


def add_current_medication(
    db: Session, patient_id: str, item: TreatmentItemIn, prescribed_by: Optional[str]
) -> CurrentMedication:
    medication = CurrentMedication(
        patient_id=patient_id,
        medication_name=item.name,
        dosage=item.dosage or DEFAULT_DOSAGE,
        frequency=item.frequency or DEFAULT_FREQUENCY,
        duration_days=parse_duration_days(item.duration),
        prescribed_date=datetime.utcnow(),
        prescribed_by=prescribed_by,
        instructions=item.instruction or DEFAULT_INSTRUCTIONS,
        status="active",
    )
    db.add(medication)
    db.commit()
    db.refresh(medication)
    return medication


def list_patient_activities(
    db: Session, patient_id: str, activity_type: Optional[ActivityType] = None
) -> List[PatientActivity]:
    query = db.query(PatientActivity).filter(PatientActivity.patient_id == patient_id)
    if activity_type is not None:
        query = query.filter(PatientActivity.activity_type == ActivityType(activity_type).value)
    return query.order_by(PatientActivity.activity_date.desc()).all()


def list_current_medications(db: Session, patient_id: str) -> List[CurrentMedication]:
    return (
        db.query(CurrentMedication)
        .filter(CurrentMedication.patient_id == patient_id, CurrentMedication.status == "active")
        .order_by(CurrentMedication.prescribed_date.desc())
        .all()
    )
