"""
Consultation workflow orchestration.

Completing a consultation fans out into a fixed sequence of writes: the queue
session snapshot, the queue and consultation session status, one treatment
item per prescribed line, the consultation note, and the patient's activity
feed and current medications.  Every step commits on its own.  If a step
fails the error is logged, a destructive notification is raised and the
exception propagates; steps that already committed stay committed.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.orm import Session

import config
from models.consultation import ConsultationSession
from models.schemas import (
    ActivityType,
    ConsultationData,
    ConsultationOutcome,
    TreatmentItemIn,
    UrgencyLevel,
)
from services import activity as activity_service
from services import catalog as catalog_service
from services import consultation as consultation_service
from services import queue as queue_service
from services.notifications import DESTRUCTIVE, Notifier, notify

logger = logging.getLogger(__name__)


def _qty(value: float) -> str:
    return f"{value:g}"


def render_item(item: TreatmentItemIn, currency: str = config.CURRENCY_LABEL) -> str:
    """One human-readable line for a prescribed item."""
    line = f"{item.name} x{_qty(item.quantity)}"
    if item.is_medication:
        details = [d for d in (item.dosage, item.frequency, item.duration) if d]
        if details:
            line += f" ({', '.join(details)})"
    return f"{line} - {currency} {item.amount:.2f}"


def build_session_snapshot(
    consultation: ConsultationData, doctor_id: Optional[str], completed_at: datetime
) -> dict:
    """Structured copy of the consultation written to the queue session."""
    return {
        "consultation_notes": consultation.notes,
        "diagnosis": consultation.diagnosis,
        "prescribed_items": [
            {
                "type": item.item_type.value,
                "name": item.name,
                "quantity": item.quantity,
                "dosage": item.dosage,
                "frequency": item.frequency,
                "duration": item.duration,
                "price_tier": item.price_tier,
                "rate": item.rate,
                "price": item.amount,
                "instructions": item.instruction,
            }
            for item in consultation.treatment_items
        ],
        "doctor_id": doctor_id,
        "completed_at": completed_at.isoformat(),
        "last_updated": datetime.utcnow().isoformat(),
    }


def build_consultation_summary(consultation: ConsultationData, currency: str = config.CURRENCY_LABEL) -> str:
    lines: List[str] = []
    if consultation.diagnosis:
        lines.append(f"Diagnosis: {consultation.diagnosis}")
    if consultation.notes:
        lines.append(f"Notes: {consultation.notes}")
    if consultation.treatment_items:
        lines.append(f"Prescribed {len(consultation.treatment_items)} items:")
        lines.extend(f"- {render_item(item, currency)}" for item in consultation.treatment_items)
    return "\n".join(lines) or "Consultation completed successfully"


class ConsultationWorkflow:
    """Runs the start and completion sequences for one doctor's console.

    ``active_session_id`` is the only state held between calls.
    """

    def __init__(self, db: Session, notify: Notifier = notify, currency: str = config.CURRENCY_LABEL):
        self.db = db
        self.notify = notify
        self.currency = currency
        self.active_session_id: Optional[str] = None

    def start(
        self,
        patient_id: str,
        queue_id: str,
        doctor_id: Optional[str],
        urgency_level: UrgencyLevel = UrgencyLevel.NORMAL,
    ) -> ConsultationSession:
        try:
            session = consultation_service.start_consultation(
                self.db, patient_id, doctor_id, queue_id=queue_id, urgency_level=urgency_level
            )
        except Exception:
            self.db.rollback()
            logger.exception("Error starting consultation workflow for queue %s", queue_id)
            self.notify("Error", "Failed to start consultation session", DESTRUCTIVE)
            raise
        self.active_session_id = session.id
        self.notify("Consultation started", "Patient consultation session has been initiated")
        return session

    def complete(
        self,
        patient_id: str,
        queue_id: str,
        consultation: ConsultationData,
        doctor_id: Optional[str],
    ) -> ConsultationOutcome:
        try:
            outcome = self._complete(patient_id, queue_id, consultation, doctor_id)
        except Exception:
            self.db.rollback()
            logger.exception("Error completing consultation workflow for queue %s", queue_id)
            self.notify("Error", "Failed to complete consultation", DESTRUCTIVE)
            raise
        self.active_session_id = None
        self.notify("Consultation Completed", "Patient data has been synced to medical history")
        return outcome

    def _complete(
        self,
        patient_id: str,
        queue_id: str,
        consultation: ConsultationData,
        doctor_id: Optional[str],
    ) -> ConsultationOutcome:
        db = self.db
        items = consultation.treatment_items
        now = datetime.utcnow()

        session = consultation_service.resolve_or_create_session(db, patient_id, queue_id, doctor_id)
        self.active_session_id = session.id
        outcome = ConsultationOutcome(session_id=session.id, queue_id=queue_id)

        queue_service.update_session_data(
            db, queue_id, build_session_snapshot(consultation, doctor_id, now)
        )
        queue_service.complete_queue_session(db, queue_id)

        for item in items:
            entry = catalog_service.resolve_catalog_entry(db, item)
            record = consultation_service.add_treatment_item(
                db,
                session.id,
                item,
                catalog_id=entry.id if entry is not None else None,
                tier_price=catalog_service.price_for_tier(entry, item.price_tier),
            )
            outcome.treatment_item_ids.append(record.id)

        consultation_service.complete_session(db, session.id)

        if consultation.notes.strip() or consultation.diagnosis.strip():
            note = consultation_service.create_consultation_note(
                db,
                patient_id,
                doctor_id,
                session_id=session.id,
                diagnosis=consultation.diagnosis or None,
                treatment_plan=consultation.treatment_plan or consultation.notes or None,
                chief_complaint=consultation.chief_complaint,
                prescriptions="\n".join(render_item(i, self.currency) for i in items) or None,
            )
            outcome.note_id = note.id

        summary = activity_service.record_activity(
            db,
            patient_id,
            ActivityType.CONSULTATION,
            title="Consultation Completed",
            content=build_consultation_summary(consultation, self.currency),
            metadata={
                "queue_id": queue_id,
                "session_id": session.id,
                "diagnosis": consultation.diagnosis,
                "consultation_date": date.today().isoformat(),
                "total_items": len(items),
                "total_amount": sum(i.amount for i in items),
            },
            staff_member_id=doctor_id,
            related_record_id=session.id,
        )
        outcome.activity_ids.append(summary.id)

        for item in items:
            if item.is_medication:
                medication = activity_service.add_current_medication(db, patient_id, item, doctor_id)
                outcome.current_medication_ids.append(medication.id)
                entry = activity_service.record_activity(
                    db,
                    patient_id,
                    ActivityType.MEDICATION,
                    title=f"Prescribed {item.name}",
                    content=(
                        f"Dosage: {medication.dosage}\n"
                        f"Frequency: {medication.frequency}\n"
                        f"Instructions: {medication.instructions}"
                    ),
                    metadata={
                        "medication_name": item.name,
                        "dosage": item.dosage,
                        "frequency": item.frequency,
                        "duration": item.duration,
                        "queue_id": queue_id,
                    },
                    staff_member_id=doctor_id,
                    status="active",
                    related_record_id=medication.id,
                )
            else:
                entry = activity_service.record_activity(
                    db,
                    patient_id,
                    ActivityType.TREATMENT,
                    title=f"Treatment: {item.name}",
                    content=(
                        f"Service provided: {item.name}\n"
                        f"Quantity: {_qty(item.quantity)}\n"
                        f"Amount: {self.currency} {item.amount:.2f}"
                    ),
                    metadata={
                        "service_name": item.name,
                        "quantity": item.quantity,
                        "amount": item.amount,
                        "queue_id": queue_id,
                    },
                    staff_member_id=doctor_id,
                )
            outcome.activity_ids.append(entry.id)

        logger.info(
            "Consultation %s completed for patient %s with %d items", session.id, patient_id, len(items)
        )
        return outcome
