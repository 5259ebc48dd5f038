"""
FastAPI application exposing the ClinicFlow API.

This module wires the queue, consultation workflow, patient timeline, catalog,
procurement analytics and reorder services into a RESTful API.  Service errors
are mapped to HTTP status codes here: missing records become 404 and refused
session-state writes become 409.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Path, Query, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

import config
from enterprise.audit import log_action
from enterprise.auth import UserContext, require_auth, require_role
from models.database import Base, engine, get_db
from models.schemas import (
    ActivityRead,
    ActivityType,
    AnalyticsResponse,
    CatalogEntryRead,
    CleanupResult,
    CompleteConsultationRequest,
    ConsultationOutcome,
    ConsultationSessionRead,
    CurrentMedicationRead,
    NotificationRead,
    QueueCreate,
    QueueRead,
    QueueSessionRead,
    QueueStatusUpdate,
    ReorderSuggestionRead,
    SessionDataUpdate,
    StartConsultationRequest,
    SuggestionStatusUpdate,
)
from services import activity as activity_service
from services import catalog as catalog_service
from services import consultation as consultation_service
from services import notifications
from services import procurement as procurement_service
from services import queue as queue_service
from services import reorder as reorder_service
from services.queue import IntegrityViolation
from services.workflow import ConsultationWorkflow

# Configure logging
logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Create all tables at startup.  In production you may use alembic migrations.
Base.metadata.create_all(bind=engine)

app = FastAPI(title="ClinicFlow API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

clinical = require_role("doctor")
inventory = require_role("inventory")


def _http_error(e: ValueError) -> HTTPException:
    if isinstance(e, IntegrityViolation):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


# ---------------------------------------------------------------------------
# Queue
# ---------------------------------------------------------------------------


@app.post("/queue", response_model=QueueRead, status_code=status.HTTP_201_CREATED)
def api_add_to_queue(queue_in: QueueCreate, db=Depends(get_db), user: UserContext = Depends(require_auth)):
    """Check a patient in and open their queue session."""
    return queue_service.add_to_queue(db, queue_in.patient_id, queue_in.doctor_id)


@app.post("/queue/next", response_model=Optional[QueueRead])
def api_call_next_patient(db=Depends(get_db), user: UserContext = Depends(clinical)):
    return queue_service.call_next_patient(db, user.staff_id)


@app.post("/queue/{queue_id}/status", response_model=QueueRead)
def api_update_queue_status(
    update: QueueStatusUpdate,
    queue_id: str = Path(..., min_length=1),
    db=Depends(get_db),
    user: UserContext = Depends(require_auth),
):
    try:
        return queue_service.update_queue_status(db, queue_id, update.status, user.staff_id)
    except ValueError as e:
        raise _http_error(e)


@app.get("/queue/{queue_id}/session", response_model=QueueSessionRead)
def api_get_queue_session(queue_id: str = Path(..., min_length=1), db=Depends(get_db)):
    record = queue_service.get_queue_session(db, queue_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Queue session not found")
    return record


@app.put("/queue/{queue_id}/session", response_model=QueueSessionRead)
def api_update_session_data(
    update: SessionDataUpdate,
    queue_id: str = Path(..., min_length=1),
    db=Depends(get_db),
    user: UserContext = Depends(clinical),
):
    """Replace the in-progress snapshot; refused for archived sessions."""
    try:
        return queue_service.update_session_data(db, queue_id, update.session_data)
    except ValueError as e:
        raise _http_error(e)


@app.post("/queue/{queue_id}/archive", response_model=QueueSessionRead)
def api_archive_queue_session(
    queue_id: str = Path(..., min_length=1),
    db=Depends(get_db),
    user: UserContext = Depends(require_auth),
):
    try:
        return queue_service.archive_queue_session(db, queue_id)
    except ValueError as e:
        raise _http_error(e)


@app.post("/admin/sessions/cleanup", response_model=CleanupResult)
def api_cleanup_sessions(
    older_than_days: int = Query(config.SESSION_RETENTION_DAYS, ge=0),
    db=Depends(get_db),
    user: UserContext = Depends(require_role("admin")),
):
    """Delete archived queue sessions past the retention window."""
    now = datetime.utcnow()
    deleted = queue_service.cleanup_archived_sessions(db, older_than_days, now=now)
    log_action(user.staff_id, user.role, "sessions.cleanup", {"deleted": deleted})
    return CleanupResult(deleted_sessions=deleted, cutoff=now - timedelta(days=older_than_days))


# ---------------------------------------------------------------------------
# Consultations
# ---------------------------------------------------------------------------


@app.post("/consultations/start", response_model=ConsultationSessionRead, status_code=status.HTTP_201_CREATED)
def api_start_consultation(
    request: StartConsultationRequest,
    db=Depends(get_db),
    user: UserContext = Depends(clinical),
):
    workflow = ConsultationWorkflow(db)
    session = workflow.start(request.patient_id, request.queue_id, user.staff_id, request.urgency_level)
    return consultation_service.to_session_read(session)


@app.post("/consultations/complete", response_model=ConsultationOutcome)
def api_complete_consultation(
    request: CompleteConsultationRequest,
    db=Depends(get_db),
    user: UserContext = Depends(clinical),
):
    """Run the consultation completion sequence.

    Steps already committed when a later step fails are not rolled back.
    """
    workflow = ConsultationWorkflow(db)
    try:
        outcome = workflow.complete(request.patient_id, request.queue_id, request.consultation, user.staff_id)
    except ValueError as e:
        raise _http_error(e)
    log_action(
        user.staff_id,
        user.role,
        "consultation.completed",
        {"session_id": outcome.session_id, "queue_id": outcome.queue_id},
    )
    return outcome


@app.get("/consultations/{session_id}", response_model=ConsultationSessionRead)
def api_get_consultation(session_id: str = Path(..., min_length=1), db=Depends(get_db)):
    try:
        return consultation_service.get_session_details(db, session_id)
    except ValueError as e:
        raise _http_error(e)


@app.post("/consultations/{session_id}/pause", response_model=ConsultationSessionRead)
def api_pause_consultation(
    session_id: str = Path(..., min_length=1),
    db=Depends(get_db),
    user: UserContext = Depends(clinical),
):
    try:
        session = consultation_service.pause_consultation(db, session_id)
    except ValueError as e:
        raise _http_error(e)
    return consultation_service.to_session_read(session)


@app.post("/consultations/{session_id}/resume", response_model=ConsultationSessionRead)
def api_resume_consultation(
    session_id: str = Path(..., min_length=1),
    db=Depends(get_db),
    user: UserContext = Depends(clinical),
):
    try:
        session = consultation_service.resume_consultation(db, session_id)
    except ValueError as e:
        raise _http_error(e)
    return consultation_service.to_session_read(session)


# ---------------------------------------------------------------------------
# Patient timeline and catalog
# ---------------------------------------------------------------------------


@app.get("/patients/{patient_id}/activities", response_model=List[ActivityRead])
def api_list_activities(
    patient_id: str = Path(..., min_length=1),
    activity_type: Optional[ActivityType] = None,
    db=Depends(get_db),
):
    activities = activity_service.list_patient_activities(db, patient_id, activity_type)
    return [ActivityRead.model_validate(a) for a in activities]


@app.get("/patients/{patient_id}/medications", response_model=List[CurrentMedicationRead])
def api_list_current_medications(patient_id: str = Path(..., min_length=1), db=Depends(get_db)):
    return activity_service.list_current_medications(db, patient_id)


@app.get("/catalog/medications", response_model=List[CatalogEntryRead])
def api_search_medications(search: Optional[str] = None, db=Depends(get_db)):
    return [catalog_service.to_catalog_read(m) for m in catalog_service.search_medications(db, search)]


@app.get("/catalog/services", response_model=List[CatalogEntryRead])
def api_search_services(search: Optional[str] = None, db=Depends(get_db)):
    return [catalog_service.to_catalog_read(s) for s in catalog_service.search_services(db, search)]


# ---------------------------------------------------------------------------
# Procurement
# ---------------------------------------------------------------------------


@app.get("/analytics/procurement", response_model=AnalyticsResponse)
def api_procurement_analytics(
    start: Optional[date] = None,
    end: Optional[date] = None,
    db=Depends(get_db),
    user: UserContext = Depends(inventory),
):
    """Procurement rollup for an inclusive date window; null analytics on failure."""
    start, end = procurement_service.resolve_window(start, end)
    analytics = procurement_service.load_procurement_analytics(db, start, end)
    return AnalyticsResponse(start=start, end=end, analytics=analytics)


@app.get("/analytics/procurement/export", response_class=PlainTextResponse)
def api_export_procurement_analytics(
    start: Optional[date] = None,
    end: Optional[date] = None,
    db=Depends(get_db),
    user: UserContext = Depends(inventory),
):
    start, end = procurement_service.resolve_window(start, end)
    analytics = procurement_service.load_procurement_analytics(db, start, end)
    if analytics is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Analytics unavailable")
    return PlainTextResponse(
        procurement_service.export_analytics_csv(analytics, config.CURRENCY_LABEL),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=procurement-analytics-report.csv"},
    )


@app.get("/reorder-suggestions", response_model=List[ReorderSuggestionRead])
def api_list_reorder_suggestions(db=Depends(get_db), user: UserContext = Depends(inventory)):
    return [reorder_service.to_suggestion_read(s) for s in reorder_service.list_reorder_suggestions(db)]


@app.post("/reorder-suggestions/{suggestion_id}/status", response_model=ReorderSuggestionRead)
def api_update_suggestion_status(
    update: SuggestionStatusUpdate,
    suggestion_id: str = Path(..., min_length=1),
    db=Depends(get_db),
    user: UserContext = Depends(inventory),
):
    try:
        suggestion = reorder_service.update_suggestion_status(db, suggestion_id, update.status)
    except ValueError as e:
        raise _http_error(e)
    log_action(
        user.staff_id,
        user.role,
        "reorder_suggestion.status",
        {"suggestion_id": suggestion_id, "status": suggestion.status},
    )
    return reorder_service.to_suggestion_read(suggestion)


@app.get("/notifications", response_model=List[NotificationRead])
def api_recent_notifications(limit: int = Query(20, ge=1, le=100)):
    return [
        NotificationRead(title=n.title, description=n.description, variant=n.variant, created_at=n.created_at)
        for n in notifications.recent_notifications(limit)
    ]
