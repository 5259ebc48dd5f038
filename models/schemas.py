"""
Pydantic models and enums used throughout the ClinicFlow API.

These models define the shape of request and response bodies and enforce
data validation at the API boundary.  Treatment items are validated here so
that their medication/service type and amount are settled before any workflow
step runs.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field, model_validator

from services.treatment import classify_item, compute_amount, has_dosing_details


class SessionStatus(str, Enum):
    """Lifecycle of a doctor-patient consultation session."""
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


class QueueStatus(str, Enum):
    """Position of a patient in the day's queue."""
    WAITING = "waiting"
    IN_CONSULTATION = "in_consultation"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    URGENT = "urgent"
    DISPENSARY = "dispensary"


class QueueSessionStatus(str, Enum):
    """State of the session-state record attached to a queue entry."""
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class ItemType(str, Enum):
    MEDICATION = "medication"
    SERVICE = "service"


class ActivityType(str, Enum):
    CONSULTATION = "consultation"
    MEDICATION = "medication"
    TREATMENT = "treatment"


class UrgencyLevel(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    EMERGENCY = "emergency"


class SuggestionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    ORDERED = "ordered"
    DISMISSED = "dismissed"


# ---------------------------------------------------------------------------
# Treatment items and consultations
# ---------------------------------------------------------------------------


class TreatmentItemIn(BaseModel):
    """A single prescribed line (medication or service) in a consultation."""

    name: str = Field(..., min_length=1, description="Medication or service name as entered")
    quantity: float = Field(1, ge=0)
    price_tier: Optional[str] = Field(None, description="Pricing tier applied to the rate")
    rate: float = Field(0.0, ge=0)
    amount: float = Field(0.0, description="Always recomputed as quantity * rate")
    item_type: Optional[ItemType] = Field(
        None, description="Explicit type; derived from dosing fields when omitted"
    )
    dosage: Optional[str] = None
    frequency: Optional[str] = None
    duration: Optional[str] = None
    instruction: Optional[str] = None

    @model_validator(mode="after")
    def _settle_type_and_amount(self) -> "TreatmentItemIn":
        if self.item_type is None:
            self.item_type = ItemType(classify_item(self))
        elif self.item_type == ItemType.SERVICE and has_dosing_details(self):
            raise ValueError("service items cannot carry dosage, frequency or duration")
        self.amount = compute_amount(self.quantity, self.rate)
        return self

    @property
    def is_medication(self) -> bool:
        return self.item_type == ItemType.MEDICATION


class ConsultationData(BaseModel):
    notes: str = ""
    diagnosis: str = ""
    chief_complaint: Optional[str] = None
    treatment_plan: Optional[str] = None
    treatment_items: List[TreatmentItemIn] = Field(default_factory=list)


class StartConsultationRequest(BaseModel):
    patient_id: str = Field(..., min_length=1)
    queue_id: str = Field(..., min_length=1)
    urgency_level: UrgencyLevel = UrgencyLevel.NORMAL


class CompleteConsultationRequest(BaseModel):
    patient_id: str = Field(..., min_length=1)
    queue_id: str = Field(..., min_length=1)
    consultation: ConsultationData


class ConsultationOutcome(BaseModel):
    """Identifiers of every record written by a completed consultation."""

    session_id: str
    queue_id: str
    note_id: Optional[str] = None
    treatment_item_ids: List[str] = Field(default_factory=list)
    activity_ids: List[str] = Field(default_factory=list)
    current_medication_ids: List[str] = Field(default_factory=list)


class TreatmentItemRead(BaseModel):
    id: str
    consultation_session_id: str
    item_type: ItemType
    item_name: str
    medication_id: Optional[str] = None
    service_id: Optional[str] = None
    quantity: float
    rate: float
    total_amount: float
    tier_used: Optional[str] = None
    tier_price_applied: Optional[float] = None
    dosage_instructions: Optional[str] = None
    frequency: Optional[str] = None
    duration_days: Optional[int] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class ConsultationNoteRead(BaseModel):
    id: str
    patient_id: str
    doctor_id: Optional[str] = None
    chief_complaint: Optional[str] = None
    diagnosis: Optional[str] = None
    treatment_plan: Optional[str] = None
    prescriptions: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ConsultationSessionRead(BaseModel):
    id: str
    patient_id: str
    doctor_id: Optional[str] = None
    queue_id: Optional[str] = None
    status: SessionStatus
    urgency_level: str
    started_at: datetime
    paused_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    total_duration_minutes: int = 0
    treatment_items: List[TreatmentItemRead] = Field(default_factory=list)
    notes: List[ConsultationNoteRead] = Field(default_factory=list)
    total_cost: float = 0.0

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# Queue
# ---------------------------------------------------------------------------


class QueueCreate(BaseModel):
    patient_id: str = Field(..., min_length=1)
    doctor_id: Optional[str] = None


class QueueStatusUpdate(BaseModel):
    status: QueueStatus


class QueueRead(BaseModel):
    id: str
    patient_id: str
    queue_number: str
    queue_date: date
    status: QueueStatus
    assigned_doctor_id: Optional[str] = None
    checked_in_at: datetime
    consultation_started_at: Optional[datetime] = None
    consultation_completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SessionDataUpdate(BaseModel):
    session_data: Dict[str, Any] = Field(default_factory=dict)


class QueueSessionRead(BaseModel):
    id: str
    queue_id: str
    patient_id: str
    session_data: Dict[str, Any] = Field(default_factory=dict)
    status: QueueSessionStatus
    archived_at: Optional[datetime] = None
    updated_at: datetime

    class Config:
        from_attributes = True


class CleanupResult(BaseModel):
    deleted_sessions: int
    cutoff: datetime


# ---------------------------------------------------------------------------
# Patient timeline and catalog
# ---------------------------------------------------------------------------


class ActivityRead(BaseModel):
    id: str
    patient_id: str
    activity_type: ActivityType
    activity_date: datetime
    title: str
    content: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(
        None, validation_alias=AliasChoices("activity_metadata", "metadata")
    )
    staff_member_id: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None

    class Config:
        from_attributes = True


class CurrentMedicationRead(BaseModel):
    id: str
    patient_id: str
    medication_name: str
    dosage: Optional[str] = None
    frequency: Optional[str] = None
    duration_days: Optional[int] = None
    prescribed_date: datetime
    prescribed_by: Optional[str] = None
    instructions: Optional[str] = None
    status: str

    class Config:
        from_attributes = True


class CatalogEntryRead(BaseModel):
    id: str
    name: str
    category: Optional[str] = None
    price: Optional[float] = None
    price_tiers: Dict[str, float] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Procurement analytics
# ---------------------------------------------------------------------------


class SupplierPerformance(BaseModel):
    supplier_id: str
    supplier_name: str
    total_orders: int
    total_spend: float
    average_order_value: float
    on_time_delivery_rate: float
    # No data source exists for these yet
    quality_score: Optional[float] = None
    response_time_hours: Optional[float] = None


class CategorySpend(BaseModel):
    category: str
    total_spend: float
    order_count: int
    percentage: float


class MonthlyTrend(BaseModel):
    key: str = Field(..., description="YYYY-MM")
    month: str
    year: int
    total_spend: float
    order_count: int
    average_order_value: float


class StatusDistribution(BaseModel):
    status: str
    count: int
    percentage: float
    total_value: float


class SupplierReliability(BaseModel):
    supplier_id: str
    supplier_name: str
    reliability_score: float
    total_orders: int
    on_time_orders: int
    late_orders: int
    cancelled_orders: int


class CostSavings(BaseModel):
    quotation_savings: float
    total_savings: float
    savings_percentage: float


class DeliveryMetrics(BaseModel):
    average_delivery_time: float
    on_time_delivery_rate: float
    early_delivery_rate: float
    late_delivery_rate: float
    total_deliveries: int


class AnalyticsData(BaseModel):
    total_spend: float
    total_orders: int
    average_order_value: float
    top_suppliers: List[SupplierPerformance]
    spend_by_category: List[CategorySpend]
    monthly_trends: List[MonthlyTrend]
    order_status_distribution: List[StatusDistribution]
    supplier_reliability_scores: List[SupplierReliability]
    cost_savings: CostSavings
    delivery_metrics: DeliveryMetrics


class AnalyticsResponse(BaseModel):
    start: date
    end: date
    analytics: Optional[AnalyticsData] = None


# ---------------------------------------------------------------------------
# Reorder suggestions and notifications
# ---------------------------------------------------------------------------


class ReorderSuggestionRead(BaseModel):
    id: str
    medication_id: str
    medication_name: str
    suggested_quantity: int
    current_stock: int
    minimum_stock_level: int
    lead_time_days: Optional[int] = None
    suggested_supplier_id: Optional[str] = None
    supplier_name: Optional[str] = None
    priority_level: str
    reason: Optional[str] = None
    status: SuggestionStatus
    cost_estimate: Optional[float] = None
    created_at: datetime


class SuggestionStatusUpdate(BaseModel):
    status: SuggestionStatus


class NotificationRead(BaseModel):
    title: str
    description: str
    variant: str
    created_at: datetime
