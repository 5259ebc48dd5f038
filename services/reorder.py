"""
Reorder suggestions.

Suggestions are generated by the database (a stored procedure outside this
service); here they are only listed and moved between statuses.
"""

from __future__ import annotations

import logging
from typing import List

from sqlalchemy.orm import Session, selectinload

from models.procurement import ReorderSuggestion
from models.schemas import ReorderSuggestionRead, SuggestionStatus

logger = logging.getLogger(__name__)

PRIORITY_ORDER = {"urgent": 0, "high": 1, "normal": 2, "low": 3}


def list_reorder_suggestions(db: Session) -> List[ReorderSuggestion]:
    """Everything not dismissed, most urgent first, then newest first."""
    suggestions = (
        db.query(ReorderSuggestion)
        .options(selectinload(ReorderSuggestion.medication), selectinload(ReorderSuggestion.supplier))
        .filter(ReorderSuggestion.status != SuggestionStatus.DISMISSED.value)
        .order_by(ReorderSuggestion.created_at.desc())
        .all()
    )
    # stable sort keeps newest-first within a priority
    return sorted(suggestions, key=lambda s: PRIORITY_ORDER.get(s.priority_level, len(PRIORITY_ORDER)))


def update_suggestion_status(db: Session, suggestion_id: str, status: SuggestionStatus) -> ReorderSuggestion:
    suggestion = db.query(ReorderSuggestion).filter(ReorderSuggestion.id == suggestion_id).first()
    if suggestion is None:
        raise ValueError(f"Reorder suggestion {suggestion_id} not found")
    suggestion.status = SuggestionStatus(status).value
    suggestion.update_timestamp()
    db.commit()
    db.refresh(suggestion)
    logger.info("Reorder suggestion %s marked %s", suggestion_id, suggestion.status)
    return suggestion


def to_suggestion_read(suggestion: ReorderSuggestion) -> ReorderSuggestionRead:
    return ReorderSuggestionRead(
        id=suggestion.id,
        medication_id=suggestion.medication_id,
        medication_name=suggestion.medication.name if suggestion.medication else "Unknown",
        suggested_quantity=suggestion.suggested_quantity,
        current_stock=suggestion.current_stock,
        minimum_stock_level=suggestion.minimum_stock_level,
        lead_time_days=suggestion.lead_time_days,
        suggested_supplier_id=suggestion.suggested_supplier_id,
        supplier_name=suggestion.supplier.supplier_name if suggestion.supplier else None,
        priority_level=suggestion.priority_level,
        reason=suggestion.reason,
        status=suggestion.status,
        cost_estimate=suggestion.cost_estimate,
        created_at=suggestion.created_at,
    )
