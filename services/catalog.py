"""
Medication and service directory lookups.

Treatment items are entered by name, so the directory is matched
case-insensitively: an exact name match is preferred, then the first
substring match in name order.  An unresolved name is not an error; callers
store a null catalog reference instead.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Union

from sqlalchemy import func
from sqlalchemy.orm import Session

from models.catalog import MedicalService, Medication
from models.schemas import CatalogEntryRead
from services.treatment import MEDICATION, classify_item

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 50

CatalogEntry = Union[Medication, MedicalService]


def _find_by_name(db: Session, model, name: str):
    needle = (name or "").strip().lower()
    if not needle:
        return None
    exact = db.query(model).filter(func.lower(model.name) == needle).order_by(model.name).first()
    if exact is not None:
        return exact
    return (
        db.query(model)
        .filter(func.lower(model.name).contains(needle, autoescape=True))
        .order_by(model.name)
        .first()
    )


def find_medication(db: Session, name: str) -> Optional[Medication]:
    return _find_by_name(db, Medication, name)


def find_service(db: Session, name: str) -> Optional[MedicalService]:
    return _find_by_name(db, MedicalService, name)


def resolve_catalog_entry(db: Session, item) -> Optional[CatalogEntry]:
    """Look the item up in the directory matching its classification."""
    if classify_item(item) == MEDICATION:
        entry = find_medication(db, item.name)
    else:
        entry = find_service(db, item.name)
    if entry is None:
        logger.info("No catalog match for '%s'; storing without a catalog reference", item.name)
    return entry


def resolve_catalog_id(db: Session, item) -> Optional[str]:
    entry = resolve_catalog_entry(db, item)
    return entry.id if entry is not None else None


def base_price(entry: CatalogEntry) -> Optional[float]:
    if isinstance(entry, Medication):
        return entry.price_per_unit
    return entry.price


def price_for_tier(entry: Optional[CatalogEntry], tier: Optional[str]) -> Optional[float]:
    """Price of a directory entry for a pricing tier, or its base price."""
    if entry is None:
        return None
    tiers = entry.price_tiers or {}
    if tier:
        try:
            return float(tiers[tier])
        except (KeyError, TypeError, ValueError):
            logger.info("No usable '%s' tier price for '%s'; using base price", tier, entry.name)
    return base_price(entry)


def search_medications(db: Session, search: Optional[str] = None) -> List[Medication]:
    query = db.query(Medication)
    if search:
        query = query.filter(Medication.name.ilike(f"%{search}%"))
    return query.order_by(Medication.name).limit(SEARCH_LIMIT).all()


def search_services(db: Session, search: Optional[str] = None) -> List[MedicalService]:
    query = db.query(MedicalService)
    if search:
        query = query.filter(MedicalService.name.ilike(f"%{search}%"))
    return query.order_by(MedicalService.name).limit(SEARCH_LIMIT).all()


def to_catalog_read(entry: CatalogEntry) -> CatalogEntryRead:
    return CatalogEntryRead(
        id=entry.id,
        name=entry.name,
        category=entry.category,
        price=base_price(entry),
        price_tiers=entry.price_tiers or {},
    )
