from datetime import datetime, timedelta

import pytest

from models.catalog import Medication
from models.procurement import ReorderSuggestion, Supplier
from services import reorder as reorder_service


@pytest.fixture
def suggestions(db):
    medication = Medication(name="Salbutamol Inhaler", category="Respiratory", stock_level=2)
    supplier = Supplier(supplier_name="Pharma Niaga")
    db.add_all([medication, supplier])
    db.flush()
    now = datetime.utcnow()
    rows = {}
    for key, priority, status, age in [
        ("low", "low", "pending", 1),
        ("urgent_old", "urgent", "pending", 5),
        ("urgent_new", "urgent", "approved", 0),
        ("high", "high", "pending", 2),
        ("dismissed", "urgent", "dismissed", 0),
    ]:
        rows[key] = ReorderSuggestion(
            medication_id=medication.id,
            suggested_supplier_id=supplier.id,
            suggested_quantity=50,
            current_stock=2,
            minimum_stock_level=10,
            priority_level=priority,
            status=status,
            created_at=now - timedelta(days=age),
        )
    db.add_all(rows.values())
    db.commit()
    return rows


def test_listing_orders_by_priority_then_newest(db, suggestions):
    listed = reorder_service.list_reorder_suggestions(db)
    expected = ["urgent_new", "urgent_old", "high", "low"]
    assert [s.id for s in listed] == [suggestions[k].id for k in expected]


def test_update_status_and_read_model(db, suggestions):
    updated = reorder_service.update_suggestion_status(db, suggestions["high"].id, "ordered")
    assert updated.status == "ordered"
    read = reorder_service.to_suggestion_read(updated)
    assert read.medication_name == "Salbutamol Inhaler"
    assert read.supplier_name == "Pharma Niaga"


def test_dismissed_suggestions_drop_out(db, suggestions):
    reorder_service.update_suggestion_status(db, suggestions["low"].id, "dismissed")
    assert suggestions["low"].id not in {s.id for s in reorder_service.list_reorder_suggestions(db)}


def test_unknown_suggestion(db):
    with pytest.raises(ValueError):
        reorder_service.update_suggestion_status(db, "missing", "approved")
