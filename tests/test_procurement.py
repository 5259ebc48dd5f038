from datetime import date

import pytest

import config
from models.catalog import Medication
from models.procurement import PurchaseOrder, PurchaseOrderItem, Quotation, Supplier
from services import notifications
from services import procurement as procurement_service
from services.procurement import calculate_analytics, calculate_quotation_savings, export_analytics_csv


def _order(supplier_id, amount, status="received", order_date="2024-03-01", items=(), **extra):
    row = {
        "supplier_id": supplier_id,
        "supplier_name": f"Supplier {supplier_id}",
        "total_amount": amount,
        "status": status,
        "order_date": order_date,
        "items": list(items),
    }
    row.update(extra)
    return row


def test_empty_input_is_all_zero():
    analytics = calculate_analytics([])
    assert analytics.total_spend == 0
    assert analytics.total_orders == 0
    assert analytics.average_order_value == 0
    assert analytics.top_suppliers == []
    assert analytics.spend_by_category == []
    assert analytics.order_status_distribution == []
    assert analytics.cost_savings.savings_percentage == 0
    assert analytics.delivery_metrics.on_time_delivery_rate == 0
    assert analytics.delivery_metrics.total_deliveries == 0


def test_totals_and_average():
    analytics = calculate_analytics([_order("a", 100), _order("b", 300)])
    assert analytics.total_spend == 400
    assert analytics.total_orders == 2
    assert analytics.average_order_value == 200


def test_top_suppliers_sorted_by_spend():
    orders = [_order("small", 300), _order("big", 1000), _order("mid", 500), _order("big", 500)]
    analytics = calculate_analytics(orders)
    assert [s.total_spend for s in analytics.top_suppliers] == [1500, 500, 300]
    big = analytics.top_suppliers[0]
    assert big.supplier_id == "big"
    assert big.total_orders == 2
    assert big.average_order_value == 750
    assert big.quality_score is None
    assert big.response_time_hours is None


def test_top_suppliers_truncated_to_ten():
    orders = [_order(f"s{i}", 100 + i) for i in range(12)]
    analytics = calculate_analytics(orders)
    assert len(analytics.top_suppliers) == 10
    assert analytics.top_suppliers[0].supplier_id == "s11"
    assert len(analytics.supplier_reliability_scores) == 12


def test_category_percentages_sum_to_hundred():
    orders = [
        _order("a", 150, items=[{"category": "Analgesic", "total_cost": 100}, {"category": None, "total_cost": 50}]),
        _order("b", 250, items=[{"category": "Antibiotic", "total_cost": 250}]),
    ]
    analytics = calculate_analytics(orders)
    assert sum(c.percentage for c in analytics.spend_by_category) == pytest.approx(100)
    names = [c.category for c in analytics.spend_by_category]
    assert names == ["Antibiotic", "Analgesic", "Uncategorized"]


def test_monthly_trends_are_chronological():
    orders = [
        _order("a", 100, order_date="2024-03-15"),
        _order("a", 50, order_date="2023-12-01"),
        _order("a", 200, order_date="2024-03-02"),
    ]
    trends = calculate_analytics(orders).monthly_trends
    assert [t.key for t in trends] == ["2023-12", "2024-03"]
    assert trends[1].month == "March"
    assert trends[1].total_spend == 300
    assert trends[1].average_order_value == 150


def test_status_distribution():
    orders = [_order("a", 100), _order("a", 50, status="cancelled"), _order("a", 25, status="pending"), _order("a", 25)]
    distribution = {s.status: s for s in calculate_analytics(orders).order_status_distribution}
    assert distribution["received"].count == 2
    assert distribution["received"].percentage == 50
    assert distribution["received"].total_value == 125
    assert distribution["cancelled"].percentage == 25


def test_delivery_metrics_use_expected_and_actual_dates():
    orders = [
        _order("a", 10, order_date="2024-01-01", expected_delivery_date="2024-01-05", delivery_date="2024-01-04"),
        _order("a", 10, order_date="2024-01-01", expected_delivery_date="2024-01-05", delivery_date="2024-01-05"),
        _order("a", 10, order_date="2024-01-01", expected_delivery_date="2024-01-05", delivery_date="2024-01-09"),
        _order("a", 10, status="cancelled"),
    ]
    analytics = calculate_analytics(orders)
    metrics = analytics.delivery_metrics
    assert metrics.total_deliveries == 3
    assert metrics.average_delivery_time == 5
    assert metrics.early_delivery_rate == pytest.approx(100 / 3)
    assert metrics.on_time_delivery_rate == pytest.approx(200 / 3)
    assert metrics.late_delivery_rate == pytest.approx(100 / 3)

    reliability = analytics.supplier_reliability_scores[0]
    assert (reliability.on_time_orders, reliability.late_orders, reliability.cancelled_orders) == (2, 1, 1)


def test_quotation_savings_compare_against_highest_quote():
    quotes = [
        {"quotation_request_id": "r1", "status": "accepted", "total_amount": 800},
        {"quotation_request_id": "r1", "status": "rejected", "total_amount": 1000},
        {"quotation_request_id": "r2", "status": "pending", "total_amount": 500},
        {"quotation_request_id": "r2", "status": "rejected", "total_amount": 700},
        {"quotation_request_id": None, "status": "accepted", "total_amount": 10},
    ]
    assert calculate_quotation_savings(quotes) == 200
    savings = calculate_analytics([_order("a", 4000)], quotes).cost_savings
    assert savings.total_savings == 200
    assert savings.savings_percentage == 5


def test_csv_export():
    analytics = calculate_analytics(
        [_order("a", 120, items=[{"category": "Analgesic", "total_cost": 120}])]
    )
    lines = export_analytics_csv(analytics, currency="RM").splitlines()
    assert lines[0] == "Report Section,Key,Value"
    assert "Summary,Total Spend,RM 120.00" in lines
    assert "Supplier a,1,RM 120.00,RM 120.00,0.0%" in lines
    assert "Analgesic,1,RM 120.00,100.0%" in lines


def test_csv_export_uses_configured_currency_label(monkeypatch):
    monkeypatch.setattr(config, "CURRENCY_LABEL", "SGD")
    analytics = calculate_analytics([_order("a", 80)])
    assert "Summary,Total Spend,SGD 80.00" in export_analytics_csv(analytics, config.CURRENCY_LABEL).splitlines()


@pytest.fixture
def purchasing(db):
    supplier = Supplier(supplier_name="MedSupply Sdn Bhd")
    medication = Medication(name="Ibuprofen", category="NSAID", price_per_unit=0.3)
    db.add_all([supplier, medication])
    db.flush()
    for po_number, order_date in [("PO-1", date(2024, 1, 1)), ("PO-2", date(2024, 1, 31)), ("PO-3", date(2024, 2, 1))]:
        order = PurchaseOrder(
            po_number=po_number, supplier_id=supplier.id, order_date=order_date,
            status="received", total_amount=100,
        )
        order.items.append(
            PurchaseOrderItem(medication_id=medication.id, item_name="Ibuprofen", quantity_ordered=100, total_cost=100)
        )
        db.add(order)
    db.add(Quotation(quotation_number="QT-1", quotation_request_id="req", supplier_id=supplier.id,
                     status="accepted", total_amount=90, quotation_date=date(2024, 1, 10)))
    db.add(Quotation(quotation_number="QT-2", quotation_request_id="req", supplier_id=supplier.id,
                     status="rejected", total_amount=130, quotation_date=date(2024, 1, 11)))
    db.commit()
    return supplier


def test_fetch_analytics_window_is_inclusive(db, purchasing):
    analytics = procurement_service.fetch_analytics(db, date(2024, 1, 1), date(2024, 1, 31))
    assert analytics.total_orders == 2
    assert analytics.top_suppliers[0].supplier_name == "MedSupply Sdn Bhd"
    assert analytics.spend_by_category[0].category == "NSAID"
    assert analytics.cost_savings.quotation_savings == 40


def test_load_failure_returns_none_and_notifies(db, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(procurement_service, "fetch_analytics", broken)
    assert procurement_service.load_procurement_analytics(db) is None
    latest = notifications.recent_notifications()[0]
    assert latest.variant == notifications.DESTRUCTIVE
    assert latest.description == "Failed to fetch analytics data"
