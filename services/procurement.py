"""
Procurement analytics.

`calculate_analytics` is a pure rollup over plain order and quotation rows:
single-pass grouping by supplier, category, month and status.  Delivery and
reliability figures come only from orders that record both an expected and an
actual delivery date; there is no data source for supplier quality scores or
response times, so those are reported as None.
"""

from __future__ import annotations

import calendar
import csv
import io
import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy.orm import Session, selectinload

import config
from models.procurement import PurchaseOrder, PurchaseOrderItem, Quotation
from models.schemas import (
    AnalyticsData,
    CategorySpend,
    CostSavings,
    DeliveryMetrics,
    MonthlyTrend,
    StatusDistribution,
    SupplierPerformance,
    SupplierReliability,
)
from services.notifications import DESTRUCTIVE, Notifier, notify

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"
RECEIVED = "received"
CANCELLED = "cancelled"
ACCEPTED = "accepted"


def _pct(part: float, whole: float) -> float:
    return (part / whole) * 100 if whole else 0.0


def _as_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value)).date()


def _delivery_timing(order: Mapping[str, Any]) -> Optional[int]:
    """Days late (positive) or early (negative); None when not measurable."""
    if order.get("status") != RECEIVED:
        return None
    expected = _as_date(order.get("expected_delivery_date"))
    delivered = _as_date(order.get("delivery_date"))
    if expected is None or delivered is None:
        return None
    return (delivered - expected).days


def calculate_analytics(
    purchase_orders: Iterable[Mapping[str, Any]],
    quotations: Iterable[Mapping[str, Any]] = (),
    top_n: int = config.TOP_SUPPLIER_LIMIT,
) -> AnalyticsData:
    orders = list(purchase_orders)
    quotations = list(quotations)

    total_spend = sum(o.get("total_amount") or 0 for o in orders)
    total_orders = len(orders)

    suppliers: Dict[Any, Dict[str, Any]] = {}
    categories: Dict[str, Dict[str, float]] = defaultdict(lambda: {"total_spend": 0.0, "order_count": 0})
    months: Dict[str, Dict[str, Any]] = {}
    statuses: Dict[str, Dict[str, float]] = defaultdict(lambda: {"count": 0, "total_value": 0.0})
    delivery_days: List[int] = []
    timings: List[int] = []

    for order in orders:
        amount = order.get("total_amount") or 0
        status = order.get("status") or "unknown"

        supplier = suppliers.setdefault(
            order.get("supplier_id"),
            {
                "supplier_id": str(order.get("supplier_id")),
                "supplier_name": order.get("supplier_name") or "Unknown",
                "total_orders": 0,
                "total_spend": 0.0,
                "measured": 0,
                "on_time": 0,
                "cancelled": 0,
            },
        )
        supplier["total_orders"] += 1
        supplier["total_spend"] += amount
        if status == CANCELLED:
            supplier["cancelled"] += 1

        timing = _delivery_timing(order)
        if timing is not None:
            timings.append(timing)
            supplier["measured"] += 1
            if timing <= 0:
                supplier["on_time"] += 1

        ordered = _as_date(order.get("order_date"))
        delivered = _as_date(order.get("delivery_date"))
        if status == RECEIVED and ordered and delivered:
            delivery_days.append((delivered - ordered).days)

        for item in order.get("items") or ():
            bucket = categories[item.get("category") or UNCATEGORIZED]
            bucket["total_spend"] += item.get("total_cost") or 0
            bucket["order_count"] += 1

        if ordered is not None:
            key = f"{ordered.year}-{ordered.month:02d}"
            month = months.setdefault(
                key,
                {
                    "key": key,
                    "month": calendar.month_name[ordered.month],
                    "year": ordered.year,
                    "total_spend": 0.0,
                    "order_count": 0,
                },
            )
            month["total_spend"] += amount
            month["order_count"] += 1

        statuses[status]["count"] += 1
        statuses[status]["total_value"] += amount

    top_suppliers = sorted(
        (
            SupplierPerformance(
                supplier_id=s["supplier_id"],
                supplier_name=s["supplier_name"],
                total_orders=s["total_orders"],
                total_spend=s["total_spend"],
                average_order_value=s["total_spend"] / s["total_orders"] if s["total_orders"] else 0.0,
                on_time_delivery_rate=_pct(s["on_time"], s["measured"]),
            )
            for s in suppliers.values()
        ),
        key=lambda s: s.total_spend,
        reverse=True,
    )[:top_n]

    category_total = sum(c["total_spend"] for c in categories.values())
    spend_by_category = sorted(
        (
            CategorySpend(
                category=name,
                total_spend=c["total_spend"],
                order_count=c["order_count"],
                percentage=_pct(c["total_spend"], category_total),
            )
            for name, c in categories.items()
        ),
        key=lambda c: c.total_spend,
        reverse=True,
    )

    monthly_trends = [
        MonthlyTrend(
            average_order_value=m["total_spend"] / m["order_count"] if m["order_count"] else 0.0,
            **m,
        )
        for _, m in sorted(months.items())
    ]

    order_status_distribution = [
        StatusDistribution(
            status=status,
            count=s["count"],
            percentage=_pct(s["count"], total_orders),
            total_value=s["total_value"],
        )
        for status, s in statuses.items()
    ]

    supplier_reliability_scores = [
        SupplierReliability(
            supplier_id=s["supplier_id"],
            supplier_name=s["supplier_name"],
            reliability_score=_pct(s["on_time"], s["measured"]),
            total_orders=s["total_orders"],
            on_time_orders=s["on_time"],
            late_orders=s["measured"] - s["on_time"],
            cancelled_orders=s["cancelled"],
        )
        for s in suppliers.values()
    ]

    quotation_savings = calculate_quotation_savings(quotations)
    cost_savings = CostSavings(
        quotation_savings=quotation_savings,
        total_savings=quotation_savings,
        savings_percentage=_pct(quotation_savings, total_spend),
    )

    delivery_metrics = DeliveryMetrics(
        average_delivery_time=sum(delivery_days) / len(delivery_days) if delivery_days else 0.0,
        on_time_delivery_rate=_pct(sum(1 for t in timings if t <= 0), len(timings)),
        early_delivery_rate=_pct(sum(1 for t in timings if t < 0), len(timings)),
        late_delivery_rate=_pct(sum(1 for t in timings if t > 0), len(timings)),
        total_deliveries=sum(1 for o in orders if o.get("status") == RECEIVED),
    )

    return AnalyticsData(
        total_spend=total_spend,
        total_orders=total_orders,
        average_order_value=total_spend / total_orders if total_orders else 0.0,
        top_suppliers=top_suppliers,
        spend_by_category=spend_by_category,
        monthly_trends=monthly_trends,
        order_status_distribution=order_status_distribution,
        supplier_reliability_scores=supplier_reliability_scores,
        cost_savings=cost_savings,
        delivery_metrics=delivery_metrics,
    )


def calculate_quotation_savings(quotations: Iterable[Mapping[str, Any]]) -> float:
    """Sum over quotation requests of (highest quote - accepted quote)."""
    requests: Dict[Any, List[Mapping[str, Any]]] = defaultdict(list)
    for quote in quotations:
        if quote.get("quotation_request_id"):
            requests[quote["quotation_request_id"]].append(quote)

    savings = 0.0
    for quotes in requests.values():
        accepted = [q for q in quotes if q.get("status") == ACCEPTED]
        if not accepted:
            continue
        highest = max(q.get("total_amount") or 0 for q in quotes)
        savings += max(highest - (accepted[0].get("total_amount") or 0), 0)
    return savings


def resolve_window(start: Optional[date] = None, end: Optional[date] = None) -> Tuple[date, date]:
    """Inclusive date window, defaulting to the last ANALYTICS_WINDOW_DAYS."""
    end = end or date.today()
    start = start or end - timedelta(days=config.ANALYTICS_WINDOW_DAYS)
    return start, end


def order_to_row(order: PurchaseOrder) -> Dict[str, Any]:
    return {
        "id": order.id,
        "supplier_id": order.supplier_id,
        "supplier_name": order.supplier.supplier_name if order.supplier else None,
        "total_amount": order.total_amount,
        "status": order.status,
        "order_date": order.order_date,
        "expected_delivery_date": order.expected_delivery_date,
        "delivery_date": order.delivery_date,
        "items": [
            {
                "category": item.medication.category if item.medication else None,
                "total_cost": item.total_cost,
            }
            for item in order.items
        ],
    }


def quotation_to_row(quote: Quotation) -> Dict[str, Any]:
    return {
        "id": quote.id,
        "quotation_request_id": quote.quotation_request_id,
        "supplier_id": quote.supplier_id,
        "status": quote.status,
        "total_amount": quote.total_amount,
    }


def fetch_analytics(db: Session, start: Optional[date] = None, end: Optional[date] = None) -> AnalyticsData:
    start, end = resolve_window(start, end)
    orders = (
        db.query(PurchaseOrder)
        .options(
            selectinload(PurchaseOrder.supplier),
            selectinload(PurchaseOrder.items).selectinload(PurchaseOrderItem.medication),
        )
        .filter(PurchaseOrder.order_date >= start, PurchaseOrder.order_date <= end)
        .all()
    )
    quotes = (
        db.query(Quotation)
        .filter(Quotation.quotation_date >= start, Quotation.quotation_date <= end)
        .all()
    )
    return calculate_analytics(
        [order_to_row(o) for o in orders],
        [quotation_to_row(q) for q in quotes],
    )


def load_procurement_analytics(
    db: Session,
    start: Optional[date] = None,
    end: Optional[date] = None,
    notify: Notifier = notify,
) -> Optional[AnalyticsData]:
    """Fetch analytics for display; a failure yields None and a notification."""
    try:
        return fetch_analytics(db, start, end)
    except Exception:
        db.rollback()
        logger.exception("Error fetching procurement analytics")
        notify("Error", "Failed to fetch analytics data", DESTRUCTIVE)
        return None


def _money(amount: float, currency: str) -> str:
    return f"{currency} {amount:.2f}"


def export_analytics_csv(analytics: AnalyticsData, currency: str = config.CURRENCY_LABEL) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(["Report Section", "Key", "Value"])
    writer.writerow(["Summary", "Total Spend", _money(analytics.total_spend, currency)])
    writer.writerow(["Summary", "Total Orders", analytics.total_orders])
    writer.writerow(["Summary", "Average Order Value", _money(analytics.average_order_value, currency)])
    writer.writerow([])
    writer.writerow(["Top Suppliers"])
    writer.writerow(
        ["Supplier Name", "Total Orders", "Total Spend", "Average Order Value", "On-Time Delivery Rate"]
    )
    for supplier in analytics.top_suppliers:
        writer.writerow(
            [
                supplier.supplier_name,
                supplier.total_orders,
                _money(supplier.total_spend, currency),
                _money(supplier.average_order_value, currency),
                f"{supplier.on_time_delivery_rate:.1f}%",
            ]
        )
    writer.writerow([])
    writer.writerow(["Spend by Category"])
    writer.writerow(["Category", "Line Items", "Total Spend", "Share"])
    for category in analytics.spend_by_category:
        writer.writerow(
            [
                category.category,
                category.order_count,
                _money(category.total_spend, currency),
                f"{category.percentage:.1f}%",
            ]
        )
    return buffer.getvalue()
