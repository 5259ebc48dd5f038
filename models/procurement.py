"""
SQLAlchemy ORM models for suppliers, purchase orders, quotations and reorder
suggestions.
"""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from models.catalog import Medication
from models.database import Base, new_id


class Supplier(Base):
    __tablename__ = "suppliers"

    id = Column(String(36), primary_key=True, default=new_id)
    supplier_name = Column(String, nullable=False)
    supplier_code = Column(String, nullable=True)
    contact_person = Column(String, nullable=True)
    email = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class PurchaseOrder(Base):
    __tablename__ = "purchase_orders"

    id = Column(String(36), primary_key=True, default=new_id)
    po_number = Column(String, nullable=False)
    supplier_id = Column(String(36), ForeignKey("suppliers.id"), nullable=False, index=True)
    order_date = Column(Date, default=date.today, nullable=False, index=True)
    expected_delivery_date = Column(Date, nullable=True)
    delivery_date = Column(Date, nullable=True)
    status = Column(String, nullable=False, default="draft")
    subtotal = Column(Float, nullable=False, default=0.0)
    total_amount = Column(Float, nullable=False, default=0.0)
    quotation_id = Column(String(36), ForeignKey("quotations.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    supplier = relationship("Supplier")
    items = relationship("PurchaseOrderItem", back_populates="purchase_order")


class PurchaseOrderItem(Base):
    __tablename__ = "purchase_order_items"

    id = Column(String(36), primary_key=True, default=new_id)
    purchase_order_id = Column(
        String(36), ForeignKey("purchase_orders.id"), nullable=False, index=True
    )
    medication_id = Column(String(36), ForeignKey("medications.id"), nullable=True)
    item_name = Column(String, nullable=False)
    quantity_ordered = Column(Integer, nullable=False, default=0)
    unit_cost = Column(Float, nullable=False, default=0.0)
    total_cost = Column(Float, nullable=False, default=0.0)

    purchase_order = relationship("PurchaseOrder", back_populates="items")
    medication = relationship(Medication)


class Quotation(Base):
    __tablename__ = "quotations"

    id = Column(String(36), primary_key=True, default=new_id)
    quotation_number = Column(String, nullable=False)
    quotation_request_id = Column(String(36), nullable=True, index=True)
    supplier_id = Column(String(36), ForeignKey("suppliers.id"), nullable=False)
    status = Column(String, nullable=False, default="pending")  # pending | accepted | rejected
    total_amount = Column(Float, nullable=False, default=0.0)
    quotation_date = Column(Date, default=date.today, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class ReorderSuggestion(Base):
    __tablename__ = "reorder_suggestions"

    id = Column(String(36), primary_key=True, default=new_id)
    medication_id = Column(String(36), ForeignKey("medications.id"), nullable=False)
    suggested_quantity = Column(Integer, nullable=False)
    current_stock = Column(Integer, nullable=False, default=0)
    minimum_stock_level = Column(Integer, nullable=False, default=0)
    lead_time_days = Column(Integer, nullable=True)
    suggested_supplier_id = Column(String(36), ForeignKey("suppliers.id"), nullable=True)
    priority_level = Column(String, nullable=False, default="normal")
    reason = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="pending")
    cost_estimate = Column(Float, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    medication = relationship(Medication)
    supplier = relationship("Supplier")

    def update_timestamp(self) -> None:
        self.updated_at = datetime.utcnow()
