"""
SQLAlchemy ORM models for the medication and service directory.

`price_tiers` maps a pricing tier name (e.g. "standard", "panel") to a price.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Float, Integer, String, Text

from models.database import Base, new_id


class Medication(Base):
    __tablename__ = "medications"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False, index=True)
    generic_name = Column(String, nullable=True)
    brand_name = Column(String, nullable=True)
    category = Column(String, nullable=True)
    unit_of_measure = Column(String, nullable=True)
    price_per_unit = Column(Float, nullable=True)
    price_tiers = Column(JSON, nullable=True)
    stock_level = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class MedicalService(Base):
    __tablename__ = "medical_services"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False, index=True)
    category = Column(String, nullable=False, default="service")
    description = Column(Text, nullable=True)
    duration_minutes = Column(Integer, nullable=True)
    price = Column(Float, nullable=False, default=0.0)
    price_tiers = Column(JSON, nullable=True)
    status = Column(String, nullable=True, default="active")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
