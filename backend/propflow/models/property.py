from sqlalchemy import Column, String, Integer, Numeric, Date, DateTime, Text, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from propflow.db.base_class import BaseModel
from propflow.db.session import Base


class Property(Base, BaseModel):
    __tablename__ = "properties"
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False)
    name = Column(String(255), nullable=False)
    address = Column(String(500), nullable=True)
    city = Column(String(120), nullable=True)
    state = Column(String(64), nullable=True)
    zip_code = Column(String(16), nullable=True)
    property_type = Column(String(32), nullable=False, default="residential")
    total_units = Column(Integer, default=0)
    manager_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    units = relationship("Unit", back_populates="property")


class Unit(Base, BaseModel):
    __tablename__ = "units"
    property_id = Column(UUID(as_uuid=True), ForeignKey("properties.id"), nullable=False)
    unit_number = Column(String(64), nullable=False)
    unit_type = Column(String(32), nullable=False, default="apartment")
    bedrooms = Column(Integer, default=0)
    bathrooms = Column(Numeric(4, 1), default=0)
    square_feet = Column(Integer, nullable=True)
    monthly_rent = Column(Numeric(10, 2), default=0)
    status = Column(String(32), nullable=False, default="vacant")
    property = relationship("Property", back_populates="units")


class Lease(Base, BaseModel):
    __tablename__ = "leases"
    unit_id = Column(UUID(as_uuid=True), ForeignKey("units.id"), nullable=False)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    rent_amount = Column(Numeric(10, 2), nullable=False)
    security_deposit = Column(Numeric(10, 2), nullable=True)
    status = Column(String(32), nullable=False, default="active")


class Payment(Base, BaseModel):
    __tablename__ = "payments"
    lease_id = Column(UUID(as_uuid=True), ForeignKey("leases.id"), nullable=False)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    status = Column(String(32), nullable=False, default="pending")  # pending, paid, failed, refunded
    due_date = Column(Date, nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)


class Vendor(Base, BaseModel):
    __tablename__ = "vendors"
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False)
    company_name = Column(String(255), nullable=False)
    contact_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(32), nullable=True)
    address = Column(String(500), nullable=True)
    city = Column(String(120), nullable=True)
    state = Column(String(64), nullable=True)
    zip_code = Column(String(16), nullable=True)
    specialty = Column(String(120), nullable=True)


class MaintenanceRequest(Base, BaseModel):
    __tablename__ = "maintenance_requests"
    unit_id = Column(UUID(as_uuid=True), ForeignKey("units.id"), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(64), nullable=True)
    priority = Column(String(16), nullable=False, default="medium")
    status = Column(String(32), nullable=False, default="open")
    reported_at = Column(DateTime(timezone=True), nullable=True)


class Transaction(Base, BaseModel):
    __tablename__ = "transactions"
    property_id = Column(UUID(as_uuid=True), ForeignKey("properties.id"), nullable=False)
    unit_id = Column(UUID(as_uuid=True), ForeignKey("units.id"), nullable=True)
    transaction_date = Column(Date, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    transaction_type = Column(String(16), nullable=False)  # income, expense
    category = Column(String(120), nullable=True)
    description = Column(Text, nullable=True)
    reference_number = Column(String(120), nullable=True)
