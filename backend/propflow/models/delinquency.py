"""
Delinquency playbooks, the append-only action log, and tenant SMS preferences.
"""
from sqlalchemy import Column, String, ForeignKey, Integer, Boolean, DateTime, Text, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB

from propflow.db.base_class import BaseModel
from propflow.db.session import Base


class DelinquencyPlaybook(Base, BaseModel):
    __tablename__ = "delinquency_playbooks"
    name = Column(String(255), nullable=False)
    property_id = Column(UUID(as_uuid=True), ForeignKey("properties.id"), nullable=True)  # null = global
    is_active = Column(Boolean, nullable=False, default=True)
    grace_period_days = Column(Integer, nullable=False, default=3)
    # [{"days": 3, "actionType": "sms_reminder", "messageTemplate": "..."}]
    reminder_intervals = Column(JSONB, nullable=False, default=lambda: [])
    offer_payment_plan_after_days = Column(Integer, default=7)
    escalate_to_legal_after_days = Column(Integer, default=30)


class DelinquencyAction(Base, BaseModel):
    __tablename__ = "delinquency_actions"
    __table_args__ = (Index("ix_delinquency_actions_payment_playbook", "payment_id", "playbook_id"),)
    payment_id = Column(UUID(as_uuid=True), ForeignKey("payments.id"), nullable=False)
    playbook_id = Column(UUID(as_uuid=True), ForeignKey("delinquency_playbooks.id"), nullable=False)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    days_overdue = Column(Integer, nullable=False)  # interval threshold that fired
    action_type = Column(String(50), nullable=False)
    message_template = Column(Text, nullable=False)
    message_sent = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="pending")  # sent, failed
    sent_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)


class SmsPreferences(Base, BaseModel):
    __tablename__ = "sms_preferences"
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, unique=True)
    phone_number = Column(String(32), nullable=True)
    opted_in = Column(Boolean, default=False)
    rent_reminders = Column(Boolean, default=True)
    maintenance_updates = Column(Boolean, default=True)
    lease_renewals = Column(Boolean, default=True)
