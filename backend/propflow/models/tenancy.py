from sqlalchemy import Column, String, ForeignKey
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship
import enum

from propflow.db.base_class import BaseModel
from propflow.db.session import Base


class RoleName(str, enum.Enum):
    ADMIN = "admin"
    PROPERTY_MANAGER = "property_manager"
    LANDLORD = "landlord"
    TENANT = "tenant"
    VENDOR = "vendor"


IMPORT_ROLES = (RoleName.ADMIN.value, RoleName.PROPERTY_MANAGER.value)


class Organization(Base, BaseModel):
    __tablename__ = "organizations"
    name = Column(String(255), nullable=False)
    settings_json = Column(JSONB, default=dict)


class User(Base, BaseModel):
    __tablename__ = "users"
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    first_name = Column(String(120), nullable=True)
    last_name = Column(String(120), nullable=True)
    phone = Column(String(32), nullable=True)
    role = Column(String(50), nullable=False, default=RoleName.TENANT.value)
    status = Column(String(50), default="ACTIVE")
    organization = relationship("Organization", backref="users")