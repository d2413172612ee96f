from propflow.db.session import Base
from propflow.models.tenancy import Organization, User, RoleName
from propflow.models.property import (
    Property,
    Unit,
    Lease,
    Payment,
    Vendor,
    MaintenanceRequest,
    Transaction,
)
from propflow.models.import_job import ImportJob, ImportRowError, ImportRecord
from propflow.models.delinquency import DelinquencyPlaybook, DelinquencyAction, SmsPreferences
from propflow.models.audit import AuditLog

__all__ = [
    "Base",
    "Organization",
    "User",
    "RoleName",
    "Property",
    "Unit",
    "Lease",
    "Payment",
    "Vendor",
    "MaintenanceRequest",
    "Transaction",
    "ImportJob",
    "ImportRowError",
    "ImportRecord",
    "DelinquencyPlaybook",
    "DelinquencyAction",
    "SmsPreferences",
    "AuditLog",
]
