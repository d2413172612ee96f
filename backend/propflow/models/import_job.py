"""
ImportJob, ImportRowError, ImportRecord models for bulk data import.
"""
from sqlalchemy import Column, String, ForeignKey, Integer, Boolean, DateTime, Text
from sqlalchemy.dialects.postgresql import UUID, JSONB

from propflow.db.base_class import BaseModel
from propflow.db.session import Base


class ImportJob(Base, BaseModel):
    __tablename__ = "import_jobs"
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    data_type = Column(String(32), nullable=False)
    source = Column(String(32), nullable=False, server_default="generic_csv")
    file_name = Column(String(500), nullable=False)
    file_path = Column(String(1000), nullable=True)
    status = Column(String(20), nullable=False, server_default="pending")
    total_rows = Column(Integer, default=0)
    processed_rows = Column(Integer, default=0)
    successful_rows = Column(Integer, default=0)
    failed_rows = Column(Integer, default=0)
    last_run_dry = Column(Boolean, nullable=True)
    headers = Column(JSONB, default=lambda: [])
    field_mapping = Column(JSONB, default=lambda: {})
    validation_errors = Column(JSONB, default=lambda: [])
    imported_data = Column(JSONB, default=lambda: [])
    error_message = Column(Text, nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)


class ImportRowError(Base, BaseModel):
    __tablename__ = "import_errors"
    import_job_id = Column(UUID(as_uuid=True), ForeignKey("import_jobs.id", ondelete="CASCADE"), nullable=False)
    row_number = Column(Integer, nullable=False)
    field_name = Column(String(100), nullable=True)
    error_type = Column(String(50), nullable=False)
    error_message = Column(Text, nullable=False)
    raw_data = Column(JSONB, nullable=True)


class ImportRecord(Base, BaseModel):
    """One entity written by a non-dry-run import; drives rollback."""
    __tablename__ = "import_records"
    import_job_id = Column(UUID(as_uuid=True), ForeignKey("import_jobs.id", ondelete="CASCADE"), nullable=False)
    row_number = Column(Integer, nullable=False)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(UUID(as_uuid=True), nullable=False)
    action = Column(String(10), nullable=False)  # created, updated
    previous_values = Column(JSONB, nullable=True)
