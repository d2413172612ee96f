"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
    ]


def upgrade() -> None:
    op.create_table(
        "organizations",
        *_base_columns(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("settings_json", postgresql.JSONB(), server_default="{}"),
    )
    op.create_table(
        "users",
        *_base_columns(),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(120)),
        sa.Column("last_name", sa.String(120)),
        sa.Column("phone", sa.String(32)),
        sa.Column("role", sa.String(50), nullable=False, server_default="tenant"),
        sa.Column("status", sa.String(50), server_default="ACTIVE"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_table(
        "properties",
        *_base_columns(),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("address", sa.String(500)),
        sa.Column("city", sa.String(120)),
        sa.Column("state", sa.String(64)),
        sa.Column("zip_code", sa.String(16)),
        sa.Column("property_type", sa.String(32), nullable=False, server_default="residential"),
        sa.Column("total_units", sa.Integer(), server_default="0"),
        sa.Column("manager_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id")),
    )
    op.create_index("ix_properties_organization_id", "properties", ["organization_id"])
    op.create_table(
        "units",
        *_base_columns(),
        sa.Column("property_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("properties.id"), nullable=False),
        sa.Column("unit_number", sa.String(64), nullable=False),
        sa.Column("unit_type", sa.String(32), nullable=False, server_default="apartment"),
        sa.Column("bedrooms", sa.Integer(), server_default="0"),
        sa.Column("bathrooms", sa.Numeric(4, 1), server_default="0"),
        sa.Column("square_feet", sa.Integer()),
        sa.Column("monthly_rent", sa.Numeric(10, 2), server_default="0"),
        sa.Column("status", sa.String(32), nullable=False, server_default="vacant"),
    )
    op.create_index("ix_units_property_id", "units", ["property_id"])
    op.create_table(
        "leases",
        *_base_columns(),
        sa.Column("unit_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("units.id"), nullable=False),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date()),
        sa.Column("rent_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("security_deposit", sa.Numeric(10, 2)),
        sa.Column("status", sa.String(32), nullable=False, server_default="active"),
    )
    op.create_table(
        "payments",
        *_base_columns(),
        sa.Column("lease_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("leases.id"), nullable=False),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", sa.String(32), nullable=False, server_default="pending"),
        sa.Column("due_date", sa.Date()),
        sa.Column("paid_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_payments_status", "payments", ["status"])
    op.create_table(
        "vendors",
        *_base_columns(),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("company_name", sa.String(255), nullable=False),
        sa.Column("contact_name", sa.String(255)),
        sa.Column("email", sa.String(255)),
        sa.Column("phone", sa.String(32)),
        sa.Column("address", sa.String(500)),
        sa.Column("city", sa.String(120)),
        sa.Column("state", sa.String(64)),
        sa.Column("zip_code", sa.String(16)),
        sa.Column("specialty", sa.String(120)),
    )
    op.create_table(
        "maintenance_requests",
        *_base_columns(),
        sa.Column("unit_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("units.id"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("category", sa.String(64)),
        sa.Column("priority", sa.String(16), nullable=False, server_default="medium"),
        sa.Column("status", sa.String(32), nullable=False, server_default="open"),
        sa.Column("reported_at", sa.DateTime(timezone=True)),
    )
    op.create_table(
        "transactions",
        *_base_columns(),
        sa.Column("property_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("properties.id"), nullable=False),
        sa.Column("unit_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("units.id")),
        sa.Column("transaction_date", sa.Date(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("transaction_type", sa.String(16), nullable=False),
        sa.Column("category", sa.String(120)),
        sa.Column("description", sa.Text()),
        sa.Column("reference_number", sa.String(120)),
    )
    op.create_table(
        "import_jobs",
        *_base_columns(),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("data_type", sa.String(32), nullable=False),
        sa.Column("source", sa.String(32), nullable=False, server_default="generic_csv"),
        sa.Column("file_name", sa.String(500), nullable=False),
        sa.Column("file_path", sa.String(1000)),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("total_rows", sa.Integer(), server_default="0"),
        sa.Column("processed_rows", sa.Integer(), server_default="0"),
        sa.Column("successful_rows", sa.Integer(), server_default="0"),
        sa.Column("failed_rows", sa.Integer(), server_default="0"),
        sa.Column("last_run_dry", sa.Boolean()),
        sa.Column("headers", postgresql.JSONB(), server_default="[]"),
        sa.Column("field_mapping", postgresql.JSONB(), server_default="{}"),
        sa.Column("validation_errors", postgresql.JSONB(), server_default="[]"),
        sa.Column("imported_data", postgresql.JSONB(), server_default="[]"),
        sa.Column("error_message", sa.Text()),
        sa.Column("started_at", sa.DateTime(timezone=True)),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_import_jobs_organization_id", "import_jobs", ["organization_id"])
    op.create_table(
        "import_errors",
        *_base_columns(),
        sa.Column("import_job_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("import_jobs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("row_number", sa.Integer(), nullable=False),
        sa.Column("field_name", sa.String(100)),
        sa.Column("error_type", sa.String(50), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=False),
        sa.Column("raw_data", postgresql.JSONB()),
    )
    op.create_index("ix_import_errors_import_job_id", "import_errors", ["import_job_id"])
    op.create_table(
        "import_records",
        *_base_columns(),
        sa.Column("import_job_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("import_jobs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("row_number", sa.Integer(), nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("action", sa.String(10), nullable=False),
        sa.Column("previous_values", postgresql.JSONB()),
    )
    op.create_index("ix_import_records_import_job_id", "import_records", ["import_job_id"])
    op.create_table(
        "delinquency_playbooks",
        *_base_columns(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("property_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("properties.id")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("grace_period_days", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("reminder_intervals", postgresql.JSONB(), nullable=False, server_default="[]"),
        sa.Column("offer_payment_plan_after_days", sa.Integer(), server_default="7"),
        sa.Column("escalate_to_legal_after_days", sa.Integer(), server_default="30"),
    )
    op.create_table(
        "delinquency_actions",
        *_base_columns(),
        sa.Column("payment_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("payments.id"), nullable=False),
        sa.Column("playbook_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("delinquency_playbooks.id"), nullable=False),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("days_overdue", sa.Integer(), nullable=False),
        sa.Column("action_type", sa.String(50), nullable=False),
        sa.Column("message_template", sa.Text(), nullable=False),
        sa.Column("message_sent", sa.Text()),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("sent_at", sa.DateTime(timezone=True)),
        sa.Column("delivered_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_delinquency_actions_payment_playbook", "delinquency_actions", ["payment_id", "playbook_id"])
    op.create_table(
        "sms_preferences",
        *_base_columns(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False, unique=True),
        sa.Column("phone_number", sa.String(32)),
        sa.Column("opted_in", sa.Boolean(), server_default=sa.false()),
        sa.Column("rent_reminders", sa.Boolean(), server_default=sa.true()),
        sa.Column("maintenance_updates", sa.Boolean(), server_default=sa.true()),
        sa.Column("lease_renewals", sa.Boolean(), server_default=sa.true()),
    )
    op.create_table(
        "audit_log",
        *_base_columns(),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("actor_user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id")),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("entity_type", sa.String(100), nullable=False),
        sa.Column("entity_id", postgresql.UUID(as_uuid=True)),
        sa.Column("diff_json", postgresql.JSONB(), server_default="{}"),
    )


def downgrade() -> None:
    for table in (
        "audit_log",
        "sms_preferences",
        "delinquency_actions",
        "delinquency_playbooks",
        "import_records",
        "import_errors",
        "import_jobs",
        "transactions",
        "maintenance_requests",
        "vendors",
        "payments",
        "leases",
        "units",
        "properties",
        "users",
        "organizations",
    ):
        op.drop_table(table)
