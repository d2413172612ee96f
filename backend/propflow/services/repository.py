"""
SQL storage collaborator for the import runner and the delinquency engine.

Entity writes for one import run share a single session (one transaction per run, one
savepoint per row). Job status and progress are written through short-lived sessions that
commit immediately, so pollers see progress while the run's own transaction is still open.
"""
from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Iterator, Sequence
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import DataError, DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import Session

from propflow.core.exceptions import ImportFatalError, RollbackConflictError, RowValidationError
from propflow.models import (
    DelinquencyAction,
    DelinquencyPlaybook,
    ImportJob,
    ImportRecord,
    ImportRowError,
    Lease,
    MaintenanceRequest,
    Payment,
    Property,
    SmsPreferences,
    Transaction,
    Unit,
    User,
    Vendor,
)
from propflow.services.audit import log_action
from propflow.services.import_rows import fold, json_safe

logger = logging.getLogger(__name__)

ENTITY_MODELS = {
    "property": Property,
    "unit": Unit,
    "tenant": User,
    "lease": Lease,
    "vendor": Vendor,
    "maintenance_request": MaintenanceRequest,
    "transaction": Transaction,
}


def _coerce(model, key: str, value: Any) -> Any:
    """Turn a JSON-stored previous value back into the column's Python type."""
    if value is None:
        return None
    try:
        python_type = model.__table__.c[key].type.python_type
    except (KeyError, NotImplementedError):
        return value
    if python_type is uuid.UUID and not isinstance(value, uuid.UUID):
        return uuid.UUID(str(value))
    if python_type is Decimal and not isinstance(value, Decimal):
        return Decimal(str(value))
    if python_type is datetime and isinstance(value, str):
        return datetime.fromisoformat(value)
    if python_type is date and isinstance(value, str):
        return date.fromisoformat(value[:10])
    return value


class SqlRepository:
    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory
        self.session = session_factory()

    def close(self) -> None:
        self.session.close()

    @contextmanager
    def _job_session(self) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except OperationalError as e:
            db.rollback()
            raise ImportFatalError(f"Storage unavailable: {e.orig}") from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # --- import jobs ---

    def create_import_job(self, **fields: Any) -> ImportJob:
        with self._job_session() as db:
            job = ImportJob(**fields)
            db.add(job)
        return job

    def get_import_job(self, job_id: UUID) -> ImportJob | None:
        with self._job_session() as db:
            return db.get(ImportJob, job_id)

    def transition_import_job(
        self,
        job_id: UUID,
        from_statuses: Sequence[str],
        to_status: str,
        **fields: Any,
    ) -> bool:
        """Atomic conditional status change; False when the job was not in from_statuses."""
        with self._job_session() as db:
            result = db.execute(
                update(ImportJob)
                .where(ImportJob.id == job_id, ImportJob.status.in_(list(from_statuses)))
                .values(status=to_status, **fields)
            )
            return result.rowcount == 1

    def update_import_job(self, job_id: UUID, **fields: Any) -> None:
        with self._job_session() as db:
            db.execute(update(ImportJob).where(ImportJob.id == job_id).values(**fields))

    def clear_import_row_errors(self, job_id: UUID) -> None:
        with self._job_session() as db:
            db.execute(delete(ImportRowError).where(ImportRowError.import_job_id == job_id))

    def add_import_row_errors(self, job_id: UUID, errors: list[dict[str, Any]]) -> None:
        if not errors:
            return
        with self._job_session() as db:
            db.add_all(
                ImportRowError(
                    import_job_id=job_id,
                    row_number=e["row"],
                    field_name=e.get("field"),
                    error_type=e.get("type", "validation"),
                    error_message=e["error"],
                    raw_data=e.get("raw"),
                )
                for e in errors
            )

    def add_audit_log(self, organization_id: UUID, actor_user_id: UUID | None, action: str, entity_id: UUID, diff: dict | None = None) -> None:
        with self._job_session() as db:
            log_action(db, organization_id, actor_user_id, action, "import_job", entity_id, diff)

    # --- entity lookups used by row builders ---

    def find_property_by_name(self, organization_id: UUID, name: str) -> Property | None:
        q = select(Property).where(
            Property.organization_id == organization_id,
            func.lower(func.trim(Property.name)) == fold(name),
        )
        return self.session.execute(q).scalars().first()

    def find_unit(self, property_id: UUID, unit_number: str) -> Unit | None:
        q = select(Unit).where(
            Unit.property_id == property_id,
            func.lower(func.trim(Unit.unit_number)) == fold(unit_number),
        )
        return self.session.execute(q).scalars().first()

    def find_user_by_email(self, email: str) -> User | None:
        q = select(User).where(func.lower(User.email) == email.lower())
        return self.session.execute(q).scalars().first()

    def find_tenant_by_name(self, organization_id: UUID, first_name: str, last_name: str) -> User | None:
        q = select(User).where(
            User.organization_id == organization_id,
            User.role == "tenant",
            func.lower(User.first_name) == fold(first_name),
            func.lower(User.last_name) == fold(last_name),
        )
        return self.session.execute(q).scalars().first()

    def find_lease(self, unit_id: UUID, tenant_id: UUID, start_date: date) -> Lease | None:
        q = select(Lease).where(Lease.unit_id == unit_id, Lease.tenant_id == tenant_id, Lease.start_date == start_date)
        return self.session.execute(q).scalars().first()

    def find_vendor_by_name(self, organization_id: UUID, company_name: str) -> Vendor | None:
        q = select(Vendor).where(
            Vendor.organization_id == organization_id,
            func.lower(func.trim(Vendor.company_name)) == fold(company_name),
        )
        return self.session.execute(q).scalars().first()

    def find_maintenance_request(self, unit_id: UUID, title: str, reported_at: datetime | None) -> MaintenanceRequest | None:
        q = select(MaintenanceRequest).where(
            MaintenanceRequest.unit_id == unit_id,
            func.lower(func.trim(MaintenanceRequest.title)) == fold(title),
        )
        q = q.where(MaintenanceRequest.reported_at.is_(None) if reported_at is None else MaintenanceRequest.reported_at == reported_at)
        return self.session.execute(q).scalars().first()

    def find_transaction_by_reference(self, property_id: UUID, reference_number: str) -> Transaction | None:
        q = select(Transaction).where(
            Transaction.property_id == property_id,
            Transaction.reference_number == reference_number,
        )
        return self.session.execute(q).scalars().first()

    # --- entity writes ---

    @contextmanager
    def row_scope(self) -> Iterator[None]:
        """Savepoint per row: constraint violations fail the row, connection loss fails the job."""
        savepoint = self.session.begin_nested()
        try:
            yield
            self.session.flush()
        except (IntegrityError, DataError) as e:
            savepoint.rollback()
            raise RowValidationError("row", f"Constraint violation: {e.orig}") from e
        except OperationalError as e:
            raise ImportFatalError(f"Storage unavailable: {e.orig}") from e
        except Exception:
            savepoint.rollback()
            raise
        else:
            savepoint.commit()

    def create_entity(self, entity_type: str, values: dict[str, Any]) -> UUID:
        obj = ENTITY_MODELS[entity_type](**values)
        self.session.add(obj)
        self.session.flush()
        return obj.id

    def update_entity(self, entity_type: str, entity_id: UUID, values: dict[str, Any]) -> dict[str, Any]:
        """Apply values; returns the previous values of the touched columns (JSON-safe)."""
        obj = self.session.get(ENTITY_MODELS[entity_type], entity_id)
        previous = {k: getattr(obj, k) for k in values}
        for k, v in values.items():
            setattr(obj, k, v)
        self.session.flush()
        return json_safe(previous)

    def record_import(
        self,
        job_id: UUID,
        row_number: int,
        entity_type: str,
        entity_id: UUID,
        action: str,
        previous_values: dict[str, Any] | None = None,
    ) -> None:
        self.session.add(
            ImportRecord(
                import_job_id=job_id,
                row_number=row_number,
                entity_type=entity_type,
                entity_id=entity_id,
                action=action,
                previous_values=previous_values,
            )
        )

    def get_import_records(self, job_id: UUID) -> list[ImportRecord]:
        q = (
            select(ImportRecord)
            .where(ImportRecord.import_job_id == job_id)
            .order_by(ImportRecord.row_number, ImportRecord.created_at)
        )
        return list(self.session.execute(q).scalars().all())

    def delete_entity(self, entity_type: str, entity_id: UUID) -> None:
        model = ENTITY_MODELS[entity_type]
        try:
            self.session.execute(delete(model).where(model.id == entity_id))
            self.session.flush()
        except IntegrityError as e:
            raise RollbackConflictError(f"{entity_type} {entity_id} is referenced by other records") from e

    def restore_entity(self, entity_type: str, entity_id: UUID, previous_values: dict[str, Any]) -> None:
        model = ENTITY_MODELS[entity_type]
        obj = self.session.get(model, entity_id)
        if obj is None:
            logger.warning("Rollback: %s %s no longer exists", entity_type, entity_id)
            return
        for k, v in previous_values.items():
            setattr(obj, k, _coerce(model, k, v))
        self.session.flush()

    def commit(self) -> None:
        try:
            self.session.commit()
        except DBAPIError as e:
            self.session.rollback()
            raise ImportFatalError(f"Commit failed: {e.orig}") from e

    def rollback(self) -> None:
        self.session.rollback()

    # --- delinquency ---

    def get_payments(self, status: str | None = None) -> list[Payment]:
        q = select(Payment)
        if status:
            q = q.where(Payment.status == status)
        return list(self.session.execute(q).scalars().all())

    def get_lease(self, lease_id: UUID) -> Lease | None:
        return self.session.get(Lease, lease_id)

    def get_unit(self, unit_id: UUID) -> Unit | None:
        return self.session.get(Unit, unit_id)

    def get_property(self, property_id: UUID) -> Property | None:
        return self.session.get(Property, property_id)

    def get_user(self, user_id: UUID) -> User | None:
        return self.session.get(User, user_id)

    def get_delinquency_playbooks(self, property_id: UUID | None, is_active: bool = True) -> list[DelinquencyPlaybook]:
        """property_id None selects global playbooks only."""
        q = select(DelinquencyPlaybook).where(DelinquencyPlaybook.is_active.is_(is_active))
        if property_id is None:
            q = q.where(DelinquencyPlaybook.property_id.is_(None))
        else:
            q = q.where(DelinquencyPlaybook.property_id == property_id)
        return list(self.session.execute(q.order_by(DelinquencyPlaybook.created_at)).scalars().all())

    def get_delinquency_actions(self, payment_id: UUID, playbook_id: UUID) -> list[DelinquencyAction]:
        q = select(DelinquencyAction).where(
            DelinquencyAction.payment_id == payment_id,
            DelinquencyAction.playbook_id == playbook_id,
        )
        return list(self.session.execute(q).scalars().all())

    def create_delinquency_action(self, **fields: Any) -> DelinquencyAction:
        action = DelinquencyAction(**fields)
        self.session.add(action)
        self.session.commit()
        return action

    def get_sms_preferences(self, user_id: UUID) -> SmsPreferences | None:
        q = select(SmsPreferences).where(SmsPreferences.user_id == user_id)
        return self.session.execute(q).scalars().first()
