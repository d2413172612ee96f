"""
In-memory stand-ins for the storage and SMS collaborators. No database or network needed.
"""
from contextlib import contextmanager
from datetime import datetime, timezone
from types import SimpleNamespace
from uuid import uuid4

import pytest

from propflow.config import Settings
from propflow.services.import_rows import fold, json_safe

ENTITY_TYPES = ("property", "unit", "tenant", "lease", "vendor", "maintenance_request", "transaction")


class FakeRepository:
    def __init__(self):
        self.jobs = {}
        self.entities = {t: {} for t in ENTITY_TYPES}
        self.records = []
        self.row_errors = []
        self.audit = []
        self.progress = []
        self.commits = 0
        self.rollbacks = 0
        self.payments = []
        self.playbooks = []
        self.actions = []
        self.sms_preferences = {}

    # --- import jobs ---

    def create_import_job(self, **fields):
        job = SimpleNamespace(
            id=uuid4(),
            created_at=datetime.now(timezone.utc),
            file_path=None,
            total_rows=0,
            processed_rows=0,
            successful_rows=0,
            failed_rows=0,
            last_run_dry=None,
            headers=[],
            field_mapping={},
            validation_errors=[],
            imported_data=[],
            error_message=None,
            started_at=None,
            completed_at=None,
        )
        for k, v in fields.items():
            setattr(job, k, v)
        self.jobs[job.id] = job
        return job

    def get_import_job(self, job_id):
        return self.jobs.get(job_id)

    def transition_import_job(self, job_id, from_statuses, to_status, **fields):
        job = self.jobs.get(job_id)
        if job is None or job.status not in from_statuses:
            return False
        job.status = to_status
        for k, v in fields.items():
            setattr(job, k, v)
        return True

    def update_import_job(self, job_id, **fields):
        job = self.jobs[job_id]
        for k, v in fields.items():
            setattr(job, k, v)
        if "processed_rows" in fields and "status" not in fields:
            self.progress.append(dict(fields))

    def clear_import_row_errors(self, job_id):
        self.row_errors = [e for e in self.row_errors if e["job_id"] != job_id]

    def add_import_row_errors(self, job_id, errors):
        self.row_errors.extend({"job_id": job_id, **e} for e in errors)

    def add_audit_log(self, organization_id, actor_user_id, action, entity_id, diff=None):
        self.audit.append({"action": action, "entity_id": entity_id, "actor": actor_user_id, "diff": diff or {}})

    # --- lookups ---

    def _find(self, entity_type, **criteria):
        for obj in self.entities[entity_type].values():
            if all(match(getattr(obj, k, None)) for k, match in criteria.items()):
                return obj
        return None

    def find_property_by_name(self, organization_id, name):
        return self._find(
            "property",
            organization_id=lambda v: v == organization_id,
            name=lambda v: fold(v) == fold(name),
        )

    def find_unit(self, property_id, unit_number):
        return self._find(
            "unit",
            property_id=lambda v: v == property_id,
            unit_number=lambda v: fold(v) == fold(unit_number),
        )

    def find_user_by_email(self, email):
        return self._find("tenant", email=lambda v: (v or "").lower() == email.lower())

    def find_tenant_by_name(self, organization_id, first_name, last_name):
        return self._find(
            "tenant",
            organization_id=lambda v: v == organization_id,
            role=lambda v: v == "tenant",
            first_name=lambda v: fold(v) == fold(first_name),
            last_name=lambda v: fold(v) == fold(last_name),
        )

    def find_lease(self, unit_id, tenant_id, start_date):
        return self._find(
            "lease",
            unit_id=lambda v: v == unit_id,
            tenant_id=lambda v: v == tenant_id,
            start_date=lambda v: v == start_date,
        )

    def find_vendor_by_name(self, organization_id, company_name):
        return self._find(
            "vendor",
            organization_id=lambda v: v == organization_id,
            company_name=lambda v: fold(v) == fold(company_name),
        )

    def find_maintenance_request(self, unit_id, title, reported_at):
        return self._find(
            "maintenance_request",
            unit_id=lambda v: v == unit_id,
            title=lambda v: fold(v) == fold(title),
            reported_at=lambda v: v == reported_at,
        )

    def find_transaction_by_reference(self, property_id, reference_number):
        return self._find(
            "transaction",
            property_id=lambda v: v == property_id,
            reference_number=lambda v: v == reference_number,
        )

    # --- writes ---

    @contextmanager
    def row_scope(self):
        yield

    def create_entity(self, entity_type, values):
        obj = SimpleNamespace(id=uuid4(), **values)
        self.entities[entity_type][obj.id] = obj
        return obj.id

    def update_entity(self, entity_type, entity_id, values):
        obj = self.entities[entity_type][entity_id]
        previous = {k: getattr(obj, k, None) for k in values}
        for k, v in values.items():
            setattr(obj, k, v)
        return json_safe(previous)

    def record_import(self, job_id, row_number, entity_type, entity_id, action, previous_values=None):
        self.records.append(
            SimpleNamespace(
                import_job_id=job_id,
                row_number=row_number,
                entity_type=entity_type,
                entity_id=entity_id,
                action=action,
                previous_values=previous_values,
            )
        )

    def get_import_records(self, job_id):
        return [r for r in self.records if r.import_job_id == job_id]

    def delete_entity(self, entity_type, entity_id):
        self.entities[entity_type].pop(entity_id, None)

    def restore_entity(self, entity_type, entity_id, previous_values):
        obj = self.entities[entity_type].get(entity_id)
        if obj is not None:
            for k, v in previous_values.items():
                setattr(obj, k, v)

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    # --- delinquency ---

    def get_payments(self, status=None):
        return [p for p in self.payments if status is None or p.status == status]

    def get_lease(self, lease_id):
        return self.entities["lease"].get(lease_id)

    def get_unit(self, unit_id):
        return self.entities["unit"].get(unit_id)

    def get_property(self, property_id):
        return self.entities["property"].get(property_id)

    def get_user(self, user_id):
        return self.entities["tenant"].get(user_id)

    def get_delinquency_playbooks(self, property_id, is_active=True):
        return [p for p in self.playbooks if p.property_id == property_id and p.is_active == is_active]

    def get_delinquency_actions(self, payment_id, playbook_id):
        return [a for a in self.actions if a.payment_id == payment_id and a.playbook_id == playbook_id]

    def create_delinquency_action(self, **fields):
        action = SimpleNamespace(id=uuid4(), **fields)
        self.actions.append(action)
        return action

    def get_sms_preferences(self, user_id):
        return self.sms_preferences.get(user_id)

    # --- seeding helpers ---

    def add(self, entity_type, **values):
        obj = SimpleNamespace(id=uuid4(), **values)
        self.entities[entity_type][obj.id] = obj
        return obj


class RecordingSms:
    def __init__(self, result=True, error=None):
        self.result = result
        self.error = error
        self.sent = []

    def send_sms(self, to_number, body):
        if self.error is not None:
            raise self.error
        self.sent.append((to_number, body))
        return self.result


@pytest.fixture
def repo():
    return FakeRepository()


@pytest.fixture
def sms():
    return RecordingSms()


@pytest.fixture
def settings():
    return Settings(import_progress_interval=3, import_preview_rows=10, archive_import_files=False)


@pytest.fixture
def org_id():
    return uuid4()
