"""
Delinquency escalation: a periodic sweep over overdue payments that fires playbook reminder
intervals, sends SMS through the notification collaborator, and appends an action log.

Every interval with days <= daysOverdue is eligible (not only the latest one); an interval
is sent at most once per (payment, playbook, days, actionType) inside the idempotence window.
"""
from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Protocol

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from propflow.core.exceptions import PlaybookConfigError
from propflow.db.base_class import utcnow
from propflow.services.pipeline_logging import log_sweep_complete, log_sweep_error, log_sweep_start

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


class SmsSender(Protocol):
    def send_sms(self, to_number: str, body: str) -> bool: ...


class ReminderInterval(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    days: int = Field(ge=0)
    action_type: str = Field(alias="actionType", min_length=1)
    message_template: str = Field(alias="messageTemplate")


_intervals_adapter = TypeAdapter(list[ReminderInterval])


def parse_reminder_intervals(playbook) -> list[ReminderInterval]:
    raw = playbook.reminder_intervals
    if not isinstance(raw, list):
        raise PlaybookConfigError(f"Playbook {playbook.id} reminder intervals must be a list, got {type(raw).__name__}")
    try:
        return _intervals_adapter.validate_python(raw)
    except ValidationError as e:
        raise PlaybookConfigError(f"Playbook {playbook.id} has invalid reminder intervals: {e.error_count()} error(s)") from e


def _due_datetime(due: date | datetime | str) -> datetime:
    """Due dates are taken as midnight UTC."""
    if isinstance(due, str):
        due = date.fromisoformat(due[:10])
    if isinstance(due, datetime):
        return due if due.tzinfo else due.replace(tzinfo=timezone.utc)
    return datetime(due.year, due.month, due.day, tzinfo=timezone.utc)


def days_overdue(due: date | datetime | str, now: datetime) -> int:
    elapsed = (now - _due_datetime(due)).total_seconds()
    return math.ceil(elapsed / SECONDS_PER_DAY)


def tenant_display_name(tenant) -> str:
    full = f"{tenant.first_name or ''} {tenant.last_name or ''}".strip()
    return full or tenant.email or "Tenant"


def format_amount(amount: Any) -> str:
    try:
        return f"{Decimal(str(amount)):.2f}"
    except (InvalidOperation, ValueError):
        return str(amount)


def interpolate_message(
    template: str,
    *,
    tenant_name: str,
    amount: str,
    days_overdue: int,
    due_date: str,
    property_name: str | None = None,
) -> str:
    return (
        template.replace("{tenantName}", tenant_name)
        .replace("{amount}", amount)
        .replace("{daysOverdue}", str(days_overdue))
        .replace("{dueDate}", due_date)
        .replace("{propertyName}", property_name or "")
    )


@dataclass
class SweepResult:
    processed: int = 0
    actions_sent: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "processed": self.processed,
            "actionsSent": self.actions_sent,
            "errors": list(self.errors),
            "skipped": self.skipped,
        }


class DelinquencyEngine:
    def __init__(
        self,
        repository,
        sms: SmsSender,
        idempotence_window: timedelta = timedelta(hours=24),
        now: Callable[[], datetime] = utcnow,
    ):
        self.repo = repository
        self.sms = sms
        self.idempotence_window = idempotence_window
        self.now = now

    def process_delinquent_payments(self) -> dict[str, Any]:
        """
        One sweep. Per-payment problems go to errors; a failure fetching payments propagates.
        processed counts payments handled without error (skipped ones included).
        """
        now = self.now()
        payments = self.repo.get_payments(status="pending")
        overdue = [p for p in payments if p.due_date is not None and _due_datetime(p.due_date) < now]
        logger.info("Found %d overdue payments", len(overdue))

        result = SweepResult()
        for payment in overdue:
            try:
                self._process_payment(payment, now, result)
                result.processed += 1
            except Exception as e:
                msg = f"Failed to process payment {payment.id}: {e}"
                logger.exception(msg)
                result.errors.append(msg)
        return result.as_dict()

    def _process_payment(self, payment, now: datetime, result: SweepResult) -> None:
        lease = self.repo.get_lease(payment.lease_id)
        if lease is None:
            logger.warning("Lease %s not found for payment %s", payment.lease_id, payment.id)
            result.skipped += 1
            return
        unit = self.repo.get_unit(lease.unit_id)
        if unit is None:
            logger.warning("Unit %s not found for lease %s", lease.unit_id, lease.id)
            result.skipped += 1
            return
        prop = self.repo.get_property(unit.property_id)
        if prop is None:
            logger.warning("Property %s not found for unit %s", unit.property_id, unit.id)
            result.skipped += 1
            return

        playbooks = list(self.repo.get_delinquency_playbooks(prop.id, is_active=True))
        playbooks += self.repo.get_delinquency_playbooks(None, is_active=True)
        if not playbooks:
            logger.info("No active playbooks for property %s", prop.id)
            result.skipped += 1
            return

        overdue_days = days_overdue(payment.due_date, now)
        if overdue_days < 1:
            result.skipped += 1
            return

        tenant = self.repo.get_user(lease.tenant_id or payment.tenant_id)
        if tenant is None:
            logger.warning("Tenant %s not found for payment %s", lease.tenant_id, payment.id)
            result.skipped += 1
            return

        for playbook in playbooks:
            if overdue_days < playbook.grace_period_days:
                continue
            try:
                intervals = parse_reminder_intervals(playbook)
            except PlaybookConfigError as e:
                logger.error("Skipping playbook %s: %s", playbook.name, e)
                result.errors.append(str(e))
                continue
            for interval in intervals:
                if overdue_days >= interval.days:
                    if self._fire_interval(payment, playbook, interval, tenant, prop, now):
                        result.actions_sent += 1

    def _recently_sent(self, payment, playbook, interval: ReminderInterval, now: datetime) -> bool:
        cutoff = now - self.idempotence_window
        return any(
            a.days_overdue == interval.days
            and a.action_type == interval.action_type
            and a.created_at is not None
            and a.created_at > cutoff
            for a in self.repo.get_delinquency_actions(payment.id, playbook.id)
        )

    def _fire_interval(self, payment, playbook, interval: ReminderInterval, tenant, prop, now: datetime) -> bool:
        """Record one action for the interval; True when the SMS went out."""
        if self._recently_sent(payment, playbook, interval, now):
            return False

        message = interpolate_message(
            interval.message_template,
            tenant_name=tenant_display_name(tenant),
            amount=format_amount(payment.amount),
            days_overdue=interval.days,
            due_date=_due_datetime(payment.due_date).date().isoformat(),
            property_name=prop.name,
        )

        status = "failed"
        sent_at = None
        prefs = self.repo.get_sms_preferences(tenant.id)
        if prefs is not None and prefs.phone_number and prefs.opted_in and prefs.rent_reminders:
            try:
                if self.sms.send_sms(prefs.phone_number, message):
                    status = "sent"
                    sent_at = now
            except Exception:
                logger.exception("SMS to %s failed for payment %s", prefs.phone_number, payment.id)
        else:
            logger.info("Tenant %s has no phone number or has not opted in to SMS rent reminders", tenant.id)

        self.repo.create_delinquency_action(
            payment_id=payment.id,
            playbook_id=playbook.id,
            tenant_id=tenant.id,
            days_overdue=interval.days,
            action_type=interval.action_type,
            message_template=interval.message_template,
            message_sent=message,
            status=status,
            sent_at=sent_at,
            delivered_at=sent_at,
            created_at=now,
        )
        logger.info("Created %s %s action for payment %s (%d-day interval)", status, interval.action_type, payment.id, interval.days)
        return status == "sent"


def run_delinquency_check(engine: DelinquencyEngine) -> dict[str, Any]:
    """Timed sweep with summary logging; used by the scheduled task."""
    log_sweep_start()
    t0 = time.perf_counter()
    try:
        results = engine.process_delinquent_payments()
    except Exception as e:
        log_sweep_error(str(e))
        raise
    duration_ms = int((time.perf_counter() - t0) * 1000)
    log_sweep_complete(
        duration_ms,
        counts={k: results[k] for k in ("processed", "actionsSent", "skipped")},
        errors=results["errors"],
    )
    if results["errors"]:
        logger.error("Delinquency sweep finished with %d error(s)", len(results["errors"]))
    return results
