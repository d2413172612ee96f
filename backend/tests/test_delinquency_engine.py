"""Delinquency sweep: overdue detection, playbook intervals, idempotence, SMS outcomes."""
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest

from propflow.services.delinquency_engine import (
    DelinquencyEngine,
    days_overdue,
    interpolate_message,
    run_delinquency_check,
)

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
TEMPLATE = "Hi {tenantName}, your rent of ${amount} due {dueDate} is {daysOverdue} days late at {propertyName}."


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def _world(repo, org_id, opted_in=True):
    prop = repo.add("property", organization_id=org_id, name="Sunset Apartments")
    unit = repo.add("unit", property_id=prop.id, unit_number="101")
    tenant = repo.add("tenant", organization_id=org_id, first_name="Jane", last_name="Doe",
                      email="jane@gmail.com", role="tenant")
    lease = repo.add("lease", unit_id=unit.id, tenant_id=tenant.id)
    repo.sms_preferences[tenant.id] = SimpleNamespace(
        phone_number="+15551234567", opted_in=opted_in, rent_reminders=True
    )
    return SimpleNamespace(property=prop, unit=unit, tenant=tenant, lease=lease)


def _payment(repo, world, due_date, status="pending", amount=Decimal("1450")):
    payment = SimpleNamespace(
        id=uuid4(),
        lease_id=world.lease.id,
        tenant_id=world.tenant.id,
        amount=amount,
        due_date=due_date,
        status=status,
    )
    repo.payments.append(payment)
    return payment


def _playbook(repo, property_id, intervals, grace=0, is_active=True, name="Standard"):
    playbook = SimpleNamespace(
        id=uuid4(),
        name=name,
        property_id=property_id,
        is_active=is_active,
        grace_period_days=grace,
        reminder_intervals=intervals,
    )
    repo.playbooks.append(playbook)
    return playbook


def _interval(days, action_type="sms", template=TEMPLATE):
    return {"days": days, "actionType": action_type, "messageTemplate": template}


def _engine(repo, sms, clock=None):
    return DelinquencyEngine(repo, sms, idempotence_window=timedelta(hours=24), now=clock or Clock(NOW))


def test_days_overdue_rounds_partial_days_up():
    assert days_overdue(date(2026, 3, 3), NOW) == 7
    assert days_overdue(date(2026, 3, 2), datetime(2026, 3, 10, tzinfo=timezone.utc)) == 8
    assert days_overdue("2026-03-09", NOW) == 1


def test_every_qualifying_interval_fires(repo, sms, org_id):
    world = _world(repo, org_id)
    payment = _payment(repo, world, date(2026, 3, 3))  # 7.5 days -> 8
    _playbook(repo, world.property.id, [_interval(3), _interval(7), _interval(14)], grace=3)

    result = _engine(repo, sms).process_delinquent_payments()

    assert result == {"processed": 1, "actionsSent": 2, "errors": [], "skipped": 0}
    assert [a.days_overdue for a in repo.actions] == [3, 7]
    assert all(a.status == "sent" and a.sent_at == NOW for a in repo.actions)
    assert repo.actions[0].payment_id == payment.id
    assert sms.sent[0] == (
        "+15551234567",
        "Hi Jane Doe, your rent of $1450.00 due 2026-03-03 is 3 days late at Sunset Apartments.",
    )
    assert "is 7 days late" in sms.sent[1][1]


def test_second_sweep_inside_window_sends_nothing(repo, sms, org_id):
    world = _world(repo, org_id)
    _payment(repo, world, date(2026, 3, 3))
    _playbook(repo, world.property.id, [_interval(3), _interval(7)])
    clock = Clock(NOW)
    engine = _engine(repo, sms, clock)

    engine.process_delinquent_payments()
    again = engine.process_delinquent_payments()
    assert again["actionsSent"] == 0
    assert again["errors"] == []
    assert len(repo.actions) == 2

    clock.now = NOW + timedelta(hours=25)
    later = engine.process_delinquent_payments()
    assert later["actionsSent"] == 2
    assert len(repo.actions) == 4


def test_grace_period(repo, sms, org_id):
    world = _world(repo, org_id)
    _payment(repo, world, date(2026, 3, 7))  # 3.5 days -> 4
    _playbook(repo, world.property.id, [_interval(3), _interval(5)], grace=5)
    clock = Clock(NOW)
    engine = _engine(repo, sms, clock)

    inside_grace = engine.process_delinquent_payments()
    assert inside_grace == {"processed": 1, "actionsSent": 0, "errors": [], "skipped": 0}

    clock.now = NOW + timedelta(days=1)  # 5 days overdue
    at_grace = engine.process_delinquent_payments()
    assert at_grace["actionsSent"] == 2
    assert sorted(a.days_overdue for a in repo.actions) == [3, 5]


def test_property_and_global_playbooks_both_apply(repo, sms, org_id):
    world = _world(repo, org_id)
    _payment(repo, world, date(2026, 3, 3))
    local = _playbook(repo, world.property.id, [_interval(1)], name="Local")
    shared = _playbook(repo, None, [_interval(5, action_type="sms_final")], name="Global")
    _playbook(repo, world.property.id, [_interval(1, action_type="sms_old")], is_active=False, name="Retired")
    _playbook(repo, uuid4(), [_interval(1, action_type="sms_other")], name="Other property")

    result = _engine(repo, sms).process_delinquent_payments()

    assert result["actionsSent"] == 2
    assert {(a.playbook_id, a.action_type) for a in repo.actions} == {(local.id, "sms"), (shared.id, "sms_final")}


def test_payments_without_links_or_playbooks_are_skipped(repo, sms, org_id):
    world = _world(repo, org_id)
    orphan = _payment(repo, world, date(2026, 3, 1))
    orphan.lease_id = uuid4()

    result = _engine(repo, sms).process_delinquent_payments()
    assert result == {"processed": 1, "actionsSent": 0, "errors": [], "skipped": 1}

    orphan.lease_id = world.lease.id
    no_playbooks = _engine(repo, sms).process_delinquent_payments()
    assert no_playbooks["skipped"] == 1
    assert repo.actions == []


def test_missing_tenant_is_skipped(repo, sms, org_id):
    world = _world(repo, org_id)
    _payment(repo, world, date(2026, 3, 1))
    _playbook(repo, world.property.id, [_interval(1)])
    del repo.entities["tenant"][world.tenant.id]

    result = _engine(repo, sms).process_delinquent_payments()
    assert result["skipped"] == 1
    assert result["actionsSent"] == 0


def test_malformed_playbook_does_not_block_others(repo, sms, org_id):
    world = _world(repo, org_id)
    _payment(repo, world, date(2026, 3, 1))
    _playbook(repo, world.property.id, [{"days": -2, "actionType": "sms"}], name="Broken")
    _playbook(repo, world.property.id, "not a list", name="Also broken")
    good = _playbook(repo, None, [_interval(1)], name="Good")

    result = _engine(repo, sms).process_delinquent_payments()

    assert result["actionsSent"] == 1
    assert result["processed"] == 1
    assert len(result["errors"]) == 2
    assert all("reminder intervals" in e for e in result["errors"])
    assert [a.playbook_id for a in repo.actions] == [good.id]


def test_opted_out_tenant_gets_failed_action(repo, sms, org_id):
    world = _world(repo, org_id, opted_in=False)
    _payment(repo, world, date(2026, 3, 1))
    _playbook(repo, world.property.id, [_interval(1)])

    result = _engine(repo, sms).process_delinquent_payments()

    assert result["actionsSent"] == 0
    assert sms.sent == []
    (action,) = repo.actions
    assert action.status == "failed"
    assert action.sent_at is None
    assert action.message_sent.startswith("Hi Jane Doe")


def test_tenant_without_preferences_gets_failed_action(repo, sms, org_id):
    world = _world(repo, org_id)
    repo.sms_preferences.clear()
    _payment(repo, world, date(2026, 3, 1))
    _playbook(repo, world.property.id, [_interval(1)])

    _engine(repo, sms).process_delinquent_payments()
    assert [a.status for a in repo.actions] == ["failed"]


@pytest.mark.parametrize("outcome", [{"result": False}, {"error": RuntimeError("provider down")}])
def test_provider_failure_is_recorded(repo, sms, org_id, outcome):
    for name, value in outcome.items():
        setattr(sms, name, value)
    world = _world(repo, org_id)
    _payment(repo, world, date(2026, 3, 1))
    _playbook(repo, world.property.id, [_interval(1)])

    result = _engine(repo, sms).process_delinquent_payments()

    assert result["actionsSent"] == 0
    assert result["errors"] == []
    assert [a.status for a in repo.actions] == ["failed"]


def test_only_overdue_pending_payments_are_considered(repo, sms, org_id):
    world = _world(repo, org_id)
    _payment(repo, world, date(2026, 3, 1), status="paid")
    _payment(repo, world, date(2026, 3, 10))  # due today at midnight, 12h overdue
    _payment(repo, world, date(2026, 3, 11))
    _payment(repo, world, None)
    _playbook(repo, world.property.id, [_interval(1)])

    result = _engine(repo, sms).process_delinquent_payments()
    assert result["processed"] == 1
    assert result["actionsSent"] == 1


def test_failure_fetching_payments_propagates(repo, sms):
    def broken(status=None):
        raise ConnectionError("database unavailable")

    repo.get_payments = broken
    with pytest.raises(ConnectionError):
        _engine(repo, sms).process_delinquent_payments()


def test_per_payment_error_is_collected(repo, sms, org_id):
    world = _world(repo, org_id)
    bad = _payment(repo, world, date(2026, 3, 1))
    _payment(repo, world, date(2026, 3, 2))
    _playbook(repo, world.property.id, [_interval(1)])
    original = repo.get_lease

    def flaky_get_lease(lease_id):
        if flaky_get_lease.calls == 0:
            flaky_get_lease.calls += 1
            raise RuntimeError("lease lookup timed out")
        return original(lease_id)

    flaky_get_lease.calls = 0
    repo.get_lease = flaky_get_lease

    result = _engine(repo, sms).process_delinquent_payments()

    assert result["processed"] == 1
    assert result["actionsSent"] == 1
    assert len(result["errors"]) == 1
    assert str(bad.id) in result["errors"][0]


def test_interpolate_message():
    text = interpolate_message(
        TEMPLATE,
        tenant_name="Sam Lee",
        amount="900.00",
        days_overdue=5,
        due_date="2026-01-01",
        property_name="Harbor View",
    )
    assert text == "Hi Sam Lee, your rent of $900.00 due 2026-01-01 is 5 days late at Harbor View."
    assert interpolate_message("No placeholders", tenant_name="x", amount="1", days_overdue=1, due_date="d") == "No placeholders"


def test_run_delinquency_check(repo, sms, org_id):
    world = _world(repo, org_id)
    _payment(repo, world, date(2026, 3, 1))
    _playbook(repo, None, [_interval(1), _interval(3)])

    result = run_delinquency_check(_engine(repo, sms))
    assert result == {"processed": 1, "actionsSent": 2, "errors": [], "skipped": 0}
