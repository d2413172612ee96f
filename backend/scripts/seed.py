"""
Seed a default organization, an admin user, one property with a unit, and a global
delinquency playbook.
Run from backend: python -m scripts.seed
"""
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import select
from propflow.db.session import async_session_maker
from propflow.models.tenancy import Organization, User, RoleName
from propflow.models.property import Property, Unit
from propflow.models.delinquency import DelinquencyPlaybook

DEFAULT_REMINDERS = [
    {
        "days": 3,
        "actionType": "sms_reminder",
        "messageTemplate": "Hi {tenantName}, your rent of ${amount} for {propertyName} was due {dueDate}.",
    },
    {
        "days": 7,
        "actionType": "sms_reminder",
        "messageTemplate": "Hi {tenantName}, rent of ${amount} is now {daysOverdue} days late. Reply PLAN for a payment plan.",
    },
    {
        "days": 14,
        "actionType": "final_notice",
        "messageTemplate": "{tenantName}, rent of ${amount} due {dueDate} is {daysOverdue} days overdue. Please contact the office.",
    },
]


async def seed():
    async with async_session_maker() as db:
        result = await db.execute(select(Organization).limit(1))
        if result.scalar_one_or_none():
            print("Organization already exists. Skip seed.")
            return
        org = Organization(name="Default Property Management")
        db.add(org)
        await db.flush()
        admin = User(
            organization_id=org.id,
            email="admin@propflow.dev",
            first_name="Admin",
            last_name="User",
            role=RoleName.ADMIN.value,
        )
        db.add(admin)
        await db.flush()
        prop = Property(
            organization_id=org.id,
            name="Sunset Apartments",
            address="123 Main St",
            city="Austin",
            state="TX",
            zip_code="78701",
            total_units=1,
            manager_id=admin.id,
        )
        db.add(prop)
        await db.flush()
        db.add(Unit(property_id=prop.id, unit_number="101", bedrooms=2, bathrooms=1, monthly_rent=1500))
        db.add(
            DelinquencyPlaybook(
                name="Standard reminders",
                property_id=None,
                grace_period_days=3,
                reminder_intervals=DEFAULT_REMINDERS,
            )
        )
        await db.commit()
        print("Seed done.")
        print("  Organization:", org.name, str(org.id))
        print("  Admin user id (X-User-Id):", str(admin.id))
        print("  Property: Sunset Apartments / unit 101")


if __name__ == "__main__":
    asyncio.run(seed())
