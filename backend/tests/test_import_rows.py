"""Per-data-type row builders: references, identity keys, lenient numbers."""
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from propflow.core.exceptions import ImportFatalError, RowValidationError
from propflow.services.import_rows import RowContext, build_lease, build_tenant, build_transaction, builder_for
from propflow.services.import_runner import ImportRunner


def _seed_property(repo, org_id, name="Sunset Apartments", units=("101", "102")):
    prop = repo.add("property", organization_id=org_id, name=name, address="1 Main St")
    for number in units:
        repo.add("unit", property_id=prop.id, unit_number=number)
    return prop


def _run(repo, settings, org_id, data_type, source, csv_text):
    runner = ImportRunner(repo, settings=settings)
    job_id = runner.upload(
        organization_id=org_id,
        user_id=uuid4(),
        data_type=data_type,
        source=source,
        file_name="import.csv",
        content=csv_text.encode(),
    )["jobId"]
    return runner.execute(job_id, dry_run=False)


def test_units_split_bd_ba_and_resolve_property(repo, settings, org_id):
    prop = _seed_property(repo, org_id, units=())
    csv_text = (
        "Property Name,Unit Name,Bd/Ba,Market Rent,Unit Status,Sqft\n"
        "sunset apartments,201,2/1.5,\"$1,500.00\",Rented,850\n"
        "Sunset Apartments,202,studio,1200,,n/a\n"
        "Unknown Tower,1,1/1,900,,\n"
    )
    job = _run(repo, settings, org_id, "units", "appfolio", csv_text)
    assert (job.successful_rows, job.failed_rows) == (2, 1)
    assert job.validation_errors == [{"row": 3, "field": "propertyName", "error": "Property not found: Unknown Tower"}]
    units = {u.unit_number: u for u in repo.entities["unit"].values()}
    assert units["201"].property_id == prop.id
    assert units["201"].bedrooms == 2
    assert units["201"].bathrooms == Decimal("1.5")
    assert units["201"].monthly_rent == Decimal("1500")
    assert units["201"].status == "occupied"
    assert units["201"].square_feet == 850
    # invalid numbers fall back instead of failing the row
    assert units["202"].bedrooms == 0
    assert units["202"].square_feet is None
    assert units["202"].status == "vacant"


def test_units_upsert_by_property_and_number(repo, settings, org_id):
    _seed_property(repo, org_id, units=("101",))
    csv_text = "Property Name,Unit Name,Market Rent\nSunset Apartments,101,1750\n"
    _run(repo, settings, org_id, "units", "appfolio", csv_text)
    assert len(repo.entities["unit"]) == 1
    (unit,) = repo.entities["unit"].values()
    assert unit.monthly_rent == Decimal("1750")
    assert repo.records[0].action == "updated"


def test_overflowing_numbers_fall_back_without_failing_the_job(repo, settings, org_id):
    _seed_property(repo, org_id, units=())
    csv_text = (
        "Property Name,Unit Name,Bd/Ba,Sqft\n"
        "Sunset Apartments,1,1/1,800\n"
        "Sunset Apartments,2,1e400/inf,1e400\n"
        "Sunset Apartments,3,2/1,900\n"
    )
    job = _run(repo, settings, org_id, "units", "appfolio", csv_text)
    assert job.status == "completed"
    assert (job.successful_rows, job.failed_rows) == (3, 0)
    units = {u.unit_number: u for u in repo.entities["unit"].values()}
    assert units["2"].bedrooms == 0
    assert units["2"].bathrooms == Decimal("0")
    assert units["2"].square_feet is None
    assert units["3"].square_feet == 900


def test_tenants_create_users_and_validate(repo, settings, org_id):
    _seed_property(repo, org_id)
    csv_text = (
        "First name,Last name,Email,Phone,Property name,Unit number\n"
        "jane,doe,Jane.Doe@Gmail.com,(555) 123-4567,Sunset Apartments,101\n"
        "john,roe,not-an-email,,Sunset Apartments,102\n"
        "amy,poe,amy@outlook.com,,Sunset Apartments,999\n"
    )
    job = _run(repo, settings, org_id, "tenants", "buildium", csv_text)
    assert (job.successful_rows, job.failed_rows) == (1, 2)
    assert [(e["row"], e["field"]) for e in job.validation_errors] == [(2, "email"), (3, "unitNumber")]
    (tenant,) = repo.entities["tenant"].values()
    assert tenant.email == "jane.doe@gmail.com"
    assert tenant.first_name == "Jane"
    assert tenant.phone == "+15551234567"
    assert tenant.role == "tenant"
    assert tenant.organization_id == org_id


def test_tenant_email_owned_by_other_organization(repo, org_id):
    _seed_property(repo, org_id)
    repo.add("tenant", organization_id=uuid4(), email="shared@gmail.com", role="tenant")
    raw = {
        "firstName": "Sam",
        "lastName": "Lee",
        "email": "shared@gmail.com",
        "propertyName": "Sunset Apartments",
        "unitNumber": "101",
    }
    with pytest.raises(RowValidationError) as exc:
        build_tenant(raw, RowContext(repository=repo, organization_id=org_id))
    assert exc.value.field == "email"


def test_lease_resolves_tenant_by_email_or_name(repo, org_id):
    prop = _seed_property(repo, org_id)
    tenant = repo.add("tenant", organization_id=org_id, email="jane@gmail.com", role="tenant",
                      first_name="Jane", last_name="Doe")
    ctx = RowContext(repository=repo, organization_id=org_id)
    base = {"propertyName": "Sunset Apartments", "unitNumber": "101", "startDate": "01/01/2024", "rentAmount": "$1,450"}

    by_name = build_lease({**base, "tenantFirstName": "jane", "tenantLastName": "DOE"}, ctx)
    assert by_name.values["tenant_id"] == tenant.id
    assert by_name.values["start_date"] == date(2024, 1, 1)
    assert by_name.values["rent_amount"] == Decimal("1450.0")
    assert by_name.values["status"] == "active"
    assert by_name.existing_id is None

    by_email = build_lease({**base, "tenantEmail": "JANE@gmail.com"}, ctx)
    assert by_email.values["tenant_id"] == tenant.id
    assert by_email.values["unit_id"] in repo.entities["unit"]
    assert repo.entities["unit"][by_email.values["unit_id"]].property_id == prop.id

    out_of_range_end = build_lease({**base, "tenantEmail": "jane@gmail.com", "endDate": "9999-12-31T23:00:00-05:00"}, ctx)
    assert out_of_range_end.values["end_date"] is None

    with pytest.raises(RowValidationError) as exc:
        build_lease({**base, "tenantFirstName": "Nobody", "tenantLastName": "Here"}, ctx)
    assert exc.value.field == "tenantFirstName"
    with pytest.raises(RowValidationError) as exc:
        build_lease({**base, "tenantEmail": "jane@gmail.com", "startDate": "someday"}, ctx)
    assert exc.value.field == "startDate"
    with pytest.raises(RowValidationError) as exc:
        build_lease({**base, "tenantEmail": "jane@gmail.com", "rentAmount": "TBD"}, ctx)
    assert exc.value.field == "rentAmount"


def test_vendors_upsert_by_company_name(repo, settings, org_id):
    repo.add("vendor", organization_id=org_id, company_name="Acme Plumbing", email="old@acme.io", phone="+15550000000")
    csv_text = (
        "Company Name,Contact Name,Email,Phone,Specialty\n"
        "ACME PLUMBING,bob smith,office@acme.io,555-222-3333,Plumbing\n"
        "Bright Electric,,info@bright.io,,Electrical\n"
    )
    job = _run(repo, settings, org_id, "vendors", "generic_csv", csv_text)
    assert (job.successful_rows, job.failed_rows) == (1, 1)
    assert job.validation_errors[0] == {"row": 2, "field": "phone", "error": "phone is required"}
    (vendor,) = repo.entities["vendor"].values()
    assert vendor.email == "office@acme.io"
    assert vendor.contact_name == "Bob Smith"
    assert vendor.phone == "+15552223333"


def test_maintenance_requests(repo, settings, org_id):
    _seed_property(repo, org_id)
    csv_text = (
        "Property,Unit,Title,Priority,Status,Reported Date\n"
        "Sunset Apartments,101,Leaking faucet,Emergency,In Progress,2024-03-01\n"
        "Sunset Apartments,101,,low,,\n"
    )
    job = _run(repo, settings, org_id, "maintenance_requests", "generic_csv", csv_text)
    assert (job.successful_rows, job.failed_rows) == (1, 1)
    assert job.validation_errors[0]["field"] == "title"
    (request,) = repo.entities["maintenance_request"].values()
    assert request.priority == "urgent"
    assert request.status == "in_progress"
    assert request.reported_at.isoformat() == "2024-03-01T00:00:00+00:00"


def test_transaction_type_and_amount(repo, org_id):
    _seed_property(repo, org_id)
    ctx = RowContext(repository=repo, organization_id=org_id)
    expense = build_transaction({"propertyName": "Sunset Apartments", "date": "2024-02-01", "amount": "-$250.00"}, ctx)
    assert expense.values["transaction_type"] == "expense"
    assert expense.values["amount"] == Decimal("250.0")
    assert expense.values["unit_id"] is None

    income = build_transaction(
        {"propertyName": "Sunset Apartments", "unitNumber": "102", "date": "2024-02-01", "amount": "1200", "type": "Receipt"},
        ctx,
    )
    assert income.values["transaction_type"] == "income"
    assert income.values["unit_id"] is not None


def test_transactions_dedupe_on_reference_number(repo, settings, org_id):
    _seed_property(repo, org_id)
    csv_text = (
        "Property,Date,Amount,Reference\n"
        "Sunset Apartments,2024-02-01,1200,CHK-1\n"
        "Sunset Apartments,2024-02-01,1200,CHK-1\n"
        "Sunset Apartments,2024-02-02,80,\n"
        "Sunset Apartments,2024-02-02,80,\n"
    )
    job = _run(repo, settings, org_id, "transactions", "generic_csv", csv_text)
    assert job.successful_rows == 4
    # same reference updates; rows without a reference are always created
    assert len(repo.entities["transaction"]) == 3


def test_unsupported_data_type():
    with pytest.raises(ImportFatalError):
        builder_for("owners")
