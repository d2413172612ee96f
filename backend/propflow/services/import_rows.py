"""
Row builders: turn one raw import row into normalized entity values plus the identity
of any existing record it should update. Reference and required-field failures raise
RowValidationError; normalization itself never fails a row.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable
from uuid import UUID

from propflow.core.exceptions import ImportFatalError, RowValidationError
from propflow.services.normalization import (
    normalize_address,
    normalize_currency,
    normalize_date,
    normalize_email,
    normalize_name,
    normalize_phone,
    normalize_priority,
    normalize_property_type,
    normalize_state,
    normalize_status,
    normalize_unit_type,
    normalize_zip_code,
)

# data_type -> entity type stored in ImportRecord
ENTITY_TYPES = {
    "properties": "property",
    "units": "unit",
    "tenants": "tenant",
    "leases": "lease",
    "vendors": "vendor",
    "maintenance_requests": "maintenance_request",
    "transactions": "transaction",
}

INCOME_TYPES = {"income", "credit", "receipt", "payment", "deposit", "revenue", "charge"}
EXPENSE_TYPES = {"expense", "debit", "bill", "cost", "withdrawal"}


@dataclass
class RowContext:
    repository: Any
    organization_id: UUID
    user_id: UUID | None = None


@dataclass
class PreparedRow:
    entity_type: str
    values: dict[str, Any]
    existing_id: UUID | None = None
    normalized: dict[str, Any] = field(default_factory=dict)


def extract_raw(row: dict[str, Any], mapping: dict[str, str]) -> dict[str, Any]:
    """Canonical field -> raw cell, via the confirmed mapping. Unmapped fields are absent."""
    return {f: row.get(header) for f, header in mapping.items() if header}


def _text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    s = str(value).strip()
    return s or None


def _require(value: Any, field_name: str) -> Any:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise RowValidationError(field_name, f"{field_name} is required")
    return value


def _to_int(value: Any, default: int | None = 0) -> int | None:
    s = _text(value)
    if s is None:
        return default
    try:
        return int(float(s.replace(",", "")))
    except (ValueError, OverflowError):
        return default


def _to_decimal(value: Any) -> Decimal | None:
    if value is None:
        return None
    try:
        parsed = Decimal(str(value))
    except InvalidOperation:
        return None
    return parsed if parsed.is_finite() else None


def _bd_ba_part(value: Any, index: int) -> Any:
    """AppFolio/Yardi 'Bd/Ba' columns hold '2/1'; pick the bedroom or bathroom half."""
    s = _text(value)
    if s and "/" in s:
        parts = s.split("/")
        return parts[index].strip() if index < len(parts) else None
    return value


def _to_date(iso_value: str | None) -> date | None:
    if not iso_value:
        return None
    return datetime.fromisoformat(iso_value).date()


def _to_datetime(iso_value: str | None) -> datetime | None:
    return datetime.fromisoformat(iso_value) if iso_value else None


def _required_date(raw: dict[str, Any], name: str) -> date:
    value = _require(raw.get(name), name)
    iso = normalize_date(value)
    if iso is None:
        raise RowValidationError(name, f"Invalid date: {value}")
    return _to_date(iso)


def _required_amount(raw: dict[str, Any], name: str) -> Any:
    value = _require(raw.get(name), name)
    amount = normalize_currency(value)
    if amount is None:
        raise RowValidationError(name, f"Invalid amount: {value}")
    return amount


def _resolve_property(ctx: RowContext, raw: dict[str, Any]):
    name = _require(_text(raw.get("propertyName")), "propertyName")
    prop = ctx.repository.find_property_by_name(ctx.organization_id, name)
    if prop is None:
        raise RowValidationError("propertyName", f"Property not found: {name}")
    return prop


def _resolve_unit(ctx: RowContext, raw: dict[str, Any], prop) -> Any:
    number = _require(_text(raw.get("unitNumber")), "unitNumber")
    unit = ctx.repository.find_unit(prop.id, number)
    if unit is None:
        raise RowValidationError("unitNumber", f"Unit not found: {number}")
    return unit


def build_property(raw: dict[str, Any], ctx: RowContext) -> PreparedRow:
    name = _require(normalize_name(raw.get("name")), "name")
    address = _require(normalize_address(raw.get("address")), "address")
    values = {
        "organization_id": ctx.organization_id,
        "name": name,
        "address": address,
        "city": normalize_name(raw.get("city")),
        "state": normalize_state(raw.get("state")),
        "zip_code": normalize_zip_code(raw.get("zipCode")),
        "property_type": normalize_property_type(raw.get("type") or raw.get("propertyType")).value,
        "total_units": _to_int(raw.get("numberOfUnits") or raw.get("totalUnits")),
        "manager_id": ctx.user_id,
    }
    existing = ctx.repository.find_property_by_name(ctx.organization_id, name)
    return PreparedRow("property", values, existing.id if existing else None)


def build_unit(raw: dict[str, Any], ctx: RowContext) -> PreparedRow:
    prop = _resolve_property(ctx, raw)
    number = _require(_text(raw.get("unitNumber")), "unitNumber")
    rent = normalize_currency(raw.get("monthlyRent"))
    values = {
        "property_id": prop.id,
        "unit_number": number,
        "unit_type": normalize_unit_type(raw.get("type") or raw.get("unitType")).value,
        "bedrooms": _to_int(_bd_ba_part(raw.get("bedrooms"), 0)),
        "bathrooms": _to_decimal(normalize_currency(_bd_ba_part(raw.get("bathrooms"), 1))) or Decimal("0"),
        "square_feet": _to_int(raw.get("squareFeet"), default=None),
        "monthly_rent": _to_decimal(rent) or Decimal("0"),
        "status": normalize_status(raw.get("status"), "unit").value,
    }
    existing = ctx.repository.find_unit(prop.id, number)
    return PreparedRow("unit", values, existing.id if existing else None)


def build_tenant(raw: dict[str, Any], ctx: RowContext) -> PreparedRow:
    first = _require(normalize_name(raw.get("firstName")), "firstName")
    last = _require(normalize_name(raw.get("lastName")), "lastName")
    raw_email = _require(_text(raw.get("email")), "email")
    email = normalize_email(raw_email)
    if email is None:
        raise RowValidationError("email", f"Invalid email: {raw_email}")
    prop = _resolve_property(ctx, raw)
    _resolve_unit(ctx, raw, prop)
    existing = ctx.repository.find_user_by_email(email)
    if existing is not None and existing.organization_id != ctx.organization_id:
        raise RowValidationError("email", f"Email already belongs to another organization: {email}")
    values = {
        "first_name": first,
        "last_name": last,
        "phone": normalize_phone(raw.get("phone")),
    }
    if existing is None:
        values.update({"organization_id": ctx.organization_id, "email": email, "role": "tenant"})
    return PreparedRow("tenant", values, existing.id if existing else None)


def build_lease(raw: dict[str, Any], ctx: RowContext) -> PreparedRow:
    prop = _resolve_property(ctx, raw)
    unit = _resolve_unit(ctx, raw, prop)
    tenant_email = normalize_email(raw.get("tenantEmail"))
    if tenant_email:
        tenant = ctx.repository.find_user_by_email(tenant_email)
        if tenant is None or tenant.organization_id != ctx.organization_id:
            raise RowValidationError("tenantEmail", f"Tenant not found: {tenant_email}")
    else:
        first = _require(normalize_name(raw.get("tenantFirstName")), "tenantFirstName")
        last = _require(normalize_name(raw.get("tenantLastName")), "tenantLastName")
        tenant = ctx.repository.find_tenant_by_name(ctx.organization_id, first, last)
        if tenant is None:
            raise RowValidationError("tenantFirstName", f"Tenant not found: {first} {last}")
    start = _required_date(raw, "startDate")
    rent = _required_amount(raw, "rentAmount")
    values = {
        "unit_id": unit.id,
        "tenant_id": tenant.id,
        "start_date": start,
        "end_date": _to_date(normalize_date(raw.get("endDate"))),
        "rent_amount": _to_decimal(rent),
        "security_deposit": _to_decimal(normalize_currency(raw.get("securityDeposit"))),
        "status": normalize_status(raw.get("status"), "lease").value,
    }
    existing = ctx.repository.find_lease(unit.id, tenant.id, start)
    return PreparedRow("lease", values, existing.id if existing else None)


def build_vendor(raw: dict[str, Any], ctx: RowContext) -> PreparedRow:
    company = _require(_text(raw.get("companyName")), "companyName")
    raw_email = _require(_text(raw.get("email")), "email")
    email = normalize_email(raw_email)
    if email is None:
        raise RowValidationError("email", f"Invalid email: {raw_email}")
    phone = _require(normalize_phone(raw.get("phone")), "phone")
    values = {
        "organization_id": ctx.organization_id,
        "company_name": company,
        "contact_name": normalize_name(raw.get("contactName")),
        "email": email,
        "phone": phone,
        "address": normalize_address(raw.get("address")),
        "city": normalize_name(raw.get("city")),
        "state": normalize_state(raw.get("state")),
        "zip_code": normalize_zip_code(raw.get("zipCode")),
        "specialty": _text(raw.get("specialty")),
    }
    existing = ctx.repository.find_vendor_by_name(ctx.organization_id, company)
    return PreparedRow("vendor", values, existing.id if existing else None)


def build_maintenance_request(raw: dict[str, Any], ctx: RowContext) -> PreparedRow:
    prop = _resolve_property(ctx, raw)
    unit = _resolve_unit(ctx, raw, prop)
    title = _require(_text(raw.get("title")), "title")
    reported_at = _to_datetime(normalize_date(raw.get("reportedDate")))
    values = {
        "unit_id": unit.id,
        "title": title,
        "description": _text(raw.get("description")),
        "category": _text(raw.get("category")),
        "priority": normalize_priority(raw.get("priority")).value,
        "status": normalize_status(raw.get("status"), "maintenance").value,
        "reported_at": reported_at,
    }
    existing = ctx.repository.find_maintenance_request(unit.id, title, reported_at)
    return PreparedRow("maintenance_request", values, existing.id if existing else None)


def _transaction_type(raw_type: Any, amount: Any) -> str:
    s = (_text(raw_type) or "").lower()
    if s in INCOME_TYPES:
        return "income"
    if s in EXPENSE_TYPES:
        return "expense"
    return "expense" if amount < 0 else "income"


def build_transaction(raw: dict[str, Any], ctx: RowContext) -> PreparedRow:
    prop = _resolve_property(ctx, raw)
    unit_id = None
    if _text(raw.get("unitNumber")):
        unit_id = _resolve_unit(ctx, raw, prop).id
    tx_date = _required_date(raw, "date")
    amount = _required_amount(raw, "amount")
    reference = _text(raw.get("referenceNumber"))
    tx_type = _transaction_type(raw.get("type"), amount)
    values = {
        "property_id": prop.id,
        "unit_id": unit_id,
        "transaction_date": tx_date,
        "amount": abs(_to_decimal(amount)),
        "transaction_type": tx_type,
        "category": _text(raw.get("category")),
        "description": _text(raw.get("description")),
        "reference_number": reference,
    }
    existing = ctx.repository.find_transaction_by_reference(prop.id, reference) if reference else None
    return PreparedRow("transaction", values, existing.id if existing else None)


ROW_BUILDERS: dict[str, Callable[[dict[str, Any], RowContext], PreparedRow]] = {
    "properties": build_property,
    "units": build_unit,
    "tenants": build_tenant,
    "leases": build_lease,
    "vendors": build_vendor,
    "maintenance_requests": build_maintenance_request,
    "transactions": build_transaction,
}


def builder_for(data_type: str) -> Callable[[dict[str, Any], RowContext], PreparedRow]:
    try:
        return ROW_BUILDERS[data_type]
    except KeyError:
        raise ImportFatalError(f"Unsupported data type: {data_type}") from None


def json_safe(values: dict[str, Any]) -> dict[str, Any]:
    """Values as JSON-serializable primitives (for previous_values / error raw data)."""
    out: dict[str, Any] = {}
    for k, v in values.items():
        if isinstance(v, (date, datetime)):
            out[k] = v.isoformat()
        elif isinstance(v, (Decimal, UUID)):
            out[k] = str(v)
        else:
            out[k] = v
    return out


_WS = re.compile(r"\s+")


def fold(value: str | None) -> str:
    """Case/whitespace-insensitive key used for name lookups."""
    return _WS.sub(" ", (value or "").strip()).lower()
