"""
Normalization of raw import cells into canonical values.
Every function is total: bad input yields a documented default or None, never an exception.
Data-quality problems are reported by row validation, not here.
"""
from __future__ import annotations

import enum
import math
import re
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any

import dateutil.parser
from pydantic import EmailStr, TypeAdapter, ValidationError

_email_adapter = TypeAdapter(EmailStr)


class UnitStatus(str, enum.Enum):
    VACANT = "vacant"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"


class LeaseStatus(str, enum.Enum):
    ACTIVE = "active"
    NOTICE = "notice"
    EXPIRED = "expired"


class MaintenanceStatus(str, enum.Enum):
    OPEN = "open"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Priority(str, enum.Enum):
    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class UnitType(str, enum.Enum):
    APARTMENT = "apartment"
    CONDO = "condo"
    HOUSE = "house"
    TOWNHOUSE = "townhouse"
    DUPLEX = "duplex"


class PropertyType(str, enum.Enum):
    RESIDENTIAL = "residential"
    COMMERCIAL = "commercial"
    MIXED_USE = "mixed_use"
    INDUSTRIAL = "industrial"


UNIT_STATUS_MAP = {
    "available": UnitStatus.VACANT,
    "vacant": UnitStatus.VACANT,
    "empty": UnitStatus.VACANT,
    "occupied": UnitStatus.OCCUPIED,
    "rented": UnitStatus.OCCUPIED,
    "leased": UnitStatus.OCCUPIED,
    "maintenance": UnitStatus.MAINTENANCE,
    "under repair": UnitStatus.MAINTENANCE,
    "repair": UnitStatus.MAINTENANCE,
}

LEASE_STATUS_MAP = {
    "active": LeaseStatus.ACTIVE,
    "current": LeaseStatus.ACTIVE,
    "notice": LeaseStatus.NOTICE,
    "notice given": LeaseStatus.NOTICE,
    "expired": LeaseStatus.EXPIRED,
    "past": LeaseStatus.EXPIRED,
    "terminated": LeaseStatus.EXPIRED,
}

MAINTENANCE_STATUS_MAP = {
    "open": MaintenanceStatus.OPEN,
    "new": MaintenanceStatus.OPEN,
    "assigned": MaintenanceStatus.ASSIGNED,
    "in progress": MaintenanceStatus.IN_PROGRESS,
    "in-progress": MaintenanceStatus.IN_PROGRESS,
    "working": MaintenanceStatus.IN_PROGRESS,
    "completed": MaintenanceStatus.COMPLETED,
    "resolved": MaintenanceStatus.COMPLETED,
    "closed": MaintenanceStatus.COMPLETED,
}

# (synonym table, default) per status kind
STATUS_TABLES: dict[str, tuple[dict[str, enum.Enum], enum.Enum]] = {
    "unit": (UNIT_STATUS_MAP, UnitStatus.VACANT),
    "lease": (LEASE_STATUS_MAP, LeaseStatus.ACTIVE),
    "maintenance": (MAINTENANCE_STATUS_MAP, MaintenanceStatus.OPEN),
}

PRIORITY_MAP = {
    "urgent": Priority.URGENT,
    "emergency": Priority.URGENT,
    "critical": Priority.URGENT,
    "high": Priority.HIGH,
    "medium": Priority.MEDIUM,
    "normal": Priority.MEDIUM,
    "low": Priority.LOW,
}

UNIT_TYPE_MAP = {
    "apartment": UnitType.APARTMENT,
    "apt": UnitType.APARTMENT,
    "condo": UnitType.CONDO,
    "condominium": UnitType.CONDO,
    "house": UnitType.HOUSE,
    "single family": UnitType.HOUSE,
    "townhouse": UnitType.TOWNHOUSE,
    "townhome": UnitType.TOWNHOUSE,
    "duplex": UnitType.DUPLEX,
}

PROPERTY_TYPE_MAP = {
    "residential": PropertyType.RESIDENTIAL,
    "commercial": PropertyType.COMMERCIAL,
    "mixed use": PropertyType.MIXED_USE,
    "mixed-use": PropertyType.MIXED_USE,
    "industrial": PropertyType.INDUSTRIAL,
}

ADDRESS_ABBREVIATIONS = {
    "street": "St",
    "st": "St",
    "st.": "St",
    "avenue": "Ave",
    "ave": "Ave",
    "ave.": "Ave",
    "road": "Rd",
    "rd": "Rd",
    "rd.": "Rd",
    "boulevard": "Blvd",
    "blvd": "Blvd",
    "blvd.": "Blvd",
    "drive": "Dr",
    "dr": "Dr",
    "dr.": "Dr",
    "lane": "Ln",
    "ln": "Ln",
    "ln.": "Ln",
    "court": "Ct",
    "ct": "Ct",
    "ct.": "Ct",
    "apartment": "Apt",
    "apt": "Apt",
    "apt.": "Apt",
    "suite": "Ste",
    "ste": "Ste",
    "ste.": "Ste",
    "unit": "Unit",
    "north": "N",
    "south": "S",
    "east": "E",
    "west": "W",
}

_ADDRESS_PATTERNS = [
    (re.compile(rf"(?<!\w){re.escape(word)}(?!\w)", re.IGNORECASE), abbrev)
    for word, abbrev in ADDRESS_ABBREVIATIONS.items()
]

STATE_CODES = {
    "alabama": "AL", "alaska": "AK", "arizona": "AZ", "arkansas": "AR",
    "california": "CA", "colorado": "CO", "connecticut": "CT", "delaware": "DE",
    "florida": "FL", "georgia": "GA", "hawaii": "HI", "idaho": "ID",
    "illinois": "IL", "indiana": "IN", "iowa": "IA", "kansas": "KS",
    "kentucky": "KY", "louisiana": "LA", "maine": "ME", "maryland": "MD",
    "massachusetts": "MA", "michigan": "MI", "minnesota": "MN", "mississippi": "MS",
    "missouri": "MO", "montana": "MT", "nebraska": "NE", "nevada": "NV",
    "new hampshire": "NH", "new jersey": "NJ", "new mexico": "NM", "new york": "NY",
    "north carolina": "NC", "north dakota": "ND", "ohio": "OH", "oklahoma": "OK",
    "oregon": "OR", "pennsylvania": "PA", "rhode island": "RI", "south carolina": "SC",
    "south dakota": "SD", "tennessee": "TN", "texas": "TX", "utah": "UT",
    "vermont": "VT", "virginia": "VA", "washington": "WA", "west virginia": "WV",
    "wisconsin": "WI", "wyoming": "WY",
}
_STATE_CODE_SET = frozenset(STATE_CODES.values())

TRUTHY = frozenset({"true", "yes", "y", "1", "active", "enabled"})


def _as_text(value: Any) -> str | None:
    """Cell value as text; spreadsheet floats like 5551234567.0 lose the '.0'."""
    if value is None:
        return None
    if isinstance(value, float):
        if math.isnan(value):
            return None
        if value.is_integer():
            return str(int(value))
    return str(value)


def _lookup(value: Any, table: dict[str, enum.Enum], default: enum.Enum) -> enum.Enum:
    text = _as_text(value)
    if not text:
        return default
    return table.get(text.strip().lower(), default)


def normalize_phone(phone: Any) -> str | None:
    text = _as_text(phone)
    if not text:
        return None
    digits = re.sub(r"\D", "", text)
    if len(digits) == 10:
        return f"+1{digits}"
    if len(digits) == 11 and digits.startswith("1"):
        return f"+{digits}"
    if digits:
        return f"+{digits}"
    return None


def normalize_email(email: Any) -> str | None:
    text = _as_text(email)
    if not text:
        return None
    candidate = text.strip().lower()
    try:
        _email_adapter.validate_python(candidate)
    except ValidationError:
        return None
    return candidate


def normalize_name(name: Any) -> str | None:
    text = _as_text(name)
    if not text:
        return None
    words = text.strip().split()
    if not words:
        return None
    return " ".join(w[:1].upper() + w[1:].lower() for w in words)


def normalize_address(address: Any) -> str | None:
    text = _as_text(address)
    if not text:
        return None
    normalized = text.strip()
    for pattern, abbrev in _ADDRESS_PATTERNS:
        normalized = pattern.sub(abbrev, normalized)
    return normalized or None


def normalize_state(state: Any) -> str | None:
    text = _as_text(state)
    if not text:
        return None
    trimmed = text.strip()
    code = STATE_CODES.get(trimmed.lower())
    if code:
        return code
    upper = trimmed.upper()
    if len(upper) == 2 and upper in _STATE_CODE_SET:
        return upper
    return trimmed


def normalize_zip_code(zip_code: Any) -> str | None:
    text = _as_text(zip_code)
    if not text:
        return None
    digits = re.sub(r"\D", "", text)
    if len(digits) == 5:
        return digits
    if len(digits) == 9:
        return f"{digits[:5]}-{digits[5:]}"
    return text.strip()


def normalize_currency(amount: Any) -> float | int | Decimal | None:
    if amount is None or isinstance(amount, bool):
        return None
    if isinstance(amount, int):
        return amount
    if isinstance(amount, Decimal):
        return amount if amount.is_finite() else None
    if isinstance(amount, float):
        return amount if math.isfinite(amount) else None
    cleaned = re.sub(r"[$,\s]", "", str(amount))
    if not cleaned:
        return None
    try:
        parsed = float(cleaned)
    except ValueError:
        return None
    if math.isnan(parsed) or math.isinf(parsed):
        return None
    return parsed


def normalize_date(value: Any) -> str | None:
    """ISO-8601 timestamp in UTC; naive inputs are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time())
    else:
        text = _as_text(value)
        if not text or not text.strip():
            return None
        try:
            parsed = dateutil.parser.parse(text.strip())
        except (ValueError, OverflowError, TypeError):
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc).isoformat()
    except (OverflowError, ValueError):
        # offset pushes the instant past datetime.min/max
        return None


def normalize_boolean(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    text = _as_text(value)
    return bool(text) and text.strip().lower() in TRUTHY


def normalize_status(status: Any, kind: str) -> enum.Enum | None:
    """kind is 'unit', 'lease' or 'maintenance'; unknown values fall back to the kind's baseline."""
    table = STATUS_TABLES.get(kind)
    if table is None:
        return None
    return _lookup(status, *table)


def normalize_priority(priority: Any) -> Priority:
    return _lookup(priority, PRIORITY_MAP, Priority.MEDIUM)


def normalize_unit_type(unit_type: Any) -> UnitType:
    return _lookup(unit_type, UNIT_TYPE_MAP, UnitType.APARTMENT)


def normalize_property_type(property_type: Any) -> PropertyType:
    return _lookup(property_type, PROPERTY_TYPE_MAP, PropertyType.RESIDENTIAL)
