"""
Field-mapping templates per source system and data type.
Each template lists canonical fields with the export header aliases seen in that system,
most specific alias first. Registry order is detection priority.
"""
from __future__ import annotations

from dataclasses import dataclass

DATA_TYPES = (
    "properties",
    "units",
    "tenants",
    "leases",
    "vendors",
    "maintenance_requests",
    "transactions",
)

SOURCES = ("appfolio", "buildium", "yardi", "rentmanager", "generic_csv")

# Detection order when the source is unknown; generic templates come last.
SOURCE_PRIORITY = ("appfolio", "buildium", "yardi", "generic_csv")

REQUIRED_FIELDS: dict[str, tuple[str, ...]] = {
    "properties": ("name", "address"),
    "units": ("propertyName", "unitNumber"),
    "tenants": ("firstName", "lastName", "email", "propertyName", "unitNumber"),
    "leases": ("propertyName", "unitNumber", "startDate", "rentAmount"),
    "vendors": ("companyName", "email", "phone"),
    "maintenance_requests": ("propertyName", "unitNumber", "title"),
    "transactions": ("propertyName", "date", "amount"),
}

# Canonical fields accepted in manual mappings that no template detects.
EXTRA_FIELDS: dict[str, tuple[str, ...]] = {
    "properties": ("propertyType", "totalUnits"),
    "units": ("unitType",),
    "tenants": (),
    "leases": ("tenantEmail", "status"),
    "vendors": (),
    "maintenance_requests": (),
    "transactions": (),
}


@dataclass(frozen=True)
class FieldAliases:
    field: str
    aliases: tuple[str, ...]


@dataclass(frozen=True)
class FieldMappingTemplate:
    name: str
    source: str
    data_type: str
    fields: tuple[FieldAliases, ...]

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(f.field for f in self.fields)


def _template(name: str, source: str, data_type: str, mapping: dict[str, list[str]]) -> FieldMappingTemplate:
    return FieldMappingTemplate(
        name=name,
        source=source,
        data_type=data_type,
        fields=tuple(FieldAliases(field=k, aliases=tuple(v)) for k, v in mapping.items()),
    )


# --- AppFolio ---

APPFOLIO_PROPERTIES = _template("appfolio-properties", "appfolio", "properties", {
    "name": ["Property Name", "PropertyName", "property_name"],
    "address": ["Property Address", "PropertyAddress", "property_address", "Address"],
    "city": ["City"],
    "state": ["State"],
    "zipCode": ["Zip", "ZipCode", "Zip Code", "zip_code"],
    "type": ["Property Type", "PropertyType", "property_type"],
    "numberOfUnits": ["Unit Count", "UnitCount", "unit_count", "Number of Units"],
})

APPFOLIO_UNITS = _template("appfolio-units", "appfolio", "units", {
    "propertyName": ["Property Name", "PropertyName", "property_name"],
    "unitNumber": ["Unit Name", "UnitName", "unit_name", "Unit", "Unit #"],
    "bedrooms": ["Bd/Ba", "Bedrooms", "bedrooms", "Bd"],
    "bathrooms": ["Bd/Ba", "Bathrooms", "bathrooms", "Ba"],
    "squareFeet": ["Sqft", "SquareFt", "Square Footage", "square_footage"],
    "monthlyRent": ["Market Rent", "MarketRent", "market_rent", "Rent", "Monthly Rent"],
    "status": ["Unit Status", "UnitStatus", "unit_status", "Status"],
})

APPFOLIO_TENANTS = _template("appfolio-tenants", "appfolio", "tenants", {
    "firstName": ["Tenant Name", "TenantName", "tenant_name", "First Name", "FirstName"],
    "lastName": ["Last Name", "LastName", "last_name"],
    "email": ["Email", "Email Address", "email_address"],
    "phone": ["Phone", "Phone Number", "phone_number"],
    "propertyName": ["Property/Unit", "Property", "PropertyName", "property_name"],
    "unitNumber": ["Property/Unit", "Unit", "UnitName", "unit_name"],
    "moveInDate": ["Move-In Date", "MoveIn", "move_in_date", "Move In"],
    "moveOutDate": ["Move-Out Date", "MoveOut", "move_out_date", "Move Out"],
    "leaseStatus": ["Lease Status", "LeaseStatus", "lease_status", "Status", "Tenant Type"],
})

# --- Buildium ---

BUILDIUM_PROPERTIES = _template("buildium-properties", "buildium", "properties", {
    "name": ["Property name", "PropertyName", "property_name", "Name"],
    "address": ["Address", "Street Address", "street_address"],
    "city": ["City"],
    "state": ["State"],
    "zipCode": ["Zip", "ZipCode", "Zip Code", "zip_code"],
    "type": ["Property Type", "PropertyType", "property_type", "Type"],
    "numberOfUnits": ["Unit Count", "Number of Units", "number_of_units"],
})

BUILDIUM_UNITS = _template("buildium-units", "buildium", "units", {
    "propertyName": ["Property name", "PropertyName", "property_name", "Property"],
    "unitNumber": ["Unit number", "UnitNumber", "unit_number", "Unit #", "Unit"],
    "type": ["Unit type", "UnitType", "unit_type", "Type"],
    "bedrooms": ["Bedrooms", "bedrooms", "Beds", "Bd"],
    "bathrooms": ["Bathrooms", "bathrooms", "Baths", "Ba"],
    "squareFeet": ["Square footage", "SquareFootage", "square_footage", "Sqft"],
    "monthlyRent": ["Market rent", "MarketRent", "market_rent", "Rent"],
})

BUILDIUM_TENANTS = _template("buildium-tenants", "buildium", "tenants", {
    "firstName": ["Tenant first name", "First name", "FirstName", "first_name"],
    "lastName": ["Tenant last name", "Last name", "LastName", "last_name"],
    "email": ["Email address", "Email", "email_address"],
    "phone": ["Phone", "Phone number", "phone_number"],
    "propertyName": ["Property name", "PropertyName", "property_name", "Property"],
    "unitNumber": ["Unit number", "UnitNumber", "unit_number", "Unit"],
    "moveInDate": ["Move-in date", "Move in date", "MoveInDate", "move_in_date"],
})

BUILDIUM_LEASES = _template("buildium-leases", "buildium", "leases", {
    "propertyName": ["Property name", "PropertyName", "property_name", "Property"],
    "unitNumber": ["Unit number", "UnitNumber", "unit_number", "Unit"],
    "tenantFirstName": ["Tenant first name", "First name", "FirstName"],
    "tenantLastName": ["Tenant last name", "Last name", "LastName"],
    "startDate": ["Lease start date", "Start date", "LeaseStartDate", "lease_start_date"],
    "endDate": ["Lease end date", "End date", "LeaseEndDate", "lease_end_date"],
    "rentAmount": ["Recurring charge amount", "Rent amount", "RentAmount", "rent_amount", "Monthly Rent"],
    "securityDeposit": ["Security deposit", "SecurityDeposit", "security_deposit"],
})

# --- Yardi (customizable exports, so alias lists are broader) ---

YARDI_PROPERTIES = _template("yardi-properties", "yardi", "properties", {
    "name": ["Property", "PropertyName", "property_name", "Property Name", "Building"],
    "address": ["Address", "PropertyAddress", "property_address", "Street Address"],
    "city": ["City"],
    "state": ["State"],
    "zipCode": ["Zip", "ZipCode", "PostalCode", "postal_code"],
    "type": ["PropertyType", "property_type", "Type"],
})

YARDI_UNITS = _template("yardi-units", "yardi", "units", {
    "propertyName": ["Property", "PropertyName", "property_name", "Building", "PropertyCode"],
    "unitNumber": ["Unit", "UnitCode", "unit_code", "Unit Number", "UnitNumber"],
    "bedrooms": ["Bedrooms", "Bd", "BdBa", "bedrooms"],
    "bathrooms": ["Bathrooms", "Ba", "BdBa", "bathrooms"],
    "squareFeet": ["SquareFt", "Sqft", "square_ft", "Area"],
    "monthlyRent": ["Rent", "MarketRent", "market_rent", "MonthlyRent", "Amount"],
})

YARDI_TENANTS = _template("yardi-tenants", "yardi", "tenants", {
    "firstName": ["Tenant", "FirstName", "first_name", "TenantFirstName"],
    "lastName": ["LastName", "last_name", "TenantLastName"],
    "email": ["Email", "EmailAddress", "email_address"],
    "phone": ["Phone", "PhoneNumber", "phone_number", "TenantPhone"],
    "propertyName": ["Property", "PropertyName", "property_name", "PropertyCode"],
    "unitNumber": ["Unit", "UnitCode", "unit_code", "UnitNumber"],
    "moveInDate": ["MoveIn", "MoveInDate", "move_in_date", "LeaseFrom"],
    "moveOutDate": ["MoveOut", "MoveOutDate", "move_out_date", "LeaseTo"],
})

# --- Generic (no system-specific export exists) ---

VENDOR_GENERIC = _template("vendor-generic", "generic_csv", "vendors", {
    "companyName": ["Company Name", "CompanyName", "company_name", "Vendor Name", "VendorName", "Name"],
    "contactName": ["Contact Name", "ContactName", "contact_name", "Contact"],
    "email": ["Email", "Email Address", "email_address"],
    "phone": ["Phone", "Phone Number", "phone_number"],
    "address": ["Address", "Street Address", "street_address"],
    "city": ["City"],
    "state": ["State"],
    "zipCode": ["Zip", "ZipCode", "Zip Code"],
    "specialty": ["Specialty", "Service Type", "service_type", "Type"],
})

MAINTENANCE_GENERIC = _template("maintenance-generic", "generic_csv", "maintenance_requests", {
    "propertyName": ["Property Name", "PropertyName", "property_name", "Property"],
    "unitNumber": ["Unit Number", "UnitNumber", "unit_number", "Unit", "Unit #"],
    "title": ["Title", "Summary", "Issue", "Subject", "Work Order"],
    "description": ["Description", "Details", "Notes", "Job Description"],
    "category": ["Category", "Type", "Trade"],
    "priority": ["Priority", "Urgency"],
    "status": ["Status", "Work Order Status", "State"],
    "reportedDate": ["Reported Date", "Created", "Created Date", "Date Reported", "Date"],
})

TRANSACTION_GENERIC = _template("transaction-generic", "generic_csv", "transactions", {
    "propertyName": ["Property Name", "PropertyName", "property_name", "Property"],
    "unitNumber": ["Unit Number", "UnitNumber", "unit_number", "Unit"],
    "date": ["Date", "Transaction Date", "Posted Date", "transaction_date"],
    "amount": ["Amount", "Total", "Transaction Amount"],
    "type": ["Type", "Transaction Type", "transaction_type"],
    "category": ["Category", "GL Account", "Account"],
    "description": ["Description", "Memo", "Notes"],
    "referenceNumber": ["Reference", "Reference Number", "Ref #", "Check Number", "Reference #"],
})

TEMPLATES: tuple[FieldMappingTemplate, ...] = (
    APPFOLIO_PROPERTIES,
    APPFOLIO_UNITS,
    APPFOLIO_TENANTS,
    BUILDIUM_PROPERTIES,
    BUILDIUM_UNITS,
    BUILDIUM_TENANTS,
    BUILDIUM_LEASES,
    YARDI_PROPERTIES,
    YARDI_UNITS,
    YARDI_TENANTS,
    VENDOR_GENERIC,
    MAINTENANCE_GENERIC,
    TRANSACTION_GENERIC,
)


def canonical_fields(data_type: str) -> tuple[str, ...]:
    """All canonical fields for data_type, in first-seen template order."""
    seen: dict[str, None] = {}
    for t in TEMPLATES:
        if t.data_type == data_type:
            for name in t.field_names:
                seen.setdefault(name, None)
    for name in REQUIRED_FIELDS.get(data_type, ()) + EXTRA_FIELDS.get(data_type, ()):
        seen.setdefault(name, None)
    return tuple(seen)
