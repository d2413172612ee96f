"""
Field-mapping resolver: match uploaded column headers to canonical fields using
per-source-system templates, and check required-field coverage.
"""
from __future__ import annotations

from typing import Iterable, Sequence

from propflow.core.import_templates import (
    REQUIRED_FIELDS,
    SOURCE_PRIORITY,
    TEMPLATES,
    FieldMappingTemplate,
    canonical_fields,
)

TEMPLATE_SOURCES = frozenset(t.source for t in TEMPLATES)


def _header_key(header: str) -> str:
    return str(header).strip().lower()


def templates_for(data_type: str, source: str | None = None) -> list[FieldMappingTemplate]:
    """
    Templates applicable to (source, data_type), in detection order.
    A source system with registered templates uses only its own, which may leave none for
    data_type. Any other source tries every template for data_type by source priority.
    """
    candidates = [t for t in TEMPLATES if t.data_type == data_type]
    if source and source != "generic_csv" and source in TEMPLATE_SOURCES:
        return [t for t in candidates if t.source == source]
    return sorted(candidates, key=lambda t: SOURCE_PRIORITY.index(t.source))


def apply_template(
    template: FieldMappingTemplate,
    headers: Sequence[str],
    mapping: dict[str, str],
) -> dict[str, str]:
    """Return mapping extended with this template's matches; mapped fields are never overwritten."""
    out = dict(mapping)
    for entry in template.fields:
        if out.get(entry.field):
            continue
        for alias in entry.aliases:
            wanted = alias.lower()
            match = next((h for h in headers if _header_key(h) == wanted), None)
            if match is not None:
                out[entry.field] = match
                break
    return out


def auto_detect_field_mapping(
    headers: Sequence[str],
    data_type: str,
    source: str | None = None,
) -> dict[str, str]:
    """
    Map canonical field -> exact header string from the file.
    First match wins across templates and within each alias list; unmatched fields are absent.
    """
    result: dict[str, str] = {}
    for template in templates_for(data_type, source):
        result = apply_template(template, headers, result)
    return result


def get_unmapped_headers(headers: Iterable[str], mapping: dict[str, str]) -> list[str]:
    """Headers not used by any mapped field (for manual mapping in the UI)."""
    used = set(mapping.values())
    return [h for h in headers if h not in used]


def validate_field_mapping(mapping: dict[str, str], data_type: str) -> dict:
    """Returns {valid, missingFields} for the data type's required canonical fields."""
    required = REQUIRED_FIELDS.get(data_type, ())
    missing = [f for f in required if not mapping.get(f)]
    return {"valid": len(missing) == 0, "missingFields": missing}


def check_mapping_against_file(
    mapping: dict[str, str],
    data_type: str,
    headers: Sequence[str],
) -> list[str]:
    """
    Problems with a manually confirmed mapping: canonical names the data type does not
    have, and header values that are not present in the uploaded file.
    """
    problems: list[str] = []
    allowed = set(canonical_fields(data_type))
    header_set = set(headers)
    for field, header in mapping.items():
        if field not in allowed:
            problems.append(f"Unknown field '{field}' for {data_type}")
        elif header and header not in header_set:
            problems.append(f"Header '{header}' for field '{field}' is not in the uploaded file")
    return problems
