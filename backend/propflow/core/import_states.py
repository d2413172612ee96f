"""
Import job lifecycle.

pending -> parsing -> pending (mapping confirmation) -> validating -> importing -> completed | failed
A dry run goes validating -> pending. Only a completed job can be rolled back.
"""
from __future__ import annotations

import enum


class ImportStatus(str, enum.Enum):
    PENDING = "pending"
    PARSING = "parsing"
    VALIDATING = "validating"
    IMPORTING = "importing"
    COMPLETED = "completed"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"


TRANSITIONS: dict[ImportStatus, frozenset[ImportStatus]] = {
    ImportStatus.PENDING: frozenset({ImportStatus.PARSING, ImportStatus.VALIDATING, ImportStatus.FAILED}),
    ImportStatus.PARSING: frozenset({ImportStatus.PENDING, ImportStatus.FAILED}),
    ImportStatus.VALIDATING: frozenset({ImportStatus.PENDING, ImportStatus.IMPORTING, ImportStatus.FAILED}),
    ImportStatus.IMPORTING: frozenset({ImportStatus.COMPLETED, ImportStatus.FAILED}),
    ImportStatus.COMPLETED: frozenset({ImportStatus.ROLLED_BACK}),
    ImportStatus.FAILED: frozenset(),
    ImportStatus.ROLLED_BACK: frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    try:
        return ImportStatus(target) in TRANSITIONS[ImportStatus(current)]
    except ValueError:
        return False


def sources_for(target: ImportStatus) -> tuple[str, ...]:
    """Statuses a job may be in to move to target (for conditional updates)."""
    return tuple(s.value for s, targets in TRANSITIONS.items() if target in targets)
