"""Exception hierarchy for import jobs and the delinquency sweep."""


class PropflowError(Exception):
    """Base exception for all propflow errors."""


class ImportJobNotFoundError(PropflowError):
    """Raised when an import job id does not resolve."""


class InvalidTransitionError(PropflowError):
    """Raised when an import job cannot move from its current status."""

    def __init__(self, job_id, current: str, target: str):
        self.job_id = job_id
        self.current = current
        self.target = target
        super().__init__(f"Import job {job_id} cannot move from '{current}' to '{target}'")


class ImportFileError(PropflowError):
    """Raised when an uploaded file cannot be read as tabular data."""


class FieldMappingError(PropflowError):
    """Raised when a confirmed field mapping is not usable for the job."""

    def __init__(self, message: str, missing_fields: list[str] | None = None, invalid_fields: list[str] | None = None):
        self.missing_fields = missing_fields or []
        self.invalid_fields = invalid_fields or []
        super().__init__(message)


class ImportFatalError(PropflowError):
    """Raised when an import cannot continue (storage unreachable, unsupported data type)."""


class RowValidationError(PropflowError):
    """A single row failed a required-field or reference check."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)


class PlaybookConfigError(PropflowError):
    """Raised when a delinquency playbook's reminder intervals are malformed."""


class RollbackConflictError(PropflowError):
    """Raised when imported records cannot be reverted (e.g. referenced by newer data)."""
