"""
Import job state machine: upload/parse, mapping confirmation, dry-run and real execution,
rollback. Works against a repository collaborator (SqlRepository in production, an in-memory
fake in tests).
"""
from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any, Callable
from uuid import UUID

from propflow.config import Settings, get_settings
from propflow.core.exceptions import (
    FieldMappingError,
    ImportFatalError,
    ImportFileError,
    ImportJobNotFoundError,
    InvalidTransitionError,
    RowValidationError,
)
from propflow.core.import_states import ImportStatus, sources_for
from propflow.core.import_templates import DATA_TYPES, SOURCES
from propflow.db.base_class import utcnow
from propflow.services.field_mapping import (
    auto_detect_field_mapping,
    check_mapping_against_file,
    get_unmapped_headers,
    validate_field_mapping,
)
from propflow.services.file_parser import parse_upload
from propflow.services.import_rows import RowContext, builder_for, extract_raw
from propflow.services.pipeline_logging import log_stage_complete, log_stage_error, log_stage_start

logger = logging.getLogger(__name__)

Archiver = Callable[[str, str, str, bytes, "str | None"], str]


class ImportRunner:
    def __init__(
        self,
        repository,
        settings: Settings | None = None,
        archiver: Archiver | None = None,
        now: Callable[[], datetime] = utcnow,
    ):
        self.repo = repository
        self.settings = settings or get_settings()
        self.archiver = archiver
        self.now = now

    def get_job(self, job_id: UUID):
        job = self.repo.get_import_job(job_id)
        if job is None:
            raise ImportJobNotFoundError(f"Import job {job_id} not found")
        return job

    def _transition(self, job, target: ImportStatus, **fields: Any) -> None:
        if not self.repo.transition_import_job(job.id, sources_for(target), target.value, **fields):
            current = self.repo.get_import_job(job.id)
            raise InvalidTransitionError(job.id, current.status if current else "unknown", target.value)

    # --- upload / parse ---

    def upload(
        self,
        *,
        organization_id: UUID,
        user_id: UUID,
        data_type: str,
        source: str,
        file_name: str,
        content: bytes,
        content_type: str | None = None,
    ) -> dict[str, Any]:
        """Create a job from an uploaded file; returns headers, preview and the detected mapping."""
        if data_type not in DATA_TYPES:
            raise ImportFileError(f"Unsupported data type: {data_type}")
        if source not in SOURCES:
            raise ImportFileError(f"Unsupported source: {source}")
        max_bytes = self.settings.import_max_file_mb * 1024 * 1024
        if len(content) > max_bytes:
            raise ImportFileError(f"File exceeds {self.settings.import_max_file_mb} MB limit")

        job = self.repo.create_import_job(
            organization_id=organization_id,
            user_id=user_id,
            data_type=data_type,
            source=source,
            file_name=file_name,
            status=ImportStatus.PENDING.value,
        )
        job_id = str(job.id)
        self._transition(job, ImportStatus.PARSING)
        log_stage_start(job_id, "parse", data_type=data_type, source=source, file_name=file_name)
        t0 = time.perf_counter()
        try:
            parsed = parse_upload(file_name, content, content_type)
        except ImportFileError as e:
            self._transition(job, ImportStatus.FAILED, error_message=str(e), completed_at=self.now())
            log_stage_error(job_id, "parse", str(e))
            raise

        mapping = auto_detect_field_mapping(parsed.headers, data_type, source)
        file_path = None
        if self.archiver is not None and self.settings.archive_import_files:
            file_path = self.archiver(str(organization_id), job_id, file_name, content, content_type)

        self._transition(
            job,
            ImportStatus.PENDING,
            headers=parsed.headers,
            imported_data=parsed.rows,
            total_rows=parsed.row_count,
            field_mapping=mapping,
            file_path=file_path,
        )
        log_stage_complete(
            job_id,
            "parse",
            int((time.perf_counter() - t0) * 1000),
            counts={"rows": parsed.row_count, "headers": len(parsed.headers), "mapped": len(mapping)},
        )
        self.repo.add_audit_log(
            organization_id, user_id, "import.upload", job.id,
            {"file_name": file_name, "data_type": data_type, "source": source, "rows": parsed.row_count},
        )
        return {
            "jobId": job.id,
            "headers": parsed.headers,
            "preview": parsed.preview(self.settings.import_preview_rows),
            "autoMapping": mapping,
            "rowCount": parsed.row_count,
            "unmappedHeaders": get_unmapped_headers(parsed.headers, mapping),
            "mappingValidation": validate_field_mapping(mapping, data_type),
        }

    # --- mapping confirmation ---

    def confirm_mapping(self, job_id: UUID, mapping: dict[str, str], actor_user_id: UUID | None = None) -> dict[str, Any]:
        """Replace the job's mapping. Only allowed before execution starts."""
        job = self.get_job(job_id)
        if job.status != ImportStatus.PENDING.value:
            raise InvalidTransitionError(job.id, job.status, "mapping update")
        mapping = {k: v for k, v in mapping.items() if v}
        problems = check_mapping_against_file(mapping, job.data_type, job.headers or [])
        if problems:
            raise FieldMappingError("; ".join(problems), invalid_fields=problems)
        result = validate_field_mapping(mapping, job.data_type)
        if not result["valid"]:
            raise FieldMappingError(
                f"Missing required fields: {', '.join(result['missingFields'])}",
                missing_fields=result["missingFields"],
            )
        # only while still pending
        if not self.repo.transition_import_job(job.id, (ImportStatus.PENDING.value,), ImportStatus.PENDING.value, field_mapping=mapping):
            current = self.get_job(job_id)
            raise InvalidTransitionError(job.id, current.status, "mapping update")
        self.repo.add_audit_log(job.organization_id, actor_user_id, "import.mapping", job.id, {"before": job.field_mapping, "after": mapping})
        return {**result, "unmappedHeaders": get_unmapped_headers(job.headers or [], mapping), "mapping": mapping}

    # --- execution ---

    def execute(self, job_id: UUID, dry_run: bool, actor_user_id: UUID | None = None):
        """
        Run one pass over the job's rows. Row failures are collected, never raised.
        Dry runs return the job to pending; real runs end completed (or failed on a fatal error).
        """
        job = self.get_job(job_id)
        mapping = job.field_mapping or {}
        check = validate_field_mapping(mapping, job.data_type)
        if not check["valid"]:
            raise FieldMappingError(
                f"Missing required fields: {', '.join(check['missingFields'])}",
                missing_fields=check["missingFields"],
            )
        builder = builder_for(job.data_type)

        self._transition(
            job,
            ImportStatus.VALIDATING,
            started_at=self.now(),
            completed_at=None,
            processed_rows=0,
            successful_rows=0,
            failed_rows=0,
            validation_errors=[],
            error_message=None,
            last_run_dry=dry_run,
        )
        if not dry_run:
            self._transition(job, ImportStatus.IMPORTING)
        self.repo.clear_import_row_errors(job.id)

        stage = "dry_run" if dry_run else "import"
        job_key = str(job.id)
        log_stage_start(job_key, stage, data_type=job.data_type, total_rows=job.total_rows)
        t0 = time.perf_counter()
        rows = job.imported_data or []
        ctx = RowContext(repository=self.repo, organization_id=job.organization_id, user_id=job.user_id)
        interval = max(1, self.settings.import_progress_interval)
        processed = successful = failed = 0
        errors: list[dict[str, Any]] = []
        row_log: list[dict[str, Any]] = []

        try:
            for row_number, row in enumerate(rows, start=1):
                try:
                    with self.repo.row_scope():
                        prepared = builder(extract_raw(row, mapping), ctx)
                        if not dry_run:
                            self._persist(job.id, row_number, prepared)
                    successful += 1
                except RowValidationError as e:
                    failed += 1
                    errors.append({"row": row_number, "field": e.field, "error": str(e)})
                    row_log.append({"row": row_number, "field": e.field, "error": str(e), "type": "validation", "raw": row})
                processed += 1
                if processed % interval == 0:
                    self.repo.update_import_job(
                        job.id, processed_rows=processed, successful_rows=successful, failed_rows=failed,
                    )
                    self.repo.add_import_row_errors(job.id, row_log)
                    row_log = []

            if dry_run:
                self.repo.rollback()
            else:
                self.repo.commit()
        except ImportFatalError as e:
            self.repo.rollback()
            self._fail(job, stage, str(e), processed, successful, failed, errors)
            return self.get_job(job_id)
        except Exception as e:
            self.repo.rollback()
            logger.exception("Import job %s crashed", job_key)
            self._fail(job, stage, f"Unexpected error: {e}", processed, successful, failed, errors)
            raise

        self.repo.add_import_row_errors(job.id, row_log)
        target = ImportStatus.PENDING if dry_run else ImportStatus.COMPLETED
        self._transition(
            job,
            target,
            processed_rows=processed,
            successful_rows=successful,
            failed_rows=failed,
            validation_errors=errors,
            completed_at=None if dry_run else self.now(),
        )
        log_stage_complete(
            job_key,
            stage,
            int((time.perf_counter() - t0) * 1000),
            counts={"processed": processed, "successful": successful, "failed": failed},
            validation_failures=errors,
        )
        self.repo.add_audit_log(
            job.organization_id, actor_user_id, "import.dry_run" if dry_run else "import.execute", job.id,
            {"successful_rows": successful, "failed_rows": failed},
        )
        return self.get_job(job_id)

    def _persist(self, job_id: UUID, row_number: int, prepared) -> None:
        if prepared.existing_id is None:
            entity_id = self.repo.create_entity(prepared.entity_type, prepared.values)
            self.repo.record_import(job_id, row_number, prepared.entity_type, entity_id, "created")
        else:
            previous = self.repo.update_entity(prepared.entity_type, prepared.existing_id, prepared.values)
            self.repo.record_import(job_id, row_number, prepared.entity_type, prepared.existing_id, "updated", previous)

    def _fail(self, job, stage: str, message: str, processed: int, successful: int, failed: int, errors: list) -> None:
        log_stage_error(str(job.id), stage, message, processed=processed)
        self.repo.update_import_job(
            job.id,
            status=ImportStatus.FAILED.value,
            error_message=message,
            processed_rows=processed,
            successful_rows=successful,
            failed_rows=failed,
            validation_errors=errors,
            completed_at=self.now(),
        )

    # --- rollback ---

    def rollback(self, job_id: UUID, actor_user_id: UUID | None = None):
        """Revert a completed real import: delete created entities, restore updated ones."""
        job = self.get_job(job_id)
        if job.status != ImportStatus.COMPLETED.value:
            raise InvalidTransitionError(job.id, job.status, ImportStatus.ROLLED_BACK.value)
        log_stage_start(str(job.id), "rollback")
        t0 = time.perf_counter()
        records = self.repo.get_import_records(job.id)
        deleted = restored = 0
        try:
            for record in reversed(records):
                if record.action == "created":
                    self.repo.delete_entity(record.entity_type, record.entity_id)
                    deleted += 1
                else:
                    self.repo.restore_entity(record.entity_type, record.entity_id, record.previous_values or {})
                    restored += 1
            self.repo.commit()
        except Exception as e:
            self.repo.rollback()
            log_stage_error(str(job.id), "rollback", str(e))
            raise
        self._transition(job, ImportStatus.ROLLED_BACK)
        log_stage_complete(
            str(job.id), "rollback", int((time.perf_counter() - t0) * 1000),
            counts={"deleted": deleted, "restored": restored},
        )
        self.repo.add_audit_log(job.organization_id, actor_user_id, "import.rollback", job.id, {"deleted": deleted, "restored": restored})
        return self.get_job(job_id)
