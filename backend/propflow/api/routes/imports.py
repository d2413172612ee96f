"""
Bulk data import: upload, mapping confirmation, dry-run / real execution, polling, history, rollback.
"""
import asyncio
from datetime import datetime
from typing import Any
from uuid import UUID
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from propflow.api.deps import import_runner, require_import_user
from propflow.core.import_states import ImportStatus
from propflow.db.session import get_db
from propflow.models.import_job import ImportJob, ImportRowError
from propflow.models.tenancy import User
from propflow.worker.tasks import run_import_job

router = APIRouter(prefix="/import", tags=["import"])


class ImportJobSummary(BaseModel):
    jobId: UUID
    dataType: str
    source: str
    fileName: str
    status: str
    totalRows: int
    processedRows: int
    successfulRows: int
    failedRows: int
    dryRun: bool | None = None
    fieldMapping: dict[str, str] = {}
    validationErrors: list[dict[str, Any]] | None = None
    errorMessage: str | None = None
    createdAt: datetime | None = None
    startedAt: datetime | None = None
    completedAt: datetime | None = None

    @classmethod
    def from_job(cls, job: ImportJob, include_errors: bool = True) -> "ImportJobSummary":
        return cls(
            jobId=job.id,
            dataType=job.data_type,
            source=job.source,
            fileName=job.file_name,
            status=job.status,
            totalRows=job.total_rows or 0,
            processedRows=job.processed_rows or 0,
            successfulRows=job.successful_rows or 0,
            failedRows=job.failed_rows or 0,
            dryRun=job.last_run_dry,
            fieldMapping=job.field_mapping or {},
            validationErrors=(job.validation_errors or []) if include_errors else None,
            errorMessage=job.error_message,
            createdAt=job.created_at,
            startedAt=job.started_at,
            completedAt=job.completed_at,
        )


class UploadResponse(BaseModel):
    jobId: UUID
    headers: list[str]
    preview: list[dict[str, Any]]
    autoMapping: dict[str, str]
    rowCount: int
    unmappedHeaders: list[str]
    mappingValidation: dict[str, Any]


class MappingRequest(BaseModel):
    mapping: dict[str, str]


class MappingResponse(BaseModel):
    valid: bool
    missingFields: list[str]
    unmappedHeaders: list[str]
    mapping: dict[str, str]


class ExecuteRequest(BaseModel):
    dryRun: bool = False
    background: bool = False


class ImportRowErrorResponse(BaseModel):
    row: int
    field: str | None
    errorType: str
    error: str
    rawData: dict[str, Any] | None = None


async def _get_org_job(db: AsyncSession, job_id: UUID, user: User) -> ImportJob:
    result = await db.execute(
        select(ImportJob).where(ImportJob.id == job_id, ImportJob.organization_id == user.organization_id)
    )
    job = result.scalar_one_or_none()
    if not job:
        raise HTTPException(status_code=404, detail="Import job not found")
    return job


@router.post("/upload", response_model=UploadResponse)
async def upload_import_file(
    dataType: str = Form(...),
    source: str = Form("generic_csv"),
    file: UploadFile = File(...),
    user: User = Depends(require_import_user),
):
    """Parse the file, auto-detect the field mapping, and return a preview for confirmation."""
    content = await file.read()

    def _upload():
        with import_runner() as runner:
            return runner.upload(
                organization_id=user.organization_id,
                user_id=user.id,
                data_type=dataType,
                source=source,
                file_name=file.filename or "upload.csv",
                content=content,
                content_type=file.content_type,
            )

    return await asyncio.to_thread(_upload)


@router.patch("/{job_id}/mapping", response_model=MappingResponse)
async def confirm_mapping(
    job_id: UUID,
    data: MappingRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_import_user),
):
    await _get_org_job(db, job_id, user)

    def _confirm():
        with import_runner() as runner:
            return runner.confirm_mapping(job_id, data.mapping, actor_user_id=user.id)

    return await asyncio.to_thread(_confirm)


@router.post("/{job_id}/execute", response_model=ImportJobSummary)
async def execute_import(
    job_id: UUID,
    data: ExecuteRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_import_user),
):
    """
    Validate (dryRun) or import the job's rows. background=true queues the run on the worker
    and returns 202 with the current state; poll GET /import/{job_id} for progress.
    """
    job = await _get_org_job(db, job_id, user)
    if data.background:
        if job.status != ImportStatus.PENDING.value:
            raise HTTPException(status_code=409, detail=f"Import job is {job.status}; only pending jobs can be executed")
        run_import_job.delay(str(job_id), data.dryRun, str(user.id))
        summary = ImportJobSummary.from_job(job)
        return JSONResponse(status_code=status.HTTP_202_ACCEPTED, content=summary.model_dump(mode="json"))

    def _execute():
        with import_runner() as runner:
            return runner.execute(job_id, data.dryRun, actor_user_id=user.id)

    finished = await asyncio.to_thread(_execute)
    return ImportJobSummary.from_job(finished)


@router.get("/{job_id}", response_model=ImportJobSummary)
async def get_import_job(
    job_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_import_user),
):
    job = await _get_org_job(db, job_id, user)
    return ImportJobSummary.from_job(job)


@router.get("/{job_id}/errors", response_model=list[ImportRowErrorResponse])
async def list_import_errors(
    job_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_import_user),
):
    """Failed rows of the last run, with the raw row data."""
    await _get_org_job(db, job_id, user)
    result = await db.execute(
        select(ImportRowError).where(ImportRowError.import_job_id == job_id).order_by(ImportRowError.row_number)
    )
    return [
        ImportRowErrorResponse(
            row=e.row_number,
            field=e.field_name,
            errorType=e.error_type,
            error=e.error_message,
            rawData=e.raw_data,
        )
        for e in result.scalars().all()
    ]


@router.get("", response_model=list[ImportJobSummary])
async def list_import_jobs(
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_import_user),
):
    """Import history for the caller's organization, newest first."""
    result = await db.execute(
        select(ImportJob)
        .where(ImportJob.organization_id == user.organization_id)
        .order_by(ImportJob.created_at.desc())
        .limit(limit)
    )
    return [ImportJobSummary.from_job(j, include_errors=False) for j in result.scalars().all()]


@router.delete("/{job_id}/rollback", response_model=ImportJobSummary)
async def rollback_import(
    job_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_import_user),
):
    """Revert a completed import: created records are deleted, updated ones restored."""
    await _get_org_job(db, job_id, user)

    def _rollback():
        with import_runner() as runner:
            return runner.rollback(job_id, actor_user_id=user.id)

    return ImportJobSummary.from_job(await asyncio.to_thread(_rollback))
