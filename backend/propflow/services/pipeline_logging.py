"""
Structured stage logging for import jobs and the delinquency sweep: counts, row failures,
runtime per stage.
"""
from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)


def log_stage_start(job_id: str, stage: str, **extra: Any) -> None:
    logger.info(
        "import_stage_start",
        extra={
            "job_id": job_id,
            "stage": stage,
            "event": "stage_start",
            **extra,
        },
    )


def log_stage_complete(
    job_id: str,
    stage: str,
    duration_ms: int,
    counts: dict[str, int] | None = None,
    validation_failures: list | None = None,
    **extra: Any,
) -> None:
    payload: dict[str, Any] = {
        "job_id": job_id,
        "stage": stage,
        "duration_ms": duration_ms,
        "event": "stage_complete",
        **extra,
    }
    if counts:
        payload["counts"] = counts
    if validation_failures:
        # first few only; the full list lives on the job
        payload["validation_failures"] = validation_failures[:20]
    logger.info("import_stage_complete", extra=payload)


def log_stage_error(job_id: str, stage: str, error: str, **extra: Any) -> None:
    logger.error(
        "import_stage_error",
        extra={
            "job_id": job_id,
            "stage": stage,
            "error": error[:500],
            "event": "stage_error",
            **extra,
        },
    )


def log_sweep_start(**extra: Any) -> None:
    logger.info("sweep_stage_start", extra={"stage": "delinquency_sweep", "event": "stage_start", **extra})


def log_sweep_complete(duration_ms: int, counts: dict[str, int], errors: list[str] | None = None) -> None:
    payload: dict[str, Any] = {
        "stage": "delinquency_sweep",
        "duration_ms": duration_ms,
        "event": "stage_complete",
        "counts": counts,
    }
    if errors:
        payload["errors"] = errors[:20]
    logger.info("sweep_stage_complete", extra=payload)


def log_sweep_error(error: str, **extra: Any) -> None:
    logger.error(
        "sweep_stage_error",
        extra={"stage": "delinquency_sweep", "error": error[:500], "event": "stage_error", **extra},
    )
