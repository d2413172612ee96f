import logging
from datetime import timedelta
from uuid import UUID

import redis

from propflow.api.deps import import_runner
from propflow.config import get_settings
from propflow.db.session import get_sync_session
from propflow.services.delinquency_engine import DelinquencyEngine, run_delinquency_check
from propflow.services.repository import SqlRepository
from propflow.services.sms import TwilioSmsClient
from propflow.worker.celery_app import celery_app

logger = logging.getLogger(__name__)

SWEEP_LOCK_KEY = "propflow:delinquency-sweep"
# longer than any realistic sweep; released explicitly when the sweep ends
SWEEP_LOCK_TIMEOUT = 60 * 60


@celery_app.task(bind=True, name="propflow.run_import_job")
def run_import_job(self, job_id: str, dry_run: bool, actor_user_id: str | None = None):
    """Execute an import job in the background; progress is visible through the job row."""
    actor = UUID(actor_user_id) if actor_user_id else None
    with import_runner() as runner:
        job = runner.execute(UUID(job_id), dry_run, actor_user_id=actor)
    return {
        "job_id": job_id,
        "status": job.status,
        "successful_rows": job.successful_rows,
        "failed_rows": job.failed_rows,
    }


@celery_app.task(bind=True, name="propflow.delinquency_sweep")
def run_delinquency_sweep(self):
    """Daily sweep. Overlapping runs are skipped via a non-blocking Redis lock."""
    settings = get_settings()
    client = redis.Redis.from_url(settings.redis_url)
    lock = client.lock(SWEEP_LOCK_KEY, timeout=SWEEP_LOCK_TIMEOUT)
    if not lock.acquire(blocking=False):
        logger.info("Delinquency sweep already running; skipping this run")
        return {"skipped": True}
    repo = SqlRepository(get_sync_session)
    try:
        engine = DelinquencyEngine(
            repo,
            TwilioSmsClient.from_settings(settings),
            idempotence_window=timedelta(hours=settings.delinquency_idempotence_hours),
        )
        return run_delinquency_check(engine)
    finally:
        repo.close()
        # the lock may have expired under a sweep that outlived SWEEP_LOCK_TIMEOUT
        if lock.owned():
            lock.release()
