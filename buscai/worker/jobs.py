"""
RQ job functions for scheduled billing work.
These are the entry points that the worker calls.
"""

import structlog
from redis import Redis
from rq import Queue

from buscai.config import settings
from buscai.observability.metrics import worker_jobs_active

logger = structlog.get_logger(__name__)


def get_queue() -> Queue:
    """Get the billing job queue."""
    conn = Redis.from_url(settings.REDIS_URL)
    return Queue(settings.QUEUE_NAME, connection=conn)


def enqueue_subscription_renewal() -> str:
    """Enqueue one renewal cycle. Returns the job ID."""
    q = get_queue()
    job = q.enqueue(
        renew_subscriptions_job,
        job_timeout=settings.JOB_TIMEOUT_SECONDS,
        result_ttl=86400,
        failure_ttl=604800,
    )
    logger.info("job_enqueued", job="subscription_renewal", job_id=job.id)
    return job.id


def renew_subscriptions_job() -> dict:
    """
    Renew due subscriptions and cancel those past their grace window.
    This runs inside the RQ worker process.
    """
    import asyncio

    logger.info("job_started", job="subscription_renewal")
    worker_jobs_active.inc()
    try:
        result = asyncio.run(_renew_subscriptions_async())
        logger.info("job_completed", job="subscription_renewal", **result)
        return result
    except Exception as e:
        logger.error("job_failed", job="subscription_renewal", error=str(e))
        raise
    finally:
        worker_jobs_active.dec()


async def _renew_subscriptions_async() -> dict:
    from buscai.dependencies import build_subscription_service
    from buscai.models.database import async_session_factory

    async with async_session_factory() as session:
        try:
            summary = await build_subscription_service(session).run_cycle()
            await session.commit()
        except Exception:
            await session.rollback()
            raise
    return summary.model_dump()
