"""
Billing worker entry point.
Run with: python -m buscai.worker.runner
"""

import os
import socket

import structlog
from redis import Redis
from rq import Worker

from buscai.config import settings
from buscai.observability.logging import setup_logging
from buscai.worker.jobs import enqueue_subscription_renewal

logger = structlog.get_logger(__name__)


def worker_name() -> str:
    """Unique per process so several workers can share one Redis."""
    return f"{settings.APP_NAME}-worker-{settings.APP_VERSION}-{socket.gethostname()}-{os.getpid()}"


def build_worker(conn: Redis) -> Worker:
    return Worker(queues=settings.worker_queues, connection=conn, name=worker_name())


def main():
    """Start the RQ worker on the billing queue and any extra queues."""
    setup_logging(component="worker")
    structlog.contextvars.bind_contextvars(queues=",".join(settings.worker_queues))

    conn = Redis.from_url(settings.REDIS_URL)
    worker = build_worker(conn)
    if settings.RENEW_ON_WORKER_START:
        enqueue_subscription_renewal()

    logger.info("worker_starting", name=worker.name, readonly=settings.READONLY_MODE)
    worker.work(with_scheduler=False)


if __name__ == "__main__":
    main()
