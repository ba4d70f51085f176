"""Relay queue shared by the gateway (producer) and hub_worker (consumer)."""
import logging
import os

import redis
from rq import Queue, Retry

logger = logging.getLogger(__name__)

QUEUE_NAME = os.getenv("RELAY_QUEUE", "relay")
FORWARD_JOB = "hub_worker.jobs.forward"
RETRY = Retry(max=3, interval=[10, 30, 60])

def connect(url: str | None = None) -> redis.Redis:
    return redis.from_url(url or os.getenv("REDIS_URL"))

def get_queue(conn: redis.Redis | None = None) -> Queue:
    return Queue(QUEUE_NAME, connection=conn or connect(), default_timeout=60)

def enqueue_forward(path: str, body: dict) -> str:
    """Queue `body` for delivery to the hub endpoint at `path`; returns the job id."""
    job = get_queue().enqueue(FORWARD_JOB, path, body, retry=RETRY)
    logger.info("queued %s for %s", job.id, path)
    return job.id
