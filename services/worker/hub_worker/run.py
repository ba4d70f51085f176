import logging
import os
import sys
from rq import Worker

from mt5_gateway.queue import QUEUE_NAME, connect, get_queue

logger = logging.getLogger(__name__)

def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    redis_url = os.getenv("REDIS_URL", "")
    if not redis_url:
        logger.critical("REDIS_URL is required but not set.")
        sys.exit(1)
    if not os.getenv("HUB_URL"):
        logger.warning("HUB_URL not set, relay jobs will fail until it is.")

    conn = connect(redis_url)
    w = Worker([get_queue(conn)], connection=conn)
    logger.info("Worker started, listening on queue '%s'...", QUEUE_NAME)
    w.work(with_scheduler=True)

if __name__ == "__main__":
    main()
