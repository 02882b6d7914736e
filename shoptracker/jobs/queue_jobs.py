"""
Queue Maintenance Jobs

Periodic full recompute of the global queue and every location queue.
Picks up auto-queue work at primary locations even when nobody has read
their queue, and repairs positions written by anything outside the
services.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from shoptracker.database import get_db_session
from shoptracker.services.local_queue_service import LocalQueueService

logger = logging.getLogger(__name__)


async def recompute_all_queues() -> Dict[str, Any]:
    """Run recompute_all in its own session."""
    started = datetime.now(timezone.utc)

    async with get_db_session() as db:
        await LocalQueueService(db).recompute_all()

    elapsed = (datetime.now(timezone.utc) - started).total_seconds()
    logger.info(f"Queue rebalance completed in {elapsed:.2f}s")
    return {"status": "ok", "elapsed_seconds": elapsed}
