"""
APScheduler Configuration

Background job scheduler for queue maintenance. Jobs run on the
application's event loop so they share the in-process queue locks with
request handlers.
"""

import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.executors.asyncio import AsyncIOExecutor

from shoptracker.config import settings

logger = logging.getLogger(__name__)

# Job stores
jobstores = {
    'default': MemoryJobStore()
}

# Executors
executors = {
    'default': AsyncIOExecutor(),
}

# Job defaults
job_defaults = {
    'coalesce': True,  # Combine multiple pending executions into one
    'max_instances': 1,  # Only one instance of each job at a time
    'misfire_grace_time': 60,  # Allow 60 seconds grace time for misfires
}

# Create scheduler
scheduler = AsyncIOScheduler(
    jobstores=jobstores,
    executors=executors,
    job_defaults=job_defaults,
    timezone=settings.SCHEDULER_TIMEZONE,
)


async def run_queue_rebalance():
    """
    Wrapper called by APScheduler.

    Failures are logged and the next interval tries again.
    """
    from shoptracker.jobs.queue_jobs import recompute_all_queues

    try:
        await recompute_all_queues()
    except Exception as e:
        logger.error(f"Job 'rebalance_queues' failed: {e}")


def start_scheduler():
    """Start the background job scheduler."""
    if scheduler.running:
        return

    interval = settings.QUEUE_REBALANCE_INTERVAL_MINUTES
    if interval <= 0:
        logger.info("Queue rebalance job disabled")
        return

    scheduler.add_job(
        run_queue_rebalance,
        'interval',
        minutes=interval,
        id='rebalance_queues',
        name='Rebalance Global and Location Queues',
        replace_existing=True,
    )

    scheduler.start()
    logger.info("Background job scheduler started")

    for job in scheduler.get_jobs():
        logger.info(f"Scheduled job: {job.name} - Next run: {job.next_run_time}")


def shutdown_scheduler():
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("Background job scheduler stopped")


def get_job_status():
    """Get status of all scheduled jobs."""
    jobs = scheduler.get_jobs()
    return [
        {
            'id': job.id,
            'name': job.name,
            'next_run_time': str(job.next_run_time) if job.next_run_time else None,
            'trigger': str(job.trigger),
        }
        for job in jobs
    ]
