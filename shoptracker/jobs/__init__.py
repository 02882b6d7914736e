"""
Background Jobs Module

Handles scheduled tasks for:
- Periodic global and per-location queue rebalancing
"""

from shoptracker.jobs.scheduler import scheduler, start_scheduler, shutdown_scheduler, get_job_status
from shoptracker.jobs.queue_jobs import recompute_all_queues

__all__ = [
    "scheduler",
    "start_scheduler",
    "shutdown_scheduler",
    "get_job_status",
    "recompute_all_queues",
]
