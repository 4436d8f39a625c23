"""
Scheduled Tasks for Metamorfose

Uses APScheduler to run the automatic backend processing periodically.
"""
import logging
from typing import Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from metamorfose.config import get_settings
from metamorfose.dependencies import get_dashboard_service
from metamorfose.services import DashboardService

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


def run_scheduled_processing(service_factory: Callable[[], DashboardService] = get_dashboard_service):
    """Execute the configured batch job type."""
    job_type = get_settings().scheduled_job_type
    logger.info("Starting scheduled processing job (%s)...", job_type)
    try:
        result = service_factory().run_job(job_type)
        logger.info("Scheduled processing job complete (%d chars of output).", len(result))
    except Exception:
        logger.exception("Scheduled processing job failed")


def start_scheduler():
    """Start the APScheduler when scheduled processing is enabled."""
    settings = get_settings()
    if not settings.scheduled_job_enabled:
        logger.info("Scheduled processing disabled")
        return
    if not scheduler.running:
        scheduler.add_job(
            run_scheduled_processing,
            trigger=IntervalTrigger(minutes=settings.scheduled_job_interval_minutes),
            id="automatic_processing",
            name="Automatic backend processing",
            replace_existing=True,
        )
        scheduler.start()
        logger.info(
            "Scheduler started with %s job (interval: %d minutes)",
            settings.scheduled_job_type,
            settings.scheduled_job_interval_minutes,
        )


def stop_scheduler():
    """Stop the APScheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
