"""
Background job that moves overdue confirmed appointments to ``no_show``.
"""

import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from flask import Flask

from salon_engine.core.config import NO_SHOW_SWEEP_INTERVAL_MINUTES
from salon_engine.services.factory import session_services

logger = logging.getLogger(__name__)

JOB_ID = "no_show_sweep"


def sweep_no_shows(app: Flask) -> int:
    """Run one sweep; returns the number of appointments marked."""
    with session_services(app) as services:
        marked = services.booking.mark_overdue_no_shows()
    logger.info(
        "No-show sweep finished",
        extra={"context": {"job": JOB_ID, "marked": len(marked)}},
    )
    return len(marked)


def start_no_show_scheduler(
    app: Flask, interval_minutes: Optional[int] = None
) -> BackgroundScheduler:
    """Register and start the periodic sweep."""
    interval = interval_minutes or NO_SHOW_SWEEP_INTERVAL_MINUTES

    def run_job():
        try:
            sweep_no_shows(app)
        except Exception as e:
            logger.error(
                "Error in scheduled no-show sweep",
                extra={"context": {"job": JOB_ID, "error": str(e)}},
                exc_info=True,
            )

    scheduler = BackgroundScheduler()
    scheduler.add_job(
        run_job,
        trigger=IntervalTrigger(minutes=interval),
        id=JOB_ID,
        name="Mark overdue appointments as no-show",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(
        "Background scheduler started",
        extra={"context": {"job_id": JOB_ID, "interval_minutes": interval}},
    )
    return scheduler
