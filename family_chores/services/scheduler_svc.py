from __future__ import annotations

# family_chores/services/scheduler_svc.py
import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from ..config import get_settings
from . import backup_svc, recurring_svc

logger = logging.getLogger(__name__)


def job_generate_recurring():
    try:
        res = recurring_svc.generate_all_families()
        logger.info("scheduled generation: %s chores created, %s errors",
                    len(res["generated"]), len(res["errors"]))
    except Exception:
        logger.exception("scheduled recurring generation failed")


def job_backup():
    try:
        backup_svc.create_backup("scheduled")
    except Exception:
        logger.exception("scheduled backup failed")


def _add_cron_job(scheduler: BackgroundScheduler, func, cron_expr: str, job_id: str) -> bool:
    try:
        trigger = CronTrigger.from_crontab(cron_expr)
    except ValueError as e:
        logger.error("invalid cron expression %r for %s, job not scheduled: %s", cron_expr, job_id, e)
        return False
    scheduler.add_job(func, trigger, id=job_id, replace_existing=True, coalesce=True, max_instances=1)
    logger.info("scheduled %s with cron '%s'", job_id, cron_expr)
    return True


def build_scheduler(settings: dict | None = None) -> BackgroundScheduler:
    settings = settings or get_settings()
    scheduler = BackgroundScheduler()
    _add_cron_job(scheduler, job_generate_recurring, settings["recurring_cron"], "recurring_generation")
    _add_cron_job(scheduler, job_backup, settings["backup_cron"], "database_backup")
    return scheduler


def start_scheduler(settings: dict | None = None) -> BackgroundScheduler | None:
    settings = settings or get_settings()
    if not settings["scheduler_enabled"]:
        logger.info("scheduler disabled")
        return None
    scheduler = build_scheduler(settings)
    scheduler.start()
    logger.info("scheduler started with %s jobs", len(scheduler.get_jobs()))
    return scheduler


def stop_scheduler(scheduler: BackgroundScheduler | None):
    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("scheduler stopped")
