# catalog/scheduler.py
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from .config import SYNC_CRON
from .errors import SyncAlreadyRunning
from .sync import SyncService
from .utils import logger


def run_scheduled_sync(service: SyncService):
    try:
        service.run_once()
    except SyncAlreadyRunning:
        logger.warning("Previous sync still running, skipping this tick")


def build_scheduler(service: SyncService, cron: str = SYNC_CRON) -> BackgroundScheduler:
    scheduler = BackgroundScheduler(timezone="UTC")
    scheduler.add_job(
        run_scheduled_sync,
        CronTrigger.from_crontab(cron, timezone="UTC"),
        args=[service],
        id="contentful-sync",
        max_instances=1,
        coalesce=True,
    )
    return scheduler
