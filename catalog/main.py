from fastapi import FastAPI
from catalog.api.routes import router as api_router
from catalog.config import SYNC_CRON, SYNC_ENABLED
from catalog.db import Base, engine
import catalog.models  # noqa: F401 ensure models are imported so tables are known
from catalog.utils import logger

# create FastAPI instance
app = FastAPI(title="Catalog service")
app.include_router(api_router)

_scheduler = None


@app.on_event("startup")
def on_startup_create_tables():
    # Ensure database tables are created on startup
    Base.metadata.create_all(bind=engine)


@app.on_event("startup")
def on_startup_start_scheduler():
    global _scheduler
    if not SYNC_ENABLED:
        logger.info("Scheduled sync disabled")
        return
    from catalog.scheduler import build_scheduler
    from catalog.services import get_sync_service

    _scheduler = build_scheduler(get_sync_service())
    _scheduler.start()
    logger.info("Scheduler started (cron=%s)", SYNC_CRON)


@app.on_event("shutdown")
def on_shutdown_stop_scheduler():
    if _scheduler is not None:
        _scheduler.shutdown(wait=False)
