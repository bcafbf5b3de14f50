"""APScheduler jobs: periodic sweep of expired one-time codes."""

import logging
from datetime import datetime

import pytz
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from starlette.concurrency import run_in_threadpool

from app.config import get_settings
from app.infrastructure.database import SessionLocal

settings = get_settings()
logger = logging.getLogger(__name__)
tz = pytz.timezone(settings.TIMEZONE)

scheduler = AsyncIOScheduler(timezone=tz)


def _sweep() -> int:
    from app.application.services.otp_service import sweep_expired_otps

    db = SessionLocal()
    try:
        return sweep_expired_otps(db)
    finally:
        db.close()


async def otp_sweep_job():
    """Periodic job: clear verification and reset codes that have expired."""
    logger.info(f"Running OTP sweep at {datetime.now(tz).strftime('%Y-%m-%d %H:%M')}")
    try:
        cleared = await run_in_threadpool(_sweep)
        logger.info(f"OTP sweep cleared {cleared} expired code(s)")
    except Exception as e:
        logger.error(f"OTP sweep failed: {e}")


def start_scheduler():
    """Start the APScheduler with the OTP sweep job."""
    scheduler.add_job(
        otp_sweep_job,
        trigger=IntervalTrigger(minutes=settings.OTP_SWEEP_MINUTES, timezone=tz),
        id="otp_sweep",
        name=f"OTP Sweep (Every {settings.OTP_SWEEP_MINUTES} mins)",
        replace_existing=True,
    )

    scheduler.start()
    logger.info(f"Scheduler started: OTP sweep every {settings.OTP_SWEEP_MINUTES} mins ({settings.TIMEZONE})")


def stop_scheduler():
    """Stop the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
