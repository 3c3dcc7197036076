"""
Cleanup Scheduler Service

Removes encrypted upload temp files that outlived their items.
Uses APScheduler for periodic cleanup job execution.
"""

import logging
import tempfile
from datetime import datetime, timedelta
from pathlib import Path

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from app.config import settings
from app.services.upload_store import upload_store

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()

# Backing files are named upload_<process token>_<counter>.tmp
TEMP_FILE_PATTERN = "upload_*.tmp"


def get_cleanup_directory() -> Path:
    """Directory holding encrypted temp files."""
    if settings.UPLOAD_REPOSITORY:
        return Path(settings.UPLOAD_REPOSITORY)
    return Path(tempfile.gettempdir())


async def cleanup_old_files() -> dict:
    """
    Delete encrypted temp files older than FILE_TTL_HOURS.

    Files still owned by a registered upload are never touched.

    Returns:
        dict: Summary of cleanup operation with counts
    """
    cutoff = datetime.now() - timedelta(hours=settings.FILE_TTL_HOURS)
    cleanup_summary = {
        "files_scanned": 0,
        "files_deleted": 0,
        "errors": 0,
    }

    directory = get_cleanup_directory()
    if not directory.exists():
        logger.debug(f"Cleanup directory does not exist: {directory}")
        return cleanup_summary

    active = upload_store.active_paths()

    try:
        for temp_file in directory.glob(TEMP_FILE_PATTERN):
            if not temp_file.is_file() or temp_file in active:
                continue

            cleanup_summary["files_scanned"] += 1

            try:
                file_mtime = datetime.fromtimestamp(temp_file.stat().st_mtime)

                if file_mtime < cutoff:
                    temp_file.unlink(missing_ok=True)
                    cleanup_summary["files_deleted"] += 1
                    logger.info(f"Cleaned up stale upload file: {temp_file}")

            except OSError as e:
                cleanup_summary["errors"] += 1
                logger.error(f"Failed to clean up file {temp_file}: {e}")

    except OSError as e:
        cleanup_summary["errors"] += 1
        logger.error(f"Failed to scan directory {directory}: {e}")

    logger.info(
        f"Cleanup completed: {cleanup_summary['files_deleted']} files deleted, "
        f"{cleanup_summary['errors']} errors"
    )

    return cleanup_summary


def start_cleanup_scheduler():
    """
    Start the cleanup scheduler.

    Adds the cleanup job to APScheduler and starts the scheduler.
    Safe to call multiple times - will not add duplicate jobs.
    """
    if scheduler.running:
        logger.debug("Scheduler already running")
        return

    job_id = "cleanup_old_files"
    existing_job = scheduler.get_job(job_id)

    if not existing_job:
        scheduler.add_job(
            cleanup_old_files,
            "interval",
            hours=settings.CLEANUP_INTERVAL_HOURS,
            id=job_id,
            name="Cleanup stale upload files",
            replace_existing=True,
        )
        logger.info(
            f"Scheduled cleanup job: every {settings.CLEANUP_INTERVAL_HOURS} hour(s), "
            f"TTL: {settings.FILE_TTL_HOURS} hours"
        )

    scheduler.start()
    logger.info("Cleanup scheduler started")


def stop_cleanup_scheduler():
    """Stop the cleanup scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Cleanup scheduler stopped")


def get_scheduler_status() -> dict:
    """
    Get current scheduler status for health checks.

    Returns:
        dict: Scheduler status including running state and job info
    """
    job = scheduler.get_job("cleanup_old_files")
    return {
        "running": scheduler.running,
        "job_scheduled": job is not None,
        "next_run": str(job.next_run_time) if job else None,
        "interval_hours": settings.CLEANUP_INTERVAL_HOURS,
        "ttl_hours": settings.FILE_TTL_HOURS,
    }
