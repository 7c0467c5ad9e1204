"""
Periodic background jobs.
"""

from datetime import datetime
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from .utils.logging import logger

if TYPE_CHECKING:
    from .context import Context


REFRESH_PROJECTS_JOB_ID = "refresh_projects"


async def refresh_projects(context: "Context") -> None:
    """Reload the project key cache used to validate /jiranew."""
    projects = await context.jira.list_projects()
    # Swap the whole mapping so readers never see a half-filled cache
    context.projects = projects
    logger.info(f"Refreshed Jira project cache ({len(projects)} projects)")


def start_background_tasks(context: "Context") -> None:
    """Start the scheduler with the periodic jobs.

    Job failures are caught and logged by the scheduler; the next run is
    attempted at the following interval.
    """
    interval = context.config.tasks.refresh_interval_seconds
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        refresh_projects,
        "interval",
        seconds=interval,
        args=[context],
        id=REFRESH_PROJECTS_JOB_ID,
        next_run_time=datetime.now(),
        coalesce=True,
        max_instances=1,
    )
    scheduler.start()
    context.scheduler = scheduler
    logger.info(f"Background tasks started (project refresh every {interval}s)")
