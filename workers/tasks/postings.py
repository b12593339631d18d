"""Periodic posting maintenance tasks."""

import asyncio
import logging

from celery import Task

from api.services.postings import expire_due_postings as expire_due
from core.integrations.notifications import CeleryNotificationDispatcher
from database.engine import build_engine, build_session_factory
from database.repositories import SQLAlchemyWorkflowStore
from workers.celery_app import celery_app

logger = logging.getLogger(__name__)


async def _sweep() -> list[str]:
    # Each task run owns its event loop, so it gets its own engine too
    engine = build_engine()
    try:
        store = SQLAlchemyWorkflowStore(build_session_factory(engine))
        return await expire_due(store, CeleryNotificationDispatcher())
    finally:
        await engine.dispose()


@celery_app.task(name="workers.tasks.postings.expire_due_postings", bind=True)
def expire_due_postings(self: Task) -> dict:
    """Archive every published posting whose closing date has passed."""
    try:
        archived = asyncio.run(_sweep())
    except Exception as e:
        logger.error(f"Posting expiry sweep failed: {e}", exc_info=True)
        self.retry(exc=e, countdown=60, max_retries=3)

    if archived:
        logger.info(f"Expiry sweep archived {len(archived)} posting(s)")
    return {"status": "success", "archived": archived, "count": len(archived)}
