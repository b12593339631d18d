"""Workflow notification delivery tasks."""

import logging
from typing import Any, Dict

from celery import Task

from core.workflow.notifications import WorkflowNotification
from workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="workers.tasks.notifications.deliver_workflow_notification", bind=True)
def deliver_workflow_notification(self: Task, payload: Dict[str, Any]) -> dict:
    """Deliver a workflow notification to its recipient role.

    Args:
        payload: WorkflowNotification dumped in JSON mode

    Returns:
        Dictionary with delivery status
    """
    notification = WorkflowNotification.model_validate(payload)
    logger.info(
        f"Delivering {notification.type.value} to {notification.recipient_role.value}",
        extra={
            "notification_id": notification.id,
            "notification_type": notification.type.value,
            "recipient_role": notification.recipient_role.value,
            "recipient_id": notification.recipient_id,
            "job_id": notification.job_id,
            "application_id": notification.application_id,
            "priority": notification.priority.value,
            "action_required": notification.action_required,
        },
    )
    return {
        "status": "delivered",
        "notification_id": notification.id,
        "type": notification.type.value,
        "recipient_role": notification.recipient_role.value,
    }
