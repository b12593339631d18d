"""Workflow notification dispatchers."""

import logging
from typing import List, Optional

from core.config import settings
from core.workflow.notifications import WorkflowNotification

logger = logging.getLogger(__name__)


class CeleryNotificationDispatcher:
    """Queues workflow notifications for delivery by the Celery workers.

    Delivery is fire-and-forget: a broker failure is logged and never undoes
    the transition that produced the notification.
    """

    def __init__(self, enabled: Optional[bool] = None):
        self.enabled = settings.notifications_enabled if enabled is None else enabled

    async def dispatch(self, notification: WorkflowNotification) -> None:
        if not self.enabled:
            logger.debug(f"Notifications disabled, dropping {notification.type.value}")
            return

        from workers.tasks.notifications import deliver_workflow_notification
        try:
            deliver_workflow_notification.delay(notification.model_dump(mode="json"))
            logger.info(
                f"Queued {notification.type.value} notification for "
                f"{notification.recipient_role.value} (job {notification.job_id})"
            )
        except Exception as e:
            logger.warning(f"Failed to queue {notification.type.value} notification: {e}")


class InMemoryNotificationDispatcher:
    """Collects notifications in a list; used in development and tests."""

    def __init__(self):
        self.sent: List[WorkflowNotification] = []

    async def dispatch(self, notification: WorkflowNotification) -> None:
        self.sent.append(notification)

    def of_type(self, notification_type) -> List[WorkflowNotification]:
        return [n for n in self.sent if n.type == notification_type]

    def clear(self) -> None:
        self.sent.clear()
