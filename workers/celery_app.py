"""Celery app factory."""

from celery import Celery

celery_app = Celery(
    "hiring_workflow",
    include=["workers.tasks.notifications", "workers.tasks.postings"],
)
celery_app.config_from_object("workers.celery_config")
