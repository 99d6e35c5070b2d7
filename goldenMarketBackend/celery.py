"""
Celery Configuration for Golden Market Backend

This module configures Celery for handling asynchronous tasks and scheduled jobs.
Includes seller balance hold releases and fulfillment notifications.
"""

import os

from celery import Celery


# Set the default Django settings module for the 'celery' program.
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "goldenMarketBackend.settings")

app = Celery("goldenMarketBackend")

app.config_from_object("django.conf:settings", namespace="CELERY")

# Load task modules from all registered Django apps.
app.autodiscover_tasks()
app.autodiscover_tasks(["payment_system.Tasks"])

app.conf.beat_schedule = {
    # Move matured pending credits into the available balance
    "release-matured-seller-balances": {
        "task": "payment_system.Tasks.balance_tasks.release_matured_balances_task",
        "schedule": 60.0 * 60.0,  # Every hour
        "options": {"expires": 15.0 * 60.0, "queue": "payment_tasks"},
    },
    # Snapshot vs ledger drift report
    "reconcile-seller-balances": {
        "task": "payment_system.Tasks.balance_tasks.reconcile_seller_balances_task",
        "schedule": 60.0 * 60.0 * 24,  # Daily
        "options": {"queue": "payment_tasks"},
    },
}

app.conf.update(
    task_routes={
        "payment_system.Tasks.balance_tasks.*": {"queue": "payment_tasks"},
        "marketplace.tasks.*": {"queue": "marketplace_tasks"},
    },
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    result_expires=60 * 60 * 24,  # Results expire after 24 hours
    worker_max_tasks_per_child=1000,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=30 * 60,  # 30 minutes
    task_soft_time_limit=25 * 60,  # 25 minutes
)
