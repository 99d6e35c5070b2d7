"""
Payment System Tasks Package

Celery task definitions for the seller balance ledger.
"""

# Import tasks to ensure they are registered with Celery
from .balance_tasks import reconcile_seller_balances_task, release_matured_balances_task

__all__ = [
    "reconcile_seller_balances_task",
    "release_matured_balances_task",
]
