"""
Seller Balance Celery Tasks

Handles scheduled ledger maintenance:
- Releasing pending order-payment credits whose hold period has ended
- Reconciling cached balance snapshots against the ledger
"""

import logging

from celery import shared_task


logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, queue="payment_tasks")
def release_matured_balances_task(self):
    """
    Move matured pending credits into the available balance (runs hourly from beat).

    Returns:
        dict: {"success": bool, "released": int, "amount": str, "stores": [...]}
    """
    from infrastructure.container import container

    result = container.balance_service().release_matured_funds()
    if not result.ok:
        logger.error(f"Releasing matured balances failed: {result.error_detail}")
        try:
            raise self.retry(countdown=60 * (self.request.retries + 1))
        except self.MaxRetriesExceededError:
            return {"success": False, "error": result.error_detail}

    logger.info(f"Released {result.value['released']} matured credits")
    return {"success": True, **result.value}


@shared_task(queue="payment_tasks")
def reconcile_seller_balances_task(store_ids=None):
    """
    Compare every store's snapshot with its ledger and report the stores that drifted.

    Args:
        store_ids (list): Optional subset of stores; defaults to every store with a balance
    """
    from infrastructure.container import container
    from payment_system.models import SellerBalance

    service = container.balance_service()
    targets = store_ids or [str(pk) for pk in SellerBalance.objects.values_list("store_id", flat=True)]

    drifted = []
    for store_id in targets:
        result = service.reconcile(store_id)
        if not result.ok:
            logger.error(f"Reconciliation failed for store {store_id}: {result.error_detail}")
            drifted.append({"store_id": str(store_id), "error": result.error})
        elif not result.value["balanced"]:
            drifted.append({"store_id": str(store_id), "drift": result.value["drift"]})

    if drifted:
        logger.error(f"Balance reconciliation found {len(drifted)} drifted stores")
    return {"checked": len(targets), "drifted": drifted}
