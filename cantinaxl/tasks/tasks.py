import asyncio
import logging
from typing import List

from .celery_app import celery_app
from cantinaxl.core.exceptions import CrmSyncError
from cantinaxl.models.order import Order
from cantinaxl.services.brevo_stats import BrevoStatsClient

logger = logging.getLogger(__name__)

@celery_app.task
def sync_order_to_crm_task(snapshot: dict) -> bool:
    try:
        asyncio.run(BrevoStatsClient().register_order(snapshot))
    except CrmSyncError as e:
        logger.error(f"CRM sync failed for order {snapshot.get('orderId')}: {e}")
        return False
    return True

@celery_app.task
def register_products_task(products: List[dict]) -> bool:
    try:
        asyncio.run(BrevoStatsClient().register_products(products))
    except CrmSyncError as e:
        logger.error(f"CRM product registration failed: {e}")
        return False
    return True

def enqueue_order_sync(order: Order) -> None:
    """Queue the CRM mirror of a paid order. Never raises."""
    try:
        sync_order_to_crm_task.delay(order.crm_snapshot())
    except Exception as e:
        logger.error(f"Could not enqueue CRM sync for order {order.reference}: {e}")
