from .celery_app import celery_app

# Registers the CRM sync tasks with the worker.
from .tasks import enqueue_order_sync, register_products_task, sync_order_to_crm_task  # noqa: F401

__all__ = ("celery_app", "enqueue_order_sync", "register_products_task", "sync_order_to_crm_task")
