# cantinaxl/services/orders.py
"""Order storage.

The payment flows only rely on three operations: lookup by reference,
creation of a pending order, and an atomic conditional status update. The
conditional update is what keeps a terminal order terminal when the gateway
redelivers a notification concurrently.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional

import asyncpg

from cantinaxl.core.database import log_activity
from cantinaxl.core.exceptions import PersistenceError, ValidationError
from cantinaxl.models.order import Order, OrderStatus

logger = logging.getLogger(__name__)

DB_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


class OrderRepository:
    async def get(self, reference: str) -> Optional[Order]:
        raise NotImplementedError

    async def create_pending(self, order: Order) -> Order:
        raise NotImplementedError

    async def compare_and_set_status(
        self,
        reference: str,
        expected_statuses: Iterable[OrderStatus],
        new_status: OrderStatus,
        gateway_transaction_id: Optional[str] = None,
        failure_reason: Optional[str] = None,
    ) -> Optional[Order]:
        """Set ``new_status`` only if the current status is one of ``expected_statuses``.

        Returns the updated order, or None when the precondition did not hold.
        """
        raise NotImplementedError


class PostgresOrderRepository(OrderRepository):
    def __init__(self, conn: asyncpg.Connection):
        self.conn = conn

    async def get(self, reference: str) -> Optional[Order]:
        try:
            row = await self.conn.fetchrow("SELECT * FROM orders WHERE reference = $1", reference)
        except DB_ERRORS as e:
            logger.error(f"Error loading order {reference}: {e}")
            raise PersistenceError(f"Could not load order {reference}") from e
        return Order(**dict(row)) if row else None

    async def create_pending(self, order: Order) -> Order:
        try:
            async with self.conn.transaction():
                row = await self.conn.fetchrow(
                    """
                    INSERT INTO orders (
                        reference, amount, currency, status, concept,
                        payment_link_id, payment_link_hash, short_url,
                        customer_email, package_id, package_quantity
                    )
                    VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
                    ON CONFLICT (reference) DO UPDATE
                    SET amount = EXCLUDED.amount,
                        currency = EXCLUDED.currency,
                        concept = EXCLUDED.concept,
                        payment_link_id = EXCLUDED.payment_link_id,
                        payment_link_hash = EXCLUDED.payment_link_hash,
                        short_url = EXCLUDED.short_url,
                        customer_email = EXCLUDED.customer_email,
                        package_id = EXCLUDED.package_id,
                        package_quantity = EXCLUDED.package_quantity,
                        updated_at = CURRENT_TIMESTAMP
                    WHERE orders.status = $4
                    RETURNING *
                    """,
                    order.reference,
                    order.amount,
                    order.currency,
                    OrderStatus.PENDING.value,
                    order.concept,
                    order.payment_link_id,
                    order.payment_link_hash,
                    order.short_url,
                    order.customer_email,
                    order.package_id,
                    order.package_quantity,
                )
                if row:
                    await log_activity(
                        self.conn,
                        "payment_link_created",
                        "orders",
                        order.reference,
                        {"payment_link_id": order.payment_link_id, "amount": order.amount},
                    )
        except DB_ERRORS as e:
            logger.error(f"Error storing order {order.reference}: {e}")
            raise PersistenceError(f"Could not store order {order.reference}") from e

        if not row:
            raise ValidationError(f"Order {order.reference} is already finalised")
        return Order(**dict(row))

    async def compare_and_set_status(
        self,
        reference: str,
        expected_statuses: Iterable[OrderStatus],
        new_status: OrderStatus,
        gateway_transaction_id: Optional[str] = None,
        failure_reason: Optional[str] = None,
    ) -> Optional[Order]:
        expected = [OrderStatus(s).value for s in expected_statuses]
        try:
            async with self.conn.transaction():
                row = await self.conn.fetchrow(
                    """
                    UPDATE orders
                    SET status = $2,
                        gateway_transaction_id = COALESCE($3, gateway_transaction_id),
                        failure_reason = $4,
                        updated_at = CURRENT_TIMESTAMP
                    WHERE reference = $1 AND status = ANY($5::varchar[])
                    RETURNING *
                    """,
                    reference,
                    new_status.value,
                    gateway_transaction_id,
                    failure_reason,
                    expected,
                )
                if row:
                    await log_activity(
                        self.conn,
                        "payment_status_changed",
                        "orders",
                        reference,
                        {
                            "status": new_status.value,
                            "gateway_transaction_id": gateway_transaction_id,
                            "failure_reason": failure_reason,
                        },
                    )
        except DB_ERRORS as e:
            logger.error(f"Error updating order {reference} to {new_status.value}: {e}")
            raise PersistenceError(f"Could not update order {reference}") from e
        return Order(**dict(row)) if row else None


class InMemoryOrderRepository(OrderRepository):
    """Process-local store, safe for concurrent coroutines on one event loop."""

    def __init__(self, orders: Optional[Iterable[Order]] = None):
        self._orders: Dict[str, Order] = {}
        self._lock = asyncio.Lock()
        for order in orders or ():
            now = datetime.now(timezone.utc)
            self._orders[order.reference] = order.model_copy(
                update={"created_at": order.created_at or now, "updated_at": order.updated_at or now}
            )

    async def get(self, reference: str) -> Optional[Order]:
        return self._orders.get(reference)

    async def create_pending(self, order: Order) -> Order:
        async with self._lock:
            now = datetime.now(timezone.utc)
            existing = self._orders.get(order.reference)
            if existing is not None and existing.status != OrderStatus.PENDING:
                raise ValidationError(f"Order {order.reference} is already finalised")
            stored = order.model_copy(
                update={
                    "status": OrderStatus.PENDING,
                    "created_at": existing.created_at if existing else now,
                    "updated_at": now,
                }
            )
            self._orders[order.reference] = stored
            return stored

    async def compare_and_set_status(
        self,
        reference: str,
        expected_statuses: Iterable[OrderStatus],
        new_status: OrderStatus,
        gateway_transaction_id: Optional[str] = None,
        failure_reason: Optional[str] = None,
    ) -> Optional[Order]:
        expected = {OrderStatus(s) for s in expected_statuses}
        async with self._lock:
            current = self._orders.get(reference)
            if current is None or current.status not in expected:
                return None
            updated = current.model_copy(
                update={
                    "status": new_status,
                    "gateway_transaction_id": gateway_transaction_id or current.gateway_transaction_id,
                    "failure_reason": failure_reason,
                    "updated_at": datetime.now(timezone.utc),
                }
            )
            self._orders[reference] = updated
            return updated
