# cantinaxl/services/webhook.py
"""Translate TropiPay payment notifications into order status changes.

TropiPay redelivers notifications until it gets a 2xx, so a notification
for an order that is already terminal is acknowledged without touching the
order. The transition itself goes through the repository's conditional
update, which settles concurrent deliveries for the same reference.
"""
import logging
from typing import Callable, Optional

from pydantic import BaseModel

from cantinaxl.core.exceptions import UnknownOrderError, ValidationError
from cantinaxl.models.order import Order, OrderStatus
from cantinaxl.models.payment import WebhookData, WebhookPayload
from cantinaxl.services.orders import OrderRepository
from cantinaxl.tasks.tasks import enqueue_order_sync

logger = logging.getLogger(__name__)

# gateway state code -> (envelope status, target order status)
STATE_TRANSITIONS = {
    5: ("success", OrderStatus.SUCCEEDED),
    2: ("failed", OrderStatus.REJECTED),
    3: ("failed", OrderStatus.EXPIRED),
    4: ("failed", OrderStatus.CANCELLED),
}

FAILURE_REASONS = {
    OrderStatus.REJECTED: "Payment was rejected by the payment processor",
    OrderStatus.EXPIRED: "Payment link has expired",
    OrderStatus.CANCELLED: "Payment was cancelled by the user",
}


class WebhookResult(BaseModel):
    order: Order
    applied: bool

    @property
    def duplicate(self) -> bool:
        return not self.applied


def target_status(payload: WebhookPayload) -> OrderStatus:
    try:
        expected_status, target = STATE_TRANSITIONS[payload.data.state]
    except KeyError:
        raise ValidationError(f"Unknown payment state code: {payload.data.state}")
    if payload.status != expected_status:
        raise ValidationError(
            f"Webhook status '{payload.status}' does not match state code {payload.data.state}"
        )
    return target


class WebhookProcessor:
    def __init__(
        self,
        repository: OrderRepository,
        verify_signature: Callable[[WebhookData], bool],
        skip_signature: bool = False,
        on_succeeded: Callable[[Order], None] = enqueue_order_sync,
    ):
        self.repository = repository
        self.verify_signature = verify_signature
        self.skip_signature = skip_signature
        self.on_succeeded = on_succeeded

    def _check_signature(self, data: WebhookData) -> None:
        if self.skip_signature:
            logger.warning(f"Signature verification bypassed for webhook {data.reference}")
            return
        if not self.verify_signature(data):
            logger.error(f"Invalid webhook signature for {data.reference}")
            raise ValidationError("Invalid signature")

    async def process(self, payload: WebhookPayload) -> WebhookResult:
        data = payload.data
        target = target_status(payload)
        self._check_signature(data)

        order = await self.repository.get(data.reference)
        if order is None:
            logger.error(f"Webhook for unknown order {data.reference}")
            raise UnknownOrderError(data.reference)

        if order.is_terminal:
            logger.info(
                f"Duplicate webhook for order {data.reference}: already {order.status.value}, "
                f"received {target.value}"
            )
            return WebhookResult(order=order, applied=False)

        if data.amount is not None and data.amount != order.amount:
            logger.warning(
                f"Webhook amount {data.amount} differs from order {data.reference} amount {order.amount}"
            )

        failure_reason = None
        if target != OrderStatus.SUCCEEDED:
            failure_reason = data.failureReason or FAILURE_REASONS[target]

        updated = await self.repository.compare_and_set_status(
            data.reference,
            {OrderStatus.PENDING},
            target,
            gateway_transaction_id=str(data.bankOrderCode) if data.bankOrderCode is not None else None,
            failure_reason=failure_reason,
        )
        if updated is None:
            # Another delivery finalised the order between the read and the update
            current = await self.repository.get(data.reference) or order
            logger.info(f"Concurrent webhook for order {data.reference}: now {current.status.value}")
            return WebhookResult(order=current, applied=False)

        logger.info(f"Order {data.reference} payment status: {order.status.value} -> {updated.status.value}")

        if updated.status == OrderStatus.SUCCEEDED:
            try:
                self.on_succeeded(updated)
            except Exception as e:
                logger.error(f"CRM sync hook failed for order {data.reference}: {e}")

        return WebhookResult(order=updated, applied=True)
