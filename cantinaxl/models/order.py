# cantinaxl/models/order.py
from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from enum import Enum

class OrderStatus(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    REJECTED = "rejected"
    EXPIRED = "expired"
    CANCELLED = "cancelled"

TERMINAL_STATUSES = frozenset({
    OrderStatus.SUCCEEDED,
    OrderStatus.REJECTED,
    OrderStatus.EXPIRED,
    OrderStatus.CANCELLED,
})

class Order(BaseModel):
    reference: str
    amount: int  # minor currency units
    currency: str
    status: OrderStatus = OrderStatus.PENDING
    concept: Optional[str] = None
    gateway_transaction_id: Optional[str] = None
    failure_reason: Optional[str] = None
    payment_link_id: Optional[str] = None
    payment_link_hash: Optional[str] = None
    short_url: Optional[str] = None
    customer_email: Optional[str] = None
    package_id: Optional[str] = None
    package_quantity: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def crm_snapshot(self) -> dict:
        """Order data in the shape the CRM order sync expects."""
        return {
            "orderId": self.reference,
            "email": self.customer_email,
            "totalAmount": self.amount / 100,
            "packageId": self.package_id,
            "packageQuantity": self.package_quantity,
            "packagePrice": self.amount / 100 / max(self.package_quantity, 1),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
