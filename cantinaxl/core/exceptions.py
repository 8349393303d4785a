# cantinaxl/core/exceptions.py
from typing import Optional


class PaymentServiceError(Exception):
    """Base class for errors raised by the payment flows."""


class ConfigurationError(PaymentServiceError):
    """Required configuration is missing or unsafe for the environment."""


class ValidationError(PaymentServiceError):
    """Missing or malformed input. Not retried."""


class AuthError(PaymentServiceError):
    """The gateway credential exchange failed."""


class GatewayError(PaymentServiceError):
    """The payment gateway answered with a failure."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class UnknownOrderError(PaymentServiceError):
    """A webhook referenced an order that does not exist."""

    def __init__(self, reference: str):
        super().__init__(f"Order {reference} not found")
        self.reference = reference


class PersistenceError(PaymentServiceError):
    """The order store could not be read or updated. Safe to retry."""


class PaymentRejected(PaymentServiceError):
    """The card was rejected."""


class CrmSyncError(PaymentServiceError):
    """The marketing platform rejected or failed a sync call."""
