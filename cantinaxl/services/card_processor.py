# cantinaxl/services/card_processor.py
import asyncio
import logging
import uuid
from typing import Any, Optional

from pydantic import BaseModel

from cantinaxl.core.config import settings
from cantinaxl.core.exceptions import PaymentRejected, ValidationError

logger = logging.getLogger(__name__)

# Test instruments accepted outside production
VALID_TEST_CARDS = (
    {"number": "4242424242424242", "expiry": "12/25", "cvv": "123"},  # Visa
    {"number": "5555555555554444", "expiry": "12/25", "cvv": "123"},  # Mastercard
)


class CardPaymentResult(BaseModel):
    transaction_id: str
    success: bool
    amount: float


def _mask(card_number: str) -> str:
    return f"**** {card_number[-4:]}" if len(card_number) >= 4 else "****"


async def process_card_payment(
    card_number: Optional[str],
    expiry: Optional[str],
    cvv: Optional[str],
    amount: Any,
    delay: Optional[float] = None,
) -> CardPaymentResult:
    if not card_number or not expiry or not cvv or amount is None:
        raise ValidationError("Missing required card payment fields")

    number = "".join(card_number.split())
    logger.info(f"Processing card payment: card={_mask(number)} expiry={expiry} amount={amount}")

    await asyncio.sleep(settings.CARD_PROCESSING_DELAY if delay is None else delay)

    if not any(card["number"] == number for card in VALID_TEST_CARDS):
        logger.warning(f"Invalid card number: {_mask(number)}")
        raise PaymentRejected("Tarjeta inválida o rechazada")

    transaction_id = f"card_{uuid.uuid4().hex[:9]}"
    logger.info(f"Payment processed successfully: {transaction_id} amount={amount}")
    return CardPaymentResult(transaction_id=transaction_id, success=True, amount=float(amount))
