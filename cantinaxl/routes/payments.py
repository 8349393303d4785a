# cantinaxl/routes/payments.py
from fastapi import APIRouter, HTTPException, Depends, status, Response
import asyncpg
from cantinaxl.core.database import get_db_connection
from cantinaxl.core.config import settings
from cantinaxl.core.exceptions import (
    AuthError,
    GatewayError,
    PaymentRejected,
    PersistenceError,
    UnknownOrderError,
    ValidationError,
)
from cantinaxl.models.order import Order
from cantinaxl.models.payment import (
    CardPaymentRequest,
    CardPaymentResponse,
    PaymentLinkRequest,
    PaymentLinkResponse,
    PaymentStatusResponse,
    WebhookAck,
    WebhookPayload,
)
from cantinaxl.services.card_processor import process_card_payment
from cantinaxl.services.orders import OrderRepository, PostgresOrderRepository
from cantinaxl.services.tropipay import CallbackUrls, TropiPayClient, to_minor_units
from cantinaxl.services.webhook import WebhookProcessor
import logging

router = APIRouter()
logger = logging.getLogger(__name__)

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

def get_gateway_client() -> TropiPayClient:
    return TropiPayClient()

async def get_order_repository(
    conn: asyncpg.Connection = Depends(get_db_connection),
) -> OrderRepository:
    return PostgresOrderRepository(conn)

def get_webhook_processor(
    repository: OrderRepository = Depends(get_order_repository),
    gateway: TropiPayClient = Depends(get_gateway_client),
) -> WebhookProcessor:
    return WebhookProcessor(
        repository,
        gateway.verify_signature,
        skip_signature=settings.SKIP_SIGNATURE_VERIFICATION and not settings.is_production,
    )

@router.post("/create-payment-link", response_model=PaymentLinkResponse)
async def create_payment_link(
    body: PaymentLinkRequest,
    response: Response,
    gateway: TropiPayClient = Depends(get_gateway_client),
    repository: OrderRepository = Depends(get_order_repository),
):
    """Create a single-use TropiPay link and register the pending order"""
    logger.info(
        f"Creating TropiPay payment link: reference={body.reference} "
        f"amount={body.amount} currency={body.currency}"
    )
    try:
        if body.reference:
            existing = await repository.get(body.reference)
            if existing and existing.is_terminal:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"Order {body.reference} is already {existing.status.value}"
                )

        link = await gateway.create_payment_link(
            reference=body.reference,
            concept=body.concept,
            amount=body.amount,
            currency=body.currency,
            description=body.description,
            callback_urls=CallbackUrls(
                success=body.urlSuccess,
                failed=body.urlFailed,
                notification=body.urlNotification,
            ),
            client=body.client,
        )

        order = Order(
            reference=body.reference,
            amount=to_minor_units(body.amount),
            currency=body.currency,
            concept=body.concept,
            payment_link_id=link.payment_link_id,
            payment_link_hash=link.gateway_hash,
            short_url=link.short_url,
            customer_email=body.client.email if body.client else None,
            package_id=body.packageId,
            package_quantity=body.packageQuantity,
        )
        try:
            await repository.create_pending(order)
        except ValidationError as e:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

        response.headers.update(NO_CACHE_HEADERS)
        return {
            "success": True,
            "shortUrl": link.short_url,
            "gatewayHash": link.gateway_hash,
            "paymentLinkId": link.payment_link_id,
            "reference": body.reference,
        }
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except AuthError as e:
        logger.error(f"TropiPay authentication failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Payment gateway authentication failed"
        )
    except GatewayError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except Exception as e:
        if isinstance(e, HTTPException):
            raise
        logger.error(f"Error creating TropiPay payment link: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error creando link de pago"
        )

@router.post("/process-card", response_model=CardPaymentResponse)
async def process_card(body: CardPaymentRequest):
    """Simulated card payment against the test card whitelist"""
    if settings.is_production:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Test card payments are disabled in production"
        )
    try:
        result = await process_card_payment(body.cardNumber, body.expiryDate, body.cvv, body.amount)
    except (ValidationError, PaymentRejected) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {
        "success": result.success,
        "transactionId": result.transaction_id,
        "amount": result.amount,
        "message": "Pago procesado correctamente",
    }

@router.post("/webhook", response_model=WebhookAck, status_code=status.HTTP_200_OK)
async def tropipay_webhook(
    payload: WebhookPayload,
    processor: WebhookProcessor = Depends(get_webhook_processor),
):
    """Handle TropiPay payment status notifications"""
    try:
        result = await processor.process(payload)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except UnknownOrderError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except Exception as e:
        logger.error(f"Error processing payment webhook: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error processing payment webhook"
        )

    return {
        "success": True,
        "reference": result.order.reference,
        "status": result.order.status.value,
        "duplicate": result.duplicate,
    }

@router.get("/status/{reference}", response_model=PaymentStatusResponse)
async def get_payment_status(
    reference: str,
    repository: OrderRepository = Depends(get_order_repository),
):
    """Get payment status for an order"""
    try:
        order = await repository.get(reference)
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    if not order:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")

    return {
        "reference": order.reference,
        "status": order.status.value,
        "amount": order.amount,
        "currency": order.currency,
        "gateway_transaction_id": order.gateway_transaction_id,
        "failure_reason": order.failure_reason,
        "short_url": order.short_url,
        "last_updated": order.updated_at,
    }
