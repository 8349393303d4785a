# cantinaxl/services/tropipay.py
"""TropiPay REST client.

Every call re-authenticates with the client-credentials grant, so a link
request always costs one token request plus one link request.
"""
import hashlib
import hmac
import logging
import random
import uuid
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

import httpx
from pydantic import BaseModel

from cantinaxl.core.config import Settings, settings
from cantinaxl.core.exceptions import AuthError, GatewayError, ValidationError
from cantinaxl.models.payment import PaymentClient, WebhookData

logger = logging.getLogger(__name__)

COMMON_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}
SERVICE_PAYMENT_REASON = 4
DEFAULT_COUNTRY_ID = 1


class CallbackUrls(BaseModel):
    success: Optional[str] = None
    failed: Optional[str] = None
    notification: Optional[str] = None


class PaymentLink(BaseModel):
    short_url: str
    gateway_hash: str
    payment_link_id: Optional[str] = None
    raw: dict = {}


def to_minor_units(amount: Any) -> int:
    """Round an amount already expressed in minor units to an integer, half up."""
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid amount: {amount!r}")
    if not value.is_finite() or value <= 0:
        raise ValidationError(f"Invalid amount: {amount!r}")
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compute_signature(bank_order_code: Any, client_id: str, client_secret: str, original_amount: Any) -> str:
    """sha256(bankOrderCode + clientId + sha1(clientSecret) + originalCurrencyAmount)"""
    secret_sha1 = hashlib.sha1(client_secret.encode("utf-8")).hexdigest()
    message = f"{bank_order_code}{client_id}{secret_sha1}{original_amount}"
    return hashlib.sha256(message.encode("utf-8")).hexdigest()


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return f"Non-JSON response: {response.text[:100]}"
    if isinstance(data, dict):
        error = data.get("error") or data.get("message")
        if isinstance(error, dict):
            error = error.get("message") or str(error)
        if error:
            return str(error)
    return str(data)[:200]


class TropiPayClient:
    def __init__(self, config: Settings = settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self._transport = transport

    def _http_client(self) -> httpx.AsyncClient:
        transport = self._transport or httpx.AsyncHTTPTransport(retries=self.config.HTTP_RETRIES)
        return httpx.AsyncClient(
            base_url=self.config.TROPIPAY_API_URL.rstrip("/"),
            headers=COMMON_HEADERS,
            timeout=self.config.HTTP_TIMEOUT,
            transport=transport,
        )

    async def get_access_token(self, client: httpx.AsyncClient) -> str:
        try:
            response = await client.post(
                "/access/token",
                json={
                    "grant_type": "client_credentials",
                    "client_id": self.config.TROPIPAY_CLIENT_ID,
                    "client_secret": self.config.TROPIPAY_CLIENT_SECRET,
                },
            )
        except httpx.HTTPError as e:
            logger.error(f"Error requesting TropiPay access token: {e}")
            raise AuthError(f"Could not reach TropiPay token endpoint: {e}") from e

        if response.is_error:
            message = _error_message(response)
            logger.error(f"TropiPay token request failed ({response.status_code}): {message}")
            raise AuthError(f"Failed to get TropiPay access token: {message}")

        try:
            token = response.json().get("access_token")
        except (ValueError, AttributeError):
            token = None
        if not token:
            raise AuthError("TropiPay did not return an access token")
        return token

    def _build_payload(
        self,
        reference: str,
        concept: str,
        amount: int,
        currency: str,
        description: Optional[str],
        callback_urls: CallbackUrls,
        client: Optional[PaymentClient],
    ) -> dict:
        payload = {
            "reference": reference,
            "concept": concept,
            "description": description,
            "currency": currency,
            "amount": amount,
            "lang": "es",
            "urlSuccess": callback_urls.success,
            "urlFailed": callback_urls.failed,
            # The configured webhook URL wins over whatever the storefront sent
            "urlNotification": self.config.webhook_url or callback_urls.notification,
            "directPayment": True,
            "favorite": False,
            "singleUse": True,
            "reasonId": SERVICE_PAYMENT_REASON,
            "expirationDays": 1,
            "serviceDate": datetime.now(timezone.utc).isoformat(),
        }
        if client is not None:
            payload["client"] = {
                "name": client.name,
                "lastName": client.lastName,
                "address": client.address,
                "phone": client.phone,
                "email": client.email,
                "countryId": client.countryId or DEFAULT_COUNTRY_ID,
                "termsAndConditions": True,
            }
        return payload

    def _mock_link(self, payload: dict) -> PaymentLink:
        mock_hash = uuid.uuid4().hex[:8]
        short_url = f"{self.config.TROPIPAY_SHORT_URL_BASE}/{mock_hash}"
        raw = {
            **payload,
            "id": str(uuid.uuid4()),
            "hash": mock_hash,
            "state": 1,
            "shortUrl": short_url,
            "paymentUrl": short_url,
            "bankOrderCode": str(random.randint(10 ** 11, 10 ** 12 - 1)),
        }
        logger.info(f"Mock payment link created for {payload['reference']}: {short_url}")
        return PaymentLink(short_url=short_url, gateway_hash=mock_hash, payment_link_id=raw["id"], raw=raw)

    async def create_payment_link(
        self,
        reference: str,
        concept: str,
        amount: Any,
        currency: str,
        description: Optional[str] = None,
        callback_urls: Optional[CallbackUrls] = None,
        client: Optional[PaymentClient] = None,
    ) -> PaymentLink:
        missing = [
            name
            for name, value in (
                ("reference", reference),
                ("concept", concept),
                ("amount", amount),
                ("currency", currency),
            )
            if not value
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        payload = self._build_payload(
            reference,
            concept,
            to_minor_units(amount),
            currency,
            description,
            callback_urls or CallbackUrls(),
            client,
        )

        if self.config.MOCK_PAYMENT:
            return self._mock_link(payload)

        if not self.config.has_gateway_credentials:
            logger.error(
                "TropiPay credentials missing: "
                f"client_id={'set' if self.config.TROPIPAY_CLIENT_ID else 'not set'}, "
                f"client_secret={'set' if self.config.TROPIPAY_CLIENT_SECRET else 'not set'}"
            )
            raise AuthError("TropiPay credentials are not configured")

        logger.info(
            f"Creating TropiPay payment link for {reference}: {payload['amount']} {currency}"
        )
        async with self._http_client() as http:
            token = await self.get_access_token(http)
            try:
                response = await http.post(
                    "/paymentcards",
                    json=payload,
                    headers={"Authorization": f"Bearer {token}"},
                )
            except httpx.HTTPError as e:
                logger.error(f"Error calling TropiPay paymentcards for {reference}: {e}")
                raise GatewayError(f"Could not reach TropiPay: {e}") from e

        if response.is_error:
            message = _error_message(response)
            logger.error(f"TropiPay rejected payment link for {reference} ({response.status_code}): {message}")
            raise GatewayError(message, response.status_code)

        try:
            data = response.json()
        except ValueError:
            raise GatewayError(f"Invalid TropiPay response: {response.text[:100]}", response.status_code)

        short_url = data.get("shortUrl")
        gateway_hash = data.get("hash") or (short_url.rstrip("/").rsplit("/", 1)[-1] if short_url else "")
        if not gateway_hash:
            raise GatewayError("TropiPay response did not include a payment link", response.status_code)
        if not short_url:
            short_url = f"{self.config.TROPIPAY_SHORT_URL_BASE}/{gateway_hash}"

        logger.info(f"TropiPay payment link for {reference}: {short_url}")
        return PaymentLink(
            short_url=short_url,
            gateway_hash=gateway_hash,
            payment_link_id=str(data["id"]) if data.get("id") is not None else None,
            raw=data,
        )

    def verify_signature(self, data: WebhookData) -> bool:
        signature = data.signaturev3 or data.signaturev2
        if not signature or data.bankOrderCode is None or data.originalCurrencyAmount is None:
            return False
        if not self.config.has_gateway_credentials:
            logger.error("Cannot verify TropiPay signature without client credentials")
            return False
        expected = compute_signature(
            data.bankOrderCode,
            self.config.TROPIPAY_CLIENT_ID,
            self.config.TROPIPAY_CLIENT_SECRET,
            data.originalCurrencyAmount,
        )
        return hmac.compare_digest(expected, signature)
