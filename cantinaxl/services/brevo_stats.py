# cantinaxl/services/brevo_stats.py
"""Purchase statistics mirrored into Brevo.

Both calls are upserts keyed by product/order id on Brevo's side, so they can
be replayed safely. Nothing here is on the payment path: callers run these
from Celery and swallow CrmSyncError.
"""
import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

import httpx

from cantinaxl.core.config import Settings, settings
from cantinaxl.core.exceptions import CrmSyncError

logger = logging.getLogger(__name__)

PRODUCT_CATEGORY = "meal-package"


class BrevoStatsClient:
    def __init__(self, config: Settings = settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self._transport = transport

    def _http_client(self) -> httpx.AsyncClient:
        transport = self._transport or httpx.AsyncHTTPTransport(retries=self.config.HTTP_RETRIES)
        return httpx.AsyncClient(
            base_url=self.config.BREVO_API_URL.rstrip("/"),
            headers={
                "Accept": "application/json",
                "Content-Type": "application/json",
                "api-key": self.config.BREVO_API_KEY,
            },
            timeout=self.config.HTTP_TIMEOUT,
            transport=transport,
        )

    async def _post(self, path: str, payload: dict) -> dict:
        if not self.config.BREVO_API_KEY:
            raise CrmSyncError("BREVO_API_KEY is not configured")

        try:
            async with self._http_client() as client:
                response = await client.post(path, json=payload)
        except httpx.HTTPError as e:
            raise CrmSyncError(f"Could not reach Brevo: {e}") from e

        if response.is_error:
            try:
                message = str(response.json())
            except ValueError:
                message = f"Non-JSON response: {response.text[:100]}..."
            raise CrmSyncError(f"API error: {response.status_code} - {message}")

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            raise CrmSyncError(f"Failed to parse response as JSON. Response: {response.text[:100]}...")

    def product_payload(self, products: Iterable[dict]) -> dict:
        storefront = self.config.STOREFRONT_URL.rstrip("/")
        return {
            "products": [
                {
                    "id": product["id"],
                    "name": product["name"],
                    "url": f"{storefront}/packages/{product['id']}",
                    "imageUrl": product.get("imageUrl") or "",
                    "price": product.get("price", 0),
                    "categories": [PRODUCT_CATEGORY],
                    "metadata": {
                        "meals": product.get("meals"),
                        "description": product.get("description"),
                    },
                }
                for product in products
            ]
        }

    def order_payload(self, snapshot: dict) -> dict:
        now = datetime.now(timezone.utc).isoformat()
        return {
            "historical": True,
            "orders": [
                {
                    "identifiers": {"email_id": snapshot.get("email")},
                    "id": snapshot["orderId"],
                    "createdAt": snapshot.get("createdAt") or now,
                    "updatedAt": now,
                    "status": "completed",
                    "amount": snapshot.get("totalAmount"),
                    "storeId": self.config.BREVO_STORE_ID,
                    "coupons": [snapshot.get("coupon") or ""],
                    "products": [
                        {
                            "productId": snapshot.get("packageId"),
                            "quantity": snapshot.get("packageQuantity") or 1,
                            "price": snapshot.get("packagePrice"),
                        }
                    ],
                }
            ],
        }

    async def register_products(self, products: Iterable[dict]) -> dict:
        payload = self.product_payload(products)
        logger.info(f"Registering {len(payload['products'])} products in Brevo")
        data = await self._post("/products/batch", payload)
        logger.info("Products registered successfully in Brevo")
        return data

    async def register_order(self, snapshot: dict) -> dict:
        payload = self.order_payload(snapshot)
        logger.info(f"Registering order {snapshot['orderId']} in Brevo")
        data = await self._post("/orders/status/batch", payload)
        logger.info(f"Order {snapshot['orderId']} registered successfully in Brevo")
        return data
