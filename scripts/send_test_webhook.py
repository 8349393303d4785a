# scripts/send_test_webhook.py
"""
Send a mock TropiPay webhook to a running instance.
Signs the payload with the local TropiPay credentials when they are set.
"""
import argparse
import os
import sys
import time
import uuid
from datetime import datetime, timezone

import httpx

# Add parent directory to path so we can import app modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cantinaxl.core.config import settings
from cantinaxl.services.tropipay import compute_signature
from cantinaxl.services.webhook import FAILURE_REASONS, STATE_TRANSITIONS

DEFAULT_URL = "http://localhost:3001/api/payments/webhook"

def build_payload(reference: str, amount: int, state: int, currency: str = "EUR") -> dict:
    envelope_status, target = STATE_TRANSITIONS[state]
    bank_order_code = f"MOCK-{int(time.time() * 1000)}"
    signature = "mock-signature"
    if settings.has_gateway_credentials:
        signature = compute_signature(
            bank_order_code, settings.TROPIPAY_CLIENT_ID, settings.TROPIPAY_CLIENT_SECRET, amount
        )
    data = {
        "state": state,
        "reference": reference,
        "originalCurrencyAmount": amount,
        "bankOrderCode": bank_order_code,
        "signaturev2": signature,
        "currency": currency,
        "amount": amount,
        "concept": f"Test payment for order {reference}",
        "description": "Mock webhook for testing",
        "createdAt": datetime.now(timezone.utc).isoformat(),
    }
    if target in FAILURE_REASONS:
        data["failureReason"] = FAILURE_REASONS[target]
    return {"status": envelope_status, "data": data}

def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Send a mock TropiPay webhook")
    parser.add_argument("--url", default=DEFAULT_URL)
    parser.add_argument("--reference", default=None, help="Order reference (random when omitted)")
    parser.add_argument("--amount", type=int, default=10000, help="Amount in cents")
    parser.add_argument(
        "--state",
        type=int,
        default=5,
        choices=sorted(STATE_TRANSITIONS),
        help="5=completed, 2=rejected, 3=expired, 4=cancelled",
    )
    args = parser.parse_args(argv)

    reference = args.reference or str(uuid.uuid4())
    payload = build_payload(reference, args.amount, args.state)
    print(f"Sending webhook for {reference} (state {args.state}) to {args.url}")

    try:
        response = httpx.post(args.url, json=payload, timeout=10)
    except httpx.HTTPError as e:
        print(f"Error sending webhook: {e}")
        print(f"Make sure the server is running at {args.url}")
        return 1

    print(f"Status: {response.status_code}")
    print(f"Data: {response.text}")
    return 0 if response.is_success else 1

if __name__ == "__main__":
    sys.exit(main())
