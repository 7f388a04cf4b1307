# apps/storefront/services/payments/razorpay_gateway.py

from __future__ import annotations

import hashlib
import hmac
import time
from typing import Any, Dict, Optional

import requests


PAYMENT_STATUS = {
    "PENDING": "pending",
    "PROCESSING": "processing",
    "COMPLETED": "completed",
    "FAILED": "failed",
    "CANCELLED": "cancelled",
    "REFUNDED": "refunded",
}


class GatewayError(RuntimeError):
    pass


def _retry_delay(retry_after: Optional[str], default: float) -> float:
    """Seconds from a Retry-After header. HTTP-date and junk values fall back to the default."""
    try:
        return max(0.0, float(retry_after))
    except (TypeError, ValueError):
        return default


def compute_signature(key_secret: str, gateway_order_id: str, payment_id: str) -> str:
    message = f"{gateway_order_id}|{payment_id}".encode("utf-8")
    return hmac.new(key_secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_payment_signature(
    key_secret: str,
    gateway_order_id: str,
    payment_id: str,
    signature: Optional[str],
) -> bool:
    """
    Checkout callbacks carry hex HMAC-SHA256 of "<order_id>|<payment_id>"
    keyed with the account secret.
    """
    if not (key_secret and gateway_order_id and payment_id and signature):
        return False
    expected = compute_signature(key_secret, gateway_order_id, payment_id)
    return hmac.compare_digest(expected, signature)


class RazorpayGateway:
    """
    Razorpay REST client (orders, payments, refunds).

    - Basic auth with key id / secret
    - Amounts in paise
    - Retries on network errors, 5xx and 429; 4xx fails fast
    """

    BASE_URL = "https://api.razorpay.com/v1"
    TIMEOUT_SECONDS = 20
    MAX_RETRIES = 3
    RETRY_BACKOFF_SECONDS = 1.5

    def __init__(self, key_id: str, key_secret: str):
        if not key_id or not key_secret:
            raise ValueError("RazorpayGateway requires key_id and key_secret")
        self.key_id = key_id.strip()
        self.key_secret = key_secret.strip()

    # ---------------------------------------------------------
    # Low-level request handler
    # ---------------------------------------------------------
    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        url = f"{self.BASE_URL}{path}"
        last_error: Optional[Exception] = None

        for attempt in range(1, self.MAX_RETRIES + 1):
            try:
                response = requests.request(
                    method=method,
                    url=url,
                    auth=(self.key_id, self.key_secret),
                    json=json,
                    headers={"Accept": "application/json"},
                    timeout=self.TIMEOUT_SECONDS,
                )
            except requests.RequestException as e:
                last_error = e
                if attempt < self.MAX_RETRIES:
                    time.sleep(self.RETRY_BACKOFF_SECONDS * attempt)
                    continue
                break

            if response.status_code == 429:
                time.sleep(_retry_delay(response.headers.get("Retry-After"), self.RETRY_BACKOFF_SECONDS))
                last_error = GatewayError("rate limited")
                continue

            if response.status_code >= 500:
                last_error = GatewayError(f"gateway error {response.status_code}")
                if attempt < self.MAX_RETRIES:
                    time.sleep(self.RETRY_BACKOFF_SECONDS * attempt)
                    continue
                break

            if response.status_code >= 400:
                detail = ""
                try:
                    detail = (response.json().get("error") or {}).get("description") or ""
                except ValueError:
                    detail = response.text
                raise GatewayError(f"Razorpay rejected request ({response.status_code}): {detail}")

            return response.json() if response.content else {}

        raise GatewayError(f"Razorpay request failed after retries: {last_error}")

    # ---------------------------------------------------------
    # Public helpers
    # ---------------------------------------------------------
    def create_order(
        self,
        *,
        amount_paise: int,
        currency: str,
        receipt: str,
        notes: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/orders",
            json={
                "amount": int(amount_paise),
                "currency": currency,
                "receipt": receipt[:40],
                "notes": notes or {},
            },
        )

    def refund(self, payment_id: str, *, amount_paise: Optional[int] = None, notes: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {"notes": notes or {}}
        if amount_paise is not None:
            body["amount"] = int(amount_paise)
        return self._request("POST", f"/payments/{payment_id}/refund", json=body)

    def verify(self, gateway_order_id: str, payment_id: str, signature: Optional[str]) -> bool:
        return verify_payment_signature(self.key_secret, gateway_order_id, payment_id, signature)
