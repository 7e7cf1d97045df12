# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

"""Stripe embedded checkout sessions: creation, lookup and status mapping."""

import logging
from typing import Any, Optional
from urllib.parse import quote

import requests

from shared.types import PaymentStatus

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.stripe.com/v1"
REQUEST_TIMEOUT = 30  # seconds

LINE_ITEM_NAME = "Commande Partage"
CHECKOUT_LOCALE = "fr"


class StripeApiError(Exception):
    """Raised when the Stripe API answers with a non-2xx status."""

    def __init__(self, status_code: int, details: Any):
        super().__init__(f"Stripe API error {status_code}")
        self.status_code = status_code
        self.details = details

    @property
    def message(self) -> Optional[str]:
        error = self.details.get("error") if isinstance(self.details, dict) else None
        message = error.get("message") if isinstance(error, dict) else None
        return message if isinstance(message, str) else None


def map_stripe_status(
    session_status: Optional[str], payment_status: Optional[str]
) -> PaymentStatus:
    if session_status == "complete" and payment_status in ("paid", "no_payment_required"):
        return PaymentStatus.PAID
    if session_status == "complete" and payment_status == "unpaid":
        return PaymentStatus.AUTHORIZED
    if session_status == "expired":
        return PaymentStatus.FAILED
    return PaymentStatus.PENDING


def _clean_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def summarize_checkout_session(session_id: str, session: dict) -> dict:
    """
    Flattens a checkout session into the fields the client polls for.
    """
    session_status = _clean_str(session.get("status"))
    payment_status = _clean_str(session.get("payment_status"))
    payment_intent = session.get("payment_intent")
    if isinstance(payment_intent, str):
        payment_intent_id = payment_intent
    elif isinstance(payment_intent, dict) and isinstance(payment_intent.get("id"), str):
        payment_intent_id = payment_intent["id"]
    else:
        payment_intent_id = None
    customer_details = session.get("customer_details") or {}
    customer_email = customer_details.get("email")
    if customer_email is None:
        customer_email = session.get("customer_email")
    return {
        "provider_payment_id": session_id,
        "stripe_status": session_status,
        "payment_status": payment_status,
        "status": map_stripe_status(session_status, payment_status).value,
        "customer_email": customer_email,
        "customer_phone": customer_details.get("phone"),
        "payment_intent_id": payment_intent_id,
    }


def _json_or_empty(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return {}


class StripeCheckoutClient:
    """Minimal form-encoded client for Stripe checkout sessions."""

    def __init__(
        self,
        secret_key: str,
        api_base: str = DEFAULT_API_BASE,
        session: requests.Session | None = None,
        timeout: float = REQUEST_TIMEOUT,
    ):
        if not secret_key:
            raise ValueError("STRIPE_SECRET_KEY is required for StripeCheckoutClient")
        self.secret_key = secret_key
        self.api_base = api_base.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method: str, path: str, headers: dict | None = None, **kwargs) -> dict:
        response = self.session.request(
            method,
            f"{self.api_base}{path}",
            headers={"Authorization": f"Bearer {self.secret_key}", **(headers or {})},
            timeout=self.timeout,
            **kwargs,
        )
        payload = _json_or_empty(response)
        if not response.ok:
            logger.warning(
                "Stripe %s %s failed with status %s", method, path, response.status_code
            )
            raise StripeApiError(response.status_code, payload)
        return payload if isinstance(payload, dict) else {}

    def create_checkout_session(
        self,
        *,
        order_id: str,
        user_id: str,
        amount_cents: int,
        return_url: str,
        idempotency_key: str,
        customer_email: str | None = None,
    ) -> dict:
        form = [
            ("mode", "payment"),
            ("ui_mode", "embedded"),
            ("locale", CHECKOUT_LOCALE),
            ("return_url", return_url),
            ("line_items[0][price_data][currency]", "eur"),
            ("line_items[0][price_data][product_data][name]", LINE_ITEM_NAME),
            (
                "line_items[0][price_data][product_data][description]",
                f"Commande {order_id}",
            ),
            ("line_items[0][price_data][unit_amount]", str(amount_cents)),
            ("line_items[0][quantity]", "1"),
            ("metadata[order_id]", str(order_id)),
            ("metadata[user_id]", str(user_id)),
            ("payment_intent_data[metadata][order_id]", str(order_id)),
            ("payment_intent_data[metadata][user_id]", str(user_id)),
            ("phone_number_collection[enabled]", "false"),
        ]
        if customer_email:
            form.append(("customer_email", customer_email))
        return self._request(
            "POST",
            "/checkout/sessions",
            data=form,
            headers={"Idempotency-Key": str(idempotency_key)},
        )

    def retrieve_checkout_session(self, session_id: str) -> dict:
        return self._request(
            "GET",
            f"/checkout/sessions/{quote(session_id, safe='')}",
            params={"expand[]": "payment_intent"},
        )
