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

"""Stancer payment intents: creation, lookup and status mapping."""

import logging
from typing import Any, Optional

import requests

from shared.types import PaymentStatus

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.stancer.com"
REQUEST_TIMEOUT = 30  # seconds

# Stancer rejects descriptions longer than 64 characters.
SHORT_ID_LENGTH = 10

_STATUS_MAP = {
    "captured": PaymentStatus.PAID,
    "authorized": PaymentStatus.AUTHORIZED,
    "to_capture": PaymentStatus.AUTHORIZED,
    "capture_sent": PaymentStatus.AUTHORIZED,
    "refused": PaymentStatus.FAILED,
    "failed": PaymentStatus.FAILED,
    "expired": PaymentStatus.FAILED,
    "disputed": PaymentStatus.FAILED,
}


class StancerApiError(Exception):
    """Raised when the Stancer API answers with a non-2xx status."""

    def __init__(self, status_code: int, details: Any):
        super().__init__(f"Stancer API error {status_code}")
        self.status_code = status_code
        self.details = details


def map_stancer_status(stancer_status: Optional[str]) -> PaymentStatus:
    return _STATUS_MAP.get(stancer_status or "", PaymentStatus.PENDING)


def extract_stancer_status(intent: dict) -> Optional[str]:
    """
    Finds the most relevant status in a payment intent payload.

    The intent's own status wins, then the embedded payment, then the last
    payment, then the last entry of the payments list.
    """
    if not isinstance(intent, dict):
        return None
    if intent.get("status") is not None:
        return intent["status"]
    for key in ("payment", "last_payment"):
        nested = intent.get(key)
        if isinstance(nested, dict) and nested.get("status") is not None:
            return nested["status"]
    payments = intent.get("payments")
    if isinstance(payments, list) and payments:
        last = payments[-1]
        if isinstance(last, dict):
            return last.get("status")
    return None


def _short_id(value: str) -> str:
    return str(value).replace("-", "")[:SHORT_ID_LENGTH]


def build_payment_description(order_id: str, user_id: str) -> str:
    return f"Order {_short_id(order_id)} / User {_short_id(user_id)}"


def _json_or_empty(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return {}


class StancerClient:
    """Minimal client for the Stancer v2 payment intents API."""

    def __init__(
        self,
        private_key: str,
        api_base: str = DEFAULT_API_BASE,
        session: requests.Session | None = None,
        timeout: float = REQUEST_TIMEOUT,
    ):
        if not private_key:
            raise ValueError("STANCER_PRIVATE_KEY is required for StancerClient")
        self.private_key = private_key
        self.api_base = api_base.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method: str, path: str, **kwargs) -> dict:
        # Basic auth with the private key as user name and no password.
        response = self.session.request(
            method,
            f"{self.api_base}{path}",
            auth=(self.private_key, ""),
            timeout=self.timeout,
            **kwargs,
        )
        payload = _json_or_empty(response)
        if not response.ok:
            logger.warning(
                "Stancer %s %s failed with status %s", method, path, response.status_code
            )
            raise StancerApiError(response.status_code, payload)
        return payload if isinstance(payload, dict) else {}

    def create_payment_intent(
        self,
        *,
        amount_cents: int,
        description: str,
        idempotency_key: str,
        return_url: str | None = None,
    ) -> dict:
        body = {
            "currency": "eur",
            "amount": amount_cents,
            "description": description,
            "methods_allowed": ["card"],
        }
        if return_url:
            body["return_url"] = return_url
        return self._request(
            "POST",
            "/v2/payment_intents/",
            json=body,
            headers={"Idempotency-Key": str(idempotency_key)},
        )

    def get_payment_intent(self, payment_id: str) -> dict:
        return self._request("GET", f"/v2/payment_intents/{payment_id}")
