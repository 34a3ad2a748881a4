# marketplace/services/paystack_client.py
import hashlib
import hmac
from typing import Any, Dict
from urllib.parse import quote

import requests
from requests import RequestException

from marketplace.domain.errors import GatewayError, GatewayUnavailableError, TransactionNotFoundError
from marketplace.domain.schemas import InitializedTransaction, VerifiedTransaction
from marketplace.utils.references import generate_payment_reference
from marketplace.utils.settings import (
    GATEWAY_TIMEOUT_SECONDS,
    PAYMENT_CALLBACK_URL,
    PAYSTACK_BASE_URL,
    PAYSTACK_SECRET_KEY,
)
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

SIGNATURE_HEADER = "x-paystack-signature"


def verify_webhook_signature(body: bytes, signature: str | None, secret: str | None = None) -> bool:
    """HMAC-SHA512 surowego body, hex. Porownanie w stalym czasie."""
    secret = secret or PAYSTACK_SECRET_KEY
    if not signature or not secret:
        return False
    expected = hmac.new(secret.encode("utf-8"), body, hashlib.sha512).hexdigest()
    return hmac.compare_digest(expected, signature.strip().lower())


class PaystackClient:
    """
    Klient bramki platnosci.
    - initialize_transaction: kwota w kobo (int > 0)
    - verify_transaction: tylko odczyt, bez retry (retry robi pipeline)
    """

    def __init__(
        self,
        secret_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ):
        self.secret_key = secret_key or PAYSTACK_SECRET_KEY
        if not self.secret_key:
            raise RuntimeError("PAYSTACK_SECRET_KEY is not configured")
        self.base_url = (base_url or PAYSTACK_BASE_URL).rstrip("/")
        self.timeout = timeout or GATEWAY_TIMEOUT_SECONDS

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/json",
        }

    def _request(self, method: str, path: str, payload: Dict[str, Any] | None = None) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        logger.info(f"PaystackClient {method} {url}")

        try:
            resp = requests.request(
                method,
                url,
                json=payload,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except RequestException as e:
            # timeout / brak polaczenia - bezpieczne do ponowienia
            raise GatewayUnavailableError(f"Payment gateway unreachable: {e}") from e

        if resp.status_code >= 500:
            raise GatewayUnavailableError(f"Payment gateway error {resp.status_code}")

        try:
            body = resp.json()
        except ValueError:
            body = {}

        if resp.status_code == 404:
            raise TransactionNotFoundError(body.get("message") or "Transaction not found")

        if resp.status_code >= 400 or not body.get("status"):
            raise GatewayError(body.get("message") or f"Payment gateway request failed ({resp.status_code})")

        data = body.get("data") or {}
        if not isinstance(data, dict):
            raise GatewayError(f"Unexpected payment gateway response for {path}")
        return data

    def initialize_transaction(
        self,
        email: str,
        amount_minor: int,
        reference: str | None = None,
        metadata: Dict[str, Any] | None = None,
        callback_url: str | None = None,
    ) -> InitializedTransaction:
        if isinstance(amount_minor, bool) or not isinstance(amount_minor, int) or amount_minor <= 0:
            raise ValueError("amount_minor must be a positive integer in minor currency units")

        reference = reference or generate_payment_reference()
        data = self._request(
            "POST",
            "/transaction/initialize",
            {
                "email": email,
                "amount": amount_minor,
                "reference": reference,
                "metadata": metadata or {},
                "callback_url": callback_url or PAYMENT_CALLBACK_URL,
            },
        )

        return InitializedTransaction(
            authorization_url=data["authorization_url"],
            access_code=data["access_code"],
            reference=data.get("reference") or reference,
        )

    def verify_transaction(self, reference: str) -> VerifiedTransaction:
        # referencja przychodzi z zapytania, nie moze wyjsc poza /transaction/verify/
        data = self._request("GET", f"/transaction/verify/{quote(reference, safe='')}")

        customer = data.get("customer") or {}
        metadata = data.get("metadata")
        if not isinstance(metadata, dict):
            # paystack potrafi zwrocic "" zamiast obiektu
            metadata = {}

        return VerifiedTransaction(
            status=str(data.get("status") or "").lower(),
            reference=data.get("reference") or reference,
            amount_minor=int(data.get("amount") or 0),
            currency=data.get("currency") or "",
            customer_email=customer.get("email"),
            metadata=metadata,
        )
