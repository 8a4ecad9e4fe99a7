import hashlib
import hmac
import json
import logging
import os
from typing import Callable, NamedTuple, Optional

import requests
from django.conf import settings
from requests import RequestException
from requests.auth import HTTPBasicAuth

from storefront.exceptions import ConfigurationError, GatewayError, ValidationError

logger = logging.getLogger(__name__)

COMMON_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}
NOTE_MAX_LEN = 256  # Razorpay rejects longer note values


class RazorpayCredentials(NamedTuple):
    key_id: str
    key_secret: str


class RemoteOrder(NamedTuple):
    remote_order_id: str
    amount: int
    currency: str


def resolve_credentials() -> RazorpayCredentials:
    """Environment first, then the SiteSetting row. Read on every call."""
    from payments.models import SiteSetting

    key_id = (os.getenv("RAZORPAY_KEY_ID") or "").strip()
    key_secret = (os.getenv("RAZORPAY_KEY_SECRET") or "").strip()
    if not (key_id and key_secret):
        row = SiteSetting.current()
        if row is not None:
            key_id = key_id or (row.razorpay_key_id or "").strip()
            key_secret = key_secret or (row.razorpay_key_secret or "").strip()
    return RazorpayCredentials(key_id, key_secret)


def sign(remote_order_id: str, remote_payment_id: str, secret: str) -> str:
    msg = f"{remote_order_id}|{remote_payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), msg, hashlib.sha256).hexdigest()


def verify_signature(remote_order_id: str, remote_payment_id: str, signature: str, shared_secret: str) -> bool:
    """Check the checkout callback signature Razorpay hands to the client.

    The signature is the hex HMAC-SHA256 of ``"<order_id>|<payment_id>"``
    keyed with the account's key secret. A mismatch returns False; it never
    raises.
    """
    if not (remote_order_id and remote_payment_id and signature and shared_secret):
        return False
    expected = sign(remote_order_id, remote_payment_id, shared_secret)
    # bytes, since compare_digest rejects non-ASCII str
    return hmac.compare_digest(expected.encode("ascii"), signature.strip().encode("utf-8"))


class RazorpayGateway:
    """Thin client over the Razorpay Orders API.

    ``resolver`` returns the credentials to use for each call so a key rotated
    in the admin takes effect without a restart.
    """

    def __init__(self, resolver: Callable[[], RazorpayCredentials] = resolve_credentials,
                 base_url: Optional[str] = None, timeout: Optional[float] = None):
        self.resolver = resolver
        self.base_url = (base_url or getattr(settings, "RAZORPAY_BASE_URL", "https://api.razorpay.com/v1")).rstrip("/")
        self.timeout = timeout if timeout is not None else getattr(settings, "RAZORPAY_TIMEOUT", 15)

    def credentials(self) -> RazorpayCredentials:
        creds = self.resolver()
        if not creds.key_id or not creds.key_secret:
            raise ConfigurationError("Razorpay is not configured. Please contact support.")
        return creds

    def secret(self) -> str:
        creds = self.resolver()
        if not creds.key_secret:
            raise ConfigurationError("Razorpay is not configured on the server")
        return creds.key_secret

    def create_remote_order(self, amount_minor_units: int, currency: str, receipt_hint: str, metadata: dict,
                            credentials: Optional[RazorpayCredentials] = None) -> RemoteOrder:
        """Create an order with Razorpay.

        Pass ``credentials`` when the caller already resolved them and needs the
        same key id for the client (avoids a second read racing a key rotation).
        """
        if isinstance(amount_minor_units, bool) or not isinstance(amount_minor_units, int) or amount_minor_units <= 0:
            raise ValidationError("Invalid amount")
        creds = credentials or self.credentials()
        payload = {
            "amount": amount_minor_units,
            "currency": currency,
            "receipt": receipt_hint[:40],
            "notes": {k: str(v)[:NOTE_MAX_LEN] for k, v in (metadata or {}).items()},
        }
        url = f"{self.base_url}/orders"
        try:
            resp = requests.post(
                url, json=payload, headers=COMMON_HEADERS,
                auth=HTTPBasicAuth(creds.key_id, creds.key_secret), timeout=self.timeout,
            )
        except requests.Timeout as e:
            logger.error("Razorpay order request timed out receipt=%s", receipt_hint)
            raise GatewayError("Payment provider timed out") from e
        except RequestException as e:
            logger.error("Razorpay order request failed receipt=%s: %s", receipt_hint, e)
            raise GatewayError(f"Gateway request failed: {e}") from e

        try:
            data = resp.json()
        except ValueError:
            data = {"raw": resp.text}

        if not 200 <= resp.status_code < 300:
            error = data.get("error") if isinstance(data, dict) else None
            description = (error or {}).get("description") if isinstance(error, dict) else None
            logger.error(
                "Razorpay order creation failed receipt=%s status=%s response=%s",
                receipt_hint, resp.status_code, json.dumps(data)[:800],
            )
            raise GatewayError(description or f"Failed to create Razorpay order (HTTP {resp.status_code})")

        if not isinstance(data, dict) or not data.get("id"):
            logger.error("Invalid Razorpay order response receipt=%s: %s", receipt_hint, json.dumps(data)[:800])
            raise GatewayError("Failed to create Razorpay order")

        return RemoteOrder(
            remote_order_id=str(data["id"]),
            amount=amount_minor_units,
            currency=str(data.get("currency") or currency),
        )

    def verify_signature(self, remote_order_id: str, remote_payment_id: str, signature: str, shared_secret: str) -> bool:
        return verify_signature(remote_order_id, remote_payment_id, signature, shared_secret)
