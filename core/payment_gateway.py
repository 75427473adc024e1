# Toss Payments gateway client for Revu
import base64
import requests
from typing import Optional, Dict, Any
import logging

from config.app_config import TOSS_SECRET_KEY, TOSS_API_URL, GATEWAY_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """The gateway refused the request or could not be reached."""

    def __init__(self, message: str, code: Optional[str] = None, declined: bool = False):
        super().__init__(message)
        self.code = code
        # True when the gateway answered with a business rejection (card declined,
        # amount mismatch on its side) rather than a transport failure.
        self.declined = declined


class TossPaymentsGateway:
    """Confirms and cancels card payments through the Toss Payments API."""

    def __init__(self, secret_key: str = TOSS_SECRET_KEY, base_url: str = TOSS_API_URL, timeout: int = GATEWAY_TIMEOUT_SECONDS):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        token = base64.b64encode(f"{secret_key}:".encode("utf-8")).decode("ascii")
        self.headers = {
            "Authorization": f"Basic {token}",
            "Content-Type": "application/json"
        }

    def _make_request(self, method: str, endpoint: str, data: Optional[Dict] = None) -> Dict[str, Any]:
        """Make a request to the Toss API"""
        url = f"{self.base_url}{endpoint}"
        try:
            if method == "GET":
                response = requests.get(url, headers=self.headers, timeout=self.timeout)
            elif method == "POST":
                response = requests.post(url, headers=self.headers, json=data, timeout=self.timeout)
            else:
                raise ValueError(f"Unsupported method: {method}")
        except requests.exceptions.RequestException as e:
            logger.error(f"Toss API error: {e}")
            raise GatewayError(f"Payment gateway unreachable: {e}") from e

        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = {}
            code = body.get("code")
            message = body.get("message") or response.text
            logger.warning(f"Toss API rejected {endpoint}: {response.status_code} {code} {message}")
            raise GatewayError(message, code=code, declined=response.status_code < 500)

        return response.json()

    def confirm(self, payment_key: str, order_id: str, amount: int) -> Dict[str, Any]:
        """
        Confirm a payment the customer authorized in the checkout widget.

        Args:
            payment_key: Gateway payment key from the success redirect
            order_id: Our order id
            amount: Amount in minor units; must match what the customer authorized

        Returns:
            Gateway payment object
        """
        data = {
            "paymentKey": payment_key,
            "orderId": order_id,
            "amount": amount,
        }
        return self._make_request("POST", "/payments/confirm", data)

    def cancel(self, payment_key: str, reason: str, amount: Optional[int] = None) -> Dict[str, Any]:
        """Cancel (refund) a confirmed payment, in full unless an amount is given."""
        data = {"cancelReason": reason}
        if amount is not None:
            data["cancelAmount"] = amount
        return self._make_request("POST", f"/payments/{payment_key}/cancel", data)

    def get_payment(self, payment_key: str) -> Dict[str, Any]:
        return self._make_request("GET", f"/payments/{payment_key}")


def get_payment_gateway() -> Optional[TossPaymentsGateway]:
    """Gateway client, or None when no secret key is configured (callbacks are trusted as-is)."""
    if not TOSS_SECRET_KEY:
        return None
    return TossPaymentsGateway(TOSS_SECRET_KEY)
