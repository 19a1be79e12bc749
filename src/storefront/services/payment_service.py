#   Copyright 2026 UCP Authors
#
#   Licensed under the Apache License, Version 2.0 (the "License");
#   you may not use this file except in compliance with the License.
#   You may obtain a copy of the License at
#
#       http://www.apache.org/licenses/LICENSE-2.0
#
#   Unless required by applicable law or agreed to in writing, software
#   distributed under the License is distributed on an "AS IS" BASIS,
#   WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#   See the License for the specific language governing permissions and
#   limitations under the License.

"""Payment gateway (Midtrans Snap) integration.

`PaymentGateway` is created once per process by the app lifespan and
injected where needed. It builds Snap transaction requests, obtains the
client-facing payment token and verifies notification signatures.
"""

import hashlib
import hmac
import logging
from typing import Any, Dict, List, Optional

import httpx

from ..exceptions import InternalError
from ..exceptions import UpstreamError
from .pricing_service import PricedLine

logger = logging.getLogger(__name__)

UPSTREAM = "payment_gateway"

MAX_ITEM_NAME_LENGTH = 50
DEFAULT_ITEM_NAME = "Produk"
SHIPPING_LINE_ID = "shipping-fee"
SHIPPING_LINE_NAME = "Ongkos Kirim"
ENABLED_PAYMENTS = (
    "gopay",
    "shopeepay",
    "bank_transfer",
    "indomaret",
    "alfamart",
)


def build_transaction(
    order_id: str,
    lines: List[PricedLine],
    gross_amount: float,
    shipping_address: Optional[str],
) -> Dict[str, Any]:
  """Builds a Snap transaction request.

  The gateway rejects requests whose gross amount differs from the sum of
  the item lines, so the synthetic shipping line absorbs whatever remains
  after the product lines.

  Args:
    order_id: The order the payment is for.
    lines: Priced product lines.
    gross_amount: The order total including shipping.
    shipping_address: Free-form address text for the customer details.

  Returns:
    The JSON-ready transaction request.
  """
  gross = int(round(gross_amount))
  item_details = [
      {
          "id": line.product_id,
          "price": line.unit_price,
          "quantity": line.quantity,
          "name": (line.name or DEFAULT_ITEM_NAME)[:MAX_ITEM_NAME_LENGTH],
      }
      for line in lines
  ]
  products_total = sum(
      item["price"] * item["quantity"] for item in item_details
  )
  item_details.append({
      "id": SHIPPING_LINE_ID,
      "price": gross - products_total,
      "quantity": 1,
      "name": SHIPPING_LINE_NAME,
  })
  return {
      "transaction_details": {
          "order_id": order_id,
          "gross_amount": gross,
      },
      "item_details": item_details,
      "customer_details": {
          "shipping_address": {"address": shipping_address or ""},
      },
      "enabled_payments": list(ENABLED_PAYMENTS),
  }


def declared_total(transaction: Dict[str, Any]) -> int:
  return sum(
      item["price"] * item["quantity"] for item in transaction["item_details"]
  )


def notification_signature(
    order_id: str, status_code: str, gross_amount: str, server_key: str
) -> str:
  """sha512(order_id + status_code + gross_amount + server_key), hex."""
  payload = f"{order_id}{status_code}{gross_amount}{server_key}"
  return hashlib.sha512(payload.encode("utf-8")).hexdigest()


class PaymentGateway:
  """Snap API client."""

  def __init__(self, http: httpx.AsyncClient, base_url: str, server_key: str):
    self.http = http
    self.base_url = base_url.rstrip("/")
    self.server_key = server_key

  async def issue_token(self, transaction: Dict[str, Any]) -> str:
    """Creates a Snap transaction and returns its payment token.

    Raises:
      InternalError: The request's line items do not add up to its gross
        amount; nothing is sent.
      UpstreamError: The gateway rejected the request or was unreachable.
    """
    gross = transaction["transaction_details"]["gross_amount"]
    if declared_total(transaction) != gross:
      raise InternalError(
          f"Transaction lines sum to {declared_total(transaction)}, "
          f"expected {gross}"
      )

    order_id = transaction["transaction_details"]["order_id"]
    logger.info(
        "Requesting payment token for order %s (gross %s, %d lines)",
        order_id,
        gross,
        len(transaction["item_details"]),
    )
    try:
      response = await self.http.post(
          f"{self.base_url}/snap/v1/transactions",
          json=transaction,
          auth=(self.server_key, ""),
          headers={"Accept": "application/json"},
      )
    except httpx.TimeoutException as e:
      logger.error("Payment gateway timed out for order %s", order_id)
      raise UpstreamError(
          "Payment gateway timed out", upstream=UPSTREAM, detail=str(e)
      ) from e
    except httpx.RequestError as e:
      logger.error("Network error creating payment for %s: %s", order_id, e)
      raise UpstreamError(
          "Payment gateway is unreachable", upstream=UPSTREAM, detail=str(e)
      ) from e

    if response.status_code // 100 != 2:
      logger.error(
          "Payment gateway rejected order %s: Status %d %s",
          order_id,
          response.status_code,
          response.text,
      )
      raise UpstreamError(
          "Payment gateway rejected the transaction",
          upstream=UPSTREAM,
          detail=response.text,
      )

    try:
      token = response.json().get("token")
    except (ValueError, AttributeError) as e:
      raise UpstreamError(
          "Payment gateway returned an invalid response",
          upstream=UPSTREAM,
          detail=str(e),
      ) from e
    if not token:
      raise UpstreamError(
          "Payment gateway did not return a token",
          upstream=UPSTREAM,
          detail=response.text,
      )
    return token

  def verify_signature(
      self,
      order_id: str,
      status_code: Optional[str],
      gross_amount: Optional[str],
      signature_key: Optional[str],
  ) -> bool:
    """Checks a notification's signature_key against the server key."""
    if not signature_key or status_code is None or gross_amount is None:
      return False
    expected = notification_signature(
        order_id, status_code, gross_amount, self.server_key
    )
    return hmac.compare_digest(expected, signature_key)
