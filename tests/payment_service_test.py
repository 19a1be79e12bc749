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

"""Tests for the payment gateway client and transaction builder."""

import asyncio
import base64
import hashlib

from absl.testing import absltest
import httpx
from storefront.exceptions import InternalError
from storefront.exceptions import UpstreamError
from storefront.services import payment_service
from storefront.services.pricing_service import PricedLine

LINES = [
    PricedLine("p1", "Kaos Polos Hitam", 10000, 2, 1000),
    PricedLine("p2", "", 25000, 1, 1000),
    PricedLine("p3", "x" * 80, 1500, 3, 1000),
]


class BuildTransactionTest(absltest.TestCase):

  def test_shipping_line_absorbs_remainder(self):
    transaction = payment_service.build_transaction(
        "order-1", LINES, 49500 + 12000, "Jl. Merdeka 1"
    )

    items = transaction["item_details"]
    self.assertLen(items, 4)
    self.assertEqual(
        items[-1],
        {
            "id": "shipping-fee",
            "price": 12000,
            "quantity": 1,
            "name": "Ongkos Kirim",
        },
    )
    self.assertEqual(
        payment_service.declared_total(transaction),
        transaction["transaction_details"]["gross_amount"],
    )
    self.assertEqual(
        transaction["customer_details"]["shipping_address"]["address"],
        "Jl. Merdeka 1",
    )
    self.assertIn("gopay", transaction["enabled_payments"])

  def test_item_names(self):
    transaction = payment_service.build_transaction("order-1", LINES, 0, None)

    names = [item["name"] for item in transaction["item_details"]]
    self.assertEqual(names[0], "Kaos Polos Hitam")
    self.assertEqual(names[1], "Produk")
    self.assertEqual(names[2], "x" * 50)


class PaymentGatewayTest(absltest.TestCase):

  def setUp(self):
    super().setUp()
    self.requests = []
    self.response = httpx.Response(201, json={"token": "tok-1"})

  def _gateway(self) -> payment_service.PaymentGateway:
    def handler(request: httpx.Request) -> httpx.Response:
      self.requests.append(request)
      return self.response

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return payment_service.PaymentGateway(
        http, "https://app.sandbox.midtrans.com/", "server-key"
    )

  def test_issue_token(self):
    transaction = payment_service.build_transaction(
        "order-1", LINES[:1], 29000, None
    )

    token = asyncio.run(self._gateway().issue_token(transaction))

    self.assertEqual(token, "tok-1")
    self.assertLen(self.requests, 1)
    request = self.requests[0]
    self.assertEqual(
        str(request.url),
        "https://app.sandbox.midtrans.com/snap/v1/transactions",
    )
    expected_auth = base64.b64encode(b"server-key:").decode()
    self.assertEqual(request.headers["Authorization"], f"Basic {expected_auth}")

  def test_rejects_inconsistent_totals_without_calling(self):
    transaction = payment_service.build_transaction(
        "order-1", LINES[:1], 29000, None
    )
    transaction["item_details"][0]["price"] += 1

    with self.assertRaises(InternalError):
      asyncio.run(self._gateway().issue_token(transaction))
    self.assertEmpty(self.requests)

  def test_gateway_errors(self):
    transaction = payment_service.build_transaction(
        "order-1", LINES[:1], 29000, None
    )
    for response in (
        httpx.Response(401, json={"error_messages": ["unauthorized"]}),
        httpx.Response(201, json={"redirect_url": "https://pay.test"}),
        httpx.Response(201, text="<html>"),
    ):
      with self.subTest(status=response.status_code):
        self.response = response
        with self.assertRaises(UpstreamError) as cm:
          asyncio.run(self._gateway().issue_token(transaction))
        self.assertEqual(cm.exception.upstream, "payment_gateway")

  def test_gateway_timeout(self):
    def handler(request: httpx.Request) -> httpx.Response:
      raise httpx.ConnectTimeout("timed out", request=request)

    gateway = payment_service.PaymentGateway(
        httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        "https://app.sandbox.midtrans.com",
        "server-key",
    )
    transaction = payment_service.build_transaction(
        "order-1", LINES[:1], 29000, None
    )

    with self.assertRaises(UpstreamError):
      asyncio.run(gateway.issue_token(transaction))

  def test_verify_signature(self):
    gateway = self._gateway()
    signature = hashlib.sha512(
        b"order-1" + b"200" + b"29000.00" + b"server-key"
    ).hexdigest()

    self.assertTrue(
        gateway.verify_signature("order-1", "200", "29000.00", signature)
    )
    self.assertFalse(
        gateway.verify_signature("order-1", "200", "1.00", signature)
    )
    self.assertFalse(
        gateway.verify_signature("order-1", "200", "29000.00", None)
    )


if __name__ == "__main__":
  absltest.main()
