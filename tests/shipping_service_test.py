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

"""Tests for the shipping rate provider client."""

import asyncio
from typing import Callable

from absl.testing import absltest
import httpx
from storefront.exceptions import UpstreamError
from storefront.exceptions import ValidationError
from storefront.models import CartItem
from storefront.services.shipping_service import ShippingRateClient


def _client(
    handler: Callable[[httpx.Request], httpx.Response],
) -> ShippingRateClient:
  return ShippingRateClient(
      httpx.AsyncClient(transport=httpx.MockTransport(handler)),
      rate_base_url="https://rates.test/api/v1/",
      rate_api_key="rate-key",
      origin_id="5296",
      geo_base_url="https://geo.test/api/v1",
      geo_api_key="geo-key",
  )


class ShippingRateClientTest(absltest.TestCase):

  def test_quote_takes_first_rate(self):
    def handler(request: httpx.Request) -> httpx.Response:
      self.assertEqual(
          str(request.url), "https://rates.test/api/v1/calculate/domestic-cost"
      )
      return httpx.Response(
          200,
          json={
              "data": [
                  {"name": "JNE", "service": "REG", "cost": 9000},
                  {"name": "JNE", "service": "YES", "cost": 18000},
              ]
          },
      )

    quote = asyncio.run(_client(handler).quote("501", 2000, "jne"))

    self.assertEqual(quote.cost, 9000)
    self.assertEqual(quote.service, "REG")
    self.assertEqual(quote.courier_label, "JNE - REG")

  def test_quote_failures(self):
    for response in (
        httpx.Response(200, json={"data": []}),
        httpx.Response(200, json={"meta": {"code": 200}}),
        httpx.Response(200, json={"data": [{"service": "REG"}]}),
        httpx.Response(400, json={"meta": {"message": "Invalid courier"}}),
        httpx.Response(200, text="not json"),
    ):
      with self.subTest(body=response.text):
        client = _client(lambda request, r=response: r)
        with self.assertRaises(UpstreamError) as cm:
          asyncio.run(client.quote("501", 1000, "jne"))
        self.assertEqual(cm.exception.upstream, "shipping")

  def test_quote_timeout(self):
    def handler(request: httpx.Request) -> httpx.Response:
      raise httpx.ReadTimeout("timed out", request=request)

    with self.assertRaises(UpstreamError) as cm:
      asyncio.run(_client(handler).quote("501", 1000, "jne"))
    self.assertEqual(cm.exception.message, "Shipping provider timed out")

  def test_quote_cart_validates_input(self):
    client = _client(lambda request: httpx.Response(500))
    items = [CartItem(id="p1", quantity=1)]

    with self.assertRaises(ValidationError):
      asyncio.run(client.quote_cart(items, "501", None))
    with self.assertRaises(ValidationError):
      asyncio.run(client.quote_cart(items, None, "jne"))
    with self.assertRaises(ValidationError):
      asyncio.run(client.quote_cart([], "501", "jne"))

  def test_provinces_default_to_empty_list(self):
    client = _client(lambda request: httpx.Response(200, json={"data": None}))
    self.assertEqual(asyncio.run(client.list_provinces()), [])


if __name__ == "__main__":
  absltest.main()
