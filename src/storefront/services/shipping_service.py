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

"""Shipping rate provider client.

This module encapsulates the calls to the external shipping provider: the
authoritative domestic cost for a shipment, and the province / city /
district lookups the storefront proxies for its address forms.

Calls are fail-fast. Any timeout, network error, non-2xx status or
unusable body surfaces as `UpstreamError`; retrying is left to the caller.
"""

import logging
from typing import Any, List, Optional

import httpx

from ..exceptions import UpstreamError
from ..exceptions import ValidationError
from ..models import CartItem
from ..models import ShippingQuote
from .pricing_service import shipment_weight

logger = logging.getLogger(__name__)

UPSTREAM = "shipping"


class ShippingRateClient:
  """Client for the shipping rate and geography lookup APIs."""

  def __init__(
      self,
      http: httpx.AsyncClient,
      rate_base_url: str,
      rate_api_key: str,
      origin_id: str,
      geo_base_url: str,
      geo_api_key: str,
  ):
    self.http = http
    self.rate_base_url = rate_base_url.rstrip("/")
    self.rate_api_key = rate_api_key
    self.origin_id = origin_id
    self.geo_base_url = geo_base_url.rstrip("/")
    self.geo_api_key = geo_api_key

  async def quote(
      self, destination_id: str, total_weight: int, courier: str
  ) -> ShippingQuote:
    """Returns the first rate the provider offers for the shipment.

    Args:
      destination_id: Provider id of the destination district.
      total_weight: Shipment weight in grams.
      courier: Courier code, e.g. "jne".

    Returns:
      The cost, service label and courier name of the first result.

    Raises:
      UpstreamError: The provider failed or returned no rates.
    """
    body = await self._request(
        "POST",
        f"{self.rate_base_url}/calculate/domestic-cost",
        api_key=self.rate_api_key,
        data={
            "origin": self.origin_id,
            "destination": destination_id,
            "weight": str(total_weight),
            "courier": courier,
        },
    )
    rates = body.get("data") if isinstance(body, dict) else None
    if not rates:
      logger.error(
          "No shipping rates for destination=%s courier=%s weight=%s",
          destination_id,
          courier,
          total_weight,
      )
      raise UpstreamError(
          "Shipping service is not available for this destination",
          upstream=UPSTREAM,
          detail="empty result",
      )

    first = rates[0]
    try:
      return ShippingQuote(
          cost=int(round(float(first["cost"]))),
          service=str(first.get("service") or ""),
          name=str(first.get("name") or ""),
      )
    except (KeyError, TypeError, ValueError) as e:
      logger.error("Malformed shipping rate %r: %s", first, e)
      raise UpstreamError(
          "Failed to calculate shipping cost", upstream=UPSTREAM, detail=str(e)
      ) from e

  async def quote_cart(
      self,
      items: List[CartItem],
      destination_id: Optional[str],
      courier: Optional[str],
  ) -> ShippingQuote:
    """Quotes shipping for a cart using the client supplied item weights."""
    if not destination_id or not courier:
      raise ValidationError("destination_id and courier are required")
    if not items:
      raise ValidationError("Cart is empty")
    return await self.quote(destination_id, shipment_weight(items), courier)

  async def list_provinces(self) -> List[Any]:
    body = await self._request(
        "GET",
        f"{self.geo_base_url}/destination/province",
        api_key=self.geo_api_key,
    )
    return (body.get("data") if isinstance(body, dict) else None) or []

  async def list_cities(self, province_id: str) -> Any:
    body = await self._request(
        "GET",
        f"{self.geo_base_url}/destination/city/{province_id}",
        api_key=self.geo_api_key,
    )
    return body.get("data") if isinstance(body, dict) else None

  async def list_districts(self, city_id: str) -> Any:
    body = await self._request(
        "GET",
        f"{self.geo_base_url}/destination/district/{city_id}",
        api_key=self.geo_api_key,
    )
    return body.get("data") if isinstance(body, dict) else None

  async def _request(
      self,
      method: str,
      url: str,
      api_key: str,
      data: Optional[dict[str, str]] = None,
  ) -> Any:
    """Sends one request and decodes the JSON body."""
    headers = {"key": api_key, "Accept": "application/json"}
    try:
      response = await self.http.request(
          method, url, headers=headers, data=data
      )
    except httpx.TimeoutException as e:
      logger.error("Shipping provider timed out: %s %s", method, url)
      raise UpstreamError(
          "Shipping provider timed out", upstream=UPSTREAM, detail=str(e)
      ) from e
    except httpx.RequestError as e:
      logger.error("Network error calling %s %s: %s", method, url, e)
      raise UpstreamError(
          "Shipping provider is unreachable", upstream=UPSTREAM, detail=str(e)
      ) from e

    if response.status_code // 100 != 2:
      logger.error(
          "Shipping provider %s %s failed: Status %d %s",
          method,
          url,
          response.status_code,
          response.text,
      )
      raise UpstreamError(
          "Shipping provider rejected the request",
          upstream=UPSTREAM,
          detail=f"HTTP {response.status_code}",
      )

    try:
      return response.json()
    except ValueError as e:
      logger.error("Failed to decode JSON from %s: %s", url, e)
      raise UpstreamError(
          "Shipping provider returned an invalid response",
          upstream=UPSTREAM,
          detail=str(e),
      ) from e
