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

"""Shipping cost and geography lookup routes.

These endpoints keep the response shapes the storefront frontend expects,
including the error bodies, so they answer errors themselves instead of
going through the shared exception handler.
"""

import logging

from fastapi import APIRouter
from fastapi import Body
from fastapi import Depends
from fastapi.responses import JSONResponse

from .. import dependencies
from ..exceptions import StorefrontError
from ..exceptions import UpstreamError
from ..models import ShippingCostRequest
from ..services.shipping_service import ShippingRateClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products/shipping")


@router.post("/cost", operation_id="get_shipping_cost")
async def get_shipping_cost(
    cost_req: ShippingCostRequest = Body(...),
    shipping_client: ShippingRateClient = Depends(
        dependencies.get_shipping_client
    ),
):
  """Quote shipping for a cart."""
  try:
    quote = await shipping_client.quote_cart(
        cost_req.items, cost_req.destination_id, cost_req.courier
    )
  except StorefrontError as e:
    logger.error("Shipping cost failed: %s", e.message)
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Failed to calculate shipping"},
    )
  return {"success": True, "cost": quote.cost, "service": quote.service}


@router.get("/provinces", operation_id="list_provinces")
async def list_provinces(
    shipping_client: ShippingRateClient = Depends(
        dependencies.get_shipping_client
    ),
):
  try:
    return await shipping_client.list_provinces()
  except UpstreamError as e:
    logger.error("Province lookup failed: %s", e.detail or e.message)
    return JSONResponse(status_code=500, content=[])


@router.get("/cities/{province_id}", operation_id="list_cities")
async def list_cities(
    province_id: str,
    shipping_client: ShippingRateClient = Depends(
        dependencies.get_shipping_client
    ),
):
  try:
    return await shipping_client.list_cities(province_id)
  except UpstreamError as e:
    logger.error("City lookup failed: %s", e.detail or e.message)
    return JSONResponse(
        status_code=500, content={"message": "Failed to fetch cities"}
    )


@router.get("/districts/{city_id}", operation_id="list_districts")
async def list_districts(
    city_id: str,
    shipping_client: ShippingRateClient = Depends(
        dependencies.get_shipping_client
    ),
):
  try:
    return await shipping_client.list_districts(city_id)
  except UpstreamError as e:
    logger.error("District lookup failed: %s", e.detail or e.message)
    return JSONResponse(
        status_code=500, content={"message": "Failed to fetch districts"}
    )
