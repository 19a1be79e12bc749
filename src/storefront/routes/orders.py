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

"""Order management routes for the storefront server."""

from typing import Any

from fastapi import APIRouter
from fastapi import Body
from fastapi import Depends
from fastapi import Path

from .. import dependencies
from ..models import CreateOrderRequest
from ..models import OrderStatusUpdateRequest
from ..models import Principal
from ..services.checkout_service import CheckoutService
from ..services.order_service import OrderService

router = APIRouter(prefix="/products")


@router.post(
    "/orders",
    response_model=dict[str, Any],
    status_code=201,
    operation_id="create_order",
)
async def create_order(
    order_req: CreateOrderRequest = Body(...),
    principal: Principal = Depends(dependencies.get_current_user),
    checkout_service: CheckoutService = Depends(
        dependencies.get_checkout_service
    ),
) -> dict[str, Any]:
  """Checkout: create an order and return the payment token."""
  result = await checkout_service.create_order(principal.id, order_req)
  return result.model_dump(mode="json", by_alias=True)


@router.get(
    "/orders/my-orders",
    response_model=list[dict[str, Any]],
    operation_id="list_my_orders",
)
async def list_my_orders(
    principal: Principal = Depends(dependencies.get_current_user),
    order_service: OrderService = Depends(dependencies.get_order_service),
) -> list[dict[str, Any]]:
  """List the caller's orders."""
  orders = await order_service.list_user_orders(principal.id)
  return [
      order.model_dump(mode="json", exclude={"user_id", "profiles"})
      for order in orders
  ]


@router.patch(
    "/order-status/{id}",
    response_model=dict[str, Any],
    operation_id="update_order_status",
)
async def update_order_status(
    order_id: str = Path(..., alias="id"),
    update_req: OrderStatusUpdateRequest = Body(...),
    principal: Principal = Depends(dependencies.get_current_user),
    order_service: OrderService = Depends(dependencies.get_order_service),
) -> dict[str, Any]:
  """Change an order's status (owners: complete only; admins: anything)."""
  order = await order_service.update_status(
      order_id, update_req.status, update_req.tracking_number, principal
  )
  return {
      "success": True,
      "message": f"Order status changed to {order.status}",
      "data": order.model_dump(
          mode="json", exclude={"order_items", "profiles"}
      ),
  }


@router.get(
    "/stats",
    response_model=dict[str, Any],
    operation_id="get_stats",
)
async def get_stats(
    principal: Principal = Depends(dependencies.require_admin),
    order_service: OrderService = Depends(dependencies.get_order_service),
) -> dict[str, Any]:
  """Order statistics for administrators."""
  del principal  # Unused
  stats = await order_service.get_stats()
  return stats.model_dump(
      mode="json",
      by_alias=True,
      exclude={"orders": {"__all__": {"order_items"}}},
  )
