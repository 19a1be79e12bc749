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

"""Order history, manual status changes and store statistics."""

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .. import db
from ..enums import Actor
from ..enums import OrderStatus
from ..exceptions import AuthorizationError
from ..exceptions import InternalError
from ..exceptions import InvalidTransitionError
from ..exceptions import NotFoundError
from ..models import OrderItemView
from ..models import OrderStats
from ..models import OrderView
from ..models import Principal
from ..models import ProductSnapshot
from ..models import StatsResponse
from . import order_state

logger = logging.getLogger(__name__)

REVENUE_STATUSES = frozenset(
    {OrderStatus.PAID.value, OrderStatus.SHIPPED.value}
)


def to_order_view(order: db.Order, with_items: bool = False) -> OrderView:
  items = None
  if with_items:
    items = [
        OrderItemView(
            id=item.id,
            quantity=item.quantity,
            price_at_purchase=item.price_at_purchase,
            products=ProductSnapshot(
                name=item.product.name, image_url=item.product.image_url
            )
            if item.product
            else None,
        )
        for item in order.items
    ]
  return OrderView(
      id=order.id,
      user_id=order.user_id,
      created_at=order.created_at,
      status=order.status,
      total_amount=order.total_amount,
      shipping_cost=order.shipping_cost,
      destination_id=order.destination_id,
      courier=order.courier,
      shipping_address=order.shipping_address,
      snap_token=order.snap_token,
      tracking_number=order.tracking_number,
      order_items=items,
  )


class OrderService:
  """Service for reading orders and changing their status by hand."""

  def __init__(self, session: AsyncSession):
    self.session = session

  async def list_user_orders(self, user_id: str) -> List[OrderView]:
    """Returns the caller's orders with items, newest first."""
    orders = await db.list_orders_for_user(self.session, user_id)
    return [to_order_view(order, with_items=True) for order in orders]

  async def update_status(
      self,
      order_id: str,
      status: Optional[str],
      tracking_number: Optional[str],
      principal: Principal,
  ) -> OrderView:
    """Changes an order's status on behalf of its owner or an admin.

    Customers may only confirm receipt (`completed`) of their own orders.
    Admins may set any status and a tracking number.

    Raises:
      ValidationError: The status is not a known order status.
      AuthorizationError: Role or ownership violation.
      NotFoundError: The order does not exist.
      InvalidTransitionError: The order cannot move from its status, or its
        status changed before the update was written.
    """
    requested = order_state.parse_status(status)
    actor = Actor.ADMIN if principal.is_admin else Actor.OWNER
    if actor == Actor.OWNER and requested != OrderStatus.COMPLETED:
      raise AuthorizationError(
          "Access denied. You can only complete your orders."
      )

    order = await db.get_order(self.session, order_id)
    if order is None:
      raise NotFoundError("Order not found")
    if actor == Actor.OWNER and order.user_id != principal.id:
      raise AuthorizationError("This is not your order")

    current = OrderStatus(order.status)
    new_status = order_state.transition(current, requested, actor)
    if actor == Actor.OWNER:
      tracking_number = None
    elif tracking_number is not None:
      logger.info(
          "Admin %s set tracking number on order %s", principal.id, order_id
      )

    try:
      updated = await db.update_order_status(
          self.session,
          order_id,
          new_status,
          expected=current,
          tracking_number=tracking_number,
      )
      if updated:
        await self.session.commit()
      else:
        await self.session.rollback()
    except SQLAlchemyError as e:
      await self.session.rollback()
      logger.error("Failed to update order %s: %s", order_id, e)
      raise InternalError("Failed to update order") from e
    if not updated:
      logger.warning(
          "Order %s changed from %s before the update applied",
          order_id,
          current.value,
      )
      raise InvalidTransitionError(
          f"Order is no longer '{current.value}'; reload and retry"
      )

    await self.session.refresh(order)
    return to_order_view(order)

  async def get_stats(self) -> StatsResponse:
    """Aggregates order counts and revenue for the admin dashboard."""
    orders = await db.list_all_orders(self.session)
    views = []
    for order in orders:
      view = to_order_view(order)
      if order.profile is not None:
        view.profiles = {"full_name": order.profile.full_name}
      views.append(view)

    return StatsResponse(
        stats=OrderStats(
            total_orders=len(orders),
            total_revenue=sum(
                order.total_amount
                for order in orders
                if order.status in REVENUE_STATUSES
            ),
            pending_orders=sum(
                1 for order in orders if order.status == OrderStatus.PENDING
            ),
        ),
        orders=views,
    )
