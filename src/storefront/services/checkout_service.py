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

"""Checkout service turning a cart into an order and a payment token.

This module provides the `CheckoutService` class, which runs the checkout
pipeline end to end:

1. Validate the request before touching anything.
2. Price the cart from the products table (the server is the authority).
3. Quote shipping from the external rate provider.
4. Persist the order header and its line items in one transaction.
5. Decrement stock per line item. A failed decrement is logged and the
   checkout continues; this is the one partial failure the pipeline
   tolerates, and it can oversell.
6. Request a payment token from the gateway and store it on the order.

A failure in step 6 leaves a `pending` order without a token. Those are
abandoned checkouts and are cancelled later by the sweep tool.
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .. import db
from ..exceptions import InternalError
from ..exceptions import UpstreamError
from ..exceptions import ValidationError
from ..models import CreateOrderRequest
from ..models import CreateOrderResponse
from ..models import ShippingQuote
from . import payment_service
from .inventory_service import InventoryAdjuster
from .payment_service import PaymentGateway
from .pricing_service import PricedCart
from .pricing_service import PriceRecalculator
from .shipping_service import ShippingRateClient

logger = logging.getLogger(__name__)


class CheckoutService:
  """Service for turning carts into orders."""

  def __init__(
      self,
      session: AsyncSession,
      shipping_client: ShippingRateClient,
      payment_gateway: PaymentGateway,
  ):
    self.session = session
    self.shipping_client = shipping_client
    self.payment_gateway = payment_gateway

  async def create_order(
      self, user_id: Optional[str], order_req: CreateOrderRequest
  ) -> CreateOrderResponse:
    """Runs the checkout pipeline for an authenticated user.

    Args:
      user_id: The authenticated caller.
      order_req: The submitted cart and shipping details.

    Returns:
      The payment token and the new order's id.

    Raises:
      ValidationError: Required input is missing; nothing was persisted.
      NotFoundError: A cart item references an unknown product.
      UpstreamError: Shipping quote or payment token could not be obtained.
      InternalError: The order could not be stored.
    """
    self._validate(user_id, order_req)
    logger.info(
        "Creating order for user %s (%d items)", user_id, len(order_req.items)
    )

    priced = await PriceRecalculator(self.session).price_cart(order_req.items)
    # End the read transaction before calling out to the provider.
    await self.session.rollback()

    quote = await self.shipping_client.quote(
        order_req.destination_id, priced.total_weight, order_req.courier
    )
    final_amount = priced.subtotal + quote.cost

    order_id = await self._persist_order(
        user_id, order_req, priced, quote, final_amount
    )
    await self._reserve_stock(order_id, priced)

    transaction = payment_service.build_transaction(
        order_id, priced.lines, final_amount, order_req.shipping_address
    )
    try:
      token = await self.payment_gateway.issue_token(transaction)
    except UpstreamError:
      logger.warning("Order %s left pending without a payment token", order_id)
      raise

    try:
      await db.attach_payment_token(self.session, order_id, token)
      await self.session.commit()
    except SQLAlchemyError as e:
      await self.session.rollback()
      logger.error("Failed to store payment token on order %s: %s", order_id, e)
      raise InternalError("Failed to save payment token") from e

    logger.info(
        "Order %s created: subtotal=%d shipping=%d total=%d",
        order_id,
        priced.subtotal,
        quote.cost,
        final_amount,
    )
    return CreateOrderResponse(token=token, order_id=order_id)

  def _validate(
      self, user_id: Optional[str], order_req: CreateOrderRequest
  ) -> None:
    if not user_id:
      raise ValidationError("Missing user")
    if not order_req.destination_id or not order_req.courier:
      raise ValidationError("Incomplete data: destination_id and courier")
    if not order_req.items:
      raise ValidationError("Incomplete data: cart is empty")
    for item in order_req.items:
      if not item.id or item.quantity <= 0:
        raise ValidationError(f"Invalid cart item {item.id!r}")

  async def _persist_order(
      self,
      user_id: str,
      order_req: CreateOrderRequest,
      priced: PricedCart,
      quote: ShippingQuote,
      final_amount: int,
  ) -> str:
    """Stores the order header and line items atomically."""
    try:
      order = await db.create_order(
          self.session,
          {
              "user_id": user_id,
              "total_amount": final_amount,
              "shipping_cost": quote.cost,
              "destination_id": order_req.destination_id,
              "courier": quote.courier_label,
              "shipping_address": order_req.shipping_address,
          },
          [
              {
                  "product_id": line.product_id,
                  "quantity": line.quantity,
                  "price_at_purchase": line.unit_price,
              }
              for line in priced.lines
          ],
      )
      order_id = order.id
      await self.session.commit()
    except SQLAlchemyError as e:
      await self.session.rollback()
      logger.error("Failed to save order for user %s: %s", user_id, e)
      raise InternalError("Failed to save order") from e
    return order_id

  async def _reserve_stock(self, order_id: str, priced: PricedCart) -> None:
    adjuster = InventoryAdjuster(self.session)
    for line in priced.lines:
      if not await adjuster.adjust(line.product_id, line.quantity):
        logger.warning(
            "Stock decrement failed for product %s (qty %d) on order %s",
            line.product_id,
            line.quantity,
            order_id,
        )
    try:
      await self.session.commit()
    except SQLAlchemyError as e:
      await self.session.rollback()
      logger.error(
          "Failed to commit stock updates for order %s: %s", order_id, e
      )
