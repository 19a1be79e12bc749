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

"""Server-side cart pricing.

Unit prices and names always come from the products table; the `price`
submitted with a cart item is ignored.
"""

import dataclasses
import logging
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from .. import db
from ..exceptions import NotFoundError
from ..exceptions import ValidationError
from ..models import CartItem

logger = logging.getLogger(__name__)

DEFAULT_ITEM_WEIGHT = 1000


@dataclasses.dataclass(frozen=True)
class PricedLine:
  product_id: str
  name: str
  unit_price: int
  quantity: int
  weight: int

  @property
  def line_total(self) -> int:
    return self.unit_price * self.quantity


@dataclasses.dataclass(frozen=True)
class PricedCart:
  lines: List[PricedLine]

  @property
  def subtotal(self) -> int:
    return sum(line.line_total for line in self.lines)

  @property
  def total_weight(self) -> int:
    return sum(line.weight * line.quantity for line in self.lines)


def shipment_weight(items: List[CartItem]) -> int:
  """Total weight of a cart, 1000 units per item when unspecified."""
  return sum(
      (item.weight or DEFAULT_ITEM_WEIGHT) * item.quantity for item in items
  )


class PriceRecalculator:
  """Recomputes line and cart totals from authoritative product prices."""

  def __init__(self, session: AsyncSession):
    self.session = session

  async def price_cart(self, items: List[CartItem]) -> PricedCart:
    """Prices every cart item from the products table.

    Raises:
      ValidationError: A quantity is not a positive integer.
      NotFoundError: A product does not exist.
    """
    for item in items:
      if item.quantity <= 0:
        raise ValidationError(f"Invalid quantity for item {item.id}")

    products = await db.get_products(
        self.session, [item.id for item in items]
    )

    lines = []
    for item in items:
      product = products.get(item.id)
      if product is None:
        raise NotFoundError(f"Product {item.id} not found")
      if item.price is not None and item.price != product.price:
        logger.info(
            "Ignoring client price %s for product %s (catalog price %s)",
            item.price,
            product.id,
            product.price,
        )
      lines.append(
          PricedLine(
              product_id=product.id,
              name=product.name or item.name or "",
              unit_price=int(product.price),
              quantity=item.quantity,
              weight=item.weight or DEFAULT_ITEM_WEIGHT,
          )
      )
    return PricedCart(lines=lines)
