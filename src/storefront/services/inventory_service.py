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

"""Per-product stock adjustment."""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .. import db

logger = logging.getLogger(__name__)


class InventoryAdjuster:
  """Decrements stock with a single conditional UPDATE per item."""

  def __init__(self, session: AsyncSession):
    self.session = session

  async def adjust(self, product_id: str, quantity: int) -> bool:
    """Takes `quantity` units of a product out of stock.

    Returns:
      True if the stock was decremented, False if there was not enough
      stock or the store failed. Never raises.
    """
    try:
      return await db.decrement_stock(self.session, product_id, quantity)
    except SQLAlchemyError as e:
      logger.error("Stock update for product %s failed: %s", product_id, e)
      return False
