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

"""Utility script to dump orders.

This script reads from the configured SQLite database and prints a summary
of all stored orders, including their status, payment token, line items
and, with --show_webhooks, the gateway notifications applied to each. It is
useful for debugging and verifying the state of the server.

Usage:
  storefront-dump-orders --db_path=... [--show_webhooks]
"""

import asyncio
import sys

from absl import app as absl_app
from absl import flags
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from .. import config
from ..db import create_engine_for_path
from ..db import create_session_factory
from ..db import Order
from ..db import OrderItem
from ..db import WebhookDelivery

FLAGS = config.FLAGS
flags.DEFINE_bool(
    "show_webhooks", False, "Show the gateway notifications for each order"
)


async def dump_orders():
  """Queries the database and prints all orders."""
  if not FLAGS.db_path:
    print("Error: --db_path is required.")
    sys.exit(1)

  engine = create_engine_for_path(FLAGS.db_path)
  session_factory = create_session_factory(engine)

  try:
    async with session_factory() as session:
      result = await session.execute(
          select(Order)
          .options(selectinload(Order.items).selectinload(OrderItem.product))
          .order_by(Order.created_at)
      )
      orders = result.scalars().all()

      if not orders:
        print("No orders found.")
        return

      for order in orders:
        print(f"Order: {order.id} [{order.status}] user={order.user_id}")
        print(f"  Created: {order.created_at}")
        print(f"  Courier: {order.courier} -> {order.destination_id}")
        print(f"  Token:   {order.snap_token or '(none)'}")
        if order.tracking_number:
          print(f"  Tracking: {order.tracking_number}")
        for item in order.items:
          name = item.product.name if item.product else "Unknown Item"
          line_total = item.price_at_purchase * item.quantity
          print(
              f"  - {name} (ID: {item.product_id}) x{item.quantity} @"
              f" {item.price_at_purchase} = {line_total}"
          )
        print(f"  Shipping: {order.shipping_cost}")
        print(f"  Total:    {order.total_amount}")

        if FLAGS.show_webhooks:
          deliveries = await session.execute(
              select(WebhookDelivery)
              .where(WebhookDelivery.order_id == order.id)
              .order_by(WebhookDelivery.created_at)
          )
          for delivery in deliveries.scalars().all():
            print(
                f"  * {delivery.created_at} {delivery.transaction_status}"
                f" -> {delivery.resulting_status}"
            )
        print("-" * 60)
  finally:
    await engine.dispose()


def main(argv):
  """Main entry point for the order dump script."""
  del argv
  asyncio.run(dump_orders())


def run() -> None:
  absl_app.run(main)


if __name__ == "__main__":
  run()
