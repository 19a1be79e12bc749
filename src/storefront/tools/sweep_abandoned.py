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

"""Cancels pending orders that never received a payment token.

Checkout persists the order before asking the gateway for a token, so a
gateway failure leaves a pending order with no token behind. Stock for such
orders has already been taken. This script cancels them once they are older
than --max_age_minutes, through the same state machine the webhook uses.

Usage:
  storefront-sweep-abandoned --db_path=... [--max_age_minutes=60] [--dry_run]
"""

import asyncio
import datetime
import logging
from typing import List

from absl import app as absl_app
from absl import flags

from .. import config
from .. import db
from ..enums import Actor
from ..enums import OrderStatus
from ..services import order_state

FLAGS = config.FLAGS
flags.DEFINE_integer(
    "max_age_minutes",
    60,
    "Only cancel tokenless pending orders older than this",
)
flags.DEFINE_bool("dry_run", False, "List the orders without cancelling them")

logger = logging.getLogger(__name__)


async def sweep_abandoned_orders(
    db_path: str, max_age_minutes: int, dry_run: bool = False
) -> List[str]:
  """Cancels stale tokenless pending orders.

  Args:
    db_path: Path to the SQLite database.
    max_age_minutes: Minimum age of an order before it is swept.
    dry_run: When set, nothing is written.

  Returns:
    The IDs of the orders that were (or, on a dry run, would be) cancelled.
  """
  cutoff = datetime.datetime.now(datetime.timezone.utc) - datetime.timedelta(
      minutes=max_age_minutes
  )
  await db.manager.init_db(db_path)
  try:
    async with db.manager.session_factory() as session:
      orders = await db.list_abandoned_orders(session, cutoff.isoformat())
      swept = []
      for order in orders:
        current = order_state.parse_status(order.status)
        new_status = order_state.transition(
            current,
            OrderStatus.CANCELLED,
            Actor.SYSTEM,
        )
        if dry_run:
          swept.append(order.id)
          logger.info("Would cancel order %s (%s)", order.id, order.created_at)
          continue
        if not await db.update_order_status(
            session, order.id, new_status, expected=current
        ):
          logger.info("Skipping order %s: status changed meanwhile", order.id)
          continue
        swept.append(order.id)
        logger.info("Cancelled abandoned order %s", order.id)

      if not dry_run:
        await session.commit()
      return swept
  finally:
    await db.manager.close()


def main(argv):
  """Main entry point for the sweep script."""
  del argv
  logging.basicConfig(level=logging.INFO)
  if not FLAGS.db_path:
    logger.error("--db_path is required.")
    raise SystemExit(1)
  swept = asyncio.run(
      sweep_abandoned_orders(
          FLAGS.db_path, FLAGS.max_age_minutes, FLAGS.dry_run
      )
  )
  logger.info("%d abandoned orders", len(swept))


def run() -> None:
  absl_app.run(main)


if __name__ == "__main__":
  run()
