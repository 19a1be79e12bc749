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

"""Utility script to dump product stock levels.

This script reads the current stock of every product from the configured
SQLite database and outputs it to standard output in CSV format.

Usage:
  storefront-dump-inventory --db_path=...
"""

import asyncio
import csv
import sys

from absl import app as absl_app
from sqlalchemy import select

from .. import config
from ..db import create_engine_for_path
from ..db import create_session_factory
from ..db import Product

FLAGS = config.FLAGS


async def dump_inventory():
  """Queries the database and prints current stock levels."""
  if not FLAGS.db_path:
    print("Error: --db_path is required.")
    sys.exit(1)

  engine = create_engine_for_path(FLAGS.db_path)
  session_factory = create_session_factory(engine)

  try:
    async with session_factory() as session:
      result = await session.execute(select(Product).order_by(Product.id))
      products = result.scalars().all()

      writer = csv.writer(sys.stdout)
      writer.writerow(["product_id", "name", "stock"])
      for product in products:
        writer.writerow([product.id, product.name, product.stock])
  finally:
    await engine.dispose()


def main(argv):
  """Main entry point for the inventory dump script."""
  del argv
  asyncio.run(dump_inventory())


def run() -> None:
  absl_app.run(main)


if __name__ == "__main__":
  run()
