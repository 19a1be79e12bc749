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

"""Database initialization script for the storefront server.

This script imports product and profile data from CSV files into the
configured SQLite database. It clears any existing products and profiles
before populating them with the new dataset. Orders are left untouched,
so it refuses to clear products that existing orders refer to.

Usage:
  storefront-import-csv --db_path=... [--data_dir=...]
"""

import asyncio
import csv
import json
import logging
import os

from absl import app as absl_app
from absl import flags
from sqlalchemy import delete
from sqlalchemy import func
from sqlalchemy import select

from .. import config
from .. import db
from ..db import OrderItem
from ..db import Product
from ..db import Profile

FLAGS = config.FLAGS
flags.DEFINE_string(
    "data_dir",
    os.path.join(os.path.dirname(os.path.dirname(__file__)), "data"),
    "Directory containing products.csv and profiles.csv",
)

logger = logging.getLogger(__name__)


def parse_image_urls(value: str) -> list[str]:
  """Accepts a JSON list or a '|' separated list of image URLs."""
  value = (value or "").strip()
  if not value:
    return []
  if value.startswith("["):
    return list(json.loads(value))
  return [part.strip() for part in value.split("|") if part.strip()]


async def import_csv_data(db_path: str, data_dir: str) -> None:
  """Reads CSV files and populates the database."""
  # Ensure tables exist
  await db.manager.init_db(db_path)

  try:
    async with db.manager.session_factory() as session:
      referenced = await session.scalar(select(func.count(OrderItem.id)))
      if referenced:
        raise RuntimeError(
            f"{referenced} order items reference the catalog; not clearing it"
        )

      logger.info("Clearing existing products...")
      await session.execute(delete(Product))

      logger.info("Importing Products from CSV...")
      products = []
      with open(os.path.join(data_dir, "products.csv"), "r") as f:
        reader = csv.DictReader(f)
        for row in reader:
          products.append(
              Product(
                  id=row["id"],
                  name=row["name"],
                  description=row.get("description") or None,
                  price=int(row["price"]),
                  stock=int(row["stock"]),
                  image_url=parse_image_urls(row.get("image_url", "")),
              )
          )
      session.add_all(products)

      logger.info("Clearing existing profiles...")
      await session.execute(delete(Profile))

      profiles_path = os.path.join(data_dir, "profiles.csv")
      if os.path.exists(profiles_path):
        logger.info("Importing Profiles from CSV...")
        profiles = []
        with open(profiles_path, "r") as f:
          reader = csv.DictReader(f)
          for row in reader:
            profiles.append(
                Profile(
                    id=row["id"],
                    full_name=row.get("full_name") or None,
                    role=row.get("role") or "user",
                )
            )
        session.add_all(profiles)

      await session.commit()
      logger.info("Imported %d products", len(products))
  finally:
    await db.manager.close()


def main(argv):
  """Main entry point for the CSV import script."""
  del argv
  logging.basicConfig(level=logging.INFO)
  if not FLAGS.db_path:
    logger.error("--db_path is required.")
    raise SystemExit(1)
  asyncio.run(import_csv_data(FLAGS.db_path, FLAGS.data_dir))


def run() -> None:
  absl_app.run(main)


if __name__ == "__main__":
  run()
